"""
Report generation for simulation results.

Turns a ``SimulationResult`` into the JSON structure consumed by renderers
(year-keyed maps use string keys) and into a short markdown summary.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .milestones import LIFE_EVENT_MILESTONES, NET_WORTH_MILESTONES
from .monte_carlo import PATH_CATEGORY_INFO, SimulationResult, categorize_path
from .simulator import SimulationPath
from .state import format_usd

REPORT_VERSION = "1.0.0"


def path_to_dict(path: SimulationPath) -> Dict[str, Any]:
    return {
        "id": path.id,
        "category": categorize_path(path),
        "probability": path.probability,
        "risk_score": path.risk_score,
        "final_magnitude": path.final_magnitude,
        "min_resilience": path.min_resilience,
        "states": [s.to_dict() for s in path.states],
        "active_archetypes_by_year": {str(y): ids for y, ids in path.active_archetypes_by_year.items()},
        "milestones": [m.to_dict() for m in path.milestones],
        "net_worth_by_year": {str(y): nw for y, nw in path.net_worth_by_year.items()},
        "wealth_tier_by_year": {str(y): tier for y, tier in path.wealth_tier_by_year.items()},
    }


def result_to_dict(
    result: SimulationResult, paths: Optional[Sequence[SimulationPath]] = None
) -> Dict[str, Any]:
    """
    JSON-serialisable view of ``result``.

    Args:
        result: Aggregated simulation result
        paths: Paths to include (e.g. a representative sample); defaults to all
    """
    if paths is None:
        paths = result.paths

    return {
        "report_version": REPORT_VERSION,
        "generated_at_utc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "config": result.config.to_dict() if result.config else None,
        "n_paths": len(result.paths),
        "statistics": result.statistics.to_dict(),
        "milestone_probabilities": dict(sorted(result.milestone_probabilities.items())),
        "canonical_paths": {
            "high_probability": result.high_probability_path.id,
            "best_outcome": result.best_outcome_path.id,
            "worst_outcome": result.worst_outcome_path.id,
            "most_likely": result.most_likely_path.id,
        },
        "mean_path": [s.to_dict() for s in result.mean_path],
        "paths": [path_to_dict(p) for p in paths],
    }


def write_json_report(
    result: SimulationResult,
    output_path: Path,
    paths: Optional[Sequence[SimulationPath]] = None,
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result_to_dict(result, paths), f, indent=2)
    return output_path


def _milestone_label(key: str) -> str:
    kind, _, ident = key.partition("-")
    if kind == "nw":
        for spec in NET_WORTH_MILESTONES:
            if str(spec.threshold) == ident:
                return f"Net worth {spec.label}"
    else:
        for info in LIFE_EVENT_MILESTONES.values():
            if info["icon"] == ident:
                return info["label"]
    return key


def render_markdown_summary(result: SimulationResult, title: str = "Life Path Simulation") -> str:
    stats = result.statistics
    lines: List[str] = [f"# {title}", ""]

    if result.config is not None:
        cfg = result.config
        lines.append(
            f"{len(result.paths)} paths, {cfg.start_year}-{cfg.end_year}, "
            f"effort x{cfg.effort_multiplier:g}, risk tolerance {cfg.risk_tolerance:g}")
        lines.append("")

    lines += [
        "## Outcomes",
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Mean final magnitude | {stats.mean_final_magnitude:.3f} ± {stats.std_final_magnitude:.3f} |",
        f"| Mean risk | {stats.mean_risk:.3f} |",
        f"| Success probability | {stats.success_probability:.1%} |",
        f"| Burnout probability | {stats.burnout_probability:.1%} |",
        f"| Wealthy probability | {stats.wealthy_probability:.1%} |",
        f"| Millionaire probability | {stats.millionaire_probability:.1%} |",
        f"| Mean final net worth | {format_usd(stats.mean_final_net_worth)} |",
        f"| Median final net worth | {format_usd(stats.median_final_net_worth)} |",
        "",
    ]

    if stats.category_distribution:
        lines += ["## Path categories", ""]
        for category, share in sorted(stats.category_distribution.items(), key=lambda kv: -kv[1]):
            lines.append(f"- {PATH_CATEGORY_INFO[category]['label']}: {share:.1%}")
        lines.append("")

    if result.milestone_probabilities:
        lines += ["## Milestones", ""]
        for key, p in sorted(result.milestone_probabilities.items(), key=lambda kv: -kv[1]):
            lines.append(f"- {_milestone_label(key)}: {p:.1%}")
        lines.append("")

    return "\n".join(lines)
