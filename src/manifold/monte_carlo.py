"""
Monte Carlo Aggregation
=======================

Runs many independent paths, reduces them to summary statistics, assigns
each path a risk-weighted probability and extracts the canonical reference
paths (highest probability, best outcome, worst outcome, closest to mean).

Paths run either in-process or across a process pool. Every path seeds its
own generator from its index, so both modes produce identical results for
the same config.

Usage:
    from manifold import MonteCarloAggregator, SimulationConfig, preset_state
    from manifold.schedule import ScheduleEntry

    config = SimulationConfig(start_year=2025, end_year=2035, num_paths=2000)
    schedule = [ScheduleEntry("founder", 2026, 2030)]
    result = MonteCarloAggregator(preset_state("founder"), schedule, config).run()
    print(result.statistics.success_probability)
"""

import logging
import math
import threading
import time
from collections import Counter
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .archetypes import Archetype
from .config import SimulationConfig
from .schedule import ScheduleEntry, full_horizon_schedule
from .simulator import PathSimulator, SimulationCancelled, SimulationPath, TimestampedState
from .state import DIMENSIONS, VITALITY_COMPONENTS, StateVector

logger = logging.getLogger(__name__)

SUCCESS_MAGNITUDE = 0.6
BURNOUT_MIN_RESILIENCE = 0.3
WEALTHY_NORMALIZED = 0.6
MILLIONAIRE_NET_WORTH = 1_000_000

# exp(-risk * (1 - risk_tolerance) * RISK_WEIGHT_SCALE)
RISK_WEIGHT_SCALE = 5.0

PROGRESS_INTERVAL = 1000

# Seconds between cancellation checks while waiting on worker chunks
CANCEL_POLL_SECONDS = 0.1


# ============================================================================
# PATH CATEGORIES
# ============================================================================

WEALTH_DOMINANT = "wealth-dominant"
BALANCED = "balanced"
BURNOUT_RISK = "burnout-risk"
GROWTH_FOCUSED = "growth-focused"
HEALTH_FIRST = "health-first"

PATH_CATEGORY_INFO: Dict[str, Dict[str, str]] = {
    WEALTH_DOMINANT: {
        "label": "Wealth Dominant",
        "color": "#fbbf24",
        "description": "Financial success is the primary outcome",
    },
    BALANCED: {
        "label": "Balanced",
        "color": "#14b8a6",
        "description": "Even growth across all life dimensions",
    },
    BURNOUT_RISK: {
        "label": "Burnout Risk",
        "color": "#ef4444",
        "description": "Resilience drops below safe levels",
    },
    GROWTH_FOCUSED: {
        "label": "Growth Focused",
        "color": "#a855f7",
        "description": "Prioritizes skills and social capital",
    },
    HEALTH_FIRST: {
        "label": "Health First",
        "color": "#22c55e",
        "description": "Maintains high vitality throughout",
    },
}


def categorize_path(path: SimulationPath) -> str:
    """Classify a path by its final state; the first matching rule wins."""
    final = path.final_state
    values = final.to_array()
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)

    if path.min_resilience < BURNOUT_MIN_RESILIENCE:
        return BURNOUT_RISK
    if final.V > 0.75 and final.R > 0.6:
        return HEALTH_FIRST
    if variance < 0.04 and mean > 0.5:
        return BALANCED
    if (final.Wl + final.We) / 2 > 0.65:
        return WEALTH_DOMINANT
    if (final.I + final.S) / 2 > 0.65:
        return GROWTH_FOCUSED
    return BALANCED


# ============================================================================
# RESULTS
# ============================================================================

@dataclass
class SimulationStatistics:
    mean_final_magnitude: float
    std_final_magnitude: float
    mean_risk: float
    success_probability: float
    burnout_probability: float
    wealthy_probability: float
    millionaire_probability: float
    mean_final_net_worth: float
    median_final_net_worth: float
    confidence_intervals: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    category_distribution: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["confidence_intervals"] = {k: list(v) for k, v in self.confidence_intervals.items()}
        return data


@dataclass
class SimulationResult:
    paths: List[SimulationPath]
    mean_path: List[TimestampedState]
    high_probability_path: SimulationPath
    best_outcome_path: SimulationPath
    worst_outcome_path: SimulationPath
    most_likely_path: SimulationPath
    statistics: SimulationStatistics
    milestone_probabilities: Dict[str, float]
    config: Optional[SimulationConfig] = None

    @property
    def canonical_paths(self) -> List[SimulationPath]:
        return [
            self.high_probability_path,
            self.best_outcome_path,
            self.worst_outcome_path,
            self.most_likely_path,
        ]


# ============================================================================
# REDUCTIONS
# ============================================================================

def wilson_ci(successes: int, n: int, z: float = 1.96) -> Tuple[float, float]:
    """Wilson score confidence interval for a proportion."""
    if n == 0:
        return (0.0, 0.0)

    p = successes / n
    denominator = 1 + z ** 2 / n
    center = (p + z ** 2 / (2 * n)) / denominator
    spread = z * (p * (1 - p) / n + z ** 2 / (4 * n ** 2)) ** 0.5 / denominator

    return (max(0.0, center - spread), min(1.0, center + spread))


def compute_statistics(paths: Sequence[SimulationPath]) -> SimulationStatistics:
    n = len(paths)
    if n == 0:
        raise ValueError("cannot compute statistics over zero paths")

    magnitudes = np.array([p.final_magnitude for p in paths])
    risks = np.array([p.risk_score for p in paths])
    net_worths = [p.final_net_worth for p in paths]

    success = sum(1 for p in paths if p.final_magnitude > SUCCESS_MAGNITUDE)
    burnout = sum(1 for p in paths if p.min_resilience < BURNOUT_MIN_RESILIENCE)
    # Normalized scale, not USD: see millionaire for the currency view
    wealthy = sum(
        1 for p in paths if (p.final_state.Wl + p.final_state.We) / 2 > WEALTHY_NORMALIZED
    )
    millionaire = sum(1 for nw in net_worths if nw >= MILLIONAIRE_NET_WORTH)

    categories = Counter(categorize_path(p) for p in paths)

    return SimulationStatistics(
        mean_final_magnitude=float(magnitudes.mean()),
        std_final_magnitude=float(magnitudes.std()),
        mean_risk=float(risks.mean()),
        success_probability=success / n,
        burnout_probability=burnout / n,
        wealthy_probability=wealthy / n,
        millionaire_probability=millionaire / n,
        mean_final_net_worth=float(np.mean(net_worths)),
        median_final_net_worth=float(sorted(net_worths)[n // 2]),
        confidence_intervals={
            "success": wilson_ci(success, n),
            "burnout": wilson_ci(burnout, n),
            "wealthy": wilson_ci(wealthy, n),
            "millionaire": wilson_ci(millionaire, n),
        },
        category_distribution={k: categories[k] / n for k in PATH_CATEGORY_INFO if categories[k]},
    )


def milestone_probabilities(paths: Sequence[SimulationPath]) -> Dict[str, float]:
    """Fraction of paths that reached each milestone key at least once."""
    counts: Counter = Counter()
    for path in paths:
        counts.update({m.key for m in path.milestones})
    return {key: count / len(paths) for key, count in counts.items()}


def assign_probabilities(paths: Sequence[SimulationPath], risk_tolerance: float) -> None:
    """Weight paths by ``exp(-risk * (1 - tolerance) * 5)`` and normalize to sum to 1."""
    weights = [
        math.exp(-p.risk_score * (1.0 - risk_tolerance) * RISK_WEIGHT_SCALE) for p in paths
    ]
    total = sum(weights)
    for path, weight in zip(paths, weights):
        path.assign_probability(weight / total)


def calculate_mean_path(paths: Sequence[SimulationPath]) -> List[TimestampedState]:
    """Componentwise mean state at every tick index."""
    if not paths:
        return []
    lengths = {len(p.states) for p in paths}
    if len(lengths) != 1:
        raise ValueError(f"mean path needs equal-length paths, got lengths {sorted(lengths)}")

    dims = np.array([[s.to_array() for s in p.states] for p in paths]).mean(axis=0)
    vitality = np.array([
        [[s.vitality[c] for c in VITALITY_COMPONENTS] for s in p.states] for p in paths
    ]).mean(axis=0)

    mean_path = []
    for t, (row, vit) in enumerate(zip(dims, vitality)):
        values = dict(zip(DIMENSIONS, (float(x) for x in row)))
        mean_path.append(TimestampedState(
            timestamp=t,
            vitality=dict(zip(VITALITY_COMPONENTS, (float(x) for x in vit))),
            **values,
        ))
    return mean_path


def find_canonical_paths(
    paths: Sequence[SimulationPath], mean_final_magnitude: float
) -> Tuple[SimulationPath, SimulationPath, SimulationPath, SimulationPath]:
    """(highest probability, best outcome, worst outcome, closest to mean); ties keep the first."""
    high_probability = max(paths, key=lambda p: p.probability)
    best = max(paths, key=lambda p: p.final_magnitude)
    worst = min(paths, key=lambda p: p.final_magnitude)
    most_likely = min(paths, key=lambda p: abs(p.final_magnitude - mean_final_magnitude))
    return high_probability, best, worst, most_likely


# ============================================================================
# EXECUTION
# ============================================================================

def _simulate_chunk(
    simulator: PathSimulator, start: int, stop: int, deadline: Optional[float]
) -> List[SimulationPath]:
    """Worker entry point; module-level so the process pool can pickle it."""
    return [simulator.simulate(i, deadline=deadline) for i in range(start, stop)]


class MonteCarloAggregator:
    """Run an ensemble of paths and reduce it to a ``SimulationResult``."""

    def __init__(
        self,
        initial_state: StateVector,
        schedule: Iterable[ScheduleEntry],
        config: SimulationConfig,
        catalog: Optional[Mapping[str, Archetype]] = None,
    ):
        self.config = config.require_valid()
        self.simulator = PathSimulator(initial_state, schedule, config, catalog)

        unknown = self.simulator.resolver.unknown_ids()
        if unknown:
            logger.info("Schedule references unknown archetypes (ignored): %s", ", ".join(unknown))

    def run(
        self,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> SimulationResult:
        """
        Simulate ``num_paths`` paths and aggregate them.

        Args:
            cancel_event: Checked between paths (polled while waiting on chunks in parallel mode)
            progress_callback: Called with (completed, total) as paths finish

        Raises:
            SimulationCancelled: If cancelled or ``timeout_seconds`` elapses
        """
        cfg = self.config
        deadline = time.time() + cfg.timeout_seconds if cfg.timeout_seconds else None
        started = time.time()

        logger.info(
            "Running %d paths over %d-%d (workers=%d, seed=%d, deterministic=%s)",
            cfg.num_paths, cfg.start_year, cfg.end_year, cfg.workers, cfg.seed, cfg.deterministic,
        )

        if cfg.workers > 1:
            paths = self._run_parallel(deadline, cancel_event, progress_callback)
        else:
            paths = self._run_sequential(deadline, cancel_event, progress_callback)

        result = self.aggregate(paths)
        logger.info(
            "Completed %d paths in %.2fs (success=%.1f%%, burnout=%.1f%%)",
            len(paths), time.time() - started,
            result.statistics.success_probability * 100,
            result.statistics.burnout_probability * 100,
        )
        return result

    def _check_cancelled(self, deadline: Optional[float], cancel_event, completed: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Simulation cancelled after %d paths", completed)
            raise SimulationCancelled("simulation cancelled", completed=completed)
        if deadline is not None and time.time() > deadline:
            logger.warning("Simulation timed out after %d paths", completed)
            raise SimulationCancelled(
                f"simulation exceeded {self.config.timeout_seconds}s", completed=completed)

    def _run_sequential(self, deadline, cancel_event, progress_callback) -> List[SimulationPath]:
        total = self.config.num_paths
        paths = []
        for i in range(total):
            self._check_cancelled(deadline, cancel_event, len(paths))
            try:
                paths.append(self.simulator.simulate(i, deadline=deadline))
            except SimulationCancelled as e:
                e.completed = len(paths)
                logger.warning("Simulation timed out after %d paths", len(paths))
                raise

            if (i + 1) % PROGRESS_INTERVAL == 0:
                logger.info("Completed %d / %d paths", i + 1, total)
            if progress_callback is not None:
                progress_callback(i + 1, total)
        return paths

    def _run_parallel(self, deadline, cancel_event, progress_callback) -> List[SimulationPath]:
        cfg = self.config
        chunks = [
            (start, min(start + cfg.chunk_size, cfg.num_paths))
            for start in range(0, cfg.num_paths, cfg.chunk_size)
        ]
        results: Dict[int, List[SimulationPath]] = {}
        completed = 0

        executor = ProcessPoolExecutor(max_workers=cfg.workers)
        futures = {
            executor.submit(_simulate_chunk, self.simulator, start, stop, deadline): start
            for start, stop in chunks
        }
        pending = set(futures)
        finished = False
        try:
            while pending:
                self._check_cancelled(deadline, cancel_event, completed)
                done, pending = wait(pending, timeout=CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    chunk_paths = future.result()
                    results[futures[future]] = chunk_paths
                    completed += len(chunk_paths)

                    logger.debug("Chunk at %d finished (%d / %d paths)",
                                 futures[future], completed, cfg.num_paths)
                    if progress_callback is not None:
                        progress_callback(completed, cfg.num_paths)
            finished = True
        except SimulationCancelled as e:
            e.completed = completed
            raise
        finally:
            # On cancellation queued chunks are dropped and running ones finish in the background
            executor.shutdown(wait=finished, cancel_futures=not finished)

        return [path for start in sorted(results) for path in results[start]]

    def aggregate(self, paths: List[SimulationPath]) -> SimulationResult:
        """Statistics, probabilities, canonical paths and mean path for ``paths``."""
        if not paths:
            raise ValueError("cannot aggregate zero paths")

        statistics = compute_statistics(paths)
        probabilities = milestone_probabilities(paths)
        assign_probabilities(paths, self.config.risk_tolerance)
        high, best, worst, most_likely = find_canonical_paths(paths, statistics.mean_final_magnitude)

        return SimulationResult(
            paths=paths,
            mean_path=calculate_mean_path(paths),
            high_probability_path=high,
            best_outcome_path=best,
            worst_outcome_path=worst,
            most_likely_path=most_likely,
            statistics=statistics,
            milestone_probabilities=probabilities,
            config=self.config,
        )


def run_simulation_with_schedule(
    initial_state: StateVector,
    schedule: Iterable[ScheduleEntry],
    config: SimulationConfig,
    cancel_event: Optional[threading.Event] = None,
) -> SimulationResult:
    return MonteCarloAggregator(initial_state, schedule, config).run(cancel_event=cancel_event)


def run_simulation(
    initial_state: StateVector,
    archetype_ids: Sequence[str],
    time_horizon: int,
    num_paths: int = 1000,
    effort_multiplier: float = 1.0,
    risk_tolerance: float = 0.5,
    start_year: Optional[int] = None,
) -> SimulationResult:
    """Every archetype active for the whole horizon, starting this year."""
    config = SimulationConfig(
        num_paths=num_paths,
        effort_multiplier=effort_multiplier,
        risk_tolerance=risk_tolerance,
    )
    if start_year is not None:
        config.start_year = start_year
    config.end_year = config.start_year + time_horizon
    schedule = full_horizon_schedule(archetype_ids, config.start_year, config.end_year)
    return run_simulation_with_schedule(initial_state, schedule, config)
