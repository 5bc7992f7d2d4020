"""
Configuration for the life-path Monte Carlo simulator.

Defines the run parameters consumed by the path simulator and the
aggregator, and the structured validation that rejects degenerate runs
before any path is simulated.
"""

import datetime
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class ConfigError(ValueError):
    """Raised when a simulation config fails validation.

    ``errors`` lists every problem found, not just the first.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid simulation config: " + "; ".join(self.errors))


def _current_year() -> int:
    return datetime.date.today().year


@dataclass
class SimulationConfig:
    """All tunable parameters for one Monte Carlo run."""

    # --- Horizon ---
    start_year: int = field(default_factory=_current_year)
    end_year: int = field(default_factory=lambda: _current_year() + 10)

    # --- Ensemble ---
    num_paths: int = 1000
    seed: int = 0  # path i uses seed + i * 12345
    deterministic: bool = True  # False: entropy-seeded generator per path

    # --- Behaviour ---
    effort_multiplier: float = 1.0  # scales every archetype delta
    risk_tolerance: float = 0.5  # 0 = risk averse weighting, 1 = risk ignored
    apply_multipliers: bool = False  # scale archetype variance by its multipliers

    # --- Execution ---
    workers: int = 1  # >1 runs paths in a process pool
    chunk_size: int = 250  # paths per worker task
    timeout_seconds: Optional[float] = None

    @property
    def time_horizon(self) -> int:
        return self.end_year - self.start_year

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def require_valid(self) -> "SimulationConfig":
        errors = validate_config(self)
        if errors:
            raise ConfigError(errors)
        return self


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_config(config: SimulationConfig) -> List[str]:
    """
    Validate a simulation config.

    Rules:
    1. start_year / end_year are integers and end_year > start_year
    2. num_paths is an integer >= 1
    3. risk_tolerance is finite and within [0, 1]
    4. effort_multiplier is finite
    5. workers and chunk_size are integers >= 1
    6. timeout_seconds, when set, is finite and > 0

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not _is_int(config.start_year):
        errors.append(f"start_year must be an integer, got {config.start_year!r}")
    if not _is_int(config.end_year):
        errors.append(f"end_year must be an integer, got {config.end_year!r}")
    if _is_int(config.start_year) and _is_int(config.end_year) and config.end_year <= config.start_year:
        errors.append(
            f"end_year ({config.end_year}) must be after start_year ({config.start_year})")

    if not _is_int(config.num_paths) or config.num_paths < 1:
        errors.append(f"num_paths must be a positive integer, got {config.num_paths!r}")

    if not _is_finite_number(config.risk_tolerance):
        errors.append(f"risk_tolerance must be a finite number, got {config.risk_tolerance!r}")
    elif not 0.0 <= config.risk_tolerance <= 1.0:
        errors.append(f"risk_tolerance must be within [0, 1], got {config.risk_tolerance}")

    if not _is_finite_number(config.effort_multiplier):
        errors.append(f"effort_multiplier must be a finite number, got {config.effort_multiplier!r}")

    if not _is_int(config.seed):
        errors.append(f"seed must be an integer, got {config.seed!r}")

    if not _is_int(config.workers) or config.workers < 1:
        errors.append(f"workers must be a positive integer, got {config.workers!r}")
    if not _is_int(config.chunk_size) or config.chunk_size < 1:
        errors.append(f"chunk_size must be a positive integer, got {config.chunk_size!r}")

    if config.timeout_seconds is not None:
        if not _is_finite_number(config.timeout_seconds) or config.timeout_seconds <= 0:
            errors.append(f"timeout_seconds must be a positive number, got {config.timeout_seconds!r}")

    return errors
