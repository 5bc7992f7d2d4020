"""
Single-path simulation.

A path starts from the initial state in ``start_year`` and advances one year
per tick until ``end_year``. Each tick:

    1. resolve the archetypes active that year
    2. no archetype: isotropic drift, one draw applied to every dimension
       otherwise: one random factor per archetype, deltas scaled by effort,
       applied as a sequential fold
    3. accumulate risk and track the lowest resilience seen
    4. record net worth and wealth tier for the year
    5. detect milestones between the previous and current state

Ticks are strictly sequential inside a path; paths share nothing but the
immutable simulator, so any number of them may run concurrently.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from .archetypes import Archetype, apply_stacked_archetypes
from .config import SimulationConfig
from .milestones import Milestone, MilestoneDetector, PathMilestones
from .rng import make_path_rng
from .schedule import ScheduleEntry, ScheduleResolver
from .state import DIMENSIONS, StateVector, get_wealth_tier

# Half-width of the yearly drift applied when no archetype is active
DRIFT_SPREAD = 0.01


class SimulationCancelled(RuntimeError):
    """Raised when a run is cancelled or exceeds its timeout."""

    def __init__(self, message: str, completed: int = 0):
        super().__init__(message)
        self.completed = completed


@dataclass(frozen=True)
class TimestampedState:
    """Snapshot of a state at tick ``timestamp`` (0 = start year)."""
    timestamp: int
    Wl: float
    We: float
    V: float
    I: float
    S: float
    R: float
    vitality: Optional[Mapping[str, float]] = None

    @classmethod
    def from_state(cls, timestamp: int, state: StateVector) -> "TimestampedState":
        return cls(timestamp=timestamp, vitality=state.vitality, **state.to_dict())

    def to_array(self) -> List[float]:
        return [getattr(self, dim) for dim in DIMENSIONS]

    def to_state(self) -> StateVector:
        values = {dim: getattr(self, dim) for dim in DIMENSIONS}
        return StateVector(vitality=self.vitality, **values)

    def magnitude(self) -> float:
        return self.to_state().magnitude()

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"timestamp": self.timestamp}
        data.update({dim: getattr(self, dim) for dim in DIMENSIONS})
        if self.vitality is not None:
            data["vitality"] = dict(self.vitality)
        return data


@dataclass
class SimulationPath:
    """One complete trajectory. Only ``probability`` changes after creation."""
    id: str
    states: List[TimestampedState]
    risk_score: float
    final_magnitude: float
    min_resilience: float
    active_archetypes_by_year: Dict[int, List[str]] = field(default_factory=dict)
    milestones: List[Milestone] = field(default_factory=list)
    net_worth_by_year: Dict[int, float] = field(default_factory=dict)
    wealth_tier_by_year: Dict[int, str] = field(default_factory=dict)
    probability: float = 1.0
    _probability_assigned: bool = field(default=False, repr=False, compare=False)

    @property
    def final_state(self) -> TimestampedState:
        return self.states[-1]

    @property
    def final_net_worth(self) -> float:
        if not self.net_worth_by_year:
            return 0.0
        return self.net_worth_by_year[max(self.net_worth_by_year)]

    def assign_probability(self, probability: float) -> None:
        if self._probability_assigned:
            raise RuntimeError(f"probability of path {self.id} already assigned")
        self.probability = probability
        self._probability_assigned = True


class PathSimulator:
    """
    Advances trajectories from one initial state under one schedule.

    The simulator is immutable once built and holds no per-path state; each
    call to ``simulate`` owns its generator and milestone record.
    """

    def __init__(
        self,
        initial_state: StateVector,
        schedule: Iterable[ScheduleEntry],
        config: SimulationConfig,
        catalog: Optional[Mapping[str, Archetype]] = None,
    ):
        self.initial_state = initial_state.clone()
        self.config = config.require_valid()
        self.resolver = ScheduleResolver(schedule, catalog)
        self.detector = MilestoneDetector()
        self._plan = self._build_plan()

    def _build_plan(self) -> Dict[int, List[Archetype]]:
        """Effort-scaled archetypes per simulated year."""
        cfg = self.config
        plan = {}
        for year in range(cfg.start_year + 1, cfg.end_year + 1):
            archetypes = []
            for archetype in self.resolver.resolve(year):
                if cfg.apply_multipliers:
                    archetype = archetype.with_multiplied_variance()
                archetypes.append(archetype.with_effort(cfg.effort_multiplier))
            plan[year] = archetypes
        return plan

    def active_archetypes(self, year: int) -> List[Archetype]:
        return list(self._plan.get(year, []))

    def simulate(self, index: int = 0, rng=None, deadline: Optional[float] = None) -> SimulationPath:
        """
        Simulate path ``index``.

        Args:
            index: Path number; determines the id and, without ``rng``, the seed
            rng: Generator with a ``random()`` method (default: per-path generator)
            deadline: ``time.time()`` value after which the path is abandoned

        Raises:
            SimulationCancelled: If ``deadline`` passes between ticks
        """
        cfg = self.config
        if rng is None:
            rng = make_path_rng(index, cfg.seed, cfg.deterministic)

        path_id = f"path-{index}"
        current = self.initial_state.clone()
        states = [TimestampedState.from_state(0, current)]
        reached = PathMilestones(path_id)
        active_by_year: Dict[int, List[str]] = {}
        net_worth_by_year: Dict[int, float] = {}
        tier_by_year: Dict[int, str] = {}

        total_risk = 0.0
        min_resilience = current.R
        prev_net_worth = current.get_net_worth()
        net_worth_by_year[cfg.start_year] = prev_net_worth
        tier_by_year[cfg.start_year] = get_wealth_tier(prev_net_worth)

        for t in range(1, cfg.time_horizon + 1):
            if deadline is not None and time.time() > deadline:
                raise SimulationCancelled(f"{path_id} timed out at tick {t}")

            year = cfg.start_year + t
            previous = current
            archetypes = self._plan[year]
            active_by_year[year] = [a.id for a in archetypes]

            if not archetypes:
                drift = (rng.random() - 0.5) * 2 * DRIFT_SPREAD
                current = current.apply_delta({dim: drift for dim in DIMENSIONS})
            else:
                factors = [rng.random() for _ in archetypes]
                current = apply_stacked_archetypes(current, archetypes, factors)

            total_risk += current.risk_score()
            min_resilience = min(min_resilience, current.R)
            states.append(TimestampedState.from_state(t, current))

            net_worth = current.get_net_worth()
            net_worth_by_year[year] = net_worth
            tier_by_year[year] = get_wealth_tier(net_worth)

            self.detector.detect(previous, current, prev_net_worth, net_worth, year, reached)
            prev_net_worth = net_worth

        return SimulationPath(
            id=path_id,
            states=states,
            risk_score=total_risk / cfg.time_horizon,
            final_magnitude=current.magnitude(),
            min_resilience=min_resilience,
            active_archetypes_by_year=active_by_year,
            milestones=reached.milestones,
            net_worth_by_year=net_worth_by_year,
            wealth_tier_by_year=tier_by_year,
        )
