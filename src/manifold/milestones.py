"""
One-shot milestone detection.

Net-worth milestones fire when net worth crosses a fixed threshold from
below; life-event milestones fire on resilience / vitality transitions and
on a destitution check. Every milestone fires at most once per path: the
record of what already fired lives on a ``PathMilestones`` owned by the path
being simulated and is discarded with it.

The thresholds and icons below are read by external legend logic; do not
change them without bumping the package version.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .state import StateVector

NET_WORTH = "net-worth"
LIFE_EVENT = "life-event"


@dataclass(frozen=True)
class NetWorthThreshold:
    threshold: int
    label: str
    icon: str
    description: str


NET_WORTH_MILESTONES: Tuple[NetWorthThreshold, ...] = (
    NetWorthThreshold(0, "Break Even", "scale", "No longer in debt"),
    NetWorthThreshold(100_000, "$100K", "money-stack", "First $100K saved"),
    NetWorthThreshold(500_000, "$500K", "house", "House money"),
    NetWorthThreshold(1_000_000, "$1M", "mansion", "Millionaire status"),
    NetWorthThreshold(10_000_000, "$10M", "yacht", "Wealthy elite"),
)

LIFE_EVENT_MILESTONES: Dict[str, Dict[str, str]] = {
    "burnout": {"label": "Burnout", "icon": "storm-cloud", "description": "Mental health crisis"},
    "recovery": {"label": "Recovery", "icon": "sunrise", "description": "Bouncing back"},
    "peak-health": {"label": "Peak Health", "icon": "running", "description": "Physical prime"},
    "homeless": {"label": "Homeless", "icon": "cardboard-box", "description": "Lost everything"},
}

BURNOUT_RESILIENCE = 0.25
RECOVERY_FROM_RESILIENCE = 0.4
RECOVERY_TO_RESILIENCE = 0.6
PEAK_HEALTH_VITALITY = 0.85
HOMELESS_NET_WORTH = -50_000
HOMELESS_RESILIENCE = 0.3


@dataclass(frozen=True)
class Milestone:
    id: str
    type: str
    year: int
    label: str
    icon: str
    description: str
    net_worth: Optional[int] = None

    @property
    def key(self) -> str:
        """Identity across paths: ``nw-<threshold>`` or ``le-<icon>``."""
        if self.type == NET_WORTH:
            return f"nw-{self.net_worth}"
        return f"le-{self.icon}"

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "type": self.type,
            "year": self.year,
            "label": self.label,
            "icon": self.icon,
            "description": self.description,
        }
        if self.net_worth is not None:
            data["net_worth"] = self.net_worth
        return data


@dataclass
class PathMilestones:
    """Milestones reached by one in-progress path, plus what has already fired."""
    path_id: str
    milestones: List[Milestone] = field(default_factory=list)
    fired_thresholds: Set[int] = field(default_factory=set)
    fired_events: Set[str] = field(default_factory=set)

    def _next_id(self) -> str:
        return f"{self.path_id}-ms{len(self.milestones)}"

    def record_threshold(self, spec: NetWorthThreshold, year: int) -> Milestone:
        milestone = Milestone(
            id=self._next_id(),
            type=NET_WORTH,
            year=year,
            label=spec.label,
            icon=spec.icon,
            description=spec.description,
            net_worth=spec.threshold,
        )
        self.milestones.append(milestone)
        self.fired_thresholds.add(spec.threshold)
        return milestone

    def record_event(self, name: str, year: int) -> Milestone:
        info = LIFE_EVENT_MILESTONES[name]
        milestone = Milestone(id=self._next_id(), type=LIFE_EVENT, year=year, **info)
        self.milestones.append(milestone)
        self.fired_events.add(name)
        return milestone


class MilestoneDetector:
    """Stateless checks; all per-path memory is passed in as ``PathMilestones``."""

    @staticmethod
    def check_net_worth(
        prev_net_worth: float,
        current_net_worth: float,
        year: int,
        reached: PathMilestones,
    ) -> List[Milestone]:
        fired = []
        for spec in NET_WORTH_MILESTONES:
            if spec.threshold in reached.fired_thresholds:
                continue
            if prev_net_worth < spec.threshold <= current_net_worth:
                fired.append(reached.record_threshold(spec, year))
        return fired

    @staticmethod
    def check_life_events(
        prev: StateVector,
        current: StateVector,
        year: int,
        reached: PathMilestones,
        current_net_worth: Optional[float] = None,
    ) -> List[Milestone]:
        if current_net_worth is None:
            current_net_worth = current.get_net_worth()

        triggers = (
            ("burnout", prev.R >= BURNOUT_RESILIENCE and current.R < BURNOUT_RESILIENCE),
            ("recovery", prev.R < RECOVERY_FROM_RESILIENCE and current.R >= RECOVERY_TO_RESILIENCE),
            ("peak-health", prev.V < PEAK_HEALTH_VITALITY and current.V >= PEAK_HEALTH_VITALITY),
            # Pure state check, no transition required
            ("homeless", current_net_worth < HOMELESS_NET_WORTH and current.R < HOMELESS_RESILIENCE),
        )

        fired = []
        for name, triggered in triggers:
            if triggered and name not in reached.fired_events:
                fired.append(reached.record_event(name, year))
        return fired

    def detect(
        self,
        prev: StateVector,
        current: StateVector,
        prev_net_worth: float,
        current_net_worth: float,
        year: int,
        reached: PathMilestones,
    ) -> List[Milestone]:
        """Net-worth milestones first, then life events, in catalog order."""
        fired = self.check_net_worth(prev_net_worth, current_net_worth, year, reached)
        fired.extend(self.check_life_events(prev, current, year, reached, current_net_worth))
        return fired
