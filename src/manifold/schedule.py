"""
Time-windowed archetype schedule.

A schedule is a list of ``ScheduleEntry`` windows (closed, inclusive years).
Overlapping and duplicate entries are legal and are never merged: each
occurrence resolves to its own archetype application, in schedule order.
Entries naming an archetype the catalog does not know contribute nothing.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set

from .archetypes import ARCHETYPES, Archetype

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleEntry:
    archetype_id: str
    start_year: int
    end_year: int
    id: Optional[str] = None

    def is_active(self, year: int) -> bool:
        return self.start_year <= year <= self.end_year


class ScheduleResolver:
    """Resolve the archetypes active in a given year."""

    def __init__(
        self,
        schedule: Iterable[ScheduleEntry],
        catalog: Optional[Mapping[str, Archetype]] = None,
    ):
        self.schedule: List[ScheduleEntry] = list(schedule)
        self.catalog: Dict[str, Archetype] = dict(ARCHETYPES if catalog is None else catalog)
        self._reported_unknown: Set[str] = set()

    def active_entries(self, year: int) -> List[ScheduleEntry]:
        return [entry for entry in self.schedule if entry.is_active(year)]

    def resolve(self, year: int) -> List[Archetype]:
        archetypes = []
        for entry in self.active_entries(year):
            archetype = self.catalog.get(entry.archetype_id)
            if archetype is None:
                if entry.archetype_id not in self._reported_unknown:
                    self._reported_unknown.add(entry.archetype_id)
                    logger.debug("Dropping unknown archetype id %r from schedule", entry.archetype_id)
                continue
            archetypes.append(archetype)
        return archetypes

    __call__ = resolve

    def unknown_ids(self) -> List[str]:
        """Archetype ids in the schedule that the catalog does not define."""
        seen: Dict[str, None] = {}
        for entry in self.schedule:
            if entry.archetype_id not in self.catalog:
                seen.setdefault(entry.archetype_id, None)
        return list(seen)


def full_horizon_schedule(archetype_ids: Iterable[str], start_year: int, end_year: int) -> List[ScheduleEntry]:
    """Every listed archetype active for the whole horizon."""
    return [
        ScheduleEntry(archetype_id=aid, start_year=start_year, end_year=end_year, id=f"legacy-{i}")
        for i, aid in enumerate(archetype_ids)
    ]
