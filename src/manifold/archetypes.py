"""
Archetype catalog and modifier application.

An archetype is an immutable bundle of per-dimension modifiers describing one
directional life pressure (founding a company, studying, training, ...).
Each tick an active archetype nudges every dimension by its deterministic
delta plus a stochastic shift scaled by its variance:

    next = current + delta + (random_factor - 0.5) * 2 * variance * 0.1

Several archetypes active in the same year are applied as a sequential fold:
archetype i sees the output of archetype i-1, so the result depends on order.
"""

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from .state import DIMENSIONS, StateVector

# Scale applied to (random_factor - 0.5) * 2 * variance
STOCHASTIC_SCALE = 0.1


def _frozen(mapping: Optional[Mapping[str, float]]) -> Mapping[str, float]:
    data = dict(mapping or {})
    unknown = set(data) - set(DIMENSIONS)
    if unknown:
        raise ValueError(f"unknown dimensions in archetype modifiers: {sorted(unknown)}")
    return MappingProxyType(data)


@dataclass(frozen=True)
class Archetype:
    """Named modifier bundle. Absent dimensions have no effect."""
    id: str
    name: str
    description: str = ""
    color: str = "#94a3b8"
    multipliers: Mapping[str, float] = field(default_factory=dict)
    deltas: Mapping[str, float] = field(default_factory=dict)
    variance: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "multipliers", _frozen(self.multipliers))
        object.__setattr__(self, "deltas", _frozen(self.deltas))
        object.__setattr__(self, "variance", _frozen(self.variance))

    def with_effort(self, effort_multiplier: float) -> "Archetype":
        """Copy with every delta scaled by ``effort_multiplier``."""
        scaled = {dim: value * effort_multiplier for dim, value in self.deltas.items()}
        return dataclasses.replace(self, deltas=scaled)

    def with_multiplied_variance(self) -> "Archetype":
        """Copy whose variance is scaled by the matching multiplier."""
        dims = set(self.variance) | set(self.multipliers)
        scaled = {
            dim: self.variance.get(dim, 0.0) * self.multipliers.get(dim, 1.0)
            for dim in dims
        }
        return dataclasses.replace(self, variance=scaled)

    def __reduce__(self):
        return (
            _rebuild_archetype,
            (self.id, self.name, self.description, self.color,
             dict(self.multipliers), dict(self.deltas), dict(self.variance)),
        )


def _rebuild_archetype(id, name, description, color, multipliers, deltas, variance):
    return Archetype(id, name, description, color, multipliers, deltas, variance)


def apply_archetype(state: StateVector, archetype: Archetype, random_factor: float) -> StateVector:
    """Apply one archetype for one tick and return the new state."""
    shift = (random_factor - 0.5) * 2
    delta = {
        dim: archetype.deltas.get(dim, 0.0) + shift * archetype.variance.get(dim, 0.0) * STOCHASTIC_SCALE
        for dim in DIMENSIONS
    }
    return state.apply_delta(delta)


def apply_stacked_archetypes(
    state: StateVector,
    archetypes: Sequence[Archetype],
    random_factors: Sequence[float],
) -> StateVector:
    """Fold ``archetypes`` over ``state`` in order, one random factor each."""
    if len(random_factors) != len(archetypes):
        raise ValueError(
            f"need one random factor per archetype ({len(archetypes)}), got {len(random_factors)}")
    current = state.clone()
    for archetype, factor in zip(archetypes, random_factors):
        current = apply_archetype(current, archetype, factor)
    return current


# ============================================================================
# BUILT-IN CATALOG
# ============================================================================

ARCHETYPES: Mapping[str, Archetype] = MappingProxyType({
    "founder": Archetype(
        id="founder",
        name="Founder",
        description="High risk, high reward. Equity potential explodes but resilience drains.",
        color="#f59e0b",
        multipliers={"We": 10.0, "Wl": 0.5},
        deltas={"We": 0.02, "R": -0.02, "S": 0.01, "I": 0.005},
        variance={"We": 2.0, "Wl": 1.5, "R": 0.8},
    ),
    "csStudent": Archetype(
        id="csStudent",
        name="CS Student",
        description="Steady skill growth with moderate stability.",
        color="#3b82f6",
        multipliers={"I": 1.5, "We": 1.2},
        deltas={"I": 0.015, "R": 0.01, "Wl": -0.005, "S": 0.005},
        variance={"I": 0.5, "We": 0.8, "R": 0.6},
    ),
    "fitnessEnthusiast": Archetype(
        id="fitnessEnthusiast",
        name="Fitness Enthusiast",
        description="Boosts vitality and resilience with consistent effort.",
        color="#10b981",
        multipliers={"V": 1.3, "R": 1.2},
        deltas={"V": 0.02, "R": 0.015, "S": 0.005},
        variance={"V": 0.4, "R": 0.5},
    ),
    "networker": Archetype(
        id="networker",
        name="Networker",
        description="Focuses on building social capital and status.",
        color="#8b5cf6",
        multipliers={"S": 2.0},
        deltas={"S": 0.025, "R": -0.005, "Wl": -0.005},
        variance={"S": 1.5},
    ),
    "grinder": Archetype(
        id="grinder",
        name="Grinder",
        description="Maximum effort, trades health for wealth and skills.",
        color="#ef4444",
        multipliers={"Wl": 1.5, "I": 1.3},
        deltas={"Wl": 0.02, "I": 0.01, "V": -0.015, "R": -0.025},
        variance={"Wl": 1.2, "R": 1.5},
    ),
})


def get_all_archetypes() -> List[Archetype]:
    return list(ARCHETYPES.values())


def get_archetype_by_id(archetype_id: str) -> Optional[Archetype]:
    return ARCHETYPES.get(archetype_id)


def archetype_summary(archetype: Archetype) -> Dict[str, object]:
    """Plain-dict view used by the CLI listing and reports."""
    return {
        "id": archetype.id,
        "name": archetype.name,
        "description": archetype.description,
        "color": archetype.color,
        "multipliers": dict(archetype.multipliers),
        "deltas": dict(archetype.deltas),
        "variance": dict(archetype.variance),
    }
