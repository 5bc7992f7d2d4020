"""
Life State Vector
=================

A bounded six-dimensional point describing one life condition at an instant.

Dimensions (all clamped to [0, 1]):
    - Wl: Liquid wealth      (maps to USD: -$100K .. $10M)
    - We: Equity / potential (maps to USD: $0 .. $50M)
    - V:  Vitality           (mean of a body / mind / appearance triple)
    - I:  Skill / intelligence
    - S:  Status / network
    - R:  Resilience

Wealth dimensions convert to real currency through nonlinear curves; the
remaining dimensions convert to ordered qualitative labels through threshold
tables that all share one lookup algorithm.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .rng import LCGRandom


class StateValidationError(ValueError):
    """Raised when a state is built from non-finite or malformed input."""
    pass


# ============================================================================
# DIMENSIONS
# ============================================================================

DIMENSIONS: Tuple[str, ...] = ("Wl", "We", "V", "I", "S", "R")
VITALITY_COMPONENTS: Tuple[str, ...] = ("body", "mind", "appearance")

DEFAULT_DIMENSION_VALUE = 0.5

# Half-width of the per-component noise used to synthesize a vitality triple
VITALITY_SYNTHESIS_SPREAD = 0.05
# Seed of the generator used for synthesis when the caller passes none
VITALITY_SYNTHESIS_SEED = 0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ============================================================================
# THRESHOLD TABLES
# ============================================================================

@dataclass(frozen=True)
class Bucket:
    """One row of an ordered lookup table: values below ``upper`` map to ``label``."""
    upper: float
    label: str


def classify(value: float, table: Sequence[Bucket]) -> str:
    """Return the label of the first bucket whose upper bound exceeds ``value``.

    The last bucket is open-ended: values at or beyond every bound fall into it.
    """
    for bucket in table:
        if value < bucket.upper:
            return bucket.label
    return table[-1].label


def _six_bucket_table(labels: Sequence[str]) -> Tuple[Bucket, ...]:
    bounds = (0.15, 0.30, 0.50, 0.70, 0.85, 1.01)
    return tuple(Bucket(upper, label) for upper, label in zip(bounds, labels))


INTELLIGENCE_LABELS = _six_bucket_table(
    ("Struggling", "Below Average", "Average", "Smart", "Brilliant", "Genius"))
STATUS_LABELS = _six_bucket_table(
    ("Unknown", "Obscure", "Known", "Respected", "Influential", "Elite"))
RESILIENCE_LABELS = _six_bucket_table(
    ("Broken", "Fragile", "Vulnerable", "Stable", "Resilient", "Unshakeable"))
BODY_LABELS = _six_bucket_table(
    ("Frail", "Weak", "Average", "Fit", "Athletic", "Peak"))
MIND_LABELS = _six_bucket_table(
    ("Burned Out", "Stressed", "Coping", "Calm", "Sharp", "Zen"))
APPEARANCE_LABELS: Tuple[Bucket, ...] = (
    Bucket(0.20, "Neglected"),
    Bucket(0.40, "Plain"),
    Bucket(0.60, "Presentable"),
    Bucket(0.80, "Attractive"),
    Bucket(1.01, "Stunning"),
)

DIMENSION_LABELS: Dict[str, Tuple[Bucket, ...]] = {
    "I": INTELLIGENCE_LABELS,
    "S": STATUS_LABELS,
    "R": RESILIENCE_LABELS,
}

VITALITY_LABELS: Dict[str, Tuple[Bucket, ...]] = {
    "body": BODY_LABELS,
    "mind": MIND_LABELS,
    "appearance": APPEARANCE_LABELS,
}


# ============================================================================
# WEALTH CONVERSION (normalized <-> USD)
# ============================================================================

LIQUID_MIN_USD = -100_000.0
LIQUID_MAX_USD = 10_000_000.0
EQUITY_MAX_USD = 50_000_000.0

# Normalized value at which liquid wealth crosses $0
LIQUID_ZERO_POINT = 0.1
LIQUID_EXPONENT = 2.5
EQUITY_EXPONENT = 3.0


def normalized_to_liquid_usd(normalized: float) -> float:
    """Convert normalized liquid wealth to USD.

    Linear from -$100K (0.0) to $0 (0.1), then ``a**2.5 * $10M`` with
    ``a = (x - 0.1) / 0.9``.
    """
    x = clamp(normalized)
    if x < LIQUID_ZERO_POINT:
        return LIQUID_MIN_USD + (x / LIQUID_ZERO_POINT) * abs(LIQUID_MIN_USD)
    adjusted = (x - LIQUID_ZERO_POINT) / (1.0 - LIQUID_ZERO_POINT)
    return adjusted ** LIQUID_EXPONENT * LIQUID_MAX_USD


def liquid_usd_to_normalized(usd: float) -> float:
    """Inverse of :func:`normalized_to_liquid_usd`."""
    if usd < 0:
        ratio = (usd - LIQUID_MIN_USD) / abs(LIQUID_MIN_USD)
        return max(0.0, ratio * LIQUID_ZERO_POINT)
    ratio = usd / LIQUID_MAX_USD
    return LIQUID_ZERO_POINT + ratio ** (1.0 / LIQUID_EXPONENT) * (1.0 - LIQUID_ZERO_POINT)


def normalized_to_equity_usd(normalized: float) -> float:
    return clamp(normalized) ** EQUITY_EXPONENT * EQUITY_MAX_USD


def equity_usd_to_normalized(usd: float) -> float:
    return (max(0.0, usd) / EQUITY_MAX_USD) ** (1.0 / EQUITY_EXPONENT)


def get_net_worth(wl: float, we: float) -> float:
    return normalized_to_liquid_usd(wl) + normalized_to_equity_usd(we)


def format_usd(amount: float, compact: bool = True) -> str:
    """Format a dollar amount, e.g. ``$150K`` / ``-$1.2M`` or ``$150,000``."""
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    if not compact:
        return f"{sign}${magnitude:,.0f}"
    if magnitude >= 1_000_000:
        return f"{sign}${magnitude / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"{sign}${magnitude / 1_000:.0f}K"
    return f"{sign}${magnitude:.0f}"


# ============================================================================
# WEALTH TIERS
# ============================================================================
# Boundary values are consumed by external legend logic; do not change them
# without bumping the package version.

@dataclass(frozen=True)
class WealthTier:
    tier: str
    max_net_worth: float
    label: str
    color: str


WEALTH_TIERS: Tuple[WealthTier, ...] = (
    WealthTier("debt", 0.0, "In Debt", "#ef4444"),
    WealthTier("struggling", 100_000.0, "Struggling", "#f97316"),
    WealthTier("comfortable", 1_000_000.0, "Comfortable", "#22c55e"),
    WealthTier("wealthy", 10_000_000.0, "Wealthy", "#3b82f6"),
    WealthTier("rich", math.inf, "Rich", "#fbbf24"),
)

_WEALTH_TIER_TABLE = tuple(Bucket(t.max_net_worth, t.tier) for t in WEALTH_TIERS)


def get_wealth_tier(net_worth: float) -> str:
    return classify(net_worth, _WEALTH_TIER_TABLE)


def get_wealth_tier_info(net_worth: float) -> WealthTier:
    tier = get_wealth_tier(net_worth)
    return next(t for t in WEALTH_TIERS if t.tier == tier)


# ============================================================================
# STATE VECTOR
# ============================================================================

def _require_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise StateValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise StateValidationError(f"{name} must be finite, got {value!r}")
    return value


class StateVector:
    """
    One life state. ``V`` is always the mean of the private vitality triple.

    Constructing with ``V`` but no ``vitality`` synthesizes a triple by
    perturbing ``V`` with small independent zero-mean noise per component.
    The noise is drawn from ``rng`` (anything with a ``random()`` method),
    or from a fresh fixed-seed ``LCGRandom`` when none is given, so the same
    inputs always give the same triple.
    """

    __slots__ = ("Wl", "We", "I", "S", "R", "_vitality")

    def __init__(
        self,
        Wl: float = DEFAULT_DIMENSION_VALUE,
        We: float = DEFAULT_DIMENSION_VALUE,
        V: float = DEFAULT_DIMENSION_VALUE,
        I: float = DEFAULT_DIMENSION_VALUE,
        S: float = DEFAULT_DIMENSION_VALUE,
        R: float = DEFAULT_DIMENSION_VALUE,
        vitality: Optional[Mapping[str, float]] = None,
        rng=None,
    ):
        self.Wl = clamp(_require_finite("Wl", Wl))
        self.We = clamp(_require_finite("We", We))
        self.I = clamp(_require_finite("I", I))
        self.S = clamp(_require_finite("S", S))
        self.R = clamp(_require_finite("R", R))

        if vitality is not None:
            missing = [c for c in VITALITY_COMPONENTS if c not in vitality]
            if missing:
                raise StateValidationError(f"vitality missing components: {missing}")
            self._vitality = [
                clamp(_require_finite(f"vitality.{c}", vitality[c])) for c in VITALITY_COMPONENTS
            ]
        else:
            self._vitality = self._synthesize_vitality(clamp(_require_finite("V", V)), rng)

    @staticmethod
    def _synthesize_vitality(v: float, rng=None) -> List[float]:
        if rng is None:
            rng = LCGRandom(VITALITY_SYNTHESIS_SEED)
        # Re-centred noise stays within 4/3 of the half-width, so this keeps
        # every component inside [0, 1] and the mean at v
        spread = min(VITALITY_SYNTHESIS_SPREAD, v / 2, (1.0 - v) / 2)
        noise = [(rng.random() - 0.5) * 2 * spread for _ in VITALITY_COMPONENTS]
        centre = sum(noise) / len(noise)
        return [clamp(v + n - centre) for n in noise]

    # ------------------------------------------------------------------
    # Vitality
    # ------------------------------------------------------------------

    @property
    def V(self) -> float:
        body, mind, appearance = self._vitality
        return (body + mind + appearance) / 3

    @property
    def vitality(self) -> Dict[str, float]:
        return dict(zip(VITALITY_COMPONENTS, self._vitality))

    def set_vitality(self, **components: float) -> None:
        """Update any of body / mind / appearance in place; ``V`` follows."""
        for name, value in components.items():
            if name not in VITALITY_COMPONENTS:
                raise StateValidationError(f"unknown vitality component: {name}")
            index = VITALITY_COMPONENTS.index(name)
            self._vitality[index] = clamp(_require_finite(f"vitality.{name}", value))

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, float]:
        return {dim: getattr(self, dim) for dim in DIMENSIONS}

    def to_extended_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = dict(self.to_dict())
        data["vitality"] = self.vitality
        return data

    def to_array(self) -> List[float]:
        return [getattr(self, dim) for dim in DIMENSIONS]

    @classmethod
    def from_array(cls, values: Sequence[float], vitality: Optional[Mapping[str, float]] = None,
                   rng=None) -> "StateVector":
        if len(values) != len(DIMENSIONS):
            raise StateValidationError(
                f"expected {len(DIMENSIONS)} values, got {len(values)}")
        return cls(*values, vitality=vitality, rng=rng)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object], rng=None) -> "StateVector":
        """Build from ``{"Wl": .., ..., "vitality": {...}}``; absent dimensions default to 0.5."""
        unknown = set(data) - set(DIMENSIONS) - {"vitality"}
        if unknown:
            raise StateValidationError(f"unknown state fields: {sorted(unknown)}")
        kwargs = {dim: data[dim] for dim in DIMENSIONS if dim in data}
        return cls(vitality=data.get("vitality"), rng=rng, **kwargs)

    def to_real_units(self) -> Dict[str, object]:
        """Currency values, wealth tier and qualitative labels for every dimension."""
        liquid = normalized_to_liquid_usd(self.Wl)
        equity = normalized_to_equity_usd(self.We)
        net_worth = liquid + equity
        real: Dict[str, object] = {
            "liquid_wealth": liquid,
            "equity": equity,
            "net_worth": net_worth,
            "wealth_tier": get_wealth_tier(net_worth),
        }
        for name, value in zip(VITALITY_COMPONENTS, self._vitality):
            real[name] = value
            real[f"{name}_label"] = classify(value, VITALITY_LABELS[name])
        for dim, key in (("I", "intelligence"), ("S", "status"), ("R", "resilience")):
            value = getattr(self, dim)
            real[key] = value
            real[f"{key}_label"] = classify(value, DIMENSION_LABELS[dim])
        return real

    @classmethod
    def from_real_units(
        cls,
        liquid_wealth: float,
        equity: float,
        vitality: Mapping[str, float],
        intelligence: float,
        status: float,
        resilience: float,
    ) -> "StateVector":
        return cls(
            Wl=liquid_usd_to_normalized(_require_finite("liquid_wealth", liquid_wealth)),
            We=equity_usd_to_normalized(_require_finite("equity", equity)),
            I=intelligence,
            S=status,
            R=resilience,
            vitality=vitality,
        )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def distance_to(self, other: "StateVector") -> float:
        return math.sqrt(sum((a - b) ** 2 for a, b in zip(self.to_array(), other.to_array())))

    @classmethod
    def lerp(cls, a: "StateVector", b: "StateVector", t: float) -> "StateVector":
        """Interpolate componentwise; ``t`` is clamped, ``t=0`` gives ``a`` and ``t=1`` gives ``b``."""
        t = clamp(t)

        def mix(x: float, y: float) -> float:
            return x * (1.0 - t) + y * t

        values = {dim: mix(getattr(a, dim), getattr(b, dim)) for dim in DIMENSIONS if dim != "V"}
        vitality = {c: mix(a.vitality[c], b.vitality[c]) for c in VITALITY_COMPONENTS}
        return cls(vitality=vitality, **values)

    def apply_delta(
        self,
        delta: Mapping[str, float],
        vitality: Optional[Mapping[str, float]] = None,
    ) -> "StateVector":
        """Return a new state shifted by ``delta``.

        A ``V`` entry shifts every vitality component unless ``vitality``
        names a component explicitly.
        """
        dv = delta.get("V", 0.0)
        vitality = vitality or {}
        shifted = {
            c: current + vitality.get(c, dv)
            for c, current in zip(VITALITY_COMPONENTS, self._vitality)
        }
        values = {dim: getattr(self, dim) + delta.get(dim, 0.0) for dim in DIMENSIONS if dim != "V"}
        return StateVector(vitality=shifted, **values)

    def clone(self) -> "StateVector":
        return StateVector(vitality=self.vitality, **{d: getattr(self, d) for d in ("Wl", "We", "I", "S", "R")})

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def magnitude(self) -> float:
        """Euclidean norm over the six dimensions scaled into [0, 1]."""
        return math.sqrt(sum(x * x for x in self.to_array())) / math.sqrt(len(DIMENSIONS))

    def risk_score(self) -> float:
        """Equity exposure weighted by missing resilience."""
        return self.We * (1.0 - self.R)

    def get_net_worth(self) -> float:
        return get_net_worth(self.Wl, self.We)

    def label(self, dim: str) -> str:
        return classify(getattr(self, dim), DIMENSION_LABELS[dim])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StateVector):
            return NotImplemented
        return self.to_array() == other.to_array() and self._vitality == other._vitality

    def __repr__(self) -> str:
        body = ", ".join(f"{dim}={getattr(self, dim):.3f}" for dim in DIMENSIONS)
        return f"StateVector({body})"

    def __getstate__(self):
        return (self.Wl, self.We, self.I, self.S, self.R, list(self._vitality))

    def __setstate__(self, state):
        self.Wl, self.We, self.I, self.S, self.R, self._vitality = state


# ============================================================================
# PRESET STATES
# ============================================================================

PRESET_STATES: Dict[str, Dict[str, object]] = {
    # Low cash, some equity, good health, high intelligence
    "founder": {"Wl": 0.08, "We": 0.35, "I": 0.8, "S": 0.4, "R": 0.9,
                "vitality": {"body": 0.65, "mind": 0.75, "appearance": 0.7}},
    # Student loans, no equity, peak health
    "student": {"Wl": 0.05, "We": 0.05, "I": 0.6, "S": 0.3, "R": 0.95,
                "vitality": {"body": 0.85, "mind": 0.7, "appearance": 0.85}},
    "professional": {"Wl": 0.35, "We": 0.25, "I": 0.7, "S": 0.5, "R": 0.6,
                     "vitality": {"body": 0.55, "mind": 0.55, "appearance": 0.7}},
    "homeless": {"Wl": 0.02, "We": 0.0, "I": 0.4, "S": 0.1, "R": 0.2,
                 "vitality": {"body": 0.2, "mind": 0.15, "appearance": 0.4}},
    "rich": {"Wl": 0.75, "We": 0.7, "I": 0.75, "S": 0.8, "R": 0.7,
             "vitality": {"body": 0.65, "mind": 0.7, "appearance": 0.75}},
}


def preset_state(name: str) -> StateVector:
    """Fresh copy of a named preset."""
    if name not in PRESET_STATES:
        raise KeyError(f"unknown preset state: {name!r}")
    return StateVector.from_mapping(PRESET_STATES[name])
