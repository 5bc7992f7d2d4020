"""
Scenario files.

A scenario bundles everything one run needs: the initial state (a preset
name, normalized dimensions or real units), the archetype schedule, the
simulation config and the sampling target. Files may be YAML or JSON.

Example (YAML):

    initial_state:
      real_units:
        liquid_wealth: -20000
        equity: 2000000
        vitality: {body: 0.65, mind: 0.75, appearance: 0.7}
        intelligence: 0.8
        status: 0.4
        resilience: 0.9
    schedule:
      - {archetype: founder, start_year: 2026, end_year: 2030}
      - {archetype: fitnessEnthusiast, start_year: 2028, end_year: 2035}
    simulation:
      start_year: 2025
      end_year: 2035
      num_paths: 2000
      risk_tolerance: 0.4
    sampling:
      num_samples: 50
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from .config import SimulationConfig, validate_config
from .rng import LCGRandom
from .sampler import DEFAULT_NUM_SAMPLES
from .schedule import ScheduleEntry
from .state import PRESET_STATES, StateValidationError, StateVector, preset_state

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "scenario.schema.json"


class ScenarioError(ValueError):
    """Raised when a scenario is malformed. ``errors`` lists every problem."""

    def __init__(self, errors: List[str], source: Optional[str] = None):
        self.errors = list(errors)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Invalid scenario{where}: " + "; ".join(self.errors))


@dataclass
class Scenario:
    initial_state: StateVector
    schedule: List[ScheduleEntry]
    config: SimulationConfig
    num_samples: int = DEFAULT_NUM_SAMPLES
    name: str = ""
    description: str = ""


def load_schema(schema_path: Path = SCHEMA_PATH) -> Dict[str, Any]:
    with open(schema_path, "r", encoding="utf-8") as f:
        return json.load(f)


def _non_finite_paths(obj: Any, prefix: str = "") -> List[str]:
    """Dotted paths of every NaN / infinite number inside ``obj``."""
    found = []
    if isinstance(obj, dict):
        for key, value in obj.items():
            found.extend(_non_finite_paths(value, f"{prefix}.{key}" if prefix else str(key)))
    elif isinstance(obj, list):
        for i, value in enumerate(obj):
            found.extend(_non_finite_paths(value, f"{prefix}[{i}]"))
    elif isinstance(obj, float) and not math.isfinite(obj):
        found.append(prefix)
    return found


def validate_scenario(data: Any, schema: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Validate raw scenario data.

    Checks, in order:
    1. JSON Schema (structure, types, ranges)
    2. No NaN / infinite numbers anywhere
    3. Known preset name
    4. Each schedule window has start_year <= end_year
    5. Simulation config rules (see ``config.validate_config``)

    Returns:
        List of validation errors (empty if valid)
    """
    if schema is None:
        schema = load_schema()

    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        location = ".".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
    if errors:
        return errors

    for location in _non_finite_paths(data):
        errors.append(f"{location}: must be a finite number")
    if errors:
        return errors

    preset = data["initial_state"].get("preset")
    if preset is not None and preset not in PRESET_STATES:
        errors.append(
            f"initial_state.preset: unknown preset {preset!r} "
            f"(expected one of {', '.join(sorted(PRESET_STATES))})")

    for i, entry in enumerate(data.get("schedule", [])):
        if entry["start_year"] > entry["end_year"]:
            errors.append(
                f"schedule.{i}: start_year {entry['start_year']} is after end_year {entry['end_year']}")

    errors.extend(f"simulation: {e}" for e in validate_config(SimulationConfig(**data["simulation"])))
    return errors


def _build_initial_state(spec: Dict[str, Any], seed: int) -> StateVector:
    if "preset" in spec:
        return preset_state(spec["preset"])
    if "normalized" in spec:
        # A bare V gets its vitality triple from the run seed
        return StateVector.from_mapping(spec["normalized"], rng=LCGRandom(seed))
    return StateVector.from_real_units(**spec["real_units"])


def scenario_from_dict(data: Any, source: Optional[str] = None) -> Scenario:
    errors = validate_scenario(data)
    if errors:
        raise ScenarioError(errors, source)

    config = SimulationConfig(**data["simulation"])
    try:
        initial_state = _build_initial_state(data["initial_state"], config.seed)
    except StateValidationError as e:
        raise ScenarioError([f"initial_state: {e}"], source)

    schedule = [
        ScheduleEntry(
            archetype_id=entry["archetype"],
            start_year=entry["start_year"],
            end_year=entry["end_year"],
            id=entry.get("id"),
        )
        for entry in data.get("schedule", [])
    ]

    return Scenario(
        initial_state=initial_state,
        schedule=schedule,
        config=config,
        num_samples=data.get("sampling", {}).get("num_samples", DEFAULT_NUM_SAMPLES),
        name=data.get("name", ""),
        description=data.get("description", ""),
    )


def load_scenario(path: Union[str, Path]) -> Scenario:
    """Load and validate a YAML (``.yaml``/``.yml``) or JSON scenario file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ScenarioError([f"YAML parse error: {e}"], str(path))
        else:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ScenarioError([f"JSON parse error: {e}"], str(path))

    logger.debug("Loaded scenario from %s", path)
    return scenario_from_dict(data, source=str(path))
