"""
Tests for scenario.py - scenario file loading and validation.
"""

import copy
import json
import math

import pytest
import yaml

from manifold.monte_carlo import MonteCarloAggregator
from manifold.scenario import ScenarioError, load_scenario, scenario_from_dict, validate_scenario
from manifold.state import PRESET_STATES, liquid_usd_to_normalized


@pytest.fixture
def scenario_data():
    return {
        "name": "Founder years",
        "initial_state": {"preset": "founder"},
        "schedule": [
            {"archetype": "founder", "start_year": 2026, "end_year": 2030},
            {"archetype": "fitnessEnthusiast", "start_year": 2028, "end_year": 2035, "id": "gym"},
        ],
        "simulation": {"start_year": 2025, "end_year": 2035, "num_paths": 200, "risk_tolerance": 0.4},
        "sampling": {"num_samples": 25},
    }


class TestValidateScenario:
    """Structured validation: every problem is reported."""

    def test_valid(self, scenario_data):
        """A complete scenario has no errors."""
        assert validate_scenario(scenario_data) == []

    def test_missing_sections(self):
        """Missing required sections are reported."""
        errors = validate_scenario({})
        assert any("initial_state" in e for e in errors)
        assert any("simulation" in e for e in errors)

    def test_exactly_one_initial_state_form(self, scenario_data):
        """Only one initial state form may be given."""
        scenario_data["initial_state"]["normalized"] = {"Wl": 0.5}
        assert validate_scenario(scenario_data)

    def test_out_of_range_unit_value(self, scenario_data):
        """Normalized values must be within [0, 1]."""
        scenario_data["initial_state"] = {"normalized": {"Wl": 1.5}}
        errors = validate_scenario(scenario_data)
        assert errors and errors[0].startswith("initial_state.normalized.Wl")

    def test_unknown_field_rejected(self, scenario_data):
        """Unknown fields are rejected."""
        scenario_data["simulation"]["paths"] = 10
        assert validate_scenario(scenario_data)

    def test_non_finite_numbers(self, scenario_data):
        """NaN values are reported with their location."""
        scenario_data["initial_state"] = {"normalized": {"Wl": math.nan}}
        assert validate_scenario(scenario_data) == ["initial_state.normalized.Wl: must be a finite number"]

    def test_unknown_preset(self, scenario_data):
        """Unknown presets are named in the error."""
        scenario_data["initial_state"]["preset"] = "astronaut"
        errors = validate_scenario(scenario_data)
        assert len(errors) == 1
        assert "astronaut" in errors[0]

    def test_inverted_window_and_bad_horizon_both_reported(self, scenario_data):
        """Schedule and config problems are reported together."""
        scenario_data["schedule"][0]["start_year"] = 2031
        scenario_data["simulation"]["end_year"] = 2025
        errors = validate_scenario(scenario_data)
        assert any(e.startswith("schedule.0") for e in errors)
        assert any(e.startswith("simulation:") and "end_year" in e for e in errors)

    def test_unknown_archetype_is_allowed(self, scenario_data):
        """Unknown archetype ids are not a validation error."""
        scenario_data["schedule"].append({"archetype": "astronaut", "start_year": 2026, "end_year": 2027})
        assert validate_scenario(scenario_data) == []


class TestScenarioFromDict:

    def test_preset(self, scenario_data):
        """A preset scenario builds state, schedule and config."""
        scenario = scenario_from_dict(scenario_data)
        assert scenario.name == "Founder years"
        preset = PRESET_STATES["founder"]
        for dim in ("Wl", "We", "I", "S", "R"):
            assert getattr(scenario.initial_state, dim) == preset[dim]
        assert scenario.initial_state.vitality == preset["vitality"]
        assert [e.archetype_id for e in scenario.schedule] == ["founder", "fitnessEnthusiast"]
        assert scenario.schedule[1].id == "gym"
        assert scenario.config.num_paths == 200
        assert scenario.config.risk_tolerance == 0.4
        assert scenario.num_samples == 25

    def test_normalized(self, scenario_data):
        """Normalized dimensions with a triple are used as given."""
        scenario_data["initial_state"] = {
            "normalized": {"Wl": 0.2, "R": 0.9, "vitality": {"body": 0.3, "mind": 0.6, "appearance": 0.9}}
        }
        state = scenario_from_dict(scenario_data).initial_state
        assert state.Wl == 0.2
        assert state.R == 0.9
        assert state.V == pytest.approx(0.6)

    def test_real_units(self, scenario_data):
        """Real units are converted to normalized values."""
        scenario_data["initial_state"] = {"real_units": {
            "liquid_wealth": -20_000,
            "equity": 0,
            "vitality": {"body": 0.65, "mind": 0.75, "appearance": 0.7},
            "intelligence": 0.8,
            "status": 0.4,
            "resilience": 0.9,
        }}
        state = scenario_from_dict(scenario_data).initial_state
        assert state.Wl == pytest.approx(liquid_usd_to_normalized(-20_000))
        assert state.We == 0.0
        assert state.I == 0.8

    def test_defaults(self, scenario_data):
        """Optional sections fall back to defaults."""
        del scenario_data["sampling"]
        del scenario_data["schedule"]
        scenario = scenario_from_dict(scenario_data)
        assert scenario.num_samples == 50
        assert scenario.schedule == []
        assert scenario.config.seed == 0

    def test_errors_carry_source(self, scenario_data):
        """Errors name the file they came from."""
        bad = copy.deepcopy(scenario_data)
        bad["simulation"]["num_paths"] = 0
        with pytest.raises(ScenarioError) as exc:
            scenario_from_dict(bad, source="bad.yaml")
        assert exc.value.source == "bad.yaml"
        assert "bad.yaml" in str(exc.value)
        assert exc.value.errors


class TestScenarioReproducibility:
    """A scenario run twice gives identical paths."""

    @staticmethod
    def _run(data):
        scenario = scenario_from_dict(copy.deepcopy(data))
        result = MonteCarloAggregator(scenario.initial_state, scenario.schedule, scenario.config).run()
        return scenario.initial_state, [
            [(s.to_array(), dict(s.vitality)) for s in p.states] for p in result.paths
        ]

    def test_bare_v_runs_are_identical(self, scenario_data):
        """Normalized state without a vitality triple loads and runs identically."""
        scenario_data["initial_state"] = {"normalized": {"Wl": 0.3, "V": 0.97, "R": 0.6}}
        scenario_data["simulation"]["num_paths"] = 5
        runs = [self._run(scenario_data) for _ in range(5)]
        first_state, first_paths = runs[0]
        assert first_state.V == pytest.approx(0.97, abs=1e-12)
        for state, paths in runs[1:]:
            assert state == first_state
            assert paths == first_paths

    def test_triple_follows_seed(self, scenario_data):
        """The synthesized triple is drawn from the run seed."""
        scenario_data["initial_state"] = {"normalized": {"V": 0.5}}
        other = copy.deepcopy(scenario_data)
        other["simulation"]["seed"] = 11
        a = scenario_from_dict(scenario_data).initial_state
        b = scenario_from_dict(other).initial_state
        assert a.vitality != b.vitality
        assert a.V == pytest.approx(b.V, abs=1e-12)


class TestLoadScenario:

    def test_yaml(self, tmp_path, scenario_data):
        """YAML scenarios load."""
        path = tmp_path / "scenario.yaml"
        path.write_text(yaml.safe_dump(scenario_data), encoding="utf-8")
        assert load_scenario(path).config.end_year == 2035

    def test_json(self, tmp_path, scenario_data):
        """JSON scenarios load."""
        path = tmp_path / "scenario.json"
        path.write_text(json.dumps(scenario_data), encoding="utf-8")
        assert len(load_scenario(str(path)).schedule) == 2

    def test_yaml_parse_error(self, tmp_path):
        """Malformed YAML becomes a ScenarioError."""
        path = tmp_path / "broken.yml"
        path.write_text("initial_state: [unclosed\n", encoding="utf-8")
        with pytest.raises(ScenarioError) as exc:
            load_scenario(path)
        assert "YAML parse error" in exc.value.errors[0]

    def test_json_parse_error(self, tmp_path):
        """Malformed JSON becomes a ScenarioError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ScenarioError):
            load_scenario(path)

    def test_nan_in_json_file(self, tmp_path, scenario_data):
        """NaN in a JSON file is rejected."""
        scenario_data["simulation"]["risk_tolerance"] = float("nan")
        path = tmp_path / "nan.json"
        path.write_text(json.dumps(scenario_data), encoding="utf-8")
        with pytest.raises(ScenarioError) as exc:
            load_scenario(path)
        assert exc.value.errors == ["simulation.risk_tolerance: must be a finite number"]
