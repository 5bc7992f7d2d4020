"""
Tests for simulator.py - single path evolution.
"""

import pytest

from manifold.archetypes import ARCHETYPES, Archetype, apply_archetype
from manifold.config import ConfigError, SimulationConfig
from manifold.rng import LCGRandom, make_path_rng, path_seed
from manifold.schedule import ScheduleEntry
from manifold.simulator import PathSimulator, SimulationCancelled
from manifold.state import DIMENSIONS, StateVector, get_wealth_tier


@pytest.fixture
def initial():
    return StateVector(Wl=0.3, We=0.3, I=0.5, S=0.5, R=0.6,
                       vitality={"body": 0.6, "mind": 0.6, "appearance": 0.6})


@pytest.fixture
def config():
    return SimulationConfig(start_year=2025, end_year=2035, num_paths=20)


@pytest.fixture
def schedule():
    return [
        ScheduleEntry("founder", 2026, 2030),
        ScheduleEntry("fitnessEnthusiast", 2028, 2032),
    ]


def snapshot(path):
    return [(s.to_array(), dict(s.vitality)) for s in path.states]


class TestLCGRandom:

    def test_recurrence(self):
        """One step of the LCG recurrence."""
        rng = LCGRandom(1)
        expected = (1 * 1103515245 + 12345) % (2 ** 31 - 1)
        assert rng.random() == expected / (2 ** 31 - 1)

    def test_draws_in_unit_interval(self):
        """Draws fall in [0, 1) and rarely repeat."""
        rng = LCGRandom(12345)
        draws = [rng.random() for _ in range(1000)]
        assert all(0.0 <= d < 1.0 for d in draws)
        assert len(set(draws)) > 990

    def test_path_seeds(self):
        """Path seeds are spaced by 12345 from the base seed."""
        assert path_seed(0) == 0
        assert path_seed(3) == 3 * 12345
        assert path_seed(3, base_seed=7) == 7 + 3 * 12345

    def test_non_deterministic_rng(self):
        """Entropy-seeded generators still draw in [0, 1)."""
        rng = make_path_rng(0, deterministic=False)
        assert 0.0 <= rng.random() < 1.0


class TestPathShape:
    """Structure of a simulated path."""

    def test_lengths_and_keys(self, initial, schedule, config):
        """A path has one state per year plus the start."""
        path = PathSimulator(initial, schedule, config).simulate(0)
        assert [s.timestamp for s in path.states] == list(range(11))
        assert sorted(path.net_worth_by_year) == list(range(2025, 2036))
        assert sorted(path.wealth_tier_by_year) == list(range(2025, 2036))
        assert sorted(path.active_archetypes_by_year) == list(range(2026, 2036))
        assert path.probability == 1.0
        assert path.id == "path-0"

    def test_initial_state_recorded(self, initial, schedule, config):
        """The first state is the initial state."""
        path = PathSimulator(initial, schedule, config).simulate(0)
        assert path.states[0].to_array() == initial.to_array()

    def test_active_archetypes_by_year(self, initial, schedule, config):
        """Active archetype ids are recorded per year."""
        path = PathSimulator(initial, schedule, config).simulate(0)
        assert path.active_archetypes_by_year[2026] == ["founder"]
        assert path.active_archetypes_by_year[2029] == ["founder", "fitnessEnthusiast"]
        assert path.active_archetypes_by_year[2033] == []

    def test_net_worth_and_tier_match_states(self, initial, schedule, config):
        """Net worth and tier series follow the states."""
        path = PathSimulator(initial, schedule, config).simulate(4)
        for t, s in enumerate(path.states):
            year = 2025 + t
            nw = s.to_state().get_net_worth()
            assert path.net_worth_by_year[year] == pytest.approx(nw)
            assert path.wealth_tier_by_year[year] == get_wealth_tier(path.net_worth_by_year[year])
        assert path.final_net_worth == path.net_worth_by_year[2035]

    def test_risk_and_resilience_tracking(self, initial, schedule, config):
        """Risk is averaged over ticks; min resilience includes the start."""
        path = PathSimulator(initial, schedule, config).simulate(2)
        ticks = path.states[1:]
        assert path.risk_score == pytest.approx(sum(s.We * (1 - s.R) for s in ticks) / len(ticks))
        assert path.min_resilience == min(s.R for s in path.states)
        assert path.final_magnitude == pytest.approx(path.states[-1].magnitude())

    def test_vitality_invariant_holds_every_tick(self, initial, schedule, config):
        """V stays the triple mean on every tick."""
        path = PathSimulator(initial, schedule, config).simulate(1)
        for s in path.states:
            assert s.V == pytest.approx(sum(s.vitality.values()) / 3)

    def test_probability_assigned_once(self, initial, schedule, config):
        """Probability can be assigned only once."""
        path = PathSimulator(initial, schedule, config).simulate(0)
        path.assign_probability(0.25)
        assert path.probability == 0.25
        with pytest.raises(RuntimeError):
            path.assign_probability(0.5)


class TestDeterminism:

    def test_same_index_same_path(self, initial, schedule, config):
        """Same index reproduces the same path."""
        sim = PathSimulator(initial, schedule, config)
        a, b = sim.simulate(3), sim.simulate(3)
        assert snapshot(a) == snapshot(b)
        assert [m.key for m in a.milestones] == [m.key for m in b.milestones]

    def test_different_index_differs(self, initial, schedule, config):
        """Different indices give different paths."""
        sim = PathSimulator(initial, schedule, config)
        assert snapshot(sim.simulate(1)) != snapshot(sim.simulate(2))

    def test_explicit_rng_matches_index_seed(self, initial, schedule, config):
        """Passing the index generator explicitly changes nothing."""
        sim = PathSimulator(initial, schedule, config)
        assert snapshot(sim.simulate(3, rng=LCGRandom(path_seed(3)))) == snapshot(sim.simulate(3))

    def test_base_seed_changes_paths(self, initial, schedule):
        """The config seed changes the path."""
        a = PathSimulator(initial, schedule, SimulationConfig(2025, 2035, seed=0)).simulate(1)
        b = PathSimulator(initial, schedule, SimulationConfig(2025, 2035, seed=99)).simulate(1)
        assert snapshot(a) != snapshot(b)


class TestTickUpdate:
    """Each tick: drift without archetypes, stacked archetypes otherwise."""

    def test_first_tick_matches_archetype_application(self, initial, config):
        """The first tick applies the archetype with the first draw."""
        sim = PathSimulator(initial, [ScheduleEntry("grinder", 2026, 2035)], config)
        path = sim.simulate(5)
        factor = LCGRandom(path_seed(5)).random()
        expected = apply_archetype(initial, ARCHETYPES["grinder"], factor)
        assert path.states[1].to_array() == pytest.approx(expected.to_array())

    def test_drift_is_isotropic_and_small(self, config):
        """Without archetypes every dimension drifts by the same small amount."""
        start = StateVector(vitality={"body": 0.5, "mind": 0.5, "appearance": 0.5})
        path = PathSimulator(start, [], config).simulate(0)
        shifts = [v - 0.5 for v in path.states[1].to_array()]
        assert shifts == pytest.approx([shifts[0]] * len(DIMENSIONS))
        assert abs(shifts[0]) <= 0.01

    def test_unknown_archetype_behaves_like_drift(self, initial, config):
        """Unknown ids leave the path on drift."""
        drifting = PathSimulator(initial, [], config).simulate(6)
        stale = PathSimulator(initial, [ScheduleEntry("no-such-archetype", 2026, 2035)], config).simulate(6)
        assert snapshot(drifting) == snapshot(stale)

    def test_effort_scales_deltas(self, initial):
        """Effort multiplies the per-tick delta."""
        catalog = {"steady": Archetype(id="steady", name="Steady", deltas={"I": 0.01})}
        schedule = [ScheduleEntry("steady", 2026, 2030)]
        for effort, expected in ((0.0, 0.5), (1.0, 0.55), (2.0, 0.6)):
            cfg = SimulationConfig(start_year=2025, end_year=2030, effort_multiplier=effort)
            path = PathSimulator(initial, schedule, cfg, catalog=catalog).simulate(0)
            assert path.states[-1].I == pytest.approx(expected)

    def test_multipliers_opt_in(self, initial):
        """Multipliers only scale variance when enabled."""
        catalog = {"calm": Archetype(id="calm", name="Calm", multipliers={"S": 0.0}, variance={"S": 1.0})}
        schedule = [ScheduleEntry("calm", 2026, 2030)]
        off = SimulationConfig(start_year=2025, end_year=2030)
        on = SimulationConfig(start_year=2025, end_year=2030, apply_multipliers=True)
        noisy = PathSimulator(initial, schedule, off, catalog=catalog).simulate(0)
        quiet = PathSimulator(initial, schedule, on, catalog=catalog).simulate(0)
        assert noisy.states[-1].S != pytest.approx(0.5)
        assert quiet.states[-1].S == pytest.approx(0.5)


class TestMilestonesOnPaths:

    def test_net_worth_milestones_never_repeat(self):
        """No milestone key appears twice on a path."""
        start = StateVector(Wl=0.1, We=0.0, R=0.5, vitality={"body": 0.5, "mind": 0.5, "appearance": 0.5})
        cfg = SimulationConfig(start_year=2025, end_year=2045)
        sim = PathSimulator(start, [], cfg)
        for i in range(50):
            keys = [m.key for m in sim.simulate(i).milestones]
            assert len(keys) == len(set(keys))


class TestValidation:

    def test_end_before_start_rejected(self, initial):
        """A zero-length horizon is rejected."""
        with pytest.raises(ConfigError) as exc:
            PathSimulator(initial, [], SimulationConfig(start_year=2030, end_year=2030))
        assert any("end_year" in e for e in exc.value.errors)

    def test_deadline_in_past_cancels(self, initial, schedule, config):
        """A passed deadline cancels the path."""
        sim = PathSimulator(initial, schedule, config)
        with pytest.raises(SimulationCancelled):
            sim.simulate(0, deadline=0.0)
