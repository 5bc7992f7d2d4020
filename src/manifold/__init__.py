"""
Manifold - Monte Carlo life-path simulator.

Evolves many independent life trajectories under a schedule of archetype
pressures and reduces them to statistics and a representative sample.

Modules:
    state - Six-dimensional life state, currency conversion, label tables
    archetypes - Archetype catalog and modifier application
    schedule - Time-windowed archetype schedule resolution
    rng - Per-path seeded generators
    milestones - One-shot net-worth and life-event milestones
    simulator - Single-path simulation
    monte_carlo - Ensemble runs, statistics, probabilities, canonical paths
    sampler - Representative path sampling
    scenario - Scenario file loading and validation
    report - JSON and markdown result reports
    config - Simulation config and validation
    cli - Command-line interface entrypoints
"""

__version__ = "1.0.0"

from .archetypes import ARCHETYPES, Archetype, apply_archetype, apply_stacked_archetypes
from .config import ConfigError, SimulationConfig, validate_config
from .milestones import Milestone, MilestoneDetector
from .monte_carlo import (
    MonteCarloAggregator,
    SimulationResult,
    categorize_path,
    run_simulation,
    run_simulation_with_schedule,
)
from .sampler import sample_representative_paths
from .schedule import ScheduleEntry, ScheduleResolver
from .simulator import PathSimulator, SimulationCancelled, SimulationPath
from .state import PRESET_STATES, StateValidationError, StateVector, preset_state
