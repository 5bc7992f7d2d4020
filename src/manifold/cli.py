"""
Command-line interface for the life-path simulator.

Provides subcommands for running a scenario, validating scenario files,
listing the archetype catalog and describing preset states.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .archetypes import archetype_summary, get_all_archetypes
from .config import ConfigError
from .logging_config import DEFAULT_LOG_FILE, configure_logging
from .monte_carlo import MonteCarloAggregator
from .report import render_markdown_summary, write_json_report
from .sampler import sample_representative_paths
from .scenario import ScenarioError, load_scenario
from .simulator import SimulationCancelled
from .state import PRESET_STATES, format_usd, preset_state


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def cmd_run(args: argparse.Namespace) -> int:
    """Run a scenario and write the JSON report."""
    try:
        scenario = load_scenario(args.scenario)
        config = scenario.config
        if args.seed is not None:
            config.seed = args.seed
        if args.paths is not None:
            config.num_paths = args.paths
        if args.workers is not None:
            config.workers = args.workers
        if args.timeout is not None:
            config.timeout_seconds = args.timeout

        result = MonteCarloAggregator(scenario.initial_state, scenario.schedule, config).run()

        num_samples = args.samples if args.samples is not None else scenario.num_samples
        paths = result.paths if args.all_paths else sample_representative_paths(result, num_samples)

        output = write_json_report(result, Path(args.output), paths)
        print(f"Results saved to {output} ({len(paths)} of {len(result.paths)} paths)")

        if args.markdown:
            md_path = Path(args.markdown)
            md_path.parent.mkdir(parents=True, exist_ok=True)
            md_path.write_text(render_markdown_summary(result, scenario.name or "Life Path Simulation"),
                               encoding="utf-8")
            print(f"Summary saved to {md_path}")

        stats = result.statistics
        print(f"\n  success:   {stats.success_probability:.1%}")
        print(f"  burnout:   {stats.burnout_probability:.1%}")
        print(f"  wealthy:   {stats.wealthy_probability:.1%}")
        print(f"  median net worth: {format_usd(stats.median_final_net_worth)}")
        return 0

    except (ScenarioError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SimulationCancelled as e:
        print(f"Error: {e} ({e.completed} paths completed)", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a scenario file without running it."""
    try:
        scenario = load_scenario(args.scenario)
    except ScenarioError as e:
        print(f"INVALID: {args.scenario}", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print(f"OK: {args.scenario} ({len(scenario.schedule)} schedule entries, "
          f"{scenario.config.num_paths} paths)")
    return 0


def cmd_archetypes(args: argparse.Namespace) -> int:
    """List the archetype catalog."""
    archetypes = get_all_archetypes()
    if args.json:
        print(json.dumps([archetype_summary(a) for a in archetypes], indent=2))
        return 0

    print(f"{'ID':<20} {'Name':<20} Deltas")
    print("-" * 70)
    for a in archetypes:
        deltas = ", ".join(f"{dim}{value:+g}" for dim, value in a.deltas.items())
        print(f"{a.id:<20} {a.name:<20} {deltas}")
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Show a preset state in real units."""
    state = preset_state(args.preset)
    real = state.to_real_units()
    print(f"Preset: {args.preset}")
    print(f"  liquid wealth: {format_usd(real['liquid_wealth'])}")
    print(f"  equity:        {format_usd(real['equity'])}")
    print(f"  net worth:     {format_usd(real['net_worth'])} ({real['wealth_tier']})")
    for key in ("body", "mind", "appearance", "intelligence", "status", "resilience"):
        print(f"  {key + ':':<14} {real[key]:.2f} ({real[key + '_label']})")
    print(f"  magnitude:     {state.magnitude():.3f}")
    print(f"  risk score:    {state.risk_score():.3f}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="manifold",
        description="Monte Carlo life-path simulator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose (debug) logging"
    )
    parser.add_argument("--log-file", default=str(DEFAULT_LOG_FILE), help="Append logs to this file")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Run a scenario")
    run_parser.add_argument("scenario", help="Scenario file (YAML or JSON)")
    run_parser.add_argument("--output", "-o", default="outputs/simulation_results.json",
                            help="Output file (JSON)")
    run_parser.add_argument("--markdown", help="Also write a markdown summary here")
    run_parser.add_argument("--samples", type=_positive_int, help="Representative paths to keep")
    run_parser.add_argument("--all-paths", action="store_true", help="Keep every path in the output")
    run_parser.add_argument("--paths", type=int, help="Override number of paths")
    run_parser.add_argument("--workers", type=int, help="Worker processes")
    run_parser.add_argument("--seed", type=int, help="Base seed for reproducibility")
    run_parser.add_argument("--timeout", type=float, help="Abort after this many seconds")
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser("validate", help="Validate a scenario file")
    validate_parser.add_argument("scenario", help="Scenario file (YAML or JSON)")
    validate_parser.set_defaults(func=cmd_validate)

    archetypes_parser = subparsers.add_parser("archetypes", help="List archetypes")
    archetypes_parser.add_argument("--json", action="store_true", help="Print as JSON")
    archetypes_parser.set_defaults(func=cmd_archetypes)

    describe_parser = subparsers.add_parser("describe", help="Describe a preset state")
    describe_parser.add_argument("--preset", required=True, choices=sorted(PRESET_STATES))
    describe_parser.set_defaults(func=cmd_describe)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(
        logging.DEBUG if args.verbose else logging.INFO,
        log_file=None if args.no_log_file else args.log_file,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
