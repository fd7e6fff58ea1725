# Command line driver for the ACP scheduler.
# Version: 1.0.0
# Loads an instance, runs the search and prints every improving schedule.

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import (
    LOG_LEVELS,
    OPERATOR_NAMES,
    SolverConfig,
    load_config_from_yaml,
    load_default_config,
)
from .data_loader import load_instance, load_schedule
from .errors import (
    ConfigurationError,
    InfeasibleScheduleError,
    LoadError,
    ModelError,
    SolverError,
    SolverTimeoutError,
    ValidationError,
)
from .output_generator import format_solution_line, save_all_outputs
from .scheduler import solve_acp


logger = logging.getLogger("acp_scheduler")

# Exit codes
EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_NO_SOLUTION = 2
EXIT_SOLVER_ERROR = 3
EXIT_OUTPUT_ERROR = 4

USAGE = "This program runs the ACP 2014 summer school competition"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="acp-scheduler", description=USAGE)
    parser.add_argument("--input", type=Path, required=True, help="ACP instance file")
    parser.add_argument("--lns_size", type=int, default=None,
                        help="number of periods relaxed per neighborhood (default 10)")
    parser.add_argument("--lns_limit", type=int, default=None,
                        help="conflict limit of each neighborhood search (default 30)")
    parser.add_argument("--seed", type=int, default=None, help="random seed (default 0)")
    parser.add_argument("--time_limit", type=float, default=None,
                        help="wall-clock limit in seconds for the whole search")
    parser.add_argument("--max_iterations", type=int, default=None,
                        help="maximum number of neighborhoods to try")
    parser.add_argument("--max_stall_iterations", type=int, default=None,
                        help="stop after this many neighborhoods without improvement")
    parser.add_argument("--operators", nargs="+", choices=OPERATOR_NAMES, default=None,
                        help="neighborhood operators, tried in round-robin order")
    parser.add_argument("--no_cost_filter", action="store_true",
                        help="send swap candidates to the solver instead of pricing them")
    parser.add_argument("--config", type=Path, default=None, help="YAML solver settings")
    parser.add_argument("--initial", type=Path, default=None,
                        help="warm-start schedule: one item index per period")
    parser.add_argument("--report", type=Path, default=None, help="write a text report here")
    parser.add_argument("--json", type=Path, default=None, help="write a JSON export here")
    parser.add_argument("--csv", type=Path, default=None,
                        help="write the best schedule as CSV here")
    parser.add_argument("--log_level", type=str.upper, choices=LOG_LEVELS, default=None)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SolverConfig:
    """Combine the YAML file (given or shipped) and command line overrides.

    Raises:
        ConfigurationError: If a value is out of range.
        FileLoadError: If the YAML file cannot be read.
    """
    config = load_config_from_yaml(args.config) if args.config else load_default_config()
    config = config.with_overrides(
        lns_size=args.lns_size,
        lns_limit=args.lns_limit,
        seed=args.seed,
        time_limit_seconds=args.time_limit,
        max_iterations=args.max_iterations,
        max_stall_iterations=args.max_stall_iterations,
        operators=args.operators,
        use_cost_filter=False if args.no_cost_filter else None,
        log_level=args.log_level,
    )
    return config.validate()


def main(argv: list[str] | None = None) -> int:
    """Run the solver from the command line.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level or "INFO"),
        format="%(message)s",
        stream=sys.stderr,
    )

    try:
        config = build_config(args)
        logging.getLogger().setLevel(getattr(logging, config.log_level.upper()))
        instance = load_instance(args.input)
        initial = (
            load_schedule(args.initial, instance.num_periods) if args.initial else None
        )
    except (LoadError, ConfigurationError, ValidationError) as e:
        logger.error("%s", e)
        return EXIT_INPUT_ERROR

    def print_solution(snapshot) -> None:
        print(format_solution_line(snapshot), flush=True)

    try:
        result = solve_acp(instance, config, on_solution=print_solution, initial_items=initial)
    except (ModelError, ValidationError) as e:
        logger.error("%s", e)
        return EXIT_INPUT_ERROR
    except (InfeasibleScheduleError, SolverTimeoutError) as e:
        logger.error("%s", e)
        return EXIT_NO_SOLUTION
    except SolverError as e:
        logger.error("%s", e)
        return EXIT_SOLVER_ERROR

    try:
        written = save_all_outputs(result, args.report, args.json, args.csv)
    except OSError as e:
        logger.error("Cannot write outputs: %s", e)
        return EXIT_OUTPUT_ERROR
    for path in written:
        logger.info("Saved %s", path)

    return EXIT_OK if result.is_feasible else EXIT_NO_SOLUTION


if __name__ == "__main__":
    sys.exit(main())
