"""
Banister Fitness-Fatigue Model Optimizers

Command-line interface for the two genetic algorithm programs:

- estimate: fit the nine model parameters to observed performance
- optimize: search for the daily training stress plan that maximizes
  predicted final performance

Usage:
    python main.py estimate [OPTION...] BOUNDS_PATH DATA_PATH TRIALS_PATH OUTPUT_PATH
    python main.py optimize [OPTION...] PARAMS_PATH OUTPUT_PATH

The report flags -i, -w/-p and -c take an optional attached PATTERN
(``-iPATTERN`` or ``--output-integration=PATTERN``); ``%04zd`` style
conversions in it are replaced by the iteration number.
"""

import argparse
import sys
from typing import Dict, List, Optional, Tuple

import parameter_estimation
import training_optimization
from bt_config import ParameterEstimationConfig, TrainingOptimizationConfig
from bt_constants import EstimationDefaults, OptimizationDefaults, OutputPatterns
from bt_exceptions import BanisterError
from bt_logging import setup_logging, get_logger
from bt_components.constraints import available_constraints

ESTIMATE_REPORT_FLAGS = {
    '-i': ('--output-integration', OutputPatterns.INTEGRATION),
    '-w': ('--output-population', OutputPatterns.POPULATION),
    '-c': ('--output-convergence', OutputPatterns.CONVERGENCE),
}

OPTIMIZE_REPORT_FLAGS = {
    '-i': ('--output-integration', OutputPatterns.INTEGRATION),
    '-p': ('--output-population', OutputPatterns.POPULATION),
    '-c': ('--output-convergence', OutputPatterns.CONVERGENCE),
}


def _escape(text: str) -> str:
    return text.replace("%", "%%")


def expand_report_flags(argv: List[str], report_flags: Dict[str, Tuple[str, str]]) -> List[str]:
    """
    Give bare report flags their default pattern.

    A report flag only takes a value when it is attached, so ``-i DATA`` keeps
    DATA as a positional argument.
    """
    long_defaults = {long_flag: default for long_flag, default in report_flags.values()}
    expanded = []
    for position, token in enumerate(argv):
        if token == '--':
            expanded.extend(argv[position:])
            break
        if token in report_flags:
            long_flag, default = report_flags[token]
            expanded.append(f"{long_flag}={default}")
        elif token in long_defaults:
            expanded.append(f"{token}={long_defaults[token]}")
        else:
            expanded.append(token)
    return expanded


def _add_common_options(parser: argparse.ArgumentParser, population_flag: str):
    ga = parser.add_argument_group('Genetic algorithm')
    ga.add_argument('-n', '--num-iterations', dest='num_iterations', type=int, metavar='COUNT',
                    help="Number of iterations of the genetic algorithm.")
    ga.add_argument('-g', '--max-generations', dest='max_generations', type=int, metavar='COUNT',
                    help="Maximum number of generations.")
    ga.add_argument(population_flag, '--population-size', dest='population_size', type=int, metavar='COUNT',
                    help="Number of individuals in each generation.")
    ga.add_argument('-k', '--cull-keep', dest='cull_keep', type=int, metavar='COUNT',
                    help="Number of individuals from the previous generation to keep when culling.")
    return ga


def _add_runtime_options(parser: argparse.ArgumentParser, population_report_flag: str):
    extra = parser.add_argument_group('Extra output')
    extra.add_argument('-i', '--output-integration', dest='output_integration', metavar='PATTERN',
                       help="Output the integration of the best design from each iteration "
                            f"(default pattern: {_escape(OutputPatterns.INTEGRATION)}).")
    extra.add_argument(population_report_flag, '--output-population', dest='output_population', metavar='PATTERN',
                       help="Output the final population from each iteration "
                            f"(default pattern: {_escape(OutputPatterns.POPULATION)}).")
    extra.add_argument('-c', '--output-convergence', dest='output_convergence', metavar='PATTERN',
                       help="Output the fitness quartiles of each generation from each iteration "
                            f"(default pattern: {_escape(OutputPatterns.CONVERGENCE)}).")
    extra.add_argument('-d', '--debug', action='store_true', help="Show debug output.")

    runtime = parser.add_argument_group('Runtime')
    runtime.add_argument('--max-threads', dest='max_threads', type=int, metavar='COUNT',
                         help="Maximum number of threads used for fitness evaluation.")
    runtime.add_argument('--progress', dest='show_progress', action='store_true',
                         help="Show a progress bar over generations.")
    runtime.add_argument('--log-dir', dest='log_dir', metavar='DIR',
                         help="Also write a timestamped log file into DIR.")


def build_estimate_parser(parser: Optional[argparse.ArgumentParser] = None) -> argparse.ArgumentParser:
    """Argument parser for parameter estimation."""
    if parser is None:
        parser = argparse.ArgumentParser(
            prog='bt-estimate',
            description='Estimate fitness-fatigue model parameters with a genetic algorithm.')
    parser.add_argument('bounds_path', metavar='BOUNDS_PATH',
                        help="Path to file with bounds and stdevs for model parameters.")
    parser.add_argument('data_path', metavar='DATA_PATH',
                        help="Path to file with training test data.")
    parser.add_argument('trials_path', metavar='TRIALS_PATH',
                        help="Path to file with the indices of the performance trials. If a '%%' "
                             "char is in the string, it is a pattern whose input is the iteration number.")
    parser.add_argument('output_path', metavar='OUTPUT_PATH',
                        help="Path to output file for writing optimal designs.")

    ga = _add_common_options(parser, '-p')
    ga.add_argument('-m', '--mutate-probability', dest='mutate_probability', type=float, metavar='FLOAT',
                    help=f"Probability of mutating each design variable (default: {EstimationDefaults.MUTATE_PROBABILITY}).")
    ga.add_argument('-a', '--blx-alpha', dest='blx_alpha', type=float, metavar='FLOAT',
                    help=f"Alpha to use for BLX-alpha crossover (default: {EstimationDefaults.BLX_ALPHA}).")
    _add_runtime_options(parser, '-w')
    parser.set_defaults(program='estimate')
    return parser


def build_optimize_parser(parser: Optional[argparse.ArgumentParser] = None) -> argparse.ArgumentParser:
    """Argument parser for training optimization."""
    if parser is None:
        parser = argparse.ArgumentParser(
            prog='bt-optimize',
            description='Optimize a daily training stress plan with a genetic algorithm.')
    parser.add_argument('params_path', metavar='PARAMS_PATH',
                        help="Path to file with the values of the model parameters.")
    parser.add_argument('output_path', metavar='OUTPUT_PATH',
                        help="Path to output file for writing optimal designs.")

    objective = parser.add_argument_group('Objective function')
    objective.add_argument('-f', '--num-days', dest='num_days', type=int, metavar='COUNT',
                           help=f"Number of training days (default: {OptimizationDefaults.NUM_DAYS}).")
    objective.add_argument('-y', '--max-daily-stress', dest='max_daily_stress', type=float, metavar='FLOAT',
                           help=f"Maximum stress per day (default: {OptimizationDefaults.MAX_DAILY_STRESS}).")
    objective.add_argument('-r', '--init-penalty-factor', dest='init_penalty_factor', type=float, metavar='FLOAT',
                           help=f"Initial penalty factor (default: {OptimizationDefaults.INIT_PENALTY_FACTOR}).")
    objective.add_argument('-t', '--penalty-factor-rate', dest='penalty_factor_rate', type=float, metavar='FLOAT',
                           help="Rate of exponential increase in penalty factor for each generation.")
    objective.add_argument('-o', '--max-roughness-factor', dest='max_roughness_factor', type=float, metavar='FLOAT',
                           help="Maximum roughness penalty factor.")
    objective.add_argument('--constraint', dest='constraint', choices=available_constraints(),
                           help=f"Constraint penalty strategy (default: {OptimizationDefaults.CONSTRAINT}).")

    ga = _add_common_options(parser, '-z')
    ga.add_argument('-a', '--init-blx-alpha', dest='init_blx_alpha', type=float, metavar='FLOAT',
                    help="Initial alpha to use for BLX-alpha crossover.")
    ga.add_argument('-s', '--blx-alpha-change-rate', dest='blx_alpha_change_rate', type=float, metavar='FLOAT',
                    help="Rate of exponential change in alpha for each generation.")
    ga.add_argument('-m', '--init-mutate-stdev', dest='init_mutate_stdev', type=float, metavar='FLOAT',
                    help="Initial standard deviation to use for mutation of stress values.")
    ga.add_argument('-l', '--init-mutate-probability', dest='init_mutate_probability', type=float, metavar='FLOAT',
                    help="Initial probability of mutating any particular stress value.")
    ga.add_argument('-w', '--mutate-change-rate', dest='mutate_change_rate', type=float, metavar='FLOAT',
                    help="Rate of exponential change in mutation parameters for each generation.")
    _add_runtime_options(parser, '-p')
    parser.set_defaults(program='optimize')
    return parser


def build_parser() -> argparse.ArgumentParser:
    """Top-level parser with one subcommand per program."""
    parser = argparse.ArgumentParser(
        description='Banister fitness-fatigue model parameter estimation and training optimization.')
    subparsers = parser.add_subparsers(dest='program', metavar='PROGRAM')
    subparsers.required = True
    build_estimate_parser(subparsers.add_parser(
        'estimate', help='Estimate model parameters from training data.'))
    build_optimize_parser(subparsers.add_parser(
        'optimize', help='Optimize a daily training stress plan.'))
    return parser


def run_program(args: argparse.Namespace) -> int:
    """
    Configure logging, validate the configuration and run one program.

    Returns:
        Process exit status
    """
    setup_logging(level="DEBUG" if args.debug else "INFO",
                  log_to_file=args.log_dir is not None,
                  output_dir=args.log_dir or "logs")
    logger = get_logger()

    try:
        if args.program == 'estimate':
            config = ParameterEstimationConfig.from_args(args)
            logger.log_config_summary(config)
            results = parameter_estimation.run(config)
        else:
            config = TrainingOptimizationConfig.from_args(args)
            logger.log_config_summary(config)
            results = training_optimization.run(config)
    except BanisterError as e:
        logger.critical("Run failed", exception=e)
        return 1

    best = max(results, key=lambda result: result.fitness)
    logger.info("Run complete", iterations=len(results), best_iteration=best.iteration,
                best_fitness=f"{best.fitness:f}", output=config.output_path)
    return 0


def _parse(parser: argparse.ArgumentParser, argv: Optional[List[str]],
           report_flags: Dict[str, Tuple[str, str]]) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    return parser.parse_args(expand_report_flags(argv, report_flags))


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point with ``estimate`` and ``optimize`` subcommands."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == 'estimate':
        flags = ESTIMATE_REPORT_FLAGS
    elif argv and argv[0] == 'optimize':
        flags = OPTIMIZE_REPORT_FLAGS
    else:
        flags = {}
    return run_program(_parse(build_parser(), argv, flags))


def estimate_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for parameter estimation."""
    return run_program(_parse(build_estimate_parser(), argv, ESTIMATE_REPORT_FLAGS))


def optimize_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for training optimization."""
    return run_program(_parse(build_optimize_parser(), argv, OPTIMIZE_REPORT_FLAGS))


if __name__ == "__main__":
    sys.exit(main())
