"""
Parameter Estimation

Fits the nine fitness-fatigue model parameters to observed performance with
a real-coded genetic algorithm. Each iteration is an independent GA run
seeded with its 1-based iteration number; the best design of every
iteration is written to the output file together with its mean absolute
residual at the trial points.
"""

import sys
import time
from dataclasses import dataclass
from typing import List, Optional
import numpy as np
from tqdm import tqdm
from bt_config import ParameterEstimationConfig
from bt_logging import get_logger
from bt_components import rng
from bt_components.data_files import DesignBounds, load_bounds, load_data, load_trials, format_iteration_path
from bt_components.evaluation import EvaluationEngine
from bt_components.genetic_operations import GeneticOperations
from bt_components.model import TrainingData, calculate_error, integrate
from bt_components.objective import evaluate_designs, update_fitnesses
from bt_components.order_statistics import fitness_summary, fitness_quartiles
from bt_components.population_management import DesignPopulation
from bt_components.reporting import BTReporter, ConvergenceWriter
from bt_components.selection import SelectionMethods


@dataclass
class EstimationResult:
    """Best design found by one GA iteration."""

    iteration: int
    design: np.ndarray
    fitness: float
    mean_abs_residual: float


class ParameterEstimation:
    """
    GA driver for model parameter estimation.

    Holds the read-only inputs shared by all iterations; ``run_iteration``
    performs one seeded GA run.
    """

    def __init__(self, config: ParameterEstimationConfig, bounds: DesignBounds,
                 data: TrainingData, engine: Optional[EvaluationEngine] = None):
        self.config = config
        self.bounds = bounds
        self.data = data
        self.engine = engine
        self.logger = get_logger("ParameterEstimation")
        self.selection = SelectionMethods()
        self.operations = GeneticOperations()
        self.reporter = BTReporter()

    def run_iteration(self, iteration: int, trial_indices: np.ndarray) -> EstimationResult:
        """
        Run one GA iteration seeded with ``iteration``.

        Writes the iteration's convergence, population and integration
        reports when enabled.
        """
        config = self.config
        state = rng.seed(iteration)
        nmemb = config.population_size

        population = DesignPopulation.random(
            nmemb, self.bounds.lower_bounds, self.bounds.upper_bounds, state)
        update_fitnesses(population, self.data, trial_indices, self.engine)
        children = DesignPopulation.empty(nmemb, population.design_var_count)

        convergence = None
        convergence_path = self.reporter.iteration_path(config.output_convergence, iteration)
        if convergence_path:
            convergence = ConvergenceWriter(convergence_path)

        try:
            generations = tqdm(range(config.max_generations), desc=f"Iteration {iteration}",
                               disable=not config.show_progress, file=sys.stderr, leave=False)
            for generation in generations:
                if config.debug:
                    self.logger.log_generation_summary(
                        iteration, generation + 1, fitness_summary(population.fitnesses))
                if convergence:
                    convergence.write(generation + 1, fitness_quartiles(population.fitnesses))

                winners = self.selection.tournament_select(population.fitnesses, nmemb, state)
                children.designs[:] = self.operations.blx_alpha(
                    population.designs, winners, config.blx_alpha, state)
                self.operations.mutate(children.designs, self.bounds.stdevs,
                                       config.mutate_probability, state)
                update_fitnesses(children, self.data, trial_indices, self.engine)
                self.selection.cull(population, children, config.cull_keep)
        finally:
            if convergence:
                convergence.close()

        best_index = self.selection.best_index(population)
        best_design = population.designs[best_index].copy()
        min_error = calculate_error(best_design, self.data, trial_indices)
        result = EstimationResult(
            iteration=iteration,
            design=best_design,
            fitness=float(population.fitnesses[best_index]),
            mean_abs_residual=min_error / len(trial_indices),
        )

        population_path = self.reporter.iteration_path(config.output_population, iteration)
        if population_path:
            _, mean_abs_residuals = evaluate_designs(
                population.designs, self.data, trial_indices, self.engine)
            self.reporter.write_designs(population_path, population.designs, mean_abs_residuals)

        integration_path = self.reporter.iteration_path(config.output_integration, iteration)
        if integration_path:
            self.reporter.write_data(integration_path, integrate(best_design, self.data))

        return result


def load_all_trials(config: ParameterEstimationConfig, data_size: int) -> List[np.ndarray]:
    """Trial indices for every iteration, from one file or one file per iteration."""
    if config.trials_is_pattern:
        return [load_trials(format_iteration_path(config.trials_path, iteration), data_size)
                for iteration in range(1, config.num_iterations + 1)]
    trials = load_trials(config.trials_path, data_size)
    return [trials] * config.num_iterations


def run(config: ParameterEstimationConfig) -> List[EstimationResult]:
    """
    Load the inputs, run every iteration and write the output file.

    Returns:
        Best result of each iteration, in iteration order
    """
    logger = get_logger("ParameterEstimation")

    data = load_data(config.data_path)
    trials = load_all_trials(config, data.size)
    bounds = load_bounds(config.bounds_path)
    logger.debug("Using bounds:\n" + bounds.format_table())

    results = []
    with EvaluationEngine(max_threads=config.max_threads) as engine:
        estimator = ParameterEstimation(config, bounds, data, engine)
        for iteration in range(1, config.num_iterations + 1):
            logger.log_iteration_start(iteration, config.num_iterations)
            start_time = time.time()
            result = estimator.run_iteration(iteration, trials[iteration - 1])
            logger.log_run_complete(iteration, result.fitness, time.time() - start_time,
                                    engine.stats['peak_memory_usage'])
            results.append(result)

    estimator.reporter.write_designs(
        config.output_path,
        np.array([result.design for result in results]),
        [result.mean_abs_residual for result in results])
    return results
