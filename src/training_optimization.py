"""
Training Optimization

Searches for the daily training stress plan that maximizes predicted final
performance under a constraint penalty and an optional roughness penalty.
The GA anneals its parameters across generations: the penalty factor grows,
crossover and mutation shrink, and the roughness penalty is switched on with
a narrowing window in the middle of the run.
"""

import sys
import time
from dataclasses import dataclass
from typing import List, Optional
import numpy as np
from tqdm import tqdm
from bt_config import TrainingOptimizationConfig
from bt_logging import get_logger
from bt_components import rng
from bt_components.annealing import AnnealingSchedule
from bt_components.constraints import ConstraintStrategy, create_constraint
from bt_components.data_files import load_params
from bt_components.evaluation import EvaluationEngine
from bt_components.genetic_operations import GeneticOperations
from bt_components.model import ModelParameters, integrate_plan
from bt_components.objective import update_objective, update_penalty_factors
from bt_components.order_statistics import fitness_summary, fitness_quartiles
from bt_components.population_management import TrainingPopulation
from bt_components.reporting import BTReporter, ConvergenceWriter
from bt_components.selection import SelectionMethods


@dataclass
class OptimizationResult:
    """Best training plan found by one GA iteration."""

    iteration: int
    stresses: np.ndarray
    final_performance: float
    penalty: float
    roughness: float
    fitness: float


class TrainingOptimization:
    """
    GA driver for training plan optimization.

    Holds the fixed model parameters and constraint strategy shared by all
    iterations; ``run_iteration`` performs one seeded GA run.
    """

    def __init__(self, config: TrainingOptimizationConfig, parameters: ModelParameters,
                 constraint: ConstraintStrategy, engine: Optional[EvaluationEngine] = None):
        self.config = config
        self.parameters = parameters
        self.constraint = constraint
        self.engine = engine
        self.logger = get_logger("TrainingOptimization")
        self.selection = SelectionMethods()
        self.operations = GeneticOperations(minimum=0.0, maximum=config.max_daily_stress)
        self.reporter = BTReporter()

    def _update_objective(self, schedule: AnnealingSchedule, population: TrainingPopulation):
        state = schedule.state
        update_objective(self.parameters, state.roughness_days, state.penalty_factor,
                         state.roughness_factor, self.config.max_daily_stress, population,
                         self.constraint, self.engine)

    def run_iteration(self, iteration: int) -> OptimizationResult:
        """
        Run one GA iteration seeded with ``iteration``.

        Every generation first rescores the parents with the current penalty
        and roughness factors, then breeds, scores and culls children.
        """
        config = self.config
        state = rng.seed(iteration)
        nmemb = config.population_size
        schedule = AnnealingSchedule.from_config(config)

        population = TrainingPopulation.random(nmemb, config.num_days, config.max_daily_stress, state)
        self._update_objective(schedule, population)
        children = TrainingPopulation.empty(nmemb, config.num_days)

        convergence = None
        convergence_path = self.reporter.iteration_path(config.output_convergence, iteration)
        if convergence_path:
            convergence = ConvergenceWriter(convergence_path)

        try:
            generations = tqdm(range(config.max_generations), desc=f"Iteration {iteration}",
                               disable=not config.show_progress, file=sys.stderr, leave=False)
            for generation in generations:
                annealed = schedule.begin_generation(generation)
                update_penalty_factors(annealed.penalty_factor, annealed.roughness_factor,
                                       annealed.roughness_days, population, self.engine)

                if config.debug:
                    self.logger.log_generation_summary(
                        iteration, generation + 1, fitness_summary(population.fitnesses))
                if convergence:
                    convergence.write(generation + 1, fitness_quartiles(population.fitnesses))

                winners = self.selection.tournament_select(population.fitnesses, nmemb, state)
                children.designs[:] = self.operations.blx_alpha(
                    population.stresses, winners, annealed.blx_alpha, state)
                self.operations.mutate(children.designs, annealed.mutate_stdev,
                                       annealed.mutate_probability, state)
                self._update_objective(schedule, children)
                self.selection.cull(population, children, config.cull_keep)

                schedule.end_generation()
        finally:
            if convergence:
                convergence.close()

        best_index = self.selection.best_index(population)
        result = OptimizationResult(
            iteration=iteration,
            stresses=population.stresses[best_index].copy(),
            final_performance=float(population.final_performances[best_index]),
            penalty=float(population.penalties[best_index]),
            roughness=float(population.roughnesses[best_index]),
            fitness=float(population.fitnesses[best_index]),
        )

        population_path = self.reporter.iteration_path(config.output_population, iteration)
        if population_path:
            self.reporter.write_training_population(population_path, population)

        integration_path = self.reporter.iteration_path(config.output_integration, iteration)
        if integration_path:
            rows = integrate_plan(result.stresses, config.max_daily_stress, self.parameters, self.constraint)
            self.reporter.write_plan_integration(integration_path, rows, self.constraint)

        return result


def results_population(results: List[OptimizationResult]) -> TrainingPopulation:
    """Collect per-iteration results into one population table."""
    return TrainingPopulation(
        np.array([result.stresses for result in results]),
        final_performances=[result.final_performance for result in results],
        penalties=[result.penalty for result in results],
        roughnesses=[result.roughness for result in results],
        fitnesses=[result.fitness for result in results],
    )


def run(config: TrainingOptimizationConfig) -> List[OptimizationResult]:
    """
    Load the parameters, run every iteration and write the output file.

    Returns:
        Best result of each iteration, in iteration order
    """
    logger = get_logger("TrainingOptimization")

    parameters = load_params(config.params_path)
    constraint = create_constraint(config.constraint)
    logger.debug("Using parameters", **parameters.as_dict())
    logger.debug("Using constraint", name=constraint.name)

    results = []
    with EvaluationEngine(max_threads=config.max_threads) as engine:
        optimizer = TrainingOptimization(config, parameters, constraint, engine)
        for iteration in range(1, config.num_iterations + 1):
            logger.log_iteration_start(iteration, config.num_iterations)
            start_time = time.time()
            result = optimizer.run_iteration(iteration)
            logger.log_run_complete(iteration, result.fitness, time.time() - start_time,
                                    engine.stats['peak_memory_usage'])
            results.append(result)

    optimizer.reporter.write_training_population(config.output_path, results_population(results))
    return results
