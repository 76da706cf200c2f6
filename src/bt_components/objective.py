"""
Objective Functions

Population fitness for both programs.

Parameter estimation scores a model design by the negated sum of absolute
residuals at the trial points. Training optimization scores a stress plan by

    final_performance - penalty_factor * penalty - roughness_factor * roughness

Numerically infeasible members never raise: they get -inf fitness so they
lose every comparison.
"""

from typing import Optional, Tuple
import numpy as np
from bt_components.evaluation import EvaluationEngine, evaluate_in_chunks
from bt_components.model import (
    ModelParameters, TrainingData, calculate_errors, final_performance_and_penalty
)
from bt_components.population_management import DesignPopulation, TrainingPopulation


def evaluate_designs(designs: np.ndarray, data: TrainingData, trial_indices,
                     engine: Optional[EvaluationEngine] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fitness and mean absolute residual for every model design.

    Returns:
        Tuple of (fitnesses, mean_abs_residuals); infeasible designs get
        -inf fitness and NaN residual
    """
    nmemb = designs.shape[0]
    fitnesses = np.empty(nmemb)
    mean_abs_residuals = np.empty(nmemb)
    num_trials = len(trial_indices)

    def kernel(rows: slice):
        errors = calculate_errors(designs[rows], data, trial_indices)
        failed = np.isnan(errors)
        with np.errstate(all='ignore'):
            fitnesses[rows] = np.where(failed, -np.inf, -errors)
            mean_abs_residuals[rows] = np.where(failed, np.nan, errors / num_trials)

    evaluate_in_chunks(kernel, nmemb, engine)
    return fitnesses, mean_abs_residuals


def update_fitnesses(population: DesignPopulation, data: TrainingData, trial_indices,
                     engine: Optional[EvaluationEngine] = None) -> np.ndarray:
    """Recompute ``population.fitnesses``; returns the mean absolute residuals."""
    fitnesses, mean_abs_residuals = evaluate_designs(population.designs, data, trial_indices, engine)
    population.fitnesses[:] = fitnesses
    return mean_abs_residuals


def calculate_roughness(stresses, roughness_days: int) -> np.ndarray:
    """
    Roughness of each stress plan.

    For every day past the first ``roughness_days``, adds the path length of
    the trailing window (sum of absolute day-to-day changes) and subtracts
    the window's chord (the absolute change from its first to its last day).
    Smooth, monotone windows therefore cost nothing.
    """
    stresses = np.array(stresses, dtype=float, ndmin=2)
    num_days = stresses.shape[1]
    roughness = np.zeros(stresses.shape[0])
    with np.errstate(all='ignore'):
        steps = np.abs(stresses[:, :-1] - stresses[:, 1:])
        for day in range(roughness_days, num_days):
            for old_day in range(day - roughness_days, day):
                roughness += steps[:, old_day]
            roughness -= np.abs(stresses[:, day - roughness_days] - stresses[:, day])
    return roughness


def objective_function(final_performance, penalty, penalty_factor, roughness, roughness_factor):
    with np.errstate(all='ignore'):
        return final_performance - penalty_factor * penalty - roughness_factor * roughness


def clamp_non_finite(final_performances, penalties, roughnesses, fitnesses) -> np.ndarray:
    """
    Force members with any non-finite term to the worst possible score.

    Operates in place; returns the mask of clamped members.
    """
    bad = ~(np.isfinite(final_performances) & np.isfinite(penalties) &
            np.isfinite(roughnesses) & np.isfinite(fitnesses))
    final_performances[bad] = -np.inf
    penalties[bad] = np.inf
    roughnesses[bad] = np.inf
    fitnesses[bad] = -np.inf
    return bad


def update_penalty_factors(penalty_factor: float, roughness_factor: float,
                           roughness_days: int, population: TrainingPopulation,
                           engine: Optional[EvaluationEngine] = None):
    """
    Rescore a population after only the penalty/roughness factors changed.

    Final performance and penalty are reused; roughness is recomputed only
    when it is weighted.
    """
    def kernel(rows: slice):
        if roughness_factor > 0:
            population.roughnesses[rows] = calculate_roughness(population.stresses[rows], roughness_days)
        population.fitnesses[rows] = objective_function(
            population.final_performances[rows], population.penalties[rows], penalty_factor,
            population.roughnesses[rows], roughness_factor)
        clamp_non_finite(population.final_performances[rows], population.penalties[rows],
                         population.roughnesses[rows], population.fitnesses[rows])

    evaluate_in_chunks(kernel, population.nmemb, engine)


def update_objective(parameters: ModelParameters, roughness_days: int,
                     penalty_factor: float, roughness_factor: float,
                     max_daily_stress: float, population: TrainingPopulation,
                     constraint, engine: Optional[EvaluationEngine] = None):
    """
    Fully rescore a population from its stress plans.

    Integrates every plan, accumulates the constraint penalty, computes the
    roughness when it is weighted and combines them into the fitness.
    """
    def kernel(rows: slice):
        stresses = population.stresses[rows]
        if roughness_factor > 0:
            roughness = calculate_roughness(stresses, roughness_days)
        else:
            roughness = np.zeros(stresses.shape[0])
        final_performance, penalty = final_performance_and_penalty(
            stresses, max_daily_stress, parameters, constraint)
        fitness = objective_function(final_performance, penalty, penalty_factor,
                                     roughness, roughness_factor)
        clamp_non_finite(final_performance, penalty, roughness, fitness)
        population.final_performances[rows] = final_performance
        population.penalties[rows] = penalty
        population.roughnesses[rows] = roughness
        population.fitnesses[rows] = fitness

    evaluate_in_chunks(kernel, population.nmemb, engine)
