"""
Fitness-Fatigue Model Integrator

Explicit Euler integration of the two coupled model equations

    dg/dt = -g**alpha / tau1 + k1 * w
    dh/dt = -h**beta  / tau2 + k2 * w
    p     = p0 + g - h

All kernels operate on whole populations at once: design matrices hold one
design per row and every arithmetic step is a float64 array operation
evaluated under ``np.errstate(all='ignore')``, so overflow and invalid
powers produce inf/NaN instead of raising. Single-design helpers wrap the
population kernels with a one-row matrix.
"""

from dataclasses import dataclass, fields
from typing import Dict, Mapping
import numpy as np
from bt_constants import ModelConstants, DESIGN_VAR_NAMES, DESIGN_VAR_COUNT, DAY_LENGTH
from bt_exceptions import PopulationError


@dataclass(frozen=True)
class ModelParameters:
    """The nine physiological parameters of the model."""

    tau1: float = 0.0
    tau2: float = 0.0
    alpha: float = 0.0
    beta: float = 0.0
    k1: float = 0.0
    k2: float = 0.0
    p0: float = 0.0
    f0: float = 0.0
    u0: float = 0.0

    @classmethod
    def from_vector(cls, design) -> 'ModelParameters':
        values = np.asarray(design, dtype=float)
        if values.shape != (DESIGN_VAR_COUNT,):
            raise PopulationError(f"Design vector must have {DESIGN_VAR_COUNT} elements, got shape {values.shape}")
        return cls(*(float(v) for v in values))

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> 'ModelParameters':
        return cls(**{name: float(values.get(name, 0.0)) for name in DESIGN_VAR_NAMES})

    def as_vector(self) -> np.ndarray:
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=float)

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def initial_performance(self) -> float:
        return self.p0 + self.f0 - self.u0


@dataclass
class TrainingData:
    """Parallel arrays of observation time, performance and training stress."""

    time: np.ndarray
    performance: np.ndarray
    training_stress: np.ndarray

    def __post_init__(self):
        self.time = np.asarray(self.time, dtype=float)
        self.performance = np.asarray(self.performance, dtype=float)
        self.training_stress = np.asarray(self.training_stress, dtype=float)
        if not (len(self.time) == len(self.performance) == len(self.training_stress)):
            raise PopulationError("Training data columns must have equal length")

    @property
    def size(self) -> int:
        return len(self.time)

    def copy(self) -> 'TrainingData':
        return TrainingData(self.time.copy(), self.performance.copy(), self.training_stress.copy())


def as_design_matrix(designs) -> np.ndarray:
    """View ``designs`` as a (members, variables) float matrix."""
    matrix = np.asarray(designs, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix[np.newaxis, :]
    return matrix


def fitness_derivative(fitness, training_stress, tau1, alpha, k1):
    return -1 / tau1 * np.power(fitness, alpha) + k1 * training_stress


def fatigue_derivative(fatigue, training_stress, tau2, beta, k2):
    return -1 / tau2 * np.power(fatigue, beta) + k2 * training_stress


def euler_step(y, dt, derivative):
    return y + dt * derivative


def integrate_interval(fitness, fatigue, training_stress, dt, designs):
    """
    Advance fitness and fatigue over one interval.

    Both new values are computed from the current state before performance
    is updated.

    Args:
        fitness: Current fitness per member
        fatigue: Current fatigue per member
        training_stress: Stress applied during the interval (scalar or per member)
        dt: Interval length
        designs: Design matrix supplying the model parameters

    Returns:
        Tuple of (fitness, fatigue, performance) after the interval
    """
    new_fitness = euler_step(fitness, dt, fitness_derivative(
        fitness, training_stress,
        designs[:, ModelConstants.VAR_TAU1], designs[:, ModelConstants.VAR_ALPHA],
        designs[:, ModelConstants.VAR_K1]))
    new_fatigue = euler_step(fatigue, dt, fatigue_derivative(
        fatigue, training_stress,
        designs[:, ModelConstants.VAR_TAU2], designs[:, ModelConstants.VAR_BETA],
        designs[:, ModelConstants.VAR_K2]))
    performance = designs[:, ModelConstants.VAR_P0] + new_fitness - new_fatigue
    return new_fitness, new_fatigue, performance


def initial_state(designs):
    """Initial (fitness, fatigue, performance) for every member."""
    fitness = designs[:, ModelConstants.VAR_F0].copy()
    fatigue = designs[:, ModelConstants.VAR_U0].copy()
    performance = designs[:, ModelConstants.VAR_P0] + fitness - fatigue
    return fitness, fatigue, performance


def integrate(design, data: TrainingData) -> TrainingData:
    """
    Integrate one design over the whole observation series.

    Returns a copy of ``data`` whose performance column holds the model's
    predicted performance at each observation time.
    """
    designs = as_design_matrix(design)
    result = data.copy()
    with np.errstate(all='ignore'):
        fitness, fatigue, performance = initial_state(designs)
        if result.size:
            result.performance[0] = performance[0]
        for interval in range(result.size - 1):
            fitness, fatigue, performance = integrate_interval(
                fitness, fatigue, data.training_stress[interval],
                data.time[interval + 1] - data.time[interval], designs)
            result.performance[interval + 1] = performance[0]
    return result


def infeasible_mask(designs) -> np.ndarray:
    """Members whose parameters violate the model's sign and exponent limits."""
    designs = as_design_matrix(designs)
    return ((designs[:, ModelConstants.VAR_TAU1] < 0) |
            (designs[:, ModelConstants.VAR_TAU2] < 0) |
            (designs[:, ModelConstants.VAR_K1] < 0) |
            (designs[:, ModelConstants.VAR_K2] < 0) |
            (designs[:, ModelConstants.VAR_ALPHA] < 1) |
            (designs[:, ModelConstants.VAR_BETA] > 1))


def calculate_errors(designs, data: TrainingData, trial_indices) -> np.ndarray:
    """
    Sum of absolute residuals at the trial points for every member.

    Integration runs forward once; each trial picks up where the previous
    one stopped. Infeasible members get NaN.
    """
    designs = as_design_matrix(designs)
    total_error = np.zeros(designs.shape[0])
    with np.errstate(all='ignore'):
        fitness, fatigue, performance = initial_state(designs)
        prev_trial_index = 0
        for trial_index in trial_indices:
            for interval in range(prev_trial_index, trial_index):
                fitness, fatigue, performance = integrate_interval(
                    fitness, fatigue, data.training_stress[interval],
                    data.time[interval + 1] - data.time[interval], designs)
            total_error = total_error + np.abs(data.performance[trial_index] - performance)
            prev_trial_index = trial_index
    total_error[infeasible_mask(designs)] = np.nan
    return total_error


def calculate_error(design, data: TrainingData, trial_indices) -> float:
    """Total absolute residual for one design, NaN when infeasible."""
    return float(calculate_errors(design, data, trial_indices)[0])


def final_performance_and_penalty(stresses, max_daily_stress: float,
                                  parameters: ModelParameters, constraint):
    """
    Integrate each training plan day by day.

    The constraint penalty is evaluated before and after every day's update.

    Args:
        stresses: (members, days) matrix of daily training stress
        max_daily_stress: Upper bound on daily stress
        parameters: Physiological parameters
        constraint: Constraint strategy accumulating the penalty

    Returns:
        Tuple of (final_performance, penalty) arrays
    """
    stresses = as_design_matrix(stresses)
    nmemb, num_days = stresses.shape
    designs = np.broadcast_to(parameters.as_vector(), (nmemb, DESIGN_VAR_COUNT))
    penalty = np.zeros(nmemb)
    with np.errstate(all='ignore'):
        fitness, fatigue, performance = initial_state(designs)
        for day in range(num_days):
            training_stress = stresses[:, day]
            penalty = constraint.penalty_step(
                penalty, performance, fitness, fatigue, training_stress, max_daily_stress)
            fitness, fatigue, performance = integrate_interval(
                fitness, fatigue, training_stress, DAY_LENGTH, designs)
            penalty = constraint.penalty_step(
                penalty, performance, fitness, fatigue, training_stress, max_daily_stress)
    return performance, penalty


def integrate_plan(stresses, max_daily_stress: float,
                   parameters: ModelParameters, constraint) -> list:
    """
    Day-by-day trajectory of one training plan.

    Each row is (day, stress, fitness, fatigue, performance, *constraint
    values) describing the state at the start of the day; a final row for
    the day after the plan carries zero stress.
    """
    stresses = np.asarray(stresses, dtype=float)
    designs = parameters.as_vector()[np.newaxis, :]
    rows = []
    with np.errstate(all='ignore'):
        fitness, fatigue, performance = initial_state(designs)
        for day, training_stress in enumerate(stresses):
            rows.append((day, float(training_stress), float(fitness[0]), float(fatigue[0]), float(performance[0]))
                        + constraint.values(performance[0], fitness[0], fatigue[0], max_daily_stress))
            fitness, fatigue, performance = integrate_interval(
                fitness, fatigue, training_stress, DAY_LENGTH, designs)
        rows.append((len(stresses), 0.0, float(fitness[0]), float(fatigue[0]), float(performance[0]))
                    + constraint.values(performance[0], fitness[0], fatigue[0], max_daily_stress))
    return rows
