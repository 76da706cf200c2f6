"""
Configuration Constants for the Banister Model Optimizers

Centralizes model names, default hyperparameters and output filename
patterns shared by the parameter estimation and training optimization
programs.
"""

from typing import Tuple


class ModelConstants:
    """Constants describing the fitness-fatigue model."""

    # Design variable names, in design vector order
    DESIGN_VAR_NAMES: Tuple[str, ...] = (
        'tau1', 'tau2', 'alpha', 'beta', 'k1', 'k2', 'p0', 'f0', 'u0'
    )
    DESIGN_VAR_COUNT = len(DESIGN_VAR_NAMES)

    # Index of each design variable
    VAR_TAU1 = 0
    VAR_TAU2 = 1
    VAR_ALPHA = 2
    VAR_BETA = 3
    VAR_K1 = 4
    VAR_K2 = 5
    VAR_P0 = 6
    VAR_F0 = 7
    VAR_U0 = 8

    DAY_LENGTH = 1.0               # Integration step for one training day
    MAX_ROUGHNESS_DAYS = 14        # Widest roughness window
    MAX_STRESS = 300.0             # Fixed cap for the max_300_stress constraint
    MAX_FATIGUE_FITNESS_RATIO = 0.8


class EstimationDefaults:
    """Default hyperparameters for parameter estimation."""

    NUM_ITERATIONS = 1
    MAX_GENERATIONS = 100
    POPULATION_SIZE = 100
    CULL_KEEP = 10
    MUTATE_PROBABILITY = 0.1
    BLX_ALPHA = 0.5


class OptimizationDefaults:
    """Default hyperparameters for training optimization."""

    NUM_DAYS = 84
    MAX_DAILY_STRESS = 300.0
    INIT_PENALTY_FACTOR = 6e-7
    PENALTY_FACTOR_RATE = 1.02
    MAX_ROUGHNESS_FACTOR = 0.0
    NUM_ITERATIONS = 1
    MAX_GENERATIONS = 2000
    POPULATION_SIZE = 500
    INIT_BLX_ALPHA = 0.5
    BLX_ALPHA_CHANGE_RATE = 0.9999
    INIT_MUTATE_STDEV = 10.0
    INIT_MUTATE_PROBABILITY = 0.1
    MUTATE_CHANGE_RATE = 0.999
    CONSTRAINT = 'fitness_max_stress_fatigue_max_stress'


class OutputPatterns:
    """Default per-iteration output filename patterns."""

    INTEGRATION = 'integration%04zd.tsv'
    POPULATION = 'population%04zd.tsv'
    CONVERGENCE = 'convergence%04zd.tsv'
    FLOAT_FORMAT = '%f'


class PerformanceConstants:
    """Parallel evaluation settings."""

    DEFAULT_MAX_THREADS = 4
    MIN_CHUNK_SIZE = 16             # Smallest slice handed to one worker


# Module-level aliases
DESIGN_VAR_NAMES = ModelConstants.DESIGN_VAR_NAMES
DESIGN_VAR_COUNT = ModelConstants.DESIGN_VAR_COUNT
DAY_LENGTH = ModelConstants.DAY_LENGTH
MAX_ROUGHNESS_DAYS = ModelConstants.MAX_ROUGHNESS_DAYS
