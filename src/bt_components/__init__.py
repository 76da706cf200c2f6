"""
Banister Model Components

Building blocks shared by the parameter estimation and training
optimization programs:

- rng: Explicitly threaded, reproducible random number generation
- order_statistics: Sorting, quantiles and extremum search
- model: Fitness-fatigue model integrator and residual objective
- constraints: Registry of training constraint penalty strategies
- objective: Population fitness for both programs
- population_management: Population containers and initialization
- selection / genetic_operations: Tournament, culling, BLX-alpha, mutation
- evaluation: Data-parallel fitness evaluation
- annealing: Per-generation parameter schedule
- data_files / reporting: Input loaders and TSV writers

Usage:
    from bt_components import SelectionMethods, GeneticOperations
    from bt_components.model import ModelParameters
"""

from .population_management import DesignPopulation, TrainingPopulation
from .selection import SelectionMethods
from .genetic_operations import GeneticOperations
from .evaluation import EvaluationEngine
from .annealing import AnnealingSchedule
from .constraints import ConstraintStrategy, create_constraint, available_constraints
from .reporting import BTReporter, ConvergenceWriter

__all__ = [
    'DesignPopulation',
    'TrainingPopulation',
    'SelectionMethods',
    'GeneticOperations',
    'EvaluationEngine',
    'AnnealingSchedule',
    'ConstraintStrategy',
    'create_constraint',
    'available_constraints',
    'BTReporter',
    'ConvergenceWriter'
]

__version__ = '1.0.0'
