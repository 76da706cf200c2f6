"""
Configuration Management for the Banister Model Optimizers

Validates and organizes user-provided CLI parameters into one config object
per program, so the GA drivers receive a single validated structure instead
of a long argument list.
"""

import os
from dataclasses import dataclass, field, fields, asdict
from typing import Optional
from bt_constants import (
    EstimationDefaults, OptimizationDefaults, PerformanceConstants
)
from bt_exceptions import ConfigurationError
from bt_components.constraints import available_constraints


def _default_threads() -> int:
    return min(PerformanceConstants.DEFAULT_MAX_THREADS, os.cpu_count() or 1)


class _ConfigMixin:
    """Shared construction, serialization and validation helpers."""

    def __post_init__(self):
        """Validate user parameters after initialization."""
        self._validate()

    def _validate(self):
        errors = self._collect_errors()
        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            )

    def _common_errors(self) -> list:
        errors = []
        if self.population_size < 2:
            errors.append(f"Population size ({self.population_size}) must be at least 2")
        if self.max_generations < 0:
            errors.append(f"Max generations ({self.max_generations}) cannot be negative")
        if self.num_iterations < 1:
            errors.append(f"Number of iterations ({self.num_iterations}) must be positive")
        if self.cull_keep is not None and not 0 <= self.cull_keep <= self.population_size:
            errors.append(f"Cull keep ({self.cull_keep}) must be between 0 and population size ({self.population_size})")
        if self.max_threads < 1:
            errors.append(f"Max threads ({self.max_threads}) must be positive")
        if not self.output_path or not str(self.output_path).strip():
            errors.append("Output path cannot be empty")
        return errors

    @classmethod
    def from_args(cls, args):
        """
        Create configuration from parsed CLI arguments.

        Args:
            args: argparse.Namespace from CLI parsing

        Returns:
            Validated config instance
        """
        config_params = {
            f.name: getattr(args, f.name)
            for f in fields(cls)
            if getattr(args, f.name, None) is not None
        }
        return cls(**config_params)

    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: dict):
        """Create config from dictionary."""
        return cls(**config_dict)

    def update(self, **kwargs):
        """Create a new config with updated values."""
        current_config = self.to_dict()
        current_config.update(kwargs)
        return self.from_dict(current_config)


@dataclass
class ParameterEstimationConfig(_ConfigMixin):
    """
    Settings for fitting the nine model parameters to observed performance.

    Input paths are positional on the command line; every GA hyperparameter
    has the classic default.
    """

    bounds_path: str
    data_path: str
    trials_path: str
    output_path: str

    num_iterations: int = EstimationDefaults.NUM_ITERATIONS
    max_generations: int = EstimationDefaults.MAX_GENERATIONS
    population_size: int = EstimationDefaults.POPULATION_SIZE
    cull_keep: int = EstimationDefaults.CULL_KEEP
    mutate_probability: float = EstimationDefaults.MUTATE_PROBABILITY
    blx_alpha: float = EstimationDefaults.BLX_ALPHA

    # Per-iteration reports, disabled when None
    output_integration: Optional[str] = None
    output_population: Optional[str] = None
    output_convergence: Optional[str] = None

    debug: bool = False
    max_threads: int = field(default_factory=_default_threads)
    show_progress: bool = False

    def _collect_errors(self) -> list:
        errors = self._common_errors()
        if not 0.0 <= self.mutate_probability <= 1.0:
            errors.append(f"Mutate probability ({self.mutate_probability}) must be between 0.0 and 1.0")
        if self.blx_alpha < 0:
            errors.append(f"BLX alpha ({self.blx_alpha}) cannot be negative")
        return errors

    @property
    def trials_is_pattern(self) -> bool:
        """Whether the trials path names one file per iteration."""
        return '%' in self.trials_path

    def summary(self) -> str:
        """Generate human-readable configuration summary."""
        return f"""Parameter Estimation Configuration:
  Inputs: bounds={self.bounds_path}, data={self.data_path}, trials={self.trials_path}
  Output: {self.output_path}
  Iterations: {self.num_iterations}
  Generations: {self.max_generations}
  Population: {self.population_size} (cull keep: {self.cull_keep})
  Operators: mutate_probability={self.mutate_probability:f}, blx_alpha={self.blx_alpha:f}
  Reports: integration={self.output_integration}, population={self.output_population}, convergence={self.output_convergence}
  Threads: {self.max_threads}"""

    def __str__(self) -> str:
        return f"ParameterEstimationConfig(pop={self.population_size}, gen={self.max_generations}, iter={self.num_iterations})"


@dataclass
class TrainingOptimizationConfig(_ConfigMixin):
    """
    Settings for searching a daily training stress plan.

    When ``cull_keep`` is not given it defaults to a tenth of the population.
    """

    params_path: str
    output_path: str

    num_days: int = OptimizationDefaults.NUM_DAYS
    max_daily_stress: float = OptimizationDefaults.MAX_DAILY_STRESS
    init_penalty_factor: float = OptimizationDefaults.INIT_PENALTY_FACTOR
    penalty_factor_rate: float = OptimizationDefaults.PENALTY_FACTOR_RATE
    max_roughness_factor: float = OptimizationDefaults.MAX_ROUGHNESS_FACTOR
    num_iterations: int = OptimizationDefaults.NUM_ITERATIONS
    max_generations: int = OptimizationDefaults.MAX_GENERATIONS
    population_size: int = OptimizationDefaults.POPULATION_SIZE
    cull_keep: Optional[int] = None
    init_blx_alpha: float = OptimizationDefaults.INIT_BLX_ALPHA
    blx_alpha_change_rate: float = OptimizationDefaults.BLX_ALPHA_CHANGE_RATE
    init_mutate_stdev: float = OptimizationDefaults.INIT_MUTATE_STDEV
    init_mutate_probability: float = OptimizationDefaults.INIT_MUTATE_PROBABILITY
    mutate_change_rate: float = OptimizationDefaults.MUTATE_CHANGE_RATE
    constraint: str = OptimizationDefaults.CONSTRAINT

    output_integration: Optional[str] = None
    output_population: Optional[str] = None
    output_convergence: Optional[str] = None

    debug: bool = False
    max_threads: int = field(default_factory=_default_threads)
    show_progress: bool = False

    def __post_init__(self):
        if self.cull_keep is None and self.population_size >= 0:
            self.cull_keep = self.population_size // 10
        super().__post_init__()

    def _collect_errors(self) -> list:
        errors = self._common_errors()
        if self.num_days < 1:
            errors.append(f"Number of days ({self.num_days}) must be positive")
        if self.max_daily_stress <= 0:
            errors.append(f"Max daily stress ({self.max_daily_stress}) must be positive")
        if self.init_penalty_factor < 0:
            errors.append(f"Initial penalty factor ({self.init_penalty_factor}) cannot be negative")
        if self.max_roughness_factor < 0:
            errors.append(f"Max roughness factor ({self.max_roughness_factor}) cannot be negative")
        for name in ('penalty_factor_rate', 'blx_alpha_change_rate', 'mutate_change_rate'):
            value = getattr(self, name)
            if value <= 0:
                errors.append(f"{name} ({value}) must be positive")
        if self.init_blx_alpha < 0:
            errors.append(f"Initial BLX alpha ({self.init_blx_alpha}) cannot be negative")
        if self.init_mutate_stdev < 0:
            errors.append(f"Initial mutate stdev ({self.init_mutate_stdev}) cannot be negative")
        if not 0.0 <= self.init_mutate_probability <= 1.0:
            errors.append(f"Initial mutate probability ({self.init_mutate_probability}) must be between 0.0 and 1.0")
        if self.constraint not in available_constraints():
            errors.append(f"Constraint ({self.constraint}) must be one of: {list(available_constraints())}")
        return errors

    def summary(self) -> str:
        """Generate human-readable configuration summary."""
        return f"""Training Optimization Configuration:
  Inputs: params={self.params_path}
  Output: {self.output_path}
  Plan: {self.num_days} days, max daily stress {self.max_daily_stress:f}
  Constraint: {self.constraint}
  Penalty: factor={self.init_penalty_factor:g} x{self.penalty_factor_rate:f}/generation, max roughness factor={self.max_roughness_factor:g}
  Iterations: {self.num_iterations}
  Generations: {self.max_generations}
  Population: {self.population_size} (cull keep: {self.cull_keep})
  Crossover: blx_alpha={self.init_blx_alpha:f} x{self.blx_alpha_change_rate:f}/generation
  Mutation: stdev={self.init_mutate_stdev:f}, probability={self.init_mutate_probability:f} x{self.mutate_change_rate:f}/generation
  Reports: integration={self.output_integration}, population={self.output_population}, convergence={self.output_convergence}
  Threads: {self.max_threads}"""

    def __str__(self) -> str:
        return f"TrainingOptimizationConfig(days={self.num_days}, pop={self.population_size}, gen={self.max_generations})"
