"""
Constraint Penalty Strategies and Registry

A constraint strategy turns the model state on one training day into an
accumulated penalty for the training plan. Strategies are registered by
name and selected at startup, so a run can switch constraints from the
command line.

Every strategy provides:
- ``penalty_step``: add this step's violation to the running penalty
- ``header_columns`` / ``print_header``: report columns for the integration file
- ``values`` / ``print_value``: the limit values shown in each report row
"""

from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type
import numpy as np
from bt_constants import ModelConstants
from bt_exceptions import UnknownConstraintError


class ConstraintStrategy(ABC):
    """Interface for soft constraints on daily training stress."""

    name: str = ''
    header_columns: Tuple[str, ...] = ()

    @abstractmethod
    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        """Return ``penalty`` plus the violation for this state."""

    @abstractmethod
    def values(self, performance, fitness, fatigue, max_daily_stress) -> Tuple[float, ...]:
        """Limit values reported alongside one integration row."""

    def print_header(self, stream):
        stream.write(''.join(f"\t{column}" for column in self.header_columns))

    def print_value(self, stream, performance, fitness, fatigue, max_daily_stress):
        stream.write(''.join(f"\t{value:f}" for value in
                             self.values(performance, fitness, fatigue, max_daily_stress)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def _excess(value, limit):
    """Amount by which ``value`` exceeds ``limit`` (fmax semantics on NaN)."""
    return np.fmax(value, limit) - limit


def fitness_max_stress_limit(max_daily_stress, fitness):
    return max_daily_stress * (1 - 0.9 * np.exp(-fitness / 150))


def fatigue_max_stress_limit(max_daily_stress, fatigue):
    return max_daily_stress * (0.1 + 0.9 * np.exp(-fatigue / 800))


class ConstraintRegistry:
    """
    Name-based registry and factory for constraint strategies.

    Strategies register themselves with the ``register`` decorator.
    """

    def __init__(self):
        self._registered_classes: Dict[str, Type[ConstraintStrategy]] = {}

    def register(self, strategy_class: Type[ConstraintStrategy]) -> Type[ConstraintStrategy]:
        if not strategy_class.name:
            raise ValueError(f"{strategy_class.__name__} has no name")
        self._registered_classes[strategy_class.name] = strategy_class
        return strategy_class

    def create(self, name: str) -> ConstraintStrategy:
        try:
            strategy_class = self._registered_classes[name]
        except KeyError:
            raise UnknownConstraintError(name, self.names()) from None
        return strategy_class()

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._registered_classes))


_registry = ConstraintRegistry()


def get_constraint_registry() -> ConstraintRegistry:
    """Get the global constraint registry."""
    return _registry


def create_constraint(name: str) -> ConstraintStrategy:
    """Create the constraint strategy registered as ``name``."""
    return _registry.create(name)


def available_constraints() -> Tuple[str, ...]:
    return _registry.names()


@_registry.register
class Max300Stress(ConstraintStrategy):
    """Penalizes daily stress above a fixed cap of 300."""

    name = 'max_300_stress'
    header_columns = ('max_stress',)

    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        return penalty + _excess(training_stress, ModelConstants.MAX_STRESS)

    def values(self, performance, fitness, fatigue, max_daily_stress):
        return (ModelConstants.MAX_STRESS,)


@_registry.register
class FatigueMaxStress(ConstraintStrategy):
    """
    Person-specific fatigue constraint.

    The allowed stress shrinks from the full maximum towards 10% of it as
    fatigue accumulates.
    """

    name = 'fatigue_max_stress'
    header_columns = ('fatigue_max_stress',)

    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        return penalty + _excess(training_stress, fatigue_max_stress_limit(max_daily_stress, fatigue))

    def values(self, performance, fitness, fatigue, max_daily_stress):
        return (float(fatigue_max_stress_limit(max_daily_stress, fatigue)),)


@_registry.register
class FitnessMaxStress(ConstraintStrategy):
    """
    Training progression constraint.

    The allowed stress grows from 10% of the maximum towards the full
    maximum as fitness is built.
    """

    name = 'fitness_max_stress'
    header_columns = ('fitness_max_stress',)

    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        return penalty + _excess(training_stress, fitness_max_stress_limit(max_daily_stress, fitness))

    def values(self, performance, fitness, fatigue, max_daily_stress):
        return (float(fitness_max_stress_limit(max_daily_stress, fitness)),)


@_registry.register
class FitnessMaxStressFatigueMaxStress(ConstraintStrategy):
    """Progression and fatigue constraints applied together."""

    name = 'fitness_max_stress_fatigue_max_stress'
    header_columns = ('fitness_max_stress', 'fatigue_max_stress')

    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        new_penalty = penalty + _excess(training_stress, fitness_max_stress_limit(max_daily_stress, fitness))
        return new_penalty + _excess(training_stress, fatigue_max_stress_limit(max_daily_stress, fatigue))

    def values(self, performance, fitness, fatigue, max_daily_stress):
        return (float(fitness_max_stress_limit(max_daily_stress, fitness)),
                float(fatigue_max_stress_limit(max_daily_stress, fatigue)))


@_registry.register
class FitnessFatigueRatio(ConstraintStrategy):
    """Penalizes a fatigue/fitness ratio above 0.8."""

    name = 'fitness_fatigue_ratio'
    header_columns = ('max_fatigue_fitness_ratio',)

    def penalty_step(self, penalty, performance, fitness, fatigue,
                     training_stress, max_daily_stress):
        ratio = fatigue / fitness
        return penalty + _excess(ratio, ModelConstants.MAX_FATIGUE_FITNESS_RATIO)

    def values(self, performance, fitness, fatigue, max_daily_stress):
        return (ModelConstants.MAX_FATIGUE_FITNESS_RATIO,)
