"""
Population Management Module

Fixed-size populations of real-valued design vectors with their fitness
values, plus random initialization.

- DesignPopulation: nine-parameter model designs (parameter estimation)
- TrainingPopulation: daily stress plans with final performance, penalty
  and roughness per member (training optimization)

Designs are stored as one (members, variables) matrix so evaluation and
genetic operators work on whole populations. Every per-member array listed
in ``member_fields`` moves together when members are copied.
"""

from typing import List, Tuple
import numpy as np
from bt_components import rng
from bt_exceptions import PopulationError


class Population:
    """Base container: a design matrix and aligned per-member arrays."""

    member_fields: Tuple[str, ...] = ('designs', 'fitnesses')

    def __init__(self, designs: np.ndarray, fitnesses: np.ndarray = None):
        self.designs = np.array(designs, dtype=float, ndmin=2)
        if fitnesses is None:
            fitnesses = np.full(self.nmemb, -np.inf)
        self.fitnesses = np.array(fitnesses, dtype=float)
        self._check_sizes()

    def _check_sizes(self):
        for name in self.member_fields:
            if len(getattr(self, name)) != self.nmemb:
                raise PopulationError(
                    f"Population field '{name}' has {len(getattr(self, name))} entries, expected {self.nmemb}",
                    population_size=self.nmemb
                )

    @property
    def nmemb(self) -> int:
        return self.designs.shape[0]

    @property
    def design_var_count(self) -> int:
        return self.designs.shape[1]

    def member_arrays(self) -> List[np.ndarray]:
        """Arrays that must stay aligned with the design rows."""
        return [getattr(self, name) for name in self.member_fields]

    def __len__(self) -> int:
        return self.nmemb


class DesignPopulation(Population):
    """Population of model parameter vectors."""

    @classmethod
    def random(cls, nmemb: int, lower_bounds, upper_bounds,
               state: rng.RandomState) -> 'DesignPopulation':
        """
        Draw every variable uniformly within its bounds.

        Draws are consumed member by member, variable by variable.
        """
        lower_bounds = np.asarray(lower_bounds, dtype=float)
        upper_bounds = np.asarray(upper_bounds, dtype=float)
        if lower_bounds.shape != upper_bounds.shape:
            raise PopulationError("Lower and upper bounds must have the same length")
        draws = rng.uniform_array(state, (nmemb, len(lower_bounds)))
        return cls(lower_bounds + draws * (upper_bounds - lower_bounds))

    @classmethod
    def empty(cls, nmemb: int, design_var_count: int) -> 'DesignPopulation':
        return cls(np.zeros((nmemb, design_var_count)))


class TrainingPopulation(Population):
    """Population of daily training stress plans."""

    member_fields = ('designs', 'final_performances', 'penalties', 'roughnesses', 'fitnesses')

    def __init__(self, stresses: np.ndarray, final_performances=None,
                 penalties=None, roughnesses=None, fitnesses=None):
        stresses = np.array(stresses, dtype=float, ndmin=2)
        nmemb = stresses.shape[0]
        self.final_performances = self._member_array(final_performances, nmemb, -np.inf)
        self.penalties = self._member_array(penalties, nmemb, np.inf)
        self.roughnesses = self._member_array(roughnesses, nmemb, 0.0)
        super().__init__(stresses, fitnesses)

    @staticmethod
    def _member_array(values, nmemb: int, fill: float) -> np.ndarray:
        if values is None:
            return np.full(nmemb, fill)
        return np.array(values, dtype=float)

    @property
    def stresses(self) -> np.ndarray:
        return self.designs

    @property
    def num_days(self) -> int:
        return self.designs.shape[1]

    @classmethod
    def random(cls, nmemb: int, num_days: int, max_daily_stress: float,
               state: rng.RandomState) -> 'TrainingPopulation':
        """Draw every daily stress uniformly in [0, max_daily_stress)."""
        return cls(rng.uniform_array(state, (nmemb, num_days)) * max_daily_stress)

    @classmethod
    def empty(cls, nmemb: int, num_days: int) -> 'TrainingPopulation':
        return cls(np.zeros((nmemb, num_days)))
