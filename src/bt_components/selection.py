"""
Selection Methods Module

Parent selection and survivor selection for the GA:

- Tournament selection of size two for choosing parents
- Elitist culling that merges the best parents with the best children
- Final answer selection (index of the best member)
"""

import numpy as np
from bt_components import rng
from bt_components.order_statistics import sort_index, max_index
from bt_components.population_management import Population
from bt_exceptions import PopulationError


class SelectionMethods:
    """
    Selection methods operating on whole populations.
    """

    def tournament_select(self, fitnesses, num_winners: int,
                          state: rng.RandomState) -> np.ndarray:
        """
        Pick ``num_winners`` parents by binary tournament.

        Each slot draws two competitors uniformly from the whole population
        and keeps the first unless the second is strictly fitter.

        Args:
            fitnesses: Fitness per member (higher is better)
            num_winners: Number of winner slots to fill
            state: Generator state

        Returns:
            Array of winner indices
        """
        fitnesses = np.asarray(fitnesses, dtype=float)
        nmemb = len(fitnesses)
        if nmemb == 0:
            raise PopulationError("Cannot run a tournament on an empty population")
        competitors = rng.interval_array(nmemb - 1, state, (num_winners, 2))
        first, second = competitors[:, 0], competitors[:, 1]
        return np.where(fitnesses[first] >= fitnesses[second], first, second)

    def cull(self, parents: Population, children: Population, num_keep: int):
        """
        Elitist replacement, in place on ``parents``.

        The ``num_keep`` fittest parents move to the front, in their original
        relative order; the fittest children fill the remaining slots. All
        per-member arrays move with their designs.
        """
        nmemb = parents.nmemb
        if children.nmemb != nmemb:
            raise PopulationError(
                f"Children ({children.nmemb}) and parents ({nmemb}) must have the same size",
                population_size=nmemb
            )
        if not 0 <= num_keep <= nmemb:
            raise PopulationError(f"Cannot keep {num_keep} of {nmemb} members", population_size=nmemb)

        # Best parents, re-ordered by index.
        kept = np.sort(sort_index(parents.fitnesses)[nmemb - num_keep:])
        for array in parents.member_arrays():
            array[:num_keep] = array[kept]

        # Best children fill the rest.
        chosen = sort_index(children.fitnesses)[num_keep:]
        for array, child_array in zip(parents.member_arrays(), children.member_arrays()):
            array[num_keep:] = child_array[chosen]

    @staticmethod
    def best_index(population: Population) -> int:
        """Index of the fittest member; ties go to the first."""
        return max_index(population.fitnesses)
