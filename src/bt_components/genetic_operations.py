"""
Genetic Operations Module

BLX-alpha crossover and Gaussian mutation on real-valued design matrices.

Both operators optionally clamp results into a [minimum, maximum] domain,
which training plans need (stress is bounded) and model parameter vectors
do not.
"""

from typing import Optional
import numpy as np
from bt_components import rng


class GeneticOperations:
    """
    Crossover and mutation, optionally clamped to a value domain.
    """

    def __init__(self, minimum: Optional[float] = None, maximum: Optional[float] = None):
        """
        Initialize genetic operations.

        Args:
            minimum: Lower clamp for produced values, or None for no clamp
            maximum: Upper clamp for produced values, or None for no clamp
        """
        self.minimum = minimum
        self.maximum = maximum

    def _clamp(self, values: np.ndarray) -> np.ndarray:
        if self.minimum is not None:
            values = np.fmax(values, self.minimum)
        if self.maximum is not None:
            values = np.fmin(values, self.maximum)
        return values

    def blx_alpha(self, designs: np.ndarray, parent_indices, alpha: float,
                  state: rng.RandomState) -> np.ndarray:
        """
        BLX-alpha crossover of consecutive winner pairs.

        Winners 0 and 1 produce children 0 and 1, winners 2 and 3 produce
        children 2 and 3, and so on. Each child variable is drawn uniformly
        from the parents' interval widened by ``alpha`` times its length on
        both sides. With an odd population the last child copies its winner.

        Args:
            designs: Parent design matrix
            parent_indices: Winner indices from selection
            alpha: Interval widening factor
            state: Generator state

        Returns:
            Child design matrix of the same shape as ``designs``
        """
        designs = np.asarray(designs, dtype=float)
        parent_indices = np.asarray(parent_indices)
        nmemb, design_var_count = designs.shape
        num_pairs = nmemb // 2
        children = np.empty_like(designs)

        first = designs[parent_indices[0:2 * num_pairs:2]]
        second = designs[parent_indices[1:2 * num_pairs:2]]
        with np.errstate(all='ignore'):
            cmin = np.where(first <= second, first, second)
            cmax = np.where(first > second, first, second)
            spread = cmax - cmin
            low = cmin - spread * alpha
            high = cmax + spread * alpha

            # Two draws per variable: one for each child, in pair order.
            draws = rng.uniform_array(state, (num_pairs, design_var_count, 2))
            children[0:2 * num_pairs:2] = self._clamp(low + (high - low) * draws[:, :, 0])
            children[1:2 * num_pairs:2] = self._clamp(low + (high - low) * draws[:, :, 1])

        if nmemb % 2:
            children[-1] = designs[parent_indices[-1]]

        return children

    def mutate(self, designs: np.ndarray, stdevs, probability: float,
               state: rng.RandomState) -> np.ndarray:
        """
        Gaussian mutation, in place.

        Every variable independently mutates with ``probability`` by adding
        ``stdev * N(0, 1)``. ``stdevs`` is either one value or one value per
        variable. Variables are visited in row-major order and each successful
        trial draws its deviate before the next trial.
        """
        scales = np.broadcast_to(np.asarray(stdevs, dtype=float), designs.shape)
        nmemb, design_var_count = designs.shape
        with np.errstate(all='ignore'):
            for i in range(nmemb):
                for j in range(design_var_count):
                    if rng.next_uniform(state) < probability:
                        designs[i, j] = self._clamp(designs[i, j] + scales[i, j] * rng.next_gaussian(state))
        return designs
