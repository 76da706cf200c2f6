"""
Order Statistics Module

Sorting, argsort, quantiles and extremum search over fitness vectors. Used
for the per-generation fitness summaries and for elitist culling.

NaN handling is deliberate: ``min_index``/``max_index`` stop at the first
NaN, and ``min_max`` reports (NaN, NaN) as soon as one is seen.
"""

from collections import namedtuple
import numpy as np

FitnessSummary = namedtuple('FitnessSummary', ['min', 'median', 'max'])
FitnessQuartiles = namedtuple('FitnessQuartiles', ['min', 'q1', 'median', 'q3', 'max'])


def sort(data: np.ndarray) -> np.ndarray:
    """Sort ``data`` ascending in place and return it."""
    data.sort()
    return data


def sort_index(data) -> np.ndarray:
    """Indices that would sort ``data`` ascending; ties keep index order."""
    return np.argsort(np.asarray(data, dtype=float), kind='stable')


def median_from_sorted(data) -> float:
    n = len(data)
    if n == 0:
        return float('nan')
    lower = (n - 1) // 2
    upper = n // 2
    if lower != upper:
        with np.errstate(all='ignore'):
            return float((data[lower] + data[upper]) / 2)
    return float(data[lower])


def quantile_from_sorted(data, q: float) -> float:
    """Linearly interpolated quantile at fractional rank ``q * (n - 1)``."""
    n = len(data)
    if n == 0:
        return float('nan')
    prod = q * (n - 1)
    lower = int(prod)
    if lower == n - 1:
        return float(data[lower])
    delta = prod - lower
    with np.errstate(all='ignore'):
        return float(data[lower] + (data[lower + 1] - data[lower]) * delta)


def _first_nan(data: np.ndarray):
    nans = np.flatnonzero(np.isnan(data))
    return int(nans[0]) if nans.size else None


def min_index(data) -> int:
    """Index of the first minimum, or of the first NaN if there is one."""
    data = np.asarray(data, dtype=float)
    if data.size == 0:
        return 0
    nan_index = _first_nan(data)
    if nan_index is not None:
        return nan_index
    return int(np.argmin(data))


def max_index(data) -> int:
    """Index of the first maximum, or of the first NaN if there is one."""
    data = np.asarray(data, dtype=float)
    if data.size == 0:
        return 0
    nan_index = _first_nan(data)
    if nan_index is not None:
        return nan_index
    return int(np.argmax(data))


def min_max(data):
    data = np.asarray(data, dtype=float)
    if data.size == 0 or np.isnan(data).any():
        return float('nan'), float('nan')
    return float(data.min()), float(data.max())


def fitness_summary(fitnesses) -> FitnessSummary:
    """Min, median and max of a fitness vector."""
    ordered = sort(np.array(fitnesses, dtype=float))
    return FitnessSummary(
        quantile_from_sorted(ordered, 0.0),
        median_from_sorted(ordered),
        quantile_from_sorted(ordered, 1.0),
    )


def fitness_quartiles(fitnesses) -> FitnessQuartiles:
    """Min, quartiles and max of a fitness vector."""
    ordered = sort(np.array(fitnesses, dtype=float))
    return FitnessQuartiles(
        quantile_from_sorted(ordered, 0.0),
        quantile_from_sorted(ordered, 0.25),
        median_from_sorted(ordered),
        quantile_from_sorted(ordered, 0.75),
        quantile_from_sorted(ordered, 1.0),
    )
