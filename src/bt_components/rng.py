"""
Deterministic Random Number Generation

Every GA run owns one explicitly threaded generator state. The state is the
legacy Mersenne Twister ``numpy.random.RandomState``: seeding, uniform
doubles, bounded integers and the cached polar-method Gaussian all follow
the classic randomkit algorithms, so a seed reproduces the same stream on
every platform.

Nothing here is global; callers pass the state to every draw.
"""

import numpy as np

RandomState = np.random.RandomState


def seed(value: int) -> RandomState:
    """Create a fresh generator state seeded with ``value``."""
    return np.random.RandomState(int(value) & 0xFFFFFFFF)


def next_uniform(state: RandomState) -> float:
    """Uniform double in [0, 1)."""
    return float(state.random_sample())


def next_interval(max_value: int, state: RandomState) -> int:
    """Uniform integer in [0, max_value] inclusive."""
    return int(state.randint(0, int(max_value) + 1))


def next_gaussian(state: RandomState) -> float:
    """Standard normal deviate; the second value of each pair is cached."""
    return float(state.standard_normal())


def uniform_array(state: RandomState, shape) -> np.ndarray:
    """Block of uniform doubles, drawn in row-major order."""
    return state.random_sample(shape)


def interval_array(max_value: int, state: RandomState, shape) -> np.ndarray:
    """Block of integers in [0, max_value], drawn in row-major order."""
    return state.randint(0, int(max_value) + 1, size=shape)
