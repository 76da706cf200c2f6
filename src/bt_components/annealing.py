"""
Annealing Schedule for Training Optimization

Per-generation control of the penalty, roughness, crossover and mutation
parameters. The roughness penalty is active only in the middle of the run,
between a fifth and two thirds of the generations, and its window shrinks
linearly from ``MAX_ROUGHNESS_DAYS`` to one day across that range. The
other parameters change geometrically once per generation.
"""

import math
from dataclasses import dataclass
from bt_constants import MAX_ROUGHNESS_DAYS


@dataclass
class AnnealingState:
    """Current values of every annealed parameter."""

    penalty_factor: float
    roughness_factor: float
    roughness_days: int
    blx_alpha: float
    mutate_stdev: float
    mutate_probability: float


def roughness_window(max_generations: int):
    """Bounds (exclusive) of the generations that weight roughness."""
    return int(max_generations / 5.), int(2 * max_generations / 3.)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AnnealingSchedule:
    """
    Drives the annealed GA parameters across generations.

    Call ``begin_generation`` before rescoring each generation and
    ``end_generation`` after culling it.
    """

    def __init__(self, max_generations: int, init_penalty_factor: float,
                 penalty_factor_rate: float, max_roughness_factor: float,
                 init_blx_alpha: float, blx_alpha_change_rate: float,
                 init_mutate_stdev: float, init_mutate_probability: float,
                 mutate_change_rate: float):
        self.max_generations = max_generations
        self.penalty_factor_rate = penalty_factor_rate
        self.max_roughness_factor = max_roughness_factor
        self.blx_alpha_change_rate = blx_alpha_change_rate
        self.mutate_change_rate = mutate_change_rate
        self.state = AnnealingState(
            penalty_factor=init_penalty_factor,
            roughness_factor=0.0,
            roughness_days=MAX_ROUGHNESS_DAYS,
            blx_alpha=init_blx_alpha,
            mutate_stdev=init_mutate_stdev,
            mutate_probability=init_mutate_probability,
        )

    @classmethod
    def from_config(cls, config) -> 'AnnealingSchedule':
        return cls(
            max_generations=config.max_generations,
            init_penalty_factor=config.init_penalty_factor,
            penalty_factor_rate=config.penalty_factor_rate,
            max_roughness_factor=config.max_roughness_factor,
            init_blx_alpha=config.init_blx_alpha,
            blx_alpha_change_rate=config.blx_alpha_change_rate,
            init_mutate_stdev=config.init_mutate_stdev,
            init_mutate_probability=config.init_mutate_probability,
            mutate_change_rate=config.mutate_change_rate,
        )

    def begin_generation(self, generation: int) -> AnnealingState:
        """
        Set the roughness factor and window for 0-based ``generation``.

        Outside the roughness window the factor is zero and the window
        length keeps its last value.
        """
        min_generation, max_generation = roughness_window(self.max_generations)
        if min_generation < generation < max_generation:
            self.state.roughness_factor = self.max_roughness_factor
            # Rounded to nearest, not truncated
            days = round_half_up(
                MAX_ROUGHNESS_DAYS * (max_generation - generation) / (max_generation - min_generation))
            self.state.roughness_days = max(1, days)
        else:
            self.state.roughness_factor = 0.0
        return self.state

    def end_generation(self) -> AnnealingState:
        """Apply the geometric per-generation updates."""
        self.state.penalty_factor *= self.penalty_factor_rate
        self.state.blx_alpha *= self.blx_alpha_change_rate
        self.state.mutate_stdev *= self.mutate_change_rate
        self.state.mutate_probability *= self.mutate_change_rate
        return self.state
