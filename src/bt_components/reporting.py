"""
Reporting and I/O Module

Writes the tab-separated result files of both programs.

Features:
- Final result tables (best design per iteration)
- Per-iteration population, integration and convergence reports
- Printf-style per-iteration file name patterns
- Six-decimal float formatting throughout

Tables are built as pandas DataFrames and written with ``to_csv``; the
convergence file is streamed one generation at a time with the csv module.
"""

import csv
import os
from typing import Optional, Sequence
import numpy as np
import pandas as pd
from bt_constants import DESIGN_VAR_NAMES, OutputPatterns
from bt_exceptions import ReportingError
from bt_logging import get_logger
from bt_components.data_files import format_iteration_path
from bt_components.model import TrainingData
from bt_components.order_statistics import FitnessQuartiles
from bt_components.population_management import TrainingPopulation

CONVERGENCE_COLUMNS = ('generation', 'min', 'q1', 'median', 'q3', 'max')


def _ensure_parent(path: str):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


class ConvergenceWriter:
    """
    Streams the fitness quartiles of every generation to a TSV file.

    Usable as a context manager; the header is written on open.
    """

    def __init__(self, path: str):
        self.path = path
        self.rows_written = 0
        try:
            _ensure_parent(path)
            self._file = open(path, 'w', newline='')
        except OSError as e:
            raise ReportingError(f"Unable to open convergence file: {path}", path=path,
                                 file_type='convergence') from e
        self._writer = csv.writer(self._file, delimiter='\t', lineterminator='\n')
        self._writer.writerow(CONVERGENCE_COLUMNS)

    def write(self, generation: int, quartiles: FitnessQuartiles):
        self._writer.writerow([generation] + [f"{value:f}" for value in quartiles])
        self.rows_written += 1

    def close(self):
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> 'ConvergenceWriter':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BTReporter:
    """
    Writer for result and report tables.

    Tracks the files written during a run so the driver can log them.
    """

    def __init__(self):
        self.logger = get_logger("Reporter")
        self.files_written = []

    def _write_frame(self, frame: pd.DataFrame, path: str, file_type: str):
        try:
            _ensure_parent(path)
            frame.to_csv(path, sep='\t', index=False, float_format=OutputPatterns.FLOAT_FORMAT,
                         na_rep='nan', lineterminator='\n')
        except OSError as e:
            raise ReportingError(f"Unable to write {file_type} file: {path}", path=path,
                                 file_type=file_type) from e
        self.files_written.append(path)
        self.logger.debug(f"Wrote {file_type} file", path=path, rows=len(frame))

    @staticmethod
    def designs_frame(designs: np.ndarray, mean_abs_residuals: Optional[Sequence[float]] = None) -> pd.DataFrame:
        frame = pd.DataFrame(np.asarray(designs, dtype=float), columns=list(DESIGN_VAR_NAMES))
        if mean_abs_residuals is not None:
            frame['mean_abs_residual'] = np.asarray(mean_abs_residuals, dtype=float)
        return frame

    @staticmethod
    def training_population_frame(population: TrainingPopulation) -> pd.DataFrame:
        columns = [f"day{day:03d}" for day in range(population.num_days)]
        frame = pd.DataFrame(population.stresses, columns=columns)
        frame['final_performance'] = population.final_performances
        frame['penalty'] = population.penalties
        frame['roughness'] = population.roughnesses
        frame['fitness'] = population.fitnesses
        return frame

    @staticmethod
    def data_frame(data: TrainingData) -> pd.DataFrame:
        return pd.DataFrame({
            'day': data.time,
            'performance': data.performance,
            'training_stress': data.training_stress,
        })

    @staticmethod
    def plan_integration_frame(rows, constraint) -> pd.DataFrame:
        columns = ['day', 'stress', 'fitness', 'fatigue', 'performance'] + list(constraint.header_columns)
        return pd.DataFrame(list(rows), columns=columns)

    def write_designs(self, path: str, designs, mean_abs_residuals=None):
        """Model designs, one per row, with an optional residual column."""
        self._write_frame(self.designs_frame(designs, mean_abs_residuals), path, 'designs')

    def write_training_population(self, path: str, population: TrainingPopulation):
        """Stress plans with final performance, penalty, roughness and fitness."""
        self._write_frame(self.training_population_frame(population), path, 'population')

    def write_data(self, path: str, data: TrainingData):
        self._write_frame(self.data_frame(data), path, 'integration')

    def write_plan_integration(self, path: str, rows, constraint):
        self._write_frame(self.plan_integration_frame(rows, constraint), path, 'integration')

    @staticmethod
    def iteration_path(pattern: Optional[str], iteration: int) -> Optional[str]:
        """Per-iteration path for an enabled report, None when disabled."""
        if pattern is None:
            return None
        return format_iteration_path(pattern, iteration)
