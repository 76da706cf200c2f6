"""
Input File Loaders

Readers for the whitespace-separated input files. Every file starts with a
header line that is skipped; blank lines are ignored. A line that cannot be
parsed aborts the load with an InputFormatError naming the file, line
number and text.

- Bounds file: ``name lower upper stdev`` per model parameter
- Training data file: ``time performance training_stress``
- Trials file: one observation index per line
- Parameters file: ``name value`` per model parameter
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Tuple
import numpy as np
from bt_constants import DESIGN_VAR_NAMES, DESIGN_VAR_COUNT
from bt_exceptions import ConfigurationError, InputFileError, InputFormatError
from bt_components.model import ModelParameters, TrainingData

_PRINTF_INTEGER = re.compile(r'%([-+ #0]*\d*)(?:hh|h|ll|l|j|z|t)?([diu])')
_PRINTF_ANY = re.compile(r'%(?!%)')


def format_iteration_path(pattern: str, iteration: int) -> str:
    """
    Substitute the iteration number into a printf-style path pattern.

    ``%04zd`` style integer conversions are accepted; ``%%`` is a literal
    percent sign.
    """
    converted = _PRINTF_INTEGER.sub(r'%\1\2', pattern)
    conversions = len(_PRINTF_ANY.findall(converted.replace('%%', '')))
    if conversions == 0:
        return converted.replace('%%', '%')
    try:
        return converted % iteration
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid path pattern '{pattern}': {e}") from e


@dataclass
class DesignBounds:
    """Lower bound, upper bound and mutation stdev for every model parameter."""

    lower_bounds: np.ndarray
    upper_bounds: np.ndarray
    stdevs: np.ndarray

    @classmethod
    def zeros(cls) -> 'DesignBounds':
        return cls(np.zeros(DESIGN_VAR_COUNT), np.zeros(DESIGN_VAR_COUNT), np.zeros(DESIGN_VAR_COUNT))

    def rows(self) -> List[Tuple[str, float, float, float]]:
        return [(name, float(self.lower_bounds[i]), float(self.upper_bounds[i]), float(self.stdevs[i]))
                for i, name in enumerate(DESIGN_VAR_NAMES)]

    def format_table(self) -> str:
        """Tab-separated table of the bounds, header included."""
        lines = ["design_variable\tlower_bound\tupper_bound\tstdev"]
        lines.extend(f"{name}\t{lower:f}\t{upper:f}\t{stdev:f}" for name, lower, upper, stdev in self.rows())
        return "\n".join(lines)


def _data_lines(path: str) -> Iterator[Tuple[int, str, List[str]]]:
    """Yield (line_number, line, fields) for every data line of ``path``."""
    try:
        with open(path, 'r') as file:
            lines = file.readlines()
    except OSError as e:
        raise InputFileError(f"Unable to read input file {path}: {e.strerror or e}", path=path) from e

    if not lines:
        raise InputFormatError("Missing header line", path=path)

    for line_number, line in enumerate(lines[1:], start=2):
        fields = line.split()
        if fields:
            yield line_number, line, fields


def _parse_floats(fields: List[str], count: int, path: str, line_number: int, line: str) -> List[float]:
    if len(fields) < count:
        raise InputFormatError(f"Expected {count} columns", path=path, line_number=line_number, line=line)
    try:
        return [float(value) for value in fields[:count]]
    except ValueError:
        raise InputFormatError("Unable to parse line", path=path, line_number=line_number, line=line) from None


def design_var_index(name: str, case_sensitive: bool = False) -> int:
    """Position of a model parameter in the design vector, or -1."""
    for index, known in enumerate(DESIGN_VAR_NAMES):
        if (known == name) if case_sensitive else (known.lower() == name.lower()):
            return index
    return -1


def load_bounds(path: str) -> DesignBounds:
    """
    Load per-parameter bounds and mutation stdevs.

    Parameter names match case-insensitively; parameters not listed keep
    zero bounds and stdev.
    """
    bounds = DesignBounds.zeros()
    for line_number, line, fields in _data_lines(path):
        if len(fields) < 4:
            raise InputFormatError("Expected name, lower, upper and stdev", path=path,
                                   line_number=line_number, line=line)
        index = design_var_index(fields[0])
        if index == -1:
            raise InputFormatError(f"Unknown design variable '{fields[0]}'", path=path,
                                   line_number=line_number, line=line)
        lower, upper, stdev = _parse_floats(fields[1:], 3, path, line_number, line)
        bounds.lower_bounds[index] = lower
        bounds.upper_bounds[index] = upper
        bounds.stdevs[index] = stdev
    return bounds


def load_data(path: str) -> TrainingData:
    """Load the observation series; times must not decrease."""
    time, performance, training_stress = [], [], []
    for line_number, line, fields in _data_lines(path):
        t, p, w = _parse_floats(fields, 3, path, line_number, line)
        if time and t < time[-1]:
            raise InputFormatError("Observation times must not decrease", path=path,
                                   line_number=line_number, line=line)
        time.append(t)
        performance.append(p)
        training_stress.append(w)
    return TrainingData(np.array(time), np.array(performance), np.array(training_stress))


def load_trials(path: str, data_size: int = None) -> np.ndarray:
    """
    Load trial indices into the observation series.

    Indices must be strictly increasing and, when ``data_size`` is given,
    inside the series.
    """
    indices = []
    for line_number, line, fields in _data_lines(path):
        try:
            index = int(fields[0])
        except ValueError:
            raise InputFormatError("Unable to parse trial index", path=path,
                                   line_number=line_number, line=line) from None
        if index < 0 or (data_size is not None and index >= data_size):
            raise InputFormatError("Trial index out of range", path=path,
                                   line_number=line_number, line=line)
        if indices and index <= indices[-1]:
            raise InputFormatError("Trial indices must be strictly increasing", path=path,
                                   line_number=line_number, line=line)
        indices.append(index)
    if not indices:
        raise InputFormatError("No trial indices", path=path)
    return np.array(indices, dtype=np.intp)


def load_params(path: str) -> ModelParameters:
    """Load fixed model parameters; names are the exact lower-case names."""
    values = {}
    for line_number, line, fields in _data_lines(path):
        if len(fields) < 2:
            raise InputFormatError("Expected name and value", path=path,
                                   line_number=line_number, line=line)
        if design_var_index(fields[0], case_sensitive=True) == -1:
            raise InputFormatError(f"Unknown parameter '{fields[0]}'", path=path,
                                   line_number=line_number, line=line)
        values[fields[0]] = _parse_floats(fields[1:], 1, path, line_number, line)[0]
    return ModelParameters.from_mapping(values)
