"""
Custom Exception Classes for the Banister Model Optimizers

Input, configuration and output failures get their own exception types so
the command line front end can report the offending file and line.
Numerically infeasible designs are not errors: they score -inf fitness.
"""


class BanisterError(Exception):
    """Base exception for all fitness-fatigue model errors."""
    pass


class ConfigurationError(BanisterError, ValueError):
    """Raised when optimizer configuration is invalid or inconsistent."""
    pass


class UnknownConstraintError(ConfigurationError):
    """Raised when a constraint strategy name is not registered."""

    def __init__(self, name: str, available=None):
        message = f"Unknown constraint strategy: {name}"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)
        self.name = name
        self.available = list(available or [])


class InputFormatError(BanisterError):
    """Raised when a line of an input file cannot be parsed."""

    def __init__(self, message: str, path: str = None,
                 line_number: int = None, line: str = None):
        details = message
        if path is not None:
            details += f" in {path}"
        if line_number is not None:
            details += f" at line {line_number}"
        if line is not None:
            details += f": '{line.rstrip()}'"
        super().__init__(details)
        self.path = path
        self.line_number = line_number
        self.line = line


class InputFileError(BanisterError, OSError):
    """Raised when an input file cannot be opened or read."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class PopulationError(BanisterError):
    """Raised when population operations receive inconsistent arrays."""

    def __init__(self, message: str, population_size: int = None):
        super().__init__(message)
        self.population_size = population_size


class ReportingError(BanisterError, OSError):
    """Raised when a report or result file cannot be written."""

    def __init__(self, message: str, path: str = None,
                 file_type: str = None):
        super().__init__(message)
        self.path = path
        self.file_type = file_type


class ParallelProcessingError(BanisterError):
    """Raised when a parallel evaluation worker fails."""

    def __init__(self, message: str, worker_count: int = None,
                 failed_tasks: int = None):
        super().__init__(message)
        self.worker_count = worker_count
        self.failed_tasks = failed_tasks
