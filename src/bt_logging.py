"""
Centralized Logging System for the Banister Model Optimizers

Structured logging on top of the standard logging module. Console output
goes to stderr so TSV results written to stdout stay clean; an optional
timestamped log file under --log-dir receives every level.
"""

import logging
import sys
from datetime import datetime
from typing import Optional
from pathlib import Path

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}
COLOR_RESET = '\033[0m'

CONSOLE_FORMAT = '%(levelname)-8s | %(name)s | %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)-8s | %(name)s | %(message)s'


class BTFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    def __init__(self, fmt: str = CONSOLE_FORMAT, colored: bool = False):
        super().__init__(fmt, '%H:%M:%S')
        self.colored = colored

    def format(self, record):
        if not self.colored:
            return super().format(record)
        # Copy so the file handler still sees the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = LEVEL_COLORS.get(record.levelno, '')
        record.levelname = f"{color}{record.levelname}{COLOR_RESET}"
        return super().format(record)


class BTLogger:
    """
    Logger for the optimizers with console and file output.

    Wraps a standard library logger and adds key=value context formatting
    plus helpers for the events every run reports.
    """

    def __init__(self, name: str = "Banister", level: str = "INFO",
                 log_to_file: bool = False, output_dir: str = "logs",
                 console_colors: bool = True):
        """
        Args:
            name: Logger name
            level: DEBUG, INFO, WARNING, ERROR or CRITICAL
            log_to_file: Also write a timestamped log file
            output_dir: Directory for the log file
            console_colors: Color level names when stderr is a terminal
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        self.log_file = None

        colored = console_colors and getattr(sys.stderr, 'isatty', lambda: False)()
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(self.logger.level)
        console.setFormatter(BTFormatter(CONSOLE_FORMAT, colored=colored))
        self.logger.addHandler(console)

        if log_to_file:
            self.log_file = self._add_file_handler(Path(output_dir))

    def _add_file_handler(self, log_dir: Path) -> str:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"banister_run_{datetime.now():%Y%m%d_%H%M%S}.log"
        handler = logging.FileHandler(log_path)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(BTFormatter(FILE_FORMAT))
        self.logger.addHandler(handler)
        return str(log_path)

    @property
    def is_debug(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, exception: Exception = None, **kwargs):
        """Log an error, appending the exception type and text when given."""
        self.logger.error(self._with_exception(message, exception, kwargs))

    def critical(self, message: str, exception: Exception = None, **kwargs):
        """Log a fatal error, appending the exception type and text when given."""
        self.logger.critical(self._with_exception(message, exception, kwargs))

    def _with_exception(self, message: str, exception: Optional[Exception], context: dict) -> str:
        text = self._format_message(message, **context)
        if exception is not None:
            text += f" | Exception: {type(exception).__name__}: {exception}"
        return text

    def _format_message(self, message: str, **kwargs) -> str:
        """Append ' | key=value' pairs to a message."""
        parts = [message] + [f"{key}={value}" for key, value in kwargs.items()]
        return " | ".join(parts)

    # Run-specific logging methods
    def log_iteration_start(self, iteration: int, num_iterations: int):
        """Log the start of one GA iteration."""
        self.info(f"Iteration {iteration}", of=num_iterations, seed=iteration)

    def log_generation_summary(self, seed: int, generation: int, summary):
        """Log the min/median/max fitness of one generation."""
        self.debug(f"Seed {seed}, Generation {generation}",
                   min=f"{summary.min:f}",
                   median=f"{summary.median:f}",
                   max=f"{summary.max:f}")

    def log_run_complete(self, iteration: int, best_fitness: float,
                         time_taken: float, peak_memory: float):
        """Log completion of one GA iteration."""
        self.info(f"Iteration {iteration} complete",
                  best_fitness=f"{best_fitness:f}",
                  time_taken=f"{time_taken:.2f}s",
                  peak_memory=f"{peak_memory:.3f}GB")

    def log_config_summary(self, config):
        """Log configuration summary."""
        self.info("Configuration loaded",
                  population=config.population_size,
                  generations=config.max_generations,
                  iterations=config.num_iterations,
                  threads=config.max_threads)
        self.debug(config.summary())

    def log_parallel_processing(self, worker_count: int, task_count: int,
                                time_taken: float):
        """Log parallel processing performance."""
        rate = task_count / time_taken if time_taken > 0 else float('inf')
        self.debug("Parallel evaluation complete",
                   workers=worker_count,
                   tasks=task_count,
                   time_taken=f"{time_taken:.4f}s",
                   tasks_per_second=f"{rate:.1f}")


_global_logger: Optional[BTLogger] = None


def get_logger(name: str = "Banister") -> BTLogger:
    """Return the process-wide logger, creating an INFO logger on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = BTLogger(name)
    return _global_logger


def setup_logging(level: str = "INFO", log_to_file: bool = False,
                  output_dir: str = "logs", console_colors: bool = True) -> BTLogger:
    """Replace the process-wide logger; called once per program run."""
    global _global_logger
    _global_logger = BTLogger(level=level, log_to_file=log_to_file,
                              output_dir=output_dir, console_colors=console_colors)
    return _global_logger
