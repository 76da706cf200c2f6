"""
Evaluation Module

Data-parallel fitness evaluation for GA populations.

Features:
- Population split into contiguous chunks evaluated by a thread pool
- Each worker writes only its own slice of the output arrays
- Sequential fallback for one worker or small populations
- Memory tracking with psutil and evaluation statistics

The generator state is never touched here, so evaluation order cannot
change a run's random stream.
"""

import concurrent.futures
import time
from typing import Callable, List, Optional
import psutil
from bt_constants import PerformanceConstants
from bt_exceptions import ParallelProcessingError
from bt_logging import get_logger

ChunkKernel = Callable[[slice], None]


class EvaluationEngine:
    """
    Fork-join evaluation of population slices.

    A kernel receives a ``slice`` of member indices and writes results for
    exactly those members. ``run`` returns once every slice is done.
    """

    def __init__(self, max_threads: int = 1,
                 min_chunk_size: int = PerformanceConstants.MIN_CHUNK_SIZE):
        """
        Initialize evaluation engine.

        Args:
            max_threads: Maximum number of worker threads
            min_chunk_size: Smallest number of members handed to one worker
        """
        self.max_threads = max(1, int(max_threads))
        self.min_chunk_size = max(1, int(min_chunk_size))
        self.logger = get_logger("EvaluationEngine")
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._process = psutil.Process()

        # Statistics
        self.stats = {
            'evaluations_performed': 0,
            'parallel_batches': 0,
            'sequential_batches': 0,
            'total_evaluation_time': 0.0,
            'peak_memory_usage': 0.0
        }

    def __enter__(self) -> 'EvaluationEngine':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Shut down the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def chunks(self, nmemb: int) -> List[slice]:
        """Contiguous member slices, one per worker at most."""
        workers = min(self.max_threads, max(1, nmemb // self.min_chunk_size))
        bounds = [nmemb * i // workers for i in range(workers + 1)]
        return [slice(bounds[i], bounds[i + 1]) for i in range(workers) if bounds[i] < bounds[i + 1]]

    def run(self, kernel: ChunkKernel, nmemb: int):
        """
        Evaluate ``nmemb`` members with ``kernel``.

        Raises:
            ParallelProcessingError: If any worker raised
        """
        start_time = time.time()
        slices = self.chunks(nmemb)

        if len(slices) <= 1:
            kernel(slice(0, nmemb))
            self.stats['sequential_batches'] += 1
        else:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_threads)
            futures = [self._executor.submit(kernel, rows) for rows in slices]
            concurrent.futures.wait(futures)
            failures = [future.exception() for future in futures if future.exception() is not None]
            if failures:
                raise ParallelProcessingError(
                    f"Evaluation failed in {len(failures)} of {len(futures)} workers: {failures[0]}",
                    worker_count=len(futures),
                    failed_tasks=len(failures)
                ) from failures[0]
            self.stats['parallel_batches'] += 1
            self.logger.log_parallel_processing(len(slices), nmemb, time.time() - start_time)

        self.stats['evaluations_performed'] += nmemb
        self.stats['total_evaluation_time'] += time.time() - start_time
        self._track_memory()

    def _track_memory(self):
        memory_gb = self._process.memory_info().rss / 1024**3
        self.stats['peak_memory_usage'] = max(self.stats['peak_memory_usage'], memory_gb)

    def get_statistics(self) -> dict:
        return dict(self.stats)


def evaluate_in_chunks(kernel: ChunkKernel, nmemb: int,
                       engine: Optional[EvaluationEngine] = None):
    """Run ``kernel`` over all members, in parallel when an engine is given."""
    if engine is None:
        kernel(slice(0, nmemb))
    else:
        engine.run(kernel, nmemb)
