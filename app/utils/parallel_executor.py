"""Parallel Executor - bounded fan-out/fan-in for collaborator API calls."""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

from app.core.config import Settings
from app.core.exceptions import PipelineCancelledError

# How often a waiting fan-in re-checks the cancellation event
_CANCEL_POLL_SECONDS = 0.1


class ParallelExecutor:
    """Runs independent API calls concurrently on a bounded worker pool."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize parallel executor.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.max_parallel_api_calls = max(1, getattr(settings, "max_parallel_api_calls", 5))

    def execute_fail_fast(
        self,
        tasks: list[Callable],
        task_names: Optional[list[str]] = None,
        is_fatal: Optional[Callable[[int, Exception], bool]] = None,
        cancel_event: Optional[threading.Event] = None,
        on_settled: Optional[Callable[[int, Any, Optional[Exception]], None]] = None,
        max_workers: Optional[int] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """
        Execute tasks concurrently, stopping at the first fatal failure.

        On a fatal failure (or when ``cancel_event`` is set) every task that has
        not started yet is cancelled and in-flight tasks are abandoned: the pool
        is shut down without waiting for them.

        Args:
            tasks: List of callable tasks to execute
            task_names: Optional list of task names for logging
            is_fatal: Decides whether a task's exception aborts the batch (default: every exception)
            cancel_event: Optional event that aborts the batch when set
            on_settled: Callback invoked as (index, result, exception) when a task settles
            max_workers: Maximum number of parallel workers (defaults to max_parallel_api_calls)

        Returns:
            List of tuples: (result, exception) for each task, in task order

        Raises:
            Exception: The first fatal task exception
            PipelineCancelledError: If cancel_event was set before all tasks settled
        """
        if not tasks:
            return []

        names = self._names(tasks, task_names)
        max_workers = max_workers or self.max_parallel_api_calls
        results: list[tuple[Any, Optional[Exception]]] = [(None, None)] * len(tasks)
        start_time = time.time()

        self.logger.debug(f"Fan-out: {len(tasks)} tasks with max {max_workers} workers")
        executor = ThreadPoolExecutor(max_workers=max_workers)
        try:
            future_to_index = {executor.submit(task): i for i, task in enumerate(tasks)}
            pending = set(future_to_index)
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    raise PipelineCancelledError(f"Cancelled with {len(pending)} of {len(tasks)} tasks unsettled")
                done, pending = wait(pending, timeout=_CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    index = future_to_index[future]
                    error = future.exception()
                    if error is not None and (is_fatal is None or is_fatal(index, error)):
                        self.logger.error(f"❌ {names[index]} failed, aborting batch: {error}")
                        raise error
                    results[index] = (future.result() if error is None else None, error)
                    if error is not None:
                        self.logger.warning(f"⚠️ {names[index]} failed (non-fatal): {error}")
                    if on_settled is not None:
                        on_settled(index, results[index][0], error)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self.logger.debug(f"Fan-in: {len(tasks)} tasks settled in {time.time() - start_time:.2f}s")
        return results

    @staticmethod
    def _names(tasks: list[Callable], task_names: Optional[list[str]]) -> list[str]:
        return [
            task_names[i] if task_names and i < len(task_names) else f"api_call_{i + 1}"
            for i in range(len(tasks))
        ]

