"""
Bounded concurrency for per-repository analysis.

Tasks are plain callables; at most `limit` run at once on a thread pool, in
the order they were queued. Failures are captured, never raised.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from github_miner.cancellation import CancellationToken


T = TypeVar("T")


@dataclass
class TaskResult(Generic[T]):
    """Outcome of one task, index-aligned with the submitted list."""
    index: int
    value: Optional[T] = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


def run_bounded(
    tasks: Sequence[Callable[[], T]],
    limit: int,
    cancel_token: Optional[CancellationToken] = None,
) -> List[TaskResult[T]]:
    """
    Run tasks with at most `limit` in flight.

    As each task finishes, the next queued one starts. On cancellation,
    queued tasks are dropped and in-flight ones are allowed to finish.

    Args:
        tasks: Zero-argument callables, dispatched in order
        limit: Maximum concurrent tasks (values < 1 mean 1)
        cancel_token: Checked after each completion

    Returns:
        One TaskResult per task, in submission order
    """
    results: List[TaskResult[T]] = [TaskResult(index=i) for i in range(len(tasks))]
    if not tasks:
        return results

    limit = max(1, limit)

    with ThreadPoolExecutor(max_workers=limit) as executor:
        future_to_index = {}
        for index, task in enumerate(tasks):
            future_to_index[executor.submit(task)] = index

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            if future.cancelled():
                results[index].cancelled = True
                continue

            error = future.exception()
            if error is not None:
                results[index].error = error
            else:
                results[index].value = future.result()

            if cancel_token and cancel_token.cancelled:
                for pending in future_to_index:
                    pending.cancel()

    return results
