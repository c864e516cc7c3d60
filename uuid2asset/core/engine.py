"""
A batched, concurrency-limited download engine with per-task timeout and retry.

The engine is generic: it knows nothing about manifests or HTTP. It takes an
ordered list of tasks and an async `fetch_one(task) -> result` callable and
turns every task into exactly one result.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

import aiohttp

from uuid2asset.exceptions import TransientNetworkError

from .retry import RetryPolicy

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int, float], None]

# Expected network failures; any other exception from a fetch is retried too
RETRYABLE_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    TransientNetworkError,
)


def _describe(task: object) -> str:
    return getattr(task, "remote_url", None) or repr(task)


class DownloadEngine(Generic[T, R]):
    """
    Runs tasks in outer chunks of `concurrency_limit`. Each chunk is split into
    sub-batches of `sub_batch_size` which all run concurrently; the next chunk
    starts only once the whole chunk is done, so at most `concurrency_limit`
    fetches are ever in flight. Sub-batches only set the progress grain.
    """

    def __init__(
        self,
        concurrency_limit: int = 400,
        sub_batch_size: int = 50,
        task_timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        is_success: Callable[[R], bool] | None = None,
    ):
        if concurrency_limit < 1 or sub_batch_size < 1:
            raise ValueError("Concurrency limit and sub-batch size must be positive.")
        self.concurrency_limit = concurrency_limit
        # A chunk never holds more than concurrency_limit tasks
        self.sub_batch_size = min(sub_batch_size, concurrency_limit)
        self.task_timeout = task_timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._is_success = is_success or (lambda result: result is not None)
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.processed = 0
        self.succeeded = 0
        self.unsuccessful = 0
        self.retries = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self._last_update_time = time.monotonic()

    async def _fetch_with_retry(
        self,
        task: T,
        fetch_one: Callable[[T], Awaitable[R]],
        on_give_up: Callable[[T, Exception], R] | None,
    ) -> R:
        """Races one fetch against the timeout, retrying any failed attempt."""
        attempt = 0
        while True:
            attempt += 1
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await asyncio.wait_for(fetch_one(task), timeout=self.task_timeout)
            except RETRYABLE_ERRORS as e:
                error = e
            except Exception as e:
                log.debug(f"Unexpected error fetching {_describe(task)}", exc_info=True)
                error = e
            finally:
                self.in_flight -= 1

            reason = str(error) or type(error).__name__
            if not self.retry_policy.should_retry(attempt):
                log.warning(
                    f"[yellow]Giving up on {_describe(task)} after {attempt} "
                    f"attempts: {reason}[/yellow]"
                )
                if on_give_up is None:
                    raise error
                return on_give_up(task, error)

            log.error(f"Error downloading {_describe(task)}: {reason}")
            self.retries += 1
            await self.retry_policy.wait(attempt)

    async def _run_sub_batch(
        self,
        sub_batch: Sequence[T],
        total: int,
        fetch_one: Callable[[T], Awaitable[R]],
        on_progress: ProgressCallback | None,
        on_give_up: Callable[[T, Exception], R] | None,
    ) -> list[R]:
        sub_results = await asyncio.gather(
            *(self._fetch_with_retry(task, fetch_one, on_give_up) for task in sub_batch)
        )

        sub_success = sum(1 for result in sub_results if self._is_success(result))
        self.succeeded += sub_success
        self.unsuccessful += len(sub_results) - sub_success
        self.processed += len(sub_results)

        now = time.monotonic()
        elapsed = now - self._last_update_time
        items_per_second = len(sub_results) / elapsed if elapsed > 0 else 0.0
        self._last_update_time = now

        if on_progress:
            on_progress(self.processed, total, items_per_second)
        return list(sub_results)

    async def run(
        self,
        tasks: Sequence[T],
        fetch_one: Callable[[T], Awaitable[R]],
        on_progress: ProgressCallback | None = None,
        on_give_up: Callable[[T, Exception], R] | None = None,
    ) -> list[R]:
        """
        Executes all tasks and returns one result per task.

        Args:
            tasks: The ordered tasks to run.
            fetch_one: Coroutine function performing a single attempt. It must
                return a result; any exception it raises is retried.
            on_progress: Called after every sub-batch with
                (processed_so_far, total, items_per_second_since_last_call).
            on_give_up: Builds a result for a task whose retries are exhausted.
                Only used with a bounded retry policy.

        Returns:
            Results in input order.
        """
        self._reset_counters()
        total = len(tasks)
        results: list[R] = []
        log.debug(f"Starting batch processing of {total} items...")

        for i in range(0, total, self.concurrency_limit):
            chunk = tasks[i : i + self.concurrency_limit]
            sub_batches = [
                chunk[j : j + self.sub_batch_size]
                for j in range(0, len(chunk), self.sub_batch_size)
            ]
            chunk_results = await asyncio.gather(
                *(
                    self._run_sub_batch(sub, total, fetch_one, on_progress, on_give_up)
                    for sub in sub_batches
                )
            )
            for sub_results in chunk_results:
                results.extend(sub_results)

        return results
