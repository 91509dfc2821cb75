"""Coalescing of independent generation requests.

Requests submitted within a short window are dispatched together in one
downstream call. Each submitter still gets its own result: the dispatch
function returns one outcome per item, and an exception in an item's slot
rejects only that submitter. If the dispatch itself raises, every item of
that batch is rejected with the same error; retrying is the caller's job.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from quizcache.config import settings
from quizcache.errors import BatcherClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

BatchDispatch = Callable[[list[T]], Awaitable[list[Any]]]


@dataclass
class _Pending(Generic[T]):
    item: T
    future: asyncio.Future


class RequestBatcher(Generic[T, R]):
    """Owned, injectable request coalescer.

    A batch is flushed when ``max_batch_size`` items are queued or when
    ``window_seconds`` have passed since the first item of the batch was
    queued, whichever comes first. Items submitted while a batch is being
    dispatched go into the next batch.

    Example:
        ```python
        batcher = RequestBatcher(dispatch=client.generate_many, window_seconds=1.0)
        response = await batcher.submit(GenerationCall(prompt, options))
        ...
        await batcher.close()
        ```
    """

    def __init__(
        self,
        dispatch: BatchDispatch,
        window_seconds: float | None = None,
        max_batch_size: int | None = None,
    ) -> None:
        """Initialize the batcher.

        Args:
            dispatch: Coroutine function taking a list of items and returning
                one outcome (result or exception instance) per item
            window_seconds: Collection window. Defaults to settings.
            max_batch_size: Items per dispatch. Defaults to settings.
        """
        self._dispatch = dispatch
        self._window = window_seconds or settings.batch_window_seconds
        self._max_batch_size = max_batch_size or settings.batch_max_size
        if self._max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        self._pending: list[_Pending[T]] = []
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._closed = False

    async def submit(self, item: T) -> R:
        """Queue an item and wait for its slice of the batch outcome.

        Args:
            item: The request to dispatch

        Returns:
            The dispatch outcome for this item

        Raises:
            BatcherClosedError: If the batcher is closed
            Exception: The item's own error, or the whole batch's error
        """
        if self._closed:
            raise BatcherClosedError("Request batcher is closed")

        future = asyncio.get_running_loop().create_future()
        self._pending.append(_Pending(item, future))

        if len(self._pending) >= self._max_batch_size:
            self._start_flush()
        else:
            self._arm_timer()

        return await future

    async def flush(self) -> None:
        """Dispatch everything queued now and wait for all in-flight batches."""
        while self._pending:
            self._start_flush()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def close(self) -> None:
        """Stop accepting requests and cancel the window timer.

        Queued items that were never dispatched are rejected with
        BatcherClosedError; batches already dispatched are awaited.
        """
        self._closed = True
        self._cancel_timer()

        pending, self._pending = self._pending, []
        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(BatcherClosedError("Request batcher closed before dispatch"))

        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    @property
    def pending_count(self) -> int:
        """Number of items waiting for the next flush."""
        return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        """Number of batches currently being dispatched."""
        return len(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    def _arm_timer(self) -> None:
        if self._timer is None and self._pending:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self._window, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._start_flush()

    def _start_flush(self) -> None:
        self._cancel_timer()

        batch = [entry for entry in self._pending[: self._max_batch_size] if not entry.future.done()]
        del self._pending[: self._max_batch_size]

        if batch:
            task = asyncio.get_running_loop().create_task(self._run_batch(batch))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

        if len(self._pending) >= self._max_batch_size:
            self._start_flush()
        else:
            self._arm_timer()

    async def _run_batch(self, batch: list[_Pending[T]]) -> None:
        logger.info("Processing batch of %d generation requests", len(batch))

        try:
            outcomes = await self._dispatch([entry.item for entry in batch])
            if len(outcomes) != len(batch):
                raise RuntimeError(
                    f"Batch dispatch returned {len(outcomes)} outcomes for {len(batch)} requests"
                )
        except Exception as e:
            logger.error("Batch dispatch of %d requests failed: %s", len(batch), e)
            for entry in batch:
                if not entry.future.done():
                    entry.future.set_exception(e)
            return

        for entry, outcome in zip(batch, outcomes):
            if entry.future.done():
                continue
            if isinstance(outcome, BaseException):
                entry.future.set_exception(outcome)
            else:
                entry.future.set_result(outcome)
