"""Tests for the request batcher."""

import asyncio

import pytest

from quizcache.errors import BatcherClosedError, ProviderUnavailableError
from quizcache.services import RequestBatcher


class RecordingDispatch:
    """Dispatch function that echoes items and records each batch."""

    def __init__(self, gate: asyncio.Event | None = None) -> None:
        self.batches: list[list[str]] = []
        self.gate = gate

    async def __call__(self, items: list[str]) -> list:
        self.batches.append(list(items))
        if self.gate is not None:
            await self.gate.wait()
        return [
            ProviderUnavailableError(f"{item} failed") if item.startswith("bad") else item.upper()
            for item in items
        ]


class TestBatching:
    @pytest.mark.asyncio
    async def test_window_coalesces_requests(self) -> None:
        """Test requests submitted inside one window go out in one dispatch."""
        dispatch = RecordingDispatch()
        batcher = RequestBatcher(dispatch, window_seconds=0.05, max_batch_size=10)

        results = await asyncio.gather(*(batcher.submit(item) for item in ["a", "b", "c"]))

        assert results == ["A", "B", "C"]
        assert dispatch.batches == [["a", "b", "c"]]

    @pytest.mark.asyncio
    async def test_full_batch_flushes_before_window(self) -> None:
        """Test reaching max_batch_size dispatches without waiting for the timer."""
        dispatch = RecordingDispatch()
        batcher = RequestBatcher(dispatch, window_seconds=60.0, max_batch_size=2)

        results = await asyncio.wait_for(
            asyncio.gather(batcher.submit("a"), batcher.submit("b")), timeout=1.0
        )

        assert results == ["A", "B"]
        assert dispatch.batches == [["a", "b"]]
        await batcher.close()

    @pytest.mark.asyncio
    async def test_overflow_goes_to_next_batch(self) -> None:
        dispatch = RecordingDispatch()
        batcher = RequestBatcher(dispatch, window_seconds=0.05, max_batch_size=2)

        results = await asyncio.gather(*(batcher.submit(item) for item in ["a", "b", "c"]))

        assert results == ["A", "B", "C"]
        assert dispatch.batches == [["a", "b"], ["c"]]

    @pytest.mark.asyncio
    async def test_per_item_errors_are_routed_independently(self) -> None:
        """Test an error slot rejects only its own submitter."""
        batcher = RequestBatcher(RecordingDispatch(), window_seconds=0.05, max_batch_size=10)

        results = await asyncio.gather(
            batcher.submit("a"), batcher.submit("bad"), batcher.submit("c"), return_exceptions=True
        )

        assert results[0] == "A"
        assert isinstance(results[1], ProviderUnavailableError)
        assert results[2] == "C"

    @pytest.mark.asyncio
    async def test_wholesale_failure_rejects_whole_batch(self) -> None:
        """Test a raising dispatch rejects every item with the same error."""
        error = ProviderUnavailableError("provider down")

        async def failing(items: list[str]) -> list:
            raise error

        batcher = RequestBatcher(failing, window_seconds=0.05, max_batch_size=10)
        results = await asyncio.gather(
            batcher.submit("a"), batcher.submit("b"), return_exceptions=True
        )

        assert results == [error, error]

    @pytest.mark.asyncio
    async def test_wrong_outcome_count_rejects_batch(self) -> None:
        async def short(items: list[str]) -> list:
            return items[:-1]

        batcher = RequestBatcher(short, window_seconds=0.05, max_batch_size=10)
        results = await asyncio.gather(
            batcher.submit("a"), batcher.submit("b"), return_exceptions=True
        )

        assert all(isinstance(result, RuntimeError) for result in results)

    @pytest.mark.asyncio
    async def test_submissions_during_flush_go_to_next_batch(self) -> None:
        """Test an in-flight dispatch does not block or absorb new requests."""
        gate = asyncio.Event()
        dispatch = RecordingDispatch(gate=gate)
        batcher = RequestBatcher(dispatch, window_seconds=0.01, max_batch_size=10)

        first = asyncio.ensure_future(batcher.submit("a"))
        while not dispatch.batches:
            await asyncio.sleep(0.005)

        second = asyncio.ensure_future(batcher.submit("b"))
        while len(dispatch.batches) < 2:
            await asyncio.sleep(0.005)
        gate.set()

        assert await first == "A"
        assert await second == "B"
        assert dispatch.batches == [["a"], ["b"]]

    def test_construction_does_not_need_running_loop(self) -> None:
        batcher = RequestBatcher(RecordingDispatch(), window_seconds=1.0, max_batch_size=10)
        assert batcher.pending_count == 0

    def test_rejects_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            RequestBatcher(RecordingDispatch(), window_seconds=1.0, max_batch_size=-1)


class TestIsolation:
    @pytest.mark.asyncio
    async def test_batchers_do_not_share_queues(self) -> None:
        """Test two batcher instances keep separate pending lists."""
        first_dispatch, second_dispatch = RecordingDispatch(), RecordingDispatch()
        first = RequestBatcher(first_dispatch, window_seconds=0.02, max_batch_size=10)
        second = RequestBatcher(second_dispatch, window_seconds=0.02, max_batch_size=10)

        await asyncio.gather(first.submit("a"), second.submit("b"))

        assert first_dispatch.batches == [["a"]]
        assert second_dispatch.batches == [["b"]]


class TestClose:
    @pytest.mark.asyncio
    async def test_close_rejects_queued_items(self) -> None:
        """Test closing cancels the window timer and rejects undispatched requests."""
        dispatch = RecordingDispatch()
        batcher = RequestBatcher(dispatch, window_seconds=60.0, max_batch_size=10)

        pending = asyncio.ensure_future(batcher.submit("a"))
        await asyncio.sleep(0)
        await batcher.close()

        with pytest.raises(BatcherClosedError):
            await pending
        assert dispatch.batches == []

    @pytest.mark.asyncio
    async def test_submit_after_close_raises(self) -> None:
        batcher = RequestBatcher(RecordingDispatch(), window_seconds=1.0, max_batch_size=10)
        await batcher.close()

        with pytest.raises(BatcherClosedError):
            await batcher.submit("a")

    @pytest.mark.asyncio
    async def test_close_waits_for_in_flight_batches(self) -> None:
        gate = asyncio.Event()
        dispatch = RecordingDispatch(gate=gate)
        batcher = RequestBatcher(dispatch, window_seconds=0.01, max_batch_size=10)

        pending = asyncio.ensure_future(batcher.submit("a"))
        while not dispatch.batches:
            await asyncio.sleep(0.005)

        closing = asyncio.ensure_future(batcher.close())
        await asyncio.sleep(0.01)
        assert not closing.done()

        gate.set()
        await closing
        assert await pending == "A"

    @pytest.mark.asyncio
    async def test_flush_dispatches_immediately(self) -> None:
        dispatch = RecordingDispatch()
        batcher = RequestBatcher(dispatch, window_seconds=60.0, max_batch_size=10)

        pending = asyncio.ensure_future(batcher.submit("a"))
        await asyncio.sleep(0)
        await batcher.flush()

        assert await pending == "A"
        await batcher.close()
