#!/usr/bin/env python3
"""Tests for the two-phase chain event monitor."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from meme_sniper.errors import TransientFetchError
from meme_sniper.models import ChainEvent, EventsPage
from meme_sniper.utils.polling_event_listener import ChainEventMonitor, MonitorPhase, MonitorState

FACTORY = "0x" + "0" * 63 + "f"


def event(block_number: int, index: int = 0) -> ChainEvent:
    return ChainEvent(
        from_address=0xF,
        keys=(0x1,),
        data=(),
        block_number=block_number,
        transaction_hash=f"0x{block_number:x}{index}",
        event_index=index,
    )


def page(*blocks: int, token: str | None = None) -> EventsPage:
    return EventsPage(events=tuple(event(b, i) for i, b in enumerate(blocks)), continuation_token=token)


@pytest.fixture
def rpc():
    client = MagicMock()
    client.get_events = AsyncMock(return_value=page())
    return client


def make_monitor(rpc, start_block: int = 10, permits: int = 5, **kwargs) -> ChainEventMonitor:
    return ChainEventMonitor(
        rpc=rpc,
        contract_address=FACTORY,
        keys=[0x1],
        state=MonitorState.starting_at(start_block),
        permits=asyncio.Semaphore(permits),
        polling_interval=kwargs.pop("polling_interval", 0.01),
        error_delay=kwargs.pop("error_delay", 0),
        **kwargs,
    )


class Recorder:
    """Handler that remembers the blocks it saw."""

    def __init__(self):
        self.blocks: list[int] = []

    async def __call__(self, chain_event: ChainEvent) -> None:
        self.blocks.append(chain_event.block_number)


class TestMonitorState:
    """Tests for the shared watermark."""

    def test_starting_at(self):
        """Test that the first fetch starts at the configured block."""
        state = MonitorState.starting_at(100)
        assert state.last_processed_block == 99
        assert state.phase is MonitorPhase.CATCH_UP

    def test_advance_is_monotonic(self):
        """Test that the watermark never moves backwards."""
        state = MonitorState.starting_at(0)
        assert state.advance(12) is True
        assert state.advance(5) is False
        assert state.advance(12) is False
        assert state.last_processed_block == 12


class TestCatchUp:
    """Tests for the historical phase."""

    @pytest.mark.asyncio
    async def test_pages_through_continuation_tokens(self, rpc):
        """Test that every page is dispatched and the token is followed."""
        rpc.get_events.side_effect = [page(10, 11, token="t1"), page(12)]
        monitor = make_monitor(rpc, start_block=10)
        handler = Recorder()

        await monitor.catch_up(handler)
        await monitor.drain()

        assert sorted(handler.blocks) == [10, 11, 12]
        assert monitor.state.last_processed_block == 12
        assert monitor.state.phase is MonitorPhase.LIVE_POLL
        assert monitor.state.continuation_token is None

        first, second = rpc.get_events.await_args_list
        assert first.kwargs["from_block"] == 10
        assert first.kwargs["continuation_token"] is None
        assert second.kwargs["from_block"] == 10
        assert second.kwargs["continuation_token"] == "t1"

    @pytest.mark.asyncio
    async def test_empty_page_with_token_keeps_going(self, rpc):
        """Test that only an empty page without a token ends catch-up."""
        rpc.get_events.side_effect = [page(token="t1"), page(15), page()]
        monitor = make_monitor(rpc, start_block=10)
        handler = Recorder()

        await monitor.catch_up(handler)
        await monitor.drain()

        assert handler.blocks == [15]
        assert rpc.get_events.await_count == 2

    @pytest.mark.asyncio
    async def test_skips_blocks_at_or_below_watermark(self, rpc):
        """Test that catch-up never re-dispatches already processed blocks."""
        rpc.get_events.side_effect = [page(10, 11, 12)]
        monitor = make_monitor(rpc, start_block=12)
        handler = Recorder()

        await monitor.catch_up(handler)
        await monitor.drain()

        assert handler.blocks == [12]
        assert monitor.events_skipped == 2

    @pytest.mark.asyncio
    async def test_fetch_error_retries_same_request(self, rpc):
        """Test that a transient error leaves the cursor untouched."""
        rpc.get_events.side_effect = [
            page(10, token="t1"),
            TransientFetchError("timeout"),
            page(11),
        ]
        monitor = make_monitor(rpc, start_block=10)
        handler = Recorder()

        await monitor.catch_up(handler)
        await monitor.drain()

        assert sorted(handler.blocks) == [10, 11]
        assert monitor.fetch_errors == 1
        failed, retried = rpc.get_events.await_args_list[1:]
        assert failed.kwargs == retried.kwargs
        assert retried.kwargs["continuation_token"] == "t1"

    @pytest.mark.asyncio
    async def test_shutdown_stops_fetching(self, rpc):
        """Test that no fetch is issued once shutdown is requested."""
        monitor = make_monitor(rpc)
        await monitor.stop()

        await monitor.catch_up(Recorder())

        rpc.get_events.assert_not_awaited()


class TestLivePoll:
    """Tests for the live phase."""

    @pytest.mark.asyncio
    async def test_polls_after_watermark(self, rpc):
        """Test that live polling starts right after the watermark."""
        rpc.get_events.return_value = page(13, 14)
        monitor = make_monitor(rpc, start_block=13)
        handler = Recorder()

        dispatched = await monitor.poll_once(handler)
        await monitor.drain()

        assert dispatched == 2
        assert sorted(handler.blocks) == [13, 14]
        assert monitor.state.last_processed_block == 14
        call = rpc.get_events.await_args
        assert call.kwargs["from_block"] == 13
        assert call.kwargs["continuation_token"] is None

    @pytest.mark.asyncio
    async def test_follows_continuation_within_a_block(self, rpc):
        """Test that a page cut in the middle of a block is followed to the end."""
        rpc.get_events.side_effect = [
            EventsPage(events=(event(20, 0),), continuation_token="t1"),
            EventsPage(events=(event(20, 1),), continuation_token="t2"),
            EventsPage(events=(event(21, 0),)),
        ]
        monitor = make_monitor(rpc, start_block=20, chunk_size=1)
        seen = []

        async def handler(chain_event):
            seen.append(chain_event.transaction_hash)

        assert await monitor.poll_once(handler) == 3
        await monitor.drain()

        assert sorted(seen) == ["0x140", "0x141", "0x150"]
        assert monitor.state.last_processed_block == 21
        calls = rpc.get_events.await_args_list
        assert [c.kwargs["continuation_token"] for c in calls] == [None, "t1", "t2"]
        assert {c.kwargs["from_block"] for c in calls} == {20}
        assert {c.kwargs["chunk_size"] for c in calls} == {1}

    @pytest.mark.asyncio
    async def test_watermark_waits_for_last_page(self, rpc):
        """Test that a failed follow-up fetch is retried before the watermark moves."""
        responses = iter([
            EventsPage(events=(event(20, 0),), continuation_token="t1"),
            TransientFetchError("timeout"),
            EventsPage(events=(event(20, 1),)),
        ])
        monitor = make_monitor(rpc, start_block=20, chunk_size=1)
        marks = []

        async def get_events(*args, **kwargs):
            marks.append(monitor.state.last_processed_block)
            response = next(responses)
            if isinstance(response, Exception):
                raise response
            return response

        rpc.get_events.side_effect = get_events
        handler = Recorder()

        assert await monitor.poll_once(handler) == 2
        await monitor.drain()

        assert handler.blocks == [20, 20]
        assert marks == [19, 19, 19]
        assert monitor.state.last_processed_block == 20
        assert monitor.fetch_errors == 1
        failed, retried = rpc.get_events.await_args_list[1:]
        assert failed.kwargs == retried.kwargs
        assert retried.kwargs["continuation_token"] == "t1"

    @pytest.mark.asyncio
    async def test_empty_poll_keeps_watermark(self, rpc):
        """Test that an empty poll changes nothing."""
        monitor = make_monitor(rpc, start_block=13)

        assert await monitor.poll_once(Recorder()) == 0
        assert monitor.state.last_processed_block == 12

    @pytest.mark.asyncio
    async def test_watermark_never_decreases(self, rpc):
        """Test monotonicity across a sequence of polls."""
        rpc.get_events.side_effect = [page(20), page(18, 19), TransientFetchError("x"), page(25)]
        monitor = make_monitor(rpc, start_block=15)
        seen = []

        for _ in range(4):
            await monitor.poll_once(Recorder())
            seen.append(monitor.state.last_processed_block)
        await monitor.drain()

        assert seen == sorted(seen)
        assert seen[-1] == 25


class TestHandlerConcurrency:
    """Tests for permits, handler failures and draining."""

    @pytest.mark.asyncio
    async def test_permits_bound_in_flight_handlers(self, rpc):
        """Test that the monitor waits for a permit before dispatching more."""
        rpc.get_events.return_value = page(13, 14)
        monitor = make_monitor(rpc, start_block=13, permits=1)
        release = asyncio.Event()
        started = []

        async def handler(chain_event):
            started.append(chain_event.block_number)
            await release.wait()

        poll = asyncio.create_task(monitor.poll_once(handler))
        for _ in range(5):
            await asyncio.sleep(0)

        assert started == [13]
        assert monitor.in_flight == 1
        assert not poll.done()

        release.set()
        assert await poll == 2
        await monitor.drain()
        assert started == [13, 14]
        assert monitor.in_flight == 0

    @pytest.mark.asyncio
    async def test_failing_handler_releases_permit(self, rpc):
        """Test that a handler exception is logged and its permit returned."""
        rpc.get_events.return_value = page(13, 14)
        monitor = make_monitor(rpc, start_block=13, permits=1)

        async def handler(chain_event):
            raise RuntimeError("boom")

        assert await monitor.poll_once(handler) == 2
        await monitor.drain()
        assert not monitor.permits.locked()


class TestStartPolling:
    """Tests for the full run loop."""

    @pytest.mark.asyncio
    async def test_runs_until_stopped(self, rpc):
        """Test catch-up, live polling and graceful stop."""
        rpc.get_events.side_effect = [page(10), page()] + [page()] * 1000
        monitor = make_monitor(rpc, start_block=10)
        handler = Recorder()

        task = asyncio.create_task(monitor.start_polling(handler))
        await asyncio.sleep(0.05)
        assert monitor.is_running
        assert monitor.state.phase is MonitorPhase.LIVE_POLL

        await monitor.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert handler.blocks == [10]
        assert not monitor.is_running
        assert monitor.in_flight == 0

    @pytest.mark.asyncio
    async def test_status(self, rpc):
        """Test the status snapshot."""
        monitor = make_monitor(rpc, start_block=10)
        status = monitor.get_status()

        assert status["is_running"] is False
        assert status["phase"] == "catch_up"
        assert status["last_processed_block"] == 9
        assert status["contract_address"] == FACTORY
        assert status["in_flight"] == 0
