"""
Polling-based event monitor for Starknet contract events.

Runs in two phases: a historical catch-up that pages through
``starknet_getEvents`` with continuation tokens, then a live poll from the
block after the watermark on a fixed interval.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import RpcError
from ..models import ChainEvent, EventsPage
from .starknet_rpc import DEFAULT_CHUNK_SIZE, StarknetRpcClient

EventHandler = Callable[[ChainEvent], Awaitable[Any]]


class MonitorPhase(Enum):
    CATCH_UP = "catch_up"
    LIVE_POLL = "live_poll"


@dataclass(slots=True)
class MonitorState:
    """Event cursor shared by the monitor loop and the handlers it spawns.

    ``last_processed_block`` only ever moves forward. It is not persisted:
    a cold start scans again from the configured start block.
    """

    last_processed_block: int
    continuation_token: str | None = None
    phase: MonitorPhase = MonitorPhase.CATCH_UP

    @classmethod
    def starting_at(cls, start_block: int) -> "MonitorState":
        """State whose first fetch begins at ``start_block``."""
        return cls(last_processed_block=start_block - 1)

    def advance(self, block_number: int) -> bool:
        """Move the watermark forward; returns False if it was already past."""
        if block_number <= self.last_processed_block:
            return False
        self.last_processed_block = block_number
        return True


class ChainEventMonitor:
    """
    Two-phase poller that hands every fetched event to an async handler.

    Handlers run as separate tasks, each holding one permit of a shared
    semaphore, so the monitor blocks on fetching more only when all permits
    are in use. Stopping prevents new fetches and lets in-flight handlers
    finish.
    """

    def __init__(
        self,
        rpc: StarknetRpcClient,
        contract_address: str,
        keys: Sequence[int],
        state: MonitorState,
        permits: asyncio.Semaphore,
        polling_interval: float = 15,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        error_delay: float = 1.0,
        shutdown_event: asyncio.Event | None = None,
    ):
        """
        Initialize the chain event monitor.

        Args:
            rpc: Starknet JSON-RPC client
            contract_address: Contract whose events are monitored
            keys: Accepted event selectors (first key)
            state: Shared watermark and continuation token
            permits: Bounds the number of concurrently running handlers
            polling_interval: Seconds between live polls
            chunk_size: Events per page
            error_delay: Seconds to wait before retrying a failed fetch
            shutdown_event: Set to stop issuing new fetches
        """
        self.rpc = rpc
        self.contract_address = contract_address
        self.keys = list(keys)
        self.state = state
        self.permits = permits
        self.polling_interval = polling_interval
        self.chunk_size = chunk_size
        self.error_delay = error_delay
        self.shutdown_event = shutdown_event or asyncio.Event()

        self.is_running = False
        self.events_dispatched = 0
        self.events_skipped = 0
        self.fetch_errors = 0
        self._tasks: set[asyncio.Task] = set()

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def _wait(self, seconds: float) -> None:
        """Sleep, waking early on shutdown."""
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _fetch(self, from_block: int, continuation_token: str | None) -> EventsPage | None:
        try:
            return await self.rpc.get_events(
                self.contract_address,
                self.keys,
                from_block=from_block,
                continuation_token=continuation_token,
                chunk_size=self.chunk_size,
            )
        except RpcError as e:
            # Cursor untouched: the same request is retried
            self.fetch_errors += 1
            self.logger.error(f"Error fetching events from block {from_block}: {e}")
            await self._wait(self.error_delay)
            return None

    async def _run_handler(self, handler: EventHandler, event: ChainEvent) -> None:
        try:
            await handler(event)
        except Exception as e:
            self.logger.error(f"Handler failed for {event}: {e}", exc_info=True)
        finally:
            self.permits.release()

    async def _spawn(self, handler: EventHandler, event: ChainEvent) -> None:
        await self.permits.acquire()
        task = asyncio.create_task(self._run_handler(handler, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.events_dispatched += 1

    async def _dispatch(self, page: EventsPage, floor: int, handler: EventHandler) -> int:
        """Hand every event above ``floor`` to the handler, in block order."""
        dispatched = 0
        for event in page.events:
            if event.block_number <= floor:
                self.events_skipped += 1
                continue
            await self._spawn(handler, event)
            dispatched += 1
        return dispatched

    async def catch_up(self, handler: EventHandler) -> None:
        """Page through historical events until the chain runs out of them."""
        self.state.phase = MonitorPhase.CATCH_UP
        floor = self.state.last_processed_block
        from_block = floor + 1
        self.logger.info(f"Catching up on events from block {from_block}")

        while not self.shutdown_event.is_set():
            page = await self._fetch(from_block, self.state.continuation_token)
            if page is None:
                continue

            if page.is_empty and page.continuation_token is None:
                break

            if not page.is_empty:
                self.logger.info(
                    f"Fetched {len(page.events)} historical events "
                    f"up to block {page.last_block}"
                )
                await self._dispatch(page, floor, handler)
                self.state.advance(page.last_block)

            self.state.continuation_token = page.continuation_token
            if page.continuation_token is None:
                break

        self.state.continuation_token = None
        self.state.phase = MonitorPhase.LIVE_POLL
        self.logger.info(f"Caught up at block {self.state.last_processed_block}")

    async def poll_once(self, handler: EventHandler) -> int:
        """
        Fetch events after the watermark once; returns how many were dispatched.

        A page cut at ``chunk_size`` is followed through its continuation
        tokens within the same tick, and the watermark only moves once the
        last page arrives since a cut page can end in the middle of a block.
        A failed follow-up fetch is retried with the same token; a failed
        first fetch is left to the next tick.
        """
        floor = self.state.last_processed_block
        token = None
        dispatched = 0
        last_block = None

        while True:
            page = await self._fetch(floor + 1, token)
            if page is None:
                if token is None or self.shutdown_event.is_set():
                    return dispatched
                continue

            if not page.is_empty:
                self.logger.info(
                    f"Found {len(page.events)} new events in blocks "
                    f"{page.events[0].block_number}-{page.last_block}"
                )
                dispatched += await self._dispatch(page, floor, handler)
                last_block = page.last_block

            token = page.continuation_token
            if token is None:
                break
            if self.shutdown_event.is_set():
                return dispatched

        if last_block is not None:
            self.state.advance(last_block)
        return dispatched

    async def start_polling(self, handler: EventHandler) -> None:
        """
        Run catch-up, then poll until stopped. In-flight handlers are drained
        before returning.

        Args:
            handler: Async function called once per event
        """
        if self.is_running:
            self.logger.warning("Polling already running")
            return

        self.is_running = True
        self.logger.info(
            f"Starting event monitor on {self.contract_address} "
            f"every {self.polling_interval} seconds"
        )
        try:
            await self.catch_up(handler)
            while not self.shutdown_event.is_set():
                await self.poll_once(handler)
                await self._wait(self.polling_interval)
        finally:
            self.is_running = False
            await self.drain()

    async def drain(self) -> None:
        """Wait for every in-flight handler to finish."""
        if self._tasks:
            self.logger.info(f"Draining {len(self._tasks)} in-flight handler(s)")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Stop issuing new fetches."""
        self.logger.info("Stopping event monitor")
        self.shutdown_event.set()

    def get_status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "phase": self.state.phase.value,
            "last_processed_block": self.state.last_processed_block,
            "contract_address": self.contract_address,
            "events_dispatched": self.events_dispatched,
            "events_skipped": self.events_skipped,
            "fetch_errors": self.fetch_errors,
            "in_flight": self.in_flight,
        }
