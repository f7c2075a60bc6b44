#!/usr/bin/env python3
"""Event processing for the memecoin factory.

Decodes raw factory events into :class:`CreationEvent` or
:class:`LaunchEvent`, drops everything else and deduplicates the
at-least-once stream coming from the chain monitor.
"""

import asyncio
import logging
from collections import OrderedDict

from .models import ChainEvent, CreationEvent, LaunchEvent, MemecoinEvent
from .utils.field_codec import decode_short_string, decode_u256, get_selector_from_name, normalize_address

# Get logger for this module
logger = logging.getLogger(__name__)

MEMECOIN_CREATED = get_selector_from_name("MemecoinCreated")
MEMECOIN_LAUNCHED = get_selector_from_name("MemecoinLaunched")

CREATION_DATA_WIDTH = 6  # owner, name, symbol, supply low, supply high, memecoin
LAUNCH_DATA_WIDTH = 3  # memecoin, quote token, exchange name


def decode_creation(event: ChainEvent) -> CreationEvent:
    owner, name, symbol, supply_low, supply_high, memecoin = event.data[:CREATION_DATA_WIDTH]
    return CreationEvent(
        owner=normalize_address(owner),
        name=decode_short_string(name),
        symbol=decode_short_string(symbol),
        initial_supply=decode_u256(supply_low, supply_high),
        memecoin_address=normalize_address(memecoin),
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
        event_index=event.event_index,
    )


def decode_launch(event: ChainEvent) -> LaunchEvent:
    memecoin, quote_token, exchange_name = event.data[:LAUNCH_DATA_WIDTH]
    return LaunchEvent(
        memecoin_address=normalize_address(memecoin),
        quote_token=normalize_address(quote_token),
        exchange_name=decode_short_string(exchange_name),
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
        event_index=event.event_index,
    )


class EventProcessor:
    """Processes and validates memecoin factory events.

    This class is responsible for:
    - Dispatching raw events on their selector
    - Validating payload width
    - Preventing duplicate event processing
    - Maintaining metrics on processed events
    """

    def __init__(self, dedupe_window: int = 1000) -> None:
        """Initialize the EventProcessor.

        Args:
            dedupe_window: Maximum number of events to track for deduplication
        """
        self.dedupe_window = dedupe_window

        # Event unique keys as keys, None as values
        self.processed_events: OrderedDict[tuple[str, str, str], None] = OrderedDict()
        self._lock = asyncio.Lock()

        self.events_processed = 0
        self.events_filtered = 0
        self.events_duplicated = 0
        self.events_invalid = 0

        logger.info(f"EventProcessor initialized with dedupe window of {dedupe_window} events")

    @staticmethod
    def selectors() -> list[int]:
        """Event keys to request from the chain."""
        return [MEMECOIN_CREATED, MEMECOIN_LAUNCHED]

    def decode(self, event: ChainEvent) -> MemecoinEvent | None:
        """Map a raw event onto its typed variant, or None if it is not ours or malformed."""
        match event.selector:
            case selector if selector == MEMECOIN_CREATED:
                width, decoder = CREATION_DATA_WIDTH, decode_creation
            case selector if selector == MEMECOIN_LAUNCHED:
                width, decoder = LAUNCH_DATA_WIDTH, decode_launch
            case _:
                self.events_filtered += 1
                logger.debug(f"Filtered event with unknown selector: {event}")
                return None

        if len(event.data) < width:
            self.events_invalid += 1
            logger.warning(f"Event {event} has {len(event.data)} data word(s), expected {width}")
            return None

        try:
            return decoder(event)
        except ValueError as e:
            self.events_invalid += 1
            logger.warning(f"Failed to decode {event}: {e}")
            return None

    async def process_event(self, event: ChainEvent) -> MemecoinEvent | None:
        """Decode and deduplicate one raw event.

        Returns:
            The typed event if valid and not a duplicate, None otherwise
        """
        async with self._lock:
            parsed = self.decode(event)
            if parsed is None:
                return None

            if parsed.unique_key in self.processed_events:
                self.events_duplicated += 1
                logger.debug(f"Duplicate event detected: {parsed}")
                return None

            self._mark_processed(parsed)
            self.events_processed += 1

        logger.info(f"Processed event: {parsed}")
        return parsed

    def _mark_processed(self, event: MemecoinEvent) -> None:
        if len(self.processed_events) >= self.dedupe_window:
            # FIFO eviction
            self.processed_events.popitem(last=False)
        self.processed_events[event.unique_key] = None

    def get_metrics(self) -> dict[str, int]:
        return {
            "events_processed": self.events_processed,
            "events_filtered": self.events_filtered,
            "events_duplicated": self.events_duplicated,
            "events_invalid": self.events_invalid,
            "cache_size": len(self.processed_events),
        }

    def log_metrics(self) -> None:
        """Log current processing metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"EventProcessor Metrics: "
            f"Processed={metrics['events_processed']}, "
            f"Filtered={metrics['events_filtered']}, "
            f"Duplicates={metrics['events_duplicated']}, "
            f"Invalid={metrics['events_invalid']}, "
            f"Cache={metrics['cache_size']}/{self.dedupe_window}"
        )
