"""
Memecoin launch pipeline.

This module contains the main service that wires the chain event monitor to
token aggregation, pricing and the notification sink.
"""

import asyncio
import logging

from .config import SniperConfig
from .errors import (
    DecodeError,
    DivisionByZero,
    ExplorerUnavailableError,
    InvalidTokenError,
    QuoteUnavailableError,
    RpcError,
)
from .event_processor import EventProcessor
from .explorer_client import ExplorerClient
from .messages import launch_keyboard, render_launch_alert
from .models import ChainEvent, CreationEvent, LaunchEvent, LaunchReport, TokenRecord
from .notifier import LoggingNotifier, NotificationSink, TelegramNotifier, broadcast
from .pricing import PriceEngine
from .quote_client import QuoteClient
from .token_aggregator import TokenAggregator
from .utils.polling_event_listener import ChainEventMonitor, MonitorState
from .utils.retry import RetryPolicy
from .utils.starknet_rpc import StarknetRpcClient

logger = logging.getLogger(__name__)


class LaunchPipeline:
    """
    Turns factory launch events into alerts.

    Owns the shared monitor state and the handler permit pool, and passes
    both to the chain event monitor.
    """

    STATUS_LOG_INTERVAL = 60  # seconds

    def __init__(
        self,
        config: SniperConfig,
        rpc: StarknetRpcClient | None = None,
        notifier: NotificationSink | None = None,
        quote_client: QuoteClient | None = None,
        explorer: ExplorerClient | None = None,
    ):
        """
        Initialize the launch pipeline.

        Args:
            config: Sniper configuration
            rpc: Starknet client, built from config when omitted
            notifier: Notification sink, Telegram or log-only when omitted
            quote_client: Quoting API client, built from config when omitted
            explorer: Explorer API client, built from config when omitted
        """
        self.config = config
        self.running = False

        self.rpc = rpc or StarknetRpcClient(
            config.chain.rpc_url, timeout=config.monitoring.request_timeout
        )
        self.aggregator = TokenAggregator(
            self.rpc,
            factory_address=config.chain.factory_address,
            multicall_address=config.chain.multicall_address,
            exchange_address=config.chain.exchange_address,
        )
        self.price_engine = PriceEngine(self.rpc)
        self.quote_client = quote_client or QuoteClient(config.services.quote_api_url)
        self.explorer = explorer or ExplorerClient(
            config.services.explorer_api_url,
            excluded_holders=frozenset({config.chain.ekubo_core_address}),
            timeout=config.monitoring.request_timeout,
        )
        self.notifier, self.recipients = self._init_notifier(notifier)

        self.event_processor = EventProcessor()
        self.retry_policy = RetryPolicy(
            max_attempts=config.monitoring.retry_count,
            base_delay=config.monitoring.retry_delay,
        )

        # Shared with the monitor and every handler it spawns
        self.state = MonitorState.starting_at(config.monitoring.start_block)
        self.permits = asyncio.Semaphore(config.monitoring.max_concurrent_handlers)
        self.shutdown_event = asyncio.Event()

        self.monitor = ChainEventMonitor(
            rpc=self.rpc,
            contract_address=config.chain.factory_address,
            keys=EventProcessor.selectors(),
            state=self.state,
            permits=self.permits,
            polling_interval=config.monitoring.polling_interval,
            chunk_size=config.monitoring.events_chunk_size,
            shutdown_event=self.shutdown_event,
        )

        self.launches_alerted = 0
        self.launches_rejected = 0
        self.launches_failed = 0

    def _init_notifier(self, notifier: NotificationSink | None) -> tuple[NotificationSink, tuple[str, ...]]:
        services = self.config.services
        if notifier is not None:
            return notifier, services.telegram_chat_ids or ("log",)
        if services.notifications_enabled:
            sink = TelegramNotifier(services.telegram_token, timeout=self.config.monitoring.request_timeout)
            logger.info(f"Telegram alerts enabled for {len(services.telegram_chat_ids)} chat(s)")
            return sink, services.telegram_chat_ids
        logger.info("Telegram not configured, alerts will only be logged")
        return LoggingNotifier(), ("log",)

    @classmethod
    def from_env(cls) -> "LaunchPipeline":
        """
        Create a LaunchPipeline instance from environment variables.

        Raises:
            ValueError: If required environment variables are missing
        """
        config = SniperConfig.from_env()
        config.log_config()
        return cls(config)

    async def handle_event(self, event: ChainEvent) -> LaunchReport | None:
        """Monitor handler: decode, dedupe and process one factory event."""
        parsed = await self.event_processor.process_event(event)

        report = None
        match parsed:
            case LaunchEvent():
                report = await self.process_launch(parsed)
            case CreationEvent():
                logger.info(
                    f"🆕 {parsed.name} ({parsed.symbol}) created by {parsed.owner[:10]}... "
                    f"at {parsed.memecoin_address}"
                )
            case None:
                return None

        self.state.advance(event.block_number)
        return report

    async def process_launch(self, launch: LaunchEvent) -> LaunchReport | None:
        """
        Aggregate, price and publish one launch.

        Transient RPC failures are retried by the retry policy inside this
        task. The final outcome is logged and returned, None on failure.
        """
        logger.info(f"🚀 Processing {launch}")
        try:
            record = await self.retry_policy.run(
                lambda: self.aggregator.fetch_token_record(launch.memecoin_address),
                description=f"Aggregation of {launch.memecoin_address}",
            )
        except InvalidTokenError as e:
            self.launches_rejected += 1
            logger.warning(f"❌ Rejected launch: {e}")
            return None
        except (RpcError, DecodeError) as e:
            self.launches_failed += 1
            logger.error(f"❌ Aggregation failed for {launch.memecoin_address}: {e}")
            return None

        report = await self.build_report(record, launch)
        await self.publish(report)
        self.launches_alerted += 1
        return report

    async def build_report(self, record: TokenRecord, launch: LaunchEvent | None = None) -> LaunchReport:
        """Starting market cap, fallback market data and holders for a token.

        Each enrichment that fails is recorded as a warning; the report is
        still produced with whatever is available.
        """
        warnings: list[str] = []

        starting_market_cap = None
        try:
            starting_market_cap = await self.price_engine.compute_starting_market_cap(record)
        except (RpcError, DecodeError, DivisionByZero) as e:
            logger.warning(f"Starting market cap unavailable for {record.symbol}: {e}")
            warnings.append("starting market cap unavailable")

        market_cap = None
        price = None
        if starting_market_cap is None:
            try:
                quote = await self.quote_client.calculate_market_cap(record.total_supply, record.symbol)
                market_cap = f"{quote.market_cap:.2f}"
                price = str(quote.price)
            except QuoteUnavailableError as e:
                logger.warning(f"Fallback market cap unavailable for {record.symbol}: {e}")
                warnings.append("market cap unavailable")

        holders = None
        try:
            holders = await self.explorer.get_holder_category(record.address)
        except ExplorerUnavailableError as e:
            logger.warning(f"Holder data unavailable for {record.symbol}: {e}")
            warnings.append("holders unavailable")

        return LaunchReport(
            token=record,
            market_cap=market_cap,
            price=price,
            starting_market_cap=starting_market_cap,
            holders=holders,
            launch_event=launch,
            warnings=tuple(warnings),
        )

    async def publish(self, report: LaunchReport) -> int:
        """Render the launch alert and send it to every recipient."""
        text = render_launch_alert(report)
        buttons = launch_keyboard(
            self.config.services.dex_url,
            self.config.services.explorer_url,
            report.token.address,
            report.token.symbol,
        )
        delivered = await broadcast(self.notifier, self.recipients, text, buttons)
        logger.info(
            f"📣 Alert for {report.token.symbol} delivered to "
            f"{delivered}/{len(self.recipients)} recipient(s)"
        )
        return delivered

    def get_stats(self) -> dict[str, int]:
        return {
            "last_processed_block": self.state.last_processed_block,
            "in_flight": self.monitor.in_flight,
            "launches_alerted": self.launches_alerted,
            "launches_rejected": self.launches_rejected,
            "launches_failed": self.launches_failed,
        }

    async def log_status(self) -> None:
        """Log one status line, including how far the watermark trails the chain head."""
        stats = self.get_stats()
        try:
            head = await self.rpc.block_number()
            lag = f"head {head}, {max(head - stats['last_processed_block'], 0)} behind"
        except RpcError as e:
            logger.debug(f"Chain head unavailable for status: {e}")
            lag = "head unknown"
        logger.info(
            f"Status: block {stats['last_processed_block']} ({lag}), "
            f"{stats['in_flight']} in flight, "
            f"{stats['launches_alerted']} alerted, "
            f"{stats['launches_rejected']} rejected, "
            f"{stats['launches_failed']} failed"
        )
        self.event_processor.log_metrics()

    async def _periodic_status_logger(self) -> None:
        """Log status periodically while running."""
        while self.running:
            await asyncio.sleep(self.STATUS_LOG_INTERVAL)
            await self.log_status()

    async def _check_task_health(self, tasks: dict[str, asyncio.Task]) -> bool:
        """Check if any critical task has failed."""
        for name, task in tasks.items():
            if task.done() and name != "status":
                try:
                    await task
                except Exception as e:
                    logger.error(f"{name} task failed: {e}", exc_info=True)
                return False
        return True

    async def _cleanup_tasks(self, tasks: dict[str, asyncio.Task]) -> None:
        """Stop the monitor, let handlers drain and close clients."""
        await self.monitor.stop()

        monitor_task = tasks.get("monitor")
        if monitor_task and not monitor_task.done():
            # Exits on the shutdown event after draining handlers
            await asyncio.gather(monitor_task, return_exceptions=True)

        status_task = tasks.get("status")
        if status_task and not status_task.done():
            status_task.cancel()
            try:
                await status_task
            except asyncio.CancelledError:
                pass  # Expected when cancelling

        await self.close()

    async def close(self) -> None:
        await self.rpc.close()
        await self.quote_client.close()
        await self.explorer.close()
        if isinstance(self.notifier, TelegramNotifier):
            await self.notifier.close()

    async def run(self) -> None:
        """Main event loop for the sniper service."""
        self.running = True
        logger.info("Memecoin sniper starting...")
        logger.info(f"Watching factory {self.config.chain.factory_address}")
        logger.info(f"Start block: {self.config.monitoring.start_block}")

        tasks: dict[str, asyncio.Task] = {}
        try:
            tasks = {
                "monitor": asyncio.create_task(self.monitor.start_polling(self.handle_event)),
                "status": asyncio.create_task(self._periodic_status_logger()),
            }
            logger.info("Event monitoring started, waiting for launches...")

            while self.running:
                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=1.0)
                    break  # Shutdown requested
                except asyncio.TimeoutError:
                    pass

                if not await self._check_task_health(tasks):
                    logger.error("Critical task failure, shutting down")
                    break

        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)
            raise
        finally:
            self.running = False
            await self._cleanup_tasks(tasks)
            logger.info("Memecoin sniper stopped")

    def stop(self) -> None:
        """Stop the sniper service."""
        self.running = False
        self.shutdown_event.set()
