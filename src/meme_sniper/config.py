#!/usr/bin/env python3
"""Configuration management for the memecoin sniper.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with defaults for the
Starknet mainnet deployment of the memecoin factory.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .utils.field_codec import is_valid_starknet_address, normalize_address

# Get logger for this module
logger = logging.getLogger(__name__)

MEMECOIN_FACTORY_ADDRESS = "0x01a46467a9246f45c8c340f1f155266a26a71c07bd55d36e8d1c7d0d438a2dbc"
MULTICALL_AGGREGATOR_ADDRESS = "0x01a33330996310a1e3fa1df5b16c1e07f0491fdd20c441126e02613b948f0225"
EKUBO_CORE_ADDRESS = "0x00000005dd3d2f4429af886cd1a3b08289dbcea99a294197e9eb43b0e0325b4b"
EXCHANGE_ADDRESS = "0x02bd1cdd5f7f17726ae221845afd9580278eebc732bc136fe59d5d94365effd5"


def _validate_url(url: str, env_name: str) -> None:
    if not url:
        raise ValueError(f"URL is required ({env_name})")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(
            f"Invalid URL scheme for {env_name}: {parsed.scheme}. Expected http or https"
        )


def _normalized(address: str, env_name: str) -> str:
    if not address:
        raise ValueError(f"Contract address is required ({env_name})")
    if not is_valid_starknet_address(address):
        raise ValueError(f"Invalid Starknet address for {env_name}: {address}")
    return normalize_address(address)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Starknet endpoint and the contracts the sniper talks to.

    Attributes:
        rpc_url: HTTP(S) JSON-RPC endpoint
        factory_address: Memecoin factory emitting launch events
        multicall_address: Aggregator contract used for batched reads
        exchange_address: Canonical Ekubo launcher a token must be launched on
        ekubo_core_address: Ekubo core, excluded from holder counts
    """

    rpc_url: str
    factory_address: str = MEMECOIN_FACTORY_ADDRESS
    multicall_address: str = MULTICALL_AGGREGATOR_ADDRESS
    exchange_address: str = EXCHANGE_ADDRESS
    ekubo_core_address: str = EKUBO_CORE_ADDRESS

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ValueError("Starknet RPC URL is required (STARKNET_RPC_URL)")
        _validate_url(self.rpc_url, "STARKNET_RPC_URL")

        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(
            self, "factory_address", _normalized(self.factory_address, "MEMECOIN_FACTORY_ADDRESS")
        )
        object.__setattr__(
            self, "multicall_address", _normalized(self.multicall_address, "MULTICALL_AGGREGATOR_ADDRESS")
        )
        object.__setattr__(
            self, "exchange_address", _normalized(self.exchange_address, "EXCHANGE_ADDRESS")
        )
        object.__setattr__(
            self, "ekubo_core_address", _normalized(self.ekubo_core_address, "EKUBO_CORE_ADDRESS")
        )


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Configuration for event monitoring and processing."""
    start_block: int = 0  # first block scanned on a cold start
    polling_interval: int = 15  # seconds between live polls
    events_chunk_size: int = 1000  # events per getEvents page
    max_concurrent_handlers: int = 5  # in-flight launch pipelines
    request_timeout: int = 30  # HTTP request timeout in seconds
    retry_count: int = 3  # attempts per aggregation
    retry_delay: float = 1.0  # seconds, multiplied by the attempt number

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        if self.start_block < 0:
            raise ValueError(f"Start block must be non-negative, got {self.start_block}")

        if self.polling_interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {self.polling_interval}")
        if self.polling_interval > 300:
            raise ValueError(f"Polling interval too long (max 300s), got {self.polling_interval}")

        if not 1 <= self.events_chunk_size <= 1000:
            raise ValueError(
                f"Events chunk size must be between 1 and 1000, got {self.events_chunk_size}"
            )

        if self.max_concurrent_handlers <= 0:
            raise ValueError(
                f"Max concurrent handlers must be positive, got {self.max_concurrent_handlers}"
            )

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.retry_count < 1:
            raise ValueError(f"Retry count must be at least 1, got {self.retry_count}")
        if self.retry_count > 10:
            raise ValueError(f"Retry count too high (max 10), got {self.retry_count}")

        if self.retry_delay < 0:
            raise ValueError(f"Retry delay must be non-negative, got {self.retry_delay}")


@dataclass(frozen=True, slots=True)
class ServicesConfig:
    """Off-chain services used to enrich and deliver alerts.

    Attributes:
        quote_api_url: Ekubo quoting API
        explorer_api_url: Holder/balance explorer API
        explorer_url: Block explorer used for contract links
        dex_url: Swap UI used for buy links
        telegram_token: Bot token, alerts are only logged when unset
        telegram_chat_ids: Chats that receive launch alerts
    """

    quote_api_url: str = "https://mainnet-api.ekubo.org"
    explorer_api_url: str = "https://api.starkscan.co/api/v0/contract"
    explorer_url: str = "https://starkscan.co"
    dex_url: str = "https://app.avnu.fi"
    telegram_token: str | None = None
    telegram_chat_ids: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate service configuration."""
        _validate_url(self.quote_api_url, "QUOTE_API_URL")
        _validate_url(self.explorer_api_url, "EXPLORER_API")
        _validate_url(self.explorer_url, "EXPLORER_URL")
        _validate_url(self.dex_url, "DEX_URL")

        object.__setattr__(self, "quote_api_url", self.quote_api_url.rstrip("/"))
        object.__setattr__(self, "explorer_api_url", self.explorer_api_url.rstrip("/"))
        object.__setattr__(self, "explorer_url", self.explorer_url.rstrip("/"))
        object.__setattr__(self, "dex_url", self.dex_url.rstrip("/"))

        if self.telegram_chat_ids and not self.telegram_token:
            raise ValueError("TELEGRAM_CHAT_IDS is set but TELEGRAM_TOKEN is missing")

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_ids)


@dataclass(frozen=True, slots=True)
class SniperConfig:
    """Main configuration for the sniper service.

    Attributes:
        chain: Starknet endpoint and contract addresses
        monitoring: Polling, concurrency and retry settings
        services: Quoting, explorer and notification settings
    """

    chain: ChainConfig
    monitoring: MonitoringConfig
    services: ServicesConfig

    @classmethod
    def from_env(cls) -> "SniperConfig":
        """Load configuration from environment variables.

        Returns:
            SniperConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        rpc_url = os.environ.get("STARKNET_RPC_URL", "")
        if not rpc_url:
            raise ValueError(
                "STARKNET_RPC_URL environment variable is required. "
                "This should be a Starknet mainnet JSON-RPC endpoint."
            )

        chain_config = ChainConfig(
            rpc_url=rpc_url,
            factory_address=os.environ.get("MEMECOIN_FACTORY_ADDRESS", MEMECOIN_FACTORY_ADDRESS),
            multicall_address=os.environ.get("MULTICALL_AGGREGATOR_ADDRESS", MULTICALL_AGGREGATOR_ADDRESS),
            exchange_address=os.environ.get("EXCHANGE_ADDRESS", EXCHANGE_ADDRESS),
            ekubo_core_address=os.environ.get("EKUBO_CORE_ADDRESS", EKUBO_CORE_ADDRESS),
        )

        try:
            monitoring_config = MonitoringConfig(
                start_block=int(os.environ.get("START_BLOCK", "0")),
                polling_interval=int(os.environ.get("POLLING_INTERVAL", "15")),
                events_chunk_size=int(os.environ.get("EVENTS_CHUNK_SIZE", "1000")),
                max_concurrent_handlers=int(os.environ.get("MAX_CONCURRENT_HANDLERS", "5")),
                request_timeout=int(os.environ.get("REQUEST_TIMEOUT", "30")),
                retry_count=int(os.environ.get("RETRY_COUNT", "3")),
                retry_delay=float(os.environ.get("RETRY_DELAY", "1.0")),
            )
        except ValueError as e:
            raise ValueError(f"Invalid monitoring setting: {e}") from e

        chat_ids = tuple(
            chat_id.strip()
            for chat_id in os.environ.get("TELEGRAM_CHAT_IDS", "").split(",")
            if chat_id.strip()
        )
        services_config = ServicesConfig(
            quote_api_url=os.environ.get("QUOTE_API_URL", "https://mainnet-api.ekubo.org"),
            explorer_api_url=os.environ.get("EXPLORER_API", "https://api.starkscan.co/api/v0/contract"),
            explorer_url=os.environ.get("EXPLORER_URL", "https://starkscan.co"),
            dex_url=os.environ.get("DEX_URL", "https://app.avnu.fi"),
            telegram_token=os.environ.get("TELEGRAM_TOKEN") or None,
            telegram_chat_ids=chat_ids,
        )

        return cls(
            chain=chain_config,
            monitoring=monitoring_config,
            services=services_config,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Memecoin Sniper Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Factory: {self.chain.factory_address}")
        logger.info(f"  Multicall: {self.chain.multicall_address}")
        logger.info(f"  Exchange: {self.chain.exchange_address}")

        logger.info("Monitoring Settings:")
        logger.info(f"  Start Block: {self.monitoring.start_block}")
        logger.info(f"  Polling Interval: {self.monitoring.polling_interval} seconds")
        logger.info(f"  Events Chunk Size: {self.monitoring.events_chunk_size}")
        logger.info(f"  Max Concurrent Handlers: {self.monitoring.max_concurrent_handlers}")
        logger.info(f"  Request Timeout: {self.monitoring.request_timeout} seconds")
        logger.info(f"  Retry: {self.monitoring.retry_count} attempts, {self.monitoring.retry_delay}s base delay")

        logger.info("Services:")
        logger.info(f"  Quote API: {self.services.quote_api_url}")
        logger.info(f"  Explorer API: {self.services.explorer_api_url}")
        if self.services.notifications_enabled:
            logger.info("  Telegram Token: [CONFIGURED]")
            logger.info(f"  Telegram Chats: {len(self.services.telegram_chat_ids)}")
        else:
            logger.info("  Telegram: disabled (alerts are logged only)")

        logger.info("=" * 60)
