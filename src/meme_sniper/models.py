#!/usr/bin/env python3
"""Data models for the memecoin sniper.

Immutable data classes for chain events, aggregated token state and the
reports pushed to the notification channel.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class ChainEvent:
    """A raw event as returned by ``starknet_getEvents``.

    Attributes:
        from_address: Contract that emitted the event
        keys: Event keys, the first one being the event selector
        data: Non-indexed event payload
        block_number: Block the event was included in
        block_hash: Hash of that block
        transaction_hash: Hash of the emitting transaction
        event_index: Position of the event inside the fetched page
    """

    from_address: int
    keys: tuple[int, ...]
    data: tuple[int, ...]
    block_number: int
    block_hash: str = ""
    transaction_hash: str = ""
    event_index: int = 0

    def __str__(self) -> str:
        return (
            f"ChainEvent(block={self.block_number}, "
            f"tx={self.transaction_hash[:10]}..., "
            f"keys={len(self.keys)}, data={len(self.data)})"
        )

    @property
    def selector(self) -> int | None:
        return self.keys[0] if self.keys else None

    @classmethod
    def from_rpc(cls, raw: dict[str, Any], event_index: int = 0) -> "ChainEvent":
        """Build from the JSON object the node returns for one event."""
        return cls(
            from_address=int(raw["from_address"], 16),
            keys=tuple(int(key, 16) for key in raw.get("keys", [])),
            data=tuple(int(word, 16) for word in raw.get("data", [])),
            block_number=int(raw.get("block_number", 0)),
            block_hash=raw.get("block_hash", ""),
            transaction_hash=raw.get("transaction_hash", ""),
            event_index=event_index,
        )


@dataclass(frozen=True, slots=True)
class EventsPage:
    """One page of ``starknet_getEvents`` results."""

    events: tuple[ChainEvent, ...]
    continuation_token: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.events

    @property
    def last_block(self) -> int | None:
        return self.events[-1].block_number if self.events else None


@dataclass(frozen=True, slots=True)
class CreationEvent:
    """A memecoin was deployed by the factory."""

    owner: str
    name: str
    symbol: str
    initial_supply: str
    memecoin_address: str
    block_number: int
    transaction_hash: str
    event_index: int = 0

    def __str__(self) -> str:
        return (
            f"CreationEvent({self.symbol}, "
            f"token={self.memecoin_address[:10]}..., "
            f"block={self.block_number})"
        )

    @property
    def unique_key(self) -> tuple[str, str, str]:
        return ("created", self.transaction_hash, self.memecoin_address)


@dataclass(frozen=True, slots=True)
class LaunchEvent:
    """A memecoin was launched on an exchange."""

    memecoin_address: str
    quote_token: str
    exchange_name: str
    block_number: int
    transaction_hash: str
    event_index: int = 0

    def __str__(self) -> str:
        return (
            f"LaunchEvent(token={self.memecoin_address[:10]}..., "
            f"exchange={self.exchange_name}, "
            f"block={self.block_number})"
        )

    @property
    def unique_key(self) -> tuple[str, str, str]:
        return ("launched", self.transaction_hash, self.memecoin_address)


MemecoinEvent = CreationEvent | LaunchEvent


@dataclass(frozen=True, slots=True)
class StartingPrice:
    mag: int
    sign: bool


@dataclass(frozen=True, slots=True)
class PoolParameters:
    """Ekubo pool parameters the token was launched with."""

    fee: int
    tick_spacing: int
    starting_price: StartingPrice
    bound: int

    @property
    def starting_tick(self) -> int:
        return -self.starting_price.mag if self.starting_price.sign else self.starting_price.mag


@dataclass(frozen=True, slots=True)
class LaunchInfo:
    team_allocation: str
    block_number: int


@dataclass(frozen=True, slots=True)
class LiquidityInfo:
    launch_manager: str
    pool_id: str
    quote_token: str
    starting_tick: int


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """Aggregated on-chain state of one memecoin.

    Rebuilt from chain on every query; nothing is cached.
    """

    address: str
    name: str
    symbol: str
    total_supply: str
    owner: str
    is_launched: bool
    launch: LaunchInfo
    liquidity: LiquidityInfo
    pool_parameters: PoolParameters | None = None

    def __str__(self) -> str:
        return (
            f"TokenRecord({self.symbol}, "
            f"address={self.address[:10]}..., "
            f"launched={self.is_launched})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "total_supply": self.total_supply,
            "owner": self.owner,
            "is_launched": self.is_launched,
            "launch": {
                "team_allocation": self.launch.team_allocation,
                "block_number": self.launch.block_number,
            },
            "liquidity": {
                "launch_manager": self.liquidity.launch_manager,
                "pool_id": self.liquidity.pool_id,
                "quote_token": self.liquidity.quote_token,
                "starting_tick": self.liquidity.starting_tick,
            },
        }


@dataclass(frozen=True, slots=True)
class QuoteToken:
    """A token memecoins can be launched against."""

    symbol: str
    address: str
    decimals: int
    usdc_pair: str = ""


@dataclass(frozen=True, slots=True)
class PoolKey:
    token0: str
    token1: str
    fee: str
    tick_spacing: str
    extension: str


@dataclass(frozen=True, slots=True)
class Bound:
    mag: str
    sign: str


@dataclass(frozen=True, slots=True)
class LiquidityLockPosition:
    """Ekubo position holding the launch liquidity."""

    unlock_time: int
    owner: str
    pool_key: PoolKey
    bounds: tuple[Bound, Bound]


class HolderCategory(Enum):
    """Coarse holder count bucket shown in alerts."""

    UNDER_10 = "<10"
    OVER_10 = ">10"
    OVER_20 = ">20"
    OVER_50 = ">50"
    OVER_100 = ">100"

    @classmethod
    def from_count(cls, count: int, has_more: bool = False) -> "HolderCategory":
        if has_more:
            return cls.OVER_100
        if count >= 50:
            return cls.OVER_50
        if count >= 20:
            return cls.OVER_20
        if count >= 10:
            return cls.OVER_10
        return cls.UNDER_10


@dataclass(frozen=True, slots=True)
class MarketCapQuote:
    """Price and market cap derived from the quoting service."""

    price: float
    market_cap: float


@dataclass(frozen=True, slots=True)
class LaunchReport:
    """Everything the launch alert needs, already computed."""

    token: TokenRecord
    market_cap: str | None = None
    price: str | None = None
    starting_market_cap: str | None = None
    holders: HolderCategory | None = None
    launch_event: LaunchEvent | None = None
    warnings: tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.warnings)

    @property
    def liquidity_label(self) -> str:
        return f"EKUBO Pool #{self.token.liquidity.pool_id}"


@dataclass(frozen=True, slots=True)
class MemecoinInfo:
    """Token radar view: on-chain record enriched with market data."""

    address: str
    name: str
    symbol: str
    total_supply: str
    owner: str
    team_allocation: str
    price: str
    market_cap: str
    usd_dex_liquidity: str


@dataclass(frozen=True, slots=True)
class UserTokenInfo:
    """A wallet's position in one memecoin."""

    coin_info: MemecoinInfo
    account_balance: str
    usd_value: str


@dataclass(frozen=True, slots=True)
class TokenHoldings:
    """Memecoins held by a wallet, as recognized by the factory."""

    account: str
    tokens: tuple[str, ...] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.tokens)
