#!/usr/bin/env python3
"""Price, starting market cap and liquidity lock figures for launched memecoins.

All on-chain quantities are combined with :class:`Fraction` so nothing
goes through floating point except the Ekubo tick conversion.
"""

import logging
import math

from .errors import DecodeError
from .models import Bound, LiquidityInfo, LiquidityLockPosition, PoolKey, QuoteToken, TokenRecord
from .utils.field_codec import decode_u256, felt_to_hex, normalize_address
from .utils.fraction import Fraction, Rounding
from .utils.starknet_rpc import StarknetRpcClient

# Get logger for this module
logger = logging.getLogger(__name__)

DECIMALS = 18
EKUBO_TICK_SIZE = 1.000001
LIQUIDITY_LOCK_FOREVER_TIMESTAMP = 9999999999
RESERVES_SCALE = 10**12  # USDC has 6 decimals, quote tokens 18
STARTING_MCAP_SCALE = 10**48
LOCK_POSITION_WIDTH = 11

ETH = QuoteToken(
    symbol="ETH",
    address=normalize_address("0x49d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"),
    decimals=18,
    usdc_pair="0x04d0390b777b424e43839cd1e744799f3de6c176c7e32c1812a41dbd9c19db6a",
)
USDC = QuoteToken(
    symbol="USDC",
    address=normalize_address("0x53c91253bc9682c04929ca02ed00b3e423f6710d2ee7e0d5ebb06f3ecf368a8"),
    decimals=6,
)
STRK = QuoteToken(
    symbol="STRK",
    address=normalize_address("0x4718f5a0fc34cc1af16a1cdee98ffb20c31f5cd61d6ab07201858f4287c938d"),
    decimals=18,
    usdc_pair="0x5726725e9507c3586cc0516449e2c74d9b201ab2747752bb0251aaa263c9a26",
)
USDT = QuoteToken(
    symbol="USDT",
    address=normalize_address("0x68f5c6a61780768455de69077e07e89787839bf8166decfbf92b645209c0fb8"),
    decimals=6,
    usdc_pair="0x5801bdad32f343035fb242e98d1e9371ae85bc1543962fedea16c59b35bd19b",
)

QUOTE_TOKENS: dict[str, QuoteToken] = {token.address: token for token in (ETH, USDC, STRK, USDT)}


def get_quote_token(address: str) -> QuoteToken | None:
    return QUOTE_TOKENS.get(normalize_address(address))


def get_initial_price(starting_tick: int) -> float:
    """Log-price of an Ekubo tick: ``tick * ln(EKUBO_TICK_SIZE)``.

    Note this is a logarithm, not ``EKUBO_TICK_SIZE ** tick``. Existing
    consumers depend on the value as is.
    """
    return starting_tick * math.log(EKUBO_TICK_SIZE)


class PriceEngine:
    """Computes prices and market caps from chain state."""

    def __init__(self, rpc: StarknetRpcClient) -> None:
        self.rpc = rpc

    async def get_price(self, pair: str, at_block: int | str | None = None) -> Fraction:
        """USD price of a quote token from its USDC pair reserves.

        An empty pair means the quote token is the USD reference itself.
        """
        if not pair:
            return Fraction(1, 1)

        words = await self.rpc.call(pair, "get_reserves", [], block=at_block)
        if len(words) < 4:
            raise DecodeError(
                f"get_reserves on {pair} returned {len(words)} word(s), expected 4",
                index=len(words),
            )
        reserve0 = int(decode_u256(words[0], words[1]))
        reserve1 = int(decode_u256(words[2], words[3]))
        return Fraction(reserve1, reserve0) * Fraction(RESERVES_SCALE)

    async def compute_starting_market_cap(self, token: TokenRecord) -> str | None:
        """Starting market cap in whole USD, or None when the quote token is unknown."""
        quote_token = get_quote_token(token.liquidity.quote_token)
        if quote_token is None:
            logger.warning(
                f"Quote token {token.liquidity.quote_token} of {token.symbol} not recognized, "
                "no starting market cap"
            )
            return None

        quote_price_at_launch = await self.get_price(quote_token.usdc_pair, token.launch.block_number)

        initial_price = get_initial_price(token.liquidity.starting_tick)
        # Saturating float to unsigned conversion: negatives become 0
        price = max(int(initial_price), 0)

        price_fraction = Fraction(price) * Fraction(10**DECIMALS)
        supply = Fraction(int(token.total_supply))
        scale = Fraction(10**DECIMALS) * Fraction(STARTING_MCAP_SCALE)

        starting_mcap = (price_fraction * quote_price_at_launch * supply) / scale
        return starting_mcap.to_significant_digits(0, Rounding.ROUND_DOWN)

    async def get_liquidity_lock_position(self, liquidity: LiquidityInfo) -> LiquidityLockPosition:
        """Ekubo position details of the launch liquidity held by the launch manager."""
        words = await self.rpc.call(
            liquidity.launch_manager,
            "liquidity_position_details",
            [int(liquidity.pool_id)],
        )
        if len(words) < LOCK_POSITION_WIDTH:
            raise DecodeError(
                f"liquidity_position_details returned {len(words)} word(s), "
                f"expected {LOCK_POSITION_WIDTH}",
                index=len(words),
            )

        return LiquidityLockPosition(
            unlock_time=LIQUIDITY_LOCK_FOREVER_TIMESTAMP,
            owner=felt_to_hex(words[0]),
            pool_key=PoolKey(
                token0=felt_to_hex(words[2]),
                token1=felt_to_hex(words[3]),
                fee=felt_to_hex(words[4]),
                tick_spacing=felt_to_hex(words[5]),
                extension=felt_to_hex(words[6]),
            ),
            bounds=(
                Bound(mag=str(words[7]), sign=str(words[8])),
                Bound(mag=str(words[9]), sign=str(words[10])),
            ),
        )
