#!/usr/bin/env python3
"""Token aggregation through a single multicall.

Builds the "token aggregate" batch for one memecoin, sends it to the
multicall aggregator and turns the flat response into a validated
:class:`TokenRecord`. Also hosts the smaller batched reads used by the
holder service: memecoin validation and balances.
"""

import logging
from collections.abc import Sequence

from .errors import InvalidTokenError, TokenNotLaunchedError
from .models import LaunchInfo, LiquidityInfo, PoolParameters, StartingPrice, TokenRecord
from .utils.field_codec import (
    decode_u256,
    encode_short_string,
    normalize_address,
    to_felt,
)
from .utils.multicall import (
    AGGREGATE_ENTRY_POINT,
    SCALAR,
    U256,
    CallDescriptor,
    MulticallRequest,
    MulticallResponse,
    struct,
)
from .utils.starknet_rpc import StarknetRpcClient

# Get logger for this module
logger = logging.getLogger(__name__)

EXCHANGE_NAME = "Ekubo"
LOCKED_LIQUIDITY_WIDTH = 3  # has_liquidity, launch_manager, pool_id
LIQUIDITY_PARAMETERS_WIDTH = 6  # quote_token, fee, tick_spacing, mag, sign, bound


def build_token_aggregate_request(token: int | str, factory: int | str) -> MulticallRequest:
    """Ordered batch describing everything needed to build a TokenRecord."""
    token = to_felt(token)
    factory = to_felt(factory)
    return MulticallRequest(calls=(
        CallDescriptor("is_memecoin", factory, "is_memecoin", (token,), SCALAR),
        CallDescriptor(
            "exchange_address", factory, "exchange_address",
            (encode_short_string(EXCHANGE_NAME),), SCALAR,
        ),
        CallDescriptor(
            "locked_liquidity", factory, "locked_liquidity",
            (token,), struct(LOCKED_LIQUIDITY_WIDTH),
        ),
        CallDescriptor("name", token, "name", (), SCALAR),
        CallDescriptor("symbol", token, "symbol", (), SCALAR),
        CallDescriptor("total_supply", token, "total_supply", (), U256),
        CallDescriptor("owner", token, "owner", (), SCALAR),
        CallDescriptor("launched_at_block_number", token, "launched_at_block_number", (), SCALAR),
        CallDescriptor("team_allocation", token, "get_team_allocation", (), U256),
        CallDescriptor(
            "liquidity_parameters", token, "launched_with_liquidity_parameters",
            (), struct(LIQUIDITY_PARAMETERS_WIDTH),
        ),
    ))


def parse_pool_parameters(words: Sequence[int]) -> PoolParameters:
    """Decode the 5-word Ekubo pool parameter struct."""
    fee, tick_spacing, mag, sign, bound = words
    return PoolParameters(
        fee=fee,
        tick_spacing=tick_spacing,
        starting_price=StartingPrice(mag=mag, sign=sign == 1),
        bound=bound,
    )


def parse_token_record(
    address: str,
    response: MulticallResponse,
    exchange_address: str,
) -> TokenRecord:
    """Validate and decode a token aggregate response.

    Raises:
        InvalidTokenError: Token unknown to the factory or launched elsewhere
        TokenNotLaunchedError: Token has no locked liquidity yet
    """
    if response.scalar("is_memecoin") == 0:
        raise InvalidTokenError(address, "not a memecoin")

    exchange = response.address("exchange_address")
    if exchange != normalize_address(exchange_address):
        raise InvalidTokenError(address, f"unexpected exchange {exchange}")

    has_liquidity, launch_manager, pool_id = response["locked_liquidity"]
    if has_liquidity == 0:
        raise TokenNotLaunchedError(address)

    quote_token, *pool_words = response["liquidity_parameters"]
    pool_parameters = parse_pool_parameters(pool_words)

    return TokenRecord(
        address=address,
        name=response.short_string("name"),
        symbol=response.short_string("symbol"),
        total_supply=response.u256("total_supply"),
        owner=response.address("owner"),
        is_launched=has_liquidity > 0,
        launch=LaunchInfo(
            team_allocation=response.u256("team_allocation"),
            block_number=response.scalar("launched_at_block_number"),
        ),
        liquidity=LiquidityInfo(
            launch_manager=normalize_address(launch_manager),
            pool_id=str(pool_id),
            quote_token=normalize_address(quote_token),
            starting_tick=pool_parameters.starting_tick,
        ),
        pool_parameters=pool_parameters,
    )


class TokenAggregator:
    """Reads memecoin state from chain through the multicall aggregator.

    Nothing is cached: every call re-fetches from the latest block.
    """

    def __init__(
        self,
        rpc: StarknetRpcClient,
        factory_address: str,
        multicall_address: str,
        exchange_address: str,
    ) -> None:
        self.rpc = rpc
        self.factory_address = normalize_address(factory_address)
        self.multicall_address = normalize_address(multicall_address)
        self.exchange_address = normalize_address(exchange_address)

    async def execute(self, request: MulticallRequest, block: int | str | None = None) -> MulticallResponse:
        """Send a batch to the aggregator and decode it against the same batch."""
        words = await self.rpc.call(
            self.multicall_address,
            AGGREGATE_ENTRY_POINT,
            request.encode(),
            block=block,
        )
        return request.decode(words)

    async def fetch_token_record(self, address: str) -> TokenRecord:
        """Aggregate, validate and decode one memecoin.

        Raises:
            InvalidTokenError: If the token fails validation (never retried)
            RpcError: If the aggregator call fails
            DecodeError: If the response does not match the batch
        """
        address = normalize_address(address)
        request = build_token_aggregate_request(address, self.factory_address)
        response = await self.execute(request)
        record = parse_token_record(address, response, self.exchange_address)
        logger.info(f"Aggregated {record} at block {response.block_number}")
        return record

    async def validate_memecoins(self, addresses: Sequence[str]) -> list[str]:
        """Keep only the addresses the factory recognizes as memecoins."""
        if not addresses:
            return []

        normalized = list(dict.fromkeys(normalize_address(address) for address in addresses))
        request = MulticallRequest(calls=tuple(
            CallDescriptor(f"is_memecoin:{address}", self.factory_address, "is_memecoin", (address,), SCALAR)
            for address in normalized
        ))
        response = await self.execute(request)
        valid = [
            address for address in normalized
            if response.scalar(f"is_memecoin:{address}") != 0
        ]
        logger.debug(f"{len(valid)}/{len(normalized)} addresses are memecoins")
        return valid

    async def get_balance(self, token: str, account: str) -> str:
        """Raw ``balance_of`` of ``account`` in ``token`` as a decimal string."""
        words = await self.rpc.call(token, "balance_of", [to_felt(account)])
        low = words[0] if len(words) > 0 else None
        high = words[1] if len(words) > 1 else None
        return decode_u256(low, high)
