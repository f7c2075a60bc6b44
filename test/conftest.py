"""Shared fixtures: a synthetic launched memecoin and its multicall response."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from meme_sniper.config import EXCHANGE_ADDRESS, MEMECOIN_FACTORY_ADDRESS, MULTICALL_AGGREGATOR_ADDRESS
from meme_sniper.pricing import ETH
from meme_sniper.token_aggregator import TokenAggregator, build_token_aggregate_request
from meme_sniper.utils.field_codec import encode_short_string, normalize_address, to_felt

DOGE_ADDRESS = normalize_address("0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")
LAUNCH_MANAGER = normalize_address("0x0777")


def doge_results(**overrides):
    """Per-call results for a launched DOGE paired with ETH."""
    results = {
        "is_memecoin": [1],
        "exchange_address": [to_felt(EXCHANGE_ADDRESS)],
        "locked_liquidity": [1, to_felt(LAUNCH_MANAGER), 42],
        "name": [encode_short_string("DOGE")],
        "symbol": [encode_short_string("DOGE")],
        "total_supply": [0, 1],
        "owner": [1],
        "launched_at_block_number": [100],
        "team_allocation": [500, 0],
        "liquidity_parameters": [to_felt(ETH.address), 0xC49BA5E353F7D00000000000000000, 5982, 4600158, 0, 88719042],
    }
    results.update(overrides)
    return results


def doge_response(block_number: int = 120, **overrides) -> list[int]:
    request = build_token_aggregate_request(DOGE_ADDRESS, MEMECOIN_FACTORY_ADDRESS)
    return request.build_response(block_number, doge_results(**overrides))


@pytest.fixture
def mock_rpc():
    """RPC client whose ``call`` answers the token aggregate batch for DOGE."""
    rpc = MagicMock()
    rpc.call = AsyncMock(return_value=doge_response())
    rpc.close = AsyncMock()
    return rpc


@pytest.fixture
def aggregator(mock_rpc):
    return TokenAggregator(
        mock_rpc,
        factory_address=MEMECOIN_FACTORY_ADDRESS,
        multicall_address=MULTICALL_AGGREGATOR_ADDRESS,
        exchange_address=EXCHANGE_ADDRESS,
    )
