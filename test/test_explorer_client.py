#!/usr/bin/env python3
"""Tests for the explorer holder and balance client."""

import httpx
import pytest

from meme_sniper.config import EKUBO_CORE_ADDRESS
from meme_sniper.errors import ExplorerUnavailableError
from meme_sniper.explorer_client import ExplorerClient
from meme_sniper.models import HolderCategory

API_URL = "https://explorer.test/api/v0/contract"
TOKEN = "0x00" + "d" * 62


def holder(index: int, alias: str | None = None) -> dict:
    return {"holder": hex(index + 1), "balance": "1", "decimals": "0x12", "contractAlias": alias}


def make_client(handler, **kwargs) -> ExplorerClient:
    return ExplorerClient(
        API_URL,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


class TestHolderCategory:
    """Tests for holder bucketing."""

    @pytest.mark.parametrize("count,has_more,expected", [
        (0, False, HolderCategory.UNDER_10),
        (9, False, HolderCategory.UNDER_10),
        (10, False, HolderCategory.OVER_10),
        (20, False, HolderCategory.OVER_20),
        (99, False, HolderCategory.OVER_50),
        (3, True, HolderCategory.OVER_100),
    ])
    def test_from_count(self, count, has_more, expected):
        """Test bucket boundaries."""
        assert HolderCategory.from_count(count, has_more) is expected

    @pytest.mark.asyncio
    async def test_launch_contracts_not_counted(self):
        """Test that launcher and core holders are excluded from the count."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            items = [holder(i) for i in range(9)]
            items.append(holder(100, alias="Unruggable.meme"))
            items.append(holder(101, alias="Ekubo: Core"))
            items.append({"holder": EKUBO_CORE_ADDRESS, "balance": "1", "decimals": "0x12"})
            return httpx.Response(200, json={"items": items, "lastPage": 1, "hasMore": False})

        client = make_client(handler, excluded_holders=frozenset({EKUBO_CORE_ADDRESS}))
        category = await client.get_holder_category(TOKEN)

        assert category is HolderCategory.UNDER_10
        assert requests[0].url.path == f"/api/v0/contract/{TOKEN}/holders"
        assert requests[0].url.params["ps"] == "100"
        assert requests[0].url.params["type"] == "erc20"

    @pytest.mark.asyncio
    async def test_more_pages(self):
        """Test that a further page means over a hundred holders."""
        client = make_client(lambda request: httpx.Response(
            200, json={"items": [holder(i) for i in range(100)], "hasMore": True}
        ))
        assert await client.get_holder_category(TOKEN) is HolderCategory.OVER_100

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        """Test that an unexpected body is reported as unavailable."""
        client = make_client(lambda request: httpx.Response(200, json={"data": []}))
        with pytest.raises(ExplorerUnavailableError, match="Malformed holders"):
            await client.get_holder_category(TOKEN)

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Test that HTTP failures are reported as unavailable."""
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(ExplorerUnavailableError, match="HTTP 500"):
            await client.get_holder_category(TOKEN)


class TestAccounts:
    """Tests for account validation and balances."""

    @pytest.mark.asyncio
    async def test_is_valid_account(self):
        """Test the isAccount flag."""
        client = make_client(lambda request: httpx.Response(200, json={"isAccount": True}))
        assert await client.is_valid_account("0x1") is True

        client = make_client(lambda request: httpx.Response(200, json={"isAccount": False}))
        assert await client.is_valid_account("0x1") is False

    @pytest.mark.asyncio
    async def test_token_balances_keep_18_decimals(self):
        """Test that only 18-decimal tokens are returned."""
        body = {"erc20TokenBalances": [
            {"name": "Doge", "address": "0xd", "balance": "5", "decimals": "0x12", "symbol": "DOGE"},
            {"name": "USD Coin", "address": "0xc", "balance": "5", "decimals": "0x6", "symbol": "USDC"},
            {"name": "Broken", "address": "0xb", "balance": "5", "decimals": "zz", "symbol": "BRK"},
        ]}
        client = make_client(lambda request: httpx.Response(200, json=body))

        balances = await client.get_token_balances("0x1")

        assert [balance.symbol for balance in balances] == ["DOGE"]
