#!/usr/bin/env python3
"""Tests for alert rendering and chat replies."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from meme_sniper.errors import ExplorerUnavailableError, InvalidAccountError, TokenNotLaunchedError
from meme_sniper.messages import (
    MALFORMED_ADDRESS,
    TOKEN_LOOKUP_FAILED,
    UNEXPECTED_ERROR,
    WALLET_LOOKUP_FAILED,
    launch_keyboard,
    peek_reply,
    radar_reply,
    render_launch_alert,
    render_radar,
    spot_reply,
)
from meme_sniper.models import (
    HolderCategory,
    LaunchInfo,
    LaunchReport,
    LiquidityInfo,
    MemecoinInfo,
    TokenHoldings,
    TokenRecord,
)

TOKEN = "0x00" + "d" * 62
WALLET = "0x00" + "1" * 62
DEX_URL = "https://app.avnu.fi"
EXPLORER_URL = "https://starkscan.co"


@pytest.fixture
def record():
    return TokenRecord(
        address=TOKEN,
        name="Doge",
        symbol="DOGE",
        total_supply=str(10**27),
        owner=WALLET,
        is_launched=True,
        launch=LaunchInfo(team_allocation=str(5 * 10**25), block_number=100),
        liquidity=LiquidityInfo(
            launch_manager="0x00" + "7" * 62,
            pool_id="42",
            quote_token="0x00" + "e" * 62,
            starting_tick=4600158,
        ),
    )


@pytest.fixture
def info():
    return MemecoinInfo(
        address=TOKEN,
        name="Doge",
        symbol="DOGE",
        total_supply=str(10**27),
        owner=WALLET,
        team_allocation="0",
        price="0.0005",
        market_cap="500000.0",
        usd_dex_liquidity="1500.5",
    )


class TestLaunchAlert:
    """Tests for the launch alert text and buttons."""

    def test_alert_text(self, record):
        """Test headline, figures and hashtags."""
        report = LaunchReport(token=record, starting_market_cap="12,000", holders=HolderCategory.UNDER_10)
        text = render_launch_alert(report)

        assert text.startswith("🚨 *FRESH LAUNCH ALERT*")
        assert "*Doge* (DOGE)" in text
        assert "Starting MCAP: $12,000" in text
        assert "Supply: 1B" in text
        assert "Liquidity: EKUBO Pool #42" in text
        assert "Team: 5.0%" in text
        assert "Early bird" in text
        assert text.endswith("#Starknet #Memecoin #DOGE")

    def test_partial_report(self, record):
        """Test that missing figures render as N/A."""
        report = LaunchReport(token=record, warnings=("market cap unavailable", "holders unavailable"))
        text = render_launch_alert(report)

        assert report.is_partial
        assert "Starting MCAP: $N/A" in text
        assert "Holders:" not in text

    def test_fallback_market_cap(self, record):
        """Test that the quoted market cap is used without a starting one."""
        report = LaunchReport(token=record, market_cap="500000.00")
        assert "Starting MCAP: $500000.00" in render_launch_alert(report)

    def test_keyboard(self):
        """Test buy amounts and links."""
        rows = launch_keyboard(DEX_URL, EXPLORER_URL, TOKEN, "DOGE")

        assert [button.text for button in rows[0]] == ["🚀 Buy $10", "🚀 Buy $50", "🚀 Buy $100"]
        assert rows[0][1].url == f"{DEX_URL}?token={TOKEN}&amount=50&symbol=DOGE"
        assert rows[2][0].url == f"{EXPLORER_URL}/contract/{TOKEN}"


class TestReplies:
    """Tests for the user-facing replies and their failure messages."""

    def test_render_radar(self, info):
        """Test the radar layout."""
        text = render_radar(info, HolderCategory.OVER_100, DEX_URL, EXPLORER_URL)
        assert "*Token:* $DOGE" in text
        assert "*MCap:* $500K" in text
        assert "*LP:* $1.5K" in text
        assert "Moon phase" in text

    @pytest.mark.asyncio
    async def test_radar_reply(self, info):
        """Test a successful radar lookup."""
        aggregator = MagicMock()
        aggregator.aggregate_info = AsyncMock(return_value=(info, HolderCategory.OVER_10))

        text = await radar_reply(aggregator, TOKEN, DEX_URL, EXPLORER_URL)

        assert "SNIQ RADAR" in text
        aggregator.aggregate_info.assert_awaited_once_with(TOKEN)

    @pytest.mark.asyncio
    async def test_radar_reply_failures(self):
        """Test that failures are reduced to short messages."""
        aggregator = MagicMock()
        assert await radar_reply(aggregator, "0x123", DEX_URL, EXPLORER_URL) == MALFORMED_ADDRESS

        aggregator.aggregate_info = AsyncMock(side_effect=TokenNotLaunchedError(TOKEN))
        assert await radar_reply(aggregator, TOKEN, DEX_URL, EXPLORER_URL) == TOKEN_LOOKUP_FAILED

        aggregator.aggregate_info = AsyncMock(side_effect=RuntimeError("bug"))
        assert await radar_reply(aggregator, TOKEN, DEX_URL, EXPLORER_URL) == UNEXPECTED_ERROR

    @pytest.mark.asyncio
    async def test_peek_reply(self):
        """Test the bag check and its failure modes."""
        aggregator = MagicMock()
        aggregator.get_account_holdings = AsyncMock(return_value=TokenHoldings(account=WALLET, tokens=(TOKEN,)))
        assert "*Total Memecoins:* 1" in await peek_reply(aggregator, WALLET)

        aggregator.get_account_holdings = AsyncMock(side_effect=InvalidAccountError(WALLET))
        assert await peek_reply(aggregator, WALLET) == MALFORMED_ADDRESS

        aggregator.get_account_holdings = AsyncMock(side_effect=ExplorerUnavailableError("down"))
        assert await peek_reply(aggregator, WALLET) == WALLET_LOOKUP_FAILED

    @pytest.mark.asyncio
    async def test_spot_reply(self, info):
        """Test that both addresses are validated before any lookup."""
        aggregator = MagicMock()
        aggregator.get_account_holding_info = AsyncMock()

        assert await spot_reply(aggregator, WALLET, "DOGE", DEX_URL) == MALFORMED_ADDRESS
        aggregator.get_account_holding_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_out_of_field_address_is_malformed(self):
        """Test that hex addresses at or above the field prime never reach a lookup."""
        too_large = "0x" + "f" * 64
        aggregator = MagicMock()
        aggregator.aggregate_info = AsyncMock()
        aggregator.get_account_holdings = AsyncMock()
        aggregator.get_account_holding_info = AsyncMock()

        assert await radar_reply(aggregator, too_large, DEX_URL, EXPLORER_URL) == MALFORMED_ADDRESS
        assert await peek_reply(aggregator, too_large) == MALFORMED_ADDRESS
        assert await spot_reply(aggregator, WALLET, too_large, DEX_URL) == MALFORMED_ADDRESS
        aggregator.aggregate_info.assert_not_awaited()
        aggregator.get_account_holdings.assert_not_awaited()
        aggregator.get_account_holding_info.assert_not_awaited()
