"""Chat message templates and user-facing replies.

Replies never leak internal error detail: failures are reduced to a
malformed address, a token lookup failure or an unexpected error.
"""

import logging

from .errors import InvalidAccountError, SniperError
from .info_aggregator import InfoAggregator
from .models import HolderCategory, LaunchReport, MemecoinInfo, TokenHoldings, UserTokenInfo
from .notifier import LinkButton
from .utils.field_codec import is_valid_starknet_address
from .utils.formatting import (
    calculate_team_allocation,
    format_large_number,
    format_number,
    format_percentage,
    format_price,
    format_short_address,
)

logger = logging.getLogger(__name__)

MALFORMED_ADDRESS = "❌ Malformed address"
TOKEN_LOOKUP_FAILED = "Error fetching token details ⁉️"
WALLET_LOOKUP_FAILED = "Error peeking into wallet ⁉️"
UNEXPECTED_ERROR = "❌ Unexpected error occurred"

HOLDER_LABELS = {
    HolderCategory.UNDER_10: "🌱 *<10* — *Early bird special!*",
    HolderCategory.OVER_10: "🚀 *>10* — *FOMO vibes!*",
    HolderCategory.OVER_20: "🔥 *>20* — *It's heating up! 🔥*",
    HolderCategory.OVER_50: "💥 *>50* — *Time to jump in!*",
    HolderCategory.OVER_100: "🌑 *>100 hodlers* — *Moon phase incoming!*",
}


def _compact(value: str) -> str:
    try:
        return format_number(value)
    except ValueError:
        return "N/A"


def render_launch_alert(report: LaunchReport) -> str:
    token = report.token
    starting_mcap = report.starting_market_cap or report.market_cap
    try:
        team = format_percentage(
            calculate_team_allocation(token.total_supply, token.launch.team_allocation)
        )
    except ValueError:
        team = "N/A"

    lines = [
        "🚨 *FRESH LAUNCH ALERT*",
        "",
        f"*{token.name}* ({token.symbol}) has landed on Starknet!",
        "",
        f"Starting MCAP: ${format_price(starting_mcap) if starting_mcap else 'N/A'}",
        f"Supply: {_compact(format_large_number(token.total_supply))}",
        f"Liquidity: {report.liquidity_label}",
        f"Team: {team}%",
    ]
    if report.holders is not None:
        lines.append(f"Holders: {HOLDER_LABELS[report.holders]}")
    lines += [
        "⚡️ GET IN NOW",
        "",
        f"#Starknet #Memecoin #{token.symbol}",
    ]
    return "\n".join(lines)


def launch_keyboard(dex_url: str, explorer_url: str, address: str, symbol: str) -> list[list[LinkButton]]:
    buys = [
        LinkButton(f"🚀 Buy ${amount}", f"{dex_url}?token={address}&amount={amount}&symbol={symbol}")
        for amount in (10, 50, 100)
    ]
    return [
        buys,
        [LinkButton("💰 Custom Amount", f"{dex_url}?token={address}")],
        [LinkButton("🔍 View Contract", f"{explorer_url}/contract/{address}")],
    ]


def render_radar(info: MemecoinInfo, holders: HolderCategory, dex_url: str, explorer_url: str) -> str:
    return "\n".join([
        "⚡ ====== *SNIQ RADAR* ======⚡",
        "",
        f"*Token:* ${info.symbol}",
        f"*Name:* {info.name}",
        f"*Contract:* {info.address}",
        "",
        "📊 *METRICS*",
        f"💰 *Price:* ${info.price or 'N/A'}",
        f"📈 *MCap:* ${_compact(info.market_cap)}",
        f"💫 *Supply:* {_compact(format_large_number(info.total_supply))}",
        f"👥 *Holders:* {HOLDER_LABELS[holders]}",
        f"💧 *LP:* ${_compact(info.usd_dex_liquidity)}",
        "",
        "🛡 *SECURITY CHECK*",
        "🔒 *LP Status:* Locked Forever",
        "",
        "🔗 *QUICK LINKS*",
        f"🎯 *Trade:* {dex_url}",
        f"🔍 *Explorer:* {explorer_url}/contract/{info.address}",
    ])


def render_bag_check(holdings: TokenHoldings) -> str:
    return "\n".join([
        "💼 ====== *BAG CHECK* ====== 💼",
        "",
        "👛 *Wallet:*",
        holdings.account,
        "",
        "💼 *PORTFOLIO*",
        f"🎯 *Total Memecoins:* {holdings.count}",
        "",
        "💡 *TIP:* Check token position",
        "*Use: /spot <wallet> <token>*",
    ])


def render_spot(wallet: str, position: UserTokenInfo, dex_url: str) -> str:
    return "\n".join([
        "📊 ====== *TOKEN SPOT* ====== 📊",
        "",
        f"*Wallet:* {format_short_address(wallet)}",
        f"*Token:* ${position.coin_info.symbol}",
        "",
        "*POSITION*",
        f"*Balance:* {format_large_number(position.account_balance)}",
        f"*Worth:* ${position.usd_value or 'N/A'}",
        "",
        "*ACTIONS*",
        f"⚡️ *Trade Now:* {dex_url}",
    ])


async def radar_reply(info_aggregator: InfoAggregator, token: str, dex_url: str, explorer_url: str) -> str:
    """Token radar for ``token`` or a short failure message."""
    if not is_valid_starknet_address(token):
        return MALFORMED_ADDRESS
    try:
        info, holders = await info_aggregator.aggregate_info(token)
    except SniperError as e:
        logger.warning(f"Radar lookup for {token} failed: {e}")
        return TOKEN_LOOKUP_FAILED
    except Exception as e:
        logger.error(f"Unexpected error in radar lookup for {token}: {e}", exc_info=True)
        return UNEXPECTED_ERROR
    return render_radar(info, holders, dex_url, explorer_url)


async def peek_reply(info_aggregator: InfoAggregator, wallet: str) -> str:
    """Memecoin count held by ``wallet`` or a short failure message."""
    if not is_valid_starknet_address(wallet):
        return MALFORMED_ADDRESS
    try:
        holdings = await info_aggregator.get_account_holdings(wallet)
    except InvalidAccountError:
        return MALFORMED_ADDRESS
    except SniperError as e:
        logger.warning(f"Wallet lookup for {wallet} failed: {e}")
        return WALLET_LOOKUP_FAILED
    except Exception as e:
        logger.error(f"Unexpected error in wallet lookup for {wallet}: {e}", exc_info=True)
        return UNEXPECTED_ERROR
    return render_bag_check(holdings)


async def spot_reply(info_aggregator: InfoAggregator, wallet: str, token: str, dex_url: str) -> str:
    """Position of ``wallet`` in ``token`` or a short failure message."""
    if not is_valid_starknet_address(wallet) or not is_valid_starknet_address(token):
        return MALFORMED_ADDRESS
    try:
        position = await info_aggregator.get_account_holding_info(wallet, token)
    except SniperError as e:
        logger.warning(f"Spot lookup for {wallet}/{token} failed: {e}")
        return TOKEN_LOOKUP_FAILED
    except Exception as e:
        logger.error(f"Unexpected error in spot lookup for {wallet}/{token}: {e}", exc_info=True)
        return UNEXPECTED_ERROR
    return render_spot(wallet, position, dex_url)
