#!/usr/bin/env python3
"""Token radar and wallet views built on top of the chain and explorer clients."""

import logging
from decimal import Decimal

from .errors import InvalidAccountError, QuoteUnavailableError
from .explorer_client import ExplorerClient
from .models import HolderCategory, MemecoinInfo, TokenHoldings, UserTokenInfo
from .quote_client import QuoteClient
from .token_aggregator import TokenAggregator
from .utils.field_codec import normalize_address

# Get logger for this module
logger = logging.getLogger(__name__)

TOKEN_UNIT = Decimal(10**18)


class InfoAggregator:
    """Combines on-chain state, quotes and explorer data for one token or wallet."""

    def __init__(
        self,
        aggregator: TokenAggregator,
        quote_client: QuoteClient,
        explorer: ExplorerClient,
        ekubo_core_address: str,
    ) -> None:
        self.aggregator = aggregator
        self.quote_client = quote_client
        self.explorer = explorer
        self.ekubo_core_address = normalize_address(ekubo_core_address)

    async def aggregate_info(self, token: str) -> tuple[MemecoinInfo, HolderCategory]:
        """On-chain record, market data, DEX liquidity and holder bucket of ``token``.

        Market fields are left empty when the quoting service is down.
        """
        record = await self.aggregator.fetch_token_record(token)

        price = ""
        market_cap = ""
        usd_dex_liquidity = ""
        try:
            quote = await self.quote_client.calculate_market_cap(record.total_supply, record.symbol)
        except QuoteUnavailableError as e:
            logger.warning(f"No market data for {record.symbol}: {e}")
        else:
            price = str(quote.price)
            market_cap = str(quote.market_cap)
            pool_balance = await self.aggregator.get_balance(record.address, self.ekubo_core_address)
            usd_dex_liquidity = str(Decimal(pool_balance) / TOKEN_UNIT * Decimal(price))

        holders = await self.explorer.get_holder_category(record.address)

        info = MemecoinInfo(
            address=record.address,
            name=record.name,
            symbol=record.symbol,
            total_supply=record.total_supply,
            owner=record.owner,
            team_allocation=record.launch.team_allocation,
            price=price,
            market_cap=market_cap,
            usd_dex_liquidity=usd_dex_liquidity,
        )
        return info, holders

    async def get_account_holdings(self, account: str) -> TokenHoldings:
        """Memecoins held by ``account``.

        Raises:
            InvalidAccountError: If the explorer does not know the account
        """
        if not await self.explorer.is_valid_account(account):
            raise InvalidAccountError(account)

        balances = await self.explorer.get_token_balances(account)
        memecoins = await self.aggregator.validate_memecoins([b.address for b in balances])
        logger.info(f"{account} holds {len(memecoins)} memecoin(s) out of {len(balances)} tokens")
        return TokenHoldings(account=normalize_address(account), tokens=tuple(memecoins))

    async def get_account_holding_info(self, account: str, token: str) -> UserTokenInfo:
        """Balance of ``account`` in ``token`` and its USD value."""
        info, _ = await self.aggregate_info(token)
        balance = await self.aggregator.get_balance(info.address, account)

        usd_value = ""
        if info.price:
            usd_value = f"{Decimal(balance) / TOKEN_UNIT * Decimal(info.price):.2f}"

        return UserTokenInfo(coin_info=info, account_balance=balance, usd_value=usd_value)
