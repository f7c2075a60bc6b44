"""Ekubo quoting API client, the secondary market cap source.

Asks how many memecoins one unit of a reference stable buys and derives
price and market cap from that amount.
"""

import logging
from decimal import Decimal, InvalidOperation

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import QuoteUnavailableError
from .models import MarketCapQuote

logger = logging.getLogger(__name__)

REFERENCE_TOKEN = "USDT"
REFERENCE_AMOUNT = 10**6  # 1 USDT in base units
TOKEN_DECIMALS = 18
QUOTE_TIMEOUT = 10.0


class QuotePoolKey(BaseModel):
    token0: str
    token1: str
    fee: str
    tick_spacing: int
    extension: str


class QuoteRoute(BaseModel):
    pool_key: QuotePoolKey
    sqrt_ratio_limit: str
    skip_ahead: int


class QuoteSplit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: str
    specified_amount: str = Field(alias="specifiedAmount")
    route: list[QuoteRoute]


class QuoteResponse(BaseModel):
    """``GET /quote/{amount}/{from}/{to}`` response.

    ``total`` is the amount of output token, in base units, as a decimal
    string. Anything that is not a positive number is rejected.
    """

    total: str
    splits: list[QuoteSplit] = []

    @field_validator("total")
    @classmethod
    def _total_is_positive_number(cls, value: str) -> str:
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"total is not numeric: {value!r}") from None
        if not amount.is_finite() or amount <= 0:
            raise ValueError(f"total must be a positive number, got {value!r}")
        return value

    @property
    def total_amount(self) -> Decimal:
        return Decimal(self.total)


class QuoteClient:
    """Async client for the Ekubo quoting API."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=QUOTE_TIMEOUT)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_quote(self, amount: int, from_token: str, to_token: str) -> QuoteResponse:
        """Fetch and validate one quote.

        Raises:
            QuoteUnavailableError: On HTTP failure or a malformed response
        """
        url = f"{self.base_url}/quote/{amount}/{from_token}/{to_token}"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return QuoteResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise QuoteUnavailableError(
                f"Quote API returned HTTP {e.response.status_code} for {to_token}"
            ) from e
        except httpx.HTTPError as e:
            raise QuoteUnavailableError(f"Quote API request failed for {to_token}: {e}") from e
        except (ValueError, ValidationError) as e:
            raise QuoteUnavailableError(f"Malformed quote for {to_token}: {e}") from e

    async def calculate_market_cap(self, total_supply: str, token: str) -> MarketCapQuote:
        """Price and market cap of ``token`` priced against 1 USDT.

        Args:
            total_supply: Raw total supply (18 decimals) as a decimal string
            token: Symbol or address understood by the quoting API

        Raises:
            QuoteUnavailableError: If the quote cannot be obtained or used
        """
        quote = await self.get_quote(REFERENCE_AMOUNT, REFERENCE_TOKEN, token)
        try:
            supply = Decimal(total_supply)
        except InvalidOperation:
            raise QuoteUnavailableError(f"Total supply is not numeric: {total_supply!r}") from None

        tokens_per_usd = quote.total_amount / Decimal(10**TOKEN_DECIMALS)
        price = 1 / tokens_per_usd
        market_cap = supply / quote.total_amount

        logger.debug(f"Quote for {token}: {tokens_per_usd} tokens per USD")
        return MarketCapQuote(price=float(price), market_cap=float(market_cap))
