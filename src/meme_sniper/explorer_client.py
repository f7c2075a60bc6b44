"""Holder and balance lookups against the Starkscan contract API."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ExplorerUnavailableError
from .models import HolderCategory
from .utils.field_codec import normalize_address

logger = logging.getLogger(__name__)

HOLDERS_PAGE_SIZE = 100
EXCLUDED_HOLDER_ALIASES = frozenset({"Unruggable.meme", "Ekubo: Core"})
MEMECOIN_DECIMALS = 18


class Holder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    holder: str
    balance: str
    decimals: str = "0x12"
    contract_alias: str | None = Field(default=None, alias="contractAlias")


class HoldersPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[Holder]
    last_page: int = Field(default=0, alias="lastPage")
    has_more: bool = Field(default=False, alias="hasMore")


class TokenBalance(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    address: str
    balance: str
    decimals: str
    symbol: str
    formatted_balance: str = Field(default="", alias="formattedBalance")

    @property
    def decimals_value(self) -> int:
        try:
            return int(self.decimals, 16)
        except ValueError:
            return 0


class TokenBalancesPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    erc20_token_balances: list[TokenBalance] = Field(alias="erc20TokenBalances")


class ExplorerClient:
    """Async client for the explorer's contract API.

    Every failure surfaces as :class:`ExplorerUnavailableError`.
    """

    def __init__(
        self,
        api_url: str,
        excluded_holders: frozenset[str] = frozenset(),
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.excluded_holders = frozenset(normalize_address(a) for a in excluded_holders)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_url}/{path}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ExplorerUnavailableError(
                f"Explorer returned HTTP {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise ExplorerUnavailableError(f"Explorer request failed for {path}: {e}") from e
        except ValueError as e:
            raise ExplorerUnavailableError(f"Explorer returned invalid JSON for {path}") from e

    def _is_counted(self, holder: Holder) -> bool:
        if holder.contract_alias in EXCLUDED_HOLDER_ALIASES:
            return False
        try:
            return normalize_address(holder.holder) not in self.excluded_holders
        except ValueError:
            return True

    async def get_holder_category(self, token: str) -> HolderCategory:
        """Bucket the holder count of ``token``, ignoring launch contracts."""
        data = await self._get(f"{token}/holders", {"ps": HOLDERS_PAGE_SIZE, "type": "erc20"})
        try:
            page = HoldersPage.model_validate(data)
        except ValidationError as e:
            raise ExplorerUnavailableError(f"Malformed holders response for {token}: {e}") from e

        holders = [holder for holder in page.items if self._is_counted(holder)]
        category = HolderCategory.from_count(len(holders), has_more=page.has_more)
        logger.debug(f"{token} has {len(holders)} counted holders ({category.value})")
        return category

    async def is_valid_account(self, account: str) -> bool:
        data = await self._get(f"{account}/")
        return isinstance(data, dict) and data.get("isAccount") is True

    async def get_token_balances(self, account: str) -> list[TokenBalance]:
        """ERC20 balances of ``account`` limited to 18-decimal tokens."""
        data = await self._get(f"{account}/token-balances")
        try:
            page = TokenBalancesPage.model_validate(data)
        except ValidationError as e:
            raise ExplorerUnavailableError(f"Malformed balances response for {account}: {e}") from e

        return [
            balance for balance in page.erc20_token_balances
            if balance.decimals_value == MEMECOIN_DECIMALS
        ]
