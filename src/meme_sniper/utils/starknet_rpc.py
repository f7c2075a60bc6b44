"""Minimal async Starknet JSON-RPC client over httpx.

Only the two methods the sniper needs are wrapped: ``starknet_call`` and
``starknet_getEvents``, plus ``starknet_blockNumber`` for the chain head
shown in the service status line.
"""

import itertools
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ..errors import ContractCallError, TransientFetchError
from ..models import ChainEvent, EventsPage
from .field_codec import felt_to_hex, get_selector_from_name, normalize_address

logger = logging.getLogger(__name__)

LATEST = "latest"
DEFAULT_CHUNK_SIZE = 1000
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def block_id(block: int | str | None) -> str | dict[str, int]:
    """JSON-RPC block identifier for a block number or tag."""
    if block is None or block == LATEST:
        return LATEST
    if isinstance(block, str):
        return block
    return {"block_number": int(block)}


class StarknetRpcClient:
    """Async Starknet JSON-RPC client.

    Network failures, timeouts and retryable HTTP statuses surface as
    :class:`TransientFetchError`; JSON-RPC error objects surface as
    :class:`ContractCallError`.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "StarknetRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request(self, method: str, params: dict[str, Any]) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug(f"RPC {method} -> {self.rpc_url}")
        try:
            response = await self._client.post(self.rpc_url, json=payload)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise TransientFetchError(f"{method} request failed: {e}") from e

        if response.status_code in RETRYABLE_STATUS:
            raise TransientFetchError(f"{method} returned HTTP {response.status_code}")
        try:
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ContractCallError(f"{method} returned HTTP {response.status_code}") from e
        except ValueError as e:
            raise TransientFetchError(f"{method} returned a non-JSON body") from e

        if "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                message = error.get("message", "unknown error")
                if error.get("data"):
                    message = f"{message}: {error['data']}"
                raise ContractCallError(f"{method} RPC error: {message}", code=error.get("code"))
            raise ContractCallError(f"{method} RPC error: {error}")
        if "result" not in data:
            raise TransientFetchError(f"{method} response has no result")
        return data["result"]

    async def call(
        self,
        contract_address: int | str,
        entry_point: str,
        calldata: Sequence[int] = (),
        block: int | str | None = None,
    ) -> list[int]:
        """Execute a read-only contract call and return the raw result words."""
        params = {
            "request": {
                "contract_address": normalize_address(contract_address),
                "entry_point_selector": felt_to_hex(get_selector_from_name(entry_point)),
                "calldata": [felt_to_hex(word) for word in calldata],
            },
            "block_id": block_id(block),
        }
        result = await self.request("starknet_call", params)
        return [int(word, 16) for word in result]

    async def get_events(
        self,
        address: int | str,
        keys: Sequence[int],
        from_block: int,
        to_block: int | str | None = None,
        continuation_token: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> EventsPage:
        """Fetch one page of events emitted by ``address`` with a first key in ``keys``."""
        event_filter: dict[str, Any] = {
            "from_block": block_id(from_block),
            "to_block": block_id(to_block),
            "address": normalize_address(address),
            "keys": [[felt_to_hex(key) for key in keys]],
            "chunk_size": chunk_size,
        }
        if continuation_token:
            event_filter["continuation_token"] = continuation_token

        result = await self.request("starknet_getEvents", {"filter": event_filter})
        events = tuple(
            ChainEvent.from_rpc(raw, event_index=index)
            for index, raw in enumerate(result.get("events", []))
        )
        return EventsPage(events=events, continuation_token=result.get("continuation_token"))

    async def block_number(self) -> int:
        return int(await self.request("starknet_blockNumber", {}))

