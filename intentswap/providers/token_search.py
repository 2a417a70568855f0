"""Token metadata search (Coinbase ``cdp_listSwapAssets``)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .base import TokenMetadataProvider


class TokenSearchError(Exception):
    """Search request failed or timed out."""
    pass


@dataclass(frozen=True)
class TokenSearchResult:
    address: str
    symbol: str
    name: str
    decimals: int
    chain_id: int
    image: Optional[str] = None


class TokenSearchProvider(TokenMetadataProvider):
    """Searches swap-able assets by name or symbol."""

    name = "token_search"

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = (url or settings.token_search_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.token_search_api_key
        self.timeout_s = timeout_s or settings.token_search_timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.url}/{self.api_key}" if self.api_key else self.url

    async def ready(self) -> bool:
        return bool(self.url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "token search URL not configured"}
        return {"status": "healthy", "authenticated": bool(self.api_key)}

    async def search(self, query: str, limit: int = 10) -> List[TokenSearchResult]:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "cdp_listSwapAssets",
            "params": [{"search": query, "limit": str(limit), "page": "1"}],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TokenSearchError(f"token search for '{query}' failed: {exc}") from exc

        if data.get("error"):
            raise TokenSearchError(f"token search for '{query}' failed: {data['error']}")

        results: List[TokenSearchResult] = []
        for item in data.get("result") or []:
            try:
                results.append(
                    TokenSearchResult(
                        address=item["address"],
                        symbol=item["symbol"],
                        name=item.get("name") or item["symbol"],
                        decimals=int(item["decimals"]),
                        chain_id=int(item.get("chainId", settings.chain_id)),
                        image=item.get("image") or None,
                    )
                )
            except (KeyError, TypeError, ValueError):
                # Entries without address/symbol/decimals cannot be traded
                continue
        return results
