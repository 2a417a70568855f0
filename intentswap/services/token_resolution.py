"""
Token resolution: name, symbol or address → TokenRef.

Lookup order:
- Native aliases and placeholder addresses resolve to the chain's native asset
- Well-formed addresses read ``decimals()`` from chain, falling back to the
  trusted registry only for addresses it already knows
- Symbols and names hit the trusted registry first, then the external
  metadata search

Symbol lookups fail closed: a search timeout or an empty result is
``TokenNotFound``, never a guess.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from eth_utils import is_hex_address, to_checksum_address

from ..config import settings
from ..core.execution.errors import ExecutionError
from ..core.execution.tx_builder import (
    ERC20_DECIMALS_SELECTOR,
    ERC20_SYMBOL_SELECTOR,
    decode_string,
    decode_uint256,
)
from ..core.swap.constants import (
    NATIVE_ADDRESSES,
    NATIVE_DECIMALS,
    NATIVE_TOKEN_ADDRESS,
    TOKEN_REGISTRY,
    build_address_map,
    build_alias_map,
)
from ..core.swap.errors import TokenNotFound
from ..core.swap.models import TokenRef
from ..providers.rpc import RpcClient, get_rpc_client
from ..providers.token_search import TokenSearchError, TokenSearchProvider

logger = logging.getLogger(__name__)


def _registry_token(chain_id: int, key: str) -> TokenRef:
    meta: Dict[str, Any] = TOKEN_REGISTRY[chain_id][key]
    return TokenRef(
        address=str(meta["address"]),
        symbol=str(meta["symbol"]),
        decimals=int(meta["decimals"]),
        name=meta.get("name"),
        is_native=bool(meta.get("is_native")),
    )


class TokenResolver:
    """Resolves user-supplied token identifiers on a single chain."""

    def __init__(
        self,
        rpc: Optional[RpcClient] = None,
        search: Optional[TokenSearchProvider] = None,
        chain_id: Optional[int] = None,
    ) -> None:
        self.rpc = rpc or get_rpc_client()
        self.search = search or TokenSearchProvider()
        self.chain_id = chain_id or settings.chain_id
        self._aliases = build_alias_map(self.chain_id)
        self._addresses = build_address_map(self.chain_id)

    def native_token(self) -> TokenRef:
        return TokenRef(
            address=NATIVE_TOKEN_ADDRESS,
            symbol="ETH",
            decimals=NATIVE_DECIMALS,
            name="Ether",
            is_native=True,
        )

    async def resolve(self, name_or_address: str) -> TokenRef:
        """
        Resolve a token identifier.

        Raises:
            TokenNotFound: unknown symbol, malformed or unreadable address,
                or the metadata search failed
        """
        query = (name_or_address or "").strip()
        if not query:
            raise TokenNotFound(name_or_address or "", "empty token identifier")

        lowered = query.lower()
        if lowered in NATIVE_ADDRESSES:
            return self.native_token()

        if lowered.startswith("0x"):
            if not is_hex_address(query):
                raise TokenNotFound(query, "malformed address")
            return await self._resolve_address(query)

        key = self._aliases.get(lowered)
        if key is not None:
            return _registry_token(self.chain_id, key)

        return await self._search(query)

    async def _resolve_address(self, address: str) -> TokenRef:
        checksum = to_checksum_address(address)
        known_key = self._addresses.get(address.lower())

        try:
            raw = await self.rpc.eth_call(checksum, ERC20_DECIMALS_SELECTOR)
            if not raw or raw == "0x":
                # No code at the address, or no decimals() function
                raise ValueError("empty decimals() result")
            decimals = decode_uint256(raw)
        except (ExecutionError, ValueError) as e:
            if known_key is not None:
                logger.warning(f"decimals() read failed for {checksum}, using registry: {e}")
                return _registry_token(self.chain_id, known_key)
            raise TokenNotFound(address, f"could not read decimals from chain: {e}") from e

        if decimals > 255:
            raise TokenNotFound(address, f"contract reported invalid decimals {decimals}")

        symbol: Optional[str] = None
        if known_key is not None:
            symbol = str(TOKEN_REGISTRY[self.chain_id][known_key]["symbol"])
        else:
            try:
                symbol = decode_string(await self.rpc.eth_call(checksum, ERC20_SYMBOL_SELECTOR))
            except (ExecutionError, ValueError) as e:
                logger.debug(f"symbol() read failed for {checksum}: {e}")

        return TokenRef(address=checksum, symbol=symbol or checksum[:10], decimals=decimals)

    async def _search(self, query: str) -> TokenRef:
        try:
            results = await self.search.search(query, limit=10)
        except TokenSearchError as e:
            logger.warning(f"Token search failed for '{query}': {e}")
            raise TokenNotFound(query, "token search unavailable") from e

        for result in results:
            if result.chain_id != self.chain_id or not is_hex_address(result.address):
                continue
            if not 0 <= result.decimals <= 255:
                logger.debug(f"Skipping search hit {result.address}: decimals {result.decimals}")
                continue
            logger.info(f"Resolved '{query}' via search → {result.symbol} ({result.address})")
            return TokenRef(
                address=to_checksum_address(result.address),
                symbol=result.symbol,
                decimals=result.decimals,
                name=result.name,
            )
        raise TokenNotFound(query, f"no token found on chain {self.chain_id}")

    async def get_decimals(self, token_address: str) -> int:
        return (await self.resolve(token_address)).decimals


_resolver: Optional[TokenResolver] = None


def get_token_resolver() -> TokenResolver:
    global _resolver
    if _resolver is None:
        _resolver = TokenResolver()
    return _resolver
