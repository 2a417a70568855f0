"""
Balance reads for the native asset and ERC-20 tokens.

Balances are point-in-time and never cached. A failed read is advisory:
it is logged and reported as ``"0"`` so the surrounding chat flow keeps going.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.execution.errors import ExecutionError
from ..core.execution.tx_builder import decode_uint256, encode_balance_of_call
from ..core.swap.errors import BalanceReadFailed
from ..core.swap.models import TokenRef
from ..providers.rpc import RpcClient, get_rpc_client
from .units import from_base_units

logger = logging.getLogger(__name__)

ZERO_BALANCE = "0"


class BalanceReader:
    """Reads formatted balances from chain."""

    def __init__(self, rpc: Optional[RpcClient] = None) -> None:
        self.rpc = rpc or get_rpc_client()

    async def get_balance_base_units(self, token: TokenRef, address: str) -> int:
        """Raw balance in base units. Raises BalanceReadFailed."""
        try:
            if token.is_native_address:
                return await self.rpc.get_balance(address)
            result = await self.rpc.eth_call(token.address, encode_balance_of_call(address))
            return decode_uint256(result)
        except (ExecutionError, ValueError) as e:
            raise BalanceReadFailed(f"Could not read {token.symbol} balance of {address}: {e}") from e

    async def get_balance(self, token: TokenRef, address: str) -> str:
        """Formatted decimal balance, or ``"0"`` when the read fails."""
        try:
            raw = await self.get_balance_base_units(token, address)
        except BalanceReadFailed as e:
            logger.warning(f"{e.message}; reporting zero")
            return ZERO_BALANCE
        return from_base_units(raw, token.decimals)


_reader: Optional[BalanceReader] = None


def get_balance_reader() -> BalanceReader:
    global _reader
    if _reader is None:
        _reader = BalanceReader()
    return _reader
