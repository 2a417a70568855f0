"""
Transaction builder and ERC-20 calldata helpers.
"""

import secrets
from typing import Optional

from eth_utils import is_hex_address

from ..swap.constants import MAX_UINT256
from ..swap.models import Quote
from .models import PreparedTransaction, TransactionType


# Common contract selectors (minimal for encoding)
ERC20_APPROVE_SELECTOR = "0x095ea7b3"    # approve(address,uint256)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
ERC20_BALANCE_OF_SELECTOR = "0x70a08231" # balanceOf(address)
ERC20_DECIMALS_SELECTOR = "0x313ce567"   # decimals()
ERC20_SYMBOL_SELECTOR = "0x95d89b41"     # symbol()


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"value out of uint256 range: {value}")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    if not is_hex_address(address):
        raise ValueError(f"invalid address: {address}")
    return address.lower()[2:].zfill(64)


def encode_allowance_call(owner: str, spender: str) -> str:
    return ERC20_ALLOWANCE_SELECTOR + _encode_address(owner) + _encode_address(spender)


def encode_balance_of_call(owner: str) -> str:
    return ERC20_BALANCE_OF_SELECTOR + _encode_address(owner)


def decode_uint256(result: Optional[str]) -> int:
    """Decode a single uint return value; empty results ('0x') decode to 0."""
    if not result or result == "0x":
        return 0
    return int(result[2:66] if result.startswith("0x") else result[:64], 16)


def decode_string(result: Optional[str]) -> Optional[str]:
    """Decode an ABI ``string`` return, tolerating legacy ``bytes32`` symbols."""
    if not result or result == "0x":
        return None
    raw = bytes.fromhex(result[2:] if result.startswith("0x") else result)
    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="ignore") or None
    if len(raw) < 64:
        return None
    offset = int.from_bytes(raw[:32], "big")
    length = int.from_bytes(raw[offset:offset + 32], "big")
    text = raw[offset + 32:offset + 32 + length].decode("utf-8", errors="ignore")
    return text or None


def _prepared(
    tx_type: TransactionType,
    chain_id: int,
    sender: str,
    to: str,
    data: str,
    *,
    value: int = 0,
    gas_limit: Optional[int] = None,
    description: str = "",
) -> PreparedTransaction:
    return PreparedTransaction(
        tx_id=f"{tx_type.value}_{secrets.token_hex(12)}",
        tx_type=tx_type,
        chain_id=chain_id,
        from_address=sender.lower(),
        to_address=to.lower(),
        data=data if data.startswith("0x") else f"0x{data}",
        value=value,
        gas_limit=gas_limit,
        description=description,
    )


class TransactionBuilder:
    """Builds the two transactions a swap can send: an approval and the settlement call."""

    @staticmethod
    def build_erc20_approve(
        chain_id: int,
        owner_address: str,
        token_address: str,
        spender_address: str,
        amount: int = MAX_UINT256,
        description: str = "",
    ) -> PreparedTransaction:
        """``approve(spender, amount)`` on ``token_address``, sent by the owner."""
        calldata = ERC20_APPROVE_SELECTOR + _encode_address(spender_address) + _encode_uint256(amount)
        return _prepared(
            TransactionType.APPROVE,
            chain_id,
            owner_address,
            token_address,
            calldata,
            description=description or f"Approve {spender_address} on {token_address}",
        )

    @staticmethod
    def build_from_quote(
        quote: Quote,
        chain_id: int,
        from_address: str,
        data: Optional[str] = None,
        description: str = "",
    ) -> PreparedTransaction:
        """
        Settlement transaction for a binding quote.

        ``data`` replaces the quote calldata, which is how the permit-spliced
        calldata reaches the chain. Value and gas come from the quote as-is.
        """
        tx = quote.transaction
        return _prepared(
            TransactionType.SWAP,
            chain_id,
            from_address,
            tx.to,
            data if data is not None else tx.data,
            value=tx.value,
            gas_limit=tx.gas,
            description=description or f"Swap {quote.sell_amount} {quote.sell_token} for {quote.buy_token}",
        )
