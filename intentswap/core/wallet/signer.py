"""Server-custodied signing authority.

The signer is the only component that touches key material. It signs EIP-712
typed data (permit) and raw EIP-1559 transactions; it never broadcasts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ...config import settings
from ..swap.errors import SignatureDeclined, WalletNotConfigured

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedTransaction:
    raw_transaction: str   # 0x-prefixed RLP
    tx_hash: str           # 0x-prefixed keccak of the raw transaction


@runtime_checkable
class Signer(Protocol):
    """What the swap flow needs from a wallet."""

    @property
    def address(self) -> str: ...

    async def sign_typed_data(self, payload: Mapping[str, Any]) -> bytes: ...

    async def sign_transaction(self, tx: Mapping[str, Any]) -> SignedTransaction: ...


class LocalAccountSigner:
    """Signer backed by an ``eth-account`` local key."""

    def __init__(self, account: LocalAccount, *, name: str = "") -> None:
        self._account = account
        self.name = name

    @classmethod
    def from_key(cls, private_key: str, *, name: str = "") -> "LocalAccountSigner":
        return cls(Account.from_key(private_key), name=name)

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, payload: Mapping[str, Any]) -> bytes:
        try:
            message = normalize_typed_data(payload)
            signed = self._account.sign_typed_data(full_message=message)
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning(f"Typed-data signature refused for {self.address}: {exc}")
            raise SignatureDeclined(f"Signer refused the typed-data payload: {exc}") from exc
        return bytes(signed.signature)

    async def sign_transaction(self, tx: Mapping[str, Any]) -> SignedTransaction:
        try:
            signed = self._account.sign_transaction(dict(tx))
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning(f"Transaction signature refused for {self.address}: {exc}")
            raise SignatureDeclined(f"Signer refused the transaction: {exc}") from exc
        return SignedTransaction(
            raw_transaction=_hex(signed.raw_transaction),
            tx_hash=_hex(signed.hash),
        )


def _hex(value: bytes) -> str:
    text = bytes(value).hex()
    return text if text.startswith("0x") else f"0x{text}"


def normalize_typed_data(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce numeric strings in an EIP-712 payload to ints.

    Aggregator APIs serialize uint256 fields as decimal strings; eth-account
    expects integers for ``uint*``/``int*`` members.
    """
    if "types" not in payload or "message" not in payload or "primaryType" not in payload:
        raise ValueError("typed data must contain types, primaryType and message")

    types: Dict[str, List[Dict[str, str]]] = payload["types"]
    domain = _coerce_struct(types, "EIP712Domain", dict(payload.get("domain") or {}))
    message = _coerce_struct(types, payload["primaryType"], dict(payload["message"]))
    return {
        "types": types,
        "primaryType": payload["primaryType"],
        "domain": domain,
        "message": message,
    }


def _coerce_struct(types: Dict[str, List[Dict[str, str]]], type_name: str, value: Dict[str, Any]) -> Dict[str, Any]:
    fields = types.get(type_name)
    if fields is None:
        return value
    coerced = dict(value)
    for member in fields:
        name, member_type = member["name"], member["type"]
        if name in coerced:
            coerced[name] = _coerce_value(types, member_type, coerced[name])
    return coerced


def _coerce_value(types: Dict[str, List[Dict[str, str]]], member_type: str, value: Any) -> Any:
    if member_type.endswith("[]"):
        inner = member_type[:-2]
        return [_coerce_value(types, inner, item) for item in value]
    if member_type in types and isinstance(value, dict):
        return _coerce_struct(types, member_type, value)
    if (member_type.startswith("uint") or member_type.startswith("int")) and isinstance(value, str):
        return int(value, 0) if value.startswith(("0x", "0X")) else int(value)
    return value


_server_wallet: Optional[LocalAccountSigner] = None


def get_or_create_server_wallet(private_key: Optional[str] = None) -> LocalAccountSigner:
    """Return the process-wide server wallet, creating it on first use.

    A single primitive instead of create-then-get: the key is the identity, so
    repeated calls always yield the same account.
    """
    global _server_wallet
    if _server_wallet is not None and private_key is None:
        return _server_wallet

    key = private_key or settings.server_wallet_private_key
    if not key:
        raise WalletNotConfigured(
            "Server wallet is not configured; set SERVER_WALLET_PRIVATE_KEY"
        )
    wallet = LocalAccountSigner.from_key(key, name=settings.server_wallet_name)
    if private_key is None:
        _server_wallet = wallet
        logger.info(f"Server wallet address: {wallet.address}")
    return wallet


def reset_server_wallet() -> None:
    global _server_wallet
    _server_wallet = None
