"""Server-custodied wallet and signing."""

from .signer import (
    LocalAccountSigner,
    SignedTransaction,
    Signer,
    get_or_create_server_wallet,
    normalize_typed_data,
    reset_server_wallet,
)

__all__ = [
    "LocalAccountSigner",
    "SignedTransaction",
    "Signer",
    "get_or_create_server_wallet",
    "normalize_typed_data",
    "reset_server_wallet",
]
