"""
Permit2 signing and calldata splicing.

The settlement contract decodes the permit signature from the tail of the
calldata:

    original_data ‖ uint256_be(len(signature)) ‖ signature

Any other encoding reverts on-chain.
"""

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from ..swap.errors import SignatureDeclined
from ..swap.models import Quote

if TYPE_CHECKING:
    from ..wallet.signer import Signer


logger = logging.getLogger(__name__)

SIGNATURE_LENGTH_BYTES = 32


def _to_bytes(data: str) -> bytes:
    text = data[2:] if data.startswith(("0x", "0X")) else data
    return bytes.fromhex(text)


def splice_signature(data: str, signature: bytes) -> str:
    """Append ``uint256(len(signature))`` and the signature to hex calldata."""
    if not signature:
        raise ValueError("empty signature")
    length = len(signature).to_bytes(SIGNATURE_LENGTH_BYTES, "big")
    return "0x" + (_to_bytes(data) + length + bytes(signature)).hex()


def strip_signature(data: str, signature_length: Optional[int] = None) -> Tuple[str, bytes]:
    """Inverse of ``splice_signature``: return ``(original_data, signature)``.

    Pass ``signature_length`` when known (65 for ECDSA); otherwise the
    shortest tail whose preceding word encodes its own length wins.
    """
    raw = _to_bytes(data)
    if len(raw) < SIGNATURE_LENGTH_BYTES:
        raise ValueError("calldata too short to carry a signature")

    candidates = [signature_length] if signature_length else range(1, len(raw) - SIGNATURE_LENGTH_BYTES + 1)
    for sig_len in candidates:
        if sig_len + SIGNATURE_LENGTH_BYTES > len(raw):
            break
        length_start = len(raw) - sig_len - SIGNATURE_LENGTH_BYTES
        length_word = raw[length_start:length_start + SIGNATURE_LENGTH_BYTES]
        if int.from_bytes(length_word, "big") == sig_len:
            return "0x" + raw[:length_start].hex(), raw[len(raw) - sig_len:]
    raise ValueError("no signature length word found in calldata")


class PermitSigner:
    """Signs a quote's Permit2 payload off-chain and splices it into calldata."""

    async def sign_and_splice(self, quote: Quote, signer: "Signer") -> str:
        """
        Return the transaction data to submit for ``quote``.

        Without a permit requirement the quote's data is returned unchanged.

        Raises:
            SignatureDeclined: the signer refused or failed to sign
        """
        if quote.permit2 is None:
            return quote.transaction.data

        try:
            signature = await signer.sign_typed_data(quote.permit2.eip712)
        except SignatureDeclined:
            raise
        except Exception as e:
            logger.warning(f"Permit signature declined by {signer.address}: {e}")
            raise SignatureDeclined(f"Permit signature was not produced: {e}") from e

        if not signature:
            raise SignatureDeclined("Signer returned an empty permit signature")

        logger.info(f"Permit2 signed ({len(signature)} bytes) for quote {quote.zid or '-'}")
        return splice_signature(quote.transaction.data, signature)
