"""Errors raised while talking to the chain node."""

from typing import Any, Optional

import httpx


class ExecutionError(Exception):
    """Base exception for execution errors."""
    pass


class RpcError(ExecutionError):
    """JSON-RPC call failed, either at the transport or in the node."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class GasEstimationError(ExecutionError):
    """Gas estimation failed."""
    pass


class TransactionRevertError(ExecutionError):
    """Transaction reverted (during estimation or on-chain)."""

    def __init__(self, message: str, revert_reason: Optional[str] = None):
        super().__init__(message)
        self.revert_reason = revert_reason


class TransactionTimeoutError(ExecutionError):
    """Transaction confirmation timed out."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


# EIP-1474 "execution reverted" code plus the wording geth/reth/anvil use.
_REVERT_CODES = {3}
_REVERT_MARKERS = ("execution reverted", "revert", "out of gas", "invalid opcode")


def looks_like_revert(code: Optional[int], message: str) -> bool:
    if code in _REVERT_CODES:
        return True
    lowered = (message or "").lower()
    return any(marker in lowered for marker in _REVERT_MARKERS)


def is_transient_error(exc: BaseException) -> bool:
    """Return ``True`` when retrying the same submission may succeed.

    Reverts are deterministic for a given state and never retried.
    """
    if isinstance(exc, TransactionRevertError):
        return False
    if isinstance(exc, (httpx.TransportError, TimeoutError)):
        return True
    if isinstance(exc, RpcError):
        return not looks_like_revert(exc.code, str(exc))
    return False
