"""Swap error taxonomy.

Every error carries a stable ``code`` used by the API layer and by the
user-facing outcome messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SwapError(Exception):
    """Base class for failures surfaced to the chat/API layer."""

    code = "swap_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class TokenNotFound(SwapError):
    code = "token_not_found"

    def __init__(self, query: str, reason: str = "no matching token") -> None:
        super().__init__(f"Token '{query}' could not be resolved: {reason}", details={"query": query})
        self.query = query


class InvalidAmount(SwapError):
    code = "invalid_amount"


class InvalidToolCall(SwapError):
    code = "invalid_tool_call"


class QuoteUnavailable(SwapError):
    code = "quote_unavailable"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["upstream_body"] = body
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body


class InsufficientBalance(SwapError):
    code = "insufficient_balance"


class ApprovalFailed(SwapError):
    code = "approval_failed"

    def __init__(self, message: str, *, tx_hash: Optional[str] = None) -> None:
        super().__init__(message, details={"tx_hash": tx_hash} if tx_hash else None)
        self.tx_hash = tx_hash


class SignatureDeclined(SwapError):
    code = "signature_declined"


class SubmissionFailed(SwapError):
    code = "submission_failed"

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        last_error: Optional[BaseException] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {"attempts": attempts}
        if last_error is not None:
            details["last_error"] = str(last_error)
        if tx_hash:
            details["tx_hash"] = tx_hash
        super().__init__(message, details=details)
        self.attempts = attempts
        self.last_error = last_error
        self.tx_hash = tx_hash


class ConfirmationReverted(SwapError):
    """Terminal on-chain revert. Gas was spent, the swap did not happen."""

    code = "confirmation_reverted"

    def __init__(self, message: str, *, tx_hash: str) -> None:
        super().__init__(message, details={"tx_hash": tx_hash})
        self.tx_hash = tx_hash


class ConfirmationTimeout(SwapError):
    code = "confirmation_timeout"

    def __init__(self, message: str, *, tx_hash: str) -> None:
        super().__init__(message, details={"tx_hash": tx_hash})
        self.tx_hash = tx_hash


class BalanceReadFailed(SwapError):
    """Advisory balance read failed. Never escapes BalanceReader."""

    code = "balance_read_failed"


class WalletNotConfigured(SwapError):
    code = "wallet_not_configured"
