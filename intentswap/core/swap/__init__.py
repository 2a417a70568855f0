"""
Swap orchestration.

Heavy modules (``executor``, ``service``, ``outcome``, ``intent``) are
imported from their own modules; this package only re-exports the shared
models and errors that lower layers depend on.
"""

from .errors import (
    SwapError,
    TokenNotFound,
    InvalidAmount,
    InvalidToolCall,
    QuoteUnavailable,
    InsufficientBalance,
    ApprovalFailed,
    SignatureDeclined,
    SubmissionFailed,
    ConfirmationReverted,
    ConfirmationTimeout,
    BalanceReadFailed,
    WalletNotConfigured,
)
from .models import (
    TokenRef,
    SwapIntent,
    Quote,
    PriceEstimate,
    SwapAttempt,
    SwapStage,
    SwapOutcome,
    SwapHistoryRecord,
    SwapResult,
)

__all__ = [
    "SwapError",
    "TokenNotFound",
    "InvalidAmount",
    "InvalidToolCall",
    "QuoteUnavailable",
    "InsufficientBalance",
    "ApprovalFailed",
    "SignatureDeclined",
    "SubmissionFailed",
    "ConfirmationReverted",
    "ConfirmationTimeout",
    "BalanceReadFailed",
    "WalletNotConfigured",
    "TokenRef",
    "SwapIntent",
    "Quote",
    "PriceEstimate",
    "SwapAttempt",
    "SwapStage",
    "SwapOutcome",
    "SwapHistoryRecord",
    "SwapResult",
]
