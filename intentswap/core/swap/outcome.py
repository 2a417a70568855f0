"""User-visible summaries of terminal swap attempts.

Every terminal attempt maps to a message that says what happened, whether
funds moved, and whether asking again is safe. Asking again always means a
fresh quote; the same signed transaction is never re-submitted.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from ...config import settings
from ...services.units import from_base_units
from .errors import ApprovalFailed, ConfirmationTimeout, SwapError, SubmissionFailed
from .models import SwapAttempt, SwapResult, SwapStage


def _buy_amount(attempt: SwapAttempt) -> Optional[str]:
    if attempt.quote is None:
        return None
    return from_base_units(attempt.quote.buy_amount, attempt.intent.buy_token.decimals)


def _approval_note(attempt: SwapAttempt) -> str:
    if attempt.approval_tx_hash:
        return f" Approval succeeded ({attempt.approval_tx_hash}), swap not yet executed."
    return ""


def describe_outcome(attempt: SwapAttempt) -> SwapResult:
    """Build the SwapResult for an attempt that reached a terminal stage."""
    if not attempt.is_terminal:
        raise ValueError(f"swap {attempt.swap_id} is still {attempt.stage.value}")

    intent = attempt.intent
    buy_amount = _buy_amount(attempt)
    tx_hash = attempt.tx_hash
    payload: Dict[str, Any] = {"gas_spent": bool(tx_hash or attempt.approval_tx_hash)}

    if attempt.stage == SwapStage.CONFIRMED:
        message = (
            f"Swapped {intent.sell_amount_human} {intent.sell_token.symbol} for "
            f"~{buy_amount} {intent.buy_token.symbol}."
        )
        funds_moved, retry_safe = True, False

    elif attempt.stage == SwapStage.REVERTED:
        message = (
            f"The swap transaction was mined but reverted. Gas was spent; no "
            f"{intent.sell_token.symbol} left your wallet. Request a fresh quote to try again."
        )
        funds_moved, retry_safe = False, True

    else:
        error = attempt.error
        message, retry_safe = _failure_message(attempt, error)
        funds_moved = False
        if isinstance(error, SwapError) and error.details:
            payload["details"] = dict(error.details)
        tx_hash = tx_hash or getattr(error, "tx_hash", None)

    if tx_hash:
        message = f"{message} Transaction: {tx_hash}"

    return SwapResult(
        status=attempt.stage.value,
        message=message,
        funds_moved=funds_moved,
        retry_safe=retry_safe,
        swap_id=attempt.swap_id,
        tx_hash=tx_hash,
        approval_tx_hash=attempt.approval_tx_hash,
        explorer_url=settings.explorer_tx_url(tx_hash) if tx_hash else None,
        error_code=attempt.error_code,
        sell_amount=intent.sell_amount_human,
        buy_amount=buy_amount,
        stages=[stage.value for stage in attempt.stages_visited],
        payload=payload,
    )


def _failure_message(attempt: SwapAttempt, error: Optional[BaseException]) -> Tuple[str, bool]:
    """Return ``(message, retry_safe)`` for a FAILED attempt."""
    approval = _approval_note(attempt)
    detail = getattr(error, "message", None) or str(error or "unknown error")

    if isinstance(error, ConfirmationTimeout):
        return (
            "The swap was broadcast but no receipt arrived in time. It may still "
            "confirm; check the explorer before trying again.",
            False,
        )
    if isinstance(error, SubmissionFailed):
        return (
            f"The swap could not be submitted after {error.attempts} attempt(s): "
            f"{error.last_error or detail}. No funds moved.{approval}",
            True,
        )
    if isinstance(error, ApprovalFailed):
        spent = " The approval transaction may have spent gas." if error.tx_hash else ""
        return f"Token approval failed: {detail}. No swap was executed.{spent}", True

    return f"Swap failed: {detail}. No funds moved.{approval}", True


__all__ = ["describe_outcome"]
