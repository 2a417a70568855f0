"""Map swap errors to HTTP responses."""

from typing import Dict, Type

from fastapi import Request
from fastapi.responses import JSONResponse

from ..core.swap.errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidToolCall,
    QuoteUnavailable,
    SwapError,
    TokenNotFound,
    WalletNotConfigured,
)

STATUS_BY_ERROR: Dict[Type[SwapError], int] = {
    TokenNotFound: 404,
    InvalidAmount: 400,
    InvalidToolCall: 400,
    QuoteUnavailable: 502,
    InsufficientBalance: 409,
    WalletNotConfigured: 503,
}


def status_for(exc: SwapError) -> int:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


async def swap_error_handler(request: Request, exc: SwapError) -> JSONResponse:
    payload = exc.to_dict()
    payload.setdefault("details", {})
    return JSONResponse(status_code=status_for(exc), content=payload)
