"""
Tool-call adapter.

The chat layer's function calls arrive with arguments either as a JSON
string or as an already-decoded object, with snake_case or camelCase keys.
Everything is normalized here into typed requests so the swap core never
sniffs payload shapes.
"""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ...services.units import parse_decimal_amount
from .errors import InvalidAmount, InvalidToolCall


logger = logging.getLogger(__name__)

SWAP_TOOLS = {"get_price", "get_quote", "execute_swap"}
BALANCE_TOOLS = {"check_balance", "get_balance"}


class SwapRequest(BaseModel):
    """A swap intent as the user expressed it: tokens by name or address, human amount."""

    sell_token: str = Field(..., min_length=1, alias="sellToken")
    buy_token: str = Field(..., min_length=1, alias="buyToken")
    sell_amount: str = Field(..., alias="sellAmount", description="Human decimal amount")
    user_id: Optional[str] = Field(default=None, alias="userId")

    class Config:
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("sell_amount", mode="before")
    @classmethod
    def _validate_amount(cls, value: Any) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        try:
            return format(parse_decimal_amount(value), "f")
        except InvalidAmount as e:
            raise ValueError(e.message) from e


class BalanceRequest(BaseModel):
    token: str = Field(..., min_length=1)
    address: Optional[str] = None

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    """Decode a tool-call argument payload into a dict.

    Accepts a dict, a JSON object string, or None (no arguments).
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        if not text.strip():
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidToolCall(f"Tool arguments are not valid JSON: {e.msg}") from e
        if not isinstance(decoded, dict):
            raise InvalidToolCall(f"Tool arguments must be a JSON object, got {type(decoded).__name__}")
        return decoded
    raise InvalidToolCall(f"Unsupported tool argument payload: {type(raw).__name__}")


def _validation_error(exc: ValidationError, tool: str) -> InvalidToolCall:
    fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
    return InvalidToolCall(
        f"Invalid arguments for {tool}: {', '.join(fields) or 'payload'}",
        details={"errors": [err["msg"] for err in exc.errors()], "fields": fields},
    )


def parse_swap_request(raw: Any) -> SwapRequest:
    """
    Normalize swap tool arguments.

    Raises:
        InvalidAmount: the amount is missing its value, non-numeric or not positive
        InvalidToolCall: the payload is malformed or missing tokens
    """
    args = parse_tool_arguments(raw)
    try:
        return SwapRequest.model_validate(args)
    except ValidationError as e:
        for err in e.errors():
            if err["loc"] and err["loc"][0] in ("sell_amount", "sellAmount") and err["type"] == "value_error":
                raise InvalidAmount(str(err["msg"]).replace("Value error, ", "")) from e
        raise _validation_error(e, "swap") from e


def parse_balance_request(raw: Any) -> BalanceRequest:
    args = parse_tool_arguments(raw)
    try:
        return BalanceRequest.model_validate(args)
    except ValidationError as e:
        raise _validation_error(e, "balance") from e


__all__ = [
    "SwapRequest",
    "BalanceRequest",
    "SWAP_TOOLS",
    "BALANCE_TOOLS",
    "parse_tool_arguments",
    "parse_swap_request",
    "parse_balance_request",
]
