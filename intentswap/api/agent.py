"""Dispatch endpoint for the chat layer's function calls."""

from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap.service import SwapService, get_swap_service

router = APIRouter(prefix="/agent")


class ToolCallRequest(BaseModel):
    name: str = Field(min_length=1, description="Tool name, e.g. execute_swap")
    arguments: Optional[Union[Dict[str, Any], str]] = Field(
        default=None,
        description="Tool arguments as an object or a JSON-encoded string",
    )


@router.post("/tool-call")
async def post_tool_call(
    req: ToolCallRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    result = await service.handle_tool_call(req.name, req.arguments)
    return {"name": req.name, "result": result}
