from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap.service import SwapService, get_swap_service

router = APIRouter()


class BalanceRequest(BaseModel):
    token: str = Field(min_length=1, description="Symbol, name or address; ETH for the native asset")
    address: Optional[str] = Field(default=None, description="Holder address; defaults to the server wallet")


@router.post("/balance")
async def post_balance(
    req: BalanceRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    return await service.balance(req.token, req.address)
