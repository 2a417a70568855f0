from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..core.swap.models import SwapHistoryRecord
from ..core.swap.service import SwapService, get_swap_service


router = APIRouter(prefix="/swap")


class SwapPriceRequest(BaseModel):
    sell_token: str = Field(min_length=1, description="Symbol, name or address of the token to sell")
    buy_token: str = Field(min_length=1, description="Symbol, name or address of the token to buy")
    sell_amount: str = Field(min_length=1, description="Human decimal amount of the sell token")
    taker: Optional[str] = Field(default=None, description="Taker address; quotes default to the server wallet")


class SwapExecuteRequest(BaseModel):
    sell_token: str = Field(min_length=1)
    buy_token: str = Field(min_length=1)
    sell_amount: str = Field(min_length=1)
    user_id: Optional[str] = Field(default=None, description="Owner of the history record")


class SwapHistoryRequest(BaseModel):
    user_id: str = Field(min_length=1)
    tx_hash: str = Field(min_length=1)
    sell_token: str
    sell_symbol: str
    sell_amount: str
    buy_token: str
    buy_symbol: str
    buy_amount: str
    status: str = "confirmed"


@router.post("/price")
async def post_swap_price(
    req: SwapPriceRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    return await service.price(req.sell_token, req.buy_token, req.sell_amount, req.taker)


@router.post("/quote")
async def post_swap_quote(
    req: SwapPriceRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    return await service.quote(req.sell_token, req.buy_token, req.sell_amount, req.taker)


@router.post("/execute")
async def post_swap_execute(
    req: SwapExecuteRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    result = await service.execute(
        req.sell_token,
        req.buy_token,
        req.sell_amount,
        user_id=req.user_id,
    )
    return result.to_dict()


@router.post("/history")
async def post_swap_history(
    req: SwapHistoryRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    record = await service.record_history(SwapHistoryRecord(**req.model_dump()))
    return record.to_dict()


@router.get("/history")
async def get_swap_history(
    user_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    records: List[SwapHistoryRecord] = await service.history(user_id, limit)
    return {"user_id": user_id.lower(), "swaps": [r.to_dict() for r in records]}
