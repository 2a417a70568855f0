from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap.service import SwapService, get_swap_service

router = APIRouter(prefix="/token")


class TokenDecimalsRequest(BaseModel):
    token_address: str = Field(min_length=1, alias="tokenAddress")

    class Config:
        populate_by_name = True


class TokenResolveRequest(BaseModel):
    token: str = Field(min_length=1)


@router.post("/decimals")
async def post_token_decimals(
    req: TokenDecimalsRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    decimals = await service.decimals(req.token_address)
    return {"token_address": req.token_address, "decimals": decimals}


@router.post("/resolve")
async def post_token_resolve(
    req: TokenResolveRequest,
    service: SwapService = Depends(get_swap_service),
) -> Dict[str, Any]:
    token = await service.resolve(req.token)
    return token.to_dict()
