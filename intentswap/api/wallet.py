from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..config import settings
from ..core.swap.service import SwapService, get_swap_service

router = APIRouter(prefix="/wallet")


@router.get("/server")
async def get_server_wallet(service: SwapService = Depends(get_swap_service)) -> Dict[str, Any]:
    """Address of the server-custodied wallet that takes and signs swaps."""
    return {
        "address": service.signer.address,
        "name": settings.server_wallet_name,
        "chain_id": service.chain_id,
    }
