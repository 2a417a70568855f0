from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.swap.service import SwapService, get_swap_service

router = APIRouter()


@router.get("/healthz")
async def health_check(service: SwapService = Depends(get_swap_service)) -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    provider_status = await service.health()

    all_healthy = all(
        status["status"] in ["healthy", "configured"]
        for status in provider_status.values()
    )

    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] in ["healthy", "configured"]
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
    }
