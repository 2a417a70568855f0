from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import agent, balance, health, swap, token, wallet
from .api.errors import swap_error_handler
from .config import settings
from .core.swap.errors import SwapError
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging(settings.log_level)

# Create FastAPI app
app = FastAPI(
    title="IntentSwap API",
    description="Natural-language token swaps executed by a server-custodied wallet",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(SwapError, swap_error_handler)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(swap.router, tags=["Swap"])
app.include_router(balance.router, tags=["Balance"])
app.include_router(token.router, tags=["Token"])
app.include_router(wallet.router, tags=["Wallet"])
app.include_router(agent.router, tags=["Agent"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "IntentSwap API",
        "version": "0.1.0",
        "chain_id": settings.chain_id,
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "intentswap.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
