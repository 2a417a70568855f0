"""Async JSON-RPC client for the chain node."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.execution.errors import RpcError, TransactionRevertError, looks_like_revert
from .base import Provider

logger = logging.getLogger(__name__)


class RpcClient(Provider):
    """Thin wrapper over an EVM JSON-RPC endpoint."""

    name = "rpc"

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url or settings.rpc_url
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=self.timeout_s)
        self._ids = itertools.count(1)

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "RPC URL not configured"}
        try:
            chain_id = await self.chain_id()
            return {"status": "healthy", "chain_id": chain_id}
        except RpcError as e:
            return {"status": "error", "reason": str(e)}

    async def call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call, raising RpcError / TransactionRevertError on failure."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise RpcError(
                f"{method} failed with HTTP {e.response.status_code}: {e.response.text[:200]}",
                code=e.response.status_code,
            ) from e
        except (httpx.TransportError, ValueError) as e:
            raise RpcError(f"{method} transport error: {e}") from e

        error = result.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            data = error.get("data") if isinstance(error, dict) else None
            if looks_like_revert(code, message):
                raise TransactionRevertError(f"{method}: {message}", revert_reason=_revert_reason(data, message))
            raise RpcError(f"RPC error in {method}: {message}", code=code, data=data)

        return result.get("result")

    async def chain_id(self) -> int:
        return int(await self.call("eth_chainId", []), 16)

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return int(await self.call("eth_getBalance", [address, block]), 16)

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(await self.call("eth_getTransactionCount", [address, block]), 16)

    async def estimate_gas(self, call_obj: Dict[str, Any]) -> int:
        return int(await self.call("eth_estimateGas", [call_obj]), 16)

    async def fee_history(self, blocks: int = 1, percentiles: Optional[List[int]] = None) -> Dict[str, Any]:
        return await self.call("eth_feeHistory", [blocks, "latest", percentiles or [50]])

    async def send_raw_transaction(self, raw_tx: str) -> str:
        tx_hash = await self.call("eth_sendRawTransaction", [raw_tx])
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def block_number(self) -> int:
        return int(await self.call("eth_blockNumber", []), 16)

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()


def _revert_reason(data: Any, message: str) -> Optional[str]:
    if isinstance(data, str) and data.startswith("0x"):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), str):
        return data["data"]
    return message or None


# Singleton instance
_rpc_client: Optional[RpcClient] = None


def get_rpc_client() -> RpcClient:
    """Get the singleton RPC client."""
    global _rpc_client
    if _rpc_client is None:
        _rpc_client = RpcClient()
    return _rpc_client
