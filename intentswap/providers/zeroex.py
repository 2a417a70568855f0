"""Async client for the 0x Swap API (Permit2 flow)."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import httpx

from ..config import settings
from ..core.swap.errors import QuoteUnavailable
from ..core.swap.models import (
    AllowanceIssue,
    BalanceIssue,
    Permit2Data,
    PriceEstimate,
    Quote,
    QuoteIssues,
    QuoteTransaction,
)
from .base import QuoteProvider

logger = logging.getLogger(__name__)


class ZeroExProvider(QuoteProvider):
    """Wrapper around the ``/swap/permit2/price`` and ``/swap/permit2/quote`` endpoints.

    All amounts in and out are base units. Human-decimal conversion belongs to
    the caller, which has the resolved token decimals.
    """

    name = "0x"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        chain_id: Optional[int] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.zero_ex_api_key
        self.base_url = (base_url or settings.zero_ex_base_url).rstrip("/")
        self.chain_id = chain_id or settings.chain_id
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "0x-api-key": self.api_key,
            "0x-version": settings.zero_ex_api_version,
        }

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "0x API key not configured"}
        return {"status": "healthy", "base_url": self.base_url, "chain_id": self.chain_id}

    def _params(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: Optional[str],
    ) -> Dict[str, str]:
        if sell_amount <= 0:
            raise QuoteUnavailable(f"sellAmount must be positive base units, got {sell_amount}")
        params = {
            "chainId": str(self.chain_id),
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": str(int(sell_amount)),
        }
        if taker:
            params["taker"] = taker
        return params

    async def _get(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(path, params=params, headers=self._headers())
        except httpx.RequestError as exc:
            logger.warning(f"0x request to {path} failed: {exc}")
            raise QuoteUnavailable(f"Pricing API unreachable: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            body = response.text
            logger.warning(f"0x {path} returned {response.status_code}: {body[:300]}")
            raise QuoteUnavailable(
                f"Pricing API returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise QuoteUnavailable(
                "Pricing API returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        if not isinstance(data, dict):
            raise QuoteUnavailable(
                "Pricing API returned a non-object body",
                status_code=response.status_code,
                body=response.text,
            )

        if data.get("liquidityAvailable") is False:
            raise QuoteUnavailable(
                "No liquidity available for this pair and amount",
                status_code=response.status_code,
                body=response.text,
            )
        return data

    async def get_price(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: Optional[str] = None,
    ) -> PriceEstimate:
        data = await self._get(
            "/swap/permit2/price",
            self._params(sell_token, buy_token, sell_amount, taker),
        )
        with _malformed_response(data):
            return _parse_price(data, sell_token=sell_token, buy_token=buy_token, sell_amount=sell_amount)

    async def get_quote(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str,
    ) -> Quote:
        if not taker:
            raise QuoteUnavailable("A taker address is required for an executable quote")
        data = await self._get(
            "/swap/permit2/quote",
            self._params(sell_token, buy_token, sell_amount, taker),
        )
        with _malformed_response(data):
            return parse_quote(data, sell_token=sell_token, buy_token=buy_token, sell_amount=sell_amount)


@contextmanager
def _malformed_response(data: Dict[str, Any]) -> Iterator[None]:
    try:
        yield
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning(f"Malformed 0x response: {exc!r}")
        raise QuoteUnavailable(
            f"Pricing API returned a malformed response: {exc!r}",
            body=str(data)[:500],
        ) from exc


def _parse_price(
    data: Dict[str, Any],
    *,
    sell_token: str,
    buy_token: str,
    sell_amount: int,
) -> PriceEstimate:
    return PriceEstimate(
        sell_token=data.get("sellToken", sell_token),
        buy_token=data.get("buyToken", buy_token),
        sell_amount=_to_int(data.get("sellAmount"), default=sell_amount),
        buy_amount=_to_int(data.get("buyAmount")),
        min_buy_amount=_to_int(data.get("minBuyAmount")),
        estimated_gas=_optional_int(data.get("gas")),
        issues=parse_issues(data.get("issues")),
        route=dict(data.get("route") or {}),
        liquidity_available=bool(data.get("liquidityAvailable", True)),
        total_network_fee=_optional_int(data.get("totalNetworkFee")),
        raw_response=data,
    )


def parse_quote(
    data: Dict[str, Any],
    *,
    sell_token: str,
    buy_token: str,
    sell_amount: int,
) -> Quote:
    """Build a ``Quote`` from a 0x quote response."""

    tx = data.get("transaction") or {}
    if not tx.get("to") or not tx.get("data"):
        raise QuoteUnavailable("Quote response has no executable transaction", body=str(data)[:500])

    transaction = QuoteTransaction(
        to=tx["to"],
        data=tx["data"],
        value=_to_int(tx.get("value")),
        gas=_optional_int(tx.get("gas")),
        gas_price=_optional_int(tx.get("gasPrice")),
    )

    permit2 = None
    permit_payload = data.get("permit2")
    if permit_payload and permit_payload.get("eip712"):
        permit2 = Permit2Data(
            eip712=permit_payload["eip712"],
            hash=permit_payload.get("hash"),
            type=permit_payload.get("type", "Permit2"),
        )

    return Quote(
        sell_token=data.get("sellToken", sell_token),
        buy_token=data.get("buyToken", buy_token),
        sell_amount=_to_int(data.get("sellAmount"), default=sell_amount),
        buy_amount=_to_int(data.get("buyAmount")),
        min_buy_amount=_to_int(data.get("minBuyAmount")),
        estimated_gas=_optional_int(data.get("gas")) or transaction.gas,
        issues=parse_issues(data.get("issues")),
        transaction=transaction,
        permit2=permit2,
        route=dict(data.get("route") or {}),
        zid=data.get("zid"),
        total_network_fee=_optional_int(data.get("totalNetworkFee")),
        raw_response=data,
    )


def parse_issues(issues: Optional[Dict[str, Any]]) -> QuoteIssues:
    if not issues:
        return QuoteIssues()

    allowance = None
    allowance_data = issues.get("allowance")
    if allowance_data:
        allowance = AllowanceIssue(
            spender=allowance_data["spender"],
            actual=_to_int(allowance_data.get("actual")),
        )

    balance = None
    balance_data = issues.get("balance")
    if balance_data:
        balance = BalanceIssue(
            token=balance_data.get("token", ""),
            actual=_to_int(balance_data.get("actual")),
            expected=_to_int(balance_data.get("expected")),
        )

    return QuoteIssues(
        allowance=allowance,
        balance=balance,
        simulation_incomplete=bool(issues.get("simulationIncomplete", False)),
        invalid_sources_passed=list(issues.get("invalidSourcesPassed") or []),
    )


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith("0x") else int(text)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return _to_int(value)
