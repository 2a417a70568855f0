"""
Tests for the 0x Swap API v2 (Permit2) provider.
"""

import json

import httpx
import pytest

from intentswap.core.swap.errors import QuoteUnavailable
from intentswap.providers.zeroex import ZeroExProvider


USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
WETH = "0x4200000000000000000000000000000000000006"
TAKER = "0x1111111111111111111111111111111111111111"
SETTLER = "0x5555555555555555555555555555555555555555"

QUOTE_BODY = {
    "liquidityAvailable": True,
    "sellToken": USDC,
    "buyToken": WETH,
    "sellAmount": "100000000",
    "buyAmount": "30000000000000000",
    "minBuyAmount": "29850000000000000",
    "gas": "210000",
    "totalNetworkFee": "1234567",
    "issues": {
        "allowance": {"actual": "0", "spender": "0x000000000022d473030f116ddee9f6b43ac78ba3"},
        "balance": None,
        "simulationIncomplete": False,
        "invalidSourcesPassed": [],
    },
    "permit2": {
        "type": "Permit2",
        "hash": "0x" + "12" * 32,
        "eip712": {"types": {}, "domain": {}, "message": {}, "primaryType": "PermitTransferFrom"},
    },
    "transaction": {"to": SETTLER, "data": "0x1fff991f00", "gas": "250000", "gasPrice": "1000000", "value": "0"},
    "route": {"fills": [{"source": "Uniswap_V3", "proportionBps": "10000"}]},
    "zid": "0xzid",
}


def _provider(handler):
    return ZeroExProvider(
        api_key="test-key",
        base_url="https://api.0x.test",
        chain_id=8453,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_quote_request_shape_and_parsing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["headers"] = request.headers
        return httpx.Response(200, json=QUOTE_BODY)

    quote = await _provider(handler).get_quote(USDC, WETH, 100_000_000, TAKER)

    assert seen["path"] == "/swap/permit2/quote"
    assert seen["params"] == {
        "chainId": "8453",
        "sellToken": USDC,
        "buyToken": WETH,
        "sellAmount": "100000000",
        "taker": TAKER,
    }
    assert seen["headers"]["0x-api-key"] == "test-key"
    assert seen["headers"]["0x-version"] == "v2"

    assert quote.sell_amount == 100_000_000
    assert quote.buy_amount == 30_000_000_000_000_000
    assert quote.min_buy_amount == 29_850_000_000_000_000
    assert quote.estimated_gas == 210_000
    assert quote.requires_allowance
    assert quote.issues.allowance.actual == 0
    assert quote.issues.balance is None
    assert quote.requires_permit
    assert quote.permit2.eip712["primaryType"] == "PermitTransferFrom"
    assert quote.transaction.to == SETTLER
    assert quote.transaction.gas == 250_000
    assert quote.zid == "0xzid"


@pytest.mark.asyncio
async def test_price_omits_taker_when_absent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        body = {k: v for k, v in QUOTE_BODY.items() if k not in ("transaction", "permit2")}
        return httpx.Response(200, json=body)

    price = await _provider(handler).get_price(USDC, WETH, 100_000_000)

    assert seen["path"] == "/swap/permit2/price"
    assert "taker" not in seen["params"]
    assert price.buy_amount == 30_000_000_000_000_000
    assert price.liquidity_available


@pytest.mark.asyncio
async def test_non_2xx_carries_upstream_body():
    error_body = {"name": "INPUT_INVALID", "message": "Validation Failed"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json=error_body)

    with pytest.raises(QuoteUnavailable) as exc_info:
        await _provider(handler).get_quote(USDC, WETH, 1, TAKER)

    assert exc_info.value.status_code == 400
    assert json.loads(exc_info.value.body) == error_body


@pytest.mark.asyncio
async def test_no_liquidity_is_quote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"liquidityAvailable": False, "zid": "0x1"})

    with pytest.raises(QuoteUnavailable):
        await _provider(handler).get_price(USDC, WETH, 1)


@pytest.mark.asyncio
async def test_transport_error_is_quote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(QuoteUnavailable):
        await _provider(handler).get_quote(USDC, WETH, 1, TAKER)


@pytest.mark.asyncio
async def test_quote_without_transaction_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        body = dict(QUOTE_BODY)
        body.pop("transaction")
        return httpx.Response(200, json=body)

    with pytest.raises(QuoteUnavailable):
        await _provider(handler).get_quote(USDC, WETH, 1, TAKER)


@pytest.mark.asyncio
async def test_quote_requires_taker():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(QuoteUnavailable):
        await _provider(handler).get_quote(USDC, WETH, 1, "")


@pytest.mark.asyncio
async def test_allowance_issue_without_spender_is_quote_unavailable():
    body = json.loads(json.dumps(QUOTE_BODY))
    del body["issues"]["allowance"]["spender"]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(QuoteUnavailable) as exc_info:
        await _provider(handler).get_quote(USDC, WETH, 100_000_000, TAKER)

    assert "malformed" in exc_info.value.message
    assert exc_info.value.body


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["quote", "price"])
async def test_non_numeric_amount_is_quote_unavailable(endpoint):
    body = dict(QUOTE_BODY, buyAmount="lots")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    provider = _provider(handler)
    with pytest.raises(QuoteUnavailable) as exc_info:
        if endpoint == "quote":
            await provider.get_quote(USDC, WETH, 100_000_000, TAKER)
        else:
            await provider.get_price(USDC, WETH, 100_000_000)

    assert "lots" in exc_info.value.body


@pytest.mark.asyncio
async def test_non_object_json_is_quote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["not", "a", "quote"])

    with pytest.raises(QuoteUnavailable):
        await _provider(handler).get_price(USDC, WETH, 1)
