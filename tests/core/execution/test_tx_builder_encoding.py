"""
Tests for ERC-20 calldata encoding/decoding and settlement transactions.
"""

import httpx
import pytest

from intentswap.core.execution.errors import RpcError, TransactionRevertError, is_transient_error
from intentswap.core.execution.tx_builder import (
    TransactionBuilder,
    decode_string,
    decode_uint256,
    encode_allowance_call,
    encode_balance_of_call,
)
from intentswap.core.swap.models import Quote, QuoteIssues, QuoteTransaction


OWNER = "0x1111111111111111111111111111111111111111"
SPENDER = "0x2222222222222222222222222222222222222222"


def test_allowance_call_encoding():
    data = encode_allowance_call(OWNER, SPENDER)

    assert data == "0xdd62ed3e" + "0" * 24 + "11" * 20 + "0" * 24 + "22" * 20


def test_balance_of_rejects_invalid_address():
    with pytest.raises(ValueError):
        encode_balance_of_call("0x1234")


def test_decode_uint256_handles_empty_result():
    assert decode_uint256("0x") == 0
    assert decode_uint256("0x" + format(6, "064x")) == 6


def test_decode_string_abi_and_bytes32():
    abi_encoded = (
        "0x"
        + format(32, "064x")
        + format(4, "064x")
        + "USDC".encode().hex().ljust(64, "0")
    )
    bytes32 = "0x" + "MKR".encode().hex().ljust(64, "0")

    assert decode_string(abi_encoded) == "USDC"
    assert decode_string(bytes32) == "MKR"


def test_build_from_quote_uses_spliced_data():
    quote = Quote(
        sell_token="0xa",
        buy_token="0xb",
        sell_amount=1,
        buy_amount=2,
        min_buy_amount=2,
        estimated_gas=None,
        issues=QuoteIssues(),
        transaction=QuoteTransaction(to=SPENDER, data="0xabcd", value=5, gas=90_000),
    )

    tx = TransactionBuilder.build_from_quote(quote, chain_id=8453, from_address=OWNER, data="0xabcdef")

    assert tx.data == "0xabcdef"
    assert tx.value == 5
    assert tx.gas_limit == 90_000
    assert tx.to_address == SPENDER


@pytest.mark.parametrize(
    "error, transient",
    [
        (httpx.ConnectError("boom"), True),
        (RpcError("eth_sendRawTransaction transport error"), True),
        (RpcError("upstream connect timeout", code=-32603), True),
        (RpcError("execution reverted: TRANSFER_FAILED", code=-32000), False),
        (RpcError("reverted", code=3), False),
        (TransactionRevertError("execution reverted"), False),
        (ValueError("bad tx"), False),
    ],
)
def test_transient_error_classification(error, transient):
    assert is_transient_error(error) is transient
