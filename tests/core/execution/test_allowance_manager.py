"""
Tests for AllowanceManager idempotence and failure handling.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from intentswap.core.execution.allowance import AllowanceManager
from intentswap.core.execution.errors import RpcError, TransactionTimeoutError
from intentswap.core.execution.models import ApprovalReceipt, NoopSkipped, TransactionReceipt, TransactionType
from intentswap.core.swap.constants import MAX_UINT256, NATIVE_TOKEN_ADDRESS
from intentswap.core.swap.errors import ApprovalFailed, SignatureDeclined


OWNER = "0x1111111111111111111111111111111111111111"
TOKEN = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
SPENDER = "0x000000000022d473030f116ddee9f6b43ac78ba3"
APPROVAL_HASH = "0x" + "aa" * 32


def _encode(value: int) -> str:
    return "0x" + format(value, "064x")


class FakeChain:
    """Tracks one allowance; a mined approval raises it to the approved amount."""

    def __init__(self, allowance: int = 0):
        self.allowance = allowance
        self.approvals = []

    async def eth_call(self, to, data, block="latest"):
        return _encode(self.allowance)

    async def submit(self, tx, signer):
        self.approvals.append(tx)
        return APPROVAL_HASH

    async def wait_for_receipt(self, tx_hash, timeout=None):
        self.allowance = MAX_UINT256
        return TransactionReceipt(tx_hash=tx_hash, status=1, block_number=100)


def _manager(chain: FakeChain):
    rpc = MagicMock()
    rpc.eth_call = AsyncMock(side_effect=chain.eth_call)
    submitter = MagicMock()
    submitter.submit = AsyncMock(side_effect=chain.submit)
    submitter.wait_for_receipt = AsyncMock(side_effect=chain.wait_for_receipt)
    submitter.mark_confirmed = AsyncMock()
    submitter.release = AsyncMock()
    signer = MagicMock()
    signer.address = OWNER
    return AllowanceManager(rpc, submitter, signer, chain_id=8453), submitter


@pytest.mark.asyncio
async def test_ensure_allowance_twice_approves_once():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)

    first = await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 100_000_000)
    second = await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 100_000_000)

    assert isinstance(first, ApprovalReceipt)
    assert first.tx_hash == APPROVAL_HASH
    assert first.amount == MAX_UINT256
    assert isinstance(second, NoopSkipped)
    assert len(chain.approvals) == 1
    assert submitter.submit.await_count == 1


@pytest.mark.asyncio
async def test_sufficient_allowance_is_noop():
    chain = FakeChain(allowance=500)
    manager, submitter = _manager(chain)

    result = await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 500)

    assert isinstance(result, NoopSkipped)
    assert result.current_allowance == 500
    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_approval_targets_token_with_max_amount():
    chain = FakeChain(allowance=0)
    manager, _ = _manager(chain)

    await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    tx = chain.approvals[0]
    assert tx.tx_type == TransactionType.APPROVE
    assert tx.to_address == TOKEN
    assert tx.data.startswith("0x095ea7b3")
    assert tx.data.endswith("f" * 64)


@pytest.mark.asyncio
async def test_native_token_never_needs_allowance():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)

    result = await manager.ensure_allowance(OWNER, NATIVE_TOKEN_ADDRESS, SPENDER, 10**18)

    assert isinstance(result, NoopSkipped)
    manager.rpc.eth_call.assert_not_awaited()
    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_reverted_approval_raises_approval_failed():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)
    submitter.wait_for_receipt = AsyncMock(
        return_value=TransactionReceipt(tx_hash=APPROVAL_HASH, status=0, block_number=100)
    )

    with pytest.raises(ApprovalFailed) as exc_info:
        await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    assert exc_info.value.tx_hash == APPROVAL_HASH


@pytest.mark.asyncio
async def test_approval_timeout_raises_approval_failed():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)
    submitter.wait_for_receipt = AsyncMock(
        side_effect=TransactionTimeoutError("no receipt", tx_hash=APPROVAL_HASH)
    )

    with pytest.raises(ApprovalFailed) as exc_info:
        await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    assert exc_info.value.tx_hash == APPROVAL_HASH


@pytest.mark.asyncio
async def test_failed_broadcast_releases_nonce():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)
    submitter.submit = AsyncMock(side_effect=RpcError("node down"))

    with pytest.raises(ApprovalFailed):
        await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    submitter.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_allowance_read_error_raises_approval_failed():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)
    manager.rpc.eth_call = AsyncMock(side_effect=RpcError("eth_call transport error"))

    with pytest.raises(ApprovalFailed):
        await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_refused_approval_signature_raises_approval_failed_and_releases_nonce():
    chain = FakeChain(allowance=0)
    manager, submitter = _manager(chain)
    submitter.submit = AsyncMock(side_effect=SignatureDeclined("Signer refused the transaction"))

    with pytest.raises(ApprovalFailed):
        await manager.ensure_allowance(OWNER, TOKEN, SPENDER, 1)

    submitter.release.assert_awaited_once()
    submitter.wait_for_receipt.assert_not_awaited()
