"""
Tests for the SwapExecutor state machine.
"""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from intentswap.core.execution.errors import RpcError, TransactionRevertError, TransactionTimeoutError
from intentswap.core.execution.models import ApprovalReceipt, NoopSkipped, TransactionReceipt
from intentswap.core.execution.permit import PermitSigner, strip_signature
from intentswap.core.swap.constants import MAX_UINT256
from intentswap.core.swap.errors import (
    ApprovalFailed,
    ConfirmationReverted,
    ConfirmationTimeout,
    InsufficientBalance,
    QuoteUnavailable,
    SignatureDeclined,
    SubmissionFailed,
)
from intentswap.core.swap.executor import SwapExecutor
from intentswap.core.swap.models import (
    AllowanceIssue,
    BalanceIssue,
    Permit2Data,
    Quote,
    QuoteIssues,
    QuoteTransaction,
    SwapIntent,
    SwapOutcome,
    SwapStage,
    TokenRef,
)


TAKER = "0x1111111111111111111111111111111111111111"
SETTLER = "0x5555555555555555555555555555555555555555"
PERMIT2 = "0x000000000022d473030f116ddee9f6b43ac78ba3"
USDC = TokenRef(address="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913", symbol="USDC", decimals=6)
WETH = TokenRef(address="0x4200000000000000000000000000000000000006", symbol="WETH", decimals=18)
SWAP_HASH = "0x" + "ab" * 32
APPROVAL_HASH = "0x" + "aa" * 32
SIGNATURE = b"\x07" * 65
QUOTE_DATA = "0x1fff991f" + "00" * 64


def _intent() -> SwapIntent:
    return SwapIntent(
        sell_token=USDC,
        buy_token=WETH,
        sell_amount_human="100",
        taker_address=TAKER,
        sell_amount_base_units=100_000_000,
    )


def _quote(allowance=False, permit=False, balance=False) -> Quote:
    issues = QuoteIssues(
        allowance=AllowanceIssue(spender=PERMIT2, actual=0) if allowance else None,
        balance=BalanceIssue(token=USDC.address, actual=5, expected=100_000_000) if balance else None,
    )
    return Quote(
        sell_token=USDC.address,
        buy_token=WETH.address,
        sell_amount=100_000_000,
        buy_amount=30_000_000_000_000_000,
        min_buy_amount=29_850_000_000_000_000,
        estimated_gas=200_000,
        issues=issues,
        transaction=QuoteTransaction(to=SETTLER, data=QUOTE_DATA, value=0, gas=250_000),
        permit2=Permit2Data(eip712={"primaryType": "PermitTransferFrom"}) if permit else None,
    )


def _receipt(status=1) -> TransactionReceipt:
    return TransactionReceipt(tx_hash=SWAP_HASH, status=status, block_number=123)


class Harness:
    """Executor wired to test doubles that log every external call in order."""

    def __init__(self, quote: Quote, max_submission_attempts: int = 3):
        self.calls = []

        self.quote_provider = MagicMock()
        self.quote_provider.get_quote = AsyncMock(side_effect=self._record("quote", quote))

        self.allowance_manager = MagicMock()
        self.allowance_manager.ensure_allowance = AsyncMock(side_effect=self._record(
            "approve",
            ApprovalReceipt(token=USDC.address, spender=PERMIT2, amount=MAX_UINT256, tx_hash=APPROVAL_HASH, receipt=_receipt()),
        ))

        self.signer = MagicMock()
        self.signer.address = TAKER
        self.signer.sign_typed_data = AsyncMock(side_effect=self._record("sign", SIGNATURE))

        self.submitter = MagicMock()
        self.submitter.submit = AsyncMock(side_effect=self._record("submit", SWAP_HASH))
        self.submitter.wait_for_receipt = AsyncMock(side_effect=self._record("confirm", _receipt()))
        self.submitter.mark_confirmed = AsyncMock()
        self.submitter.release = AsyncMock()

        self.sleep = AsyncMock()
        self.progress = []

        async def on_progress(attempt):
            self.progress.append(attempt.stage)

        self.executor = SwapExecutor(
            quote_provider=self.quote_provider,
            allowance_manager=self.allowance_manager,
            permit_signer=PermitSigner(),
            submitter=self.submitter,
            signer=self.signer,
            chain_id=8453,
            max_submission_attempts=max_submission_attempts,
            retry_delay=2.0,
            sleep=self.sleep,
            on_progress=on_progress,
        )

    def _record(self, name, result):
        async def _call(*args, **kwargs):
            self.calls.append(name)
            return result
        return _call


@pytest.mark.asyncio
async def test_preapproved_quote_skips_allowance_transaction():
    harness = Harness(_quote(allowance=False))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.CONFIRMED
    assert attempt.outcome == SwapOutcome.CONFIRMED
    assert attempt.approval_skipped is True
    assert attempt.approval_tx_hash is None
    harness.allowance_manager.ensure_allowance.assert_not_awaited()
    assert harness.calls == ["quote", "submit", "confirm"]
    assert attempt.stages_visited == [
        SwapStage.QUOTING,
        SwapStage.ALLOWANCE_CHECK,
        SwapStage.SUBMITTING,
        SwapStage.CONFIRMING,
        SwapStage.CONFIRMED,
    ]


@pytest.mark.asyncio
async def test_zero_allowance_with_permit_runs_approve_sign_submit_confirm():
    harness = Harness(_quote(allowance=True, permit=True))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.CONFIRMED
    assert harness.calls == ["quote", "approve", "sign", "submit", "confirm"]
    assert attempt.approval_tx_hash == APPROVAL_HASH
    assert SwapStage.PERMIT in attempt.stages_visited
    harness.allowance_manager.ensure_allowance.assert_awaited_once_with(
        owner=TAKER,
        token=USDC.address,
        spender=PERMIT2,
        required_amount=100_000_000,
    )

    submitted_tx = harness.submitter.submit.await_args.args[0]
    original, signature = strip_signature(submitted_tx.data, signature_length=65)
    assert original == QUOTE_DATA
    assert signature == SIGNATURE


@pytest.mark.asyncio
async def test_sufficient_allowance_noop_still_proceeds():
    harness = Harness(_quote(allowance=True))
    harness.allowance_manager.ensure_allowance = AsyncMock(
        return_value=NoopSkipped(token=USDC.address, spender=PERMIT2, current_allowance=MAX_UINT256, required_amount=1)
    )

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.CONFIRMED
    assert attempt.approval_skipped is True
    assert attempt.approval_tx_hash is None


@pytest.mark.asyncio
async def test_two_transient_failures_then_success_confirms_with_three_attempts():
    harness = Harness(_quote())
    harness.submitter.submit = AsyncMock(side_effect=[
        httpx.ConnectError("connection refused"),
        RpcError("eth_sendRawTransaction transport error"),
        SWAP_HASH,
    ])

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.CONFIRMED
    assert attempt.submission_attempts == 3
    assert attempt.tx_hash == SWAP_HASH
    assert harness.sleep.await_count == 2
    harness.sleep.assert_awaited_with(2.0)
    submitted = [call.args[0] for call in harness.submitter.submit.await_args_list]
    assert submitted[0] is submitted[1] is submitted[2]


@pytest.mark.asyncio
async def test_persistent_transient_failure_stops_after_three_attempts():
    harness = Harness(_quote())
    harness.submitter.submit = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, SubmissionFailed)
    assert attempt.error.attempts == 3
    assert harness.submitter.submit.await_count == 3
    assert harness.sleep.await_count == 2
    harness.submitter.release.assert_awaited_once()
    harness.submitter.wait_for_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_revert_on_first_submission_is_not_retried():
    harness = Harness(_quote())
    harness.submitter.submit = AsyncMock(
        side_effect=TransactionRevertError("execution reverted: SLIPPAGE")
    )

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert attempt.submission_attempts == 1
    assert isinstance(attempt.error, SubmissionFailed)
    assert isinstance(attempt.error.last_error, TransactionRevertError)
    harness.sleep.assert_not_awaited()
    harness.submitter.wait_for_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_quote_failure_fails_before_any_onchain_effect():
    harness = Harness(_quote())
    harness.quote_provider.get_quote = AsyncMock(
        side_effect=QuoteUnavailable("Pricing API returned HTTP 400", status_code=400, body="{}")
    )

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, QuoteUnavailable)
    assert attempt.stages_visited == [SwapStage.QUOTING, SwapStage.FAILED]
    harness.quote_provider.get_quote.assert_awaited_once()
    harness.submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_balance_issue_fails_before_allowance():
    harness = Harness(_quote(allowance=True, balance=True))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, InsufficientBalance)
    harness.allowance_manager.ensure_allowance.assert_not_awaited()
    harness.submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_approval_failure_never_reaches_submitting():
    harness = Harness(_quote(allowance=True, permit=True))
    harness.allowance_manager.ensure_allowance = AsyncMock(
        side_effect=ApprovalFailed("Approval transaction reverted", tx_hash=APPROVAL_HASH)
    )

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, ApprovalFailed)
    assert SwapStage.SUBMITTING not in attempt.stages_visited
    harness.signer.sign_typed_data.assert_not_awaited()
    harness.submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_declined_permit_aborts_without_submission():
    harness = Harness(_quote(permit=True))
    harness.signer.sign_typed_data = AsyncMock(side_effect=SignatureDeclined("user declined"))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, SignatureDeclined)
    harness.submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_zero_receipt_is_reverted_not_failed():
    harness = Harness(_quote())
    harness.submitter.wait_for_receipt = AsyncMock(return_value=_receipt(status=0))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.REVERTED
    assert attempt.outcome == SwapOutcome.REVERTED
    assert isinstance(attempt.error, ConfirmationReverted)
    assert attempt.tx_hash == SWAP_HASH
    assert attempt.receipt["status"] == "reverted"


@pytest.mark.asyncio
async def test_receipt_timeout_keeps_tx_hash():
    harness = Harness(_quote())
    harness.submitter.wait_for_receipt = AsyncMock(
        side_effect=TransactionTimeoutError("no receipt", tx_hash=SWAP_HASH)
    )

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert isinstance(attempt.error, ConfirmationTimeout)
    assert attempt.error.tx_hash == SWAP_HASH
    assert attempt.tx_hash == SWAP_HASH


@pytest.mark.asyncio
async def test_progress_callback_sees_every_stage():
    harness = Harness(_quote())

    attempt = await harness.executor.execute(_intent())

    assert harness.progress == attempt.stages_visited
    assert harness.progress[-1] == SwapStage.CONFIRMED


@pytest.mark.asyncio
async def test_attempt_holds_wallet_lock_during_submission():
    harness = Harness(_quote())
    observed = []

    async def submit(tx, signer):
        observed.append(harness.executor.wallet_locks.is_locked(8453, TAKER))
        return SWAP_HASH

    harness.submitter.submit = AsyncMock(side_effect=submit)

    await harness.executor.execute(_intent())

    assert observed == [True]
    assert not harness.executor.wallet_locks.is_locked(8453, TAKER)


def test_executor_rejects_zero_attempts():
    with pytest.raises(ValueError):
        Harness(_quote(), max_submission_attempts=0)


@pytest.mark.asyncio
async def test_quote_without_permit_never_visits_permit_stage():
    harness = Harness(_quote(allowance=True))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.CONFIRMED
    assert SwapStage.PERMIT not in attempt.stages_visited
    harness.signer.sign_typed_data.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_swaps_for_one_wallet_quote_one_after_another():
    harness = Harness(_quote())
    release_receipt = asyncio.Event()

    async def wait_for_receipt(tx_hash, **kwargs):
        harness.calls.append("confirm")
        await release_receipt.wait()
        return _receipt()

    harness.submitter.wait_for_receipt = AsyncMock(side_effect=wait_for_receipt)

    first = asyncio.create_task(harness.executor.execute(_intent()))
    second = asyncio.create_task(harness.executor.execute(_intent()))
    for _ in range(10):
        await asyncio.sleep(0)

    # The second swap has not quoted while the first one is unconfirmed
    assert harness.calls == ["quote", "submit", "confirm"]

    release_receipt.set()
    attempts = await asyncio.gather(first, second)

    assert harness.calls == ["quote", "submit", "confirm"] * 2
    assert [a.stage for a in attempts] == [SwapStage.CONFIRMED, SwapStage.CONFIRMED]


@pytest.mark.asyncio
async def test_unexpected_error_ends_attempt_as_failed():
    harness = Harness(_quote(allowance=True))
    harness.allowance_manager.ensure_allowance = AsyncMock(side_effect=TypeError("bad transaction field"))

    attempt = await harness.executor.execute(_intent())

    assert attempt.stage == SwapStage.FAILED
    assert attempt.is_terminal
    assert attempt.error.code == "swap_error"
    assert "bad transaction field" in attempt.error.message
    harness.submitter.submit.assert_not_awaited()
    assert not harness.executor.wallet_locks.is_locked(8453, TAKER)
