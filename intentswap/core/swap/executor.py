"""
Swap execution state machine.

One run of ``SwapExecutor.execute`` drives a single attempt through:

    QUOTING -> ALLOWANCE_CHECK -> [PERMIT] -> SUBMITTING -> CONFIRMING
        -> CONFIRMED | REVERTED

with FAILED reachable from any non-terminal stage. PERMIT is visited only
when the quote carries a Permit2 payload. The whole run, quoting included,
holds the taker's wallet lock, so a second swap on the same wallet quotes
only after the first has a receipt.
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import structlog

from ..execution.errors import TransactionTimeoutError, is_transient_error
from ..execution.models import ApprovalReceipt, PreparedTransaction, TransactionReceipt
from ..execution.nonce_manager import WalletLocks
from ..execution.tx_builder import TransactionBuilder
from .errors import (
    ConfirmationReverted,
    ConfirmationTimeout,
    InsufficientBalance,
    SwapError,
    SubmissionFailed,
)
from .models import Quote, SwapAttempt, SwapIntent, SwapStage

if TYPE_CHECKING:
    from ...providers.base import QuoteProvider
    from ..execution.allowance import AllowanceManager
    from ..execution.permit import PermitSigner
    from ..execution.submitter import TransactionSubmitter
    from ..wallet.signer import Signer


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SwapAttempt], Awaitable[None]]


class SwapExecutor:
    """
    Orchestrates one swap attempt end to end.

    Responsibilities:
    - Fetch a binding quote for the intent
    - Grant allowance to the settlement spender when the quote asks for it
    - Sign and splice the Permit2 payload
    - Submit with bounded retries on transient errors
    - Wait for the receipt and classify the outcome
    """

    def __init__(
        self,
        quote_provider: "QuoteProvider",
        allowance_manager: "AllowanceManager",
        permit_signer: "PermitSigner",
        submitter: "TransactionSubmitter",
        signer: "Signer",
        chain_id: int,
        *,
        wallet_locks: Optional[WalletLocks] = None,
        max_submission_attempts: int = 3,
        retry_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if max_submission_attempts < 1:
            raise ValueError("max_submission_attempts must be at least 1")
        self.quote_provider = quote_provider
        self.allowance_manager = allowance_manager
        self.permit_signer = permit_signer
        self.submitter = submitter
        self.signer = signer
        self.chain_id = chain_id
        self.wallet_locks = wallet_locks or WalletLocks()
        self.max_submission_attempts = max_submission_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._on_progress = on_progress

    async def execute(self, intent: SwapIntent, attempt_number: int = 1) -> SwapAttempt:
        """
        Run one attempt for ``intent`` and return it in a terminal stage.

        Failures are recorded on the attempt (``stage=FAILED``, ``error``)
        rather than raised. A revert is terminal but distinct from FAILED.
        """
        attempt = SwapAttempt(
            swap_id=uuid.uuid4().hex[:16],
            intent=intent,
            attempt_number=attempt_number,
        )

        with structlog.contextvars.bound_contextvars(
            swap_id=attempt.swap_id,
            attempt=attempt_number,
        ):
            logger.info(f"Swap started: {intent.describe()} for {intent.taker_address}")
            try:
                await self._run(attempt)
            except SwapError as e:
                await self._fail(attempt, e)
            except Exception as e:
                logger.exception(f"Unexpected error at {attempt.stage.value}: {e}")
                if not attempt.is_terminal:
                    await self._fail(attempt, SwapError(f"Swap failed unexpectedly: {e}"), cause=e)

            logger.info(
                f"Swap finished: {attempt.stage.value} "
                f"(tx={attempt.tx_hash or '-'}, submissions={attempt.submission_attempts})"
            )
        return attempt

    async def _run(self, attempt: SwapAttempt) -> None:
        intent = attempt.intent

        # Quote through receipt run under the wallet lock
        async with self.wallet_locks.hold(self.chain_id, intent.taker_address):
            await self._advance(attempt, SwapStage.QUOTING)
            quote = await self.quote_provider.get_quote(
                intent.sell_token.address,
                intent.buy_token.address,
                intent.sell_amount_base_units,
                intent.taker_address,
            )
            attempt.quote = quote

            if quote.issues.balance is not None:
                balance = quote.issues.balance
                raise InsufficientBalance(
                    f"Insufficient {intent.sell_token.symbol} balance: "
                    f"have {balance.actual}, need {balance.expected} (base units)",
                    details={"actual": str(balance.actual), "expected": str(balance.expected)},
                )

            await self._check_allowance(attempt, quote)

            if quote.requires_permit:
                await self._advance(attempt, SwapStage.PERMIT)
            attempt.signed_transaction_data = await self.permit_signer.sign_and_splice(quote, self.signer)

            tx = TransactionBuilder.build_from_quote(
                quote,
                chain_id=self.chain_id,
                from_address=intent.taker_address,
                data=attempt.signed_transaction_data,
            )

            await self._advance(attempt, SwapStage.SUBMITTING)
            # Once a broadcast may have happened the run must reach a receipt.
            task = asyncio.ensure_future(self._submit_and_confirm(attempt, tx))
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                logger.warning("Cancellation requested after submission began; waiting for receipt")
                await asyncio.wait({task})
                raise

    async def _check_allowance(self, attempt: SwapAttempt, quote: Quote) -> None:
        await self._advance(attempt, SwapStage.ALLOWANCE_CHECK)
        issue = quote.issues.allowance
        if issue is None:
            attempt.approval_skipped = True
            return

        result = await self.allowance_manager.ensure_allowance(
            owner=attempt.intent.taker_address,
            token=attempt.intent.sell_token.address,
            spender=issue.spender,
            required_amount=quote.sell_amount,
        )
        if isinstance(result, ApprovalReceipt):
            attempt.approval_tx_hash = result.tx_hash
            attempt.approval_skipped = False
            logger.info(f"Approval confirmed: {result.tx_hash}")
        else:
            attempt.approval_skipped = True

    async def _submit_and_confirm(self, attempt: SwapAttempt, tx: PreparedTransaction) -> None:
        try:
            attempt.tx_hash = await self._submit_with_retry(attempt, tx)
        except SwapError as e:
            await self._fail(attempt, e)
            return

        await self._advance(attempt, SwapStage.CONFIRMING)
        try:
            receipt = await self.submitter.wait_for_receipt(attempt.tx_hash)
        except TransactionTimeoutError as e:
            await self._fail(
                attempt,
                ConfirmationTimeout(
                    f"Transaction {attempt.tx_hash} was broadcast but not confirmed in time",
                    tx_hash=attempt.tx_hash,
                ),
                cause=e,
            )
            return

        await self.submitter.mark_confirmed(tx)
        await self._finish(attempt, receipt)

    async def _submit_with_retry(self, attempt: SwapAttempt, tx: PreparedTransaction) -> str:
        """
        Broadcast ``tx``, retrying transient errors with a fixed delay.

        The nonce reserved on the first attempt is reused on retries so a
        broadcast that did reach the mempool is not duplicated.
        """
        last_error: Optional[BaseException] = None

        while attempt.submission_attempts < self.max_submission_attempts:
            attempt.submission_attempts += 1
            try:
                return await self.submitter.submit(tx, self.signer)
            except Exception as e:
                last_error = e
                if not is_transient_error(e):
                    logger.warning(f"Submission {attempt.submission_attempts} failed permanently: {e}")
                    break
                logger.warning(
                    f"Submission {attempt.submission_attempts}/{self.max_submission_attempts} "
                    f"failed with transient error: {e}"
                )
                if attempt.submission_attempts < self.max_submission_attempts:
                    await self._sleep(self.retry_delay)

        await self.submitter.release(tx)
        raise SubmissionFailed(
            f"Swap transaction could not be submitted after {attempt.submission_attempts} "
            f"attempt(s): {last_error}",
            attempts=attempt.submission_attempts,
            last_error=last_error,
        )

    async def _finish(self, attempt: SwapAttempt, receipt: TransactionReceipt) -> None:
        attempt.receipt = receipt.to_dict()
        if receipt.succeeded:
            await self._advance(attempt, SwapStage.CONFIRMED, note=f"block {receipt.block_number}")
            return

        attempt.error = ConfirmationReverted(
            f"Swap transaction {attempt.tx_hash} reverted on-chain",
            tx_hash=attempt.tx_hash,
        )
        await self._advance(attempt, SwapStage.REVERTED, note=f"block {receipt.block_number}")

    async def _fail(
        self,
        attempt: SwapAttempt,
        error: SwapError,
        cause: Optional[BaseException] = None,
    ) -> None:
        if cause is not None:
            error.__cause__ = cause
        attempt.error = error
        logger.warning(f"Swap failed at {attempt.stage.value}: [{error.code}] {error.message}")
        await self._advance(attempt, SwapStage.FAILED, note=error.code)

    async def _advance(self, attempt: SwapAttempt, stage: SwapStage, note: Optional[str] = None) -> None:
        attempt.advance(stage, note=note)
        logger.debug(f"Swap stage -> {stage.value}")
        if self._on_progress is not None:
            try:
                await self._on_progress(attempt)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")
