"""
Transaction submitter.

Handles the on-chain half of any transaction the swap flow sends:
- Gas estimation (EIP-1559 fees from fee history)
- Nonce reservation via NonceManager
- Signing through the wallet Signer
- Broadcast and receipt polling
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from .errors import GasEstimationError, RpcError, TransactionTimeoutError
from .models import GasEstimate, PreparedTransaction, TransactionReceipt
from .nonce_manager import NonceManager

if TYPE_CHECKING:
    from ...providers.rpc import RpcClient
    from ..wallet.signer import Signer


logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_FEE_WEI = 1_000_000  # Base L2 tips are tiny
_ALREADY_KNOWN_MARKERS = ("already known", "known transaction", "already imported")


class TransactionSubmitter:
    """Signs, broadcasts and confirms prepared transactions."""

    def __init__(
        self,
        rpc: "RpcClient",
        nonce_manager: NonceManager,
        *,
        gas_multiplier: Decimal = Decimal("1.2"),
        poll_interval: float = 2.0,
        confirmation_timeout: float = 180.0,
    ):
        self.rpc = rpc
        self.nonce_manager = nonce_manager
        self.gas_multiplier = Decimal(gas_multiplier)
        self.poll_interval = poll_interval
        self.confirmation_timeout = confirmation_timeout

    async def estimate_gas(self, tx: PreparedTransaction) -> GasEstimate:
        """
        Estimate gas limit and EIP-1559 fees.

        Uses the quote-provided gas limit when present; otherwise asks the node.
        A revert during estimation is re-raised as TransactionRevertError.
        """
        try:
            if tx.gas_limit:
                gas_limit = tx.gas_limit
            else:
                gas_limit = await self.rpc.estimate_gas(tx.to_call_object())
            gas_limit = int(Decimal(gas_limit) * self.gas_multiplier)

            fee_history = await self.rpc.fee_history(1, [50])
            base_fee = int(fee_history["baseFeePerGas"][-1], 16)
            reward = fee_history.get("reward") or []
            priority_fee = int(reward[0][0], 16) if reward and reward[0] else DEFAULT_PRIORITY_FEE_WEI
            priority_fee = max(priority_fee, DEFAULT_PRIORITY_FEE_WEI)

            return GasEstimate(
                gas_limit=gas_limit,
                max_fee_per_gas=base_fee * 2 + priority_fee,
                max_priority_fee_per_gas=priority_fee,
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Gas estimation failed: {e}")
            raise GasEstimationError(f"Failed to estimate gas: {e}") from e

    async def submit(self, tx: PreparedTransaction, signer: "Signer") -> str:
        """
        Prepare (gas, nonce), sign and broadcast a transaction.

        The nonce is reserved once per PreparedTransaction; re-submitting the
        same object after a transient broadcast failure reuses it, so a
        broadcast that did reach the mempool is never duplicated. Callers
        that give up on a transaction call ``release``.

        Returns:
            The transaction hash
        """
        if tx.gas_estimate is None:
            tx.gas_estimate = await self.estimate_gas(tx)

        if tx.nonce is None:
            tx.nonce = await self.nonce_manager.get_next_nonce(tx.from_address)

        signed = await signer.sign_transaction(tx.to_signable())
        try:
            tx_hash = await self.rpc.send_raw_transaction(signed.raw_transaction)
        except RpcError as e:
            if any(marker in str(e).lower() for marker in _ALREADY_KNOWN_MARKERS):
                logger.info(f"Transaction {signed.tx_hash} already in mempool, continuing")
                return signed.tx_hash
            raise

        logger.info(
            f"Transaction broadcast: {tx_hash} ({tx.tx_type.value}, nonce={tx.nonce}, "
            f"gas={tx.gas_estimate.gas_limit})"
        )
        return tx_hash or signed.tx_hash

    async def release(self, tx: PreparedTransaction) -> None:
        """Give back the nonce of a transaction that was never broadcast."""
        if tx.nonce is not None:
            await self.nonce_manager.release_nonce(tx.from_address, tx.nonce)
            tx.nonce = None

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
    ) -> TransactionReceipt:
        """
        Poll for a receipt until mined or timeout.

        Transient RPC errors while polling are logged and polling continues;
        only the deadline ends the wait.
        """
        deadline = time.monotonic() + (timeout or self.confirmation_timeout)

        while True:
            try:
                raw = await self.rpc.get_transaction_receipt(tx_hash)
                if raw:
                    receipt = TransactionReceipt.from_rpc(raw)
                    logger.info(
                        f"Transaction mined: {tx_hash} (block {receipt.block_number}, "
                        f"status={'success' if receipt.succeeded else 'reverted'})"
                    )
                    return receipt
            except RpcError as e:
                logger.warning(f"Error checking transaction status: {e}")

            if time.monotonic() >= deadline:
                raise TransactionTimeoutError(
                    f"No receipt for {tx_hash} after {timeout or self.confirmation_timeout}s",
                    tx_hash=tx_hash,
                )
            await asyncio.sleep(self.poll_interval)

    async def mark_confirmed(self, tx: PreparedTransaction) -> None:
        if tx.nonce is not None:
            await self.nonce_manager.confirm_nonce(tx.from_address, tx.nonce)
