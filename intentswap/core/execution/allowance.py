"""
ERC-20 allowance management for the settlement spender.

Allowance is re-read from chain on every call and never cached: another
transaction may have changed it since the last swap.
"""

import logging
from typing import TYPE_CHECKING, Union

from ..swap.constants import MAX_UINT256, NATIVE_ADDRESSES
from ..swap.errors import ApprovalFailed, SignatureDeclined
from .errors import ExecutionError, RpcError, TransactionTimeoutError
from .models import ApprovalReceipt, NoopSkipped
from .submitter import TransactionSubmitter
from .tx_builder import TransactionBuilder, decode_uint256, encode_allowance_call

if TYPE_CHECKING:
    from ...providers.rpc import RpcClient
    from ..wallet.signer import Signer


logger = logging.getLogger(__name__)

AllowanceResult = Union[ApprovalReceipt, NoopSkipped]


class AllowanceManager:
    """Idempotently grants token spend allowance to a spender."""

    def __init__(
        self,
        rpc: "RpcClient",
        submitter: TransactionSubmitter,
        signer: "Signer",
        chain_id: int,
    ):
        self.rpc = rpc
        self.submitter = submitter
        self.signer = signer
        self.chain_id = chain_id

    async def get_allowance(self, owner: str, token: str, spender: str) -> int:
        result = await self.rpc.eth_call(token, encode_allowance_call(owner, spender))
        return decode_uint256(result)

    async def ensure_allowance(
        self,
        owner: str,
        token: str,
        spender: str,
        required_amount: int,
    ) -> AllowanceResult:
        """
        Make sure ``spender`` may pull at least ``required_amount`` of ``token``.

        Returns NoopSkipped when the current allowance suffices, otherwise
        approves MAX_UINT256 and returns once the approval is mined.

        Raises:
            ApprovalFailed: allowance read, approval broadcast, revert or timeout
        """
        if token.lower() in NATIVE_ADDRESSES:
            return NoopSkipped(token=token, spender=spender, current_allowance=MAX_UINT256, required_amount=required_amount)

        try:
            current = await self.get_allowance(owner, token, spender)
        except ExecutionError as e:
            raise ApprovalFailed(f"Could not read allowance for {token}: {e}") from e

        if current >= required_amount:
            logger.info(
                f"Allowance sufficient for {token} → {spender}: {current} >= {required_amount}"
            )
            return NoopSkipped(
                token=token,
                spender=spender,
                current_allowance=current,
                required_amount=required_amount,
            )

        tx = TransactionBuilder.build_erc20_approve(
            chain_id=self.chain_id,
            owner_address=owner,
            token_address=token,
            spender_address=spender,
            amount=MAX_UINT256,
            description=f"Approve {spender[:10]}... for swap settlement",
        )

        try:
            tx_hash = await self.submitter.submit(tx, self.signer)
        except (ExecutionError, SignatureDeclined) as e:
            await self.submitter.release(tx)
            raise ApprovalFailed(f"Approval transaction could not be submitted: {e}") from e

        logger.info(f"Approval submitted: {tx_hash} ({token} → {spender})")

        try:
            receipt = await self.submitter.wait_for_receipt(tx_hash)
        except TransactionTimeoutError as e:
            raise ApprovalFailed(f"Approval {tx_hash} not confirmed: {e}", tx_hash=tx_hash) from e
        except RpcError as e:
            raise ApprovalFailed(f"Approval {tx_hash} status unknown: {e}", tx_hash=tx_hash) from e

        await self.submitter.mark_confirmed(tx)

        if not receipt.succeeded:
            raise ApprovalFailed(f"Approval transaction {tx_hash} reverted", tx_hash=tx_hash)

        return ApprovalReceipt(
            token=token,
            spender=spender,
            amount=MAX_UINT256,
            tx_hash=tx_hash,
            receipt=receipt,
        )
