"""
Transaction Execution Layer

Provides the on-chain building blocks of a swap:
- TransactionSubmitter: gas, nonce, signing, broadcast, receipt polling
- AllowanceManager: idempotent ERC-20 approvals for the settlement spender
- PermitSigner: Permit2 signature splicing into settlement calldata
- NonceManager / WalletLocks: per-wallet serialization
- TransactionBuilder: ERC-20 and settlement calldata

Usage:
    from intentswap.core.execution import (
        AllowanceManager,
        PermitSigner,
        TransactionSubmitter,
        NonceManager,
    )

    submitter = TransactionSubmitter(rpc, NonceManager(rpc, chain_id=8453))
    allowance = AllowanceManager(rpc, submitter, signer, chain_id=8453)
    result = await allowance.ensure_allowance(owner, token, spender, amount)
"""

from .models import (
    TransactionType,
    GasEstimate,
    PreparedTransaction,
    TransactionReceipt,
    ApprovalReceipt,
    NoopSkipped,
)

from .errors import (
    ExecutionError,
    RpcError,
    GasEstimationError,
    TransactionRevertError,
    TransactionTimeoutError,
    is_transient_error,
)

from .nonce_manager import (
    NonceManager,
    WalletLocks,
)

from .tx_builder import (
    TransactionBuilder,
)

from .submitter import (
    TransactionSubmitter,
)

from .allowance import (
    AllowanceManager,
)

from .permit import (
    PermitSigner,
    splice_signature,
    strip_signature,
)

__all__ = [
    # Models
    "TransactionType",
    "GasEstimate",
    "PreparedTransaction",
    "TransactionReceipt",
    "ApprovalReceipt",
    "NoopSkipped",
    # Errors
    "ExecutionError",
    "RpcError",
    "GasEstimationError",
    "TransactionRevertError",
    "TransactionTimeoutError",
    "is_transient_error",
    # Nonces
    "NonceManager",
    "WalletLocks",
    # Builders
    "TransactionBuilder",
    # Submission
    "TransactionSubmitter",
    "AllowanceManager",
    "PermitSigner",
    "splice_signature",
    "strip_signature",
]
