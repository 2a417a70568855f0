"""
Transaction execution models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class TransactionType(str, Enum):
    """Types of transactions."""
    SWAP = "swap"
    APPROVE = "approve"


@dataclass
class GasEstimate:
    """Gas estimation for a transaction."""
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    estimated_cost_wei: int = 0

    def __post_init__(self):
        if self.estimated_cost_wei == 0:
            self.estimated_cost_wei = self.gas_limit * self.max_fee_per_gas


@dataclass
class PreparedTransaction:
    """A transaction ready to be signed and broadcast."""
    tx_id: str                                  # Internal tracking ID
    tx_type: TransactionType
    chain_id: int
    from_address: str
    to_address: str
    data: str                                   # Encoded calldata (hex)
    value: int = 0                              # Wei to send
    gas_limit: Optional[int] = None             # Quote-provided gas, if any
    gas_estimate: Optional[GasEstimate] = None
    nonce: Optional[int] = None

    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_call_object(self) -> Dict[str, Any]:
        """Shape used by eth_call / eth_estimateGas."""
        call_obj: Dict[str, Any] = {
            "from": self.from_address,
            "to": self.to_address,
            "data": self.data,
        }
        if self.value > 0:
            call_obj["value"] = hex(self.value)
        return call_obj

    def to_signable(self) -> Dict[str, Any]:
        """EIP-1559 transaction dict accepted by eth-account."""
        if self.nonce is None or self.gas_estimate is None:
            raise ValueError(f"Transaction {self.tx_id} is missing nonce or gas")
        return {
            "type": 2,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "to": self.to_address,
            "value": self.value,
            "data": self.data,
            "gas": self.gas_estimate.gas_limit,
            "maxFeePerGas": self.gas_estimate.max_fee_per_gas,
            "maxPriorityFeePerGas": self.gas_estimate.max_priority_fee_per_gas,
        }


@dataclass
class TransactionReceipt:
    """Subset of eth_getTransactionReceipt the swap flow cares about."""
    tx_hash: str
    status: int                                 # 1 = success, 0 = revert
    block_number: int
    block_hash: Optional[str] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    logs: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=receipt["transactionHash"],
            status=int(receipt.get("status", "0x1"), 16),
            block_number=int(receipt["blockNumber"], 16),
            block_hash=receipt.get("blockHash"),
            gas_used=int(receipt["gasUsed"], 16) if receipt.get("gasUsed") else None,
            effective_gas_price=int(receipt["effectiveGasPrice"], 16) if receipt.get("effectiveGasPrice") else None,
            logs=list(receipt.get("logs") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "status": "success" if self.succeeded else "reverted",
            "block_number": self.block_number,
            "block_hash": self.block_hash,
            "gas_used": self.gas_used,
            "effective_gas_price": self.effective_gas_price,
        }


@dataclass(frozen=True)
class ApprovalReceipt:
    """An approval transaction was mined successfully."""
    token: str
    spender: str
    amount: int
    tx_hash: str
    receipt: TransactionReceipt


@dataclass(frozen=True)
class NoopSkipped:
    """Existing allowance already covered the requirement."""
    token: str
    spender: str
    current_allowance: int
    required_amount: int
