"""Typed models used by the swap subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import NATIVE_ADDRESSES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenRef:
    """A token resolved to its on-chain identity. Immutable once resolved."""

    address: str
    symbol: str
    decimals: int
    name: Optional[str] = None
    is_native: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals out of uint8 range: {self.decimals}")

    @property
    def is_native_address(self) -> bool:
        return self.is_native or self.address.lower() in NATIVE_ADDRESSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "name": self.name,
            "is_native": self.is_native,
        }


@dataclass(frozen=True)
class SwapIntent:
    """What the user asked for. A changed intent requires a fresh quote."""

    sell_token: TokenRef
    buy_token: TokenRef
    sell_amount_human: str
    taker_address: str
    sell_amount_base_units: int = 0

    def describe(self) -> str:
        return f"{self.sell_amount_human} {self.sell_token.symbol} → {self.buy_token.symbol}"


@dataclass(frozen=True)
class AllowanceIssue:
    spender: str
    actual: int


@dataclass(frozen=True)
class BalanceIssue:
    token: str
    actual: int
    expected: int


@dataclass(frozen=True)
class QuoteIssues:
    allowance: Optional[AllowanceIssue] = None
    balance: Optional[BalanceIssue] = None
    simulation_incomplete: bool = False
    invalid_sources_passed: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Permit2Data:
    """Off-chain typed-data payload the taker must sign."""

    eip712: Dict[str, Any]
    hash: Optional[str] = None
    type: str = "Permit2"


@dataclass(frozen=True)
class QuoteTransaction:
    to: str
    data: str
    value: int = 0
    gas: Optional[int] = None
    gas_price: Optional[int] = None


@dataclass(frozen=True)
class PriceEstimate:
    """Indicative price. Not guaranteed executable."""

    sell_token: str
    buy_token: str
    sell_amount: int
    buy_amount: int
    min_buy_amount: int
    estimated_gas: Optional[int]
    issues: QuoteIssues
    route: Dict[str, Any] = field(default_factory=dict)
    liquidity_available: bool = True
    total_network_fee: Optional[int] = None
    raw_response: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Quote:
    """Point-in-time binding offer from the aggregator.

    Amounts are never rewritten; PermitSigner produces new calldata instead of
    touching ``transaction.data``.
    """

    sell_token: str
    buy_token: str
    sell_amount: int
    buy_amount: int
    min_buy_amount: int
    estimated_gas: Optional[int]
    issues: QuoteIssues
    transaction: QuoteTransaction
    permit2: Optional[Permit2Data] = None
    route: Dict[str, Any] = field(default_factory=dict)
    zid: Optional[str] = None
    total_network_fee: Optional[int] = None
    fetched_at: datetime = field(default_factory=_utcnow, compare=False)
    raw_response: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def requires_allowance(self) -> bool:
        return self.issues.allowance is not None

    @property
    def requires_permit(self) -> bool:
        return self.permit2 is not None


class SwapStage(str, Enum):
    """Execution state machine stages."""
    QUOTING = "quoting"
    ALLOWANCE_CHECK = "allowance_check"
    PERMIT = "permit"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({SwapStage.CONFIRMED, SwapStage.REVERTED, SwapStage.FAILED})


class SwapOutcome(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    FAILED = "failed"


@dataclass
class StageTransition:
    stage: SwapStage
    at: datetime = field(default_factory=_utcnow)
    note: Optional[str] = None


@dataclass
class SwapAttempt:
    """Mutable record of one execution run, owned by the executor until terminal."""

    swap_id: str
    intent: SwapIntent
    attempt_number: int = 1
    quote: Optional[Quote] = None
    stage: SwapStage = SwapStage.QUOTING
    outcome: SwapOutcome = SwapOutcome.PENDING
    stage_history: List[StageTransition] = field(default_factory=list)

    approval_tx_hash: Optional[str] = None
    approval_skipped: Optional[bool] = None
    signed_transaction_data: Optional[str] = None
    submission_attempts: int = 0
    tx_hash: Optional[str] = None
    receipt: Optional[Dict[str, Any]] = None

    error: Optional[Exception] = None
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def stages_visited(self) -> List[SwapStage]:
        return [transition.stage for transition in self.stage_history]

    @property
    def error_code(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "code", type(self.error).__name__)

    def advance(self, stage: SwapStage, note: Optional[str] = None) -> None:
        if self.is_terminal:
            raise RuntimeError(f"swap {self.swap_id} already terminal ({self.stage.value})")
        self.stage = stage
        self.stage_history.append(StageTransition(stage=stage, note=note))
        if stage in TERMINAL_STAGES:
            self.outcome = SwapOutcome(stage.value)
            self.finished_at = _utcnow()


@dataclass(frozen=True)
class SwapHistoryRecord:
    """Persisted, write-once summary of a swap keyed by tx hash."""

    user_id: str
    tx_hash: str
    sell_token: str
    sell_symbol: str
    sell_amount: str
    buy_token: str
    buy_symbol: str
    buy_amount: str
    status: str = SwapOutcome.CONFIRMED.value
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tx_hash": self.tx_hash,
            "sell_token": self.sell_token,
            "sell_symbol": self.sell_symbol,
            "sell_amount": self.sell_amount,
            "buy_token": self.buy_token,
            "buy_symbol": self.buy_symbol,
            "buy_amount": self.buy_amount,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class SwapResult:
    """Structured result returned to the chat/API layer."""

    status: str
    message: str
    funds_moved: bool
    retry_safe: bool
    swap_id: Optional[str] = None
    tx_hash: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    error_code: Optional[str] = None
    sell_amount: Optional[str] = None
    buy_amount: Optional[str] = None
    stages: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "funds_moved": self.funds_moved,
            "retry_safe": self.retry_safe,
            "swap_id": self.swap_id,
            "tx_hash": self.tx_hash,
            "approval_tx_hash": self.approval_tx_hash,
            "explorer_url": self.explorer_url,
            "error_code": self.error_code,
            "sell_amount": self.sell_amount,
            "buy_amount": self.buy_amount,
            "stages": list(self.stages),
            **self.payload,
        }
