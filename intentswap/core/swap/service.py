"""
SwapService: the single entry point the API, CLI and tool dispatcher use.

Turns user-level requests (token names, human amounts) into core calls:
resolve tokens, convert amounts with the resolved decimals, fetch prices and
quotes, run the execution state machine and record finished swaps.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ...config import settings
from ...providers.rpc import RpcClient, get_rpc_client
from ...providers.zeroex import ZeroExProvider
from ...services.balances import BalanceReader
from ...services.history import SwapHistoryStore, get_history_store
from ...services.token_resolution import TokenResolver
from ...services.units import from_base_units, to_base_units
from ..execution.allowance import AllowanceManager
from ..execution.nonce_manager import NonceManager, WalletLocks
from ..execution.permit import PermitSigner
from ..execution.submitter import TransactionSubmitter
from ..wallet.signer import Signer, get_or_create_server_wallet
from .errors import InvalidToolCall
from .executor import ProgressCallback, SwapExecutor
from .intent import (
    BALANCE_TOOLS,
    SWAP_TOOLS,
    parse_balance_request,
    parse_swap_request,
)
from .models import (
    PriceEstimate,
    Quote,
    QuoteIssues,
    SwapHistoryRecord,
    SwapIntent,
    SwapOutcome,
    SwapResult,
    TokenRef,
)
from .outcome import describe_outcome

logger = logging.getLogger(__name__)


def _issues_dict(issues: QuoteIssues) -> Dict[str, Any]:
    return {
        "allowance": (
            {"spender": issues.allowance.spender, "actual": str(issues.allowance.actual)}
            if issues.allowance else None
        ),
        "balance": (
            {
                "token": issues.balance.token,
                "actual": str(issues.balance.actual),
                "expected": str(issues.balance.expected),
            }
            if issues.balance else None
        ),
        "simulation_incomplete": issues.simulation_incomplete,
    }


class SwapService:
    """Facade over token resolution, pricing, execution, balances and history."""

    def __init__(
        self,
        *,
        rpc: Optional[RpcClient] = None,
        quote_provider: Optional[ZeroExProvider] = None,
        resolver: Optional[TokenResolver] = None,
        balances: Optional[BalanceReader] = None,
        history: Optional[SwapHistoryStore] = None,
        signer: Optional[Signer] = None,
        chain_id: Optional[int] = None,
    ) -> None:
        self.chain_id = chain_id or settings.chain_id
        self.rpc = rpc or get_rpc_client()
        self.quote_provider = quote_provider or ZeroExProvider(chain_id=self.chain_id)
        self.resolver = resolver or TokenResolver(rpc=self.rpc, chain_id=self.chain_id)
        self.balances = balances or BalanceReader(rpc=self.rpc)
        self.history_store = history or get_history_store()
        self._signer = signer
        self.wallet_locks = WalletLocks()
        self.nonce_manager = NonceManager(self.rpc, chain_id=self.chain_id)
        self.submitter = TransactionSubmitter(
            self.rpc,
            self.nonce_manager,
            gas_multiplier=settings.gas_multiplier,
            poll_interval=settings.receipt_poll_interval_seconds,
            confirmation_timeout=settings.confirmation_timeout_seconds,
        )
        self.permit_signer = PermitSigner()

    @property
    def signer(self) -> Signer:
        """Server wallet; raises WalletNotConfigured when no key is set."""
        if self._signer is None:
            self._signer = get_or_create_server_wallet()
        return self._signer

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def resolve(self, token: str) -> TokenRef:
        return await self.resolver.resolve(token)

    async def decimals(self, token_address: str) -> int:
        return await self.resolver.get_decimals(token_address)

    async def _build_intent(self, sell_token: str, buy_token: str, sell_amount: str, taker: str) -> SwapIntent:
        sell = await self.resolver.resolve(sell_token)
        buy = await self.resolver.resolve(buy_token)
        if sell.address.lower() == buy.address.lower():
            raise InvalidToolCall(f"Cannot swap {sell.symbol} for itself")
        return SwapIntent(
            sell_token=sell,
            buy_token=buy,
            sell_amount_human=sell_amount,
            taker_address=taker,
            sell_amount_base_units=to_base_units(sell_amount, sell.decimals),
        )

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def price(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: str,
        taker: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Indicative price for a human-denominated amount."""
        intent = await self._build_intent(sell_token, buy_token, sell_amount, taker or "")
        estimate: PriceEstimate = await self.quote_provider.get_price(
            intent.sell_token.address,
            intent.buy_token.address,
            intent.sell_amount_base_units,
            taker,
        )
        return {
            "sell_token": intent.sell_token.to_dict(),
            "buy_token": intent.buy_token.to_dict(),
            "sell_amount": intent.sell_amount_human,
            "buy_amount": from_base_units(estimate.buy_amount, intent.buy_token.decimals),
            "min_buy_amount": from_base_units(estimate.min_buy_amount, intent.buy_token.decimals),
            "sell_amount_base_units": str(estimate.sell_amount),
            "buy_amount_base_units": str(estimate.buy_amount),
            "estimated_gas": estimate.estimated_gas,
            "total_network_fee": estimate.total_network_fee,
            "liquidity_available": estimate.liquidity_available,
            "issues": _issues_dict(estimate.issues),
            "route": estimate.route,
        }

    async def quote(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: str,
        taker: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Binding quote; the taker defaults to the server wallet."""
        taker_address = taker or self.signer.address
        intent = await self._build_intent(sell_token, buy_token, sell_amount, taker_address)
        quote: Quote = await self.quote_provider.get_quote(
            intent.sell_token.address,
            intent.buy_token.address,
            intent.sell_amount_base_units,
            taker_address,
        )
        return {
            "sell_token": intent.sell_token.to_dict(),
            "buy_token": intent.buy_token.to_dict(),
            "taker": taker_address,
            "sell_amount": intent.sell_amount_human,
            "buy_amount": from_base_units(quote.buy_amount, intent.buy_token.decimals),
            "min_buy_amount": from_base_units(quote.min_buy_amount, intent.buy_token.decimals),
            "sell_amount_base_units": str(quote.sell_amount),
            "buy_amount_base_units": str(quote.buy_amount),
            "estimated_gas": quote.estimated_gas,
            "total_network_fee": quote.total_network_fee,
            "issues": _issues_dict(quote.issues),
            "requires_allowance": quote.requires_allowance,
            "requires_permit": quote.requires_permit,
            "transaction": {
                "to": quote.transaction.to,
                "value": str(quote.transaction.value),
                "gas": quote.transaction.gas,
            },
            "route": quote.route,
            "zid": quote.zid,
        }

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_executor(self, on_progress: Optional[ProgressCallback] = None) -> SwapExecutor:
        signer = self.signer
        allowance = AllowanceManager(self.rpc, self.submitter, signer, chain_id=self.chain_id)
        return SwapExecutor(
            quote_provider=self.quote_provider,
            allowance_manager=allowance,
            permit_signer=self.permit_signer,
            submitter=self.submitter,
            signer=signer,
            chain_id=self.chain_id,
            wallet_locks=self.wallet_locks,
            max_submission_attempts=settings.swap_max_submission_attempts,
            retry_delay=settings.swap_retry_delay_seconds,
            on_progress=on_progress,
        )

    async def execute(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: str,
        *,
        user_id: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SwapResult:
        """
        Run a full swap with the server wallet as taker.

        Token and amount errors raise before anything touches the chain;
        everything after quoting is reported through the returned SwapResult.
        """
        executor = self.build_executor(on_progress)
        intent = await self._build_intent(sell_token, buy_token, sell_amount, self.signer.address)
        attempt = await executor.execute(intent)
        result = describe_outcome(attempt)

        if attempt.tx_hash and attempt.outcome in (SwapOutcome.CONFIRMED, SwapOutcome.REVERTED):
            await self.record_history(
                SwapHistoryRecord(
                    user_id=user_id or intent.taker_address,
                    tx_hash=attempt.tx_hash,
                    sell_token=intent.sell_token.address,
                    sell_symbol=intent.sell_token.symbol,
                    sell_amount=intent.sell_amount_human,
                    buy_token=intent.buy_token.address,
                    buy_symbol=intent.buy_token.symbol,
                    buy_amount=result.buy_amount or "0",
                    status=attempt.outcome.value,
                )
            )
        return result

    # ------------------------------------------------------------------
    # Balances and history
    # ------------------------------------------------------------------

    async def balance(self, token: str, address: Optional[str] = None) -> Dict[str, Any]:
        token_ref = await self.resolver.resolve(token)
        owner = address or self.signer.address
        balance = await self.balances.get_balance(token_ref, owner)
        return {"token": token_ref.to_dict(), "address": owner, "balance": balance}

    async def record_history(self, record: SwapHistoryRecord) -> SwapHistoryRecord:
        return await self.history_store.record(record)

    async def history(self, user_id: str, limit: Optional[int] = None) -> List[SwapHistoryRecord]:
        return await self.history_store.list_for_user(user_id, limit)

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    async def handle_tool_call(self, name: str, arguments: Any) -> Dict[str, Any]:
        """Dispatch a chat-layer function call after normalizing its arguments."""
        if name in SWAP_TOOLS:
            request = parse_swap_request(arguments)
            if name == "get_price":
                return await self.price(request.sell_token, request.buy_token, request.sell_amount)
            if name == "get_quote":
                return await self.quote(request.sell_token, request.buy_token, request.sell_amount)
            result = await self.execute(
                request.sell_token,
                request.buy_token,
                request.sell_amount,
                user_id=request.user_id,
            )
            return result.to_dict()

        if name in BALANCE_TOOLS:
            request = parse_balance_request(arguments)
            return await self.balance(request.token, request.address)

        raise InvalidToolCall(f"Unknown tool '{name}'")

    async def health(self) -> Dict[str, Any]:
        return {
            "pricing": await self.quote_provider.health_check(),
            "rpc": await self.rpc.health_check(),
            "wallet": {
                "status": "configured" if (self._signer or settings.has_server_wallet) else "unavailable",
            },
        }


_service: Optional[SwapService] = None


def get_swap_service() -> SwapService:
    """Get the singleton swap service."""
    global _service
    if _service is None:
        _service = SwapService()
    return _service
