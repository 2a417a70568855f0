"""
Nonce management and per-wallet serialization.

The server wallet is a single exclusively-owned signing resource; concurrent
submissions from it risk nonce collisions. ``WalletLocks`` hands out one
``asyncio.Lock`` per wallet so callers can hold it across a whole swap, and
``NonceManager`` keeps a ledger of nonces reserved but not yet mined.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, AsyncIterator, Dict, Set

if TYPE_CHECKING:
    from ...providers.rpc import RpcClient

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WalletLocks:
    """Registry of per-wallet locks keyed by ``chain_id:address``."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, chain_id: int, address: str) -> asyncio.Lock:
        return self._locks.setdefault(f"{chain_id}:{address.lower()}", asyncio.Lock())

    def is_locked(self, chain_id: int, address: str) -> bool:
        return self.get(chain_id, address).locked()

    @asynccontextmanager
    async def hold(self, chain_id: int, address: str) -> AsyncIterator[None]:
        async with self.get(chain_id, address):
            yield


@dataclass
class NonceLedger:
    """Nonces reserved for one wallet that the chain has not counted yet."""
    address: str
    floor: int                                  # eth_getTransactionCount(pending) at last sync
    in_flight: Set[int] = field(default_factory=set)
    synced_at: datetime = field(default_factory=_utcnow)

    def lowest_free(self) -> int:
        nonce = self.floor
        while nonce in self.in_flight:
            nonce += 1
        return nonce

    def advance_floor(self, floor: int) -> None:
        # The chain only ever moves the floor forward
        if floor > self.floor:
            self.floor = floor
        self.in_flight = {n for n in self.in_flight if n >= self.floor}
        self.synced_at = _utcnow()


class NonceManager:
    """
    Hands out nonces for the server wallet.

    Each reservation re-reads the pending transaction count, then takes the
    lowest nonce at or above it that is not already in flight. A nonce
    released before broadcast becomes the next one handed out, so a failed
    broadcast leaves no gap.
    """

    def __init__(self, rpc: "RpcClient", chain_id: int):
        self._rpc = rpc
        self._chain_id = chain_id
        self._ledgers: Dict[str, NonceLedger] = {}
        self._guards: Dict[str, asyncio.Lock] = {}

    def _key(self, address: str) -> str:
        return f"{self._chain_id}:{address.lower()}"

    def _guard(self, key: str) -> asyncio.Lock:
        return self._guards.setdefault(key, asyncio.Lock())

    async def get_next_nonce(self, address: str, sync: bool = True) -> int:
        """Reserve a nonce for ``address``; ``sync=False`` skips the chain read when a ledger exists."""
        key = self._key(address)
        async with self._guard(key):
            ledger = self._ledgers.get(key)
            if ledger is None or sync:
                pending = await self._rpc.get_transaction_count(address, "pending")
                if ledger is None:
                    ledger = self._ledgers[key] = NonceLedger(address=address.lower(), floor=pending)
                else:
                    ledger.advance_floor(pending)

            nonce = ledger.lowest_free()
            ledger.in_flight.add(nonce)
            logger.debug(f"Reserved nonce {nonce} for {address} (floor {ledger.floor})")
            return nonce

    async def release_nonce(self, address: str, nonce: int) -> None:
        """Give back a nonce whose transaction never reached the network."""
        key = self._key(address)
        async with self._guard(key):
            ledger = self._ledgers.get(key)
            if ledger is not None:
                ledger.in_flight.discard(nonce)

    async def confirm_nonce(self, address: str, nonce: int) -> None:
        """Record that ``nonce`` was mined."""
        key = self._key(address)
        async with self._guard(key):
            ledger = self._ledgers.get(key)
            if ledger is not None:
                ledger.in_flight.discard(nonce)
                ledger.advance_floor(nonce + 1)

    def in_flight(self, address: str) -> Set[int]:
        ledger = self._ledgers.get(self._key(address))
        return set(ledger.in_flight) if ledger else set()
