"""
Swap history store.

Records are write-once and keyed by transaction hash: inserting a hash that
already exists returns the stored record unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from ..config import settings
from ..core.swap.models import SwapHistoryRecord

logger = logging.getLogger(__name__)


class SwapHistoryStore(ABC):
    """Persistence contract for swap history."""

    @abstractmethod
    async def record(self, record: SwapHistoryRecord) -> SwapHistoryRecord:
        """Insert ``record`` unless its tx hash exists; return the stored record."""
        pass

    @abstractmethod
    async def get_by_hash(self, tx_hash: str) -> Optional[SwapHistoryRecord]:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[SwapHistoryRecord]:
        """Newest first."""
        pass


class InMemorySwapHistoryStore(SwapHistoryStore):
    """Process-local store guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._records: Dict[str, SwapHistoryRecord] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(tx_hash: str) -> str:
        return tx_hash.lower()

    async def record(self, record: SwapHistoryRecord) -> SwapHistoryRecord:
        if not record.tx_hash:
            raise ValueError("swap history records require a tx hash")

        normalized = replace(record, user_id=record.user_id.lower())
        key = self._key(record.tx_hash)
        async with self._lock:
            existing = self._records.get(key)
            if existing is not None:
                logger.info(f"Swap {record.tx_hash} already recorded; keeping original")
                return existing
            self._records[key] = normalized

        logger.info(f"Recorded swap {record.tx_hash} for {normalized.user_id}")
        return normalized

    async def get_by_hash(self, tx_hash: str) -> Optional[SwapHistoryRecord]:
        return self._records.get(self._key(tx_hash))

    async def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[SwapHistoryRecord]:
        limit = limit or settings.history_default_limit
        user = user_id.lower()
        records = [r for r in self._records.values() if r.user_id == user]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]


_store: Optional[SwapHistoryStore] = None


def get_history_store() -> SwapHistoryStore:
    global _store
    if _store is None:
        _store = InMemorySwapHistoryStore()
    return _store
