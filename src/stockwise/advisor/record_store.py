"""Advice record store: idempotent persistence of actionable advice.

Each write is a whole-document read-modify-write through the document
store, which backs up the previous version.  A single writer is assumed;
callers sharing the store with other writers must serialize externally.
"""

from __future__ import annotations

from datetime import date

from loguru import logger

from stockwise.core.storage import DocumentStore

from .ledger import Ledger, entry_from_advice
from .models import Advice, LedgerEntry

DEFAULT_RETENTION_DAYS = 30


class AdviceRecordStore:
    """Merge advice entries into the ledger document.

    Args:
        store: Document store holding the ledger.
        key: Document key of the ledger.
    """

    def __init__(self, store: DocumentStore, key: str = "advice.md"):
        self._store = store
        self.key = key

    async def read(self) -> str:
        """Return the raw ledger text ("" when it doesn't exist yet)."""
        return await self._store.read_or_default(self.key)

    async def load(self) -> Ledger:
        return Ledger.parse(await self.read())

    async def upsert(self, entry: LedgerEntry) -> bool:
        """Write *entry*, replacing any same-day entry for its provider.

        Returns:
            True if an existing entry was replaced, False if prepended.
        """
        ledger = await self.load()
        replaced = ledger.upsert(entry)
        await self._store.write(self.key, ledger.render())
        verb = "Replaced" if replaced else "Added"
        logger.info(f"{verb} ledger entry {entry.entry_date} - {entry.provider_name}")
        return replaced

    async def record(self, advice: Advice, entry_date: date | None = None) -> bool:
        """Persist *advice* if it is actionable.

        HOLD-only advice (no managed BUY/SELL and no new suggestions) is
        skipped so the ledger only carries signal.

        Returns:
            True if an entry was written.
        """
        if not advice.is_actionable:
            logger.info(f"{advice.provider_name}: no actionable advice, nothing recorded")
            return False
        await self.upsert(entry_from_advice(advice, entry_date))
        return True

    async def prune_older_than(self, days: int = DEFAULT_RETENTION_DAYS, today: date | None = None) -> int:
        """Remove entries dated more than *days* days before *today*.

        Returns:
            Number of entries removed.  The document is only rewritten when
            something was removed.
        """
        if not await self._store.exists(self.key):
            return 0
        ledger = await self.load()
        removed = ledger.prune_older_than(days, today)
        if removed:
            await self._store.write(self.key, ledger.render())
            logger.info(f"Pruned {len(removed)} ledger entr{'y' if len(removed) == 1 else 'ies'} older than {days} days")
        return len(removed)
