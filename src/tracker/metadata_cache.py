"""Process-lifetime memo of mint → TokenMetadata.

Not a general cache: no eviction, no size bound. One instance is owned by
the TransactionProcessor (or whoever builds it) and passed by reference to
every resolve call.

Entries are tagged so a network hiccup is not remembered forever:
  RESOLVED           real metadata, final
  CONFIRMED_ABSENT   metadata account missing or undecodable, final
  TRANSIENT_FAILURE  fetch failed, served as UNKNOWN until retry_after expires
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from src.tracker.models import UNKNOWN_METADATA, TokenMetadata

DEFAULT_RETRY_AFTER_SEC = 300.0


class EntryStatus(Enum):
    RESOLVED = "resolved"
    CONFIRMED_ABSENT = "confirmed_absent"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class CacheEntry:
    status: EntryStatus
    metadata: TokenMetadata
    failed_at: float | None = None

    @property
    def is_final(self) -> bool:
        return self.status is not EntryStatus.TRANSIENT_FAILURE


class MetadataCache:
    def __init__(
        self,
        retry_after: float = DEFAULT_RETRY_AFTER_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._retry_after = retry_after
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, mint: object) -> bool:
        return mint in self._entries

    def get(self, mint: str) -> TokenMetadata | None:
        """Return cached metadata, or None if the mint must be (re)resolved."""
        entry = self._entries.get(mint)
        if entry is None:
            return None
        if entry.status is EntryStatus.TRANSIENT_FAILURE:
            if self._clock() - (entry.failed_at or 0.0) >= self._retry_after:
                return None
        return entry.metadata

    def entry(self, mint: str) -> CacheEntry | None:
        return self._entries.get(mint)

    def put(self, mint: str, metadata: TokenMetadata) -> None:
        """Store resolved metadata. The first final answer for a mint wins."""
        self._store(mint, CacheEntry(EntryStatus.RESOLVED, metadata))

    def mark_absent(self, mint: str) -> None:
        self._store(mint, CacheEntry(EntryStatus.CONFIRMED_ABSENT, UNKNOWN_METADATA))

    def mark_failed(self, mint: str) -> None:
        self._store(
            mint,
            CacheEntry(EntryStatus.TRANSIENT_FAILURE, UNKNOWN_METADATA, self._clock()),
        )

    def _store(self, mint: str, entry: CacheEntry) -> None:
        existing = self._entries.get(mint)
        if existing is not None and existing.is_final:
            return
        self._entries[mint] = entry
