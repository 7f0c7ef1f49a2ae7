from __future__ import annotations

from typing import Dict, Optional, Set

from .db import RecordStore


class KnownRecordIndex:
    """In-run view of canonical URL -> last stored fingerprint.

    Loaded once before the run (full snapshot). During the run it only grows:
    accepted records are remembered and every processed URL is marked seen,
    so a URL is handled at most once per run. The store stays authoritative.
    """

    def __init__(self, fingerprints: Optional[Dict[str, str]] = None):
        self._fingerprints: Dict[str, str] = dict(fingerprints or {})
        self._seen: Set[str] = set()

    @classmethod
    def preload(cls, store: RecordStore) -> "KnownRecordIndex":
        return cls(store.preload())

    def fingerprint_for(self, url: str) -> Optional[str]:
        return self._fingerprints.get(url)

    def remember(self, url: str, fingerprint: str) -> None:
        self._fingerprints[url] = fingerprint
        self._seen.add(url)

    def mark_seen(self, url: str) -> None:
        self._seen.add(url)

    def seen(self, url: str) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._fingerprints)


class LookupIndex(KnownRecordIndex):
    """Point lookups against the store's primary key instead of a full snapshot."""

    def __init__(self, store: RecordStore):
        super().__init__()
        self.store = store
        self._misses: Set[str] = set()

    def fingerprint_for(self, url: str) -> Optional[str]:
        fp = self._fingerprints.get(url)
        if fp is not None or url in self._misses:
            return fp
        fp = self.store.fingerprint_for(url)
        if fp is None:
            self._misses.add(url)
        else:
            self._fingerprints[url] = fp
        return fp

    def remember(self, url: str, fingerprint: str) -> None:
        self._misses.discard(url)
        super().remember(url, fingerprint)


def build_index(store: Optional[RecordStore], mode: str = "preload") -> KnownRecordIndex:
    if store is None:
        return KnownRecordIndex()
    if mode == "lookup":
        return LookupIndex(store)
    return KnownRecordIndex.preload(store)
