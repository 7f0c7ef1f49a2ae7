from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from .fingerprint import ChangeKind


class SkipReason(str, Enum):
    NO_DETAIL_LINK = "no_detail_link"
    DUPLICATE_URL = "duplicate_url"
    DUPLICATE_DISCOVERY_KEY = "duplicate_discovery_key"
    STALE = "stale"
    UNCHANGED = "unchanged"
    DETAIL_FETCH_FAILED = "detail_fetch_failed"
    PARSE_FAILED = "parse_failed"


@dataclass
class RunAccountant:
    """Counters for one run. Observational only; nothing branches on them."""

    source: str = ""
    skipped: Counter = field(default_factory=Counter)
    new: int = 0
    changed: int = 0
    persist_failed: int = 0
    iterations: int = 0
    cards_seen: int = 0

    def skip(self, reason: SkipReason) -> None:
        self.skipped[reason] += 1

    def accept(self, kind: ChangeKind) -> None:
        if kind is ChangeKind.NEW:
            self.new += 1
        elif kind is ChangeKind.CHANGED:
            self.changed += 1

    def count(self, reason: SkipReason) -> int:
        return self.skipped[reason]

    @property
    def accepted(self) -> int:
        return self.new + self.changed

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def as_dict(self) -> Dict[str, int]:
        out: Dict[str, int] = {
            "iterations": self.iterations,
            "cards_seen": self.cards_seen,
            "accepted": self.accepted,
            "new": self.new,
            "changed": self.changed,
            "persist_failed": self.persist_failed,
        }
        for reason in SkipReason:
            out[reason.value] = self.skipped[reason]
        return out

    def summary_lines(self) -> List[str]:
        lines = [
            f"{self.source}: iterations={self.iterations} cards={self.cards_seen} "
            f"accepted={self.accepted} new={self.new} changed={self.changed}",
        ]
        for reason in SkipReason:
            lines.append(f"  skipped {reason.value}={self.skipped[reason]}")
        if self.persist_failed:
            lines.append(f"  persist_failed={self.persist_failed}")
        return lines
