from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Page

from ..models import Card, DetailResult, Record, is_available


class CrawlMode(str, Enum):
    PAGINATE = "paginate"
    SCROLL = "scroll"


class SourceAdapter(ABC):
    """Site-specific knowledge for one listing source.

    The engine owns navigation, deduplication, change detection and storage;
    an adapter only knows URLs and markup. Keep this surface small so a new
    site is one subclass.
    """

    name: str = "base"
    base_url: str = ""
    mode: CrawlMode = CrawlMode.PAGINATE

    # Every field stored for a record (in column order).
    fields: Sequence[str] = ("title", "organization", "location")
    # Ordered subset hashed for change detection.
    material: Sequence[str] = ("title", "organization", "location")
    # Records missing any of these are dropped as parse failures.
    required: Sequence[str] = ("title", "organization")

    def __init__(self, freshness_days: Optional[int] = None, **options: str):
        self.freshness_days = freshness_days
        self.options: Dict[str, str] = dict(options)

    def option(self, key: str, default: str = "") -> str:
        return (self.options.get(key) or default).strip()

    @abstractmethod
    def build_listing_url(self, offset: int) -> str:
        """URL of listing page ``offset`` (scroll sources: the feed URL)."""

    @abstractmethod
    async def extract_cards(self, page: Page) -> List[Card]:
        ...

    @abstractmethod
    async def extract_detail(self, page: Page, card: Card) -> DetailResult:
        ...

    def material_fields(self) -> Sequence[str]:
        return tuple(self.material)

    def record_fields(self) -> Sequence[str]:
        return tuple(self.fields)

    async def prepare(self, page: Page) -> None:
        """Called after a listing page loads, before cards are extracted."""

    async def advance(self, page: Page, pause_ms: int) -> None:
        """Load more content on a scroll source."""
        raise NotImplementedError(f"{self.name} does not scroll")

    def build_record(self, card: Card, detail: DetailResult, url: str, page_no: int) -> Record:
        # Detail values win unless the detail page had nothing for that field.
        fields: Dict[str, Any] = dict(card.fields)
        for key, value in detail.fields.items():
            if is_available(value) or key not in fields:
                fields[key] = value
        return Record(
            source=self.name,
            url=url,
            fields=fields,
            page=page_no,
            sequence=card.sequence,
            age_days=detail.age_days,
        )

    def is_complete(self, record: Record) -> bool:
        return all(record.has(name) for name in self.required)

    def discovery_key(self, record: Record) -> Optional[str]:
        """title|organization|location; None when the record cannot be keyed."""
        if not (record.has("title") and record.has("organization")):
            return None
        location = record.get("location", "") if record.has("location") else ""
        return "|".join(
            [
                str(record.get("title")).strip().lower(),
                str(record.get("organization")).strip().lower(),
                str(location).strip().lower(),
            ]
        )
