from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


# Value stored for a field whose selector matched nothing.
NOT_AVAILABLE = "N/A"


def is_available(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        v = value.strip()
        return bool(v) and v != NOT_AVAILABLE
    if isinstance(value, (list, tuple)):
        return any(is_available(v) for v in value)
    return True


def field_text(value: Any) -> str:
    """Serialize a field value for hashing and storage.

    Missing values become "" (never "None"); lists are joined with ", ".
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(field_text(v) for v in value if field_text(v))
    return str(value).strip()


@dataclass
class Card:
    """One entry of a listing page, before the detail page is visited."""

    detail_url: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0


@dataclass
class DetailResult:
    fields: Dict[str, Any] = field(default_factory=dict)
    # Parsed from "posted N days ago" style text, when the page has one.
    age_days: Optional[int] = None


@dataclass
class Record:
    source: str
    url: str
    fields: Dict[str, Any] = field(default_factory=dict)
    page: int = 0
    sequence: int = 0
    age_days: Optional[int] = None

    def get(self, name: str, default: Any = NOT_AVAILABLE) -> Any:
        value = self.fields.get(name)
        return value if value is not None else default

    def has(self, name: str) -> bool:
        return is_available(self.fields.get(name))

    def to_row(self, columns: Iterable[str]) -> Dict[str, str]:
        row = {"url": self.url}
        for col in columns:
            row[col] = field_text(self.fields.get(col))
        row["page"] = str(self.page)
        row["sequence"] = str(self.sequence)
        return row
