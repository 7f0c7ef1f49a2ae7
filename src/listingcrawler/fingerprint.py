from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from .models import field_text


DELIMITER = "|"


class ChangeKind(str, Enum):
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


def compute_fingerprint(fields: Mapping[str, Any], material_fields: Sequence[str]) -> str:
    """SHA-256 hex digest over the material fields, in the given order.

    Missing and empty values serialize to "" so every field keeps its slot.
    """
    payload = DELIMITER.join(field_text(fields.get(name)) for name in material_fields)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def classify(stored: Optional[str], fingerprint: str) -> ChangeKind:
    if not stored:
        return ChangeKind.NEW
    if stored != fingerprint:
        return ChangeKind.CHANGED
    return ChangeKind.UNCHANGED
