from __future__ import annotations

import re
from typing import Optional


_DAYS_RE = re.compile(r"posted\s*:?\s*(\d{1,3})\+?\s*days?", re.I)
_AGO_RE = re.compile(r"(\d{1,3})\+?\s*(day|week|month)s?\s+ago", re.I)
_TODAY_RE = re.compile(r"\b(today|just\s+now|few\s+(hours|minutes)\s+ago|\d{1,2}\s+(hours?|minutes?)\s+ago)\b", re.I)

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30}


def parse_age_days(text: str) -> Optional[int]:
    """Best-effort age in days from listing text ("Posted 3 days ago", "1 week ago", "Today").

    Returns None when the text carries no recognizable age.
    """
    if not text:
        return None

    m = _DAYS_RE.search(text)
    if m:
        return int(m.group(1))

    m = _AGO_RE.search(text)
    if m:
        return int(m.group(1)) * _UNIT_DAYS[m.group(2).lower()]

    if _TODAY_RE.search(text):
        return 0
    return None


def is_fresh(age_days: Optional[int], window_days: Optional[int]) -> bool:
    """Reject only when an age is known and it exceeds the window."""
    if age_days is None or window_days is None:
        return True
    return age_days <= window_days
