from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse


# Query params that vary between visits of the same listing.
DROP_PREFIXES = ("utm_",)
DROP_PARAMS = {
    "gclid",
    "fbclid",
    "ref",
    "referral",
    "src",
    "sid",
    "xid",
    "lid",
}


def _is_tracking(key: str) -> bool:
    key = key.lower()
    return key in DROP_PARAMS or key.startswith(DROP_PREFIXES)


def absolute_url(base_url: str, href: Optional[str]) -> Optional[str]:
    """Resolve a card link against the listing page; None for empty/js/mailto links."""
    href = (href or "").strip()
    if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    return urljoin(base_url, href)


def canonicalize_url(url: str) -> str:
    """Return the stable address used as a record's primary key.

    - Lowercase scheme/host
    - Remove fragments
    - Drop tracking query params, keep the rest sorted
    - Strip the trailing slash (except for the root path)
    """

    if not url:
        return ""

    p = urlparse(url.strip())
    scheme = (p.scheme or "").lower()
    netloc = (p.netloc or "").lower()
    path = p.path or ""

    if path != "/":
        path = path.rstrip("/")

    q = [(k, v) for k, v in parse_qsl(p.query, keep_blank_values=True) if not _is_tracking(k)]
    q.sort()
    query = urlencode(q, doseq=True)

    return urlunparse((scheme, netloc, path, "", query, ""))
