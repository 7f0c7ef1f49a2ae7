from __future__ import annotations

import logging
from typing import List, Optional

from playwright.async_api import Page

from ..extraction import page_tree, text_of, texts_of
from ..freshness import parse_age_days
from ..models import NOT_AVAILABLE, Card, DetailResult
from ..url_canon import absolute_url
from .base import CrawlMode, SourceAdapter


logger = logging.getLogger(__name__)

BASE_URL = "https://unstop.com"

DEFAULT_DETAIL_PAUSE_MS = 1000

CARD_SELECTOR = "a.item[class*='opp_']"

CONTENT_TYPES = ("jobs", "internships")

# Card chips that are not a location.
_NOT_LOCATION = {"full time", "part time", "internship", "in office", "remote", "hybrid"}

_SCROLL_JS = """
() => {
  const container = document.querySelector('div.user_list');
  if (container) {
    container.scrollTo(0, container.scrollHeight);
  } else {
    window.scrollTo(0, document.body.scrollHeight);
  }
}
"""


def _pause_ms(raw: str, default: int) -> int:
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("unstop: ignoring detail_pause_ms=%r, using %d", raw, default)
        return default
    return value if value >= 0 else default


def _location_from_chips(chips: List[str]) -> str:
    loc = NOT_AVAILABLE
    for chip in chips:
        low = chip.lower()
        if "salary" in low or "stipend" in low or "experience" in low:
            continue
        if low in _NOT_LOCATION:
            continue
        loc = chip
    return loc


class UnstopAdapter(SourceAdapter):
    """Unstop open opportunities; an infinite-scroll feed.

    Options: ``content_type`` (``jobs`` or ``internships``), ``detail_pause_ms``.
    """

    name = "unstop"
    base_url = BASE_URL
    mode = CrawlMode.SCROLL

    fields = (
        "title",
        "organization",
        "employment_type",
        "location",
        "deadline",
        "applicants",
        "compensation",
        "experience",
        "description",
        "skills",
        "posted",
    )
    material = ("title", "organization", "location", "deadline", "compensation", "experience")

    def __init__(self, freshness_days: Optional[int] = None, **options: str):
        super().__init__(freshness_days, **options)
        self.detail_pause_ms = _pause_ms(self.option("detail_pause_ms"), DEFAULT_DETAIL_PAUSE_MS)

    @property
    def content_type(self) -> str:
        ct = self.option("content_type", "jobs").lower()
        return ct if ct in CONTENT_TYPES else "jobs"

    def build_listing_url(self, offset: int) -> str:
        return f"{BASE_URL}/{self.content_type}?oppstatus=open"

    async def advance(self, page: Page, pause_ms: int) -> None:
        await page.evaluate(_SCROLL_JS)
        await page.wait_for_timeout(pause_ms)

    async def extract_cards(self, page: Page) -> List[Card]:
        tree = await page_tree(page)
        cards: List[Card] = []
        for i, node in enumerate(tree.css(CARD_SELECTOR)):
            cards.append(
                Card(
                    detail_url=absolute_url(BASE_URL + "/", node.attributes.get("href")),
                    fields={
                        "title": text_of(node, "h2"),
                        "organization": text_of(node, "p.single-wrap"),
                        "employment_type": self.content_type.capitalize(),
                        "location": _location_from_chips(texts_of(node, ".other_fields > div")),
                        "deadline": NOT_AVAILABLE,
                        "applicants": NOT_AVAILABLE,
                    },
                    sequence=i,
                )
            )
        return cards

    async def extract_detail(self, page: Page, card: Card) -> DetailResult:
        if self.detail_pause_ms:
            await page.wait_for_timeout(self.detail_pause_ms)
        tree = await page_tree(page)

        skills = texts_of(tree, "[class*='skill'], [class*='tag']", limit=20)
        posted = text_of(tree, "[class*='posted']")
        fields = {
            "compensation": text_of(tree, "[class*='salary'], [class*='stipend']"),
            "experience": text_of(tree, "[class*='experience']"),
            "posted": posted,
            "description": text_of(tree, "[class*='description'], [class*='about']"),
            "skills": ", ".join(skills) if skills else NOT_AVAILABLE,
        }
        age = parse_age_days(posted) if posted != NOT_AVAILABLE else None
        return DetailResult(fields=fields, age_days=age)
