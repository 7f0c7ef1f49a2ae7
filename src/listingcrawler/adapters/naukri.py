from __future__ import annotations

import logging
from typing import List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..extraction import page_tree, text_of, texts_of
from ..freshness import parse_age_days
from ..models import NOT_AVAILABLE, Card, DetailResult
from ..url_canon import absolute_url
from .base import CrawlMode, SourceAdapter


logger = logging.getLogger(__name__)

BASE_URL = "https://www.naukri.com/jobs-in-india"

CARD_SELECTOR = "div.srp-jobtuple-wrapper, div.cust-job-tuple"
LINK_SELECTORS = ("a[title]", ".title a", "h3 a", "h2 a", "a.title")

# Consent/privacy overlays that hide the result list.
POPUP_SELECTORS = (
    "button[aria-label='Close']",
    ".close-btn",
    ".close-button",
    "button.close",
    "[data-dismiss='modal']",
    "button:has-text('Close')",
    "button:has-text('Accept')",
    "button:has-text('Got it')",
    ".modal-close",
)

ERROR_MARKERS = ("text=Oops! Something went wrong", "text=There was an error loading the page")

_STAT_LABELS = {"Posted:": "posted", "Openings:": "openings", "Applicants:": "applicants"}


class NaukriAdapter(SourceAdapter):
    """Naukri fresher jobs, paginated as jobs-in-india-N.

    Options: ``function_gid`` (functionAreaIdGid, default 3 = IT), ``experience`` (default 0).
    """

    name = "naukri"
    base_url = BASE_URL
    mode = CrawlMode.PAGINATE

    fields = (
        "title",
        "organization",
        "rating",
        "reviews",
        "experience",
        "compensation",
        "location",
        "posted",
        "openings",
        "applicants",
    )
    # Applicant counts are part of the material set for this source.
    material = fields
    required = ("title",)

    def build_listing_url(self, offset: int) -> str:
        url = BASE_URL if offset <= 1 else f"{BASE_URL}-{offset}"
        params = ["clusters=experience%2CFreshness", f"experience={self.option('experience', '0')}"]
        if self.freshness_days:
            params.append(f"jobAge={self.freshness_days}")
        gid = self.option("function_gid", "3")
        if gid:
            params.append(f"functionAreaIdGid={gid}")
        return url + "?" + "&".join(params)

    async def prepare(self, page: Page) -> None:
        try:
            await page.wait_for_timeout(2000)
            for marker in ERROR_MARKERS:
                if await page.locator(marker).count() > 0:
                    logger.info("naukri error page, reloading %s", page.url)
                    await page.reload(wait_until="domcontentloaded")
                    await page.wait_for_timeout(2000)
                    break

            for sel in POPUP_SELECTORS:
                el = page.locator(sel)
                if await el.count() > 0:
                    await el.first.click(timeout=3000)
                    await page.wait_for_timeout(1000)
                    return
            await page.keyboard.press("Escape")
        except PlaywrightError as e:
            logger.debug("popup handling failed on %s: %s", page.url, e)

    async def extract_cards(self, page: Page) -> List[Card]:
        tree = await page_tree(page)
        if tree.css_first(".noResultContainer, .no-result, .emptyResults") is not None:
            return []

        cards: List[Card] = []
        for i, node in enumerate(tree.css(CARD_SELECTOR)):
            title, href = NOT_AVAILABLE, None
            for sel in LINK_SELECTORS:
                a = node.css_first(sel)
                if a is not None:
                    title = text_of(node, sel)
                    href = a.attributes.get("href")
                    break
            cards.append(
                Card(
                    detail_url=absolute_url("https://www.naukri.com/", href),
                    fields={"title": title},
                    sequence=i,
                )
            )
        return cards

    async def extract_detail(self, page: Page, card: Card) -> DetailResult:
        try:
            await page.wait_for_load_state("networkidle", timeout=10_000)
        except PlaywrightError:
            pass
        tree = await page_tree(page)

        fields = {
            "title": text_of(tree, "h1[class*='jd-header-title']"),
            "organization": text_of(tree, "div[class*='jd-header-comp-name'] a"),
            "rating": text_of(tree, "span[class*='amb-rating']"),
            "reviews": text_of(tree, "span[class*='amb-reviews']"),
            "experience": text_of(tree, "div[class*='jhc__exp'] span"),
            "compensation": text_of(tree, "div[class*='jhc__salary'] span"),
            "location": text_of(tree, "span[class*='jhc__location']"),
            "posted": NOT_AVAILABLE,
            "openings": NOT_AVAILABLE,
            "applicants": NOT_AVAILABLE,
        }
        for stat in texts_of(tree, "span[class*='jhc__stat']"):
            for label, key in _STAT_LABELS.items():
                if label in stat:
                    fields[key] = stat.replace(label, "").strip() or NOT_AVAILABLE

        age = parse_age_days(fields["posted"]) if fields["posted"] != NOT_AVAILABLE else None
        return DetailResult(fields=fields, age_days=age)
