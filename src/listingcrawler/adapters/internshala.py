from __future__ import annotations

import re
from typing import List

from playwright.async_api import Page

from ..extraction import attr_of, body_text, page_tree, text_of, texts_of
from ..freshness import parse_age_days
from ..models import NOT_AVAILABLE, Card, DetailResult
from ..url_canon import absolute_url
from .base import CrawlMode, SourceAdapter


BASE_URL = "https://internshala.com/internships"

# Tried in order; the first selector with matches wins so cards are not counted twice.
CARD_SELECTORS = (
    "div.container-fluid.individual_internship",
    "div.individual_internship",
    ".internship_list_container li",
    "li.internship",
)

_DURATION_RE = re.compile(r"\b\d+\s*(?:months?|weeks?)\b", re.I)


class InternshalaAdapter(SourceAdapter):
    """Internshala internships, paginated as /page-N/.

    Options: ``search_path`` (e.g. ``computer-science-internship``).
    """

    name = "internshala"
    base_url = BASE_URL
    mode = CrawlMode.PAGINATE

    fields = (
        "title",
        "organization",
        "location",
        "compensation",
        "duration",
        "start_date",
        "apply_by",
        "applicants",
        "skills",
        "openings",
        "category",
    )
    material = ("title", "organization", "location", "compensation", "duration", "start_date", "apply_by")

    def build_listing_url(self, offset: int) -> str:
        search_path = self.option("search_path").strip("/")
        base = BASE_URL + (f"/{search_path}" if search_path else "")
        if offset <= 1:
            return base
        return f"{base}/page-{offset}/"

    async def extract_cards(self, page: Page) -> List[Card]:
        tree = await page_tree(page)

        nodes = []
        for sel in CARD_SELECTORS:
            nodes = tree.css(sel)
            if nodes:
                break

        cards: List[Card] = []
        for i, node in enumerate(nodes):
            href = None
            for a in node.css("a[href]"):
                h = a.attributes.get("href") or ""
                if "/internship/" in h:
                    href = h
                    break
            if href is None:
                href = attr_of(node, None, "data-href")

            duration = text_of(node, ".duration")
            if duration == NOT_AVAILABLE:
                m = _DURATION_RE.search(node.text(separator=" "))
                duration = m.group(0) if m else NOT_AVAILABLE

            cards.append(
                Card(
                    detail_url=absolute_url(page.url or BASE_URL, href),
                    fields={
                        "title": text_of(node, ".job-internship-name, .heading_4_5, .profile, h3, a[href*='/internship/']"),
                        "organization": text_of(node, ".company_name a, .company-name, .company_name, .company"),
                        "location": text_of(node, ".locations a, .location_link, .internship_location, .location"),
                        "compensation": text_of(node, ".stipend, .stp"),
                        "duration": duration,
                    },
                    sequence=i,
                )
            )
        return cards

    async def extract_detail(self, page: Page, card: Card) -> DetailResult:
        tree = await page_tree(page)
        skills = texts_of(tree, ".round_tabs_container .round_tabs")

        fields = {
            "start_date": text_of(tree, ".start-date-container .item_body, .start_date"),
            "apply_by": text_of(tree, ".apply_by .item_body"),
            "applicants": text_of(tree, ".applications_message .message, .total_applications"),
            "openings": text_of(tree, ".openings .item_body"),
            "category": text_of(tree, ".profile_on_detail_page, h1.profile"),
            "skills": ", ".join(skills) if skills else NOT_AVAILABLE,
        }
        return DetailResult(fields=fields, age_days=parse_age_days(body_text(tree)))
