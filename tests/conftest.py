from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Set

import pytest
from playwright.async_api import Error as PlaywrightError

from listingcrawler.adapters.base import CrawlMode, SourceAdapter
from listingcrawler.config import CrawlConfig
from listingcrawler.models import Card, DetailResult
from listingcrawler.navigator import Navigator


LIST_URL = "https://jobs.example/list/{offset}"
JOB_URL = "https://jobs.example/job/{key}"


@dataclass
class FakeSite:
    """In-memory listing site: listing URL -> cards, detail URL -> fields."""

    listings: Dict[str, List[Card]] = field(default_factory=dict)
    details: Dict[str, dict] = field(default_factory=dict)
    ages: Dict[str, int] = field(default_factory=dict)
    failing: Set[str] = field(default_factory=set)
    # Listing URLs that render without cards on their first read.
    empty_once: Set[str] = field(default_factory=set)
    # Scroll sources: cards visible after N scrolls.
    feed: List[List[Card]] = field(default_factory=list)
    scrolls: int = 0
    visited: List[str] = field(default_factory=list)

    def add_job(self, key: str, offset: int, **fields) -> Card:
        url = JOB_URL.format(key=key)
        base = {
            "title": f"Job {key}",
            "organization": f"Org {key}",
            "location": "Remote",
            "compensation": "10k",
        }
        base.update(fields)
        card = Card(detail_url=url, fields={"title": base["title"], "organization": base["organization"]})
        cards = self.listings.setdefault(LIST_URL.format(offset=offset), [])
        card.sequence = len(cards)
        cards.append(card)
        self.details[url] = base
        return card


def make_site(pages: int, per_page: int, prefix: str = "") -> FakeSite:
    site = FakeSite()
    for p in range(1, pages + 1):
        for i in range(per_page):
            site.add_job(f"{prefix}{p}-{i}", p)
    return site


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url = "about:blank"
        self.closed = False
        self.gotos: List[tuple] = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.gotos.append((url, wait_until))
        if url in self.site.failing:
            raise PlaywrightError(f"net::ERR_CONNECTION_RESET at {url}")
        self.url = url
        self.site.visited.append(url)

    async def content(self):
        return "<html><body></body></html>"

    async def close(self):
        self.closed = True

    async def wait_for_timeout(self, ms):
        return None


class FakeContext:
    def __init__(self, site: FakeSite):
        self.site = site
        self.pages: List[FakePage] = []

    async def new_page(self):
        page = FakePage(self.site)
        self.pages.append(page)
        return page


class FakeAdapter(SourceAdapter):
    name = "fake"
    fields = ("title", "organization", "location", "compensation", "applicants")
    material = ("title", "organization", "location", "compensation")

    def __init__(self, site: FakeSite, mode: CrawlMode = CrawlMode.PAGINATE, **kwargs):
        super().__init__(**kwargs)
        self.site = site
        self.mode = mode

    def build_listing_url(self, offset: int) -> str:
        return LIST_URL.format(offset=offset)

    async def extract_cards(self, page) -> List[Card]:
        if self.mode is CrawlMode.SCROLL:
            visible: List[Card] = []
            for batch in self.site.feed[: self.site.scrolls + 1]:
                visible.extend(batch)
            return visible
        if page.url in self.site.empty_once:
            self.site.empty_once.discard(page.url)
            return []
        return list(self.site.listings.get(page.url, []))

    async def extract_detail(self, page, card: Card) -> DetailResult:
        return DetailResult(fields=dict(self.site.details.get(page.url, {})), age_days=self.site.ages.get(page.url))

    async def advance(self, page, pause_ms: int) -> None:
        self.site.scrolls += 1


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def navigator(sleep) -> Navigator:
    return Navigator(timeout_ms=1000, base_delay_s=1.0, step_s=1.0, sleep=sleep)


def make_config(tmp_path=None, **overrides) -> CrawlConfig:
    values = dict(
        source="fake",
        max_pages=None,
        freshness_window_days=None,
        store_enabled=tmp_path is not None,
        db_path=(tmp_path / "listings.sqlite3") if tmp_path is not None else CrawlConfig.db_path,
        retry_base_delay_s=0.0,
        retry_step_s=0.0,
        scroll_pause_ms=0,
    )
    values.update(overrides)
    return CrawlConfig(**values)


CONFIG_KEYS = (
    "SOURCE",
    "START_OFFSET",
    "START_PAGE",
    "MAX_PAGES",
    "MAX_SCROLLS",
    "FRESHNESS_DAYS",
    "HEADLESS",
    "DB_ENABLED",
    "DB_PATH",
    "INDEX_MODE",
    "NAV_ATTEMPTS",
    "DETAIL_ATTEMPTS",
    "NAV_TIMEOUT_MS",
    "RETRY_BASE_DELAY_S",
    "RETRY_STEP_S",
    "EMPTY_PAGE_RELOADS",
    "ZERO_CARDS_THRESHOLD",
    "ZERO_NEW_THRESHOLD",
    "SCROLL_PAUSE_MS",
    "SNAPSHOT_DIR",
    "SOURCE_OPTIONS",
    "LOG_LEVEL",
)


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """Point the config loader at an empty env file and clear crawl env vars.

    The loader copies file values into os.environ, so they are dropped again afterwards.
    """
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "config.env"
    monkeypatch.setenv("LISTINGCRAWLER_CONFIG", str(path))
    yield path
    for key in CONFIG_KEYS:
        os.environ.pop(key, None)
