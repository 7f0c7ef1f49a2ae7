from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Deque, List, Optional, Set

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError

from .accountant import RunAccountant, SkipReason
from .adapters.base import CrawlMode, SourceAdapter
from .config import CrawlConfig
from .db import RecordStore
from .errors import PersistenceFailure
from .fingerprint import ChangeKind, classify, compute_fingerprint
from .freshness import is_fresh
from .index import KnownRecordIndex
from .models import Card, Record
from .navigator import Navigator
from .url_canon import canonicalize_url


logger = logging.getLogger(__name__)

# Recent state transitions kept for inspection.
STATE_LOG_LIMIT = 256


class CrawlState(str, Enum):
    ADVANCING_PAGE = "advancing_page"
    SCROLLING = "scrolling"
    EXTRACTING_CARDS = "extracting_cards"
    VISITING_DETAIL = "visiting_detail"
    DECIDING = "deciding"
    TERMINATED = "terminated"


class StopReason(str, Enum):
    BUDGET_EXHAUSTED = "budget_exhausted"
    NO_CARDS = "no_cards"
    NO_NEW_RECORDS = "no_new_records"


@dataclass
class CrawlResult:
    records: List[Record] = field(default_factory=list)
    tally: RunAccountant = field(default_factory=RunAccountant)
    stop_reason: Optional[StopReason] = None


class CrawlController:
    """Drives one crawl of one source.

    Pagination sources load listing page ``offset`` each iteration; scroll
    sources load the feed once and call ``adapter.advance`` between
    iterations. Cards and detail pages are handled strictly one at a time.

    The run stops when the page/scroll budget runs out, after
    ``zero_cards_threshold`` consecutive iterations without cards (a failed
    listing load counts as one), or after ``zero_new_threshold`` consecutive
    iterations whose cards yielded no accepted record.

    Errors raised by adapter code are contained: a failing card is tallied as
    ``parse_failed``, a failing listing page counts as an iteration without cards.
    """

    def __init__(
        self,
        cfg: CrawlConfig,
        adapter: SourceAdapter,
        context: BrowserContext,
        *,
        index: Optional[KnownRecordIndex] = None,
        store: Optional[RecordStore] = None,
        navigator: Optional[Navigator] = None,
    ):
        self.cfg = cfg
        self.adapter = adapter
        self.context = context
        self.index = index if index is not None else KnownRecordIndex()
        self.store = store
        self.navigator = navigator or Navigator(
            timeout_ms=cfg.nav_timeout_ms,
            base_delay_s=cfg.retry_base_delay_s,
            step_s=cfg.retry_step_s,
        )
        self.material = tuple(adapter.material_fields())
        self.scrolling = adapter.mode is CrawlMode.SCROLL
        self.state = CrawlState.SCROLLING if self.scrolling else CrawlState.ADVANCING_PAGE
        self.states: Deque[CrawlState] = deque([self.state], maxlen=STATE_LOG_LIMIT)

        self.tally = RunAccountant(source=adapter.name)
        self.records: List[Record] = []
        self.discovery_keys: Set[str] = set()

    def _enter(self, state: CrawlState) -> None:
        if state is not self.state:
            self.state = state
            self.states.append(state)

    @property
    def budget(self) -> Optional[int]:
        if self.scrolling:
            return self.cfg.scroll_budget
        return self.cfg.max_pages

    async def run(self) -> CrawlResult:
        offset = self.cfg.start_offset
        zero_cards = 0
        zero_new = 0
        stop: Optional[StopReason] = None
        feed_loaded = False

        listing = await self.context.new_page()
        try:
            while True:
                if self.budget and self.tally.iterations >= self.budget:
                    logger.info("%s: reached the %d iteration budget", self.adapter.name, self.budget)
                    stop = StopReason.BUDGET_EXHAUSTED
                    break

                self._enter(CrawlState.SCROLLING if self.scrolling else CrawlState.ADVANCING_PAGE)
                self.tally.iterations += 1
                label = f"scroll {self.tally.iterations}" if self.scrolling else f"page {offset}"

                loaded = True
                if not self.scrolling:
                    loaded = await self._open_listing(listing, offset)
                elif not feed_loaded:
                    loaded = feed_loaded = await self._open_listing(listing, offset)
                else:
                    try:
                        await self.adapter.advance(listing, self.cfg.scroll_pause_ms)
                    except Exception as e:
                        logger.warning("%s: scroll failed: %s", self.adapter.name, e)

                cards: List[Card] = []
                if loaded:
                    self._enter(CrawlState.EXTRACTING_CARDS)
                    cards = await self._extract_cards(listing)
                    if not cards and not self.scrolling:
                        cards = await self._reload_listing(listing, offset)
                    logger.info("%s %s: found %d cards", self.adapter.name, label, len(cards))
                    if not cards:
                        await self._snapshot(listing, offset)
                else:
                    logger.warning("%s %s: listing did not load", self.adapter.name, label)

                self._enter(CrawlState.DECIDING)
                if not cards:
                    zero_cards += 1
                    if zero_cards >= self.cfg.zero_cards_threshold:
                        logger.info("%s: %d consecutive iterations without cards", self.adapter.name, zero_cards)
                        stop = StopReason.NO_CARDS
                        break
                    offset += 1
                    continue

                zero_cards = 0
                page_no = self.tally.iterations if self.scrolling else offset
                accepted = await self._process_cards(cards, page_no)
                logger.info("%s %s: %d new or changed records", self.adapter.name, label, accepted)

                self._enter(CrawlState.DECIDING)
                zero_new = 0 if accepted else zero_new + 1
                if zero_new >= self.cfg.zero_new_threshold:
                    logger.info("%s: %d consecutive iterations without new records", self.adapter.name, zero_new)
                    stop = StopReason.NO_NEW_RECORDS
                    break
                offset += 1
        finally:
            await _close(listing)

        self._enter(CrawlState.TERMINATED)
        for line in self.tally.summary_lines():
            logger.info(line)
        return CrawlResult(records=self.records, tally=self.tally, stop_reason=stop)

    async def _open_listing(self, page: Page, offset: int) -> bool:
        url = self.adapter.build_listing_url(offset)
        logger.info("%s: loading %s", self.adapter.name, url)
        if not await self.navigator.load(page, url, self.cfg.nav_attempts):
            return False
        try:
            await self.adapter.prepare(page)
        except Exception as e:
            logger.warning("%s: listing preparation failed on %s: %s", self.adapter.name, url, e)
        return True

    async def _reload_listing(self, page: Page, offset: int) -> List[Card]:
        # A listing can render late; reload before counting it as empty.
        for _ in range(self.cfg.empty_page_reloads):
            logger.info("%s page %d: no cards, reloading", self.adapter.name, offset)
            if not await self._open_listing(page, offset):
                return []
            cards = await self._extract_cards(page)
            if cards:
                return cards
        return []

    async def _extract_cards(self, page: Page) -> List[Card]:
        try:
            return await self.adapter.extract_cards(page)
        except Exception as e:
            logger.warning("%s: card extraction failed: %s", self.adapter.name, e)
            return []

    async def _process_cards(self, cards: List[Card], page_no: int) -> int:
        accepted = 0
        for card in cards:
            self.tally.cards_seen += 1
            if await self._process_card(card, page_no):
                accepted += 1
        return accepted

    async def _process_card(self, card: Card, page_no: int) -> bool:
        if not card.detail_url:
            self.tally.skip(SkipReason.NO_DETAIL_LINK)
            return False

        url = canonicalize_url(card.detail_url)
        if self.index.seen(url):
            self.tally.skip(SkipReason.DUPLICATE_URL)
            logger.debug("duplicate url %s", url)
            return False

        self._enter(CrawlState.VISITING_DETAIL)
        detail_page = await self.context.new_page()
        try:
            if not await self.navigator.load(detail_page, url, self.cfg.detail_attempts):
                self.tally.skip(SkipReason.DETAIL_FETCH_FAILED)
                return False
            self.index.mark_seen(url)

            try:
                detail = await self.adapter.extract_detail(detail_page, card)
                record = self.adapter.build_record(card, detail, url, page_no)
            except Exception as e:
                logger.warning("detail extraction failed for %s: %r", url, e)
                self.tally.skip(SkipReason.PARSE_FAILED)
                return False
        finally:
            await _close(detail_page)

        self._enter(CrawlState.DECIDING)
        return self._decide(record)

    def _decide(self, record: Record) -> bool:
        if not is_fresh(record.age_days, self.cfg.freshness_window_days):
            self.tally.skip(SkipReason.STALE)
            logger.debug("stale (%s days) %s", record.age_days, record.url)
            return False

        if not self.adapter.is_complete(record):
            self.tally.skip(SkipReason.PARSE_FAILED)
            logger.debug("incomplete record %s", record.url)
            return False

        key = self.adapter.discovery_key(record)
        if key is not None:
            if key in self.discovery_keys:
                self.tally.skip(SkipReason.DUPLICATE_DISCOVERY_KEY)
                logger.debug("duplicate key %s", key)
                return False
            self.discovery_keys.add(key)

        fingerprint = compute_fingerprint(record.fields, self.material)
        try:
            stored = self.index.fingerprint_for(record.url)
        except PersistenceFailure as e:
            self.tally.persist_failed += 1
            logger.warning("%s", e)
            return False
        kind = classify(stored, fingerprint)
        if kind is ChangeKind.UNCHANGED:
            self.tally.skip(SkipReason.UNCHANGED)
            return False

        if self.store is not None:
            try:
                self.store.upsert(record, fingerprint)
            except PersistenceFailure as e:
                self.tally.persist_failed += 1
                logger.warning("%s", e)

        self.index.remember(record.url, fingerprint)
        self.records.append(record)
        self.tally.accept(kind)
        logger.info(
            "  [%d] %s %s @ %s",
            len(self.records),
            kind.value,
            record.get("title"),
            record.get("organization"),
        )
        return True

    async def _snapshot(self, page: Page, offset: int) -> None:
        if self.cfg.snapshot_dir is None:
            return
        try:
            html = await page.content()
            path = Path(self.cfg.snapshot_dir) / f"{self.adapter.name}_{offset}.html"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding="utf-8")
            logger.debug("saved %s", path)
        except (PlaywrightError, OSError) as e:
            logger.debug("snapshot failed: %s", e)


async def _close(page: Page) -> None:
    try:
        await page.close()
    except PlaywrightError:
        pass
