from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import BrowserContext

from .adapters import SourceAdapter, get_adapter
from .browser import open_browser
from .config import CrawlConfig
from .controller import CrawlController, CrawlResult
from .db import RecordStore
from .index import build_index
from .navigator import Navigator


logger = logging.getLogger(__name__)


def open_store(cfg: CrawlConfig, adapter: SourceAdapter) -> Optional[RecordStore]:
    """Open the source's table, or None when persistence is disabled.

    Raises FatalInitializationFailure when the store is enabled but unusable.
    """
    if not cfg.store_enabled:
        logger.info("store disabled; records will not be persisted")
        return None
    return RecordStore(cfg.db_path, adapter.name, adapter.record_fields())


async def run_crawl(
    cfg: CrawlConfig,
    *,
    adapter: Optional[SourceAdapter] = None,
    context: Optional[BrowserContext] = None,
    store: Optional[RecordStore] = None,
    navigator: Optional[Navigator] = None,
) -> CrawlResult:
    """Run one crawl of ``cfg.source`` to completion.

    ``adapter``, ``context`` and ``store`` default to the registered adapter,
    a fresh Chromium session and the configured SQLite file. Only
    initialization errors propagate.
    """
    cfg.validate()
    adapter = adapter or get_adapter(
        cfg.source,
        freshness_days=cfg.freshness_window_days,
        options=cfg.source_options,
    )

    own_store = store is None
    if own_store:
        store = open_store(cfg, adapter)

    try:
        index = build_index(store, cfg.index_mode)
        if store is not None:
            logger.info("%s: %d known records (%s mode)", adapter.name, len(index), cfg.index_mode)

        async def _run(ctx: BrowserContext) -> CrawlResult:
            controller = CrawlController(cfg, adapter, ctx, index=index, store=store, navigator=navigator)
            return await controller.run()

        if context is not None:
            return await _run(context)
        async with open_browser(headless=cfg.headless) as ctx:
            return await _run(ctx)
    finally:
        if own_store and store is not None:
            store.close()
