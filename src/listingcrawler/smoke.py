from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import dataclass
from typing import List

import requests

from .adapters import get_adapter
from .browser import DEFAULT_UA, open_browser
from .config import CrawlConfig
from .db import table_name
from .errors import FatalInitializationFailure


@dataclass(frozen=True)
class CheckResult:
    name: str
    ok: bool
    detail: str = ""


def check_store(cfg: CrawlConfig) -> CheckResult:
    if not cfg.store_enabled:
        return CheckResult("store", True, "disabled")
    if not cfg.db_path.exists():
        return CheckResult("store", True, f"{cfg.db_path} will be created on first run")
    try:
        con = sqlite3.connect(str(cfg.db_path))
        try:
            cur = con.execute(f"SELECT COUNT(*) FROM {table_name(cfg.source)}")
            n = cur.fetchone()[0]
        finally:
            con.close()
        return CheckResult("store", True, f"{table_name(cfg.source)}={n}")
    except sqlite3.OperationalError as e:
        if "no such table" in str(e):
            return CheckResult("store", True, f"{table_name(cfg.source)} not created yet")
        return CheckResult("store", False, f"error: {e}")
    except sqlite3.Error as e:
        return CheckResult("store", False, f"error: {e}")


async def _launch(headless: bool) -> None:
    async with open_browser(headless=headless):
        pass


def check_browser(cfg: CrawlConfig) -> CheckResult:
    try:
        asyncio.run(_launch(cfg.headless))
    except FatalInitializationFailure as e:
        return CheckResult("browser", False, str(e))
    return CheckResult("browser", True, "chromium ok")


def check_source(cfg: CrawlConfig, timeout_s: int = 10) -> CheckResult:
    adapter = get_adapter(cfg.source, freshness_days=cfg.freshness_window_days, options=cfg.source_options)
    url = adapter.build_listing_url(max(cfg.start_offset, 1))
    try:
        r = requests.get(url, headers={"User-Agent": DEFAULT_UA}, timeout=timeout_s)
    except requests.RequestException as e:
        return CheckResult("source", False, f"{url}: {e}")
    if r.status_code >= 400:
        return CheckResult("source", False, f"{url}: http {r.status_code}")
    return CheckResult("source", True, f"{url}: http {r.status_code}")


def smoke_checks(cfg: CrawlConfig, *, browser: bool = True) -> List[CheckResult]:
    results = [check_store(cfg), check_source(cfg)]
    if browser:
        results.append(check_browser(cfg))
    return results
