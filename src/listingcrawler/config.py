from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


INDEX_MODES = ("preload", "lookup")


def _default_env_paths() -> list[Path]:
    """Search order for config.env."""

    # 1) Explicit override
    p = (os.getenv("LISTINGCRAWLER_CONFIG") or "").strip()
    if p:
        return [Path(p)]

    # 2) Repo-local, 3) user-local
    local = Path.cwd() / "data" / "config.env"
    home = Path.home() / ".listingcrawler" / "config.env"
    return [local, home]


def find_config_env() -> Path:
    for p in _default_env_paths():
        if p.exists():
            return p
    return Path.cwd() / "data" / "config.env"


@dataclass(frozen=True)
class CrawlConfig:
    source: str = "internshala"
    start_offset: int = 1

    # None means unlimited. Scroll sources derive their budget from max_pages
    # unless max_scrolls is set.
    max_pages: Optional[int] = 5
    max_scrolls: Optional[int] = None

    # None disables the freshness filter.
    freshness_window_days: Optional[int] = 7

    headless: bool = True
    store_enabled: bool = True
    db_path: Path = Path("data/listings.sqlite3")
    index_mode: str = "preload"

    nav_attempts: int = 3
    detail_attempts: int = 2
    nav_timeout_ms: int = 30_000
    retry_base_delay_s: float = 1.0
    retry_step_s: float = 1.0

    # Paginated listings that come back empty are reloaded this many times first.
    empty_page_reloads: int = 1

    zero_cards_threshold: int = 2
    zero_new_threshold: int = 3
    scroll_pause_ms: int = 3_000

    # Listing pages that yield no cards are saved here for selector tuning.
    snapshot_dir: Optional[Path] = None

    # Adapter-specific settings (search_path, content_type, function_gid, ...).
    source_options: Dict[str, str] = field(default_factory=dict)

    log_level: str = "INFO"

    @property
    def scroll_budget(self) -> int:
        if self.max_scrolls:
            return self.max_scrolls
        return self.max_pages * 3 if self.max_pages else 50

    def validate(self) -> None:
        if not self.source:
            raise ValueError("source cannot be empty")
        if self.start_offset < 1:
            raise ValueError("start_offset must be >= 1")
        if self.max_pages is not None and self.max_pages < 0:
            raise ValueError("max_pages must be >= 0")
        if self.max_scrolls is not None and self.max_scrolls < 0:
            raise ValueError("max_scrolls must be >= 0")
        if self.freshness_window_days is not None and self.freshness_window_days < 0:
            raise ValueError("freshness_window_days must be >= 0")
        if self.index_mode not in INDEX_MODES:
            raise ValueError(f"index_mode must be one of {', '.join(INDEX_MODES)}")
        if self.nav_attempts < 1 or self.detail_attempts < 1:
            raise ValueError("navigation attempts must be >= 1")
        if self.empty_page_reloads < 0:
            raise ValueError("empty_page_reloads must be >= 0")
        if self.zero_cards_threshold < 1 or self.zero_new_threshold < 1:
            raise ValueError("termination thresholds must be >= 1")


def _load_envfile(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip())


def parse_options(raw: str) -> Dict[str, str]:
    """Parse "k=v,k=v" (or newline-separated) into a dict."""
    out: Dict[str, str] = {}
    for line in (raw or "").splitlines():
        for part in line.split(","):
            if "=" not in part:
                continue
            k, v = part.split("=", 1)
            if k.strip():
                out[k.strip()] = v.strip()
    return out


def load_config(env_path: Optional[Path] = None) -> CrawlConfig:
    env_path = env_path or find_config_env()
    _load_envfile(env_path)

    def gets(name: str, default: str) -> str:
        return (os.getenv(name) or "").strip() or default

    def geti(name: str, default: int) -> int:
        v = (os.getenv(name) or "").strip()
        if not v:
            return default
        try:
            return int(v)
        except ValueError:
            return default

    def getf(name: str, default: float) -> float:
        v = (os.getenv(name) or "").strip()
        if not v:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def getb(name: str, default: bool) -> bool:
        v = (os.getenv(name) or "").strip().lower()
        if not v:
            return default
        return v in {"1", "true", "yes", "on"}

    def get_limit(name: str, default: Optional[int]) -> Optional[int]:
        # 0 means "no limit"
        v = geti(name, -1)
        if v < 0:
            return default
        return v or None

    start_offset = geti("START_OFFSET", geti("START_PAGE", CrawlConfig.start_offset))
    snapshot_dir = gets("SNAPSHOT_DIR", "")

    return CrawlConfig(
        source=gets("SOURCE", CrawlConfig.source),
        start_offset=start_offset,
        max_pages=get_limit("MAX_PAGES", CrawlConfig.max_pages),
        max_scrolls=get_limit("MAX_SCROLLS", None),
        freshness_window_days=get_limit("FRESHNESS_DAYS", CrawlConfig.freshness_window_days),
        headless=getb("HEADLESS", CrawlConfig.headless),
        store_enabled=getb("DB_ENABLED", CrawlConfig.store_enabled),
        db_path=Path(gets("DB_PATH", str(CrawlConfig.db_path))),
        index_mode=gets("INDEX_MODE", CrawlConfig.index_mode).lower(),
        nav_attempts=geti("NAV_ATTEMPTS", CrawlConfig.nav_attempts),
        detail_attempts=geti("DETAIL_ATTEMPTS", CrawlConfig.detail_attempts),
        nav_timeout_ms=geti("NAV_TIMEOUT_MS", CrawlConfig.nav_timeout_ms),
        retry_base_delay_s=getf("RETRY_BASE_DELAY_S", CrawlConfig.retry_base_delay_s),
        retry_step_s=getf("RETRY_STEP_S", CrawlConfig.retry_step_s),
        empty_page_reloads=geti("EMPTY_PAGE_RELOADS", CrawlConfig.empty_page_reloads),
        zero_cards_threshold=geti("ZERO_CARDS_THRESHOLD", CrawlConfig.zero_cards_threshold),
        zero_new_threshold=geti("ZERO_NEW_THRESHOLD", CrawlConfig.zero_new_threshold),
        scroll_pause_ms=geti("SCROLL_PAUSE_MS", CrawlConfig.scroll_pause_ms),
        snapshot_dir=Path(snapshot_dir) if snapshot_dir else None,
        source_options=parse_options(os.getenv("SOURCE_OPTIONS") or ""),
        log_level=gets("LOG_LEVEL", CrawlConfig.log_level).upper(),
    )
