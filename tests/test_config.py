from __future__ import annotations

from pathlib import Path

import pytest

from listingcrawler.config import CrawlConfig, load_config, parse_options


def test_defaults(config_env):
    cfg = load_config()
    assert cfg == CrawlConfig()
    assert cfg.max_pages == 5
    assert cfg.freshness_window_days == 7
    assert cfg.index_mode == "preload"


def test_env_file(config_env):
    config_env.write_text(
        "\n".join(
            [
                "# crawl settings",
                "SOURCE=naukri",
                "START_PAGE=3",
                "MAX_PAGES=0",
                "FRESHNESS_DAYS=0",
                "HEADLESS=false",
                "DB_PATH=/tmp/x.sqlite3",
                "INDEX_MODE=Lookup",
                "SOURCE_OPTIONS=function_gid=5,experience=1",
                "NAV_ATTEMPTS=not-a-number",
                "EMPTY_PAGE_RELOADS=2",
            ]
        ),
        encoding="utf-8",
    )
    cfg = load_config()
    assert cfg.source == "naukri"
    assert cfg.start_offset == 3
    assert cfg.max_pages is None
    assert cfg.freshness_window_days is None
    assert cfg.headless is False
    assert cfg.db_path == Path("/tmp/x.sqlite3")
    assert cfg.index_mode == "lookup"
    assert cfg.source_options == {"function_gid": "5", "experience": "1"}
    assert cfg.nav_attempts == 3
    assert cfg.empty_page_reloads == 2


def test_environment_wins_over_file(config_env, monkeypatch):
    config_env.write_text("MAX_PAGES=9\n", encoding="utf-8")
    monkeypatch.setenv("MAX_PAGES", "2")
    assert load_config().max_pages == 2


def test_scroll_budget():
    assert CrawlConfig(max_scrolls=12).scroll_budget == 12
    assert CrawlConfig(max_pages=4).scroll_budget == 12
    assert CrawlConfig(max_pages=None).scroll_budget == 50


@pytest.mark.parametrize(
    "overrides",
    [
        {"source": ""},
        {"start_offset": 0},
        {"max_pages": -1},
        {"max_scrolls": -5},
        {"empty_page_reloads": -1},
        {"freshness_window_days": -2},
        {"index_mode": "bogus"},
        {"nav_attempts": 0},
        {"zero_new_threshold": 0},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ValueError):
        CrawlConfig(**overrides).validate()


def test_parse_options():
    assert parse_options("a=1, b = two\nc=3") == {"a": "1", "b": "two", "c": "3"}
    assert parse_options("") == {}
    assert parse_options("junk,=x") == {}
