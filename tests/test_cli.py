from __future__ import annotations

import csv

from typer.testing import CliRunner

import listingcrawler.cli as cli
import listingcrawler.smoke as smoke
from listingcrawler.accountant import RunAccountant
from listingcrawler.controller import CrawlResult, StopReason
from listingcrawler.db import RecordStore
from listingcrawler.errors import FatalInitializationFailure
from listingcrawler.fingerprint import ChangeKind
from listingcrawler.models import Record


runner = CliRunner()


def _result(source: str) -> CrawlResult:
    tally = RunAccountant(source=source, iterations=2, cards_seen=1)
    tally.accept(ChangeKind.NEW)
    rec = Record(
        source=source,
        url="https://internshala.com/internship/detail/x",
        fields={"title": "Data Analyst", "organization": "Acme"},
        page=1,
    )
    return CrawlResult(records=[rec], tally=tally, stop_reason=StopReason.NO_CARDS)


def test_sources_lists_builtin_adapters(config_env):
    res = runner.invoke(cli.app, ["sources"])
    assert res.exit_code == 0
    for name in ("internshala", "naukri", "unstop"):
        assert name in res.output


def test_invalid_config_exits_2(config_env):
    res = runner.invoke(cli.app, ["crawl", "--index-mode", "bogus", "--no-store"])
    assert res.exit_code == 2
    assert "invalid configuration" in res.output


def test_negative_scroll_budget_exits_2(config_env):
    res = runner.invoke(cli.app, ["crawl", "--max-scrolls", "-5", "--no-store"])
    assert res.exit_code == 2
    assert "max_scrolls" in res.output


def test_unknown_source_exits_2(config_env):
    res = runner.invoke(cli.app, ["crawl", "--source", "nope", "--no-store"])
    assert res.exit_code == 2
    assert "unknown source" in res.output


def test_crawl_prints_summary_and_writes_csv(config_env, tmp_path, monkeypatch):
    seen = {}

    async def fake_run(cfg):
        seen["cfg"] = cfg
        return _result(cfg.source)

    monkeypatch.setattr(cli, "run_crawl", fake_run)
    out = tmp_path / "records.csv"
    res = runner.invoke(
        cli.app,
        ["crawl", "-s", "internshala", "--max-pages", "0", "--no-store", "-o", "search_path=python", "--out-csv", str(out)],
    )

    assert res.exit_code == 0, res.output
    cfg = seen["cfg"]
    assert cfg.max_pages is None
    assert cfg.store_enabled is False
    assert cfg.source_options == {"search_path": "python"}
    assert "run summary" in res.output
    assert "saved 1 records" in res.output

    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["title"] == "Data Analyst"


def test_crawl_fatal_exits_1(config_env, monkeypatch):
    async def fake_run(cfg):
        raise FatalInitializationFailure("Could not start a Chromium session.")

    monkeypatch.setattr(cli, "run_crawl", fake_run)
    res = runner.invoke(cli.app, ["crawl", "--no-store"])
    assert res.exit_code == 1
    assert "fatal" in res.output


def test_crawl_all_reports_failed_sources(config_env, monkeypatch):
    async def fake_run(cfg):
        if cfg.source == "naukri":
            raise FatalInitializationFailure("blocked")
        return _result(cfg.source)

    monkeypatch.setattr(cli, "run_crawl", fake_run)
    res = runner.invoke(cli.app, ["crawl-all", "--max-pages", "1"])
    assert res.exit_code == 1
    assert "failed sources: naukri" in res.output


class _Response:
    status_code = 200


def test_doctor_without_browser(config_env, tmp_path, monkeypatch):
    config_env.write_text(f"DB_PATH={tmp_path / 'listings.sqlite3'}\n", encoding="utf-8")
    urls = []

    def fake_get(url, headers=None, timeout=None):
        urls.append(url)
        return _Response()

    monkeypatch.setattr(smoke.requests, "get", fake_get)
    res = runner.invoke(cli.app, ["doctor", "--source", "unstop", "--skip-browser"])

    assert res.exit_code == 0, res.output
    assert urls == ["https://unstop.com/jobs?oppstatus=open"]
    assert "OK store" in res.output
    assert "OK source" in res.output


def test_export(config_env, tmp_path):
    db_path = tmp_path / "listings.sqlite3"
    store = RecordStore(db_path, "internshala", ("title", "organization"))
    try:
        rec = _result("internshala").records[0]
        store.upsert(rec, "fp")
    finally:
        store.close()

    out = tmp_path / "dump.csv"
    res = runner.invoke(cli.app, ["export", str(out), "--source", "internshala", "--db-path", str(db_path)])
    assert res.exit_code == 0, res.output

    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["url"] == "https://internshala.com/internship/detail/x"
    assert rows[0]["fingerprint"] == "fp"
