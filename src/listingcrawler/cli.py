from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .accountant import SkipReason
from .adapters import available_sources, get_adapter
from .config import CrawlConfig, load_config, parse_options
from .controller import CrawlResult
from .db import RecordStore
from .errors import FatalInitializationFailure
from .export import write_records_csv, write_rows_csv
from .logging_setup import setup_logging
from .run import run_crawl
from .smoke import smoke_checks


app = typer.Typer(add_completion=False, help="Incremental crawler for job and internship listing sites.")
console = Console()


def _effective_config(
    *,
    config: Optional[Path] = None,
    source: Optional[str] = None,
    start_offset: Optional[int] = None,
    max_pages: Optional[int] = None,
    max_scrolls: Optional[int] = None,
    freshness_days: Optional[int] = None,
    headed: bool = False,
    no_store: bool = False,
    db_path: Optional[Path] = None,
    index_mode: Optional[str] = None,
    snapshot_dir: Optional[Path] = None,
    options: Optional[List[str]] = None,
    log_level: Optional[str] = None,
) -> CrawlConfig:
    cfg = load_config(config)
    overrides: Dict[str, object] = {}
    if source:
        overrides["source"] = source
    if start_offset is not None:
        overrides["start_offset"] = start_offset
    # 0 means unlimited / disabled, as in config.env.
    if max_pages is not None:
        overrides["max_pages"] = max_pages or None
    if max_scrolls is not None:
        overrides["max_scrolls"] = max_scrolls or None
    if freshness_days is not None:
        overrides["freshness_window_days"] = freshness_days or None
    if headed:
        overrides["headless"] = False
    if no_store:
        overrides["store_enabled"] = False
    if db_path is not None:
        overrides["db_path"] = db_path
    if index_mode:
        overrides["index_mode"] = index_mode.lower()
    if snapshot_dir is not None:
        overrides["snapshot_dir"] = snapshot_dir
    if options:
        merged = dict(cfg.source_options)
        merged.update(parse_options("\n".join(options)))
        overrides["source_options"] = merged
    if log_level:
        overrides["log_level"] = log_level.upper()
    return replace(cfg, **overrides)


def _summary_table(result: CrawlResult) -> Table:
    tally = result.tally
    t = Table(title=f"{tally.source} run summary", show_header=True, header_style="bold")
    t.add_column("metric")
    t.add_column("count", justify="right")
    t.add_row("iterations", str(tally.iterations))
    t.add_row("cards seen", str(tally.cards_seen))
    t.add_row("accepted", str(tally.accepted), style="green")
    t.add_row("  new", str(tally.new))
    t.add_row("  changed", str(tally.changed))
    for reason in SkipReason:
        t.add_row(f"skipped: {reason.value}", str(tally.count(reason)))
    if tally.persist_failed:
        t.add_row("persist failed", str(tally.persist_failed), style="red")
    t.add_row("stop reason", result.stop_reason.value if result.stop_reason else "-")
    return t


def _crawl_once(cfg: CrawlConfig, out_csv: Optional[Path]) -> CrawlResult:
    result = asyncio.run(run_crawl(cfg))
    console.print(_summary_table(result))
    if out_csv and result.records:
        adapter = get_adapter(cfg.source)
        n = write_records_csv(result.records, adapter.record_fields(), out_csv, append=True)
        console.print(f"saved {n} records to {out_csv}")
    return result


@app.command()
def crawl(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source identifier (see `sources`)."),
    start_offset: Optional[int] = typer.Option(None, help="First listing page."),
    max_pages: Optional[int] = typer.Option(None, help="Page budget (0 = unlimited)."),
    max_scrolls: Optional[int] = typer.Option(None, help="Scroll budget for feed sources (0 = derive from max-pages)."),
    freshness_days: Optional[int] = typer.Option(None, help="Skip listings older than this many days (0 = off)."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
    no_store: bool = typer.Option(False, "--no-store", help="Do not read or write the database."),
    db_path: Optional[Path] = typer.Option(None, help="SQLite database path."),
    index_mode: Optional[str] = typer.Option(None, help="preload (full snapshot) or lookup (per-URL queries)."),
    snapshot_dir: Optional[Path] = typer.Option(None, help="Save listing pages that yield no cards here."),
    option: Optional[List[str]] = typer.Option(None, "--option", "-o", help="Source option key=value (repeatable)."),
    out_csv: Optional[Path] = typer.Option(None, help="Append accepted records to this CSV."),
    config: Optional[Path] = typer.Option(None, help="Path to config.env."),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING ..."),
) -> None:
    """Crawl one source once and persist new or changed records."""
    cfg = _effective_config(
        config=config,
        source=source,
        start_offset=start_offset,
        max_pages=max_pages,
        max_scrolls=max_scrolls,
        freshness_days=freshness_days,
        headed=headed,
        no_store=no_store,
        db_path=db_path,
        index_mode=index_mode,
        snapshot_dir=snapshot_dir,
        options=option,
        log_level=log_level,
    )
    setup_logging(cfg.log_level, console=console)

    try:
        cfg.validate()
        _crawl_once(cfg, out_csv)
    except ValueError as e:
        console.print(f"[red]invalid configuration:[/red] {e}")
        raise typer.Exit(2)
    except FatalInitializationFailure as e:
        console.print(f"[red]fatal:[/red] {e}")
        raise typer.Exit(1)


@app.command("crawl-all")
def crawl_all(
    max_pages: Optional[int] = typer.Option(None, help="Page budget per source (0 = unlimited)."),
    freshness_days: Optional[int] = typer.Option(None, help="Freshness window in days (0 = off)."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
    config: Optional[Path] = typer.Option(None, help="Path to config.env."),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING ..."),
) -> None:
    """Crawl every registered source once, one after another."""
    base = _effective_config(
        config=config,
        max_pages=max_pages,
        freshness_days=freshness_days,
        headed=headed,
        log_level=log_level,
    )
    setup_logging(base.log_level, console=console)

    failed: List[str] = []
    for name in available_sources():
        cfg = replace(base, source=name)
        console.rule(name)
        try:
            cfg.validate()
            _crawl_once(cfg, None)
        except (ValueError, FatalInitializationFailure) as e:
            console.print(f"[red]{name} failed:[/red] {e}")
            failed.append(name)

    if failed:
        console.print(f"failed sources: {', '.join(failed)}")
    raise typer.Exit(1 if failed else 0)


@app.command()
def sources() -> None:
    """List the available source adapters."""
    t = Table(show_header=True, header_style="bold")
    t.add_column("source")
    t.add_column("mode")
    t.add_column("material fields")
    for name in available_sources():
        adapter = get_adapter(name)
        t.add_row(name, adapter.mode.value, ", ".join(adapter.material_fields()))
    console.print(t)


@app.command()
def doctor(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source to check."),
    skip_browser: bool = typer.Option(False, "--skip-browser", help="Do not launch Chromium."),
    config: Optional[Path] = typer.Option(None, help="Path to config.env."),
) -> None:
    """Check the store, the source site and the browser install."""
    cfg = _effective_config(config=config, source=source)
    results = smoke_checks(cfg, browser=not skip_browser)
    bad = False
    for r in results:
        status = "[green]OK[/green]" if r.ok else "[red]FAIL[/red]"
        console.print(f"{status} {r.name}: {r.detail}")
        bad = bad or not r.ok
    raise typer.Exit(1 if bad else 0)


@app.command()
def export(
    out_csv: Path = typer.Argument(..., help="Destination CSV."),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source table to export."),
    limit: Optional[int] = typer.Option(None, help="Only the most recently seen N rows."),
    db_path: Optional[Path] = typer.Option(None, help="SQLite database path."),
    config: Optional[Path] = typer.Option(None, help="Path to config.env."),
) -> None:
    """Dump a source's stored records to CSV."""
    cfg = _effective_config(config=config, source=source, db_path=db_path)
    try:
        adapter = get_adapter(cfg.source)
        store = RecordStore(cfg.db_path, adapter.name, adapter.record_fields())
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)
    except FatalInitializationFailure as e:
        console.print(f"[red]fatal:[/red] {e}")
        raise typer.Exit(1)

    try:
        rows = store.rows(limit=limit)
        header = ["url", *store.fields, "page", "sequence", "first_seen", "last_seen", "fingerprint"]
        n = write_rows_csv(rows, header, out_csv)
    finally:
        store.close()
    console.print(f"exported {n} rows from {store.table} to {out_csv}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
