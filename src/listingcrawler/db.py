from __future__ import annotations

import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import FatalInitializationFailure, PersistenceFailure
from .models import Record, field_text


logger = logging.getLogger(__name__)

# Columns every source table has besides the adapter's record fields.
BASE_COLUMNS = ("url", "page", "sequence", "first_seen", "last_seen", "fingerprint")

_IDENT_RE = re.compile(r"[^a-z0-9_]")


def _ident(name: str) -> str:
    ident = _IDENT_RE.sub("_", (name or "").strip().lower())
    if not ident or ident[0].isdigit():
        ident = "f_" + ident
    return ident


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def table_name(source: str) -> str:
    return f"{_ident(source)}_records"


class RecordStore:
    """One SQLite table per source, keyed by canonical URL.

    Record fields are stored as TEXT columns. Columns added to an adapter later
    are appended to the existing table on open.
    """

    def __init__(self, path: str | Path, source: str, fields: Sequence[str]):
        self.path = Path(path)
        self.table = table_name(source)
        self.fields: List[str] = []
        for f in fields:
            col = _ident(f)
            if col not in BASE_COLUMNS and col not in self.fields:
                self.fields.append(col)
        self._field_names = {_ident(f): f for f in fields}

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self.conn.execute("PRAGMA busy_timeout=3000;")
            self._init()
        except (OSError, sqlite3.Error) as e:
            raise FatalInitializationFailure(f"cannot open store at {self.path}: {e}") from e

    def _init(self) -> None:
        field_cols = "".join(f",\n  {col} TEXT" for col in self.fields)
        self.conn.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
              url TEXT PRIMARY KEY,
              page INTEGER,
              sequence INTEGER,
              first_seen TEXT NOT NULL,
              last_seen TEXT NOT NULL,
              fingerprint TEXT NOT NULL{field_cols}
            );

            CREATE INDEX IF NOT EXISTS ix_{self.table}_last_seen
              ON {self.table}(last_seen);
            """
        )

        # Lightweight migration: add any field column the table lacks.
        cur = self.conn.execute(f"PRAGMA table_info({self.table})")
        existing = {r[1] for r in cur.fetchall()}
        for col in self.fields:
            if col not in existing:
                logger.info("adding column %s to %s", col, self.table)
                self.conn.execute(f"ALTER TABLE {self.table} ADD COLUMN {col} TEXT")
        self.conn.commit()

    def preload(self) -> Dict[str, str]:
        """Full scan: canonical URL -> stored fingerprint."""
        try:
            cur = self.conn.execute(f"SELECT url, fingerprint FROM {self.table}")
            return {row["url"]: row["fingerprint"] for row in cur.fetchall()}
        except sqlite3.Error as e:
            raise FatalInitializationFailure(f"cannot read {self.table}: {e}") from e

    def fingerprint_for(self, url: str) -> Optional[str]:
        """Raises PersistenceFailure when the store cannot be read."""
        try:
            cur = self.conn.execute(f"SELECT fingerprint FROM {self.table} WHERE url = ?", (url,))
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(url, f"lookup failed: {e}") from e
        return row["fingerprint"] if row else None

    def upsert(self, record: Record, fingerprint: str) -> bool:
        """Insert a new URL or update every mutable column of an existing one.

        Returns True when a row was inserted. Raises PersistenceFailure.
        """
        now = _now()
        values = [field_text(record.fields.get(self._field_names[col])) for col in self.fields]

        try:
            cur = self.conn.cursor()
            try:
                cols = ", ".join(["url", "page", "sequence", "first_seen", "last_seen", "fingerprint", *self.fields])
                marks = ", ".join("?" * (6 + len(self.fields)))
                cur.execute(
                    f"INSERT INTO {self.table} ({cols}) VALUES ({marks})",
                    (record.url, record.page, record.sequence, now, now, fingerprint, *values),
                )
                inserted = True
            except sqlite3.IntegrityError:
                assignments = ", ".join(f"{col} = ?" for col in ["page", "sequence", "last_seen", "fingerprint", *self.fields])
                cur.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE url = ?",
                    (record.page, record.sequence, now, fingerprint, *values, record.url),
                )
                inserted = False
            self.conn.commit()
            return inserted
        except sqlite3.Error as e:
            try:
                self.conn.rollback()
            except sqlite3.Error:
                pass
            raise PersistenceFailure(record.url, str(e)) from e

    def rows(self, limit: Optional[int] = None) -> List[dict]:
        q = f"SELECT * FROM {self.table} ORDER BY last_seen DESC"
        params: Iterable = ()
        if limit:
            q += " LIMIT ?"
            params = (limit,)
        return [dict(r) for r in self.conn.execute(q, tuple(params)).fetchall()]

    def count(self) -> int:
        return int(self.conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0])

    def close(self) -> None:
        self.conn.close()
