from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

from .models import Record


def write_records_csv(records: Sequence[Record], columns: Sequence[str], path: str | Path, *, append: bool = False) -> int:
    """Write accepted records to CSV. Returns the number of rows written."""
    if not records:
        return 0
    header = ["url", *columns, "page", "sequence"]
    return write_rows_csv((r.to_row(columns) for r in records), header, path, append=append)


def write_rows_csv(rows: Iterable[Mapping[str, object]], header: List[str], path: str | Path, *, append: bool = False) -> int:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_header = not (append and path.exists() and path.stat().st_size > 0)

    n = 0
    with path.open("a" if append else "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=header, extrasaction="ignore")
        if write_header:
            w.writeheader()
        for row in rows:
            w.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in header})
            n += 1
    return n
