from __future__ import annotations

from listingcrawler.accountant import RunAccountant, SkipReason
from listingcrawler.fingerprint import ChangeKind


def test_counts():
    tally = RunAccountant(source="fake")
    tally.skip(SkipReason.STALE)
    tally.skip(SkipReason.STALE)
    tally.skip(SkipReason.DUPLICATE_URL)
    tally.accept(ChangeKind.NEW)
    tally.accept(ChangeKind.CHANGED)
    tally.accept(ChangeKind.NEW)

    assert tally.count(SkipReason.STALE) == 2
    assert tally.count(SkipReason.PARSE_FAILED) == 0
    assert tally.accepted == 3
    assert tally.total_skipped == 3

    d = tally.as_dict()
    assert d["new"] == 2
    assert d["changed"] == 1
    assert d["stale"] == 2
    assert set(r.value for r in SkipReason) <= set(d)


def test_summary_lists_every_reason():
    lines = RunAccountant(source="fake").summary_lines()
    assert lines[0].startswith("fake:")
    for reason in SkipReason:
        assert any(reason.value in line for line in lines)
