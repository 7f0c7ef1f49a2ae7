from __future__ import annotations

from listingcrawler.url_canon import absolute_url, canonicalize_url


def test_drops_tracking_params_and_fragment():
    url = "HTTPS://Internshala.com/internship/detail/abc123/?utm_source=mail&b=2&a=1#apply"
    assert canonicalize_url(url) == "https://internshala.com/internship/detail/abc123?a=1&b=2"


def test_keeps_root_slash():
    assert canonicalize_url("https://unstop.com/") == "https://unstop.com/"


def test_stable_across_visits():
    a = canonicalize_url("https://www.naukri.com/job-listings-x-123?src=jobsearchDesk&sid=17&xp=1")
    b = canonicalize_url("https://www.naukri.com/job-listings-x-123?xp=1&sid=99")
    assert a == b == "https://www.naukri.com/job-listings-x-123?xp=1"


def test_empty():
    assert canonicalize_url("") == ""


def test_absolute_url():
    base = "https://internshala.com/internships/page-2/"
    assert absolute_url(base, "/internship/detail/x") == "https://internshala.com/internship/detail/x"
    assert absolute_url(base, "https://other.example/y") == "https://other.example/y"
    for junk in (None, "", "  ", "#", "javascript:void(0)", "mailto:a@b.c"):
        assert absolute_url(base, junk) is None
