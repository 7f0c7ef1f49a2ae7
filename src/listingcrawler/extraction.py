from __future__ import annotations

import re
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from selectolax.parser import HTMLParser, Node

from .errors import ExtractionFailure
from .models import NOT_AVAILABLE


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


async def page_tree(page: Page) -> HTMLParser:
    """Snapshot the rendered DOM into a selectolax tree."""
    try:
        html = await page.content()
    except PlaywrightError as e:
        raise ExtractionFailure(f"could not read {page.url}: {e}") from e
    return HTMLParser(html or "")


def text_of(node: Node | HTMLParser, selector: str, default: str = NOT_AVAILABLE) -> str:
    """Text of the first match; ``default`` when nothing matches or the text is empty."""
    try:
        el = node.css_first(selector)
    except ValueError:
        return default
    if el is None:
        return default
    return clean_text(el.text(separator=" ")) or default


def texts_of(node: Node | HTMLParser, selector: str, limit: Optional[int] = None) -> List[str]:
    try:
        els = node.css(selector)
    except ValueError:
        return []
    out: List[str] = []
    for el in els:
        t = clean_text(el.text(separator=" "))
        if t:
            out.append(t)
        if limit and len(out) >= limit:
            break
    return out


def attr_of(node: Node, selector: Optional[str], name: str) -> Optional[str]:
    """Attribute of the first match (or of ``node`` itself when selector is None)."""
    if selector is None:
        el = node
    else:
        try:
            el = node.css_first(selector)
        except ValueError:
            return None
    if el is None:
        return None
    value = el.attributes.get(name)
    return value.strip() if value else None


def body_text(tree: HTMLParser) -> str:
    for node in tree.css("script, style, noscript"):
        node.decompose()
    root = tree.body if tree.body is not None else tree.root
    return clean_text(root.text(separator=" ")) if root is not None else ""
