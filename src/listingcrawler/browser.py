from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .errors import FatalInitializationFailure


logger = logging.getLogger(__name__)


DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

CHROME_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-infobars",
    "--disable-notifications",
]

VIEWPORT = {"width": 1280, "height": 800}


async def _shutdown(
    pw: Optional[Playwright],
    browser: Optional[Browser],
    ctx: Optional[BrowserContext],
) -> None:
    for closer in (ctx, browser):
        if closer is None:
            continue
        try:
            await closer.close()
        except PlaywrightError as e:
            logger.debug("close failed: %s", e)
    if pw is not None:
        try:
            await pw.stop()
        except PlaywrightError as e:
            logger.debug("playwright stop failed: %s", e)


@asynccontextmanager
async def open_browser(
    headless: bool = True,
    *,
    user_agent: str = DEFAULT_UA,
    timezone_id: Optional[str] = None,
    channel: Optional[str] = None,
) -> AsyncIterator[BrowserContext]:
    """Launch Chromium and yield one browser context for the whole run.

    Raises FatalInitializationFailure when the browser cannot be started.
    """

    pw: Optional[Playwright] = None
    browser: Optional[Browser] = None
    ctx: Optional[BrowserContext] = None
    try:
        pw = await async_playwright().start()
        launch_kwargs = {"headless": headless, "args": CHROME_ARGS}
        if channel:
            launch_kwargs["channel"] = channel
        browser = await pw.chromium.launch(**launch_kwargs)

        ctx_kwargs = {"user_agent": user_agent, "viewport": VIEWPORT}
        if timezone_id:
            ctx_kwargs["timezone_id"] = timezone_id
        ctx = await browser.new_context(**ctx_kwargs)
    except PlaywrightError as e:
        await _shutdown(pw, browser, ctx)
        raise FatalInitializationFailure(
            "Could not start a Chromium session. Run `playwright install chromium` and retry."
        ) from e

    logger.debug("browser ready (headless=%s)", headless)
    try:
        yield ctx
    finally:
        await _shutdown(pw, browser, ctx)
