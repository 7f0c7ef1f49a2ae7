from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import NavigationFailure


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Only the most recent loads and failures are kept.
HISTORY_LIMIT = 200


class Navigator:
    """Loads URLs with bounded retries.

    Every attempt first waits for network idle; if that fails it immediately
    retries with the lighter ``domcontentloaded`` condition. Between attempts
    the delay grows linearly: ``base_delay_s + attempt * step_s``.

    Navigation errors never propagate: ``load`` reports ``False`` and the
    caller skips the URL.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = 30_000,
        base_delay_s: float = 1.0,
        step_s: float = 1.0,
        sleep: Optional[Sleep] = None,
    ):
        self.timeout_ms = timeout_ms
        self.base_delay_s = base_delay_s
        self.step_s = step_s
        self._sleep = sleep or asyncio.sleep
        self.history: Deque[str] = deque(maxlen=HISTORY_LIMIT)
        self.failures: Deque[NavigationFailure] = deque(maxlen=HISTORY_LIMIT)

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_s + attempt * self.step_s

    async def load(self, page: Page, url: str, attempts: int = 3) -> bool:
        last_err: Optional[Exception] = None
        for attempt in range(max(1, attempts)):
            try:
                await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                self.history.append(url)
                return True
            except PlaywrightError as e:
                last_err = e
                try:
                    await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
                    self.history.append(url)
                    return True
                except PlaywrightError as e2:
                    last_err = e2

            if attempt + 1 < attempts:
                delay = self.delay_for(attempt)
                logger.debug("retrying %s in %.1fs (attempt %d/%d failed)", url, delay, attempt + 1, attempts)
                await self._sleep(delay)

        failure = NavigationFailure(url, _short(last_err))
        self.failures.append(failure)
        logger.warning("%s (after %d attempts)", failure, attempts)
        return False


def _short(err: Optional[Exception]) -> str:
    if err is None:
        return ""
    msg = str(err).strip().splitlines()
    return msg[0] if msg else err.__class__.__name__
