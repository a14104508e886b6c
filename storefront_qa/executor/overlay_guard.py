"""Overlay guard — wait for blocking modals to clear before interacting."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from playwright.async_api import Page

from storefront_qa.models.config import DEFAULT_OVERLAY_SELECTORS

logger = logging.getLogger(__name__)


async def is_visible(page: Page, selector: str) -> bool:
    """Visibility check that treats selector errors as 'not visible'."""
    try:
        return await page.locator(selector).first.is_visible()
    except Exception:
        return False


async def wait_for_first(
    page: Page,
    watchers: dict[str, tuple[str, str]],
    timeout_ms: int,
) -> str | None:
    """Wait for whichever watcher reaches its state first.

    ``watchers`` maps a name to ``(selector, state)`` where state is one of
    Playwright's wait states ('visible', 'hidden', ...). Returns the winning
    name, or None if none got there within ``timeout_ms``.
    """

    async def _watch(name: str, selector: str, state: str) -> str:
        await page.locator(selector).first.wait_for(state=state, timeout=timeout_ms)
        return name

    pending = {
        asyncio.ensure_future(_watch(name, selector, state))
        for name, (selector, state) in watchers.items()
    }
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task.exception() is None:
                    return task.result()
        return None
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def _blocking_overlay(page: Page, selectors: Sequence[str]) -> str | None:
    for selector in selectors:
        if await is_visible(page, selector):
            return selector
    return None


async def wait_for_no_overlay(
    page: Page,
    timeout_ms: int = 3000,
    selectors: Sequence[str] = DEFAULT_OVERLAY_SELECTORS,
    poll_interval_ms: int = 150,
) -> bool:
    """Poll until none of ``selectors`` is visible or the timeout elapses.

    Returns True when the page is clear, False on timeout. Never raises;
    callers treat False as a warning and carry on.
    """
    deadline = time.monotonic() + timeout_ms / 1000
    while True:
        blocker = await _blocking_overlay(page, selectors)
        if blocker is None:
            return True
        if time.monotonic() >= deadline:
            logger.warning("Overlay still visible after %dms: %s", timeout_ms, blocker)
            return False
        try:
            await page.wait_for_timeout(poll_interval_ms)
        except Exception as e:
            logger.debug("Overlay poll wait failed: %s", e)
            return False
