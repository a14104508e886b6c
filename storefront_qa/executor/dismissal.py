"""Modal dismissal — an ordered chain of ways to get a stuck modal off the page."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from playwright.async_api import Page

from .overlay_guard import is_visible
from .strategies import Strategy, first_successful

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_SELECTORS = (
    "button[aria-label=\"Close\"]",
    "button.close",
    "[class*=\"close\"]",
    "[class*=\"modal\"] button",
    "xpath=//button[contains(@class, \"close\")]",
    "xpath=//a[contains(@class, \"close\")]",
)

# Hides fixed/absolute layers with a high z-index and restores page scrolling.
_REMOVE_OVERLAYS_JS = """() => {
    const selectors = [
        '[class*="modal"]', '[class*="cart"]', '[class*="overlay"]',
        '[class*="drawer"]', '[style*="position: fixed"]', '[style*="z-index"]'
    ];
    let removed = 0;
    for (const selector of selectors) {
        document.querySelectorAll(selector).forEach(el => {
            const computed = window.getComputedStyle(el);
            if (computed.position === 'fixed' || computed.position === 'absolute') {
                if (parseInt(computed.zIndex) > 100) {
                    el.style.display = 'none';
                    el.remove();
                    removed++;
                }
            }
        });
    }
    document.body.style.overflow = 'auto';
    document.documentElement.style.overflow = 'auto';
    return removed;
}"""


def modal_strategies(
    page: Page,
    close_selector: str,
    settle_ms: int = 800,
    close_selectors: Sequence[str] = DEFAULT_CLOSE_SELECTORS,
    recover: Callable[[], Awaitable[None]] | None = None,
) -> list[Strategy]:
    """Build the dismissal chain for a modal whose close control is ``close_selector``.

    Every strategy reports success only when the close control is no longer
    visible after ``settle_ms``. ``recover`` is the last resort, typically
    navigating back to the page that opened the modal.
    """

    async def closed() -> bool:
        await page.wait_for_timeout(settle_ms)
        return not await is_visible(page, close_selector)

    async def direct_click() -> bool:
        await page.locator(close_selector).first.click(timeout=3000)
        return await closed()

    async def js_click() -> bool:
        await page.locator(close_selector).first.evaluate("el => el.click()")
        return await closed()

    async def escape_key() -> bool:
        await page.keyboard.press("Escape")
        return await closed()

    async def alternate_selectors() -> bool:
        for selector in (close_selector, *close_selectors):
            button = page.locator(selector).first
            if not await is_visible(page, selector):
                continue
            try:
                await button.click(force=True, timeout=2000)
            except Exception as e:
                logger.debug("Close via %s failed: %s", selector, e)
                continue
            if await closed():
                logger.debug("Modal closed via %s", selector)
                return True
        return False

    async def dom_removal() -> bool:
        removed = await page.evaluate(_REMOVE_OVERLAYS_JS)
        logger.debug("Removed %s overlay elements", removed)
        return await closed()

    strategies: list[Strategy] = [
        ("direct_click", direct_click),
        ("js_click", js_click),
        ("escape_key", escape_key),
        ("alternate_selectors", alternate_selectors),
        ("dom_removal", dom_removal),
    ]

    if recover is not None:
        async def navigate_back() -> bool:
            await recover()
            return True

        strategies.append(("navigate_back", navigate_back))

    return strategies


async def close_modal(
    page: Page,
    close_selector: str,
    settle_ms: int = 800,
    close_selectors: Sequence[str] = DEFAULT_CLOSE_SELECTORS,
    recover: Callable[[], Awaitable[None]] | None = None,
    reraise: tuple[type[BaseException], ...] = (),
) -> str | None:
    """Close a modal, returning the name of the strategy that worked or None.

    Errors of the ``reraise`` types, typically raised by ``recover``, propagate.
    """
    method = await first_successful(
        modal_strategies(page, close_selector, settle_ms, close_selectors, recover),
        label="close modal",
        reraise=reraise,
    )
    if method:
        logger.info("Closed modal (%s)", method)
    else:
        logger.error("Failed to close modal after all strategies")
    return method
