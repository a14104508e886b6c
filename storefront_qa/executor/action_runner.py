"""Action runner — clicks and fills that tolerate flaky, slow-to-settle elements."""

from __future__ import annotations

import logging
from typing import Literal

from playwright.async_api import Locator, Page

from storefront_qa.models.config import RetryPolicy
from .strategies import Strategy, first_successful

logger = logging.getLogger(__name__)

ActionKind = Literal["click", "fill"]

_JS_CLICK = "el => el.click()"
_JS_FILL = """(el, value) => {
    el.focus();
    el.value = value;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
}"""


class ActionOutcome:
    """Result of a resilient action. Truthy when the action was applied."""

    def __init__(
        self,
        success: bool,
        attempts: int,
        method: str | None = None,
        error: str | None = None,
    ):
        self.success = success
        self.attempts = attempts
        self.method = method  # primary, js, force
        self.error = error

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return (f"ActionOutcome(success={self.success}, attempts={self.attempts}, "
                f"method={self.method!r})")


def _strategies(
    locator: Locator, action: ActionKind, value: str, timeout_ms: int,
) -> list[Strategy]:
    async def primary() -> bool:
        await locator.wait_for(state="visible", timeout=timeout_ms)
        if action == "fill":
            await locator.fill(value, timeout=timeout_ms)
        else:
            await locator.click(timeout=timeout_ms)
        return True

    async def js() -> bool:
        if action == "fill":
            await locator.evaluate(_JS_FILL, value)
        else:
            await locator.evaluate(_JS_CLICK)
        return True

    async def force() -> bool:
        if action == "fill":
            await locator.fill(value, force=True, timeout=timeout_ms)
        else:
            await locator.click(force=True, timeout=timeout_ms)
        return True

    return [("primary", primary), ("js", js), ("force", force)]


async def perform_action(
    page: Page,
    selector: str,
    action: ActionKind = "click",
    value: str = "",
    description: str = "",
    policy: RetryPolicy | None = None,
) -> ActionOutcome:
    """Click or fill ``selector``, retrying with escalating strategies.

    Each attempt resolves the selector, scrolls the target into view
    (best effort) and then tries a normal action, a programmatic one via
    ``evaluate`` and finally a forced one. Failed attempts back off
    according to the retry policy. Interaction errors are logged and
    reported through the returned ActionOutcome, never raised.
    """
    policy = policy or RetryPolicy()
    what = description or selector
    last_error = ""

    for attempt in range(1, policy.max_attempts + 1):
        last_error = "no matching element"
        try:
            locator = page.locator(selector).first
            count = await locator.count()
        except Exception as e:
            count = 0
            last_error = str(e)

        if count:
            try:
                await locator.scroll_into_view_if_needed(timeout=policy.attempt_timeout_ms)
            except Exception:
                logger.debug("Scroll into view failed for %s, continuing", what)

            method = await first_successful(
                _strategies(locator, action, value, policy.attempt_timeout_ms),
                label=f"{action} {what}",
            )
            if method:
                logger.info("%s %s (attempt %d, %s)",
                            "Clicked" if action == "click" else "Filled", what, attempt, method)
                return ActionOutcome(True, attempt, method=method)
            last_error = "all strategies failed"

        logger.warning("Attempt %d/%d to %s %s failed: %s",
                       attempt, policy.max_attempts, action, what, last_error)
        if attempt < policy.max_attempts:
            await page.wait_for_timeout(policy.delay_for(attempt))

    logger.error("Failed to %s %s after %d attempts", action, what, policy.max_attempts)
    return ActionOutcome(False, policy.max_attempts, error=last_error)
