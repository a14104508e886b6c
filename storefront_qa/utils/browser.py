"""Browser launch helpers for storefront runs."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

_LAUNCH_ARGS = ["--start-maximized"]


async def launch_browser(
    playwright: Playwright,
    headless: bool = False,
    channel: Optional[str] = None,
) -> Browser:
    """Launch Chromium maximised, optionally through an installed channel (e.g. 'chrome')."""
    launch_kwargs: dict = {"headless": headless, "args": _LAUNCH_ARGS}
    if channel:
        launch_kwargs["channel"] = channel
    return await playwright.chromium.launch(**launch_kwargs)


async def create_context(
    browser: Browser,
    viewport: Optional[dict] = None,
    record_video_dir: str | None = None,
) -> BrowserContext:
    """Create a browser context.

    Args:
        viewport: Fixed viewport size. When omitted the context follows the
            window size, which matches the maximised launch.
        record_video_dir: Optional directory path for Playwright video recording.
    """
    context_kwargs: dict = {}
    if viewport:
        context_kwargs["viewport"] = viewport
    else:
        context_kwargs["no_viewport"] = True
    if record_video_dir:
        context_kwargs["record_video_dir"] = record_video_dir
        if viewport:
            context_kwargs["record_video_size"] = viewport

    return await browser.new_context(**context_kwargs)
