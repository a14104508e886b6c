"""Storefront login through the header account menu and sign-in modal."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from storefront_qa.executor.action_runner import perform_action
from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.executor.overlay_guard import is_visible, wait_for_first
from storefront_qa.models.config import RetryPolicy, SiteConfig

logger = logging.getLogger(__name__)


class LoginResult:
    """Result of a login attempt."""

    def __init__(
        self,
        success: bool,
        outcome: str,
        error: Optional[str] = None,
        screenshot_path: str = "",
    ):
        self.success = success
        self.outcome = outcome  # success, error, uncertain, exception
        self.error = error
        self.screenshot_path = screenshot_path


async def login(
    page: Page,
    site: SiteConfig,
    env: str,
    evidence: EvidenceCollector | None = None,
    policy: RetryPolicy | None = None,
    settle_ms: int = 2000,
) -> LoginResult:
    """Log in on the environment's home page.

    Success means the login modal closed without showing an error. An error
    message inside the modal fails the login with that text; a modal that
    neither closes nor shows an error is reported as uncertain (failed).
    """
    if site.credentials is None:
        return LoginResult(False, "error", error=f"No credentials configured for {site.name}")

    base_url = site.environment(env).base_url
    sel = site.login
    label = f"{site.account}-{env}"
    logger.info("Running login for %s (%s): %s", site.name, env, base_url)

    try:
        await page.goto(base_url, wait_until="domcontentloaded")

        if not await perform_action(page, sel.login_icon, description="login icon", policy=policy):
            raise RuntimeError("Could not open the account menu")
        await page.wait_for_selector(sel.dropdown_menu)
        if not await perform_action(page, sel.sign_in_button, description="sign in button", policy=policy):
            raise RuntimeError("Could not open the sign-in modal")
        logger.info("Opened login modal")

        await page.wait_for_selector(sel.login_modal)
        await perform_action(page, sel.email_field, "fill", site.credentials.email,
                             description="email field", policy=policy)
        await perform_action(page, sel.password_field, "fill", site.credentials.password,
                             description="password field", policy=policy)
        logger.info("Entered credentials")

        if not await perform_action(page, sel.submit_button, description="sign in submit", policy=policy):
            raise RuntimeError("Could not submit the login form")
        logger.info("Submitted login form")

        await page.wait_for_timeout(settle_ms)
        first = await wait_for_first(page, {
            "closed": (sel.login_modal, "hidden"),
            "error": (sel.error_message, "visible"),
        }, timeout_ms=2000)
        if first is None:
            logger.info("Neither modal closed nor error appeared")

        modal_visible = await is_visible(page, sel.login_modal)
        error_visible = await is_visible(page, sel.error_message)

        if error_visible:
            text = (await page.locator(sel.error_message).first.text_content() or "").strip()
            text = text or "Unknown error"
            logger.error("Login failed: %s", text)
            shot = await _screenshot(page, evidence, f"login-error-{label}")
            return LoginResult(False, "error", error=text, screenshot_path=shot)
        if not modal_visible:
            logger.info("Login successful for %s", site.name)
            shot = await _screenshot(page, evidence, f"login-success-{label}")
            return LoginResult(True, "success", screenshot_path=shot)

        logger.warning("Uncertain login state for %s", site.name)
        shot = await _screenshot(page, evidence, f"login-uncertain-{label}")
        return LoginResult(False, "uncertain", error="Login modal still open", screenshot_path=shot)

    except Exception as e:
        logger.error("Login process failed: %s", e)
        shot = await _screenshot(page, evidence, f"login-exception-{label}")
        return LoginResult(False, "exception", error=str(e), screenshot_path=shot)


async def _screenshot(page: Page, evidence: EvidenceCollector | None, label: str) -> str:
    if evidence is None:
        return ""
    return await evidence.take_screenshot(page, label)
