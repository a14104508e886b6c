"""Checkout flow — cart, checkout page, shipping, payment, terms, completion."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import Page

from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.executor.overlay_guard import is_visible, wait_for_first
from storefront_qa.executor.strategies import first_successful
from storefront_qa.models.config import RunSettings, SiteConfig

logger = logging.getLogger(__name__)

_SELECT_PAYMENT_JS = """(pattern) => {
    const re = new RegExp(pattern, 'i');
    const radios = Array.from(document.querySelectorAll('input[type="radio"]'));
    const match = radios.find(r => {
        const label = document.querySelector(`label[for="${r.id}"]`);
        return label && re.test(label.textContent);
    });
    if (match) { match.click(); return true; }
    return false;
}"""

_FORCE_CHECK_JS = """(selector) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.checked = true;
    el.dispatchEvent(new Event('change', { bubbles: true }));
    return el.checked;
}"""


@dataclass
class CheckoutResult:
    reached_checkout: bool = False
    shipping_selected: bool = False
    payment_selected: bool = False
    terms_method: Optional[str] = None
    confirmed: bool = False
    error: Optional[str] = None
    screenshot_path: str = ""

    @property
    def success(self) -> bool:
        return self.reached_checkout and self.confirmed and self.error is None


class CheckoutFlow:
    """Takes a filled cart through checkout with a deterministic payment choice."""

    def __init__(
        self,
        page: Page,
        site: SiteConfig,
        settings: RunSettings,
        evidence: EvidenceCollector | None = None,
    ):
        self.page = page
        self.site = site
        self.settings = settings
        self.evidence = evidence
        self.sel = site.checkout
        self.base_url = site.environment(settings.env).base_url

    async def run(self) -> CheckoutResult:
        result = CheckoutResult()
        label = f"checkout-{self.site.account}-{self.settings.env}"
        try:
            await self.open_cart()
            result.reached_checkout = await self.proceed_to_checkout()
            result.shipping_selected = await self.select_shipping(self.settings.shipping_option)
            result.payment_selected = await self.select_payment(self.settings.payment_method)
            result.terms_method = await self.accept_terms()
            result.confirmed = await self.complete()
            result.screenshot_path = await self._screenshot(label)
        except Exception as e:
            logger.error("Checkout step failed: %s", e)
            result.error = str(e)
            result.screenshot_path = await self._screenshot(f"{label}-error")
        logger.info("Checkout finished: reached=%s confirmed=%s terms=%s",
                    result.reached_checkout, result.confirmed, result.terms_method)
        return result

    async def open_cart(self) -> None:
        if await is_visible(self.page, self.sel.cart_button):
            try:
                await self.page.locator(self.sel.cart_button).first.click(timeout=5000)
                await self.page.wait_for_selector(self.sel.cart_markers, timeout=10000)
                logger.info("Opened cart from header button")
                return
            except Exception as e:
                logger.warning("Cart button navigation flaky, opening /cart: %s", e)
        await self.page.goto(urljoin(self.base_url, "cart"), wait_until="domcontentloaded")
        logger.info("Opened cart URL directly")

    async def proceed_to_checkout(self) -> bool:
        for selector in self.sel.checkout_buttons:
            if not await is_visible(self.page, selector):
                continue
            try:
                await self.page.locator(selector).first.click(timeout=5000)
            except Exception as e:
                logger.debug("Checkout click via %s failed: %s", selector, e)
                continue
            logger.info("Clicked checkout using selector: %s", selector)
            return await self._on_checkout_page()

        await self.page.goto(urljoin(self.base_url, "checkout"), wait_until="domcontentloaded")
        logger.info("Opened checkout URL directly")
        return await self._on_checkout_page()

    async def select_shipping(self, option: str) -> bool:
        label = self.page.locator("label").filter(has_text=option).first
        if not await label.is_visible():
            logger.warning("Shipping option '%s' not found", option)
            return False
        await label.click(timeout=5000)
        logger.info("Selected %s shipping", option)
        return True

    async def select_payment(self, method: str) -> bool:
        chosen = bool(await self.page.evaluate(_SELECT_PAYMENT_JS, re.escape(method)))
        await self.page.wait_for_timeout(700)
        if chosen:
            logger.info("Payment chosen: %s", method)
        else:
            logger.warning("Payment method '%s' not found", method)
        return chosen

    async def accept_terms(self) -> str | None:
        """Tick the terms checkbox. Returns the strategy that verified it, or None."""
        label = self.page.locator("label").filter(
            has_text=re.compile(self.sel.terms_label_pattern, re.IGNORECASE)).first
        fallback = self.page.locator(self.sel.terms_fallback).first

        async def verified() -> bool:
            await self.page.wait_for_timeout(500)
            target = await self._terms_input(label)
            if target is not None and await target.is_checked():
                return True
            return await fallback.count() > 0 and await fallback.is_checked()

        async def icon_click() -> bool:
            await label.locator(".icon_check").first.click(timeout=3000)
            return await verified()

        async def check_input() -> bool:
            target = await self._terms_input(label)
            if target is None:
                return False
            await target.check(force=True, timeout=3000)
            return await verified()

        async def label_click() -> bool:
            await label.click(timeout=3000)
            return await verified()

        async def fallback_checkbox() -> bool:
            await fallback.check(force=True, timeout=3000)
            return await verified()

        async def js_check() -> bool:
            await self.page.evaluate(_FORCE_CHECK_JS, self.sel.terms_fallback)
            return await verified()

        if await verified():
            logger.info("Terms checkbox already checked")
            return "already_checked"

        method = await first_successful([
            ("icon_click", icon_click),
            ("check_input", check_input),
            ("label_click", label_click),
            ("fallback_checkbox", fallback_checkbox),
            ("js_check", js_check),
        ], label="accept terms")
        if method:
            logger.info("Verified terms acceptance (%s)", method)
        else:
            logger.warning("Terms acceptance not verified after attempts")
        return method

    async def complete(self) -> bool:
        if await is_visible(self.page, self.sel.complete_button):
            await self.page.locator(self.sel.complete_button).first.click(timeout=5000)
        else:
            logger.warning("Complete Checkout button not found, trying generic submit")
            await self.page.locator(self.sel.submit_fallback).first.click(timeout=5000)

        watchers = {marker: (marker, "visible") for marker in self.sel.confirmation_markers}
        marker = await wait_for_first(self.page, watchers, timeout_ms=20000)
        if marker is None and "/order" in self.page.url:
            marker = self.page.url
        if marker:
            logger.info("Order confirmed (%s)", marker)
            return True
        logger.warning("No order confirmation detected")
        return False

    async def _terms_input(self, label):
        try:
            if not await label.count():
                return None
            for_attr = await label.get_attribute("for")
        except Exception:
            return None
        if not for_attr:
            return None
        target = self.page.locator(f"[id=\"{for_attr}\"]").first
        return target if await target.count() else None

    async def _on_checkout_page(self) -> bool:
        try:
            await self.page.wait_for_selector(self.sel.checkout_markers, timeout=10000)
            return True
        except Exception:
            return "/checkout" in self.page.url

    async def _screenshot(self, label: str) -> str:
        if self.evidence is None:
            return ""
        return await self.evidence.take_screenshot(self.page, label)
