"""Ordering flow — walk every product combination through add-to-cart."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from storefront_qa.executor.action_runner import perform_action
from storefront_qa.executor.dismissal import close_modal
from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.executor.overlay_guard import is_visible, wait_for_first, wait_for_no_overlay
from storefront_qa.executor.recorder import ResultRecorder
from storefront_qa.models.config import RunSettings, SiteConfig
from storefront_qa.models.product import Combination, ProductDefinition
from storefront_qa.utils.text import collapse_whitespace, extract_shipping, parse_cart_count, parse_price

logger = logging.getLogger(__name__)

_SELECTED_TEXT_JS = """({ selector, name }) => {
    const items = document.querySelectorAll(selector);
    return Array.from(items).some(item => item.textContent.includes(name));
}"""


class FatalRunError(RuntimeError):
    """The run cannot continue (login failed, product page unreachable).

    The orchestrator attaches the partial, already exported run summary
    before re-raising.
    """

    summary = None


class CombinationFailed(Exception):
    """The current combination cannot be completed; it is recorded as skipped."""


@dataclass
class OrderingSummary:
    attempted: int = 0
    stopped_reason: Optional[str] = None


def next_artwork_index(index: int, total: int) -> int:
    """Rotate through artwork files 1..total."""
    return 1 if index >= total else index + 1


def instruction_text(combination: Combination, price_text: str, quantity_dimension: str = "Quantity") -> str:
    parts = []
    for name, option in combination:
        parts.append(f"Qty: {option.name}" if name == quantity_dimension else option.name)
    parts.append(f"Price: {price_text}")
    return " / ".join(parts)


class OrderingFlow:
    """Adds each combination of a product to the cart and records what the page showed."""

    def __init__(
        self,
        page: Page,
        site: SiteConfig,
        product: ProductDefinition,
        settings: RunSettings,
        product_url: str,
        evidence: EvidenceCollector | None = None,
    ):
        self.page = page
        self.site = site
        self.product = product
        self.settings = settings
        self.product_url = product_url
        self.evidence = evidence
        self.sel = site.product_page
        self._selected: dict[str, str] = {}

    async def open_product_page(self) -> None:
        """Navigate to the product page. Raises FatalRunError if it never loads."""
        logger.info("Navigating to %s", self.product_url)
        try:
            response = await self.page.goto(
                self.product_url, wait_until="domcontentloaded", timeout=30000)
            if response is not None:
                logger.debug("Response status: %s", response.status)
            await self.page.wait_for_selector(self.sel.product_details, timeout=15000)
        except Exception as e:
            raise FatalRunError(f"Product page never loaded: {e}") from e
        self._selected.clear()
        logger.info("Product page loaded")

    async def run(self, recorder: ResultRecorder) -> OrderingSummary:
        """Process every combination in order, recording one row for each."""
        summary = OrderingSummary()
        artwork_index = 1

        for combination in self.product.combinations():
            logger.info("Combination: %s", combination.label)
            try:
                artwork_index = await self._process(combination, recorder, artwork_index)
            except FatalRunError:
                raise
            except CombinationFailed as e:
                recorder.skip(combination, str(e))
            except Exception as e:
                recorder.skip(combination, f"unexpected error: {e}")
                self._selected.clear()
            summary.attempted += 1

            limit = self.settings.cart_limit
            if limit is not None and summary.attempted >= limit:
                summary.stopped_reason = f"Reached cart limit ({limit})"
                logger.info("%s, stopping add-to-cart loop", summary.stopped_reason)
                break

            ceiling = self.settings.cart_count_ceiling
            if ceiling:
                count = await self._cart_count()
                if count >= ceiling:
                    summary.stopped_reason = f"Cart count {count} reached {ceiling}"
                    logger.info("%s, stopping add-to-cart loop", summary.stopped_reason)
                    break

            await self.page.wait_for_timeout(500)

        logger.info("Completed %d add-to-cart combinations for %s",
                    summary.attempted, self.product.name)
        return summary

    async def _process(self, combination: Combination, recorder: ResultRecorder, artwork_index: int) -> int:
        """Run one combination. Returns the artwork index for the next upload."""
        await self._guard()
        await self.select_combination(combination)

        price_text = await self._text(self.sel.price)
        combo_info = collapse_whitespace(await self._text(self.sel.combo_info))
        price = parse_price(price_text)
        logger.info("Price: %s | %s", price_text or "n/a", combo_info)

        def skip(reason: str) -> None:
            recorder.skip(combination, reason, observed_price=price,
                          price_text=price_text, observed_text=combo_info)

        await self._guard()
        if not await perform_action(self.page, self.sel.add_to_cart, description="Add to Cart",
                                    policy=self.settings.retry):
            skip("Add to Cart could not be clicked")
            return artwork_index

        modal = await wait_for_first(self.page, {
            "upload": (self.sel.upload_modal, "visible"),
            "cart": (self.sel.cart_close, "visible"),
        }, timeout_ms=5000)
        logger.debug("Modal detection result: %s", modal)

        if modal == "upload":
            confirmed = await self._upload_and_continue(combination, price_text, artwork_index)
            artwork_index = next_artwork_index(artwork_index, self.settings.artwork_files)
            if not confirmed:
                skip("artwork upload was not confirmed")
                return artwork_index
        elif modal is None:
            logger.warning("Neither upload nor cart modal appeared")
            await self._screenshot("no-modal")
            if not await self._open_cart_from_icon():
                skip("add-to-cart confirmation never appeared")
                return artwork_index

        closed = await self._close_cart_modal(combination)
        if closed is None:
            await self._screenshot("cart-modal-stuck")
            skip("cart modal could not be closed")
            return artwork_index

        await self._ensure_product_page()
        await self._restore_selection(combination)

        recorder.record(
            combination,
            observed_price=price,
            price_text=price_text,
            observed_text=combo_info,
            shipping=extract_shipping(combo_info),
        )
        return artwork_index

    async def select_combination(self, combination: Combination) -> None:
        """Click the options that differ from what is currently selected.

        Once one dimension changes, every later dimension is clicked again
        since the page resets dependent sections. Raises CombinationFailed
        when an option cannot be clicked.
        """
        changed = False
        for name, option in combination:
            if not changed and self._selected.get(name) == option.name:
                continue
            changed = True
            self._selected.pop(name, None)

            if name == self.product.quantity_dimension:
                await self._expand_more()
            await self._guard()
            description = f"{name}: {option.name}"
            if not await perform_action(self.page, option.locator_hint, description=description,
                                        policy=self.settings.retry):
                raise CombinationFailed(f"could not select {description}")
            await self.page.wait_for_timeout(500)

            if name != self.product.quantity_dimension and not await self._is_selected(option.name):
                logger.warning("%s may not be selected, retrying", description)
                await perform_action(self.page, option.locator_hint, description=f"{description} (retry)",
                                     policy=self.settings.retry)
                await self.page.wait_for_timeout(800)
            self._selected[name] = option.name

    async def _upload_and_continue(self, combination: Combination, price_text: str, artwork_index: int) -> bool:
        file_path = Path(self.settings.artwork_dir) / f"{artwork_index}.png"
        try:
            await self.page.set_input_files(self.sel.artwork_input, str(file_path), timeout=5000)
            logger.info("Uploaded %s", file_path)
        except Exception as e:
            logger.error("Failed to upload %s: %s", file_path, e)

        note = instruction_text(combination, price_text, self.product.quantity_dimension)
        if await perform_action(self.page, self.sel.special_instruction, "fill", note,
                                description="special instructions", policy=self.settings.retry):
            logger.debug("Filled instruction: %s", note)

        if not await perform_action(self.page, self.sel.continue_button, description="Continue",
                                    policy=self.settings.retry):
            await self._screenshot("continue-error")
            return False

        if await wait_for_first(self.page, {"cart": (self.sel.cart_close, "visible")}, timeout_ms=10000):
            return True

        logger.warning("Cart modal did not appear after Continue, checking alternatives")
        for indicator in self.sel.success_indicators:
            if await is_visible(self.page, indicator):
                logger.info("Found success indicator: %s", indicator)
                await self.page.wait_for_timeout(1000)
                return True

        if not await is_visible(self.page, self.sel.upload_modal):
            logger.info("Upload modal closed, item likely added to cart")
            await self.page.wait_for_timeout(1500)
            return True

        await self._screenshot("continue-failed")
        return False

    async def _open_cart_from_icon(self) -> bool:
        icon = self.page.locator(self.sel.cart_icon).first
        if not await is_visible(self.page, self.sel.cart_icon):
            return False
        try:
            await icon.click(timeout=3000)
        except Exception as e:
            logger.debug("Cart icon click failed: %s", e)
        await self.page.wait_for_timeout(1000)
        return await is_visible(self.page, self.sel.cart_close)

    async def _close_cart_modal(self, combination: Combination) -> str | None:
        """Close the cart modal. Returns the strategy used, 'not_shown', or None if stuck."""
        shown = await wait_for_first(self.page, {"cart": (self.sel.cart_close, "visible")}, timeout_ms=8000)
        if not shown:
            logger.info("Cart modal did not appear, continuing")
            return "not_shown"

        async def recover() -> None:
            await self.open_product_page()
            await self.select_combination(combination)

        return await close_modal(self.page, self.sel.cart_close, recover=recover,
                                 reraise=(FatalRunError,))

    async def _ensure_product_page(self) -> None:
        if not await is_visible(self.page, self.sel.product_details):
            await self._screenshot("product-page-lost")
            raise FatalRunError("Product page not accessible after closing the cart")

    async def _restore_selection(self, combination: Combination) -> None:
        """Re-select everything if the shape or size selection was lost."""
        lost = []
        for name in (self.product.shape_dimension, self.product.size_dimension):
            option = combination.get(name)
            if option is not None and not await self._is_selected(option.name):
                lost.append(f"{name} {option.name}")
        if lost:
            logger.warning("Selections lost after cart close: %s", ", ".join(lost))
            self._selected.clear()
            await self.select_combination(combination)

    async def _expand_more(self) -> None:
        if await is_visible(self.page, self.sel.see_more):
            try:
                await self.page.locator(self.sel.see_more).first.click(timeout=3000)
                await self.page.wait_for_timeout(400)
            except Exception as e:
                logger.debug("See More click failed: %s", e)

    async def _is_selected(self, name: str) -> bool:
        try:
            return bool(await self.page.evaluate(
                _SELECTED_TEXT_JS, {"selector": self.sel.selected_items, "name": name}))
        except Exception:
            return False

    async def _text(self, selector: str) -> str:
        try:
            return (await self.page.locator(selector).first.text_content(timeout=5000) or "").strip()
        except Exception as e:
            logger.debug("Could not read %s: %s", selector, e)
            return ""

    async def _cart_count(self) -> int:
        return parse_cart_count(await self._text(self.sel.cart_count))

    async def _guard(self) -> None:
        clear = await wait_for_no_overlay(
            self.page, self.site.overlays.timeout_ms,
            selectors=self.site.overlays.selectors,
            poll_interval_ms=self.site.overlays.poll_interval_ms,
        )
        if not clear:
            logger.warning("Proceeding with an overlay still visible")

    async def _screenshot(self, label: str) -> None:
        if self.evidence is not None:
            await self.evidence.take_screenshot(self.page, label, timestamped=True)
