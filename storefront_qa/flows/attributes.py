"""Attribute verification — the options a product page offers, per shape."""

from __future__ import annotations

import logging

from playwright.async_api import Locator, Page

from storefront_qa.executor.action_runner import perform_action
from storefront_qa.models.config import RunSettings, SiteConfig
from storefront_qa.models.product import ProductDefinition
from storefront_qa.models.result import CheckResult
from storefront_qa.utils.text import leading_number, strip_unit

logger = logging.getLogger(__name__)

SECTION_OPTIONS = ".select_items > ul > li:not(.see_more)"
SEE_MORE = ".see_more"
QUANTITY_MODAL = ".custom_quantity_modal"


def list_check(section: str, check: str, expected: list[str], found: list[str]) -> CheckResult:
    passed = expected == found
    return CheckResult(
        section=section,
        check=check,
        expected=", ".join(expected),
        found=", ".join(found),
        passed=passed,
        detail="" if passed else f"{check} differ",
    )


class AttributeVerifier:
    """Clicks through each shape and compares the listed options with the product definition."""

    def __init__(self, page: Page, site: SiteConfig, product: ProductDefinition, settings: RunSettings):
        self.page = page
        self.site = site
        self.product = product
        self.settings = settings

    async def run(self) -> list[CheckResult]:
        url = self.product.url(self.site.environment(self.settings.env).base_url)
        logger.info("Verifying attributes of %s: %s", self.product.name, url)
        await self.page.goto(url, wait_until="domcontentloaded")

        checks: list[CheckResult] = []
        shape_dim = self.product.dimension(self.product.shape_dimension)
        shapes = shape_dim.options if shape_dim is not None else []

        if shape_dim is not None:
            found = await self.section_options(shape_dim.title)
            checks.append(list_check(shape_dim.name, "Options",
                                     [strip_unit(o.name) for o in shapes], found))

        for shape in shapes or [None]:
            chosen = {}
            section = self.product.name
            if shape is not None:
                chosen = {shape_dim.name: shape}
                section = shape.name
                await perform_action(self.page, shape.locator_hint, description=f"Shape: {shape.name}",
                                     policy=self.settings.retry)
                await self.page.wait_for_timeout(1000)
            checks.extend(await self._verify_dimensions(section, chosen))
            if self.product.quantity_expectation is not None:
                checks.extend(await self.verify_quantities(section))

        failed = sum(1 for c in checks if not c.passed)
        logger.info("Attribute checks for %s: %d passed, %d failed",
                    self.product.name, len(checks) - failed, failed)
        return checks

    async def _verify_dimensions(self, section: str, chosen: dict) -> list[CheckResult]:
        checks = []
        skip = {self.product.shape_dimension, self.product.quantity_dimension}
        for dim in self.product.dimensions:
            if dim.name in skip:
                continue
            expected = [strip_unit(o.name) for o in dim.options_for(chosen)]
            if not expected:
                continue
            found = await self.section_options(dim.title)
            logger.info("%s / %s: expected [%s], found [%s]",
                        section, dim.name, ", ".join(expected), ", ".join(found))
            checks.append(list_check(section, f"{dim.name} options", expected, found))
        return checks

    async def verify_quantities(self, section: str) -> list[CheckResult]:
        expectation = self.product.quantity_expectation
        quantity = self.product.dimension(self.product.quantity_dimension)
        title = quantity.title if quantity is not None else self.product.quantity_dimension
        container = self._section(title)

        base = [leading_number(t) for t in await self._texts(container.locator(SECTION_OPTIONS))]
        checks = [list_check(section, "Base quantities", expectation.base, base)]

        if not expectation.modal:
            return checks

        see_more = container.locator(SEE_MORE).first
        if not await see_more.is_visible():
            checks.append(list_check(section, "See More quantities", expectation.modal, []))
            return checks

        await see_more.click(timeout=5000)
        modal = self.page.locator(QUANTITY_MODAL).first
        try:
            await modal.wait_for(state="visible", timeout=5000)
            modal_quantities = [leading_number(t) for t in await self._texts(modal.locator("li"))]
        finally:
            await self.page.keyboard.press("Escape")
        checks.append(list_check(section, "See More quantities", expectation.modal, modal_quantities))
        return checks

    async def section_options(self, title: str) -> list[str]:
        """Option labels listed under the section headed ``title``."""
        container = self._section(title)
        try:
            await container.first.wait_for(state="visible", timeout=8000)
        except Exception as e:
            logger.warning("%s section not visible: %s", title, e)
            return []
        return [strip_unit(t) for t in await self._texts(container.locator(SECTION_OPTIONS))]

    def _section(self, title: str) -> Locator:
        return self.page.locator(self.site.product_page.section_by_title.format(title=title))

    async def _texts(self, locator: Locator) -> list[str]:
        return [t.strip() for t in await locator.all_text_contents()]
