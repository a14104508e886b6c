"""Content verification — compare a product page's copy and imagery with a fixture."""

from __future__ import annotations

import logging
from typing import Iterable

from playwright.async_api import Locator, Page

from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.models.content import ContentContainer, ContentFixture, ProductInfo, QuoteBanner
from storefront_qa.models.result import CheckResult

logger = logging.getLogger(__name__)

QUOTE_BANNER = "section.quote_banner"
CONTENT_CONTAINER = ".product-content-container"
PRODUCT_INFO = ".product_info_btm_v2"

_IMAGE_SOURCES_JS = "imgs => imgs.map(i => i.src)"


def contains_check(section: str, check: str, expected: str, found: Iterable[str]) -> CheckResult:
    """Pass when any of ``found`` contains ``expected``."""
    found = [f.strip() for f in found]
    hit = next((f for f in found if expected in f), None)
    return CheckResult(
        section=section,
        check=check,
        expected=expected,
        found=hit if hit is not None else "; ".join(found)[:200],
        passed=hit is not None,
        detail="" if hit is not None else f"Missing {check.lower()}: {expected}",
    )


class ContentVerifier:
    """Runs every check the fixture describes; sections it omits are skipped."""

    def __init__(self, page: Page, fixture: ContentFixture, evidence: EvidenceCollector | None = None):
        self.page = page
        self.fixture = fixture
        self.evidence = evidence

    async def run(self) -> list[CheckResult]:
        logger.info("Navigating to: %s", self.fixture.url)
        await self.page.goto(self.fixture.url, wait_until="domcontentloaded")

        checks: list[CheckResult] = []
        if self.fixture.quote_banner is not None:
            checks.extend(await self.verify_quote_banner(self.fixture.quote_banner))
        if self.fixture.content_container is not None:
            checks.extend(await self.verify_content(self.fixture.content_container))
        if self.fixture.product_info is not None:
            checks.extend(await self.verify_product_info(self.fixture.product_info))

        failed = sum(1 for c in checks if not c.passed)
        logger.info("Content checks for %s: %d passed, %d failed",
                    self.fixture.label, len(checks) - failed, failed)
        return checks

    async def verify_quote_banner(self, expected: QuoteBanner) -> list[CheckResult]:
        section = "Quote Banner"
        banner = self.page.locator(QUOTE_BANNER)
        if not await self._open_section(banner, section, "01-quote-banner"):
            return [self._missing(section)]

        images = await self._sources(banner.locator("img"))
        thumbs = await self._sources(banner.locator(".quote_carousel_thumbnails img"))
        checks = [contains_check(section, "Banner image", img, images) for img in expected.images]
        checks += [contains_check(section, "Thumbnail", t, thumbs) for t in expected.thumbnails]
        return checks

    async def verify_content(self, expected: ContentContainer) -> list[CheckResult]:
        section = "Content"
        content = self.page.locator(CONTENT_CONTAINER)
        if not await self._open_section(content, section, "02-content-section"):
            return [self._missing(section)]

        checks = []
        if expected.title:
            title = await self._text(content.locator("h2.content-title"))
            checks.append(self._equals(section, "Title", expected.title, title))
        if expected.subtitle:
            subtitle = await self._text(content.locator("h6.content-subtitle"))
            checks.append(self._equals(section, "Subtitle", expected.subtitle, subtitle))

        description = " ".join(await content.locator("p.content-description").all_text_contents())
        checks += [contains_check(section, "Description", snippet, [description])
                   for snippet in expected.descriptions]

        items = await content.locator("li").all_text_contents()
        checks += [contains_check(section, "Perfect for item", item, items)
                   for item in expected.perfect_for]
        return checks

    async def verify_product_info(self, expected: ProductInfo) -> list[CheckResult]:
        section = "Product Info"
        bottom = self.page.locator(PRODUCT_INFO)
        if not await self._open_section(bottom, section, "03-product-info"):
            return [self._missing(section)]

        checks = []
        if expected.finishing is not None:
            finishing = bottom.locator(".product-section-finishing")
            await self._open_section(finishing, "Finishing", "03a-finishing-section")
            title = await self._text(finishing.locator(".section-title"))
            checks.append(contains_check(section, "Finishing title", "Finishing", [title]))
            if expected.finishing.description:
                desc = await self._text(finishing.locator(".section-description"))
                checks.append(contains_check(section, "Finishing description",
                                             expected.finishing.description, [desc]))
            titles = await bottom.locator(".finishing-title").all_text_contents()
            checks += [contains_check(section, "Finishing option", option.title, titles)
                       for option in expected.finishing.options]

        if expected.precautions is not None:
            titles = await bottom.locator(".instruction-title").all_text_contents()
            checks += [contains_check(section, "Precaution", notice.title, titles)
                       for notice in expected.precautions.notices]

        if expected.shapes_sizes is not None:
            images = await self._sources(bottom.locator(".size-item img"))
            checks += [contains_check(section, "Shape/size image", img, images)
                       for img in expected.shapes_sizes.images]

        if expected.downloads:
            icons = await self._sources(bottom.locator(".downloads-list img"))
            for download in expected.downloads:
                check = contains_check(section, "Download icon", download.icon, icons)
                if not check.passed:
                    check.detail = f"Missing download icon: {download.type}"
                checks.append(check)
        return checks

    async def _open_section(self, locator: Locator, section: str, shot: str) -> bool:
        try:
            await locator.first.wait_for(state="visible", timeout=10000)
            await locator.first.scroll_into_view_if_needed()
        except Exception as e:
            logger.warning("%s section not visible: %s", section, e)
            return False
        if self.evidence is not None:
            await self.evidence.take_screenshot(
                self.page, f"{self.fixture.label}-{shot}", full_page=False)
        return True

    async def _sources(self, locator: Locator) -> list[str]:
        return await locator.evaluate_all(_IMAGE_SOURCES_JS)

    async def _text(self, locator: Locator) -> str:
        try:
            return (await locator.first.text_content(timeout=5000) or "").strip()
        except Exception:
            return ""

    @staticmethod
    def _equals(section: str, check: str, expected: str, found: str) -> CheckResult:
        passed = found == expected.strip()
        return CheckResult(section=section, check=check, expected=expected, found=found,
                           passed=passed, detail="" if passed else f"{check} differs")

    @staticmethod
    def _missing(section: str) -> CheckResult:
        return CheckResult(section=section, check="Section visible", expected="visible",
                           found="missing", passed=False, detail=f"{section} section not found")
