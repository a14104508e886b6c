"""Tests for product page content verification."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.flows.content import (
    CONTENT_CONTAINER,
    PRODUCT_INFO,
    QUOTE_BANNER,
    ContentVerifier,
    contains_check,
)
from storefront_qa.models.content import ContentFixture

from conftest import make_locator, route_locators


def section(children: dict, visible: bool = True) -> MagicMock:
    """A section locator whose child lookups come from ``children``."""
    loc = make_locator()
    if not visible:
        loc.wait_for = AsyncMock(side_effect=Exception("Timeout 10000ms exceeded"))
    loc.locator = MagicMock(side_effect=lambda selector: children.get(selector, make_locator()))
    return loc


def texts(*values) -> MagicMock:
    loc = make_locator()
    loc.all_text_contents = AsyncMock(return_value=list(values))
    return loc


def images(*srcs) -> MagicMock:
    loc = make_locator()
    loc.evaluate_all = AsyncMock(return_value=list(srcs))
    return loc


@pytest.fixture
def fixture() -> ContentFixture:
    return ContentFixture(
        url="https://shop.example.com/badges/button-badge",
        quote_banner={"images": ["button-badge-main"], "thumbnails": ["thumb-1", "thumb-9"]},
        content_container={
            "title": "Button Badges",
            "subtitle": "Pin your brand on everything",
            "descriptions": ["custom button badges"],
            "perfect_for": ["Events", "Weddings"],
        },
        product_info={
            "finishing": {"description": "glossy", "options": [{"title": "Gloss"}, {"title": "Matte"}]},
            "precautions": {"notices": [{"title": "Sharp pins"}]},
            "shapes_sizes": {"images": ["circle-32"]},
            "downloads": [{"type": "PDF template", "icon": "pdf-icon"}],
        },
    )


class TestContainsCheck:
    """Tests for contains_check."""

    def test_pass_reports_matching_value(self):
        check = contains_check("Content", "Perfect for item", "Events", [" School events ", "Parties"])
        assert check.passed
        assert check.found == "School events"

    def test_fail_reports_everything_seen(self):
        check = contains_check("Content", "Perfect for item", "Weddings", ["Events", "Parties"])
        assert not check.passed
        assert check.found == "Events; Parties"
        assert check.detail == "Missing perfect for item: Weddings"


class TestContentFixture:
    """Tests for fixture loading."""

    def test_label_from_url(self, fixture):
        assert fixture.label == "button-badge"

    def test_load_bundled(self):
        from pathlib import Path

        path = Path(__file__).parent.parent / "data" / "content" / "button-badge.json"
        assert ContentFixture.load(path).url

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ContentFixture.load(tmp_path / "missing.json")

    def test_sections_optional(self, tmp_path):
        path = tmp_path / "f.json"
        path.write_text(json.dumps({"url": "https://x/y", "name": "Y"}))
        fixture = ContentFixture.load(path)
        assert fixture.quote_banner is None
        assert fixture.label == "Y"


@pytest.mark.asyncio
class TestVerifyContent:
    """Tests for the main content block."""

    async def test_title_subtitle_and_lists(self, mock_page, fixture):
        content = section({
            "h2.content-title": make_locator(text=" Button Badges "),
            "h6.content-subtitle": make_locator(text="Badges for all"),
            "p.content-description": texts("Order custom button badges online.", "Fast delivery."),
            "li": texts("Events", "Schools"),
        })
        route_locators(mock_page, {CONTENT_CONTAINER: content})

        checks = await ContentVerifier(mock_page, fixture).verify_content(fixture.content_container)

        results = {(c.check, c.expected): c.passed for c in checks}
        assert results == {
            ("Title", "Button Badges"): True,
            ("Subtitle", "Pin your brand on everything"): False,
            ("Description", "custom button badges"): True,
            ("Perfect for item", "Events"): True,
            ("Perfect for item", "Weddings"): False,
        }
        subtitle = next(c for c in checks if c.check == "Subtitle")
        assert subtitle.detail == "Subtitle differs"

    async def test_missing_section(self, mock_page, fixture):
        route_locators(mock_page, {CONTENT_CONTAINER: section({}, visible=False)})

        checks = await ContentVerifier(mock_page, fixture).verify_content(fixture.content_container)

        assert len(checks) == 1
        assert checks[0].check == "Section visible"
        assert not checks[0].passed


@pytest.mark.asyncio
class TestVerifyQuoteBanner:
    """Tests for the quote banner."""

    async def test_images_and_thumbnails(self, mock_page, fixture, tmp_path):
        banner = section({
            "img": images("https://cdn/x/button-badge-main.jpg"),
            ".quote_carousel_thumbnails img": images("https://cdn/thumb-1.jpg"),
        })
        route_locators(mock_page, {QUOTE_BANNER: banner})
        evidence = EvidenceCollector(tmp_path / "evidence")

        checks = await ContentVerifier(mock_page, fixture, evidence).verify_quote_banner(fixture.quote_banner)

        assert [c.passed for c in checks] == [True, True, False]
        assert evidence.screenshots[0].endswith("button-badge-01-quote-banner.png")
        assert mock_page.screenshot.await_args.kwargs["full_page"] is False


@pytest.mark.asyncio
class TestVerifyProductInfo:
    """Tests for the bottom product info block."""

    async def test_all_subsections(self, mock_page, fixture):
        finishing = section({
            ".section-title": make_locator(text="Finishing"),
            ".section-description": make_locator(text="A glossy coat protects the print"),
        })
        bottom = section({
            ".product-section-finishing": finishing,
            ".finishing-title": texts("Gloss"),
            ".instruction-title": texts("Sharp pins", "Keep dry"),
            ".size-item img": images("https://cdn/circle-32.png"),
            ".downloads-list img": images("https://cdn/zip-icon.png"),
        })
        route_locators(mock_page, {PRODUCT_INFO: bottom})

        checks = await ContentVerifier(mock_page, fixture).verify_product_info(fixture.product_info)

        results = [(c.check, c.passed) for c in checks]
        assert results == [
            ("Finishing title", True),
            ("Finishing description", True),
            ("Finishing option", True),
            ("Finishing option", False),
            ("Precaution", True),
            ("Shape/size image", True),
            ("Download icon", False),
        ]
        assert checks[-1].detail == "Missing download icon: PDF template"


@pytest.mark.asyncio
class TestRun:
    """Tests for a whole verification run."""

    async def test_only_described_sections_are_checked(self, mock_page):
        fixture = ContentFixture(url="https://shop.example.com/p/magnet",
                                 content_container={"title": "Magnets"})
        content = section({"h2.content-title": make_locator(text="Magnets")})
        banner = section({})
        route_locators(mock_page, {CONTENT_CONTAINER: content, QUOTE_BANNER: banner})

        checks = await ContentVerifier(mock_page, fixture).run()

        mock_page.goto.assert_awaited_once_with("https://shop.example.com/p/magnet",
                                                wait_until="domcontentloaded")
        assert [(c.section, c.check, c.passed) for c in checks] == [("Content", "Title", True)]
        banner.wait_for.assert_not_called()
