"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront_qa.models.config import (
    Credentials,
    EnvironmentConfig,
    RetryPolicy,
    RunSettings,
    SiteConfig,
)
from storefront_qa.models.product import ConfigurationOption, Dimension, ProductDefinition


# ============================================================================
# Playwright Mocks
# ============================================================================


def make_locator(visible: bool = True, count: int = 1, text: str = "", checked: bool = False) -> MagicMock:
    """Create a mock Playwright locator.

    ``.first`` and chained ``.locator()``/``.filter()`` return the same mock so
    tests can configure one object per selector.
    """
    loc = MagicMock()
    loc.first = loc
    loc.locator = MagicMock(return_value=loc)
    loc.filter = MagicMock(return_value=loc)
    loc.count = AsyncMock(return_value=count)
    loc.is_visible = AsyncMock(return_value=visible)
    loc.is_checked = AsyncMock(return_value=checked)
    loc.wait_for = AsyncMock()
    loc.click = AsyncMock()
    loc.fill = AsyncMock()
    loc.check = AsyncMock()
    loc.evaluate = AsyncMock()
    loc.evaluate_all = AsyncMock(return_value=[])
    loc.scroll_into_view_if_needed = AsyncMock()
    loc.text_content = AsyncMock(return_value=text)
    loc.all_text_contents = AsyncMock(return_value=[])
    loc.get_attribute = AsyncMock(return_value=None)
    return loc


def route_locators(page: MagicMock, mapping: dict, default: MagicMock | None = None) -> None:
    """Make ``page.locator(selector)`` return ``mapping[selector]``."""
    fallback = default if default is not None else make_locator(visible=False, count=0)
    page.locator.side_effect = lambda selector: mapping.get(selector, fallback)


@pytest.fixture
def mock_page() -> MagicMock:
    """Create a mock Playwright page."""
    page = MagicMock()
    page.url = "https://shop.example.com/"
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock()
    page.evaluate = AsyncMock()
    page.set_input_files = AsyncMock()
    page.keyboard = MagicMock()
    page.keyboard.press = AsyncMock()
    page.locator = MagicMock(return_value=make_locator())
    return page


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with the default attempt count and backoff."""
    return RetryPolicy(max_attempts=3, attempt_timeout_ms=100, backoff_ms=500)


@pytest.fixture
def site_config() -> SiteConfig:
    """Create a test site configuration."""
    return SiteConfig(
        name="Example Print",
        account="ex",
        currency_prefix="S$",
        environments={
            "dev": EnvironmentConfig(base_url="https://dev.shop.example.com"),
            "live": EnvironmentConfig(base_url="https://shop.example.com/"),
        },
        credentials=Credentials(email="buyer@example.com", password="secret"),
    )


@pytest.fixture
def run_settings(tmp_path: Path) -> RunSettings:
    """Create run settings writing into a temporary directory."""
    return RunSettings(env="dev", output_dir=str(tmp_path / "results"), cart_count_ceiling=0)


@pytest.fixture
def product_definition() -> ProductDefinition:
    """Two shapes, shape-dependent sizes, two quantities."""
    def opt(name: str) -> ConfigurationOption:
        return ConfigurationOption(name=name, locator_hint=f"#opt-{name}")

    return ProductDefinition(
        name="Button Badges",
        slug="button-badge",
        path="badges/button-badge?featured=1",
        dimensions=[
            Dimension(name="Shape", section_title="Shapes", options=[opt("Circle"), opt("Square")]),
            Dimension(
                name="Size",
                section_title="Size (mm)",
                depends_on="Shape",
                options_by={"Circle": [opt("32x32mm"), opt("44x44mm")], "Square": [opt("37x37mm")]},
            ),
            Dimension(name="Quantity", options=[opt("5"), opt("10")]),
        ],
    )


# ============================================================================
# Data File Fixtures
# ============================================================================


@pytest.fixture
def baseline_data() -> dict:
    """Baseline prices grouped by shape, plus a flat product list."""
    return {
        "Button Badges": {
            "Circle": [
                {"width": 32, "height": 32, "5": 4.4, "10": 7.6},
                {"width": 44, "height": 44, "5": 5.2},
            ],
            "Square": [
                {"width": 37, "height": 37, "5": 5.0, "10": 8.6},
            ],
        },
        "Magnetic Badges": [
            {"width": 25, "height": 25, "5": 6.5},
        ],
    }


@pytest.fixture
def baseline_file(tmp_path: Path, baseline_data: dict) -> Path:
    """Write the baseline data to a temporary JSON file."""
    path = tmp_path / "baselinePrice.json"
    path.write_text(json.dumps(baseline_data))
    return path
