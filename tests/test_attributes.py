"""Tests for per-shape attribute verification."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront_qa.executor.action_runner import ActionOutcome
from storefront_qa.flows.attributes import (
    QUANTITY_MODAL,
    SECTION_OPTIONS,
    SEE_MORE,
    AttributeVerifier,
    list_check,
)
from storefront_qa.models.product import QuantityExpectation

from conftest import make_locator, route_locators


def texts(*batches) -> MagicMock:
    """Locator whose all_text_contents returns each batch in turn (the last one repeats)."""
    loc = make_locator()
    batches = list(batches)
    loc.all_text_contents = AsyncMock(side_effect=lambda: batches.pop(0) if len(batches) > 1 else batches[0])
    return loc


def section(children: dict, visible: bool = True) -> MagicMock:
    loc = make_locator()
    if not visible:
        loc.wait_for = AsyncMock(side_effect=Exception("Timeout 8000ms exceeded"))
    loc.locator = MagicMock(side_effect=lambda selector: children.get(selector, make_locator(visible=False)))
    return loc


@pytest.fixture
def verifier(mock_page, site_config, product_definition, run_settings):
    return AttributeVerifier(mock_page, site_config, product_definition, run_settings)


@pytest.fixture
def by_title(site_config):
    return lambda title: site_config.product_page.section_by_title.format(title=title)


@pytest.fixture
def perform():
    with patch("storefront_qa.flows.attributes.perform_action",
               AsyncMock(return_value=ActionOutcome(True, 1, method="primary"))) as mock:
        yield mock


class TestListCheck:
    """Tests for list_check."""

    def test_order_matters(self):
        assert list_check("Circle", "Size options", ["a", "b"], ["a", "b"]).passed
        check = list_check("Circle", "Size options", ["a", "b"], ["b", "a"])
        assert not check.passed
        assert check.detail == "Size options differ"
        assert check.found == "b, a"


@pytest.mark.asyncio
class TestRun:
    """Tests for a full attribute run."""

    async def test_checks_each_shape(self, verifier, mock_page, by_title, perform):
        route_locators(mock_page, {
            by_title("Shapes"): section({SECTION_OPTIONS: texts(["Circle", "Square"])}),
            by_title("Size (mm)"): section({
                SECTION_OPTIONS: texts(["32x32mm", "44x44mm"], ["37x37 mm"]),
            }),
        })

        checks = await verifier.run()

        mock_page.goto.assert_awaited_once_with(
            "https://dev.shop.example.com/badges/button-badge?featured=1", wait_until="domcontentloaded")
        assert [c.section for c in checks] == ["Shape", "Circle", "Square"]
        assert all(c.passed for c in checks), [c.detail for c in checks]
        assert [c.args[1] for c in perform.await_args_list] == ["#opt-Circle", "#opt-Square"]

    async def test_wrong_sizes_fail(self, verifier, mock_page, by_title, perform):
        route_locators(mock_page, {
            by_title("Shapes"): section({SECTION_OPTIONS: texts(["Circle", "Square"])}),
            by_title("Size (mm)"): section({SECTION_OPTIONS: texts(["32x32mm"], ["37x37mm"])}),
        })

        checks = await verifier.run()

        circle = next(c for c in checks if c.section == "Circle")
        assert not circle.passed
        assert circle.expected == "32x32, 44x44"
        assert circle.found == "32x32"

    async def test_missing_section_finds_nothing(self, verifier, mock_page, by_title, perform):
        route_locators(mock_page, {by_title("Shapes"): section({}, visible=False)})

        checks = await verifier.run()

        assert checks[0].check == "Options"
        assert checks[0].found == ""
        assert not checks[0].passed


@pytest.mark.asyncio
class TestVerifyQuantities:
    """Tests for base and See More quantity lists."""

    async def test_base_and_modal(self, verifier, mock_page, by_title, product_definition):
        product_definition.quantity_expectation = QuantityExpectation(base=["5", "10"], modal=["20", "50"])
        see_more = make_locator(visible=True)
        modal = section({"li": texts(["20 pcs", "50 pcs"])})
        route_locators(mock_page, {
            by_title("Quantity"): section({SECTION_OPTIONS: texts(["5 pcs", "10 pcs"]), SEE_MORE: see_more}),
            QUANTITY_MODAL: modal,
        })

        checks = await verifier.verify_quantities("Circle")

        assert [(c.check, c.passed) for c in checks] == [
            ("Base quantities", True),
            ("See More quantities", True),
        ]
        see_more.click.assert_awaited_once()
        mock_page.keyboard.press.assert_awaited_once_with("Escape")

    async def test_no_see_more(self, verifier, mock_page, by_title, product_definition):
        product_definition.quantity_expectation = QuantityExpectation(base=["5"], modal=["20"])
        route_locators(mock_page, {by_title("Quantity"): section({SECTION_OPTIONS: texts(["5"])})})

        checks = await verifier.verify_quantities("Circle")

        assert checks[1].check == "See More quantities"
        assert not checks[1].passed
        mock_page.keyboard.press.assert_not_called()

    async def test_modal_closed_even_when_it_never_opens(self, verifier, mock_page, by_title,
                                                         product_definition):
        product_definition.quantity_expectation = QuantityExpectation(base=["5"], modal=["20"])
        modal = section({}, visible=False)
        route_locators(mock_page, {
            by_title("Quantity"): section({SECTION_OPTIONS: texts(["5"]), SEE_MORE: make_locator()}),
            QUANTITY_MODAL: modal,
        })

        with pytest.raises(Exception, match="Timeout"):
            await verifier.verify_quantities("Circle")
        mock_page.keyboard.press.assert_awaited_once_with("Escape")

    async def test_base_only(self, verifier, mock_page, by_title, product_definition):
        product_definition.quantity_expectation = QuantityExpectation(base=["5", "10"])
        route_locators(mock_page, {by_title("Quantity"): section({SECTION_OPTIONS: texts(["5", "100"])})})

        checks = await verifier.verify_quantities("Square")

        assert len(checks) == 1
        assert checks[0].found == "5, 100"
