"""Run orchestrator — browser lifecycle, login, flows, comparison and export."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path
from typing import AsyncIterator

from playwright.async_api import Page, async_playwright

from storefront_qa.auth.login import LoginResult, login
from storefront_qa.executor.comparator import BaselineComparator
from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.executor.recorder import ResultRecorder
from storefront_qa.flows.attributes import AttributeVerifier
from storefront_qa.flows.checkout import CheckoutFlow
from storefront_qa.flows.content import ContentVerifier
from storefront_qa.flows.ordering import FatalRunError, OrderingFlow
from storefront_qa.models.config import RunSettings, SiteConfig
from storefront_qa.models.content import ContentFixture
from storefront_qa.models.product import ProductDefinition
from storefront_qa.models.result import CheckResult, ResultRow, ResultStatus, RunSummary
from storefront_qa.reporter.json_report import generate_json_report, load_json_report
from storefront_qa.reporter.spreadsheet import export_records, results_path
from storefront_qa.utils.browser import create_context, launch_browser

logger = logging.getLogger(__name__)


def sheet_name_for(label: str) -> str:
    """'Button Badge' -> 'ButtonBadge', 'button-badge' -> 'ButtonBadge'."""
    return "".join(part.capitalize() if part.islower() else part
                   for part in label.replace("-", " ").replace("_", " ").split())


class Orchestrator:
    """Coordinates one run: a single browser, context and page, strictly sequential."""

    def __init__(self, settings: RunSettings, site: SiteConfig | None = None):
        self.settings = settings
        self.site = site
        self.output_dir = Path(settings.output_dir)
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"
        self.run_dir = self.output_dir / self.run_id
        self._video_path: str | None = None

    # Public entry points

    def run_ordering(
        self,
        product: ProductDefinition,
        baseline_path: str | Path | None = None,
        checkout: bool = False,
    ) -> RunSummary:
        """Add every combination to the cart, compare prices and export.

        The worksheet is written even when a FatalRunError aborts the run;
        the error then propagates with the partial summary attached.
        """
        return asyncio.run(self._run_ordering(product, baseline_path, checkout))

    def run_content(self, fixture: ContentFixture) -> RunSummary:
        return asyncio.run(self._run_content(fixture))

    def run_attributes(self, product: ProductDefinition) -> RunSummary:
        return asyncio.run(self._run_attributes(product))

    def run_login(self) -> LoginResult:
        return asyncio.run(self._run_login())

    def compare_saved(
        self,
        summary_path: str | Path,
        baseline_path: str | Path,
        product: ProductDefinition | None = None,
    ) -> RunSummary:
        """Re-compare the rows of a saved run against a baseline file and re-export."""
        summary = load_json_report(Path(summary_path))
        rows = summary.rows
        for row in rows:
            if row.status is ResultStatus.SKIPPED:
                continue
            row.status = None
            row.expected_price = None
            row.status_detail = ""
        self._compare(rows, baseline_path, summary.product, product)
        summary.rows = rows
        summary.tally()
        summary.export_path = None
        self._export_rows(summary, sheet_name_for(summary.product))
        return summary

    # Runs

    async def _run_ordering(
        self, product: ProductDefinition, baseline_path: str | Path | None, checkout: bool,
    ) -> RunSummary:
        site = self._require_site()
        summary = self._new_summary(product.name)
        recorder = ResultRecorder()
        evidence = EvidenceCollector(self.run_dir / "evidence")
        start = time.time()
        logger.info("=== Ordering run %s: %s on %s (%s) ===",
                    self.run_id, product.name, site.name, self.settings.env)

        try:
            async with self._session(evidence) as page:
                await self._login_or_abort(page, site, evidence)

                env_cfg = site.environment(self.settings.env)
                product_url = product.url(env_cfg.base_url)
                if product.slug in env_cfg.products:
                    product_url = env_cfg.base_url + env_cfg.products[product.slug].lstrip("/")

                flow = OrderingFlow(page, site, product, self.settings, product_url, evidence)
                await flow.open_product_page()
                ordering = await flow.run(recorder)
                if ordering.stopped_reason:
                    logger.info("Stopped early: %s", ordering.stopped_reason)

                if checkout:
                    result = await CheckoutFlow(page, site, self.settings, evidence).run()
                    summary.checks.append(CheckResult(
                        section="Checkout",
                        check="Order placed",
                        expected="confirmation",
                        found="confirmed" if result.confirmed else (result.error or "no confirmation"),
                        passed=result.success,
                        detail=f"terms: {result.terms_method or 'not verified'}",
                    ))
        except FatalRunError as e:
            logger.error("Run aborted: %s", e)
            summary.aborted_reason = str(e)
            e.summary = summary
            raise
        except Exception as e:
            logger.error("Run failed: %s", e)
            summary.aborted_reason = f"{type(e).__name__}: {e}"
            raise
        finally:
            rows = list(recorder.rows)
            try:
                self._compare(rows, baseline_path, product.name, product)
            except Exception as e:
                logger.error("Price comparison failed: %s", e)
                BaselineComparator(None, unavailable_reason=f"comparison failed: {e}").compare(rows)
            summary.rows = rows
            summary.tally()
            self._complete(summary, evidence, start)
            self._export_rows(summary, sheet_name_for(product.name))

        logger.info("=== Ordering run complete: %d match, %d mismatch, %d no baseline, %d skipped ===",
                    summary.matched, summary.mismatched, summary.no_baseline, summary.skipped)
        return summary

    async def _run_content(self, fixture: ContentFixture) -> RunSummary:
        summary = self._new_summary(fixture.label)
        evidence = EvidenceCollector(self.run_dir / "evidence")
        start = time.time()
        try:
            async with self._session(evidence) as page:
                summary.checks = await ContentVerifier(page, fixture, evidence).run()
        finally:
            self._complete(summary, evidence, start)
            self._export_checks(summary, f"{sheet_name_for(fixture.label)}Content")
        return summary

    async def _run_attributes(self, product: ProductDefinition) -> RunSummary:
        site = self._require_site()
        summary = self._new_summary(product.name)
        evidence = EvidenceCollector(self.run_dir / "evidence")
        start = time.time()
        try:
            async with self._session(evidence) as page:
                summary.checks = await AttributeVerifier(page, site, product, self.settings).run()
        finally:
            self._complete(summary, evidence, start)
            self._export_checks(summary, f"{sheet_name_for(product.name)}Attributes")
        return summary

    async def _run_login(self) -> LoginResult:
        site = self._require_site()
        evidence = EvidenceCollector(self.run_dir / "evidence")
        async with self._session(evidence) as page:
            return await login(page, site, self.settings.env, evidence, self.settings.retry)

    # Helpers

    @asynccontextmanager
    async def _session(self, evidence: EvidenceCollector) -> AsyncIterator[Page]:
        """One browser, one context, one page for the whole run."""
        video_dir = str(self.run_dir / "video") if self.settings.capture_video else None
        async with async_playwright() as p:
            logger.debug("Launching Chromium (headless=%s)", self.settings.headless)
            browser = await launch_browser(p, headless=self.settings.headless)
            try:
                context = await create_context(browser, record_video_dir=video_dir)
                page = await context.new_page()
                evidence.setup_listeners(page)
                try:
                    yield page
                finally:
                    await context.close()
                    if page.video is not None:
                        self._video_path = await page.video.path()
            finally:
                await browser.close()

    async def _login_or_abort(self, page: Page, site: SiteConfig, evidence: EvidenceCollector) -> None:
        result = await login(page, site, self.settings.env, evidence, self.settings.retry)
        if not result.success:
            raise FatalRunError(f"Login failed: {result.error or result.outcome}")

    def _compare(
        self,
        rows: list[ResultRow],
        baseline_path: str | Path | None,
        product_name: str,
        product: ProductDefinition | None,
    ) -> None:
        dimension_names = {}
        if product is not None:
            dimension_names = {
                "shape_dimension": product.shape_dimension,
                "size_dimension": product.size_dimension,
                "quantity_dimension": product.quantity_dimension,
            }
        comparator = BaselineComparator.from_file(
            baseline_path, product_name, Decimal(str(self.settings.tolerance)), **dimension_names)
        comparator.compare(rows)

    def _new_summary(self, product: str) -> RunSummary:
        site = self.site
        return RunSummary(
            run_id=self.run_id,
            account=site.account if site else "content",
            env=self.settings.env,
            product=product,
            started_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    def _complete(self, summary: RunSummary, evidence: EvidenceCollector, start: float) -> None:
        summary.completed_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        summary.duration_seconds = round(time.time() - start, 2)
        try:
            evidence.save_logs()
        except OSError as e:
            logger.warning("Could not save console log: %s", e)
        summary.evidence = evidence.build_evidence(self._video_path)

    def _export_rows(self, summary: RunSummary, test_name: str) -> None:
        records = [row.to_record() for row in summary.rows]
        self._export(summary, records, test_name, {
            "Run ID": summary.run_id,
            "Product": summary.product,
            "Environment": summary.env,
            "Rows": len(records),
            "Match": summary.matched,
            "Mismatch": summary.mismatched,
            "NoBaselineData": summary.no_baseline,
            "Skipped": summary.skipped,
            "Aborted": summary.aborted_reason or "",
        })

    def _export_checks(self, summary: RunSummary, test_name: str) -> None:
        records = [check.to_record() for check in summary.checks]
        self._export(summary, records, test_name, {
            "Run ID": summary.run_id,
            "Checks": len(records),
            "Passed": summary.checks_passed,
            "Failed": summary.checks_failed,
        })

    def _export(self, summary: RunSummary, records: list[dict], test_name: str, metrics: dict) -> None:
        path = results_path(self.output_dir, summary.account, summary.env, test_name)
        try:
            export_records(records, path, sheet_name=test_name, summary=metrics)
            summary.export_path = str(path)
        except Exception as e:
            logger.error("Failed to save spreadsheet %s: %s", path, e)
        json_path = path.with_suffix(".json")
        try:
            generate_json_report(summary, json_path)
            logger.info("Run summary: %s", json_path)
        except OSError as e:
            logger.error("Failed to save run summary %s: %s", json_path, e)

    def _require_site(self) -> SiteConfig:
        if self.site is None:
            raise ValueError("A site configuration is required for this run")
        return self.site
