"""CLI entry point for storefront QA runs."""

from __future__ import annotations

import logging
import sys
import time
from decimal import Decimal
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from storefront_qa.flows.ordering import FatalRunError
from storefront_qa.models.config import RunSettings, SiteConfig
from storefront_qa.models.content import ContentFixture
from storefront_qa.models.product import ProductDefinition
from storefront_qa.models.result import ResultStatus, RunSummary
from storefront_qa.orchestrator import Orchestrator

console = Console()


def setup_logging(verbose: bool = False, log_dir: str | Path = "logs") -> Path:
    """Log to the console through rich and to ``logs/run-<timestamp>.log``."""
    level = logging.DEBUG if verbose else logging.INFO
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"run-{time.strftime('%Y-%m-%dT%H-%M-%S')}.log"

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("[%(asctime)s] %(message)s"))

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True), file_handler],
    )
    return log_path


def _load(loader, path: str):
    try:
        return loader(path)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _settings(**overrides) -> RunSettings:
    try:
        return RunSettings.from_env(**overrides)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid settings: {e}[/red]")
        sys.exit(1)


def _print_rows_summary(summary: RunSummary) -> None:
    table = Table(title=f"{summary.product} ({summary.account} / {summary.env})")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", summary.run_id)
    table.add_row("Duration", f"{summary.duration_seconds}s")
    table.add_row("Rows", str(len(summary.rows)))
    table.add_row("Match", f"[green]{summary.matched}[/green]")
    table.add_row("Mismatch", f"[red]{summary.mismatched}[/red]")
    table.add_row("No baseline", f"[yellow]{summary.no_baseline}[/yellow]")
    table.add_row("Skipped", f"[yellow]{summary.skipped}[/yellow]")
    console.print(table)

    mismatches = [r for r in summary.rows if r.status is ResultStatus.MISMATCH]
    if mismatches:
        detail = Table(title="Mismatches")
        detail.add_column("Configuration")
        detail.add_column("Status")
        for row in mismatches:
            detail.add_row(" / ".join(row.configuration.values()), row.status_label)
        console.print(detail)

    if summary.export_path:
        console.print(f"  Results: [blue]{summary.export_path}[/blue]")


def _print_checks_summary(summary: RunSummary) -> None:
    table = Table(title=f"{summary.product} checks")
    table.add_column("Section", style="bold")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")
    for check in summary.checks:
        status = "[green]Pass[/green]" if check.passed else "[red]Fail[/red]"
        table.add_row(check.section, check.check, status, check.detail)
    console.print(table)
    console.print(f"{summary.checks_passed} passed, {summary.checks_failed} failed")
    if summary.export_path:
        console.print(f"  Results: [blue]{summary.export_path}[/blue]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Resilient end-to-end checks for print-shop storefronts"""
    setup_logging(verbose)


@cli.command()
@click.option("--site", "-s", required=True, help="Site config JSON")
@click.option("--product", "-p", required=True, help="Product definition JSON")
@click.option("--baseline", "-b", default=None, help="Baseline price JSON")
@click.option("--env", "-e", default=None, help="Deployment environment (default: $ENV or dev)")
@click.option("--cart-limit", type=int, default=None, help="Stop after this many cart attempts")
@click.option("--tolerance", type=float, default=None, help="Allowed price difference")
@click.option("--checkout", is_flag=True, help="Complete checkout after filling the cart")
@click.option("--headless/--headed", default=None, help="Run the browser headless")
@click.option("--output", "-o", default=None, help="Results directory")
def order(site, product, baseline, env, cart_limit, tolerance, checkout, headless, output) -> None:
    """Add every product combination to the cart and compare prices."""
    site_cfg = _load(SiteConfig.load, site)
    product_def = _load(ProductDefinition.load, product)
    settings = _settings(
        env=env, cart_limit=cart_limit, headless=headless, output_dir=output,
        tolerance=Decimal(str(tolerance)) if tolerance is not None else None,
    )

    orchestrator = Orchestrator(settings, site_cfg)
    try:
        summary = orchestrator.run_ordering(product_def, baseline, checkout=checkout)
    except FatalRunError as e:
        console.print(f"[red]Run aborted: {e}[/red]")
        if e.summary is not None:
            _print_rows_summary(e.summary)
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print("\n[bold green]Ordering run complete[/bold green]")
    _print_rows_summary(summary)
    if summary.checks:
        _print_checks_summary(summary)


@cli.command()
@click.option("--fixture", "-f", required=True, help="Content fixture JSON")
@click.option("--headless/--headed", default=None, help="Run the browser headless")
@click.option("--output", "-o", default=None, help="Results directory")
def content(fixture, headless, output) -> None:
    """Verify a product page's copy and imagery against a fixture."""
    fixture_def = _load(ContentFixture.load, fixture)
    settings = _settings(headless=headless, output_dir=output)
    summary = Orchestrator(settings).run_content(fixture_def)
    _print_checks_summary(summary)
    if summary.checks_failed:
        sys.exit(1)


@cli.command()
@click.option("--site", "-s", required=True, help="Site config JSON")
@click.option("--product", "-p", required=True, help="Product definition JSON")
@click.option("--env", "-e", default=None, help="Deployment environment")
@click.option("--headless/--headed", default=None, help="Run the browser headless")
def attributes(site, product, env, headless) -> None:
    """Verify the options listed for each shape of a product."""
    site_cfg = _load(SiteConfig.load, site)
    product_def = _load(ProductDefinition.load, product)
    settings = _settings(env=env, headless=headless)
    try:
        summary = Orchestrator(settings, site_cfg).run_attributes(product_def)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    _print_checks_summary(summary)
    if summary.checks_failed:
        sys.exit(1)


@cli.command("login")
@click.option("--site", "-s", required=True, help="Site config JSON")
@click.option("--env", "-e", default=None, help="Deployment environment")
@click.option("--headless/--headed", default=None, help="Run the browser headless")
def login_command(site, env, headless) -> None:
    """Check that the configured account can log in."""
    site_cfg = _load(SiteConfig.load, site)
    settings = _settings(env=env, headless=headless)
    try:
        result = Orchestrator(settings, site_cfg).run_login()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if result.success:
        console.print(f"[green]Login successful[/green] for {site_cfg.name} ({settings.env})")
    else:
        console.print(f"[red]Login {result.outcome}:[/red] {result.error}")
    if result.screenshot_path:
        console.print(f"  Screenshot: [blue]{result.screenshot_path}[/blue]")
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option("--results", "-r", required=True, help="Saved run summary JSON")
@click.option("--baseline", "-b", required=True, help="Baseline price JSON")
@click.option("--product", "-p", default=None, help="Product definition JSON (for dimension names)")
@click.option("--tolerance", type=float, default=None, help="Allowed price difference")
@click.option("--output", "-o", default=None, help="Results directory")
def compare(results, baseline, product, tolerance, output) -> None:
    """Re-compare a saved run against a baseline and export a new worksheet."""
    if not Path(results).exists():
        console.print(f"[red]Results file not found: {results}[/red]")
        sys.exit(1)
    product_def = _load(ProductDefinition.load, product) if product else None
    settings = _settings(
        output_dir=output, tolerance=Decimal(str(tolerance)) if tolerance is not None else None,
    )
    try:
        summary = Orchestrator(settings).compare_saved(results, baseline, product_def)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid results file: {e}[/red]")
        sys.exit(1)
    _print_rows_summary(summary)


if __name__ == "__main__":
    cli()
