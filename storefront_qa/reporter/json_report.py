"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from storefront_qa.models.result import RunSummary


def generate_json_report(summary: RunSummary, output_path: Path) -> None:
    """Write a machine-readable JSON report of the run."""
    report = summary.model_dump(mode="json")
    report["checks_passed"] = summary.checks_passed
    report["checks_failed"] = summary.checks_failed

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)


def load_json_report(path: Path) -> RunSummary:
    """Read a run summary written by generate_json_report."""
    with open(path) as f:
        data = json.load(f)
    data.pop("checks_passed", None)
    data.pop("checks_failed", None)
    return RunSummary(**data)
