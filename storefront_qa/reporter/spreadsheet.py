"""Spreadsheet export of result rows."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

MAX_SHEET_NAME = 31  # Excel limit


def results_path(
    base: str | Path,
    account: str,
    env: str,
    test_name: str,
    now: datetime | None = None,
) -> Path:
    """``{base}/{account}_{env}_test-sheets-results/{test_name}Results_{ts}.xlsx``"""
    now = now or datetime.now()
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3]
    folder = Path(base) / f"{account}_{env}_test-sheets-results"
    return folder / f"{test_name}Results_{timestamp}.xlsx"


def column_order(records: Sequence[Mapping[str, Any]]) -> list[str]:
    """Union of record keys in first-seen order."""
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    return columns


def export_records(
    records: Sequence[Mapping[str, Any]],
    destination: str | Path,
    sheet_name: str = "Results",
    summary: Mapping[str, Any] | None = None,
) -> Path:
    """Write one worksheet with a row per record, plus an optional Summary sheet.

    Returns the written path. Parent folders are created as needed.
    """
    destination = Path(destination)
    if not destination.parent.exists():
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Created folder: %s", destination.parent)

    df = pd.DataFrame(list(records), columns=column_order(records))
    with pd.ExcelWriter(destination, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name[:MAX_SHEET_NAME] or "Results", index=False)
        if summary:
            summary_df = pd.DataFrame({
                "Metric": list(summary.keys()),
                "Value": [str(v) for v in summary.values()],
            })
            summary_df.to_excel(writer, sheet_name="Summary", index=False)

    logger.info("Saved %d results to: %s", len(df), destination)
    return destination
