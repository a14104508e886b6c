"""Baseline comparison — reconcile observed prices with the expected price table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from storefront_qa.models.baseline import BaselineError, BaselineTable
from storefront_qa.models.result import ResultRow, ResultStatus, format_amount
from storefront_qa.utils.text import leading_number, parse_size

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.5")


@dataclass
class ComparisonSummary:
    matched: int = 0
    mismatched: int = 0
    no_baseline: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.mismatched + self.no_baseline + self.skipped


class BaselineComparator:
    """Classifies each ResultRow as Match, Mismatch or NoBaselineData."""

    def __init__(
        self,
        table: BaselineTable | None,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        shape_dimension: str = "Shape",
        size_dimension: str = "Size",
        quantity_dimension: str = "Quantity",
        unavailable_reason: str = "",
    ):
        self.table = table
        self.tolerance = Decimal(str(tolerance))
        self.shape_dimension = shape_dimension
        self.size_dimension = size_dimension
        self.quantity_dimension = quantity_dimension
        self.unavailable_reason = unavailable_reason

    @classmethod
    def from_file(
        cls,
        path: str | Path | None,
        product: str,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        **dimension_names: str,
    ) -> "BaselineComparator":
        """Load the baseline table, degrading to a table-less comparator on error."""
        if path is None:
            return cls(None, tolerance, unavailable_reason="No baseline file configured",
                       **dimension_names)
        try:
            table = BaselineTable.load(path, product)
        except BaselineError as e:
            logger.warning("Could not compare prices: %s", e)
            return cls(None, tolerance, unavailable_reason=str(e), **dimension_names)
        logger.debug("Loaded %d baseline entries for %s", len(table.entries), product)
        return cls(table, tolerance, **dimension_names)

    def compare_row(self, row: ResultRow) -> ResultStatus:
        """Assign and return the status of a single row."""
        if row.status is ResultStatus.SKIPPED:
            return row.status

        if self.table is None:
            row.mark(ResultStatus.NO_BASELINE,
                     detail=f"No baseline data ({self.unavailable_reason})"
                     if self.unavailable_reason else "No baseline data")
            return row.status

        shape = row.configuration.get(self.shape_dimension)
        if shape is not None and not self.table.has_shape(shape):
            row.mark(ResultStatus.NO_BASELINE, detail=f"No shape data for {shape}")
            return row.status

        size = parse_size(row.configuration.get(self.size_dimension))
        qty_key = leading_number(row.configuration.get(self.quantity_dimension))
        entry = self.table.find(size[0], size[1], shape) if size else None

        if entry is None or qty_key not in entry.prices_by_quantity:
            row.mark(ResultStatus.NO_BASELINE, detail="No baseline data for this size/qty")
            return row.status

        expected = entry.prices_by_quantity[qty_key]
        actual = row.observed_price
        if actual is None:
            row.mark(ResultStatus.MISMATCH, expected=expected,
                     detail=f"Mismatch (Expected: {format_amount(expected)}, Got: no price)")
            return row.status

        diff = abs(expected - actual)
        if diff <= self.tolerance:
            row.mark(ResultStatus.MATCH, expected=expected)
        else:
            row.mark(ResultStatus.MISMATCH, expected=expected,
                     detail=f"Mismatch (Expected: {format_amount(expected)}, "
                            f"Got: {format_amount(actual)})")
        return row.status

    def compare(self, rows: Iterable[ResultRow]) -> ComparisonSummary:
        """Give every row exactly one status and return the tally."""
        summary = ComparisonSummary()
        for row in rows:
            try:
                status = self.compare_row(row)
            except Exception as e:
                logger.warning("Comparison failed for %s: %s", row.configuration, e)
                row.mark(ResultStatus.NO_BASELINE, detail=f"No baseline data ({e})")
                status = row.status

            if status is ResultStatus.MATCH:
                summary.matched += 1
            elif status is ResultStatus.MISMATCH:
                summary.mismatched += 1
            elif status is ResultStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.no_baseline += 1

        logger.info("Price comparison complete: %d match, %d mismatch, %d no baseline, %d skipped",
                    summary.matched, summary.mismatched, summary.no_baseline, summary.skipped)
        return summary
