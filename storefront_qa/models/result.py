"""Result data structures produced by ordering and verification runs."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ResultStatus(str, Enum):
    MATCH = "Match"
    MISMATCH = "Mismatch"
    NO_BASELINE = "NoBaselineData"
    SKIPPED = "Skipped"


def format_amount(value: Decimal | None) -> str:
    """Render a price without trailing zeros: 6.00 -> '6', 4.50 -> '4.5'."""
    if value is None:
        return ""
    return format(value.normalize(), "f")


class ResultRow(BaseModel):
    """One attempted configuration combination and what the page showed for it."""

    configuration: dict[str, str]
    observed_price: Optional[Decimal] = None
    price_text: str = ""
    observed_text: str = ""
    shipping: str = ""
    status: Optional[ResultStatus] = None
    expected_price: Optional[Decimal] = None
    status_detail: str = ""

    def mark(
        self,
        status: ResultStatus,
        expected: Decimal | None = None,
        detail: str = "",
    ) -> None:
        self.status = status
        self.expected_price = expected
        self.status_detail = detail

    @property
    def status_label(self) -> str:
        if self.status is None:
            return ""
        if self.status_detail:
            return self.status_detail
        return self.status.value

    def to_record(self) -> dict[str, Any]:
        """Flatten for spreadsheet export. Key order is stable."""
        record: dict[str, Any] = dict(self.configuration)
        if self.price_text:
            record["Price"] = self.price_text
        elif self.observed_price is not None:
            record["Price"] = f"{self.observed_price:.2f}"
        else:
            record["Price"] = ""
        record["Shipping"] = self.shipping
        record["ComboInfo"] = self.observed_text
        record["Status"] = self.status_label
        return record


class CheckResult(BaseModel):
    """Result of a single content or attribute assertion."""
    section: str
    check: str
    expected: str = ""
    found: str = ""
    passed: bool = False
    detail: str = ""

    def to_record(self) -> dict[str, Any]:
        return {
            "Section": self.section,
            "Check": self.check,
            "Expected": self.expected,
            "Found": self.found,
            "Status": "Pass" if self.passed else "Fail",
            "Detail": self.detail,
        }


class Evidence(BaseModel):
    screenshots: list[str] = Field(default_factory=list)  # file paths
    console_logs: list[str] = Field(default_factory=list)
    video_path: Optional[str] = None


class RunSummary(BaseModel):
    run_id: str
    account: str
    env: str
    product: str
    started_at: str
    completed_at: str = ""
    duration_seconds: float = 0.0
    rows: list[ResultRow] = Field(default_factory=list)
    checks: list[CheckResult] = Field(default_factory=list)
    matched: int = 0
    mismatched: int = 0
    no_baseline: int = 0
    skipped: int = 0
    export_path: Optional[str] = None
    aborted_reason: Optional[str] = None
    evidence: Evidence = Field(default_factory=Evidence)

    def tally(self) -> None:
        """Recount per-status totals from the rows."""
        self.matched = sum(1 for r in self.rows if r.status is ResultStatus.MATCH)
        self.mismatched = sum(1 for r in self.rows if r.status is ResultStatus.MISMATCH)
        self.no_baseline = sum(1 for r in self.rows if r.status is ResultStatus.NO_BASELINE)
        self.skipped = sum(1 for r in self.rows if r.status is ResultStatus.SKIPPED)

    @property
    def checks_passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def checks_failed(self) -> int:
        return sum(1 for c in self.checks if not c.passed)
