"""Tests for JSON report generation."""

import json
from decimal import Decimal
from pathlib import Path

from storefront_qa.models.result import CheckResult, ResultRow, ResultStatus, RunSummary
from storefront_qa.reporter.json_report import generate_json_report, load_json_report


def make_summary(**kwargs) -> RunSummary:
    defaults = dict(
        run_id="run_0001",
        account="sg",
        env="dev",
        product="Button Badges",
        started_at="2025-01-01T00:00:00Z",
        completed_at="2025-01-01T00:05:00Z",
    )
    defaults.update(kwargs)
    return RunSummary(**defaults)


class TestGenerateJsonReport:
    """Tests for generate_json_report function."""

    def test_generate_basic_report(self, tmp_path: Path):
        """Test generating a basic JSON report."""
        output_file = tmp_path / "report.json"
        generate_json_report(make_summary(matched=4, skipped=1), output_file)

        with open(output_file) as f:
            data = json.load(f)

        assert data["run_id"] == "run_0001"
        assert data["matched"] == 4
        assert data["skipped"] == 1

    def test_prices_serialized_as_text(self, tmp_path: Path):
        """Test decimal prices keep their exact digits."""
        row = ResultRow(configuration={"Shape": "Circle"}, observed_price=Decimal("4.50"))
        row.mark(ResultStatus.MATCH, expected=Decimal("4.4"))

        output_file = tmp_path / "report.json"
        generate_json_report(make_summary(rows=[row]), output_file)

        data = json.loads(output_file.read_text())
        assert data["rows"][0]["observed_price"] == "4.50"
        assert data["rows"][0]["status"] == "Match"

    def test_report_includes_check_counts(self, tmp_path: Path):
        """Test derived check totals are written."""
        summary = make_summary(checks=[
            CheckResult(section="Quote Banner", check="Title", passed=True),
            CheckResult(section="Quote Banner", check="Subtitle"),
        ])

        output_file = tmp_path / "report.json"
        generate_json_report(summary, output_file)

        data = json.loads(output_file.read_text())
        assert data["checks_passed"] == 1
        assert data["checks_failed"] == 1

    def test_report_creates_parent_directory(self, tmp_path: Path):
        """Test report creation creates parent directories."""
        output_file = tmp_path / "subdir" / "nested" / "report.json"

        generate_json_report(make_summary(), output_file)

        assert output_file.exists()


class TestLoadJsonReport:
    """Tests for reading reports back."""

    def test_reload(self, tmp_path: Path):
        row = ResultRow(configuration={"Shape": "Circle", "Quantity": "5"},
                        observed_price=Decimal("4.50"), price_text="S$4.50")
        row.mark(ResultStatus.SKIPPED, detail="Skipped: option missing")
        summary = make_summary(rows=[row], aborted_reason="Login failed",
                               checks=[CheckResult(section="s", check="c", passed=True)])

        output_file = tmp_path / "report.json"
        generate_json_report(summary, output_file)
        loaded = load_json_report(output_file)

        assert loaded.rows[0].observed_price == Decimal("4.50")
        assert loaded.rows[0].status is ResultStatus.SKIPPED
        assert loaded.rows[0].status_label == "Skipped: option missing"
        assert loaded.aborted_reason == "Login failed"
        assert loaded.checks_passed == 1
