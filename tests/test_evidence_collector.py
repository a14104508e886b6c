"""Tests for the evidence collector module."""

from unittest.mock import AsyncMock, Mock

import pytest

from storefront_qa.executor.evidence_collector import EvidenceCollector
from storefront_qa.models.result import Evidence


class TestEvidenceCollectorInit:
    """Tests for EvidenceCollector initialization."""

    def test_creates_evidence_dir(self, tmp_path):
        evidence_dir = tmp_path / "evidence" / "run_001"
        EvidenceCollector(evidence_dir)
        assert evidence_dir.exists()

    def test_starts_empty(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        assert collector.console_logs == []
        assert collector.screenshots == []


class TestSetupListeners:
    """Tests for console listener setup."""

    def test_captures_console_messages(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")

        callbacks = {}
        mock_page = Mock()
        mock_page.on = Mock(side_effect=lambda event, cb: callbacks.update({event: cb}))

        collector.setup_listeners(mock_page)

        msg = Mock()
        msg.type = "error"
        msg.text = "Uncaught TypeError: cart is undefined"
        callbacks["console"](msg)

        assert collector.console_logs == ["[error] Uncaught TypeError: cart is undefined"]


class TestTakeScreenshot:
    """Tests for screenshot capture."""

    @pytest.mark.asyncio
    async def test_screenshot_uses_label(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        mock_page = AsyncMock()

        path = await collector.take_screenshot(mock_page, "login-success-sg-dev")

        assert path.endswith("login-success-sg-dev.png")
        assert collector.screenshots == [path]
        mock_page.screenshot.assert_awaited_once_with(path=path, full_page=True)

    @pytest.mark.asyncio
    async def test_timestamped_screenshot(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        mock_page = AsyncMock()

        path = await collector.take_screenshot(mock_page, "add-to-cart", timestamped=True)

        name = path.rsplit("/", 1)[-1]
        assert name.startswith("add-to-cart-")
        assert name[len("add-to-cart-"):-len(".png")].isdigit()

    @pytest.mark.asyncio
    async def test_viewport_screenshot(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        mock_page = AsyncMock()

        await collector.take_screenshot(mock_page, "banner", full_page=False)

        assert mock_page.screenshot.await_args.kwargs["full_page"] is False

    @pytest.mark.asyncio
    async def test_screenshot_handles_failure(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        mock_page = AsyncMock()
        mock_page.screenshot = AsyncMock(side_effect=RuntimeError("Browser closed"))

        path = await collector.take_screenshot(mock_page, "fail")

        assert path == ""
        assert collector.screenshots == []


class TestSaveLogs:
    """Tests for persisting logs to files."""

    def test_saves_console_log(self, tmp_path):
        evidence_dir = tmp_path / "evidence"
        collector = EvidenceCollector(evidence_dir)
        collector.console_logs = ["[error] Failed", "[info] Loaded"]

        collector.save_logs()

        content = (evidence_dir / "console.log").read_text()
        assert "[error] Failed" in content
        assert "[info] Loaded" in content

    def test_saves_empty_logs(self, tmp_path):
        evidence_dir = tmp_path / "evidence"
        collector = EvidenceCollector(evidence_dir)

        collector.save_logs()

        assert (evidence_dir / "console.log").exists()


class TestBuildEvidence:
    """Tests for building Evidence model."""

    def test_basic_evidence(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        collector.console_logs = ["[error] Test error"]
        collector.screenshots = ["/path/to/shot.png"]

        evidence = collector.build_evidence(video_path="/path/to/video.webm")

        assert isinstance(evidence, Evidence)
        assert evidence.screenshots == ["/path/to/shot.png"]
        assert evidence.console_logs == ["[error] Test error"]
        assert evidence.video_path == "/path/to/video.webm"

    def test_evidence_is_a_copy(self, tmp_path):
        collector = EvidenceCollector(tmp_path / "evidence")
        evidence = collector.build_evidence()
        collector.console_logs.append("later")

        assert evidence.console_logs == []
        assert evidence.video_path is None
