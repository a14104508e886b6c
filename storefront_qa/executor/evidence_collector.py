"""Evidence collector — captures screenshots and console output during a run."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from playwright.async_api import Page

from storefront_qa.models.result import Evidence

logger = logging.getLogger(__name__)


class EvidenceCollector:
    """Collects run evidence (screenshots, browser console) under one directory."""

    def __init__(self, evidence_dir: Path):
        self.evidence_dir = evidence_dir
        self.evidence_dir.mkdir(parents=True, exist_ok=True)
        self.console_logs: list[str] = []
        self.screenshots: list[str] = []

    def setup_listeners(self, page: Page) -> None:
        """Attach a console listener to a page."""
        page.on("console", lambda msg: self.console_logs.append(
            f"[{msg.type}] {msg.text}"
        ))

    async def take_screenshot(
        self, page: Page, label: str, full_page: bool = True, timestamped: bool = False,
    ) -> str:
        """Capture a screenshot and return the file path ('' on failure)."""
        name = f"{label}-{int(time.time() * 1000)}.png" if timestamped else f"{label}.png"
        path = self.evidence_dir / name
        try:
            await page.screenshot(path=str(path), full_page=full_page)
        except Exception as e:
            logger.warning("Screenshot %s failed: %s", name, e)
            return ""
        self.screenshots.append(str(path))
        logger.debug("Saved screenshot %s", path)
        return str(path)

    def save_logs(self) -> None:
        """Persist the browser console log."""
        console_path = self.evidence_dir / "console.log"
        with open(console_path, "w") as f:
            f.write("\n".join(self.console_logs))

    def build_evidence(self, video_path: str | None = None) -> Evidence:
        return Evidence(
            screenshots=list(self.screenshots),
            console_logs=list(self.console_logs),
            video_path=video_path,
        )
