"""
Shareable links to launch output.

Links point at the configured report server when ``report_url`` is set and
at the local filesystem otherwise.
"""

from pathlib import Path
from typing import Optional

from ..core.config import Config
from ..core.logging_config import get_logger
from ..storage.artifacts import ARTIFACTS_FOLDER
from ..storage.launch import LaunchRootManager
from ..storage.test_dirs import TestDirectoryManager
from .assembler import REPORT_NAME

TEST_LOG_NAME = "test.log"
CUCUMBER_REPORT_FOLDER = "CucumberReport"
CUCUMBER_REPORT_SUBFOLDER = "cucumber-html-reports"
CUCUMBER_REPORT_FILE_NAME = "overview-features.html"


class ReportLinks:
    """Builds the artifact, screenshot, log and cucumber report links of a launch."""

    def __init__(self, config: Config, launch: LaunchRootManager):
        self.config = config
        self.launch = launch
        self.logger = get_logger(__name__)

    def _link(self, *parts: str, report_url: Optional[str] = None) -> str:
        report_url = self.config.report_url if report_url is None else report_url
        suffix = "/".join(parts)
        if report_url:
            return f"{report_url}/{self.launch.root_id}/{suffix}"
        return f"file://{self.launch.get_root_directory().resolve().as_posix()}/{suffix}"

    def test_artifacts_link(self) -> str:
        return self._link(ARTIFACTS_FOLDER)

    def test_screenshots_link(self, test_directory: Path) -> str:
        """Link to the test's screenshot report, empty when it has no screenshots."""
        test_directory = Path(test_directory)
        try:
            if not any(test_directory.glob("*.png")):
                return ""
        except OSError as e:
            self.logger.error(f"Exception during report directory scanning: {e}")
            return ""
        test = TestDirectoryManager.sanitize(test_directory.name)
        return self._link(test, REPORT_NAME)

    def test_log_link(self, test_directory: Path) -> str:
        """Link to the test's log, empty when no log was written."""
        test_directory = Path(test_directory)
        if not (test_directory / TEST_LOG_NAME).exists():
            return ""
        test = TestDirectoryManager.sanitize(test_directory.name)
        return self._link(test, TEST_LOG_NAME)

    def cucumber_report_link(self) -> str:
        report_url = self.config.report_url
        if "n/a" in report_url:
            self.logger.error("Report URL contains n/a. Replace it.")
            report_url = report_url.replace("n/a", "")
        return self._link(
            CUCUMBER_REPORT_FOLDER,
            CUCUMBER_REPORT_SUBFOLDER,
            CUCUMBER_REPORT_FILE_NAME,
            report_url=report_url,
        )
