"""
Screenshot report assembly.

Builds the per-test ``report.html`` gallery from the screenshots in a test
directory and writes the launch-level aggregate report.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

REPORT_NAME = "report.html"
REPORT_TITLE = "Test steps demo"
MAX_IMAGE_TITLE = 300
EXCLUDED_FILES = frozenset({"test.log", "sql.log", REPORT_NAME})

# Test directories live two levels below the report root
ASSETS_PATH = "../../gallery-lib"


class ScreenshotComments:
    """Captions keyed by screenshot file name. Last write wins."""

    def __init__(self):
        self._comments: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, screen_id: str, comment: str) -> None:
        if not screen_id:
            return
        with self._lock:
            self._comments[screen_id] = comment

    def get(self, screen_id: str) -> str:
        with self._lock:
            return self._comments.get(screen_id) or ""

    def clear(self) -> None:
        with self._lock:
            self._comments.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._comments)


class ReportAssembler:
    """
    Renders screenshot galleries with Jinja2 templates.

    Screenshots are ordered by file name, which for timestamp-named
    screenshots is capture order.
    """

    def __init__(
        self,
        comments: ScreenshotComments,
        template_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the report assembler.

        Args:
            comments: Screenshot captions
            template_dir: Directory containing ``image.html.j2`` and ``container.html.j2``
            logger: Optional logger instance
        """
        self.comments = comments
        self.template_dir = template_dir or (Path(__file__).parent / "templates")
        self.logger = logger or logging.getLogger(__name__)

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=True,
        )

    def screenshot_names(self, test_directory: Path) -> List[str]:
        """Sorted names of the files that belong in the gallery."""
        return sorted(
            path.name
            for path in Path(test_directory).iterdir()
            if path.is_file() and path.name not in EXCLUDED_FILES
        )

    def render(self, names: List[str]) -> str:
        image_template = self.jinja_env.get_template("image.html.j2")
        fragments = [
            image_template.render(
                image=name, title=self.comments.get(name)[:MAX_IMAGE_TITLE]
            )
            for name in names
        ]
        return self.jinja_env.get_template("container.html.j2").render(
            title=REPORT_TITLE,
            images="".join(fragments),
            assets_path=ASSETS_PATH,
        )

    def assemble(self, test_directory: Path) -> Optional[Path]:
        """
        Write ``report.html`` for a test directory.

        Args:
            test_directory: Directory holding the test's screenshots

        Returns:
            Path of the written report, or None if there were no screenshots
            or the report could not be written
        """
        try:
            names = self.screenshot_names(test_directory)
            if not names:
                return None

            report_path = Path(test_directory) / REPORT_NAME
            report_path.write_text(self.render(names), encoding="utf-8")
            self.logger.debug(f"Test report generated: {report_path}")
            return report_path
        except Exception as e:
            self.logger.error(f"Test report generation failed for {test_directory}: {e}")
            return None

    def write_launch_report(self, content: str, report_root: Path, launch_root: Path) -> List[Path]:
        """
        Write the aggregate launch report to the report root and the launch root.

        Returns:
            Paths that were written
        """
        written = []
        for target in (Path(report_root) / REPORT_NAME, Path(launch_root) / REPORT_NAME):
            try:
                target.write_text(content, encoding="utf-8")
                written.append(target)
            except OSError as e:
                self.logger.error(f"Launch report not written to {target}: {e}")
        return written
