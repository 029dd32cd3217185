"""
Report context of a launch.

``ReportContext`` is the single object a test framework integration holds for
the whole launch. It wires the launch root, per-test directories, screenshot
writer, artifact store, grid downloader and report assembler together.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, List, Optional, Union

from .core.config import Config
from .core.exceptions import ArtifactStoreError
from .core.logging_config import TestLogHandler, get_logger, install_test_log_handler
from .remote.downloader import ArtifactDownloader
from .remote.locator import RemoteArtifactLocator
from .remote.models import AutomationSession, SessionHealthCheck
from .reporting.assembler import ReportAssembler, ScreenshotComments
from .reporting.links import ReportLinks
from .storage.artifacts import LocalArtifactStore
from .storage.images import AsyncImageWriter, ImageSource
from .storage.launch import LaunchRootManager
from .storage.models import AttachmentSink
from .storage.test_dirs import TestContext, TestDirectoryManager


class ReportContext:
    """
    Owns the on-disk output of one launch.

    Safe to share between test threads. Each thread (or asyncio task) sees
    its own test directory; worker threads spawned by a test receive the
    parent's directory through ``capture_test_context`` / ``wrap``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        sink: Optional[AttachmentSink] = None,
        health_check: Optional[SessionHealthCheck] = None,
        assets_archive: Optional[Path] = None,
    ):
        """
        Initialize the report context.

        Args:
            config: runreport configuration, read from the environment if omitted
            sink: Receives saved and downloaded artifacts
            health_check: Decides whether a 404 grid listing means the session is gone
            assets_archive: Static report assets zip, defaults to the bundled one

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = config or Config.from_env()
        self.config.validate()
        self.logger = get_logger(__name__)
        self.logger.debug("Report context created", extra={"metadata": self.config.to_dict()})

        self.launch = LaunchRootManager(self.config, assets_archive=assets_archive)
        self.test_dirs = TestDirectoryManager(
            self.launch.get_root_directory, retry_pause=self.config.rename_retry_pause
        )
        self.images = AsyncImageWriter(max_workers=self.config.screenshot_workers)
        self.artifacts = LocalArtifactStore(
            self.launch.get_root_directory,
            custom_folder=self.config.custom_artifacts_folder,
            sink=sink,
        )
        self.locator = RemoteArtifactLocator(
            self.get_auto_download_folder,
            poll_interval=self.config.remote_poll_interval,
            health_check=health_check,
        )
        self.downloader = ArtifactDownloader(
            self.artifacts,
            self.locator,
            self.get_auto_download_folder,
            default_timeout=self.config.artifact_availability_timeout,
        )
        self.comments = ScreenshotComments()
        self.assembler = ReportAssembler(self.comments)
        self.links = ReportLinks(self.config, self.launch)

        self.log_handler: Optional[TestLogHandler] = None
        self._auto_download_folder: Optional[Path] = None
        self._auto_download_lock = threading.Lock()

        self.test_dirs.add_release_hook(self._release_test_log)
        self.test_dirs.add_release_hook(self._drain_screenshots)

    def __enter__(self) -> "ReportContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Launch

    @property
    def root_id(self) -> Optional[int]:
        return self.launch.root_id

    def get_root_directory(self) -> Path:
        return self.launch.get_root_directory()

    def get_temp_dir(self) -> Path:
        return self.launch.get_temp_directory()

    def remove_temp_dir(self) -> None:
        self.launch.remove_temp_directory()

    def enable_test_logs(self) -> TestLogHandler:
        """Mirror log records of each test into ``test.log`` of its directory."""
        if self.log_handler is None:
            self.launch.get_root_directory()
            self.log_handler = install_test_log_handler(
                self.test_dirs.current_path, self.config, str(self.root_id)
            )
        return self.log_handler

    def close(self) -> None:
        """Wait for pending screenshots and release open log files."""
        self.images.shutdown(wait=True)
        if self.log_handler is not None:
            logging.getLogger().removeHandler(self.log_handler)
            self.log_handler.close()
            self.log_handler = None

    # Test directories

    def get_test_dir(self, name: Optional[str] = None) -> Path:
        """Directory of the current test, created on first call."""
        return self.test_dirs.get_or_create(name).path

    def set_custom_test_dir_name(self, name: str) -> Path:
        """Rename the current test directory after the test, once."""
        return self.test_dirs.set_custom_name(name).path

    def clear_test_dir(self) -> None:
        self.test_dirs.clear()

    def capture_test_context(self) -> TestContext:
        return self.test_dirs.capture()

    @contextmanager
    def bind_test_context(self, context: TestContext) -> Iterator[None]:
        with self.test_dirs.bind(context):
            yield

    def wrap(self, func: Callable) -> Callable:
        """Bind ``func`` to the current test directory for use in another thread."""
        return self.test_dirs.wrap(func)

    def _release_test_log(self, directory: Path) -> None:
        if self.log_handler is not None:
            self.log_handler.release(directory)

    def _drain_screenshots(self, directory: Path) -> None:
        self.images.wait_for(directory)

    # Screenshots and reports

    def save_screenshot(self, image: ImageSource) -> str:
        """
        Queue a screenshot for the current test and return its file name.

        The file appears in the test directory once the writer has processed
        it; ``wait_for_screenshots`` and ``finish_test`` wait for that.
        """
        name = self.images.next_screenshot_name()
        path = self.get_test_dir() / name
        if self.config.resize_screenshots:
            self.images.submit(
                image,
                path,
                width=self.config.big_screen_width,
                height=self.config.big_screen_height,
            )
        else:
            self.images.submit(image, path)
        return name

    def wait_for_screenshots(self, timeout: Optional[float] = None) -> bool:
        directory = self.test_dirs.current_path()
        if directory is None:
            return True
        return self.images.wait_for(directory, timeout=timeout)

    def add_screenshot_comment(self, screen_id: str, comment: str) -> None:
        self.comments.add(screen_id, comment)

    def get_screenshot_comment(self, screen_id: str) -> str:
        return self.comments.get(screen_id)

    def generate_test_report(self) -> Optional[Path]:
        """Assemble ``report.html`` for the current test directory."""
        directory = self.test_dirs.current_path()
        if directory is None:
            return None
        self.images.wait_for(directory)
        return self.assembler.assemble(directory)

    def finish_test(self) -> Optional[Path]:
        """
        Close out the current test: wait for its screenshots, assemble its
        report and unbind its directory.

        Returns:
            Path of the assembled report, or None if nothing was assembled
        """
        try:
            return self.generate_test_report()
        finally:
            self.clear_test_dir()

    def generate_html_report(self, content: str) -> List[Path]:
        """Write the aggregate launch report to the report root and the launch root."""
        return self.assembler.write_launch_report(
            content, self.launch.report_root, self.get_root_directory()
        )

    # Artifacts

    def get_artifacts_folder(self) -> Path:
        return self.artifacts.directory

    def get_auto_download_folder(self) -> Path:
        """
        Folder the browser downloads into.

        The configured ``auto_download_folder`` when ``auto_download`` is on,
        otherwise the artifacts folder. Created if missing.
        """
        with self._auto_download_lock:
            if self._auto_download_folder is not None and self._auto_download_folder.is_dir():
                return self._auto_download_folder

            if self.config.auto_download and self.config.auto_download_folder:
                folder = self.config.auto_download_folder
            else:
                folder = self.artifacts.directory

            if not folder.is_dir():
                self.logger.error(
                    f"Auto download folder does not exist or is not a directory, creating: {folder}"
                )
                try:
                    folder.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ArtifactStoreError(
                        f"Auto download folder is not created: {folder}: {e}",
                        path=str(folder),
                    ) from e

            self._auto_download_folder = folder
            return folder

    def save_artifact(self, name: str, data: Union[bytes, BinaryIO]) -> Path:
        return self.artifacts.save(name, data)

    def save_artifact_file(self, source: Path) -> Path:
        return self.artifacts.save_file(source)

    def get_artifact(self, name: str) -> Optional[Path]:
        return self.artifacts.find(name)

    def get_all_artifacts(self) -> List[Path]:
        return self.artifacts.list()

    def delete_artifact(self, name: str) -> bool:
        return self.artifacts.delete(name)

    def delete_all_artifacts(self) -> int:
        return self.artifacts.delete_all()

    async def list_auto_download_artifacts(self, session: AutomationSession) -> List[str]:
        return await self.locator.list_remote_names(session)

    async def download_artifact(
        self,
        session: AutomationSession,
        name: str,
        timeout: Optional[float] = None,
        attach: bool = True,
    ) -> Path:
        return await self.downloader.download_artifact(session, name, timeout, attach)

    async def download_artifacts(
        self, session: AutomationSession, pattern: str, attach: bool = True
    ) -> List[Path]:
        return await self.downloader.download_artifacts(session, pattern, attach)

    # Links

    def test_artifacts_link(self) -> str:
        return self.links.test_artifacts_link()

    def test_screenshots_link(self) -> str:
        return self.links.test_screenshots_link(self.get_test_dir())

    def test_log_link(self) -> str:
        return self.links.test_log_link(self.get_test_dir())

    def cucumber_report_link(self) -> str:
        return self.links.cucumber_report_link()
