"""
Launch root directory and history retention.

Creates the single root directory of a launch under the report root, prunes
old launch directories beyond the configured history size and unpacks the
static report assets next to them.
"""

import copy
import shutil
import threading
import time
import zipfile
from pathlib import Path
from typing import List, Optional

from ..core.config import Config
from ..core.exceptions import LaunchRootError
from ..core.logging_config import get_logger, log_performance

GALLERY_DIR = "gallery-lib"
GALLERY_ZIP = "gallery-lib.zip"
LAUNCH_REPORT_NAME = "report.html"
TEMP_FOLDER = "temp"

DEFAULT_ASSETS_ARCHIVE = Path(__file__).resolve().parent.parent / "reporting" / "static" / GALLERY_ZIP


class LaunchRootManager:
    """
    Owns the root directory of one launch.

    The root is created lazily on the first ``get_root_directory`` call and
    is never recreated. Retention pruning and static asset installation run
    exactly once, right before the root is created.
    """

    def __init__(self, config: Config, assets_archive: Optional[Path] = None):
        """
        Initialize the launch root manager.

        Args:
            config: runreport configuration
            assets_archive: Zip with the static report assets, defaults to the bundled one
        """
        self.config = config
        self.report_root = Path(config.report_root).resolve()
        self.assets_archive = Path(assets_archive) if assets_archive else DEFAULT_ASSETS_ARCHIVE
        self.logger = get_logger(__name__)

        self._root_id: Optional[int] = None
        self._root_directory: Optional[Path] = None
        self._temp_directory: Optional[Path] = None
        self._lock = threading.Lock()
        self._temp_lock = threading.Lock()

    @classmethod
    def for_existing(cls, config: Config, launch_directory: Path) -> "LaunchRootManager":
        """Manager bound to a launch directory created by an earlier process. No retention runs."""
        launch_directory = Path(launch_directory).resolve()
        config = copy.copy(config)
        config.report_root = launch_directory.parent
        manager = cls(config)
        manager._root_directory = launch_directory
        if launch_directory.name.isdigit():
            manager._root_id = int(launch_directory.name)
        return manager

    @property
    def root_id(self) -> Optional[int]:
        """Millisecond timestamp naming the launch directory, None until created."""
        return self._root_id

    @property
    def is_created(self) -> bool:
        return self._root_directory is not None

    @property
    def launch_report_path(self) -> Path:
        """Aggregate report file in the report root."""
        return self.report_root / LAUNCH_REPORT_NAME

    def get_root_directory(self) -> Path:
        """
        Return the launch root directory, creating it on first call.

        Returns:
            Path to ``<report_root>/<root_id>``

        Raises:
            LaunchRootError: If the report root or launch root cannot be created
        """
        if self._root_directory is not None:
            return self._root_directory

        with self._lock:
            if self._root_directory is not None:
                return self._root_directory

            self.remove_old_reports()

            try:
                self.report_root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LaunchRootError(
                    f"Folder not created: {self.report_root}: {e}",
                    path=str(self.report_root),
                ) from e

            root_id = int(time.time() * 1000)
            directory = self.report_root / str(root_id)
            # A previous launch in the same millisecond cannot be reused
            while directory.exists():
                root_id += 1
                directory = self.report_root / str(root_id)

            try:
                directory.mkdir()
            except OSError as e:
                raise LaunchRootError(
                    f"Folder not created: {directory}: {e}", path=str(directory)
                ) from e

            self._root_id = root_id
            self._root_directory = directory
            self.logger.info(
                f"Launch root directory created: {directory}",
                extra={"metadata": {"root_id": root_id}},
            )

            self.copy_static_assets()

        return self._root_directory

    def remove_old_reports(self) -> List[Path]:
        """
        Remove the aggregate report and the oldest launch directories.

        Keeps the newest ``max_screenshot_history - 1`` launch directories so
        that, together with the launch being created, ``max_screenshot_history``
        remain. Hidden directories and the static assets directory are never
        touched.

        Returns:
            Directories that were deleted
        """
        removed: List[Path] = []
        if not self.report_root.exists():
            return removed

        start_time = time.time()

        report_file = self.launch_report_path
        if report_file.exists():
            try:
                report_file.unlink()
            except OSError as e:
                self.logger.warning(f"Failed to remove old launch report {report_file}: {e}")

        max_history = self.config.max_screenshot_history
        if max_history <= 0:
            return removed

        launch_dirs = [
            path
            for path in self.report_root.iterdir()
            if path.is_dir() and not path.name.startswith(".") and path.name != GALLERY_DIR
        ]

        if len(launch_dirs) + 1 <= max_history:
            return removed

        launch_dirs.sort(key=lambda p: p.name, reverse=True)
        for directory in launch_dirs[max_history - 1:]:
            try:
                shutil.rmtree(directory)
                removed.append(directory)
                self.logger.debug(f"Removed old launch directory: {directory}")
            except OSError as e:
                self.logger.error(f"Failed to remove old launch directory {directory}: {e}")

        log_performance(
            self.logger,
            "launch_retention",
            time.time() - start_time,
            removed_count=len(removed),
            max_history=max_history,
        )
        return removed

    def copy_static_assets(self) -> bool:
        """
        Unpack the static report assets into the report root once.

        Returns:
            True if the assets were unpacked by this call
        """
        target = self.report_root / GALLERY_DIR
        if target.exists():
            return False

        if not self.assets_archive.exists():
            self.logger.warning(f"Unable to find static report assets: {self.assets_archive}")
            return False

        try:
            with zipfile.ZipFile(self.assets_archive) as archive:
                archive.extractall(self.report_root)
            self.logger.debug(f"Static report assets unpacked to {target}")
            return True
        except (OSError, zipfile.BadZipFile) as e:
            self.logger.error(f"Unable to unpack static report assets: {e}")
            return False

    def get_temp_directory(self) -> Path:
        """Return ``<root>/temp``, creating it on first call."""
        with self._temp_lock:
            if self._temp_directory is None:
                directory = self.get_root_directory() / TEMP_FOLDER
                try:
                    directory.mkdir(exist_ok=True)
                except OSError as e:
                    raise LaunchRootError(
                        f"Folder not created: {directory}: {e}", path=str(directory)
                    ) from e
                self._temp_directory = directory
            return self._temp_directory

    def remove_temp_directory(self) -> None:
        with self._temp_lock:
            if self._temp_directory is None:
                return
            try:
                shutil.rmtree(self._temp_directory)
            except OSError as e:
                self.logger.debug(f"Unable to remove temp directory: {e}")
            self._temp_directory = None
