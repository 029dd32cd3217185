"""
Artifact download with local fallback.

Resolves an artifact from the local store, then the auto-download folder,
then the automation grid, and fails the calling test when none has it.
"""

import re
import shutil
import time
from pathlib import Path
from typing import Callable, List, Optional

from ..core.exceptions import ArtifactNotFoundError, InvalidSessionError, RunReportError
from ..core.logging_config import get_logger, log_performance
from ..storage.artifacts import LocalArtifactStore
from .locator import RemoteArtifactLocator
from .models import AutomationSession


class ArtifactDownloader:
    """Brings session artifacts into the local artifact store."""

    def __init__(
        self,
        store: LocalArtifactStore,
        locator: RemoteArtifactLocator,
        auto_download_folder_provider: Callable[[], Path],
        default_timeout: float = 10.0,
    ):
        """
        Initialize the artifact downloader.

        Args:
            store: Destination artifact store
            locator: Access to the grid's download folder
            auto_download_folder_provider: Returns the local folder the browser downloads into
            default_timeout: Seconds to wait for a remote artifact when no timeout is given
        """
        self.store = store
        self.locator = locator
        self._auto_download_folder_provider = auto_download_folder_provider
        self.default_timeout = default_timeout
        self.logger = get_logger(__name__)

    def _auto_download_artifact(self, name: str) -> Optional[Path]:
        candidate = self._auto_download_folder_provider() / name
        return candidate if candidate.is_file() else None

    async def download_artifact(
        self,
        session: AutomationSession,
        name: str,
        timeout: Optional[float] = None,
        attach: bool = True,
    ) -> Path:
        """
        Return artifact ``name`` from the local store, fetching it if needed.

        Args:
            session: Automation session that produced the artifact
            name: Artifact file name
            timeout: Seconds to wait for the artifact to appear on the grid
            attach: Forward the artifact to the attachment sink

        Returns:
            Path of the artifact in the local store

        Raises:
            ArtifactNotFoundError: If no source has the artifact
            ArtifactDownloadError: If the grid has it but streaming fails
        """
        existing = self.store.find(name)
        if existing is not None:
            if attach:
                self.store.save_file(existing, name)
            return existing

        timeout = self.default_timeout if timeout is None else timeout
        target = self.store.path_for(name)
        self.logger.debug(f"Artifact file to download: {target}")

        local_copy = self._auto_download_artifact(name)
        if local_copy is not None:
            if local_copy.resolve() != target.resolve():
                shutil.copyfile(local_copy, target)
            self.logger.debug(f"Successfully copied artifact from auto download folder: {name}")
        elif await self.locator.wait_until_available(session, name, timeout):
            await self.locator.fetch(session, name, target)
        else:
            raise ArtifactNotFoundError(name, timeout=timeout)

        if attach:
            # Store.save_file attaches without copying when source and target match
            self.store.save_file(target, name)
        return target

    async def download_artifacts(
        self,
        session: AutomationSession,
        pattern: str,
        attach: bool = True,
    ) -> List[Path]:
        """
        Download every artifact whose name fully matches ``pattern``.

        Directories are ignored. Each artifact is downloaded independently;
        a failure is logged and the rest of the batch continues.

        Args:
            session: Automation session that produced the artifacts
            pattern: Regular expression matched against the whole name
            attach: Forward each artifact to the attachment sink

        Returns:
            Paths of the artifacts that were resolved

        Raises:
            InvalidSessionError: If the grid reports the session as invalid
        """
        start_time = time.time()
        regex = re.compile(pattern)
        names = [
            name
            for name in await self.locator.list_remote_names(session)
            if not name.endswith("/") and regex.fullmatch(name)
        ]

        downloaded: List[Path] = []
        failed: List[str] = []
        for name in names:
            try:
                downloaded.append(
                    await self.download_artifact(session, name, attach=attach)
                )
            except InvalidSessionError:
                raise
            except (RunReportError, OSError) as e:
                failed.append(name)
                self.logger.error(f"Artifact {name} was not downloaded: {e}")

        log_performance(
            self.logger,
            "download_artifacts",
            time.time() - start_time,
            pattern=pattern,
            downloaded=len(downloaded),
            failed=len(failed),
        )
        return downloaded
