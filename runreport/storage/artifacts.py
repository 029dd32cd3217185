"""
Local artifact storage.

Keeps the named files of a launch in one artifacts directory and forwards
every saved file to the test attachment sink.
"""

import shutil
import threading
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Union

from ..core.exceptions import ArtifactStoreError
from ..core.logging_config import get_logger
from .models import AttachmentSink, NullAttachmentSink

ARTIFACTS_FOLDER = "artifacts"


class LocalArtifactStore:
    """
    Artifacts directory of a launch.

    The directory is resolved once: the configured override folder if set,
    otherwise ``<root>/artifacts``. An existing directory is reused.
    """

    def __init__(
        self,
        root_provider: Callable[[], Path],
        custom_folder: Optional[Path] = None,
        sink: Optional[AttachmentSink] = None,
    ):
        """
        Initialize the artifact store.

        Args:
            root_provider: Returns the launch root directory
            custom_folder: Folder used instead of ``<root>/artifacts``
            sink: Receives every saved artifact
        """
        self._root_provider = root_provider
        self.custom_folder = Path(custom_folder) if custom_folder else None
        self.sink = sink or NullAttachmentSink()
        self.logger = get_logger(__name__)

        self._directory: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        """The artifacts directory, created on first access."""
        if self._directory is not None:
            return self._directory

        with self._lock:
            if self._directory is None:
                if self.custom_folder is not None:
                    directory = self.custom_folder
                else:
                    directory = self._root_provider() / ARTIFACTS_FOLDER

                if directory.is_dir():
                    self.logger.info(f"Artifacts folder already exists: {directory}")
                else:
                    try:
                        directory.mkdir(parents=True)
                    except OSError as e:
                        raise ArtifactStoreError(
                            f"Artifacts folder not created: {directory}: {e}",
                            path=str(directory),
                        ) from e
                    self.logger.debug(f"Artifacts folder created: {directory}")

                self._directory = directory
        return self._directory

    def _attach(self, name: str, data: Union[bytes, Path]) -> None:
        try:
            self.sink.attach(name, data)
        except Exception as e:
            self.logger.warning(f"Failed to attach artifact {name} to test: {e}")

    def path_for(self, name: str) -> Path:
        """Location an artifact called ``name`` would have in the store."""
        return self.directory / name

    def save(self, name: str, data: Union[bytes, BinaryIO]) -> Path:
        """
        Save ``data`` as artifact ``name``, replacing any previous artifact.

        Args:
            name: Artifact file name
            data: Raw bytes or a binary stream

        Returns:
            Path of the stored artifact
        """
        content = data if isinstance(data, (bytes, bytearray)) else data.read()
        target = self.path_for(name)
        target.write_bytes(content)
        self.logger.debug(
            f"Artifact saved: {name}",
            extra={"metadata": {"artifact": name, "file_size": len(content)}},
        )
        self._attach(name, bytes(content))
        return target

    def save_file(self, source: Path, name: Optional[str] = None) -> Path:
        """
        Copy ``source`` into the store.

        Args:
            source: File to copy
            name: Artifact name, defaults to the source file name

        Returns:
            Path of the stored artifact
        """
        source = Path(source)
        name = name or source.name
        target = self.path_for(name)
        if source.resolve() != target.resolve():
            shutil.copyfile(source, target)
        self.logger.debug(f"Artifact copied: {source} -> {target}")
        self._attach(name, target)
        return target

    def find(self, name: str) -> Optional[Path]:
        """Return the artifact called ``name`` or None."""
        candidate = self.path_for(name)
        return candidate if candidate.is_file() else None

    def list(self) -> List[Path]:
        """All artifact files, sorted by name."""
        return sorted(
            (path for path in self.directory.iterdir() if path.is_file()),
            key=lambda p: p.name,
        )

    def delete(self, name: str) -> bool:
        """
        Delete the artifact called ``name``.

        Returns:
            True if a file was deleted
        """
        artifact = self.find(name)
        if artifact is None:
            return False
        try:
            artifact.unlink()
        except OSError as e:
            self.logger.warning(f"Failed to delete artifact {artifact}: {e}")
            return False
        return True

    def delete_all(self) -> int:
        """
        Delete every artifact file in the store.

        Returns:
            Number of files deleted
        """
        deleted = 0
        for artifact in self.list():
            try:
                artifact.unlink()
                deleted += 1
            except OSError as e:
                self.logger.warning(f"Failed to delete artifact {artifact}: {e}")
        return deleted
