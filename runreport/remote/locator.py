"""
Remote artifact locator.

Lists, probes and downloads the files a browser session produced on the
automation grid. Listing falls back to the local auto-download folder when
the grid cannot be reached.
"""

import asyncio
import re
import time
from pathlib import Path
from typing import Callable, List, Optional

import aiohttp

from ..core.exceptions import ArtifactDownloadError, InvalidSessionError
from ..core.logging_config import get_logger
from .models import (
    AutomationSession,
    SessionHealthCheck,
    artifact_url,
    default_session_health_check,
)

# href="..." or href='...', honouring backslash escapes inside the value
HREF_PATTERN = re.compile(r"""href=(["'])((?:(?!\1)[^\\]|(?:\\\\)*\\[^\\])*)\1""")

CHUNK_SIZE = 64 * 1024


def parse_hrefs(body: str) -> List[str]:
    """Extract every href attribute value from an HTML listing, in document order."""
    return [match.group(2) for match in HREF_PATTERN.finditer(body)]


def list_local_folder(folder: Path) -> List[str]:
    """Names in ``folder`` sorted, with a trailing ``/`` on directories."""
    if not folder.is_dir():
        return []
    return sorted(
        f"{path.name}/" if path.is_dir() else path.name for path in folder.iterdir()
    )


class RemoteArtifactLocator:
    """
    HTTP access to a session's download folder on the automation grid.

    Each call opens its own ``aiohttp.ClientSession`` so the locator can be
    shared by tests running on different event loops.
    """

    def __init__(
        self,
        local_folder_provider: Callable[[], Path],
        poll_interval: float = 1.0,
        request_timeout: float = 30.0,
        health_check: Optional[SessionHealthCheck] = None,
    ):
        """
        Initialize the remote artifact locator.

        Args:
            local_folder_provider: Returns the auto-download folder used as listing fallback
            poll_interval: Seconds between availability probes
            request_timeout: Total timeout of a single HTTP request
            health_check: Decides whether a 404 listing means the session is gone
        """
        self._local_folder_provider = local_folder_provider
        self.poll_interval = poll_interval
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)
        self.health_check = health_check or default_session_health_check
        self.logger = get_logger(__name__)

    def _local_names(self) -> List[str]:
        return list_local_folder(self._local_folder_provider())

    async def list_remote_names(self, session: AutomationSession) -> List[str]:
        """
        List the artifact names of a session.

        Args:
            session: Automation session

        Returns:
            Names from the grid listing, or the local auto-download folder
            listing when the grid returns an error status or cannot be reached

        Raises:
            InvalidSessionError: If the grid reports the session as invalid
        """
        url, auth = artifact_url(session)
        self.logger.debug(f"Listing remote artifacts: {url}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as client:
                async with client.get(url, auth=auth, allow_redirects=False) as response:
                    body = await response.text(errors="replace")
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.logger.error(
                f"Something went wrong when trying to get artifacts from remote: {e}"
            )
            return self._local_names()

        if status == 404:
            if not self.health_check(status, body):
                raise InvalidSessionError(session_id=session.session_id, url=str(url))
            self.logger.debug("Remote listing not found, using local auto-download folder")
            return self._local_names()

        if status >= 400:
            self.logger.error(
                f"Remote listing failed with status {status}, using local auto-download folder"
            )
            return self._local_names()

        if status != 200:
            self.logger.warning(f"Unexpected status {status} listing remote artifacts")
            return []

        return parse_hrefs(body)

    async def exists(self, session: AutomationSession, name: str) -> bool:
        """HEAD the artifact; True only on a 200 response."""
        url, auth = artifact_url(session, name)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as client:
                async with client.head(url, auth=auth, allow_redirects=False) as response:
                    return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.logger.debug(f"Artifact doesn't exist: {url}: {e}")
            return False

    async def wait_until_available(
        self, session: AutomationSession, name: str, timeout: float
    ) -> bool:
        """
        Probe the artifact until it exists or ``timeout`` seconds have passed.

        The artifact is probed at least once, even with a zero timeout.
        """
        deadline = time.monotonic() + timeout
        while True:
            if await self.exists(session, name):
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def fetch(self, session: AutomationSession, name: str, target: Path) -> Path:
        """
        Stream an artifact from the grid into ``target``.

        Raises:
            ArtifactDownloadError: On a non-200 response or I/O failure
        """
        url, auth = artifact_url(session, name)
        target = Path(target)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as client:
                async with client.get(url, auth=auth) as response:
                    if response.status != 200:
                        raise ArtifactDownloadError(
                            f"Artifact {name} wasn't downloaded, status {response.status}",
                            artifact_name=name,
                            url=str(url),
                            status=response.status,
                        )
                    with open(target, "wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            target.unlink(missing_ok=True)
            raise ArtifactDownloadError(
                f"Artifact {url} wasn't downloaded to {target}: {e}",
                artifact_name=name,
                url=str(url),
            ) from e

        self.logger.debug(f"Successfully downloaded artifact: {name}")
        return target
