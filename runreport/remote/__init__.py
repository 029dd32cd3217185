"""
Automation grid integration for runreport.

Lists and downloads the artifacts a browser session produced on the grid,
falling back to the local auto-download folder.
"""

from .downloader import ArtifactDownloader
from .locator import RemoteArtifactLocator, parse_hrefs
from .models import (
    AutomationSession,
    SessionHandle,
    SessionHealthCheck,
    artifact_url,
    default_session_health_check,
)

__all__ = [
    "ArtifactDownloader",
    "RemoteArtifactLocator",
    "parse_hrefs",
    "AutomationSession",
    "SessionHandle",
    "SessionHealthCheck",
    "artifact_url",
    "default_session_health_check",
]
