"""Core components for runreport."""

from .config import Config
from .exceptions import (
    RunReportError,
    ConfigurationError,
    LaunchRootError,
    TestDirectoryError,
    ArtifactStoreError,
    ArtifactDownloadError,
    TestFailure,
    ArtifactNotFoundError,
    InvalidSessionError,
)
from .logging_config import setup_logging, get_logger, TestLogHandler

__all__ = [
    "Config",
    "RunReportError",
    "ConfigurationError",
    "LaunchRootError",
    "TestDirectoryError",
    "ArtifactStoreError",
    "ArtifactDownloadError",
    "TestFailure",
    "ArtifactNotFoundError",
    "InvalidSessionError",
    "setup_logging",
    "get_logger",
    "TestLogHandler",
]
