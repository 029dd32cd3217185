"""
Base exception classes for runreport.

Provides a hierarchy of exceptions for the failures that can occur while a
launch stores screenshots, logs and artifacts.
"""

from typing import Optional, Dict, Any


class RunReportError(Exception):
    """Base exception class for all runreport errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class ConfigurationError(RunReportError):
    """Raised when configuration values or files are invalid."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        violations: Optional[list] = None,
    ):
        super().__init__(message, "CONFIGURATION_INVALID")
        self.config_path = config_path
        self.violations = violations or []
        self.context.update(
            {
                "config_path": config_path,
                "violations": violations,
            }
        )


class LaunchRootError(RunReportError):
    """Raised when the launch root directory cannot be created."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "LAUNCH_ROOT_FAILED")
        self.path = path
        self.context.update({"path": path})


class TestDirectoryError(RunReportError):
    """Raised when a test directory cannot be created."""

    __test__ = False

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "TEST_DIRECTORY_FAILED")
        self.path = path
        self.context.update({"path": path})


class ArtifactStoreError(RunReportError):
    """Raised when the artifacts directory cannot be initialized."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "ARTIFACT_STORE_FAILED")
        self.path = path
        self.context.update({"path": path})


class ArtifactDownloadError(RunReportError):
    """Raised when an artifact cannot be streamed from the grid."""

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, "ARTIFACT_DOWNLOAD_FAILED")
        self.artifact_name = artifact_name
        self.url = url
        self.status = status
        self.context.update(
            {
                "artifact_name": artifact_name,
                "url": url,
                "status": status,
            }
        )


class TestFailure(RunReportError, AssertionError):
    """
    Failure that belongs to the running test rather than the framework.

    Subclasses AssertionError so test runners report it as a failed test.
    """

    __test__ = False


class ArtifactNotFoundError(TestFailure):
    """Raised when an artifact is not available locally or on the grid."""

    def __init__(self, artifact_name: str, timeout: Optional[float] = None):
        super().__init__(
            f"Unable to find artifact: {artifact_name}", "ARTIFACT_NOT_FOUND"
        )
        self.artifact_name = artifact_name
        self.timeout = timeout
        self.context.update(
            {
                "artifact_name": artifact_name,
                "timeout": timeout,
            }
        )


class InvalidSessionError(TestFailure):
    """Raised when the grid reports the automation session as invalid or expired."""

    def __init__(
        self,
        message: str = "Invalid session id. Something wrong with driver",
        session_id: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message, "INVALID_SESSION")
        self.session_id = session_id
        self.url = url
        self.context.update(
            {
                "session_id": session_id,
                "url": url,
            }
        )
