"""
runreport - launch artifact and report storage for test runs

Keeps the screenshots, logs, downloaded artifacts and HTML reports of a test
launch on disk, shared safely between concurrently running test threads.
"""

__version__ = "0.1.0"
__author__ = "runreport Team"

from .context import ReportContext
from .core.config import Config
from .core.exceptions import RunReportError
from .core.logging_config import setup_logging
from .remote.models import SessionHandle

__all__ = [
    "ReportContext",
    "Config",
    "RunReportError",
    "setup_logging",
    "SessionHandle",
]
