"""
Launch storage components for runreport.

This module provides the launch root, per-test directories, screenshot
persistence and the local artifact store.
"""

from .artifacts import LocalArtifactStore
from .images import AsyncImageWriter
from .launch import LaunchRootManager
from .models import (
    AttachmentSink,
    NullAttachmentSink,
    ScreenshotJob,
    TestDirectory,
    TestDirectoryState,
)
from .test_dirs import TestContext, TestDirectoryManager

__all__ = [
    "LocalArtifactStore",
    "AsyncImageWriter",
    "LaunchRootManager",
    "AttachmentSink",
    "NullAttachmentSink",
    "ScreenshotJob",
    "TestDirectory",
    "TestDirectoryState",
    "TestContext",
    "TestDirectoryManager",
]
