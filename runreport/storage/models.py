"""
Data models for launch storage.

Defines the immutable test directory binding, the pending screenshot job
and the attachment sink interface consumed by the artifact store.
"""

import threading
from concurrent.futures import Future
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.logging_config import get_logger


class TestDirectoryState(Enum):
    """Naming state of a test directory."""

    __test__ = False

    AUTO_NAMED = "auto_named"
    CUSTOM_NAMED = "custom_named"


class TestDirectory(BaseModel):
    """A test directory bound to a thread context. Immutable; renames bind a new instance."""

    __test__ = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path = Field(..., description="Absolute path of the directory")
    is_custom_name: bool = Field(False, description="Whether a human-readable name was assigned")
    owner: str = Field(
        default_factory=lambda: threading.current_thread().name,
        description="Name of the thread that created the binding",
    )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def state(self) -> TestDirectoryState:
        if self.is_custom_name:
            return TestDirectoryState.CUSTOM_NAMED
        return TestDirectoryState.AUTO_NAMED

    def renamed(self, path: Path) -> "TestDirectory":
        """Return a custom-named copy pointing at ``path``."""
        return self.model_copy(update={"path": path, "is_custom_name": True})


class ScreenshotJob(BaseModel):
    """Pending image save owned by the image writer until it completes."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: object = Field(..., description="Pillow image or encoded image bytes")
    path: Path = Field(..., description="Destination file")
    width: int = Field(0, description="Target width, ignored unless height is also positive")
    height: int = Field(0, description="Target height, ignored unless width is also positive")
    future: Optional[Future] = Field(None, description="Completion handle")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: Path) -> Path:
        if not v.name:
            raise ValueError("Screenshot path must name a file")
        return v

    @property
    def resize(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def directory(self) -> Path:
        return self.path.parent


@runtime_checkable
class AttachmentSink(Protocol):
    """Registers a file with the externally visible report of the current test."""

    def attach(self, name: str, data: Union[bytes, Path]) -> None:
        ...


class NullAttachmentSink:
    """Attachment sink used when no test reporting integration is configured."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def attach(self, name: str, data: Union[bytes, Path]) -> None:
        self.logger.debug(f"No attachment sink configured, skipping: {name}")
