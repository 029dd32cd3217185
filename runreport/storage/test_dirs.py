"""
Per-test directory management.

Each logical test gets its own directory under the launch root. The directory
is bound to the current execution context through a ``ContextVar``: threads
start unbound, asyncio tasks inherit the binding of the code that spawned
them, and worker threads receive it through an explicit ``TestContext``
snapshot.
"""

import re
import threading
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from ..core.exceptions import TestDirectoryError
from ..core.logging_config import get_logger
from .models import TestDirectory

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

RENAME_ATTEMPTS = 5

ReleaseHook = Callable[[Path], None]


@dataclass(frozen=True)
class TestContext:
    """Snapshot of the test directory binding, handed to spawned work."""

    __test__ = False

    test_directory: Optional[TestDirectory] = None


class TestDirectoryManager:
    """
    Creates, renames and unbinds the test directory of the current context.

    Binding states per context: empty, auto-named (uuid) and custom-named.
    A custom name is assigned at most once; later requests are no-ops.
    """

    __test__ = False

    def __init__(
        self,
        root_provider: Callable[[], Path],
        retry_pause: float = 1.0,
        rename_attempts: int = RENAME_ATTEMPTS,
    ):
        """
        Initialize the test directory manager.

        Args:
            root_provider: Returns the launch root directory, creating it if needed
            retry_pause: Seconds to wait between rename attempts
            rename_attempts: Maximum number of rename attempts
        """
        self._root_provider = root_provider
        self.retry_pause = retry_pause
        self.rename_attempts = rename_attempts
        self.logger = get_logger(__name__)

        self._current: ContextVar[Optional[TestDirectory]] = ContextVar(
            f"runreport_test_directory_{id(self)}", default=None
        )
        self._lock = threading.RLock()
        self._release_hooks: List[ReleaseHook] = []

    @staticmethod
    def sanitize(name: str) -> str:
        """Replace every character outside ``[a-zA-Z0-9.-]`` with ``_``."""
        return _UNSAFE_CHARS.sub("_", name)

    def add_release_hook(self, hook: ReleaseHook) -> None:
        """Register a callable that frees resources tied to a directory before it is renamed or unbound."""
        self._release_hooks.append(hook)

    def current(self) -> Optional[TestDirectory]:
        return self._current.get()

    def current_path(self) -> Optional[Path]:
        test_dir = self._current.get()
        return test_dir.path if test_dir is not None else None

    def get_or_create(self, name: Optional[str] = None) -> TestDirectory:
        """
        Return the bound test directory, creating and binding one if needed.

        Args:
            name: Directory name to use when one has to be created, defaults to a uuid

        Returns:
            The bound test directory
        """
        test_dir = self._current.get()
        if test_dir is not None:
            return test_dir
        return self._create(name or str(uuid.uuid4()), is_custom_name=False)

    def _create(self, name: str, is_custom_name: bool) -> TestDirectory:
        with self._lock:
            path = self._root_provider() / self.sanitize(name)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise TestDirectoryError(
                    f"Test folder not created: {path}: {e}", path=str(path)
                ) from e

            test_dir = TestDirectory(path=path, is_custom_name=is_custom_name)
            self._current.set(test_dir)
            self.logger.debug(f"Test directory bound: {path}")
            return test_dir

    def set_custom_name(self, name: str) -> TestDirectory:
        """
        Give the bound test directory a human-readable name.

        Creates the directory under that name if nothing is bound yet, renames
        an auto-named directory in place, and does nothing for a directory that
        already has a custom name.

        Args:
            name: Test name; unsafe characters are replaced with ``_``

        Returns:
            The bound test directory after the call
        """
        with self._lock:
            test_dir = self._current.get()
            if test_dir is None:
                self.logger.debug("Test dir will be created.")
                return self._create(name, is_custom_name=True)

            if test_dir.is_custom_name:
                return test_dir

            self.logger.debug("Test dir will be renamed to custom name.")
            renamed = test_dir.renamed(self._rename(test_dir.path, self.sanitize(name)))
            self._current.set(renamed)
            return renamed

    def _rename(self, source: Path, new_name: str) -> Path:
        """Rename ``source`` to ``new_name`` with bounded retries; return the resulting path."""
        target = source.with_name(new_name)
        if target == source:
            return source
        if target.exists():
            self.logger.warning(
                f"Test directory '{target}' already exists, keeping '{source}'"
            )
            return source

        for attempt in range(1, self.rename_attempts + 1):
            self._release(source)
            try:
                source.rename(target)
                self.logger.info(f"Test directory renamed to '{target}'")
                return target
            except OSError as e:
                self.logger.warning(
                    f"Renaming failed to '{target}' (attempt {attempt}/{self.rename_attempts}): {e}"
                )
                if attempt < self.rename_attempts:
                    time.sleep(self.retry_pause)

        self.logger.error(f"Unable to rename test directory '{source}' to '{target}'")
        return source

    def _release(self, path: Path) -> None:
        for hook in self._release_hooks:
            try:
                hook(path)
            except Exception as e:
                self.logger.error(f"Failed to release resources for {path}: {e}")

    def clear(self) -> None:
        """Unbind the test directory of this context. Nothing is deleted."""
        test_dir = self._current.get()
        self._current.set(None)
        if test_dir is not None:
            self._release(test_dir.path)

    def capture(self) -> TestContext:
        """Snapshot the current binding for work spawned from this context."""
        return TestContext(test_directory=self._current.get())

    @contextmanager
    def bind(self, context: TestContext) -> Iterator[Optional[TestDirectory]]:
        """Install a captured binding for the duration of the block."""
        token = self._current.set(context.test_directory)
        try:
            yield context.test_directory
        finally:
            self._current.reset(token)

    def wrap(self, func: Callable) -> Callable:
        """
        Bind ``func`` to the current test directory.

        The binding is captured now, so a thread or executor running the
        returned callable writes to the directory that was bound at spawn time.
        """
        context = self.capture()

        @wraps(func)
        def wrapper(*args, **kwargs):
            with self.bind(context):
                return func(*args, **kwargs)

        return wrapper
