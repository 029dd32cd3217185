"""
Asynchronous screenshot persistence.

Screenshots are resized and written by a fixed-size thread pool so that the
test thread that captured them never waits for encoding or disk I/O.
"""

import io
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, Optional, Set, Union

from PIL import Image

from ..core.logging_config import get_logger
from .models import ScreenshotJob

SCREENSHOT_EXTENSION = ".png"

ImageSource = Union[Image.Image, bytes]


class AsyncImageWriter:
    """
    Fire-and-forget image writer with a per-directory completion barrier.

    Jobs are tracked by the directory they write into, so report assembly
    and directory renames can wait for exactly the screenshots of one test.
    """

    def __init__(self, max_workers: int = 4):
        """
        Initialize the image writer.

        Args:
            max_workers: Number of background threads persisting images
        """
        self.logger = get_logger(__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="runreport-image"
        )
        self._pending: Dict[Path, Set[Future]] = {}
        self._pending_lock = threading.Lock()
        self._name_lock = threading.Lock()
        self._last_timestamp = 0

    def next_screenshot_name(self) -> str:
        """
        Issue a ``<milliseconds>.png`` file name.

        Names sort in capture order; two captures in the same millisecond get
        consecutive values.
        """
        with self._name_lock:
            now = int(time.time() * 1000)
            if now <= self._last_timestamp:
                now = self._last_timestamp + 1
            self._last_timestamp = now
        return f"{now}{SCREENSHOT_EXTENSION}"

    def submit(
        self,
        image: ImageSource,
        path: Path,
        width: int = 0,
        height: int = 0,
    ) -> Future:
        """
        Queue an image for persistence and return immediately.

        Args:
            image: Pillow image or encoded image bytes
            path: Destination file
            width: Target width, resize happens only if width and height are positive
            height: Target height

        Returns:
            Future resolving to the written path, or None if the job was dropped
        """
        job = ScreenshotJob(image=image, path=Path(path), width=width, height=height)
        directory = job.directory

        with self._pending_lock:
            future = self._executor.submit(self._run, job)
            job.future = future
            self._pending.setdefault(directory, set()).add(future)

        future.add_done_callback(lambda f: self._forget(directory, f))
        return future

    def _forget(self, directory: Path, future: Future) -> None:
        with self._pending_lock:
            futures = self._pending.get(directory)
            if futures is None:
                return
            futures.discard(future)
            if not futures:
                del self._pending[directory]

    def _run(self, job: ScreenshotJob) -> Optional[Path]:
        try:
            image = job.image
            if isinstance(image, (bytes, bytearray)):
                image = Image.open(io.BytesIO(image))
                image.load()

            if job.resize:
                image = self.fit_to_width(image, job.width, job.height)

            image.save(job.path, format="PNG")
            return job.path
        except Exception as e:
            self.logger.error(f"Unable to save screenshot {job.path}: {e}")
            return None

    @staticmethod
    def fit_to_width(image: Image.Image, width: int, height: int) -> Image.Image:
        """
        Scale ``image`` to ``width`` keeping its aspect ratio, then crop the
        bottom off if it is still taller than ``height``.
        """
        scaled_height = max(1, round(image.height * width / image.width))
        resized = image.resize((width, scaled_height), Image.Resampling.LANCZOS)
        if resized.height > height:
            resized = resized.crop((0, 0, resized.width, height))
        return resized

    def pending(self, directory: Path) -> int:
        """Number of unfinished jobs writing into ``directory``."""
        with self._pending_lock:
            return len(self._pending.get(Path(directory), ()))

    def wait_for(self, directory: Path, timeout: Optional[float] = None) -> bool:
        """
        Block until every job submitted for ``directory`` has finished.

        Args:
            directory: Directory the jobs write into
            timeout: Maximum seconds to wait, None waits indefinitely

        Returns:
            True if no job for the directory is still running
        """
        with self._pending_lock:
            futures = set(self._pending.get(Path(directory), ()))
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        if not_done:
            self.logger.warning(
                f"{len(not_done)} screenshot(s) still pending for {directory} after {timeout}s"
            )
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
