"""
Logging configuration for runreport.

Provides structured JSON logging with file rotation, different output formats
for development and CI environments, and a handler that mirrors records into
the log file of the test directory bound to the emitting thread.
"""

import logging
import logging.handlers
import json
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from .config import Config

TEST_LOG_NAME = "test.log"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def __init__(self, launch_id: str):
        super().__init__()
        self.launch_id = launch_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "component": record.name,
            "launch_id": self.launch_id,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "metadata"):
            log_entry["metadata"] = record.metadata

        for attr in ["test_dir", "artifact", "session_id", "duration", "status"]:
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self, launch_id: str):
        super().__init__()
        self.launch_id = launch_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")

        message = f"[{timestamp}] {record.levelname:8} {record.name:28} | {record.getMessage()}"

        message += f" (launch: {self.launch_id})"

        if hasattr(record, "metadata") and record.metadata:
            metadata_str = " | ".join(f"{k}={v}" for k, v in record.metadata.items())
            message += f" | {metadata_str}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class TestLogHandler(logging.Handler):
    """
    Writes records to ``test.log`` inside the test directory bound to the
    emitting context.

    One file handle is kept per directory. ``release`` closes the handle of a
    directory so it can be renamed; the next record bound to that test reopens
    the file in append mode at whatever path is bound by then.
    """

    __test__ = False

    def __init__(
        self,
        directory_provider: Callable[[], Optional[Path]],
        formatter: Optional[logging.Formatter] = None,
        level: int = logging.NOTSET,
    ):
        super().__init__(level)
        self._directory_provider = directory_provider
        self._handlers: Dict[Path, logging.FileHandler] = {}
        self._handlers_lock = threading.RLock()
        if formatter is not None:
            self.setFormatter(formatter)

    def _handler_for(self, directory: Path) -> logging.FileHandler:
        with self._handlers_lock:
            handler = self._handlers.get(directory)
            if handler is None:
                handler = logging.FileHandler(
                    directory / TEST_LOG_NAME, mode="a", encoding="utf-8"
                )
                handler.setFormatter(self.formatter)
                self._handlers[directory] = handler
            return handler

    def emit(self, record: logging.LogRecord) -> None:
        directory = self._directory_provider()
        if directory is None or not directory.is_dir():
            return
        try:
            with self._handlers_lock:
                self._handler_for(directory).emit(record)
        except Exception:
            self.handleError(record)

    def release(self, directory: Path) -> None:
        """Close and forget the file handle for ``directory``."""
        with self._handlers_lock:
            handler = self._handlers.pop(Path(directory), None)
        if handler is not None:
            handler.close()

    def open_directories(self):
        with self._handlers_lock:
            return list(self._handlers)

    def close(self) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers.values())
            self._handlers.clear()
        for handler in handlers:
            handler.close()
        super().close()


def _build_formatter(config: Config, launch_id: str) -> logging.Formatter:
    if config.log_format == "json":
        return StructuredFormatter(launch_id)
    return TextFormatter(launch_id)


def setup_logging(config: Config, launch_id: str) -> logging.Logger:
    """
    Set up logging configuration based on environment and config.

    Args:
        config: Configuration object with logging settings
        launch_id: Launch identifier used for log correlation

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, config.log_level)
    root_logger.setLevel(log_level)

    formatter = _build_formatter(config, launch_id)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler for non-CI environments
    if not config.is_ci_mode:
        config.report_root.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.get_log_file_path(),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger("runreport.logging")
    logger.info(
        "Logging configured",
        extra={
            "metadata": {
                "launch_id": launch_id,
                "log_level": config.log_level,
                "log_format": config.log_format,
                "ci_mode": config.is_ci_mode,
            }
        },
    )

    return root_logger


def install_test_log_handler(
    directory_provider: Callable[[], Optional[Path]],
    config: Config,
    launch_id: str,
) -> TestLogHandler:
    """
    Attach a TestLogHandler to the root logger.

    Args:
        directory_provider: Returns the test directory bound to the caller
        config: Configuration object with logging settings
        launch_id: Launch identifier used for log correlation

    Returns:
        The installed handler
    """
    handler = TestLogHandler(
        directory_provider,
        formatter=TextFormatter(launch_id),
        level=getattr(logging, config.log_level),
    )
    logging.getLogger().addHandler(handler)
    return handler


def get_logger(name: str, **context) -> logging.Logger:
    """
    Get a logger with optional context.

    Args:
        name: Logger name (typically module name)
        **context: Additional context to include in log records

    Returns:
        Configured logger with context
    """
    logger = logging.getLogger(name)

    if context:

        class ContextAdapter(logging.LoggerAdapter):
            def process(self, msg, kwargs):
                if "extra" not in kwargs:
                    kwargs["extra"] = {}
                kwargs["extra"].update(self.extra)
                return msg, kwargs

        return ContextAdapter(logger, context)

    return logger


def log_performance(
    logger: logging.Logger, operation: str, duration: float, **metadata
):
    """
    Log performance metrics for operations.

    Args:
        logger: Logger instance
        operation: Name of the operation
        duration: Duration in seconds
        **metadata: Additional metadata to include
    """
    logger.info(
        f"Performance: {operation} completed in {duration:.2f}s",
        extra={"metadata": {"operation": operation, "duration": duration, **metadata}},
    )
