"""
Configuration management for runreport.

Handles environment variables, YAML configuration files, defaults and
validation for the report storage components.
"""

import os
from typing import Optional, Dict, Any
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

ENV_PREFIX = "RUNREPORT_"

_BOOL_TRUE = ("true", "1", "yes", "on")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _BOOL_TRUE


def _optional_path(value: Any) -> Optional[Path]:
    if value is None:
        return None
    text = str(value).strip()
    return Path(text) if text else None


@dataclass
class Config:
    """Configuration class for runreport with environment variable support."""

    # Environment detection
    ci_mode: bool = field(default=False)

    # Logging configuration
    log_level: str = field(default="INFO")
    log_format: str = field(default="text")

    # Report layout
    report_root: Path = field(default_factory=lambda: Path.cwd() / "reports")
    report_url: str = field(default="")
    max_screenshot_history: int = field(default=10)

    # Artifacts
    custom_artifacts_folder: Optional[Path] = field(default=None)
    auto_download: bool = field(default=False)
    auto_download_folder: Optional[Path] = field(default=None)
    artifact_availability_timeout: float = field(default=10.0)
    remote_poll_interval: float = field(default=1.0)

    # Screenshots
    big_screen_width: int = field(default=-1)
    big_screen_height: int = field(default=-1)
    screenshot_workers: int = field(default=4)

    # Test directories
    rename_retry_pause: float = field(default=1.0)

    def __post_init__(self):
        """Post-initialization normalization and environment overrides."""
        ci_env = os.getenv("CI", "").lower() == "true"
        if ci_env and self.ci_mode is False:
            self.ci_mode = True

        self._apply_env_overrides()

        self.report_root = Path(self.report_root)
        self.custom_artifacts_folder = _optional_path(self.custom_artifacts_folder)
        self.auto_download_folder = _optional_path(self.auto_download_folder)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        level = str(self.log_level).upper()
        if level == "WARN":
            level = "WARNING"
        self.log_level = level if level in valid_log_levels else "INFO"

        # Structured output in CI unless explicitly requested otherwise
        if self.ci_mode and self.log_format == "text":
            self.log_format = "json"

        if self.report_url.endswith("/"):
            self.report_url = self.report_url.rstrip("/")

    def _apply_env_overrides(self) -> None:
        """Apply RUNREPORT_* environment variables on top of current values."""
        for f in fields(self):
            if f.name == "ci_mode":
                continue
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                if f.type is bool:
                    value = _env_bool(raw)
                elif f.type is int:
                    value = int(raw)
                elif f.type is float:
                    value = float(raw)
                elif f.type is Path:
                    value = Path(raw)
                elif f.type == Optional[Path]:
                    value = _optional_path(raw)
                else:
                    value = raw
            except ValueError:
                # Keep the existing value when the override cannot be parsed
                continue
            setattr(self, f.name, value)

    @property
    def is_ci_mode(self) -> bool:
        """Check if running in CI environment."""
        return self.ci_mode

    @property
    def resize_screenshots(self) -> bool:
        """Whether screenshots are resized before they are written."""
        return self.big_screen_width > 0 and self.big_screen_height > 0

    def get_log_file_path(self) -> Path:
        """Get the main log file path."""
        return self.report_root / "runreport.log"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "ci_mode": self.ci_mode,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "report_root": str(self.report_root),
            "report_url": self.report_url,
            "max_screenshot_history": self.max_screenshot_history,
            "custom_artifacts_folder": (
                str(self.custom_artifacts_folder) if self.custom_artifacts_folder else None
            ),
            "auto_download": self.auto_download,
            "auto_download_folder": (
                str(self.auto_download_folder) if self.auto_download_folder else None
            ),
            "artifact_availability_timeout": self.artifact_availability_timeout,
            "remote_poll_interval": self.remote_poll_interval,
            "big_screen_width": self.big_screen_width,
            "big_screen_height": self.big_screen_height,
            "screenshot_workers": self.screenshot_workers,
            "rename_retry_pause": self.rename_retry_pause,
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(ci_mode=os.getenv("CI", "").lower() == "true")

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """
        Create configuration from a YAML file.

        Environment variables still take precedence over file values.

        Args:
            path: Path to a YAML mapping of configuration keys

        Returns:
            Loaded configuration
        """
        from .exceptions import ConfigurationError

        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(
                f"Configuration file not found: {path}", config_path=str(path)
            )
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {path}: {e}",
                config_path=str(path),
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
                config_path=str(path),
            )

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys in {path}: {', '.join(unknown)}",
                config_path=str(path),
                violations=[f"unknown key: {key}" for key in unknown],
            )

        return cls(**data)

    def validate(self) -> None:
        """Validate configuration and raise ConfigurationError if invalid."""
        from .exceptions import ConfigurationError

        errors = []

        if self.log_format not in ("text", "json"):
            errors.append(f"Invalid log format: {self.log_format}. Must be 'text' or 'json'")

        if self.screenshot_workers < 1:
            errors.append("screenshot_workers must be at least 1")

        if self.artifact_availability_timeout < 0:
            errors.append("artifact_availability_timeout cannot be negative")

        if self.remote_poll_interval <= 0:
            errors.append("remote_poll_interval must be positive")

        if self.rename_retry_pause < 0:
            errors.append("rename_retry_pause cannot be negative")

        if self.auto_download and self.auto_download_folder is None:
            errors.append("auto_download is enabled but auto_download_folder is not set")

        if self.report_root.exists() and not self.report_root.is_dir():
            errors.append(f"report_root is not a directory: {self.report_root}")

        if errors:
            message = "Configuration validation failed: " + "; ".join(errors)
            raise ConfigurationError(message, violations=errors)
