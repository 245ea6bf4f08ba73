"""Harness configuration.

Settings come from environment variables, falling back to `.env.defaults`
/ `.env` (see ``config_defaults``) and finally to the built-in defaults
below. Timeouts are milliseconds, like Playwright's own API.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar
from urllib.parse import urljoin

from ui_harness.config_defaults import get_default
from ui_harness.errors import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BROWSER_TYPES = ("chromium", "firefox", "webkit")


def default_workers() -> int:
    """Half the available CPUs, never less than one."""
    return max(1, (os.cpu_count() or 2) // 2)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class HarnessSettings:
    """Resolved configuration for one harness run."""

    base_url: str = "http://127.0.0.1:8765/"
    assert_timeout_ms: int = 5000
    action_timeout_ms: int = 5000
    navigation_timeout_ms: int = 30000
    test_timeout_ms: int = 30000
    poll_interval_ms: int = 100
    workers: int = field(default_factory=default_workers)
    artifact_dir: Path = Path("test-results")
    snapshot_dir: Path = Path("__snapshots__")
    dialog_delay_ms: int = 0
    dialog_settle_ms: int = 1000
    headless: bool = True
    browser_type: str = "chromium"
    update_baselines: bool = False
    visual_threshold: float = 0.01

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessSettings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ

        def read(name: str, convert: Callable[[str], T], default: T) -> T:
            raw = env.get(name)
            if raw is None or raw == "":
                raw = get_default(name)
            if raw is None or raw == "":
                return default
            try:
                return convert(raw)
            except ValueError as exc:
                logger.warning(f"[CONFIG] {name}={raw!r} could not be parsed")
                raise ConfigError(f"{name}={raw!r} is not valid: {exc}") from exc

        defaults = cls()
        settings = cls(
            base_url=read("UI_BASE_URL", str, defaults.base_url),
            assert_timeout_ms=read("UI_ASSERT_TIMEOUT_MS", int, defaults.assert_timeout_ms),
            action_timeout_ms=read("UI_ACTION_TIMEOUT_MS", int, defaults.action_timeout_ms),
            navigation_timeout_ms=read("UI_NAVIGATION_TIMEOUT_MS", int, defaults.navigation_timeout_ms),
            test_timeout_ms=read("UI_TEST_TIMEOUT_MS", int, defaults.test_timeout_ms),
            poll_interval_ms=read("UI_POLL_INTERVAL_MS", int, defaults.poll_interval_ms),
            workers=read("UI_WORKERS", int, defaults.workers),
            artifact_dir=read("UI_ARTIFACT_DIR", Path, defaults.artifact_dir),
            snapshot_dir=read("UI_SNAPSHOT_DIR", Path, defaults.snapshot_dir),
            dialog_delay_ms=read("UI_DIALOG_DELAY_MS", int, defaults.dialog_delay_ms),
            dialog_settle_ms=read("UI_DIALOG_SETTLE_MS", int, defaults.dialog_settle_ms),
            headless=read("PLAYWRIGHT_HEADLESS", _parse_bool, defaults.headless),
            browser_type=read("PLAYWRIGHT_BROWSER", str.lower, defaults.browser_type),
            update_baselines=read("UPDATE_BASELINES", _parse_bool, defaults.update_baselines),
            visual_threshold=read("VISUAL_THRESHOLD", float, defaults.visual_threshold),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.browser_type not in BROWSER_TYPES:
            raise ConfigError(f"PLAYWRIGHT_BROWSER must be one of {BROWSER_TYPES}, got {self.browser_type!r}")
        if self.workers < 1:
            raise ConfigError(f"UI_WORKERS must be at least 1, got {self.workers}")
        for name in ("assert_timeout_ms", "action_timeout_ms", "navigation_timeout_ms", "test_timeout_ms"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.poll_interval_ms <= 0:
            raise ConfigError(f"poll_interval_ms must be positive, got {self.poll_interval_ms}")
        if self.dialog_delay_ms < 0 or self.dialog_settle_ms < 0:
            raise ConfigError("dialog delays must not be negative")
        if not 0.0 <= self.visual_threshold <= 1.0:
            raise ConfigError(f"VISUAL_THRESHOLD must be within [0, 1], got {self.visual_threshold}")
        if not self.headless:
            logger.info("[CONFIG] Running headful (PLAYWRIGHT_HEADLESS is false)")

    def with_overrides(self, **changes) -> "HarnessSettings":
        """Copy with selected fields replaced (e.g. from CLI flags)."""
        updated = replace(self, **{k: v for k, v in changes.items() if v is not None})
        updated.validate()
        return updated

    def url(self, path: str = "") -> str:
        """Absolute URL for ``path`` relative to the base URL."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0


_settings: Optional[HarnessSettings] = None


def get_settings() -> HarnessSettings:
    """Process-wide settings, read from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = HarnessSettings.from_env()
    return _settings


def set_settings(settings: Optional[HarnessSettings]) -> None:
    """Install (or with ``None`` reset) the process-wide settings."""
    global _settings
    _settings = settings
