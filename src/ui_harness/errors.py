"""
Error taxonomy for the UI harness.

Assertion-like failures also derive from AssertionError so that pytest
reports them as test failures rather than errors.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class HarnessError(Exception):
    """Base class for all harness errors."""
    pass


class ConfigError(HarnessError):
    """Raised when a configuration value cannot be parsed."""
    pass


class NavigationError(HarnessError):
    """Raised when the page under test could not be loaded."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Navigation to {url} failed: {message}")
        self.url = url


class AssertionMismatch(HarnessError, AssertionError):
    """Expected and observed values differ."""

    def __init__(self, what: str, expected: Any, observed: Any, detail: str = ""):
        message = f"{what}: expected {expected!r}, observed {observed!r}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.what = what
        self.expected = expected
        self.observed = observed


class TimeoutExceeded(HarnessError, AssertionError):
    """A bounded wait did not converge.

    ``last_value`` holds the last observation made before the deadline so the
    report shows what the page actually looked like.
    """

    def __init__(self, what: str, timeout_ms: float, last_value: Any = None, expected: Any = None):
        message = f"Timed out after {timeout_ms:g}ms waiting for {what}"
        if expected is not None:
            message += f" (expected {expected!r})"
        message += f"; last observed value: {last_value!r}"
        super().__init__(message)
        self.what = what
        self.timeout_ms = timeout_ms
        self.last_value = last_value
        self.expected = expected


class ScenarioTimeout(TimeoutExceeded):
    """A whole scenario exceeded its overall timeout and was cancelled."""

    def __init__(self, title: str, timeout_ms: float):
        super().__init__(f"scenario '{title}' to finish", timeout_ms, last_value="cancelled")
        self.title = title


class ElementNotInteractable(HarnessError, AssertionError):
    """Target element is not attached, visible or enabled."""

    def __init__(self, action: str, selector: str, reason: str):
        super().__init__(f"Cannot {action} '{selector}': {reason}")
        self.action = action
        self.selector = selector
        self.reason = reason


class UnhandledDialog(HarnessError):
    """A dialog fired with no registered expectation. Fatal to the session."""

    def __init__(self, dialog_type: str, message: str):
        super().__init__(f"Unhandled {dialog_type} dialog: {message!r}")
        self.dialog_type = dialog_type
        self.dialog_message = message


class ArtifactCaptureFailure(HarnessError):
    """Screenshot capture failed. Recorded as a diagnostic, never raised into a suite."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Could not capture artifact {path}: {message}")
        self.path = path


class ExpectedFailureViolation(HarnessError, AssertionError):
    """A scenario declared as failing passed unexpectedly."""

    def __init__(self, title: str, reason: Optional[str] = None):
        message = f"Scenario '{title}' was expected to fail but passed"
        if reason:
            message += f" (declared reason: {reason})"
        super().__init__(message)
        self.title = title
        self.reason = reason


class ScenarioCancelled(HarnessError):
    """The scenario body was cancelled from outside before it finished."""

    def __init__(self, title: str):
        super().__init__(f"Scenario '{title}' was cancelled")
        self.title = title


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """Serializable summary of an exception for result records."""
    info: Dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, TimeoutExceeded):
        info["last_value"] = repr(exc.last_value)
    return info
