"""
UI validation harness on top of Playwright.

    from ui_harness import PlaywrightClient, ScenarioRunner, expect, scenario
"""
from ui_harness.assertions import expect
from ui_harness.client import PlaywrightClient
from ui_harness.config import HarnessSettings, get_settings
from ui_harness.dialogs import accept, dismiss
from ui_harness.errors import (
    ArtifactCaptureFailure,
    AssertionMismatch,
    ElementNotInteractable,
    ExpectedFailureViolation,
    HarnessError,
    TimeoutExceeded,
    UnhandledDialog,
)
from ui_harness.negative import assert_absent, capture_on_error, declare_expected_failure, watch_absence
from ui_harness.report import CaseRecord, CaseState, ReportSink
from ui_harness.scenario import Scenario, ScenarioContext, ScenarioRunner, run_suite, scenario
from ui_harness.session import Element, PageSession

__version__ = "1.0.0"

__all__ = [
    "ArtifactCaptureFailure",
    "AssertionMismatch",
    "CaseRecord",
    "CaseState",
    "Element",
    "ElementNotInteractable",
    "ExpectedFailureViolation",
    "HarnessError",
    "HarnessSettings",
    "PageSession",
    "PlaywrightClient",
    "ReportSink",
    "Scenario",
    "ScenarioContext",
    "ScenarioRunner",
    "TimeoutExceeded",
    "UnhandledDialog",
    "accept",
    "assert_absent",
    "capture_on_error",
    "declare_expected_failure",
    "dismiss",
    "expect",
    "get_settings",
    "run_suite",
    "scenario",
    "watch_absence",
]
