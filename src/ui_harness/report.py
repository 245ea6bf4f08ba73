"""
Result records and the report sink.

A ``CaseRecord`` follows the lifecycle

    pending -> running -> {passed, failed, expected_failure, errored} -> reported

and its terminal outcome is set exactly once. The ``ReportSink`` collects
records, binds attachments to them and writes the results JSON consumed by
downstream report rendering.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class CaseState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    EXPECTED_FAILURE = "expected_failure"
    ERRORED = "errored"
    REPORTED = "reported"


TERMINAL_STATES = frozenset({CaseState.PASSED, CaseState.FAILED, CaseState.EXPECTED_FAILURE, CaseState.ERRORED})

_TRANSITIONS = {
    CaseState.PENDING: frozenset({CaseState.RUNNING}),
    CaseState.RUNNING: TERMINAL_STATES,
    CaseState.PASSED: frozenset({CaseState.REPORTED}),
    CaseState.FAILED: frozenset({CaseState.REPORTED}),
    CaseState.EXPECTED_FAILURE: frozenset({CaseState.REPORTED}),
    CaseState.ERRORED: frozenset({CaseState.REPORTED}),
    CaseState.REPORTED: frozenset(),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class Attachment:
    name: str
    path: str
    content_type: str = "image/png"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "path": self.path, "contentType": self.content_type}


@dataclass(frozen=True)
class Artifact:
    """Teardown screenshot owned by exactly one record."""

    path: Path
    content: bytes = field(repr=False)
    content_type: str
    owner: str


@dataclass
class CaseRecord:
    title: str
    expected_failure: bool = False
    expected_failure_reason: Optional[str] = None
    state: CaseState = CaseState.PENDING
    outcome: Optional[CaseState] = None
    error: Optional[Dict[str, Any]] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    attachments: List[Attachment] = field(default_factory=list)
    artifact: Optional[Artifact] = None
    anomaly: Optional[str] = None
    started_at: Optional[str] = None
    duration_s: Optional[float] = None

    def transition(self, new_state: CaseState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"'{self.title}': {self.state.value} -> {new_state.value} is not allowed")
        if new_state is CaseState.RUNNING:
            self.started_at = datetime.now(timezone.utc).isoformat()
        if new_state in TERMINAL_STATES:
            self.outcome = new_state
        self.state = new_state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "state": self.state.value,
            "outcome": self.outcome.value if self.outcome else None,
            "expected_failure": self.expected_failure,
            "error": self.error,
            "anomaly": self.anomaly,
            "diagnostics": self.diagnostics,
            "attachments": [a.to_dict() for a in self.attachments],
            "artifact": str(self.artifact.path) if self.artifact else None,
            "started_at": self.started_at,
            "duration_s": self.duration_s,
        }


AttachListener = Callable[[CaseRecord, Attachment], None]


class ReportSink:
    """Collects records and their attachments for one run."""

    def __init__(self) -> None:
        self.records: List[CaseRecord] = []
        self._listeners: List[AttachListener] = []

    def add_listener(self, listener: AttachListener) -> None:
        """Call ``listener`` for every attachment (e.g. to forward into pytest)."""
        self._listeners.append(listener)

    def remove_listener(self, listener: AttachListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def new_record(self, title: str, expected_failure: bool = False, reason: Optional[str] = None) -> CaseRecord:
        record = CaseRecord(title=title, expected_failure=expected_failure, expected_failure_reason=reason)
        self.records.append(record)
        return record

    def attach(self, record: CaseRecord, name: str, path: str, content_type: str = "image/png") -> Attachment:
        attachment = Attachment(name=name, path=str(path), content_type=content_type)
        record.attachments.append(attachment)
        for listener in list(self._listeners):
            listener(record, attachment)
        return attachment

    def summary(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in TERMINAL_STATES}
        for record in self.records:
            if record.outcome is not None:
                counts[record.outcome.value] += 1
        counts["total"] = len(self.records)
        counts["anomalies"] = sum(1 for r in self.records if r.anomaly)
        return counts

    @property
    def ok(self) -> bool:
        """True when nothing failed, errored or passed against a declared failure."""
        return all(
            r.outcome in (CaseState.PASSED, CaseState.EXPECTED_FAILURE) and not r.anomaly for r in self.records
        )

    def write_json(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"summary": self.summary(), "tests": [r.to_dict() for r in self.records]}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(f"Results written: {path}")
        return path
