"""Screenshot artifacts bound to result records.

Paths are derived only from the record title and outcome, so concurrent
scenarios never write to the same file:

    test-results/Login_form_submission-passed.png
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from ui_harness.errors import ArtifactCaptureFailure, describe_error
from ui_harness.report import Artifact, CaseRecord, CaseState, ReportSink
from ui_harness.session import PageSession

logger = logging.getLogger(__name__)

PNG = "image/png"
SCREENSHOT_NAME = "Screenshot"
ERROR_SCREENSHOT_NAME = "Error Screenshot"

_WHITESPACE = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[/\\]")


def normalize_title(title: str) -> str:
    """Replace whitespace runs and path separators with underscores."""
    return _SEPARATORS.sub("_", _WHITESPACE.sub("_", title))


def artifact_path(artifact_dir: Path, title: str, outcome: str) -> Path:
    return Path(artifact_dir) / f"{normalize_title(title)}-{outcome}.png"


class ArtifactCapture:
    """Full-page capture that never raises into the caller."""

    def __init__(self, artifact_dir: Path, sink: ReportSink) -> None:
        self.artifact_dir = Path(artifact_dir)
        self.sink = sink

    async def capture_and_attach(self, session: Optional[PageSession], record: CaseRecord, outcome: CaseState) -> Optional[Artifact]:
        """Capture the teardown screenshot for ``record``.

        Returns None (and records an ``ArtifactCaptureFailure`` diagnostic)
        when the page is gone or the capture fails.
        """
        path = artifact_path(self.artifact_dir, record.title, outcome.value)
        if record.artifact is not None:
            logger.warning(f"'{record.title}' already has an artifact; not capturing twice")
            return record.artifact
        content = await self._capture(session, record, path)
        if content is None:
            return None
        artifact = Artifact(path=path, content=content, content_type=PNG, owner=record.title)
        record.artifact = artifact
        self.sink.attach(record, SCREENSHOT_NAME, str(path), PNG)
        return artifact

    async def capture_error(self, session: Optional[PageSession], record: CaseRecord) -> Optional[Path]:
        """Extra screenshot of the failing state, attached as "Error Screenshot"."""
        path = self.artifact_dir / f"{normalize_title(record.title)}-error-screenshot.png"
        if await self._capture(session, record, path) is None:
            return None
        self.sink.attach(record, ERROR_SCREENSHOT_NAME, str(path), PNG)
        return path

    async def _capture(self, session: Optional[PageSession], record: CaseRecord, path: Path) -> Optional[bytes]:
        try:
            if session is None or session.is_closed:
                raise ArtifactCaptureFailure(str(path), "page session is closed")
            content = await session.screenshot(full_page=True)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            return content
        except Exception as exc:
            failure = exc if isinstance(exc, ArtifactCaptureFailure) else ArtifactCaptureFailure(str(path), str(exc))
            record.diagnostics.setdefault("artifact_failures", []).append(describe_error(failure))
            logger.warning(f"{failure}")
            return None
