"""
Visual baselines.

Baselines live under ``<snapshot_dir>/<name>``. The first run for a name
writes the baseline; later runs compare against it with pixelmatch and keep
the diff and actual images under ``<artifact_dir>/diffs/`` on mismatch.
Set UPDATE_BASELINES=1 to overwrite baselines instead of comparing.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image
from pixelmatch.contrib.PIL import pixelmatch

from ui_harness.errors import AssertionMismatch

logger = logging.getLogger(__name__)

PIXEL_SENSITIVITY = 0.1


@dataclass(frozen=True)
class SnapshotResult:
    name: str
    passed: bool
    diff_ratio: float
    message: str
    baseline_path: Path
    diff_path: Optional[Path] = None
    actual_path: Optional[Path] = None


def compare_images(actual: bytes, baseline_path: Path, diff_path: Path, threshold: float) -> tuple[bool, float, str]:
    """Compare PNG bytes against a baseline file.

    Returns:
        (passed, diff_ratio, message)
    """
    actual_img = Image.open(io.BytesIO(actual)).convert("RGBA")
    baseline_img = Image.open(baseline_path).convert("RGBA")

    if actual_img.size != baseline_img.size:
        return False, 1.0, f"Size mismatch: actual={actual_img.size}, baseline={baseline_img.size}"

    width, height = actual_img.size
    diff_img = Image.new("RGBA", (width, height))
    diff_pixels = pixelmatch(baseline_img, actual_img, diff_img, threshold=PIXEL_SENSITIVITY, includeAA=True)
    diff_ratio = diff_pixels / float(width * height) if width and height else 0.0

    if diff_pixels > 0:
        diff_path.parent.mkdir(parents=True, exist_ok=True)
        diff_img.save(diff_path)

    return diff_ratio <= threshold, diff_ratio, f"{diff_pixels} pixels differ ({diff_ratio:.2%})"


class SnapshotStore:
    def __init__(self, snapshot_dir: Path, diff_dir: Path, threshold: float = 0.01, update: bool = False) -> None:
        self.snapshot_dir = Path(snapshot_dir)
        self.diff_dir = Path(diff_dir)
        self.threshold = threshold
        self.update = update

    def baseline_path(self, name: str) -> Path:
        if not name.endswith(".png"):
            name = f"{name}.png"
        return self.snapshot_dir / name

    def save_baseline(self, name: str, image: bytes) -> Path:
        path = self.baseline_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)
        return path

    def compare(self, name: str, actual: bytes) -> SnapshotResult:
        baseline = self.baseline_path(name)
        if self.update:
            self.save_baseline(name, actual)
            logger.info(f"Baseline updated: {baseline}")
            return SnapshotResult(name, True, 0.0, f"Baseline updated: {baseline}", baseline)
        if not baseline.exists():
            self.save_baseline(name, actual)
            logger.warning(f"Baseline created: {baseline}")
            return SnapshotResult(name, True, 0.0, f"Baseline created: {baseline}", baseline)

        stem = baseline.stem
        diff_path = self.diff_dir / f"{stem}_diff.png"
        # A diff left by an earlier run must not be reported for this one.
        diff_path.unlink(missing_ok=True)
        passed, ratio, message = compare_images(actual, baseline, diff_path, self.threshold)
        if passed:
            return SnapshotResult(name, True, ratio, message, baseline)

        actual_path = self.diff_dir / f"{stem}_actual.png"
        actual_path.parent.mkdir(parents=True, exist_ok=True)
        actual_path.write_bytes(actual)
        return SnapshotResult(
            name, False, ratio, message, baseline,
            diff_path=diff_path if diff_path.exists() else None,
            actual_path=actual_path,
        )

    def mismatch(self, result: SnapshotResult) -> AssertionMismatch:
        return AssertionMismatch(
            f"snapshot {result.name}",
            f"<= {self.threshold:.2%} differing pixels",
            f"{result.diff_ratio:.2%}",
            detail=f"{result.message}; actual saved to {result.actual_path}",
        )
