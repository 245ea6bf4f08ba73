"""Visual baseline creation and comparison."""
import pytest

from harness_fakes import png_bytes
from ui_harness.errors import AssertionMismatch
from ui_harness.snapshots import SnapshotStore


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "__snapshots__", tmp_path / "test-results" / "diffs", threshold=0.01)


def test_first_comparison_creates_baseline(store):
    result = store.compare("full-page-visual.png", png_bytes())

    assert result.passed
    assert "created" in result.message
    assert store.baseline_path("full-page-visual.png").read_bytes() == png_bytes()


def test_identical_image_matches(store):
    store.save_baseline("home", png_bytes())

    result = store.compare("home", png_bytes())

    assert result.passed
    assert result.diff_ratio == 0.0


def test_changed_image_writes_diff_and_actual(store, tmp_path):
    store.save_baseline("home", png_bytes((255, 255, 255)))

    result = store.compare("home", png_bytes((0, 0, 0)))

    assert not result.passed
    assert result.diff_ratio == 1.0
    assert result.diff_path == tmp_path / "test-results" / "diffs" / "home_diff.png"
    assert result.diff_path.is_file()
    assert result.actual_path.read_bytes() == png_bytes((0, 0, 0))
    mismatch = store.mismatch(result)
    assert isinstance(mismatch, AssertionMismatch)
    assert "home" in str(mismatch)


def test_size_change_is_a_mismatch(store):
    store.save_baseline("home", png_bytes(size=(40, 30)))

    result = store.compare("home", png_bytes(size=(40, 31)))

    assert not result.passed
    assert "Size mismatch" in result.message


def test_update_mode_overwrites_baseline(tmp_path):
    store = SnapshotStore(tmp_path / "snaps", tmp_path / "diffs", update=True)
    store.save_baseline("home", png_bytes((255, 255, 255)))

    result = store.compare("home", png_bytes((0, 0, 0)))

    assert result.passed
    assert store.baseline_path("home").read_bytes() == png_bytes((0, 0, 0))


def test_size_change_does_not_report_stale_diff(store, tmp_path):
    store.save_baseline("home", png_bytes((255, 255, 255)))
    store.compare("home", png_bytes((0, 0, 0)))
    stale = tmp_path / "test-results" / "diffs" / "home_diff.png"
    assert stale.is_file()

    result = store.compare("home", png_bytes(size=(40, 31)))

    assert not result.passed
    assert result.diff_path is None
    assert not stale.exists()
