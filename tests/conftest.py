import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ui_harness.config import HarnessSettings


@pytest.fixture
def settings(tmp_path):
    """Fast settings for hermetic tests; all output stays under tmp_path."""
    return HarnessSettings(
        base_url="http://page.test/",
        assert_timeout_ms=300,
        action_timeout_ms=200,
        navigation_timeout_ms=1000,
        test_timeout_ms=2000,
        poll_interval_ms=20,
        workers=2,
        artifact_dir=tmp_path / "test-results",
        snapshot_dir=tmp_path / "__snapshots__",
        dialog_delay_ms=0,
        dialog_settle_ms=100,
    )
