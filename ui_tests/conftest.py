import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ui_harness.client import PlaywrightClient
from ui_harness.config import HarnessSettings
from ui_harness.report import ReportSink
from ui_harness.scenario import ScenarioRunner
from ui_harness.site_server import StaticSiteServer

SITE_DIR = Path(__file__).resolve().parent / "site"


@pytest.fixture(scope="session")
def site_url():
    """Base URL of the page under test.

    Uses UI_BASE_URL when set, otherwise serves the bundled demo page from
    ui_tests/site on a free local port for the whole session.
    """
    external = os.environ.get("UI_BASE_URL")
    if external:
        yield external
        return
    with StaticSiteServer(SITE_DIR) as server:
        yield server.url


@pytest.fixture(scope="session")
def harness_settings(site_url):
    return HarnessSettings.from_env().with_overrides(base_url=site_url)


@pytest_asyncio.fixture()
async def playwright_client(harness_settings):
    """Launch the configured browser, skipping when it is not installed."""
    client = PlaywrightClient(harness_settings)
    try:
        await client.connect()
    except Exception as exc:
        await client.close()
        pytest.skip(f"Browser unavailable ({exc}); run 'playwright install {harness_settings.browser_type}'")
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture()
def report_sink(request):
    """Sink that mirrors every attachment into the pytest report."""
    sink = ReportSink()

    def forward(record, attachment):
        request.node.user_properties.append((attachment.name, attachment.path))

    sink.add_listener(forward)
    yield sink
    sink.remove_listener(forward)


@pytest.fixture()
def runner(harness_settings, playwright_client, report_sink):
    return ScenarioRunner(harness_settings, playwright_client.session, report_sink)
