"""Element probes, actions and polling assertions over a fake page."""
import pytest
import pytest_asyncio

from harness_fakes import FakeElement, FakePage
from ui_harness.assertions import expect, normalize_whitespace
from ui_harness.errors import ElementNotInteractable, NavigationError, TimeoutExceeded
from ui_harness.polling import DETACHED, PROBE_FAILED
from ui_harness.session import ElementState, PageSession

pytestmark = pytest.mark.asyncio


@pytest.fixture
def page():
    return FakePage({
        "#username": FakeElement(),
        "#keyboard-input": FakeElement(),
        "#hover-me": FakeElement(
            styles={"background-color": "rgb(255, 255, 255)"},
            hover_styles={"background-color": "rgb(238, 238, 238)"},
        ),
        "#hidden-msg": FakeElement(visible=False, text="You should not see this"),
        "#delayed-content": FakeElement(text="\n  Loaded after delay \n", appear_after=0.1),
        "#disabled": FakeElement(enabled=False),
        "[data-testid=greeting]": FakeElement(text="Welcome, user!", attributes={"data-testid": "greeting"}),
        "#agree": FakeElement(),
        "#country": FakeElement(value=""),
    })


@pytest_asyncio.fixture
async def session(page, settings):
    session = PageSession(page, settings)
    await session.navigate("/")
    yield session
    await session.close()


async def test_navigate_resolves_against_base_url(session, page):
    result = await session.navigate("index.html")

    assert page.url == "http://page.test/index.html"
    assert result == {"url": "http://page.test/index.html", "status": 200}


async def test_navigation_http_error_raises(settings):
    session = PageSession(FakePage(status=500), settings)

    with pytest.raises(NavigationError) as excinfo:
        await session.navigate("/")

    assert "HTTP 500" in str(excinfo.value)


async def test_fill_then_value_converges(session):
    await session.locate("#keyboard-input").fill("Hello Playwright")

    assert await expect(session.locate("#keyboard-input")).to_have_value("Hello Playwright") == "Hello Playwright"


async def test_hover_changes_computed_style(session):
    element = session.locate("#hover-me")
    assert await element.computed_style("background-color") == "rgb(255, 255, 255)"

    await element.hover()

    await expect(element).to_have_css("background-color", "rgb(238, 238, 238)")


async def test_text_is_whitespace_normalized(session):
    await expect(session.locate("#delayed-content")).to_have_text("Loaded after delay")


async def test_wait_for_selector_polls_until_attached(session):
    element = await session.wait_for_selector("#delayed-content", timeout_ms=1000)

    assert (await element.state()).attached


async def test_wait_for_selector_times_out_with_last_state(session):
    with pytest.raises(TimeoutExceeded) as excinfo:
        await session.wait_for_selector("#never", timeout_ms=60)

    assert excinfo.value.last_value == ElementState(attached=False)


async def test_timeout_reports_last_observed_value(session):
    with pytest.raises(TimeoutExceeded) as excinfo:
        await expect(session.locate("[data-testid=greeting]"), timeout_ms=60).to_have_text("Welcome, admin!")

    assert excinfo.value.last_value == "Welcome, user!"
    assert excinfo.value.expected == "Welcome, admin!"
    assert "Welcome, user!" in str(excinfo.value)


async def test_hidden_and_missing_elements_are_hidden(session):
    await expect(session.locate("#hidden-msg")).to_be_hidden()
    await expect(session.locate("#nope")).to_be_hidden()
    await expect(session.locate("#hidden-msg")).to_be_attached()


async def test_checkbox_select_and_attribute(session):
    await session.locate("#agree").check()
    await session.locate("#country").select_option("us")

    await expect(session.locate("#agree")).to_be_checked()
    await expect(session.locate("#country")).to_have_value("us")
    await expect(session.locate("[data-testid=greeting]")).to_have_attribute("data-testid", "greeting")


async def test_action_on_hidden_element_is_not_interactable(session):
    with pytest.raises(ElementNotInteractable) as excinfo:
        await session.locate("#hidden-msg").click()

    assert "not visible" in excinfo.value.reason


async def test_action_on_disabled_element_is_not_interactable(session):
    with pytest.raises(ElementNotInteractable) as excinfo:
        await session.locate("#disabled").fill("x")

    assert "disabled" in excinfo.value.reason


async def test_action_on_missing_element_is_not_interactable(session):
    with pytest.raises(ElementNotInteractable) as excinfo:
        await session.locate("#ghost").click()

    assert "not attached" in excinfo.value.reason


async def test_probe_of_missing_element_is_detached(session):
    assert await session.locate("#ghost").value() is DETACHED
    assert await session.locate("#ghost").is_visible() is False


async def test_probe_failure_is_distinguished_from_absence(session, monkeypatch):
    from playwright.async_api import Error as PlaywrightError

    async def broken(self):
        raise PlaywrightError("Execution context was destroyed")

    monkeypatch.setattr("harness_fakes.FakeLocator.is_visible", broken)

    assert await session.locate("#hidden-msg").is_visible() is PROBE_FAILED


async def test_screenshots_write_png(session, tmp_path):
    page_shot = tmp_path / "shots" / "page.png"
    element_shot = tmp_path / "shots" / "element.png"

    data = await session.screenshot(path=page_shot)
    await session.locate("#hover-me").screenshot(path=element_shot)

    assert data.startswith(b"\x89PNG")
    assert page_shot.read_bytes() == data
    assert element_shot.is_file()


async def test_evaluate_runs_in_page(session, page):
    await session.evaluate("document.getElementById('about').style.display = 'block'")

    assert page.evaluated == ["document.getElementById('about').style.display = 'block'"]


async def test_close_detaches_and_is_idempotent(session, page):
    await session.close()
    await session.close()

    assert session.is_closed
    assert page.listeners["dialog"] == []


def test_normalize_whitespace():
    assert normalize_whitespace("  a \n\t b ") == "a b"
    assert normalize_whitespace(None) is None
