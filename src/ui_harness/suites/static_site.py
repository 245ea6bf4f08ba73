"""
Validation suite for the static demo page.

Covers form submission with an alert, confirm and prompt dialogs, keyboard
and hover interactions, delayed content, hidden elements, form inputs,
navigation, custom attributes, visual comparison and a deliberately failing
lookup of a missing element.
"""
from pathlib import Path

from ui_harness.artifacts import normalize_title
from ui_harness.assertions import expect
from ui_harness.dialogs import accept
from ui_harness.negative import assert_absent, capture_on_error, declare_expected_failure
from ui_harness.scenario import ScenarioContext, scenario

REVEAL_ABOUT = "() => { document.querySelector('#about')?.removeAttribute('style'); }"


@scenario("Login form submission")
async def login_form_submission(ctx: ScenarioContext) -> None:
    await ctx.locate("#username").fill("testuser")
    await ctx.locate("#password").fill("password123")

    async with ctx.dialogs.expecting(type="alert", message="Login successful (simulated)", response=accept()):
        await ctx.locate("#login-form button").click()


@scenario("Confirm and prompt buttons")
async def confirm_and_prompt_buttons(ctx: ScenarioContext) -> None:
    async with ctx.dialogs.expecting(type="confirm", message="Are you sure?", response=accept()):
        await ctx.locate("#confirmBtn").click()

    async with ctx.dialogs.expecting(type="prompt", message="What is your name?", response=accept("Playwright User")):
        await ctx.locate("#promptBtn").click()


@scenario("Keyboard and mouse interactions")
async def keyboard_and_mouse_interactions(ctx: ScenarioContext) -> None:
    keyboard_input = ctx.locate("#keyboard-input")
    await keyboard_input.fill("Hello Playwright")
    await expect(keyboard_input).to_have_value("Hello Playwright")

    hover_element = ctx.locate("#hover-me")
    await hover_element.hover()
    await expect(hover_element).to_have_css("background-color", "rgb(238, 238, 238)")


@scenario("Delayed content loading")
async def delayed_content_loading(ctx: ScenarioContext) -> None:
    paragraph = await ctx.session.wait_for_selector("#delayed-content p")
    await expect(paragraph).to_have_text("Loaded after delay")


@scenario("Hidden elements")
async def hidden_elements(ctx: ScenarioContext) -> None:
    await expect(ctx.locate("#hidden-msg")).to_be_hidden()


@scenario("Hidden message never appears")
async def hidden_message_never_appears(ctx: ScenarioContext) -> None:
    await assert_absent(ctx.session, "#hidden-msg", timeout_ms=1000)


@scenario("Checkbox, radio, and select inputs")
async def checkbox_radio_and_select_inputs(ctx: ScenarioContext) -> None:
    checkbox = ctx.locate("#agree")
    await checkbox.check()
    await expect(checkbox).to_be_checked()

    admin_radio = ctx.locate('input[name="role"][value="admin"]')
    await admin_radio.check()
    await expect(admin_radio).to_be_checked()

    country_select = ctx.locate("#country")
    await country_select.select_option("us")
    await expect(country_select).to_have_value("us")


@scenario("Navigation simulation")
async def navigation_simulation(ctx: ScenarioContext) -> None:
    await ctx.locate("#nav-about").click()
    await ctx.session.evaluate(REVEAL_ABOUT)
    await expect(ctx.locate("#about")).to_be_visible()


@scenario("Custom attributes")
async def custom_attributes(ctx: ScenarioContext) -> None:
    await expect(ctx.locate('[data-testid="greeting"]')).to_have_text("Welcome, user!")


@scenario("Screenshots and visual testing")
async def screenshots_and_visual_testing(ctx: ScenarioContext) -> None:
    # Let the delayed paragraph land so the page is stable between runs.
    await ctx.session.wait_for_selector("#delayed-content p")
    await ctx.session.evaluate(REVEAL_ABOUT)
    element_shot = Path(ctx.settings.artifact_dir) / f"{normalize_title(ctx.title)}-element.png"
    await ctx.locate("#about").screenshot(element_shot)
    ctx.attach("Element Screenshot", element_shot)
    await ctx.compare_snapshot("full-page-visual.png")


async def _element_not_found(ctx: ScenarioContext) -> None:
    async with capture_on_error(ctx):
        await expect(ctx.locate("#non-existent-element"), timeout_ms=5000).to_be_visible()


element_not_found = declare_expected_failure(
    scenario("Negative test case: Element not found", timeout_ms=20000)(_element_not_found),
    reason="#non-existent-element is not part of the page",
)


SUITE = [
    login_form_submission,
    confirm_and_prompt_buttons,
    keyboard_and_mouse_interactions,
    delayed_content_loading,
    hidden_elements,
    hidden_message_never_appears,
    checkbox_radio_and_select_inputs,
    navigation_simulation,
    custom_attributes,
    screenshots_and_visual_testing,
    element_not_found,
]
