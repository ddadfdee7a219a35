from __future__ import annotations

from .. import expect, waits
from ..contexts import Role
from ..driver import By
from ..errors import WaitTimeoutError
from ..recovery import RecoveryStrategy
from ..runner import ScenarioGroup
from ..session import Session
from ..state import ScenarioState
from .common import MODAL, PASSWORD, button, click

new_ui_setup = ScenarioGroup("New UI setup")

NETWORK_SELECTOR = By.css("#network_component")
REVEAL_BUTTON = By.css(".backup-phrase__secret-blocker .backup-phrase__reveal-button")


@new_ui_setup.step("switches to first tab")
def switch_to_first_tab(session: Session, state: ScenarioState) -> None:
    handles, _previous = session.contexts.refresh()
    session.contexts.switch_to_handle(handles[0])
    session.pause()

    def locate(*, recovered: bool) -> None:
        session.find(NETWORK_SELECTOR)

    def reload() -> None:
        session.load_extension()
        session.pause("large")

    RecoveryStrategy(reload, delays=session.delays, label="network selector").run(locate)
    session.pause()


@new_ui_setup.step("uses the local network")
def use_local_network(session: Session, state: ScenarioState) -> None:
    click(session, NETWORK_SELECTOR)
    networks = session.find_all(By.css(".dropdown-menu-item"))
    expect.true("network dropdown has a Localhost entry", len(networks) > 4)
    localhost = waits.wait_for_text(networks[4], r"Localhost")
    localhost.click()
    session.pause()


@new_ui_setup.step("selects the new UI option")
def select_new_ui(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    try:
        overlay = session.find(By.css(".full-flex-height"))
        waits.wait_for_staleness(overlay)
    except WaitTimeoutError:
        pass

    old_ui = session.contexts.handle_for(Role.EXTENSION)
    click(session, By.xpath("//p[contains(text(), 'Try Beta Version')]"))
    waits.wait_until(
        lambda: len(driver.get_all_window_handles()) > 1, subject="window handles", predicate="new beta tab"
    )

    # The old UI tab goes first so the beta page can take over the extension role.
    session.contexts.switch_to_handle(old_ui)
    driver.close()
    session.contexts.refresh()
    session.contexts.close_all_except(Role.EXTENSION)
    session.pause()

    click(session, By.css(".welcome-screen__button"))


first_time_flow = ScenarioGroup("Going through the first time flow")


@first_time_flow.step("accepts a secure password")
def accept_password(session: Session, state: ScenarioState) -> None:
    password = session.find(By.css(".create-password #create-password"))
    confirm = session.find(By.css(".create-password #confirm-password"))
    submit = session.find(By.css(".create-password button"))
    password.send_keys(PASSWORD)
    confirm.send_keys(PASSWORD)
    submit.click()
    session.pause()


@first_time_flow.step("clicks through the unique image screen")
def unique_image(session: Session, state: ScenarioState) -> None:
    click(session, By.css(".unique-image button"))


@first_time_flow.step("clicks through the ToS")
def terms_of_use(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    expect.false("continue enabled before scrolling the ToS", driver.find_element(By.css(".tou button")).is_enabled())
    bottom = session.find(By.link_text("Attributions"))
    driver.execute_script("arguments[0].scrollIntoView(true)", bottom)
    session.pause()
    accept = session.find(By.css(".tou button"))
    waits.wait_for_enabled(accept)
    accept.click()
    session.pause()


@first_time_flow.step("clicks through the privacy notice")
def privacy_notice(session: Session, state: ScenarioState) -> None:
    click(session, By.css(".tou button"))


@first_time_flow.step("clicks through the phishing notice")
def phishing_notice(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    notice = driver.find_element(By.css(".markdown"))
    driver.execute_script("arguments[0].scrollTop = arguments[0].scrollHeight", notice)
    session.pause()
    click(session, By.css(".tou button"))


def _reveal_seed_phrase(session: Session) -> None:
    waits.wait_for(session.require_driver(), REVEAL_BUTTON)
    click(session, REVEAL_BUTTON)


@first_time_flow.step("reveals the seed phrase")
def reveal_seed_phrase(session: Session, state: ScenarioState) -> None:
    _reveal_seed_phrase(session)
    seed_phrase = session.require_driver().find_element(By.css(".backup-phrase__secret-words")).text
    expect.equal("seed phrase word count", len(seed_phrase.split(" ")), 12)
    state.set("seed_phrase", seed_phrase)
    session.pause()
    click(session, By.css(".backup-phrase button"))


@first_time_flow.step("can retype the seed phrase")
def retype_seed_phrase(session: Session, state: ScenarioState) -> None:
    words = state.seed_phrase.split(" ")

    def retype(*, recovered: bool) -> None:
        if recovered:
            # A reload lands back on the reveal screen.
            _reveal_seed_phrase(session)
            click(session, By.css(".backup-phrase button"))
        for word in words:
            click(session, button(word), pause="tiny")

    RecoveryStrategy(session.load_extension, delays=session.delays, label="seed phrase retype").run(retype)
    click(session, button("Confirm"))


@first_time_flow.step("clicks through the deposit modal")
def deposit_modal(session: Session, state: ScenarioState) -> None:
    modal = waits.wait_for(session.require_driver(), MODAL)
    click(session, By.css(".page-container__header-close"), pause=None)
    waits.wait_for_staleness(modal)
    session.pause()


GROUPS = [new_ui_setup, first_time_flow]
