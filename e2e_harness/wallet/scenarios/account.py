from __future__ import annotations

from .. import expect, waits
from ..driver import By, Keys
from ..runner import ScenarioGroup
from ..session import Session
from ..state import ScenarioState
from .common import ACCOUNT_MENU, MODAL, PASSWORD, TEST_SEED_PHRASE, button, click, containing, log_out

account_info = ScenarioGroup("Show account information")


@account_info.step("shows the QR code for the account")
def show_qr_code(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    driver.find_element(By.css(".wallet-view__details-button")).click()
    expect.true("QR code displayed", session.find(By.css(".qr-wrapper")).is_displayed())
    session.pause()

    modal = driver.find_element(MODAL)
    driver.execute_script("document.querySelector('.account-modal-close').click()")
    waits.wait_for_staleness(modal)
    session.pause()


log_out_and_in = ScenarioGroup("Log out and log back in")


@log_out_and_in.step("logs out of the account")
def logs_out(session: Session, state: ScenarioState) -> None:
    log_out(session)


@log_out_and_in.step("accepts the account password after lock")
def unlocks(session: Session, state: ScenarioState) -> None:
    password = session.find(By.id("password"))
    password.send_keys(PASSWORD)
    password.send_keys(Keys.ENTER)
    session.pause("large", times=4)


add_account = ScenarioGroup("Add account")


@add_account.step("choose Create Account from the account menu")
def open_create_account(session: Session, state: ScenarioState) -> None:
    session.require_driver().find_element(ACCOUNT_MENU).click()
    session.pause()
    click(session, containing("div", "Create Account"))


@add_account.step("set account name")
def set_account_name(session: Session, state: ScenarioState) -> None:
    name = "2nd account"
    session.find(By.css(".new-account-create-form input")).send_keys(name)
    session.pause()
    click(session, button("Create"), pause="large")
    state.set("account_name", name)


@add_account.step("should display correct account name")
def check_account_name(session: Session, state: ScenarioState) -> None:
    expect.equal("account name", session.find(By.css(".account-name")).text, state.require("account_name"))
    session.pause()


import_seed_phrase = ScenarioGroup("Import seed phrase")


@import_seed_phrase.step("logs out of the vault")
def logs_out_of_vault(session: Session, state: ScenarioState) -> None:
    log_out(session)


@import_seed_phrase.step("imports seed phrase")
def imports_seed_phrase(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    restore = session.find(By.css(".unlock-page__link--import"))
    expect.equal("restore link text", restore.text, "Import using account seed phrase")
    restore.click()
    session.pause()

    session.find(By.css("textarea")).send_keys(TEST_SEED_PHRASE)
    session.pause()

    inputs = driver.find_elements(By.css("input"))
    expect.true("two password inputs", len(inputs) >= 2)
    session.pause()
    inputs[0].send_keys(PASSWORD)
    inputs[1].send_keys(PASSWORD)
    driver.find_element(By.css(".first-time-flow__button")).click()
    session.pause()


@import_seed_phrase.step("balance renders")
def balance_renders(session: Session, state: ScenarioState) -> None:
    balance = session.find(By.css(".balance-display .token-amount"))
    waits.wait_for_text(balance, r"100.+ETH")
    session.pause()


GROUPS = [account_info, log_out_and_in, add_account, import_seed_phrase]
