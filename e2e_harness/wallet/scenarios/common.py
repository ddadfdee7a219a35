"""Locators, fixture values and small interaction helpers shared by the wallet scenarios."""

from __future__ import annotations

import re

from .. import expect, waits
from ..driver import By, Element, Keys, Locator
from ..session import Session

PASSWORD = "correct horse battery staple"
TEST_SEED_PHRASE = "phrase upgrade clock rough situate wedding elder clever doctor stamp excess tent"
RECIPIENT = "0x2f318C334780961FB129D2a6c30D0763d9a5C970"

MODAL = By.css("span .modal")
DATA_TAB = By.xpath("//li[contains(text(), 'Data')]")
DETAILS_TAB = By.xpath("//li[contains(text(), 'Details')]")
DATA_BOX = By.css(".confirm-page-container-content__data-box")
FUNCTION_TYPE = By.css(".confirm-page-container-content__function-type")
TX_ITEM = By.css(".tx-list-item")
TX_VALUE = By.css(".tx-list-value")
TX_STATUS = By.css(".tx-list-status")
TX_ACCOUNT = By.css(".tx-list-account")
TX_PENDING = By.css(".tx-list-pending-item-container")
TOKEN_BALANCE = By.css(".tx-view .balance-display .token-amount")
ACCOUNT_MENU = By.css(".account-menu__icon")
LOGOUT_BUTTON = By.css(".account-menu__logout-button")
GAS_EDIT = By.css(".confirm-detail-row__header-text--edit")
GAS_TITLE = By.css(".customize-gas__title")
GAS_INPUTS = By.css(".customize-gas-input")
GAS_SAVE = By.css(".customize-gas__save")
GAS_FEE = By.css(".confirm-detail-row__eth")
RECIPIENT_INPUT = By.css('input[placeholder="Recipient Address"]')
AMOUNT_INPUT = By.css(".currency-display__input")
SEND_GAS_BUTTON = By.css(".send-v2__gas-fee-display button")


def button(text: str) -> Locator:
    return By.xpath(f"//button[contains(text(), '{text}')]")


def containing(tag: str, text: str) -> Locator:
    return By.xpath(f"//{tag}[contains(text(), '{text}')]")


def click(session: Session, locator: Locator, *, pause: str | None = "regular", timeout: float | None = None) -> Element:
    element = session.find(locator, timeout)
    element.click()
    if pause:
        session.pause(pause)
    return element


def wait_text(session: Session, locator: Locator, pattern: str | re.Pattern[str], timeout: float | None = None) -> Element:
    """Find `locator`, then wait until its text matches `pattern`."""
    return waits.wait_for_text(session.find(locator, timeout), pattern, timeout=timeout)


def wait_first_text(session: Session, locator: Locator, pattern: str | re.Pattern[str]) -> Element:
    """Like wait_text, but on the first of possibly many matches (tx lists)."""
    first = session.find_all(locator)[0]
    return waits.wait_for_text(first, pattern)


def open_gas_modal(session: Session, edit: Locator = GAS_EDIT) -> Element:
    edit_button = waits.wait_for(session.require_driver(), edit)
    edit_button.click()
    session.pause()
    return session.require_driver().find_element(MODAL)


def customize_gas(session: Session, *, price: str, limit: str, select_all: bool = False) -> list[Element]:
    """Fill the customize-gas modal inputs; returns [price_input, limit_input]."""
    waits.wait_for(session.require_driver(), GAS_TITLE)
    price_input, limit_input = session.find_all(GAS_INPUTS)[:2]
    price_input.clear()
    session.pause("tiny")
    price_input.send_keys(price)
    session.pause("tiny")
    limit_input.clear()
    session.pause("tiny")
    if select_all:
        limit_input.send_keys(Keys.chord(Keys.CONTROL, "a"))
        limit_input.send_keys(limit)
        limit_input.send_keys(Keys.chord(Keys.CONTROL, "e"))
        # Some Firefox builds keep the default trailing digit after select-all.
        if limit_input.get_attribute("value") == f"{limit}1":
            limit_input.send_keys(Keys.BACKSPACE)
    else:
        limit_input.send_keys(limit)
    return [price_input, limit_input]


def log_out(session: Session) -> None:
    session.require_driver().find_element(ACCOUNT_MENU).click()
    session.pause()
    logout = session.find(LOGOUT_BUTTON)
    expect.equal("logout button text", logout.text, "Log out")
    logout.click()
    session.pause()


def view_data_tab(session: Session, function_type: str | None, data_pattern: str, *, origin: str | None = None) -> None:
    """Open the confirmation's Data tab, check function type and calldata, return to Details."""
    session.find(DATA_TAB).click()
    session.pause()
    if origin is not None:
        session.find(containing("div", origin))
    if function_type is not None:
        expect.equal("function type", session.find(FUNCTION_TYPE).text, function_type)
    expect.matches("confirmation data", session.find(DATA_BOX).text, data_pattern)
    session.find(DETAILS_TAB).click()
    session.pause()


__all__ = [
    "PASSWORD",
    "RECIPIENT",
    "TEST_SEED_PHRASE",
    "button",
    "click",
    "containing",
    "customize_gas",
    "log_out",
    "open_gas_modal",
    "view_data_tab",
    "wait_first_text",
    "wait_text",
]
