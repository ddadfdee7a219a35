from __future__ import annotations

from .. import expect, waits
from ..contexts import Role
from ..driver import By, Element
from ..runner import ScenarioGroup
from ..session import Session
from ..state import ScenarioState
from .common import (
    AMOUNT_INPUT,
    GAS_FEE,
    GAS_SAVE,
    MODAL,
    RECIPIENT,
    RECIPIENT_INPUT,
    SEND_GAS_BUTTON,
    TOKEN_BALANCE,
    TX_ITEM,
    TX_PENDING,
    TX_STATUS,
    TX_VALUE,
    button,
    click,
    containing,
    customize_gas,
    open_gas_modal,
    view_data_tab,
    wait_first_text,
)

TRANSFER_DATA = r"0xa9059cbb0000000000000000000000002f318c334780961fb129d2a6c30d0763d9a5c97"
APPROVE_DATA = r"0x095ea7b30000000000000000000000002f318c334780961fb129d2a6c30d0763d9a5c97"
CUSTOM_GAS_FEE = "♦ 0.0006"


def _add_tokens(session: Session, pause: str = "regular") -> None:
    click(session, button("Next"))
    click(session, button("Add Tokens"), pause=pause)


def _custom_gas_from_dapp(session: Session, modal: Element) -> None:
    customize_gas(session, price="10", limit="60000", select_all=True)
    session.find(GAS_SAVE).click()
    waits.wait_for_staleness(modal)
    expect.equal("gas fee", session.find_all(GAS_FEE)[0].text, CUSTOM_GAS_FEE)


add_custom_token = ScenarioGroup("Add a custom token from a dapp")


@add_custom_token.step("creates a new token")
def create_token(session: Session, state: ScenarioState) -> None:
    session.pause("regular", times=2)
    session.switch_to(Role.DAPP)
    session.pause()
    click(session, button("Create Token"))

    session.switch_to(Role.EXTENSION)
    session.load_extension()
    session.pause()
    click(session, button("Confirm"))

    session.switch_to(Role.DAPP)
    session.pause("tiny")
    address = session.require_driver().find_element(By.css("#tokenAddress"))
    waits.wait_for_text(address, r"0x")
    state.set("token_address", address.text)
    session.pause()

    session.contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.pause()
    session.switch_to(Role.EXTENSION)
    session.pause()


@add_custom_token.step("clicks on the Add Token button")
def open_add_token(session: Session, state: ScenarioState) -> None:
    click(session, button("Add Token"))


@add_custom_token.step("picks the newly created Test token")
def pick_custom_token(session: Session, state: ScenarioState) -> None:
    click(session, containing("div", "Custom Token"))
    session.find(By.css("#custom-address")).send_keys(state.token_address)
    session.pause()
    _add_tokens(session)


@add_custom_token.step("renders the balance for the new token")
def custom_token_balance(session: Session, state: ScenarioState) -> None:
    balance = session.find(TOKEN_BALANCE)
    waits.wait_for_text(balance, r"^100\s*TST\s*$")
    expect.matches("token balance", balance.text, r"^100\s*TST\s*$")
    session.pause()


send_token = ScenarioGroup("Send token from inside the extension")


@send_token.step("starts to send a transaction")
def start_token_send(session: Session, state: ScenarioState) -> None:
    click(session, button("Send"))
    session.find(RECIPIENT_INPUT).send_keys(RECIPIENT)
    session.find(AMOUNT_INPUT).send_keys("50")
    click(session, SEND_GAS_BUTTON)
    state.set("gas_modal", session.require_driver().find_element(MODAL))


@send_token.step("opens customizes gas modal")
def save_default_gas(session: Session, state: ScenarioState) -> None:
    waits.wait_for(session.require_driver(), By.css(".send-v2__customize-gas__title"))
    click(session, button("Save"))


@send_token.step("transitions to the confirm screen")
def to_confirm_screen(session: Session, state: ScenarioState) -> None:
    waits.wait_for_staleness(state.require("gas_modal"))
    click(session, button("Next"))


@send_token.step("displays the token transfer data")
def transfer_data(session: Session, state: ScenarioState) -> None:
    view_data_tab(session, "Transfer", TRANSFER_DATA)


@send_token.step("submits the transaction")
def submit_token_send(session: Session, state: ScenarioState) -> None:
    click(session, button("Confirm"))


@send_token.step("finds the transaction in the transactions list")
def find_token_send(session: Session, state: ScenarioState) -> None:
    expect.count("transactions", session.find_all(TX_ITEM), 1)
    values = session.find_all(TX_VALUE)
    expect.count("transaction values", values, 1)
    if not session.skip_on("firefox", "tx value text after token send"):
        waits.wait_for_text(values[0], r"50\sTST")
    status = wait_first_text(session, TX_STATUS, r"Confirmed|Failed")
    expect.equal("transaction status", status.text, "Confirmed")


send_token_from_dapp = ScenarioGroup("Send a custom token from dapp")


@send_token_from_dapp.step("sends an already created token")
def transfer_from_dapp(session: Session, state: ScenarioState) -> None:
    contexts = session.contexts
    session.switch_to_window_with_title(session.config.dapp_title)
    contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.pause()

    session.switch_to(Role.DAPP)
    session.pause("tiny")
    click(session, button("Transfer Tokens"), pause=None)

    contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.switch_to(Role.EXTENSION)
    session.pause("large")

    session.find_all(TX_PENDING)
    tx_value = wait_first_text(session, TX_VALUE, r"7\sTST")
    tx_value.click()
    session.pause()
    state.set("gas_modal", open_gas_modal(session))


@send_token_from_dapp.step("customizes gas")
def customize_transfer_gas(session: Session, state: ScenarioState) -> None:
    _custom_gas_from_dapp(session, state.require("gas_modal"))


@send_token_from_dapp.step("submits the transaction")
def submit_dapp_transfer(session: Session, state: ScenarioState) -> None:
    click(session, button("Confirm"))


@send_token_from_dapp.step("finds the transaction in the transactions list")
def find_dapp_transfer(session: Session, state: ScenarioState) -> None:
    expect.count("transactions", session.find_all(TX_ITEM), 2)
    wait_first_text(session, TX_VALUE, r"7\sTST")
    wait_first_text(session, TX_STATUS, r"Confirmed")

    session.find(By.css(".wallet-balance")).click()
    session.find_all(By.css(".token-list-item"))[0].click()
    if not session.skip_on("firefox", "token balance amount after dapp transfer"):
        expect.equal("token balance", session.find(By.css(".token-balance__amount")).text, "43")


approve_token = ScenarioGroup("Approves a custom token from dapp")


@approve_token.step("approves an already created token")
def approve_from_dapp(session: Session, state: ScenarioState) -> None:
    contexts = session.contexts
    session.switch_to_window_with_title(session.config.dapp_title)
    contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.pause()

    session.switch_to(Role.DAPP)
    session.pause("tiny")
    click(session, button("Approve Tokens"), pause=None)

    contexts.close_all_except(Role.EXTENSION)
    session.pause()

    tx_item = session.find_all(TX_ITEM)[0]
    wait_first_text(session, TX_VALUE, r"0\sETH")
    tx_item.click()
    session.pause()


@approve_token.step("displays the token approval data")
def approval_data(session: Session, state: ScenarioState) -> None:
    view_data_tab(session, "Approve", APPROVE_DATA)
    warning = session.find(By.css(".confirm-page-container-warning__warning"))
    expect.matches("approval warning", warning.text, r"By approving this")


@approve_token.step("opens the gas edit modal")
def open_approval_gas(session: Session, state: ScenarioState) -> None:
    state.set("gas_modal", open_gas_modal(session))


@approve_token.step("customizes gas")
def customize_approval_gas(session: Session, state: ScenarioState) -> None:
    _custom_gas_from_dapp(session, state.require("gas_modal"))


@approve_token.step("submits the transaction")
def submit_approval(session: Session, state: ScenarioState) -> None:
    click(session, button("Confirm"))


@approve_token.step("finds the transaction in the transactions list")
def find_approval(session: Session, state: ScenarioState) -> None:
    wait_first_text(session, TX_VALUE, r"0\sETH")
    wait_first_text(session, TX_STATUS, r"Confirmed")


hide_token = ScenarioGroup("Hide token")


@hide_token.step("hides the token when clicked")
def hide(session: Session, state: ScenarioState) -> None:
    driver = session.require_driver()
    session.find_all(By.css(".token-list-item__ellipsis"))[0].click()
    waits.wait_for(driver, By.css(".menu__item--clickable")).click()

    modal = session.find(MODAL)
    waits.wait_for(driver, By.css(".hide-token-confirmation__button")).click()
    waits.wait_for_staleness(modal)


add_existing_token = ScenarioGroup("Add existing token using search")


@add_existing_token.step("clicks on the Add Token button")
def open_add_existing(session: Session, state: ScenarioState) -> None:
    click(session, button("Add Token"))


@add_existing_token.step("can pick a token from the existing options")
def pick_existing(session: Session, state: ScenarioState) -> None:
    session.find(By.css("#search-tokens")).send_keys("BAT")
    session.pause()
    click(session, containing("span", "BAT"))
    _add_tokens(session, pause="large")


@add_existing_token.step("renders the balance for the chosen token")
def existing_token_balance(session: Session, state: ScenarioState) -> None:
    waits.wait_for_text(session.find(TOKEN_BALANCE), r"0\sBAT")
    session.pause()


GROUPS = [add_custom_token, send_token, send_token_from_dapp, approve_token, hide_token, add_existing_token]
