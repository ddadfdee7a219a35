from __future__ import annotations

from .. import expect, waits
from ..contexts import Role
from ..driver import By
from ..runner import ScenarioGroup
from ..session import Session
from ..state import ScenarioState
from .common import (
    AMOUNT_INPUT,
    DATA_TAB,
    MODAL,
    RECIPIENT,
    RECIPIENT_INPUT,
    SEND_GAS_BUTTON,
    TOKEN_BALANCE,
    TX_ACCOUNT,
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
    wait_text,
)

DEPLOY_DATA = r"0x608060405234801561001057600080fd5b5033600160006101000a81548173ffffffffffffffffffffffffffffffffffffffff"

send_eth = ScenarioGroup("Send ETH from inside the extension")


@send_eth.step("starts to send a transaction")
def start_send(session: Session, state: ScenarioState) -> None:
    click(session, button("Send"))
    address = session.find(RECIPIENT_INPUT)
    amount = session.find(AMOUNT_INPUT)
    address.send_keys(RECIPIENT)
    amount.send_keys("1")
    expect.equal("amount input value", amount.get_attribute("value"), "1")

    click(session, SEND_GAS_BUTTON)
    modal = session.require_driver().find_element(MODAL)
    click(session, button("Save"), pause=None)
    waits.wait_for_staleness(modal)
    session.pause()

    click(session, button("Next"))


@send_eth.step("confirms the transaction")
def confirm_send(session: Session, state: ScenarioState) -> None:
    click(session, button("Confirm"), pause="large")


@send_eth.step("finds the transaction in the transactions list")
def find_sent(session: Session, state: ScenarioState) -> None:
    expect.count("transactions", session.find_all(TX_ITEM), 1)
    if not session.skip_on("firefox", "tx value text after in-extension ETH send"):
        wait_text(session, TX_VALUE, r"1\sETH")


send_eth_from_dapp = ScenarioGroup("Send ETH from dapp")


@send_eth_from_dapp.step("opens the dapp and approves web3 access")
def open_dapp(session: Session, state: ScenarioState) -> None:
    contexts = session.contexts
    contexts.open(session.config.dapp_url)
    session.pause()

    contexts.wait_for_count(3)
    session.switch_to_window_with_title(session.config.notification_title)
    session.pause()
    session.find(button("Approve")).click()


@send_eth_from_dapp.step("initiates a send from the dapp")
def send_from_dapp(session: Session, state: ScenarioState) -> None:
    session.switch_to(Role.DAPP)
    session.pause()
    click(session, button("Send"))

    session.contexts.wait_for_count(3)
    session.switch_to(Role.NOTIFICATION)
    session.pause()


@send_eth_from_dapp.step("confirms the send eth transaction")
def confirm_dapp_send(session: Session, state: ScenarioState) -> None:
    waits.assert_element_not_present(session.require_driver(), DATA_TAB)
    click(session, button("Confirm"))
    session.contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.switch_to(Role.EXTENSION)
    session.pause()


@send_eth_from_dapp.step("finds the transaction in the transactions list")
def find_dapp_send(session: Session, state: ScenarioState) -> None:
    expect.count("transactions", session.find_all(TX_ITEM), 2)
    wait_text(session, TX_VALUE, r"3\sETH")


deploy_contract = ScenarioGroup("Deploy contract and call contract methods")


@deploy_contract.step("creates a deploy contract transaction")
def create_deploy(session: Session, state: ScenarioState) -> None:
    session.pause("tiny")
    session.switch_to(Role.DAPP)
    session.pause()
    click(session, By.css("#deployButton"))

    session.switch_to(Role.EXTENSION)
    session.pause()
    click(session, containing("span", "Contract Deployment"))


@deploy_contract.step("displays the contract creation data")
def deploy_data(session: Session, state: ScenarioState) -> None:
    # Deployment has no function type; the calldata is the contract bytecode.
    view_data_tab(session, None, DEPLOY_DATA, origin="127.0.0.1")


@deploy_contract.step("confirms a deploy contract transaction")
def confirm_deploy(session: Session, state: ScenarioState) -> None:
    click(session, button("Confirm"))
    wait_first_text(session, TX_STATUS, r"Confirmed")
    expect.equal("first tx account", session.find_all(TX_ACCOUNT)[0].text, "Contract Deployment")
    session.pause()


@deploy_contract.step("calls and confirms a contract method where ETH is sent")
def deposit(session: Session, state: ScenarioState) -> None:
    session.switch_to(Role.DAPP)
    session.pause()
    click(session, By.css("#depositButton"))

    session.switch_to(Role.EXTENSION)
    session.pause()
    session.find_all(TX_PENDING)
    tx_value = wait_first_text(session, TX_VALUE, r"4\sETH")
    tx_value.click()
    session.pause()

    modal = open_gas_modal(session)
    customize_gas(session, price="10", limit="60001")
    click(session, button("Save"))
    waits.wait_for_staleness(modal)

    click(session, button("Confirm"))
    wait_first_text(session, TX_STATUS, r"Confirmed")
    wait_text(session, TX_VALUE, r"4\sETH")
    expect.matches("first tx account", session.find_all(TX_ACCOUNT)[0].text, r"^0x\w{8}\.{3}\w{4}$")


@deploy_contract.step("calls and confirms a contract method where ETH is received")
def withdraw(session: Session, state: ScenarioState) -> None:
    session.switch_to(Role.DAPP)
    session.pause()
    click(session, By.css("#withdrawButton"))

    session.switch_to(Role.EXTENSION)
    session.pause()
    click(session, TX_ITEM)
    click(session, button("Confirm"))

    wait_first_text(session, TX_STATUS, r"Confirmed")
    wait_text(session, TX_VALUE, r"0\sETH")
    session.contexts.close_all_except([Role.EXTENSION, Role.DAPP])
    session.switch_to(Role.EXTENSION)


@deploy_contract.step("renders the correct ETH balance")
def eth_balance(session: Session, state: ScenarioState) -> None:
    balance = session.find(TOKEN_BALANCE)
    session.pause()
    if session.skip_on("firefox", "ETH balance text after contract calls"):
        return
    waits.wait_for_text(balance, r"^92.*ETH.*$")
    expect.matches("ETH balance", balance.text, r"^92.*ETH.*$")
    session.pause()


GROUPS = [send_eth, send_eth_from_dapp, deploy_contract]
