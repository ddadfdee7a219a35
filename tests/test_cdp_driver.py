from __future__ import annotations

from typing import Any


class _FakeLauncher:
    def __init__(self, targets: list[dict[str, Any]]) -> None:
        self.targets = targets
        self.stopped = False

    def list_targets(self) -> list[dict[str, Any]]:
        return list(self.targets)

    def browser_ws_url(self) -> str:
        return "ws://127.0.0.1:9222/devtools/browser/b"

    def stop(self) -> None:
        self.stopped = True


class _FakeConnection:
    """Answers CDP commands from a per-method table and records every call."""

    sent: list[tuple[str, str, dict[str, Any]]] = []
    replies: dict[str, Any] = {}
    events: list[dict[str, Any]] = []

    def __init__(self, ws_url: str, timeout: float = 5.0) -> None:
        self.ws_url = ws_url
        self.timeout = timeout
        self.closed = False

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        type(self).sent.append((self.ws_url, method, params))
        reply = type(self).replies.get(method, {})
        return reply(params) if callable(reply) else reply

    def drain_events(self, *, max_messages: int = 200) -> int:
        return 0

    def pop_events(self, methods) -> list[dict[str, Any]]:
        wanted = set(methods)
        taken = [ev for ev in type(self).events if ev.get("method") in wanted]
        type(self).events = [ev for ev in type(self).events if ev.get("method") not in wanted]
        return taken

    def close(self) -> None:
        self.closed = True


def _page(target_id: str, title: str = "", url: str = "about:blank") -> dict[str, Any]:
    return {
        "id": target_id,
        "type": "page",
        "title": title,
        "url": url,
        "webSocketDebuggerUrl": f"ws://127.0.0.1:9222/devtools/page/{target_id}",
    }


def _driver(monkeypatch, targets: list[dict[str, Any]]):
    from e2e_harness.wallet import driver as driver_module

    _FakeConnection.sent = []
    _FakeConnection.replies = {}
    _FakeConnection.events = []
    monkeypatch.setattr(driver_module, "CdpConnection", _FakeConnection)
    launcher = _FakeLauncher(targets)
    return driver_module.CdpDriver(launcher, timeout=0.2), launcher


def test_handles_keep_first_seen_order(monkeypatch) -> None:
    targets = [_page("A"), {"id": "W", "type": "service_worker", "url": "chrome-extension://x/bg.js"}]
    driver, launcher = _driver(monkeypatch, targets)

    assert driver.get_all_window_handles() == ["A"]
    # /json/list reports the newest target first; handle order must not follow it.
    launcher.targets = [_page("B", "MetaMask Notification"), _page("A")]
    assert driver.get_all_window_handles() == ["A", "B"]
    assert driver.window_info("B") == {"title": "MetaMask Notification", "url": "about:blank"}

    launcher.targets = [_page("B")]
    assert driver.get_all_window_handles() == ["B"]


def test_window_info_for_unknown_handle_raises(monkeypatch) -> None:
    import pytest

    from e2e_harness.wallet.driver import NoSuchWindowError

    driver, _ = _driver(monkeypatch, [_page("A")])
    with pytest.raises(NoSuchWindowError):
        driver.window_info("gone")
    with pytest.raises(NoSuchWindowError):
        driver.switch_to_window("gone")


def test_find_elements_resolves_array_in_index_order(monkeypatch) -> None:
    from e2e_harness.wallet.driver import By

    driver, _ = _driver(monkeypatch, [_page("A")])
    _FakeConnection.replies = {
        "Runtime.evaluate": {"result": {"objectId": "global"}},
        "Runtime.callFunctionOn": {"result": {"objectId": "array"}},
        "Runtime.getProperties": {
            "result": [
                {"name": "1", "value": {"objectId": "second"}},
                {"name": "length", "value": {"value": 2}},
                {"name": "0", "value": {"objectId": "first"}},
            ]
        },
    }
    driver.switch_to_window("A")

    found = driver.find_elements(By.css(".tx-list-item"))
    assert [e.object_id for e in found] == ["first", "second"]

    call = next(p for _, m, p in _FakeConnection.sent if m == "Runtime.callFunctionOn")
    assert call["arguments"] == [{"value": "css"}, {"value": ".tx-list-item"}]


def test_send_keys_inserts_text_and_dispatches_special_keys(monkeypatch) -> None:
    from e2e_harness.wallet.driver import CdpElement, Keys

    driver, _ = _driver(monkeypatch, [_page("A")])
    _FakeConnection.replies = {"Runtime.callFunctionOn": {"result": {"value": True}}}
    driver.switch_to_window("A")

    CdpElement(driver, "A", "input").send_keys("0.5", Keys.ENTER)

    typed = [(m, p) for _, m, p in _FakeConnection.sent if m.startswith("Input.")]
    assert typed[0] == ("Input.insertText", {"text": "0.5"})
    assert [p["type"] for _, p in typed[1:]] == ["keyDown", "keyUp"]
    assert typed[1][1]["key"] == "Enter"


def test_drain_console_normalizes_events(monkeypatch) -> None:
    driver, _ = _driver(monkeypatch, [_page("A")])
    driver.switch_to_window("A")
    _FakeConnection.events = [
        {"method": "Runtime.consoleAPICalled", "params": {"type": "error", "args": [{"value": "boom"}, {"value": 1}]}},
        {"method": "Runtime.exceptionThrown", "params": {"exceptionDetails": {"exception": {"description": "TypeError: x"}}}},
        {"method": "Log.entryAdded", "params": {"entry": {"level": "warning", "text": "slow", "url": "https://a/"}}},
        {"method": "Page.loadEventFired", "params": {}},
    ]

    entries = driver.drain_console()
    assert entries == [
        {"level": "error", "message": "boom 1", "source": "console", "url": ""},
        {"level": "error", "message": "TypeError: x", "source": "exception", "url": ""},
        {"level": "warning", "message": "slow", "source": "log", "url": "https://a/"},
    ]
    assert driver.drain_console() == []


def test_new_window_uses_browser_target_and_switches(monkeypatch) -> None:
    driver, launcher = _driver(monkeypatch, [_page("A")])

    def create(params: dict[str, Any]) -> dict[str, Any]:
        launcher.targets = [_page("N", url=params["url"]), *launcher.targets]
        return {"targetId": "N"}

    _FakeConnection.replies = {"Target.createTarget": create}

    assert driver.new_window("http://127.0.0.1:8080/") == "N"
    assert driver.current_window_handle == "N"
    assert driver.get_all_window_handles() == ["A", "N"]
    browser_calls = [m for url, m, _ in _FakeConnection.sent if "/devtools/browser/" in url]
    assert browser_calls == ["Target.createTarget"]


def test_quit_stops_the_launcher(monkeypatch) -> None:
    driver, launcher = _driver(monkeypatch, [_page("A")])
    driver.switch_to_window("A")
    driver.quit()
    assert launcher.stopped
    assert driver.current_window_handle is None


def test_targets_first_seen_together_are_ordered_oldest_first(monkeypatch) -> None:
    # /json/list lists the newest page first.
    driver, launcher = _driver(monkeypatch, [_page("C"), _page("B"), _page("A")])
    assert driver.get_all_window_handles() == ["A", "B", "C"]

    launcher.targets = [_page("E"), _page("D"), _page("C"), _page("A")]
    assert driver.get_all_window_handles() == ["A", "C", "D", "E"]
