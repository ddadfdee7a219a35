"""
Automation driver boundary.

The orchestration layer only talks to the AutomationDriver / Element protocols
below. CdpDriver is the concrete implementation: it speaks raw Chrome DevTools
Protocol over the endpoint exposed by BrowserLauncher.

Window handles are CDP page target ids, reported in first-seen order so that
handle [0] stays the context that was opened first.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Protocol

from .cdp import CdpConnection
from .http_client import HttpClientError
from .launcher import BrowserLauncher

_LOGGER = logging.getLogger("e2e.wallet.driver")


class DriverError(Exception):
    pass


class NoSuchElementError(DriverError):
    pass


class StaleElementError(DriverError):
    pass


class NoSuchWindowError(DriverError):
    pass


@dataclass(frozen=True)
class Locator:
    strategy: str
    value: str

    def __str__(self) -> str:
        return f"{self.strategy}={self.value}"


class By:
    @staticmethod
    def css(selector: str) -> Locator:
        return Locator("css", selector)

    @staticmethod
    def xpath(expression: str) -> Locator:
        return Locator("xpath", expression)

    @staticmethod
    def id(element_id: str) -> Locator:
        return Locator("id", element_id)

    @staticmethod
    def link_text(text: str) -> Locator:
        return Locator("link_text", text)


class Keys:
    NULL = "\ue000"
    TAB = "\ue004"
    BACKSPACE = "\ue003"
    ENTER = "\ue007"
    SHIFT = "\ue008"
    CONTROL = "\ue009"
    ALT = "\ue00a"

    @staticmethod
    def chord(*keys: str) -> str:
        return "".join(keys) + Keys.NULL


_KEY_DEFS: dict[str, dict[str, Any]] = {
    Keys.TAB: {"key": "Tab", "code": "Tab", "windowsVirtualKeyCode": 9},
    Keys.BACKSPACE: {"key": "Backspace", "code": "Backspace", "windowsVirtualKeyCode": 8},
    Keys.ENTER: {"key": "Enter", "code": "Enter", "windowsVirtualKeyCode": 13, "text": "\r"},
}

_MODIFIER_BITS = {Keys.ALT: 1, Keys.CONTROL: 2, Keys.SHIFT: 8}


class Element(Protocol):
    locator: Locator | None

    def click(self) -> None: ...

    def send_keys(self, *keys: str) -> None: ...

    def clear(self) -> None: ...

    @property
    def text(self) -> str: ...

    def get_attribute(self, name: str) -> str | None: ...

    def is_displayed(self) -> bool: ...

    def is_enabled(self) -> bool: ...

    def is_stale(self) -> bool: ...


class AutomationDriver(Protocol):
    def find_element(self, locator: Locator) -> Element: ...

    def find_elements(self, locator: Locator) -> list[Element]: ...

    def get_all_window_handles(self) -> list[str]: ...

    def switch_to_window(self, handle: str) -> None: ...

    @property
    def current_window_handle(self) -> str | None: ...

    def window_info(self, handle: str) -> dict[str, str]: ...

    def new_window(self, url: str) -> str: ...

    def execute_script(self, script: str, *args: Any) -> Any: ...

    def get(self, url: str) -> None: ...

    @property
    def current_url(self) -> str: ...

    @property
    def title(self) -> str: ...

    def close(self) -> None: ...

    def quit(self) -> None: ...

    def screenshot(self) -> bytes | None: ...

    def drain_console(self) -> list[dict[str, Any]]: ...

    def list_targets(self) -> list[dict[str, Any]]: ...


# Resolves a locator into an array of elements inside the page.
_FIND_JS = r"""
function(strategy, value) {
  if (strategy === "css") return Array.from(document.querySelectorAll(value));
  if (strategy === "id") {
    const el = document.getElementById(value);
    return el ? [el] : [];
  }
  if (strategy === "xpath") {
    const out = [];
    const snap = document.evaluate(value, document, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
    for (let i = 0; i < snap.snapshotLength; i++) out.push(snap.snapshotItem(i));
    return out;
  }
  if (strategy === "link_text") {
    return Array.from(document.querySelectorAll("a")).filter(a => (a.innerText || "").trim() === value);
  }
  throw new Error("unknown locator strategy: " + strategy);
}
"""

# React-controlled inputs ignore plain `.value = ''`; use the native setter and fire input.
_CLEAR_JS = r"""
function() {
  const proto = this instanceof HTMLTextAreaElement ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
  const setter = Object.getOwnPropertyDescriptor(proto, "value").set;
  setter.call(this, "");
  this.dispatchEvent(new Event("input", { bubbles: true }));
  this.dispatchEvent(new Event("change", { bubbles: true }));
}
"""

_DISPLAYED_JS = r"""
function() {
  if (!this.isConnected) return false;
  const style = window.getComputedStyle(this);
  if (style.visibility === "hidden" || style.display === "none" || style.opacity === "0") return false;
  return this.getClientRects().length > 0;
}
"""

_ATTRIBUTE_JS = r"""
function(name) {
  if (name in this && typeof this[name] !== "function" && typeof this[name] !== "object") {
    return this[name] == null ? null : String(this[name]);
  }
  return this.getAttribute(name);
}
"""


class CdpElement:
    def __init__(self, driver: CdpDriver, handle: str, object_id: str, locator: Locator | None = None) -> None:
        self._driver = driver
        self._handle = handle
        self.object_id = object_id
        self.locator = locator

    def __repr__(self) -> str:
        return f"<CdpElement {self.locator} in {self._handle}>"

    def _call(self, function: str, *args: Any) -> Any:
        conn = self._driver._connection(self._handle)
        params: dict[str, Any] = {
            "objectId": self.object_id,
            "functionDeclaration": function,
            "arguments": [{"value": a} for a in args],
            "returnByValue": True,
            "awaitPromise": True,
        }
        try:
            result = conn.send("Runtime.callFunctionOn", params)
        except HttpClientError as exc:
            # The remote object no longer exists: the node was GC'd or the document replaced.
            if "find" in str(exc).lower() and "object" in str(exc).lower():
                raise StaleElementError(f"{self.locator} is no longer attached") from exc
            raise
        if isinstance(result, dict) and result.get("exceptionDetails"):
            raise DriverError(_exception_text(result["exceptionDetails"]))
        value = result.get("result", {}) if isinstance(result, dict) else {}
        return value.get("value")

    def is_stale(self) -> bool:
        try:
            return not bool(self._call("function() { return this.isConnected; }"))
        except (StaleElementError, NoSuchWindowError):
            return True

    def _ensure_attached(self) -> None:
        if self.is_stale():
            raise StaleElementError(f"{self.locator} is no longer attached")

    def click(self) -> None:
        self._ensure_attached()
        self._call("function() { this.scrollIntoView({block: 'center'}); this.click(); }")

    def clear(self) -> None:
        self._ensure_attached()
        self._call(_CLEAR_JS)

    def send_keys(self, *keys: str) -> None:
        self._ensure_attached()
        self._call("function() { this.focus(); }")
        self._driver._type("".join(keys), self._handle)

    @property
    def text(self) -> str:
        value = self._call("function() { return (this.innerText || this.textContent || '').trim(); }")
        return str(value or "")

    def get_attribute(self, name: str) -> str | None:
        value = self._call(_ATTRIBUTE_JS, name)
        return None if value is None else str(value)

    def is_displayed(self) -> bool:
        return bool(self._call(_DISPLAYED_JS))

    def is_enabled(self) -> bool:
        return not bool(self._call("function() { return !!this.disabled; }"))


class CdpDriver:
    """AutomationDriver over raw CDP connections, one per page target."""

    def __init__(self, launcher: BrowserLauncher, *, timeout: float = 10.0) -> None:
        self.launcher = launcher
        self.timeout = timeout
        self._order: list[str] = []
        self._targets: dict[str, dict[str, Any]] = {}
        self._connections: dict[str, CdpConnection] = {}
        self._current: str | None = None
        self._console: list[dict[str, Any]] = []

    # handles -------------------------------------------------------------

    def _refresh_targets(self) -> list[str]:
        pages = [t for t in self.launcher.list_targets() if t.get("type") == "page" and t.get("id")]
        live = {str(t["id"]): t for t in pages}
        self._targets = live
        self._order = [h for h in self._order if h in live]
        # /json/list reports the newest target first.
        for handle in reversed(list(live)):
            if handle not in self._order:
                self._order.append(handle)
        for handle in list(self._connections):
            if handle not in live:
                self._drop_connection(handle)
        return list(self._order)

    def get_all_window_handles(self) -> list[str]:
        return self._refresh_targets()

    def list_targets(self) -> list[dict[str, Any]]:
        return self.launcher.list_targets()

    def window_info(self, handle: str) -> dict[str, str]:
        target = self._targets.get(handle)
        if target is None:
            self._refresh_targets()
            target = self._targets.get(handle)
        if target is None:
            raise NoSuchWindowError(f"No window with handle {handle}")
        return {"title": str(target.get("title") or ""), "url": str(target.get("url") or "")}

    @property
    def current_window_handle(self) -> str | None:
        return self._current

    def _connection(self, handle: str | None = None) -> CdpConnection:
        handle = handle or self._current
        if not handle:
            raise NoSuchWindowError("No window selected")
        conn = self._connections.get(handle)
        if conn is not None:
            return conn
        target = self._targets.get(handle)
        if target is None:
            self._refresh_targets()
            target = self._targets.get(handle)
        ws_url = target.get("webSocketDebuggerUrl") if target else None
        if not ws_url:
            raise NoSuchWindowError(f"No window with handle {handle}")
        conn = CdpConnection(ws_url, timeout=self.timeout)
        for method in ("Page.enable", "Runtime.enable", "Log.enable"):
            with suppress(HttpClientError):
                conn.send(method)
        self._connections[handle] = conn
        return conn

    def _drop_connection(self, handle: str) -> None:
        conn = self._connections.pop(handle, None)
        if conn is None:
            return
        with suppress(Exception):
            conn.drain_events()
            self._console.extend(_console_entries(conn))
        conn.close()

    def switch_to_window(self, handle: str) -> None:
        if handle not in self._targets:
            self._refresh_targets()
        if handle not in self._targets:
            raise NoSuchWindowError(f"No window with handle {handle}")
        self._current = handle
        conn = self._connection(handle)
        with suppress(HttpClientError):
            conn.send("Page.bringToFront")

    def _browser_send(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        conn = CdpConnection(self.launcher.browser_ws_url(), timeout=self.timeout)
        try:
            return conn.send(method, params)
        finally:
            conn.close()

    def new_window(self, url: str) -> str:
        result = self._browser_send("Target.createTarget", {"url": url})
        handle = str(result.get("targetId") or "")
        if not handle:
            raise DriverError(f"Failed to open a new window for {url}")
        deadline = time.time() + self.timeout
        while handle not in self._refresh_targets() and time.time() < deadline:
            time.sleep(0.1)
        self.switch_to_window(handle)
        return handle

    def close(self) -> None:
        handle = self._current
        if not handle:
            raise NoSuchWindowError("No window selected")
        self._drop_connection(handle)
        self._browser_send("Target.closeTarget", {"targetId": handle})
        self._current = None
        deadline = time.time() + self.timeout
        while handle in self._refresh_targets() and time.time() < deadline:
            time.sleep(0.05)

    def quit(self) -> None:
        for handle in list(self._connections):
            self._drop_connection(handle)
        self._current = None
        self.launcher.stop()

    # page ----------------------------------------------------------------

    def _evaluate(self, expression: str) -> Any:
        result = self._connection().send(
            "Runtime.evaluate", {"expression": expression, "returnByValue": True, "awaitPromise": True}
        )
        if result.get("exceptionDetails"):
            raise DriverError(_exception_text(result["exceptionDetails"]))
        return result.get("result", {}).get("value")

    def get(self, url: str) -> None:
        conn = self._connection()
        conn.send("Page.navigate", {"url": url})
        deadline = time.time() + self.timeout
        while time.time() < deadline:
            with suppress(DriverError, HttpClientError):
                if self._evaluate("document.readyState") == "complete":
                    return
            time.sleep(0.1)
        _LOGGER.warning("page load did not complete within %.1fs: %s", self.timeout, url)

    @property
    def current_url(self) -> str:
        return str(self._evaluate("window.location.href") or "")

    @property
    def title(self) -> str:
        return str(self._evaluate("document.title") or "")

    def _global_object_id(self, conn: CdpConnection) -> str:
        result = conn.send("Runtime.evaluate", {"expression": "globalThis"})
        return str(result["result"]["objectId"])

    def find_elements(self, locator: Locator) -> list[Element]:
        handle = self._current
        conn = self._connection()
        array = conn.send(
            "Runtime.callFunctionOn",
            {
                "objectId": self._global_object_id(conn),
                "functionDeclaration": _FIND_JS,
                "arguments": [{"value": locator.strategy}, {"value": locator.value}],
            },
        )
        if array.get("exceptionDetails"):
            raise DriverError(_exception_text(array["exceptionDetails"]))
        array_id = array.get("result", {}).get("objectId")
        if not array_id:
            return []
        props = conn.send("Runtime.getProperties", {"objectId": array_id, "ownProperties": True})
        indexed: list[tuple[int, str]] = []
        for prop in props.get("result", []):
            name = str(prop.get("name", ""))
            obj_id = prop.get("value", {}).get("objectId")
            if name.isdigit() and obj_id:
                indexed.append((int(name), obj_id))
        indexed.sort()
        return [CdpElement(self, str(handle), obj_id, locator) for _, obj_id in indexed]

    def find_element(self, locator: Locator) -> Element:
        elements = self.find_elements(locator)
        if not elements:
            raise NoSuchElementError(f"No element matches {locator}")
        return elements[0]

    def execute_script(self, script: str, *args: Any) -> Any:
        conn = self._connection()
        arguments = [{"objectId": a.object_id} if isinstance(a, CdpElement) else {"value": a} for a in args]
        result = conn.send(
            "Runtime.callFunctionOn",
            {
                "objectId": self._global_object_id(conn),
                "functionDeclaration": f"function() {{ {script} }}",
                "arguments": arguments,
                "returnByValue": True,
                "awaitPromise": True,
            },
        )
        if result.get("exceptionDetails"):
            raise DriverError(_exception_text(result["exceptionDetails"]))
        return result.get("result", {}).get("value")

    def _type(self, keys: str, handle: str) -> None:
        conn = self._connection(handle)
        modifiers = 0
        buffered: list[str] = []

        def flush() -> None:
            if buffered:
                conn.send("Input.insertText", {"text": "".join(buffered)})
                buffered.clear()

        for ch in keys:
            if ch == Keys.NULL:
                flush()
                modifiers = 0
            elif ch in _MODIFIER_BITS:
                flush()
                modifiers |= _MODIFIER_BITS[ch]
            elif ch in _KEY_DEFS or modifiers:
                flush()
                key = _KEY_DEFS.get(ch) or {"key": ch, "code": f"Key{ch.upper()}", "windowsVirtualKeyCode": ord(ch.upper())}
                down = {"type": "keyDown", "modifiers": modifiers, **key}
                if modifiers:
                    down.pop("text", None)
                conn.send("Input.dispatchKeyEvent", down)
                conn.send("Input.dispatchKeyEvent", {"type": "keyUp", "modifiers": modifiers, **{k: v for k, v in key.items() if k != "text"}})
            else:
                buffered.append(ch)
        flush()

    def screenshot(self) -> bytes | None:
        try:
            result = self._connection().send("Page.captureScreenshot", {"format": "png"})
        except (DriverError, HttpClientError) as exc:
            _LOGGER.warning("screenshot failed: %s", exc)
            return None
        data = result.get("data")
        return base64.b64decode(data) if isinstance(data, str) else None

    def drain_console(self) -> list[dict[str, Any]]:
        entries, self._console = self._console, []
        for conn in self._connections.values():
            with suppress(Exception):
                conn.drain_events()
            entries.extend(_console_entries(conn))
        return entries


_CONSOLE_METHODS = ("Runtime.consoleAPICalled", "Runtime.exceptionThrown", "Log.entryAdded")


def _console_entries(conn: CdpConnection) -> list[dict[str, Any]]:
    """Normalize buffered console/log events to {level, message, source, url}."""
    out: list[dict[str, Any]] = []
    for ev in conn.pop_events(_CONSOLE_METHODS):
        method = ev.get("method")
        params = ev.get("params") or {}
        if method == "Runtime.consoleAPICalled":
            args = params.get("args") or []
            parts = [str(a.get("value", a.get("description", ""))) for a in args if isinstance(a, dict)]
            out.append({"level": str(params.get("type") or "log"), "message": " ".join(parts), "source": "console", "url": ""})
        elif method == "Runtime.exceptionThrown":
            out.append({"level": "error", "message": _exception_text(params.get("exceptionDetails") or {}), "source": "exception", "url": ""})
        elif method == "Log.entryAdded":
            entry = params.get("entry") or {}
            out.append(
                {
                    "level": str(entry.get("level") or "info"),
                    "message": str(entry.get("text") or ""),
                    "source": str(entry.get("source") or "log"),
                    "url": str(entry.get("url") or ""),
                }
            )
    return out


def _exception_text(details: dict[str, Any]) -> str:
    exc = details.get("exception") if isinstance(details, dict) else None
    if isinstance(exc, dict) and exc.get("description"):
        return str(exc["description"])
    return str(details.get("text") or json.dumps(details)[:500])


__all__ = [
    "AutomationDriver",
    "By",
    "CdpDriver",
    "CdpElement",
    "DriverError",
    "Element",
    "Keys",
    "Locator",
    "NoSuchElementError",
    "NoSuchWindowError",
    "StaleElementError",
]
