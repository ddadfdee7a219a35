from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from e2e_harness.wallet import waits
from e2e_harness.wallet.driver import Locator, NoSuchElementError, NoSuchWindowError


class FakeElement:
    def __init__(
        self,
        text: str = "",
        *,
        locator: Locator | None = None,
        displayed: bool = True,
        enabled: bool = True,
        attributes: dict[str, str] | None = None,
        on_click: Callable[[], None] | None = None,
    ) -> None:
        self.locator = locator
        self._text = text
        self.displayed = displayed
        self.enabled = enabled
        self.stale = False
        self.attributes = dict(attributes or {})
        self.on_click = on_click
        self.clicks = 0
        self.typed: list[str] = []

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self._text = value

    def click(self) -> None:
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    def send_keys(self, *keys: str) -> None:
        self.typed.append("".join(keys))
        self.attributes["value"] = self.attributes.get("value", "") + "".join(keys)

    def clear(self) -> None:
        self.attributes["value"] = ""

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def is_displayed(self) -> bool:
        return self.displayed

    def is_enabled(self) -> bool:
        return self.enabled

    def is_stale(self) -> bool:
        return self.stale


class FakeDriver:
    """Scripted in-memory driver: windows are a dict, elements are keyed by locator.

    An element entry may be a list or a zero-arg callable returning a list, so a
    test can make elements appear after a number of polls.
    """

    def __init__(self, windows: dict[str, dict[str, str]] | None = None) -> None:
        self.windows: dict[str, dict[str, str]] = {h: dict(info) for h, info in (windows or {}).items()}
        self.current: str | None = next(iter(self.windows), None)
        self.elements: dict[Locator, Any] = {}
        self.titles_by_url: dict[str, str] = {}
        self.targets: list[dict[str, Any]] = []
        self.console: list[dict[str, Any]] = []
        self.screenshot_bytes: bytes | None = None
        self.scripts: list[tuple[str, tuple[Any, ...]]] = []
        self.visited: list[str] = []
        self.closed: list[str] = []
        self.switches: list[str] = []
        self.quit_called = False
        self._counter = len(self.windows)

    # windows ---------------------------------------------------------------

    def add_window(self, title: str = "", url: str = "") -> str:
        self._counter += 1
        handle = f"h{self._counter}"
        self.windows[handle] = {"title": title, "url": url}
        return handle

    def get_all_window_handles(self) -> list[str]:
        return list(self.windows)

    def window_info(self, handle: str) -> dict[str, str]:
        if handle not in self.windows:
            raise NoSuchWindowError(handle)
        return dict(self.windows[handle])

    def switch_to_window(self, handle: str) -> None:
        if handle not in self.windows:
            raise NoSuchWindowError(handle)
        self.current = handle
        self.switches.append(handle)

    @property
    def current_window_handle(self) -> str | None:
        return self.current

    def new_window(self, url: str) -> str:
        handle = self.add_window(self.titles_by_url.get(url, ""), url)
        self.current = handle
        return handle

    def close(self) -> None:
        if self.current not in self.windows:
            raise NoSuchWindowError(str(self.current))
        del self.windows[self.current]
        self.closed.append(self.current)
        self.current = None

    def quit(self) -> None:
        self.quit_called = True

    # page ------------------------------------------------------------------

    def get(self, url: str) -> None:
        self.visited.append(url)
        if self.current in self.windows:
            self.windows[self.current]["url"] = url

    @property
    def current_url(self) -> str:
        return self.windows.get(self.current or "", {}).get("url", "")

    @property
    def title(self) -> str:
        return self.windows.get(self.current or "", {}).get("title", "")

    def execute_script(self, script: str, *args: Any) -> Any:
        self.scripts.append((script, args))
        return None

    def find_elements(self, locator: Locator) -> list[FakeElement]:
        entry = self.elements.get(locator, [])
        found = entry() if callable(entry) else entry
        return [e for e in found if not e.stale]

    def find_element(self, locator: Locator) -> FakeElement:
        found = self.find_elements(locator)
        if not found:
            raise NoSuchElementError(str(locator))
        return found[0]

    def screenshot(self) -> bytes | None:
        return self.screenshot_bytes

    def drain_console(self) -> list[dict[str, Any]]:
        entries, self.console = self.console, []
        return entries

    def list_targets(self) -> list[dict[str, Any]]:
        return list(self.targets)


class FakeLoader:
    scheme = "chrome-extension"

    def __init__(self, extension_id: str = "extid") -> None:
        self.extension_id = extension_id
        self.reloads = 0

    def launch_flags(self, path: str) -> list[str]:
        return []

    def prepare_profile(self, path: str, profile: str) -> None:
        return None

    def install_extension(self, driver: Any, path: str) -> str:
        return self.extension_id

    def reload_extension(self, driver: Any, extension_id: str) -> None:
        self.reloads += 1
        driver.get(self.home_url(extension_id))

    def popup_url(self, extension_id: str) -> str:
        return f"chrome-extension://{extension_id}/popup.html"

    def home_url(self, extension_id: str) -> str:
        return f"chrome-extension://{extension_id}/home.html"


@pytest.fixture(autouse=True)
def fast_waits(monkeypatch):
    monkeypatch.setattr(waits, "_defaults", {"timeout": 0.3, "poll": 0.01})


@pytest.fixture
def make_config(tmp_path):
    from e2e_harness.wallet.config import HarnessConfig

    def factory(**overrides: Any) -> HarnessConfig:
        values: dict[str, Any] = {
            "browser": "chrome",
            "binary_path": "chromium",
            "profile_path": str(tmp_path / "profile"),
            "extension_path": str(tmp_path / "ext"),
            "tiny_delay_ms": 0,
            "wait_timeout": 0.3,
            "poll_interval": 0.01,
            "artifacts_dir": str(tmp_path / "artifacts"),
        }
        values.update(overrides)
        return HarnessConfig(**values)

    return factory


@pytest.fixture
def make_session(make_config):
    from e2e_harness.wallet.session import Session

    def factory(driver: FakeDriver | None = None, **overrides: Any) -> Session:
        driver = driver or FakeDriver({"h0": {"title": "", "url": "about:blank"}})
        return Session(make_config(**overrides), driver=driver, loader=FakeLoader()).start()

    return factory
