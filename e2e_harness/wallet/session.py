from __future__ import annotations

import logging
import re
from contextlib import suppress
from typing import Any

from . import waits
from .config import HarnessConfig
from .contexts import ContextPatterns, ContextRegistry, Role
from .driver import AutomationDriver, CdpDriver, Element, Locator
from .extension_loader import ExtensionLoader, loader_for
from .launcher import BrowserLauncher
from .waits import DelayTiers

_LOGGER = logging.getLogger("e2e.wallet.session")


class Session:
    """One browser, one extension id, one context registry for the whole run.

    The session is the exclusive owner of the driver: scenario steps act through
    it and the registry, never on a driver of their own.
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        driver: AutomationDriver | None = None,
        loader: ExtensionLoader | None = None,
        launcher: BrowserLauncher | None = None,
    ) -> None:
        self.config = config
        self.loader = loader or loader_for(config.browser, timeout=config.wait_timeout)
        self.launcher = launcher
        self.driver: AutomationDriver | None = driver
        self.delays = DelayTiers.from_tiny_ms(config.tiny_delay_ms)
        self.extension_id: str | None = None
        self._contexts: ContextRegistry | None = None
        self._started = False
        self._closed = False

    @classmethod
    def from_config(cls, config: HarnessConfig) -> Session:
        return cls(config)

    # lifecycle ------------------------------------------------------------

    def start(self) -> Session:
        if self._started:
            raise RuntimeError("Session already started")
        self._started = True
        waits.configure(timeout=self.config.wait_timeout, poll=self.config.poll_interval)

        if self.driver is None:
            path = self.config.extension_path
            self.loader.prepare_profile(path, self.config.profile_path)
            self.launcher = self.launcher or BrowserLauncher(self.config, self.loader.launch_flags(path))
            result = self.launcher.ensure_running()
            _LOGGER.info("browser: %s", result.message)
            if not self.launcher.cdp_ready():
                raise RuntimeError(f"Browser did not come up: {result.message} (log: {result.log_path})")
            self.driver = CdpDriver(self.launcher, timeout=self.config.wait_timeout)

        self.extension_id = self.loader.install_extension(self.driver, self.config.extension_path)
        self._contexts = ContextRegistry(
            self.driver,
            ContextPatterns.for_extension(
                self.extension_id,
                dapp_title=self.config.dapp_title,
                dapp_url=self.config.dapp_url,
                notification_title=self.config.notification_title,
            ),
        )
        handles, _previous = self._contexts.refresh()
        if handles:
            self.driver.switch_to_window(handles[0])
        self.driver.get(self.loader.popup_url(self.extension_id))
        self._contexts.refresh()
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.driver is not None:
            try:
                self.driver.quit()
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning("driver quit failed: %s", exc)
        if self.launcher is not None:
            with suppress(Exception):
                self.launcher.stop()

    def __enter__(self) -> Session:
        # __exit__ is not called when __enter__ raises; a half-started browser must not outlive it.
        try:
            return self.start()
        except BaseException:
            self.close()
            raise

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # accessors ------------------------------------------------------------

    @property
    def contexts(self) -> ContextRegistry:
        if self._contexts is None:
            raise RuntimeError("Session not started")
        return self._contexts

    def require_driver(self) -> AutomationDriver:
        if self.driver is None:
            raise RuntimeError("Session not started")
        return self.driver

    # step helpers ---------------------------------------------------------

    def find(self, locator: Locator, timeout: float | None = None) -> Element:
        return waits.find_element(self.require_driver(), locator, timeout)

    def find_all(self, locator: Locator, timeout: float | None = None) -> list[Element]:
        return waits.find_elements(self.require_driver(), locator, timeout)

    def pause(self, tier: str = "regular", times: float = 1) -> None:
        self.delays.pause(tier, times)

    def load_extension(self) -> None:
        """Point the current context at the extension's home page again."""
        if not self.extension_id:
            raise RuntimeError("Session not started")
        self.loader.reload_extension(self.require_driver(), self.extension_id)

    def switch_to(self, role: Role) -> str:
        return self.contexts.switch_to(role)

    def open_page(self, url: str) -> str:
        return self.contexts.open(url)

    def switch_to_window_with_title(self, title: str, timeout: float | None = None) -> str:
        """Wait until a context titled exactly `title` exists and switch to it."""
        pattern = re.compile(rf"^{re.escape(title)}$")

        def probe() -> str | None:
            self.contexts.refresh()
            return self.contexts.find_by_title(pattern)

        handle = waits.wait_until(probe, timeout=timeout, subject="window title", predicate=f"=={title!r}")
        return self.contexts.switch_to_handle(handle)

    def skip_on(self, browser: str, reason: str) -> bool:
        """True when a check is a known limitation on `browser`; logs a warning naming it."""
        if self.config.browser == browser:
            _LOGGER.warning("skipping check on %s: %s", browser, reason)
            return True
        return False

    def screenshot(self) -> bytes | None:
        if self.driver is None:
            return None
        try:
            return self.driver.screenshot()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("screenshot failed: %s", exc)
            return None


__all__ = ["Session"]
