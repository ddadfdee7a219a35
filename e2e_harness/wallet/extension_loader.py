"""
Extension loading per browser.

The wallet extension is loaded unpacked from a build directory. Chromium takes
it on the command line and reveals its id through `chrome-extension://`
targets. Firefox picks it up from a proxy file in the profile's `extensions/`
directory; its internal moz-extension UUID is pinned in `user.js` so the id
is known before the browser starts.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

from .driver import AutomationDriver
from .errors import ExtensionInstallError, WaitTimeoutError
from .waits import wait_until

_LOGGER = logging.getLogger("e2e.wallet.extension_loader")

_EXTENSION_TARGET_TYPES = {"background_page", "service_worker", "page"}


class ExtensionLoader(Protocol):
    scheme: str

    def launch_flags(self, path: str) -> list[str]: ...

    def prepare_profile(self, path: str, profile: str) -> None: ...

    def install_extension(self, driver: AutomationDriver, path: str) -> str: ...

    def reload_extension(self, driver: AutomationDriver, extension_id: str) -> None: ...

    def popup_url(self, extension_id: str) -> str: ...

    def home_url(self, extension_id: str) -> str: ...


def read_manifest(path: str) -> dict:
    manifest_path = Path(path) / "manifest.json"
    try:
        return json.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ExtensionInstallError(f"No manifest.json in extension build {path}") from exc
    except ValueError as exc:
        raise ExtensionInstallError(f"Invalid manifest.json in {path}: {exc}") from exc


class _BaseLoader:
    scheme = ""

    def __init__(self, *, timeout: float = 10.0) -> None:
        self.timeout = timeout

    def popup_url(self, extension_id: str) -> str:
        return f"{self.scheme}://{extension_id}/popup.html"

    def home_url(self, extension_id: str) -> str:
        return f"{self.scheme}://{extension_id}/home.html"

    def reload_extension(self, driver: AutomationDriver, extension_id: str) -> None:
        """Navigate the current context to the extension's full-page entry point."""
        url = self.home_url(extension_id)
        _LOGGER.info("reloading extension at %s", url)
        driver.get(url)


class ChromeExtensionLoader(_BaseLoader):
    scheme = "chrome-extension"

    def launch_flags(self, path: str) -> list[str]:
        return [f"--load-extension={path}", f"--disable-extensions-except={path}"]

    def prepare_profile(self, path: str, profile: str) -> None:
        read_manifest(path)

    def install_extension(self, driver: AutomationDriver, path: str) -> str:
        def discover() -> str | None:
            for target in driver.list_targets():
                if str(target.get("type") or "") not in _EXTENSION_TARGET_TYPES:
                    continue
                parsed = urlparse(str(target.get("url") or ""))
                if parsed.scheme == self.scheme and parsed.netloc:
                    return parsed.netloc
            return None

        try:
            extension_id = wait_until(
                discover, timeout=self.timeout, subject="chrome-extension targets", predicate="present"
            )
        except WaitTimeoutError as exc:
            raise ExtensionInstallError(f"Extension from {path} did not start: {exc}") from exc
        _LOGGER.info("extension loaded: %s", extension_id)
        return extension_id


class FirefoxExtensionLoader(_BaseLoader):
    scheme = "moz-extension"

    def launch_flags(self, path: str) -> list[str]:
        return []

    @staticmethod
    def gecko_id(manifest: dict) -> str:
        for key in ("browser_specific_settings", "applications"):
            gecko = (manifest.get(key) or {}).get("gecko") or {}
            if gecko.get("id"):
                return str(gecko["id"])
        raise ExtensionInstallError("manifest.json has no gecko id; Firefox cannot side-load it")

    @staticmethod
    def internal_uuid(gecko_id: str) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"wallet-e2e:{gecko_id}"))

    def prefs(self, gecko_id: str) -> dict[str, object]:
        return {
            "xpinstall.signatures.required": False,
            "extensions.autoDisableScopes": 0,
            "extensions.enabledScopes": 15,
            "extensions.webextensions.uuids": json.dumps({gecko_id: self.internal_uuid(gecko_id)}),
            "remote.active-protocols": 3,
            "devtools.chrome.enabled": True,
            "browser.shell.checkDefaultBrowser": False,
        }

    def prepare_profile(self, path: str, profile: str) -> None:
        gecko_id = self.gecko_id(read_manifest(path))
        ext_dir = Path(profile) / "extensions"
        ext_dir.mkdir(parents=True, exist_ok=True)
        # A proxy file: named after the add-on id, containing the unpacked source path.
        (ext_dir / gecko_id).write_text(str(Path(path).resolve()), encoding="utf-8")

        lines = [f"user_pref({json.dumps(name)}, {json.dumps(value)});" for name, value in self.prefs(gecko_id).items()]
        (Path(profile) / "user.js").write_text("\n".join(lines) + "\n", encoding="utf-8")
        _LOGGER.info("firefox profile prepared for %s at %s", gecko_id, profile)

    def install_extension(self, driver: AutomationDriver, path: str) -> str:
        extension_id = self.internal_uuid(self.gecko_id(read_manifest(path)))
        _LOGGER.info("extension loaded: %s", extension_id)
        return extension_id


def loader_for(browser: str, *, timeout: float = 10.0) -> ExtensionLoader:
    name = (browser or "").strip().lower()
    if name == "chrome":
        return ChromeExtensionLoader(timeout=timeout)
    if name == "firefox":
        return FirefoxExtensionLoader(timeout=timeout)
    raise ValueError(f"No extension loader for browser {browser!r}")


__all__ = [
    "ChromeExtensionLoader",
    "ExtensionLoader",
    "FirefoxExtensionLoader",
    "loader_for",
    "read_manifest",
]
