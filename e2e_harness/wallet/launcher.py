from __future__ import annotations

import contextlib
import logging
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.error import URLError
from urllib.request import urlopen

from .config import HarnessConfig, expand_path
from .http_client import HttpClientError, http_get_json

_LOGGER = logging.getLogger("e2e.wallet.launcher")


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str
    log_path: str | None = None


class BrowserLauncher:
    """Starts and stops the browser process that the CDP driver attaches to."""

    def __init__(self, config: HarnessConfig, extension_flags: list[str] | None = None) -> None:
        self.config = config
        self.extension_flags = list(extension_flags or [])
        self.process: subprocess.Popen | None = None

    def _chrome_flags(self) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.cdp_port}",
            f"--user-data-dir={expand_path(self.config.profile_path)}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-fre",
            "--disable-popup-blocking",
            "--disable-features=ExtensionInstallVerification,ExtensionInstallVerificationIfOffStoreOnly",
        ]
        # Classic headless cannot run extensions; only the new headless mode can.
        if self.config.headless:
            flags.append("--headless=new")
        else:
            flags.append("--window-size=1280,900")
        return flags

    def _firefox_flags(self) -> list[str]:
        flags = [
            "-profile",
            expand_path(self.config.profile_path),
            "-no-remote",
            f"--remote-debugging-port={self.config.cdp_port}",
        ]
        if self.config.headless:
            flags.append("-headless")
        return flags

    def build_launch_command(self) -> list[str]:
        base = self._firefox_flags() if self.config.is_firefox else self._chrome_flags()
        return [self.config.binary_path, *base, *self.extension_flags, *self.config.extra_flags]

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex(("127.0.0.1", self.config.cdp_port)) != 0
            except OSError:
                return False

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        endpoint = f"http://127.0.0.1:{self.config.cdp_port}/json/version"
        try:
            with urlopen(endpoint, timeout=timeout) as resp:
                return resp.status == 200
        except (OSError, TimeoutError, URLError):
            return False

    def _make_log_path(self) -> str:
        log_dir = Path(self.config.artifacts_dir or ".").parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / f"{self.config.browser}_launch_{int(time.time() * 1000)}.log")

    def ensure_running(self, timeout: float | None = None) -> LaunchResult:
        timeout = self.config.launch_timeout if timeout is None else timeout
        if self.cdp_ready():
            return LaunchResult([], False, "Browser already listening on CDP port")
        if not self._port_available():
            return LaunchResult([], False, f"Port {self.config.cdp_port} already in use")

        with contextlib.suppress(OSError):
            Path(expand_path(self.config.profile_path)).mkdir(parents=True, exist_ok=True)

        cmd = self.build_launch_command()
        log_path = self._make_log_path()
        _LOGGER.info("launching %s: %s", self.config.browser, " ".join(cmd))
        try:
            with open(log_path, "ab", buffering=0) as log_fh:
                self.process = subprocess.Popen(
                    cmd,
                    stdout=log_fh,
                    stderr=log_fh,
                    stdin=subprocess.DEVNULL,
                    start_new_session=True,
                )
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc), log_path=log_path)

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, f"{self.config.browser} launched", log_path=log_path)
            if self.process.poll() is not None:
                return LaunchResult(cmd, False, f"{self.config.browser} exited during start-up", log_path=log_path)
            time.sleep(0.1)
        return LaunchResult(cmd, False, f"{self.config.browser} launch timed out", log_path=log_path)

    def stop(self, *, timeout: float = 3.0) -> bool:
        """Stop the launcher-owned browser process, escalating to kill."""
        proc = self.process
        if proc is None:
            return False
        if proc.poll() is not None:
            return True

        with contextlib.suppress(OSError):
            proc.terminate()
        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            if proc.poll() is not None:
                return True
            time.sleep(0.05)
        with contextlib.suppress(OSError):
            proc.kill()
        return True

    def list_targets(self) -> list[dict[str, Any]]:
        try:
            targets = http_get_json(f"http://127.0.0.1:{self.config.cdp_port}/json/list", timeout=1.0)
        except HttpClientError:
            return []
        return targets if isinstance(targets, list) else []

    def browser_ws_url(self) -> str:
        version = http_get_json(f"http://127.0.0.1:{self.config.cdp_port}/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise HttpClientError("CDP browser WebSocket URL not found")
        return ws_url


__all__ = ["BrowserLauncher", "LaunchResult"]
