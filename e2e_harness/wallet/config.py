from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

SUPPORTED_BROWSERS = ("chrome", "firefox")

CHROME_BINARY_CANDIDATES: list[str] = [
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
]

FIREFOX_BINARY_CANDIDATES: list[str] = [
    "/usr/bin/firefox",
    "/usr/bin/firefox-esr",
    "/usr/local/bin/firefox",
    "/Applications/Firefox.app/Contents/MacOS/firefox",
    "C:\\Program Files\\Mozilla Firefox\\firefox.exe",
]


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _repo_root() -> Path:
    # e2e_harness/wallet/config.py -> repo root is parents[2]
    return Path(__file__).resolve().parents[2]


def _float_env(name: str, *, default: float, lo: float, hi: float) -> float:
    try:
        val = float(os.environ.get(name) or default)
    except (TypeError, ValueError):
        val = default
    return max(lo, min(val, hi))


def _int_env(name: str, *, default: int, lo: int, hi: int) -> int:
    return int(_float_env(name, default=default, lo=lo, hi=hi))


def _bool_env(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() not in {"0", "false", "no", ""}


@dataclass
class HarnessConfig:
    browser: str
    binary_path: str
    profile_path: str
    extension_path: str
    cdp_port: int = 9222
    headless: bool = False
    extra_flags: list[str] = field(default_factory=list)
    dapp_url: str = "http://127.0.0.1:8080/"
    tiny_delay_ms: int = 200
    wait_timeout: float = 10.0
    poll_interval: float = 0.1
    launch_timeout: float = 15.0
    artifacts_dir: str = ""
    log_level: str = "INFO"
    notification_title: str = "MetaMask Notification"
    dapp_title: str = "E2E Test Dapp"

    @staticmethod
    def normalize_browser(raw: str | None) -> str:
        browser = (raw or "").strip().lower()
        if browser in {"firefox", "ff", "gecko"}:
            return "firefox"
        if browser in {"chrome", "chromium", "google-chrome", ""}:
            return "chrome"
        raise ValueError(f"Unsupported browser: {raw!r} (expected one of {', '.join(SUPPORTED_BROWSERS)})")

    @classmethod
    def detect_binary(cls, browser: str) -> str:
        env_path = os.environ.get("E2E_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        candidates = FIREFOX_BINARY_CANDIDATES if browser == "firefox" else CHROME_BINARY_CANDIDATES
        for candidate in candidates:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "firefox" if browser == "firefox" else "google-chrome"

    @staticmethod
    def browser_paths(browser: str) -> tuple[str, str]:
        """Profile and extension build paths for `browser`; explicit env paths win."""
        profile = expand_path(os.environ.get("E2E_BROWSER_PROFILE") or str(_repo_root() / "data" / "profiles" / browser))
        extension = expand_path(os.environ.get("E2E_EXTENSION_PATH") or str(Path("dist") / browser))
        return profile, str(Path(extension).resolve())

    @classmethod
    def from_env(cls) -> HarnessConfig:
        browser = cls.normalize_browser(os.environ.get("E2E_BROWSER") or os.environ.get("SELENIUM_BROWSER"))
        root = _repo_root()
        profile, extension = cls.browser_paths(browser)
        flags_raw = os.environ.get("E2E_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        artifacts = expand_path(os.environ.get("E2E_ARTIFACTS_DIR") or str(root / "data" / "artifacts"))
        return cls(
            browser=browser,
            binary_path=cls.detect_binary(browser),
            profile_path=profile,
            extension_path=extension,
            cdp_port=_int_env("E2E_CDP_PORT", default=9222, lo=1024, hi=65535),
            headless=_bool_env("E2E_HEADLESS", default=False),
            extra_flags=extra_flags,
            dapp_url=os.environ.get("E2E_DAPP_URL") or "http://127.0.0.1:8080/",
            tiny_delay_ms=_int_env("E2E_TINY_DELAY_MS", default=200, lo=0, hi=5000),
            wait_timeout=_float_env("E2E_WAIT_TIMEOUT", default=10.0, lo=0.5, hi=300.0),
            poll_interval=_float_env("E2E_POLL_INTERVAL", default=0.1, lo=0.01, hi=5.0),
            launch_timeout=_float_env("E2E_LAUNCH_TIMEOUT", default=15.0, lo=1.0, hi=120.0),
            artifacts_dir=artifacts,
            log_level=(os.environ.get("E2E_LOG_LEVEL") or "INFO").strip().upper(),
        )

    @property
    def is_firefox(self) -> bool:
        return self.browser == "firefox"
