"""
Diagnostics collector: browser console errors and failure reports.

After every step the runner asks the collector for console errors raised
since the previous call; they are logged as warnings and attached to the step
result. On the first failure the runner hands over a FailureReport which is
persisted as a JSON document plus a captioned PNG screenshot.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import TYPE_CHECKING, Any, Protocol

from .artifacts import ArtifactStore

if TYPE_CHECKING:
    from .session import Session

_LOGGER = logging.getLogger("e2e.wallet.diagnostics")

# Content scripts of other wallets (and our own provider being injected twice)
# fight over window.ethereum; that is not a failure of the page under test.
_NOISE_PATTERNS = [
    re.compile(r"cannot redefine property: ethereum", re.IGNORECASE),
    re.compile(r"defineproperty.*ethereum", re.IGNORECASE),
    re.compile(r"favicon\.ico.*(404|failed to load)", re.IGNORECASE),
    re.compile(r"failed to load resource.*favicon", re.IGNORECASE),
]

_ERROR_LEVELS = {"error", "assert"}


def is_noise(entry: dict[str, Any]) -> bool:
    text = f"{entry.get('message', '')} {entry.get('url', '')}"
    return any(pat.search(text) for pat in _NOISE_PATTERNS)


def error_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Error-level entries with known benign noise removed."""
    return [e for e in entries if str(e.get("level", "")).lower() in _ERROR_LEVELS and not is_noise(e)]


@dataclass
class FailureReport:
    group: str
    step: str
    error: dict[str, Any]
    console_errors: list[dict[str, Any]] = field(default_factory=list)
    contexts: dict[str, str] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)
    screenshot: bytes | None = None
    report_path: str | None = None
    screenshot_path: str | None = None

    @property
    def title(self) -> str:
        return f"{self.group} / {self.step}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "step": self.step,
            "error": self.error,
            "consoleErrors": self.console_errors,
            "contexts": self.contexts,
            "state": self.state,
            "screenshot": self.screenshot_path,
        }


class DiagnosticsCollector(Protocol):
    def collect_console_errors(self, session: Session) -> list[dict[str, Any]]: ...

    def persist_failure_report(self, report: FailureReport) -> FailureReport: ...


def caption_screenshot(png: bytes, caption: str) -> bytes:
    """Prepend a red banner with `caption` to a PNG; returns the input on any failure."""
    try:
        from PIL import Image, ImageDraw, ImageFont

        img = Image.open(BytesIO(png)).convert("RGB")
        try:
            font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18)
        except OSError:
            font = ImageFont.load_default()

        probe = ImageDraw.Draw(img)
        bbox = probe.textbbox((0, 0), caption, font=font)
        banner_h = (bbox[3] - bbox[1]) + 16

        out = Image.new("RGB", (img.width, img.height + banner_h), "red")
        out.paste(img, (0, banner_h))
        draw = ImageDraw.Draw(out)
        draw.text((8, 8), caption, fill="white", font=font)

        buffer = BytesIO()
        out.save(buffer, format="PNG")
        return buffer.getvalue()
    except Exception:  # noqa: BLE001
        # Best-effort only: an uncaptioned screenshot is still useful.
        return png


class ConsoleDiagnostics:
    def __init__(self, store: ArtifactStore | None = None) -> None:
        self.store = store or ArtifactStore()

    def collect_console_errors(self, session: Session) -> list[dict[str, Any]]:
        if session.config.is_firefox:
            # Console scraping is only wired for Chromium targets.
            return []
        try:
            entries = session.driver.drain_console()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("console collection failed: %s", exc)
            return []
        errors = error_entries(entries)
        for entry in errors:
            _LOGGER.warning("console %s: %s", entry.get("source", "console"), entry.get("message", ""))
        return errors

    def persist_failure_report(self, report: FailureReport) -> FailureReport:
        if report.screenshot:
            ref = self.store.put_bytes(
                kind="failure_screenshot",
                data=caption_screenshot(report.screenshot, f"FAILED: {report.title}"),
                metadata={"group": report.group, "step": report.step},
            )
            report.screenshot_path = ref.path
        ref = self.store.put_json(
            kind="failure_report",
            obj=report.to_dict(),
            metadata={"group": report.group, "step": report.step},
        )
        report.report_path = ref.path
        _LOGGER.error("failure report for %s written to %s", report.title, ref.path)
        return report


__all__ = [
    "ConsoleDiagnostics",
    "DiagnosticsCollector",
    "FailureReport",
    "caption_screenshot",
    "error_entries",
    "is_noise",
]
