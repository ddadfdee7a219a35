"""
Bounded polling waits against an eventually-consistent UI.

The wallet UI re-renders in response to background chain state and exposes no
"done" event, so every synchronization point is a predicate polled at a fixed
interval until it holds or a finite timeout elapses. Driver "not found" and
"stale element" conditions mean "not yet", never failure.

Some transitions (popup windows closing, route animations) are not observable
through any predicate; DelayTiers provides the fixed pauses used after them.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .driver import AutomationDriver, DriverError, Element, Locator, NoSuchElementError
from .errors import AssertionMismatchError, WaitTimeoutError

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL = 0.1

_defaults = {"timeout": DEFAULT_TIMEOUT, "poll": DEFAULT_POLL}


def configure(*, timeout: float | None = None, poll: float | None = None) -> None:
    """Set the process-wide default bound and poll interval (both must stay finite)."""
    if timeout is not None:
        if not (0 < timeout < float("inf")):
            raise ValueError("default wait timeout must be a finite positive number")
        _defaults["timeout"] = float(timeout)
    if poll is not None:
        if poll <= 0:
            raise ValueError("poll interval must be positive")
        _defaults["poll"] = float(poll)


@dataclass(frozen=True)
class Predicate:
    name: str
    pattern: re.Pattern[str] | None = None

    def __str__(self) -> str:
        if self.pattern is not None:
            return f"{self.name}(/{self.pattern.pattern}/)"
        return self.name

    def holds(self, element: Element) -> bool:
        if self.name == "located":
            return True
        if self.name == "visible":
            return element.is_displayed()
        if self.name == "enabled":
            return element.is_enabled()
        if self.name == "stale":
            return element.is_stale()
        if self.name == "text_matches" and self.pattern is not None:
            return bool(self.pattern.search(element.text))
        raise ValueError(f"Unknown predicate: {self.name}")


LOCATED = Predicate("located")
VISIBLE = Predicate("visible")
ENABLED = Predicate("enabled")
STALE = Predicate("stale")


def text_matches(pattern: str | re.Pattern[str]) -> Predicate:
    return Predicate("text_matches", re.compile(pattern) if isinstance(pattern, str) else pattern)


def wait_until(
    condition: Callable[[], T | None],
    *,
    timeout: float | None = None,
    poll: float | None = None,
    subject: Any = "condition",
    predicate: Any = "truthy",
) -> T:
    """Poll `condition` until it returns a truthy value; raise WaitTimeoutError on expiry."""
    timeout = _defaults["timeout"] if timeout is None else float(timeout)
    poll = _defaults["poll"] if poll is None else float(poll)
    deadline = time.monotonic() + timeout
    last_error: str | None = None
    while True:
        try:
            value = condition()
            if value:
                return value
        except DriverError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
        if time.monotonic() >= deadline:
            raise WaitTimeoutError(subject, predicate, timeout, last_error)
        time.sleep(poll)


def wait_for(
    driver: AutomationDriver,
    locator: Locator,
    predicate: Predicate = LOCATED,
    *,
    timeout: float | None = None,
    poll: float | None = None,
) -> Element | None:
    """Wait until the first element matching `locator` satisfies `predicate`.

    STALE resolves the element once and waits for that node to detach; a locator
    that matches nothing to begin with is already satisfied and returns None.
    """
    if predicate == STALE:
        try:
            element = driver.find_element(locator)
        except NoSuchElementError:
            return None
        wait_until(element.is_stale, timeout=timeout, poll=poll, subject=locator, predicate=STALE)
        return element

    def probe() -> Element | None:
        element = driver.find_element(locator)
        return element if predicate.holds(element) else None

    return wait_until(probe, timeout=timeout, poll=poll, subject=locator, predicate=predicate)


def wait_for_all(
    driver: AutomationDriver,
    locator: Locator,
    *,
    count: int | None = None,
    timeout: float | None = None,
    poll: float | None = None,
) -> list[Element]:
    """Wait until at least one (or exactly `count`) elements match `locator`."""

    # Wrapped in a tuple so an expected empty list still counts as success.
    def probe() -> tuple[list[Element]] | None:
        elements = driver.find_elements(locator)
        if count is None:
            return (elements,) if elements else None
        return (elements,) if len(elements) == count else None

    predicate = "located" if count is None else f"count=={count}"
    return wait_until(probe, timeout=timeout, poll=poll, subject=locator, predicate=predicate)[0]


def wait_for_text(element: Element, pattern: str | re.Pattern[str], *, timeout: float | None = None) -> Element:
    predicate = text_matches(pattern)
    return wait_until(
        lambda: element if predicate.holds(element) else None,
        timeout=timeout,
        subject=element.locator or element,
        predicate=predicate,
    )


def wait_for_staleness(element: Element, *, timeout: float | None = None) -> None:
    wait_until(element.is_stale, timeout=timeout, subject=element.locator or element, predicate=STALE)


def wait_for_enabled(element: Element, *, timeout: float | None = None) -> Element:
    return wait_until(
        lambda: element if element.is_enabled() else None,
        timeout=timeout,
        subject=element.locator or element,
        predicate=ENABLED,
    )


def find_element(driver: AutomationDriver, locator: Locator, timeout: float | None = None) -> Element:
    """Locate then require visibility, within one shared bound."""
    return wait_for(driver, locator, VISIBLE, timeout=timeout)


def find_elements(driver: AutomationDriver, locator: Locator, timeout: float | None = None) -> list[Element]:
    return wait_for_all(driver, locator, timeout=timeout)


def assert_element_not_present(driver: AutomationDriver, locator: Locator) -> None:
    found = driver.find_elements(locator)
    if found:
        raise AssertionMismatchError(f"elements matching {locator}", 0, len(found))


@dataclass(frozen=True)
class DelayTiers:
    """Unconditional pauses for transitions no predicate can observe."""

    tiny: float = 0.2
    regular: float = 0.4
    large: float = 0.8

    @classmethod
    def from_tiny_ms(cls, tiny_ms: int) -> DelayTiers:
        tiny = max(0, int(tiny_ms)) / 1000.0
        return cls(tiny=tiny, regular=tiny * 2, large=tiny * 4)

    def pause(self, tier: str = "regular", times: float = 1) -> None:
        seconds = float(getattr(self, tier)) * times
        if seconds > 0:
            time.sleep(seconds)


__all__ = [
    "DEFAULT_POLL",
    "DEFAULT_TIMEOUT",
    "ENABLED",
    "LOCATED",
    "STALE",
    "VISIBLE",
    "DelayTiers",
    "Predicate",
    "assert_element_not_present",
    "configure",
    "find_element",
    "find_elements",
    "text_matches",
    "wait_for",
    "wait_for_all",
    "wait_for_enabled",
    "wait_for_staleness",
    "wait_for_text",
    "wait_until",
]
