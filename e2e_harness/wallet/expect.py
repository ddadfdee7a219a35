"""Assertions that fail with AssertionMismatchError (never retried)."""

from __future__ import annotations

import re
from collections.abc import Sized
from typing import Any

from .errors import AssertionMismatchError


def equal(what: str, actual: Any, expected: Any) -> None:
    if actual != expected:
        raise AssertionMismatchError(what, expected, actual)


def matches(what: str, actual: str, pattern: str | re.Pattern[str]) -> None:
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    if not isinstance(actual, str) or not regex.search(actual):
        raise AssertionMismatchError(what, f"/{regex.pattern}/", actual)


def count(what: str, items: Sized, expected: int) -> None:
    if len(items) != expected:
        raise AssertionMismatchError(f"{what} count", expected, len(items))


def true(what: str, value: Any) -> None:
    if not value:
        raise AssertionMismatchError(what, True, value)


def false(what: str, value: Any) -> None:
    if value:
        raise AssertionMismatchError(what, False, value)


__all__ = ["count", "equal", "false", "matches", "true"]
