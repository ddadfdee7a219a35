"""
Error taxonomy for the scenario harness.

Every error that can stop a run derives from HarnessError and knows how to
render itself for a failure report:
- WaitTimeoutError: a wait predicate never held
- AssertionMismatchError: an observed value did not match the expectation
- UnknownRoleError / NoSurvivingContextError: context registry violations
- ExtensionLifecycleError: the single post-recovery retry also failed
- MissingStateError: a step read shared state no earlier step wrote
- ExtensionInstallError: the extension id could not be determined
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class HarnessError(Exception):
    """Base class for all harness failures."""

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class WaitTimeoutError(HarnessError, TimeoutError):
    def __init__(self, locator: Any, predicate: Any, timeout: float, last_error: str | None = None) -> None:
        self.locator = locator
        self.predicate = predicate
        self.timeout = float(timeout)
        self.last_error = last_error
        super().__init__(str(self))

    def __str__(self) -> str:
        msg = f"Timed out after {self.timeout:g}s waiting for {self.predicate} on {self.locator}"
        if self.last_error:
            msg += f" (last error: {self.last_error})"
        return msg

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "WaitTimeoutError",
            "locator": str(self.locator),
            "predicate": str(self.predicate),
            "timeout": self.timeout,
            "lastError": self.last_error,
        }


class AssertionMismatchError(HarnessError, AssertionError):
    def __init__(self, what: str, expected: Any, actual: Any) -> None:
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.what}: expected {self.expected!r}, got {self.actual!r}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "AssertionMismatchError",
            "what": self.what,
            "expected": repr(self.expected),
            "actual": repr(self.actual),
        }


class UnknownRoleError(HarnessError, LookupError):
    def __init__(self, role: Any, known: Iterable[Any] = ()) -> None:
        self.role = role
        self.known = [str(r) for r in known]
        super().__init__(str(self))

    def __str__(self) -> str:
        known = ", ".join(self.known) or "none"
        return f"No context registered for role {self.role} (registered: {known})"


class NoSurvivingContextError(HarnessError):
    def __init__(self, keep_roles: Iterable[Any], open_handles: Iterable[str] = ()) -> None:
        self.keep_roles = [str(r) for r in keep_roles]
        self.open_handles = list(open_handles)
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.keep_roles:
            return "close_all_except() called with an empty keep-set"
        return f"None of the kept roles [{', '.join(self.keep_roles)}] resolve to an open context"


class ExtensionLifecycleError(HarnessError):
    def __init__(self, label: str, original: BaseException, retry: BaseException) -> None:
        self.label = label
        self.original = original
        self.retry = retry
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"{self.label} failed again after extension recovery. "
            f"first: {type(self.original).__name__}: {self.original}; "
            f"after recovery: {type(self.retry).__name__}: {self.retry}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "ExtensionLifecycleError",
            "label": self.label,
            "original": _error_dict(self.original),
            "afterRecovery": _error_dict(self.retry),
        }


class MissingStateError(HarnessError, KeyError):
    def __init__(self, key: str, written: Iterable[str] = ()) -> None:
        self.key = key
        self.written = sorted(written)
        super().__init__(key)

    def __str__(self) -> str:
        return f"Shared state {self.key!r} was read before any earlier step wrote it (written: {self.written})"


class ExtensionInstallError(HarnessError):
    pass


def _error_dict(exc: BaseException) -> dict[str, Any]:
    if isinstance(exc, HarnessError):
        return exc.to_dict()
    return {"error": type(exc).__name__, "message": str(exc)}


def error_summary(exc: BaseException) -> dict[str, Any]:
    """Structured description of any exception for reports and logs."""
    return _error_dict(exc)


__all__ = [
    "AssertionMismatchError",
    "ExtensionInstallError",
    "ExtensionLifecycleError",
    "HarnessError",
    "MissingStateError",
    "NoSurvivingContextError",
    "UnknownRoleError",
    "WaitTimeoutError",
    "error_summary",
]
