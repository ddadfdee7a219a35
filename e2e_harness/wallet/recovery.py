"""
Recovery strategy for flaky extension initialization paths.

Some flows (first render after install, the seed-phrase confirmation screen)
occasionally come up half-initialized. Those actions are wrapped so that a
recoverable failure triggers one recovery action (typically reloading the
extension's home page), a large pause, and exactly one retry. A second failure
is reported as ExtensionLifecycleError carrying both errors. There is no loop.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from .errors import ExtensionLifecycleError, WaitTimeoutError
from .waits import DelayTiers

_LOGGER = logging.getLogger("e2e.wallet.recovery")

T = TypeVar("T")


class RecoveryStrategy:
    def __init__(
        self,
        recover: Callable[[], Any],
        *,
        delays: DelayTiers | None = None,
        recoverable: tuple[type[BaseException], ...] = (WaitTimeoutError,),
        label: str = "action",
    ) -> None:
        self._recover = recover
        self.delays = delays or DelayTiers()
        self.recoverable = tuple(recoverable)
        self.label = label
        self.attempts = 0

    def run(self, action: Callable[..., T]) -> T:
        """Call `action(recovered=False)`; on a recoverable error recover and retry once."""
        self.attempts = 1
        try:
            return action(recovered=False)
        except self.recoverable as exc:
            original = exc

        _LOGGER.warning("%s failed (%s: %s); recovering and retrying once", self.label, type(original).__name__, original)
        try:
            self._recover()
        except Exception as failed:
            raise ExtensionLifecycleError(self.label, original, failed) from failed
        self.delays.pause("large")

        self.attempts = 2
        try:
            return action(recovered=True)
        except Exception as retry:
            raise ExtensionLifecycleError(self.label, original, retry) from retry


def recover_once(
    recover: Callable[[], Any],
    *,
    delays: DelayTiers | None = None,
    recoverable: tuple[type[BaseException], ...] = (WaitTimeoutError,),
    label: str | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of RecoveryStrategy; the wrapped function must accept `recovered`."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            strategy = RecoveryStrategy(
                recover,
                delays=delays,
                recoverable=recoverable,
                label=label or func.__name__,
            )
            return strategy.run(lambda *, recovered: func(*args, recovered=recovered, **kwargs))

        return wrapper

    return decorator


__all__ = ["RecoveryStrategy", "recover_once"]
