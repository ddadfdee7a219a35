"""
Context registry: the single source of truth for which window is which.

Browser contexts (the extension page, the dapp tab, the notification popup the
extension spawns for approvals) come and go asynchronously. The registry keeps
a role -> handle mapping that is rebuilt from the driver's live handle set on
every refresh():

- stale entries are purged *before* new handles are classified, so a closed
  notification can never collide with a freshly spawned one
- at most one handle holds each named role; extra matches become `other`
- entries left as `other` because their page had not loaded yet are
  re-classified on later refreshes
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .driver import AutomationDriver, DriverError
from .errors import NoSurvivingContextError, UnknownRoleError
from .waits import wait_until

_LOGGER = logging.getLogger("e2e.wallet.contexts")


class Role(str, Enum):
    EXTENSION = "extension"
    DAPP = "dapp"
    NOTIFICATION = "notification"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ContextPatterns:
    extension_prefixes: tuple[str, ...] = ()
    dapp_title: str = "E2E Test Dapp"
    dapp_url_prefix: str = ""
    notification_title: str = "MetaMask Notification"

    @classmethod
    def for_extension(
        cls,
        extension_id: str,
        *,
        dapp_title: str = "E2E Test Dapp",
        dapp_url: str = "",
        notification_title: str = "MetaMask Notification",
    ) -> ContextPatterns:
        prefixes = (f"chrome-extension://{extension_id}/", f"moz-extension://{extension_id}/")
        return cls(
            extension_prefixes=prefixes,
            dapp_title=dapp_title,
            dapp_url_prefix=dapp_url,
            notification_title=notification_title,
        )

    def classify(self, title: str, url: str) -> Role:
        if self.notification_title and self.notification_title in title:
            return Role.NOTIFICATION
        if self.dapp_title and self.dapp_title in title:
            return Role.DAPP
        if self.dapp_url_prefix and url.startswith(self.dapp_url_prefix):
            return Role.DAPP
        if any(url.startswith(prefix) for prefix in self.extension_prefixes):
            return Role.EXTENSION
        return Role.OTHER


@dataclass
class ContextEntry:
    handle: str
    role: Role
    title: str = ""
    url: str = ""
    ordinal: int = 0

    @property
    def key(self) -> str:
        return f"other:{self.ordinal}" if self.role is Role.OTHER else self.role.value


class ContextRegistry:
    def __init__(self, driver: AutomationDriver, patterns: ContextPatterns) -> None:
        self.driver = driver
        self.patterns = patterns
        self._entries: dict[str, ContextEntry] = {}
        self._handles: list[str] = []
        self.active: str | None = None

    # classification -------------------------------------------------------

    def classify(self, handle: str) -> Role:
        """Role suggested by the handle's title/URL; `other` when unknown or unreadable."""
        try:
            info = self.driver.window_info(handle)
        except DriverError as exc:
            _LOGGER.debug("classify %s failed, treating as other: %s", handle, exc)
            return Role.OTHER
        return self.patterns.classify(info.get("title", ""), info.get("url", ""))

    def _holder(self, role: Role) -> str | None:
        for entry in self._entries.values():
            if entry.role is role:
                return entry.handle
        return None

    def _next_ordinal(self) -> int:
        used = {e.ordinal for e in self._entries.values() if e.role is Role.OTHER}
        n = 1
        while n in used:
            n += 1
        return n

    def _assign(self, handle: str) -> ContextEntry:
        role = self.classify(handle)
        holder = self._holder(role) if role is not Role.OTHER else None
        if holder is not None and holder != handle:
            role = Role.OTHER
        try:
            info = self.driver.window_info(handle)
        except DriverError:
            info = {}
        entry = ContextEntry(handle=handle, role=role, title=info.get("title", ""), url=info.get("url", ""))
        if role is Role.OTHER:
            entry.ordinal = self._next_ordinal()
        return entry

    # lifecycle ------------------------------------------------------------

    def refresh(self) -> tuple[list[str], list[str]]:
        """Re-read open handles; returns (current, previous) in first-seen order."""
        previous = list(self._handles)
        current = list(self.driver.get_all_window_handles())
        live = set(current)

        for handle in [h for h in self._entries if h not in live]:
            gone = self._entries.pop(handle)
            _LOGGER.debug("context closed: %s (%s)", handle, gone.key)
        if self.active not in live:
            self.active = None

        for handle in current:
            entry = self._entries.get(handle)
            if entry is None or entry.role is Role.OTHER:
                # Drop the provisional entry so its own role claim does not block it.
                self._entries.pop(handle, None)
                new_entry = self._assign(handle)
                if entry is not None and new_entry.role is Role.OTHER:
                    new_entry.ordinal = entry.ordinal
                if entry is None or entry.role is not new_entry.role:
                    _LOGGER.debug("context %s classified as %s", handle, new_entry.key)
                self._entries[handle] = new_entry

        self._handles = current
        return current, previous

    def wait_for_count(self, n: int, timeout: float | None = None) -> list[str]:
        """Block until exactly `n` contexts are open, then refresh the mapping."""
        wait_until(
            lambda: len(self.driver.get_all_window_handles()) == n,
            timeout=timeout,
            subject="window handles",
            predicate=f"count=={n}",
        )
        current, _previous = self.refresh()
        return current

    def open(self, url: str) -> str:
        """Open `url` in a new context, make it active and register it."""
        handle = self.driver.new_window(url)
        self.refresh()
        self.active = handle
        return handle

    # lookup ---------------------------------------------------------------

    def entries(self) -> list[ContextEntry]:
        return [self._entries[h] for h in self._handles if h in self._entries]

    def handles(self) -> list[str]:
        return list(self._handles)

    def handle_for(self, role: Role) -> str | None:
        return self._holder(role)

    def role_of(self, handle: str) -> Role | None:
        entry = self._entries.get(handle)
        return entry.role if entry else None

    def snapshot(self) -> dict[str, str]:
        return {entry.key: entry.handle for entry in self.entries()}

    def find_by_title(self, pattern: str | re.Pattern[str]) -> str | None:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        for handle in self._handles:
            try:
                if regex.search(self.driver.window_info(handle).get("title", "")):
                    return handle
            except DriverError:
                continue
        return None

    def find_by_url(self, pattern: str | re.Pattern[str]) -> str | None:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        for handle in self._handles:
            try:
                if regex.search(self.driver.window_info(handle).get("url", "")):
                    return handle
            except DriverError:
                continue
        return None

    # switching ------------------------------------------------------------

    def switch_to(self, role: Role) -> str:
        self.refresh()
        handle = self.handle_for(role)
        if handle is None:
            raise UnknownRoleError(role, (e.key for e in self.entries()))
        self.driver.switch_to_window(handle)
        self.active = handle
        return handle

    def switch_to_handle(self, handle: str) -> str:
        self.refresh()
        if handle not in self._entries:
            raise UnknownRoleError(handle, (e.key for e in self.entries()))
        self.driver.switch_to_window(handle)
        self.active = handle
        return handle

    def close_all_except(self, keep_roles: Role | Iterable[Role]) -> str:
        """Close every context whose role is not kept; returns the now-active survivor."""
        roles = [keep_roles] if isinstance(keep_roles, Role) else list(keep_roles)
        if not roles:
            raise NoSurvivingContextError(roles)

        current, _previous = self.refresh()
        keep = [h for h in (self.handle_for(r) for r in roles) if h is not None]
        if not keep:
            raise NoSurvivingContextError(roles, current)

        for handle in current:
            if handle in keep:
                continue
            _LOGGER.debug("closing context %s (%s)", handle, self._entries[handle].key)
            self.driver.switch_to_window(handle)
            self.driver.close()

        self.refresh()
        survivor = keep[0]
        self.driver.switch_to_window(survivor)
        self.active = survivor
        return survivor


__all__ = ["ContextEntry", "ContextPatterns", "ContextRegistry", "Role"]
