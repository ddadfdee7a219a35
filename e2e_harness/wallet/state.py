"""Shared scenario state: values later steps read from earlier steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import MissingStateError


@dataclass
class ScenarioState:
    """Single mutable record for the whole run.

    Every write remembers the step that made it, so a failure report can say
    where a value came from, and a read of a key no step has written fails
    loudly instead of returning a placeholder.
    """

    values: dict[str, Any] = field(default_factory=dict)
    writers: dict[str, str] = field(default_factory=dict)
    current_step: str = ""

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value
        self.writers[key] = self.current_step

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def require(self, key: str) -> Any:
        if key not in self.values:
            raise MissingStateError(key, self.values)
        return self.values[key]

    def writer_of(self, key: str) -> str | None:
        return self.writers.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    # Named fields the wallet scenarios share.

    @property
    def seed_phrase(self) -> str:
        return self.require("seed_phrase")

    @property
    def token_address(self) -> str:
        return self.require("token_address")

    def to_dict(self) -> dict[str, Any]:
        return {
            key: {"value": _redact(key, value), "writtenBy": self.writers.get(key, "")}
            for key, value in self.values.items()
        }


_SENSITIVE_KEYS = ("seed", "password", "secret")


def _redact(key: str, value: Any) -> Any:
    if any(marker in key.lower() for marker in _SENSITIVE_KEYS):
        return "<redacted>"
    return value


__all__ = ["ScenarioState"]
