"""The wallet scenario suite, in run order."""

from __future__ import annotations

from ..runner import ScenarioGroup
from . import account, onboarding, tokens, transactions

GROUPS: list[ScenarioGroup] = [
    *onboarding.GROUPS,
    *account.GROUPS,
    *transactions.GROUPS,
    *tokens.GROUPS,
]


def group_names() -> list[str]:
    return [group.name for group in GROUPS]


__all__ = ["GROUPS", "group_names"]
