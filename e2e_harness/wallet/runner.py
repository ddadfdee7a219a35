"""
Sequential, fail-fast scenario runner.

Groups run in declaration order and steps run in declaration order within a
group. Every step moves PENDING -> RUNNING -> PASSED | FAILED. The first FAILED
step aborts the whole run: a failure report is persisted and every later step
stays PENDING. Steps communicate only through the Session and the shared
ScenarioState, which they mutate in place.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .diagnostics import DiagnosticsCollector, FailureReport
from .errors import error_summary
from .session import Session
from .state import ScenarioState

_LOGGER = logging.getLogger("e2e.wallet.runner")

StepFn = Callable[[Session, ScenarioState], Any]


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    name: str
    fn: StepFn


class ScenarioGroup:
    def __init__(self, name: str) -> None:
        self.name = name
        self.steps: list[Step] = []

    def step(self, name: str) -> Callable[[StepFn], StepFn]:
        def decorator(fn: StepFn) -> StepFn:
            if any(s.name == name for s in self.steps):
                raise ValueError(f"Duplicate step {name!r} in group {self.name!r}")
            self.steps.append(Step(name, fn))
            return fn

        return decorator

    def __repr__(self) -> str:
        return f"ScenarioGroup({self.name!r}, steps={len(self.steps)})"


@dataclass
class StepResult:
    group: str
    name: str
    status: StepStatus = StepStatus.PENDING
    duration: float = 0.0
    error: BaseException | None = None
    console_errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"{self.group} / {self.name}"


@dataclass
class RunReport:
    results: list[StepResult] = field(default_factory=list)
    failure: FailureReport | None = None

    @property
    def passed(self) -> bool:
        return all(r.status is StepStatus.PASSED for r in self.results)

    @property
    def failed_step(self) -> StepResult | None:
        for r in self.results:
            if r.status is StepStatus.FAILED:
                return r
        return None

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def count(self, status: StepStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    def summary(self) -> str:
        text = (
            f"{self.count(StepStatus.PASSED)} passed, {self.count(StepStatus.FAILED)} failed, "
            f"{self.count(StepStatus.PENDING)} not run"
        )
        failed = self.failed_step
        if failed is not None:
            text += f"; first failure: {failed.title}: {failed.error}"
        return text


class ScenarioRunner:
    def __init__(self, groups: Iterable[ScenarioGroup], collector: DiagnosticsCollector) -> None:
        self.groups = list(groups)
        self.collector = collector
        self._running = False

    def plan(self) -> list[StepResult]:
        return [StepResult(group.name, step.name) for group in self.groups for step in group.steps]

    def run(self, session: Session, state: ScenarioState) -> RunReport:
        if self._running:
            raise RuntimeError("ScenarioRunner.run() is not re-entrant")
        self._running = True
        try:
            return self._run(session, state)
        finally:
            self._running = False

    def _run(self, session: Session, state: ScenarioState) -> RunReport:
        report = RunReport(self.plan())
        steps = [step for group in self.groups for step in group.steps]

        for result, step in zip(report.results, steps):
            result.status = StepStatus.RUNNING
            state.current_step = result.title
            _LOGGER.info("running %s", result.title)
            started = time.monotonic()
            try:
                step.fn(session, state)
            except Exception as exc:  # noqa: BLE001
                result.error = exc
            result.duration = time.monotonic() - started
            result.console_errors = self._console_errors(session, result)

            if result.error is None:
                with suppress(RuntimeError):
                    state.set("contexts", session.contexts.snapshot())
                result.status = StepStatus.PASSED
                _LOGGER.info("passed %s (%.2fs)", result.title, result.duration)
                continue

            result.status = StepStatus.FAILED
            _LOGGER.error("FAILED %s (%.2fs): %s", result.title, result.duration, result.error)
            report.failure = self._persist_failure(session, state, result, result.error)
            break

        return report

    def _console_errors(self, session: Session, result: StepResult) -> list[dict[str, Any]]:
        try:
            errors = self.collector.collect_console_errors(session)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("console collection after %s failed: %s", result.title, exc)
            return []
        if errors:
            _LOGGER.warning("%d browser console error(s) during %s", len(errors), result.title)
        return errors

    def _persist_failure(
        self, session: Session, state: ScenarioState, result: StepResult, error: BaseException
    ) -> FailureReport | None:
        try:
            contexts = session.contexts.snapshot()
        except Exception:  # noqa: BLE001
            contexts = {}
        failure = FailureReport(
            group=result.group,
            step=result.name,
            error=error_summary(error),
            console_errors=result.console_errors,
            contexts=contexts,
            state=state.to_dict(),
            screenshot=session.screenshot(),
        )
        try:
            return self.collector.persist_failure_report(failure)
        except Exception as exc:  # noqa: BLE001
            # The step error is what the run reports; a broken collector must not replace it.
            _LOGGER.error("persisting failure report for %s failed: %s", result.title, exc)
            return failure


__all__ = ["RunReport", "ScenarioGroup", "ScenarioRunner", "Step", "StepResult", "StepStatus"]
