from __future__ import annotations

from typing import Any

import pytest

from conftest import FakeDriver, FakeElement


class _RecordingCollector:
    def __init__(self, console: list[list[dict[str, Any]]] | None = None, *, broken: bool = False) -> None:
        self.console = list(console or [])
        self.broken = broken
        self.collected = 0
        self.reports: list[Any] = []

    def collect_console_errors(self, session) -> list[dict[str, Any]]:
        self.collected += 1
        return self.console.pop(0) if self.console else []

    def persist_failure_report(self, report):
        if self.broken:
            raise OSError("disk full")
        report.report_path = "/tmp/report.json"
        self.reports.append(report)
        return report


def _groups(log: list[str], *, fail_at: str | None = None):
    from e2e_harness.wallet.errors import WaitTimeoutError
    from e2e_harness.wallet.runner import ScenarioGroup

    groups = []
    for group_name in ("setup", "send", "tokens"):
        group = ScenarioGroup(group_name)
        for step_name in ("one", "two"):
            title = f"{group_name}.{step_name}"

            def fn(session, state, title=title) -> None:
                log.append(title)
                if title == fail_at:
                    raise WaitTimeoutError("css=.tx-list-item", "visible", 0.1)

            group.step(step_name)(fn)
        groups.append(group)
    return groups


def test_steps_run_in_declaration_order(make_session) -> None:
    from e2e_harness.wallet.runner import ScenarioRunner, StepStatus
    from e2e_harness.wallet.state import ScenarioState

    log: list[str] = []
    report = ScenarioRunner(_groups(log), _RecordingCollector()).run(make_session(), ScenarioState())

    assert log == ["setup.one", "setup.two", "send.one", "send.two", "tokens.one", "tokens.two"]
    assert [r.status for r in report.results] == [StepStatus.PASSED] * 6
    assert report.passed and report.exit_code == 0
    assert report.failure is None


def test_first_failure_aborts_the_whole_run(make_session) -> None:
    from e2e_harness.wallet.errors import WaitTimeoutError
    from e2e_harness.wallet.runner import ScenarioRunner, StepStatus
    from e2e_harness.wallet.state import ScenarioState

    log: list[str] = []
    collector = _RecordingCollector()
    report = ScenarioRunner(_groups(log, fail_at="send.one"), collector).run(make_session(), ScenarioState())

    assert log == ["setup.one", "setup.two", "send.one"]
    statuses = [r.status for r in report.results]
    assert statuses == [StepStatus.PASSED, StepStatus.PASSED, StepStatus.FAILED] + [StepStatus.PENDING] * 3
    assert report.exit_code == 1
    failed = report.failed_step
    assert failed is not None and failed.title == "send / one"
    assert isinstance(failed.error, WaitTimeoutError)

    assert len(collector.reports) == 1
    failure = collector.reports[0]
    assert (failure.group, failure.step) == ("send", "one")
    assert failure.error["error"] == "WaitTimeoutError"
    assert "send / one" in report.summary()


def test_console_errors_are_collected_after_every_step_without_failing(make_session, caplog) -> None:
    from e2e_harness.wallet.runner import ScenarioRunner
    from e2e_harness.wallet.state import ScenarioState

    errors = [{"level": "error", "message": "Uncaught TypeError", "source": "exception", "url": ""}]
    collector = _RecordingCollector([[], errors])
    log: list[str] = []

    with caplog.at_level("WARNING", logger="e2e.wallet.runner"):
        report = ScenarioRunner(_groups(log), collector).run(make_session(), ScenarioState())

    assert report.passed
    assert collector.collected == 6
    assert report.results[1].console_errors == errors
    assert any("console error" in rec.getMessage() for rec in caplog.records)


def test_broken_collector_does_not_mask_step_error(make_session) -> None:
    from e2e_harness.wallet.errors import WaitTimeoutError
    from e2e_harness.wallet.runner import ScenarioRunner
    from e2e_harness.wallet.state import ScenarioState

    log: list[str] = []
    report = ScenarioRunner(_groups(log, fail_at="setup.two"), _RecordingCollector(broken=True)).run(
        make_session(), ScenarioState()
    )

    assert isinstance(report.failed_step.error, WaitTimeoutError)
    assert report.failure is not None and report.failure.report_path is None


def test_state_written_by_earlier_step_is_visible_later(make_session) -> None:
    from e2e_harness.wallet.errors import MissingStateError
    from e2e_harness.wallet.runner import ScenarioGroup, ScenarioRunner
    from e2e_harness.wallet.state import ScenarioState

    group = ScenarioGroup("token")
    seen: list[str] = []

    @group.step("creates token")
    def create(session, state) -> None:
        state.set("token_address", "0xabc")

    @group.step("adds token")
    def add(session, state) -> None:
        seen.append(state.token_address)

    state = ScenarioState()
    report = ScenarioRunner([group], _RecordingCollector()).run(make_session(), state)
    assert report.passed and seen == ["0xabc"]
    assert state.writer_of("token_address") == "token / creates token"

    early = ScenarioGroup("early")

    @early.step("reads too soon")
    def too_soon(session, state) -> None:
        state.require("seed_phrase")

    report = ScenarioRunner([early], _RecordingCollector()).run(make_session(), ScenarioState())
    assert isinstance(report.failed_step.error, MissingStateError)


def test_transaction_count_assertions(make_session) -> None:
    from e2e_harness.wallet import expect
    from e2e_harness.wallet.driver import By
    from e2e_harness.wallet.errors import AssertionMismatchError
    from e2e_harness.wallet.runner import ScenarioGroup, ScenarioRunner, StepStatus
    from e2e_harness.wallet.state import ScenarioState

    driver = FakeDriver({"h0": {"title": "", "url": "about:blank"}})
    driver.elements[By.css(".tx-list-item")] = [FakeElement("dapp send"), FakeElement("extension send")]
    session = make_session(driver)

    group = ScenarioGroup("Send ETH from dapp")

    @group.step("finds two transactions")
    def two(session, state) -> None:
        expect.count("transactions", session.find_all(By.css(".tx-list-item")), 2)

    @group.step("finds one transaction")
    def one(session, state) -> None:
        expect.count("transactions", session.find_all(By.css(".tx-list-item")), 1)

    report = ScenarioRunner([group], _RecordingCollector()).run(session, ScenarioState())
    assert [r.status for r in report.results] == [StepStatus.PASSED, StepStatus.FAILED]
    err = report.failed_step.error
    assert isinstance(err, AssertionMismatchError)
    assert (err.expected, err.actual) == (1, 2)


def test_run_is_not_reentrant(make_session) -> None:
    from e2e_harness.wallet.runner import ScenarioGroup, ScenarioRunner
    from e2e_harness.wallet.state import ScenarioState

    group = ScenarioGroup("nested")
    runner = ScenarioRunner([group], _RecordingCollector())

    @group.step("runs again")
    def nested(session, state) -> None:
        runner.run(session, state)

    report = runner.run(make_session(), ScenarioState())
    assert isinstance(report.failed_step.error, RuntimeError)


def test_duplicate_step_names_are_rejected() -> None:
    from e2e_harness.wallet.runner import ScenarioGroup

    group = ScenarioGroup("g")
    group.step("a")(lambda session, state: None)
    with pytest.raises(ValueError):
        group.step("a")(lambda session, state: None)
