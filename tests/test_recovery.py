from __future__ import annotations

import pytest


def _timeout(label: str = "word button"):
    from e2e_harness.wallet.errors import WaitTimeoutError

    return WaitTimeoutError(label, "visible", 0.1)


def test_success_on_first_attempt_never_recovers() -> None:
    from e2e_harness.wallet.recovery import RecoveryStrategy
    from e2e_harness.wallet.waits import DelayTiers

    recoveries: list[int] = []
    strategy = RecoveryStrategy(lambda: recoveries.append(1), delays=DelayTiers(0, 0, 0))

    assert strategy.run(lambda *, recovered: "done") == "done"
    assert recoveries == []
    assert strategy.attempts == 1


def test_recovers_once_and_retry_sees_recovered_flag() -> None:
    from e2e_harness.wallet.recovery import RecoveryStrategy
    from e2e_harness.wallet.waits import DelayTiers

    seen: list[bool] = []
    recoveries: list[int] = []

    def retype(*, recovered: bool) -> str:
        seen.append(recovered)
        if not recovered:
            raise _timeout()
        return "retyped"

    strategy = RecoveryStrategy(lambda: recoveries.append(1), delays=DelayTiers(0, 0, 0), label="seed phrase retype")
    assert strategy.run(retype) == "retyped"
    assert seen == [False, True]
    assert recoveries == [1]
    assert strategy.attempts == 2


def test_second_failure_raises_lifecycle_error_with_both_errors() -> None:
    from e2e_harness.wallet.errors import ExtensionLifecycleError, WaitTimeoutError
    from e2e_harness.wallet.recovery import RecoveryStrategy
    from e2e_harness.wallet.waits import DelayTiers

    calls: list[bool] = []
    recoveries: list[int] = []

    def always_fails(*, recovered: bool) -> None:
        calls.append(recovered)
        raise _timeout("after reload" if recovered else "first")

    strategy = RecoveryStrategy(lambda: recoveries.append(1), delays=DelayTiers(0, 0, 0), label="retype")
    with pytest.raises(ExtensionLifecycleError) as info:
        strategy.run(always_fails)

    # Bounded: exactly two invocations and one recovery, never a loop.
    assert calls == [False, True]
    assert recoveries == [1]
    err = info.value
    assert isinstance(err.original, WaitTimeoutError) and err.original.locator == "first"
    assert isinstance(err.retry, WaitTimeoutError) and err.retry.locator == "after reload"
    assert err.to_dict()["afterRecovery"]["locator"] == "after reload"


def test_non_recoverable_error_propagates_without_recovery() -> None:
    from e2e_harness.wallet.errors import AssertionMismatchError
    from e2e_harness.wallet.recovery import RecoveryStrategy
    from e2e_harness.wallet.waits import DelayTiers

    recoveries: list[int] = []

    def mismatch(*, recovered: bool) -> None:
        raise AssertionMismatchError("seed phrase word count", 12, 11)

    strategy = RecoveryStrategy(lambda: recoveries.append(1), delays=DelayTiers(0, 0, 0))
    with pytest.raises(AssertionMismatchError):
        strategy.run(mismatch)
    assert recoveries == []


def test_recover_once_decorator() -> None:
    from e2e_harness.wallet.recovery import recover_once
    from e2e_harness.wallet.waits import DelayTiers

    reloads: list[int] = []

    @recover_once(lambda: reloads.append(1), delays=DelayTiers(0, 0, 0))
    def find_selector(name: str, *, recovered: bool) -> str:
        if not recovered:
            raise _timeout(name)
        return f"{name} found"

    assert find_selector("network selector") == "network selector found"
    assert reloads == [1]


def test_seed_phrase_retype_recovers_through_extension_reload(make_session) -> None:
    from conftest import FakeDriver, FakeElement

    from e2e_harness.wallet.driver import By
    from e2e_harness.wallet.scenarios.onboarding import REVEAL_BUTTON, retype_seed_phrase
    from e2e_harness.wallet.state import ScenarioState

    words = "phrase upgrade clock rough situate wedding elder clever doctor stamp excess tent".split(" ")
    driver = FakeDriver({"h0": {"title": "", "url": "about:blank"}})
    session = make_session(driver)

    # The word buttons only exist once the extension was reloaded.
    def word_buttons(word: str):
        return lambda: [FakeElement(word)] if session.loader.reloads else []

    for word in words:
        driver.elements[By.xpath(f"//button[contains(text(), '{word}')]")] = word_buttons(word)
    driver.elements[REVEAL_BUTTON] = [FakeElement()]
    driver.elements[By.css(".backup-phrase button")] = [FakeElement()]
    driver.elements[By.xpath("//button[contains(text(), 'Confirm')]")] = [FakeElement()]

    state = ScenarioState()
    state.set("seed_phrase", " ".join(words))
    retype_seed_phrase(session, state)

    assert session.loader.reloads == 1
    assert driver.visited[-1] == "chrome-extension://extid/home.html"


def test_failing_recovery_keeps_the_original_error() -> None:
    from e2e_harness.wallet.errors import ExtensionLifecycleError, WaitTimeoutError
    from e2e_harness.wallet.recovery import RecoveryStrategy
    from e2e_harness.wallet.waits import DelayTiers

    calls: list[bool] = []

    def reload() -> None:
        raise RuntimeError("extension page did not load")

    def locate(*, recovered: bool) -> None:
        calls.append(recovered)
        raise _timeout("network selector")

    strategy = RecoveryStrategy(reload, delays=DelayTiers(0, 0, 0), label="network selector")
    with pytest.raises(ExtensionLifecycleError) as info:
        strategy.run(locate)

    assert calls == [False]
    assert isinstance(info.value.original, WaitTimeoutError)
    assert isinstance(info.value.retry, RuntimeError)


def test_seed_phrase_retype_fails_for_good_when_reload_does_not_help(make_session) -> None:
    from conftest import FakeDriver, FakeElement

    from e2e_harness.wallet.driver import By
    from e2e_harness.wallet.errors import ExtensionLifecycleError, WaitTimeoutError
    from e2e_harness.wallet.scenarios.onboarding import REVEAL_BUTTON, retype_seed_phrase
    from e2e_harness.wallet.state import ScenarioState

    driver = FakeDriver({"h0": {"title": "", "url": "about:blank"}})
    session = make_session(driver)
    driver.elements[REVEAL_BUTTON] = [FakeElement()]
    driver.elements[By.css(".backup-phrase button")] = [FakeElement()]

    state = ScenarioState()
    state.set("seed_phrase", "phrase upgrade clock rough situate wedding elder clever doctor stamp excess tent")
    with pytest.raises(ExtensionLifecycleError) as info:
        retype_seed_phrase(session, state)

    assert session.loader.reloads == 1
    assert isinstance(info.value.original, WaitTimeoutError)
    assert isinstance(info.value.retry, WaitTimeoutError)
