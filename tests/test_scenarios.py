from __future__ import annotations


def test_suite_runs_groups_in_fixed_order() -> None:
    from e2e_harness.wallet.scenarios import group_names

    assert group_names() == [
        "New UI setup",
        "Going through the first time flow",
        "Show account information",
        "Log out and log back in",
        "Add account",
        "Import seed phrase",
        "Send ETH from inside the extension",
        "Send ETH from dapp",
        "Deploy contract and call contract methods",
        "Add a custom token from a dapp",
        "Send token from inside the extension",
        "Send a custom token from dapp",
        "Approves a custom token from dapp",
        "Hide token",
        "Add existing token using search",
    ]


def test_every_group_has_uniquely_named_steps() -> None:
    from e2e_harness.wallet.scenarios import GROUPS

    for group in GROUPS:
        names = [step.name for step in group.steps]
        assert names, group.name
        assert len(names) == len(set(names)), group.name


def test_runner_plan_lists_every_step() -> None:
    from e2e_harness.wallet.runner import ScenarioRunner
    from e2e_harness.wallet.scenarios import GROUPS

    plan = ScenarioRunner(GROUPS, collector=None).plan()
    assert len(plan) == sum(len(group.steps) for group in GROUPS)
    assert plan[0].title.startswith("New UI setup / ")
