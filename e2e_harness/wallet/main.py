"""
Command-line entry point: run the wallet scenario suite against one browser.

Exit status is 0 when every step passed and 1 on the first failure (or when
the session cannot be started).
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .artifacts import ArtifactStore
from .config import HarnessConfig
from .diagnostics import ConsoleDiagnostics
from .driver import DriverError
from .errors import HarnessError
from .http_client import HttpClientError
from .runner import ScenarioRunner
from .scenarios import GROUPS
from .session import Session
from .state import ScenarioState

logger = logging.getLogger("e2e.wallet")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wallet-e2e", description="Run the wallet extension end-to-end suite.")
    parser.add_argument("--browser", choices=["chrome", "firefox"], help="target browser (default: $SELENIUM_BROWSER)")
    parser.add_argument("--extension-path", help="unpacked extension build directory")
    parser.add_argument("--dapp-url", help="test dapp URL")
    parser.add_argument("--artifacts-dir", help="where failure reports are written")
    parser.add_argument("--headless", action="store_true", default=None, help="launch the browser headless")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    parser.add_argument("--list", action="store_true", help="print groups and steps, then exit")
    return parser


def config_from_args(args: argparse.Namespace) -> HarnessConfig:
    config = HarnessConfig.from_env()
    if args.browser and args.browser != config.browser:
        profile, extension = HarnessConfig.browser_paths(args.browser)
        config = replace(
            config,
            browser=args.browser,
            binary_path=HarnessConfig.detect_binary(args.browser),
            profile_path=profile,
            extension_path=extension,
        )
    overrides: dict[str, object] = {}
    if args.extension_path:
        overrides["extension_path"] = str(Path(args.extension_path).expanduser().resolve())
    if args.dapp_url:
        overrides["dapp_url"] = args.dapp_url
    if args.artifacts_dir:
        overrides["artifacts_dir"] = str(Path(args.artifacts_dir).expanduser())
    if args.headless is not None:
        overrides["headless"] = bool(args.headless)
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return replace(config, **overrides) if overrides else config


def print_plan() -> None:
    for index, group in enumerate(GROUPS, start=1):
        print(f"{index:2d}. {group.name}")
        for step in group.steps:
            print(f"      - {step.name}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.list:
        print_plan()
        return 0

    config = config_from_args(args)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    logger.info("browser=%s extension=%s dapp=%s", config.browser, config.extension_path, config.dapp_url)

    runner = ScenarioRunner(GROUPS, ConsoleDiagnostics(ArtifactStore(config.artifacts_dir or None)))
    try:
        with Session(config) as session:
            report = runner.run(session, ScenarioState())
    except (HarnessError, DriverError, HttpClientError, RuntimeError, OSError) as exc:
        logger.error("session failed before the suite could run: %s", exc)
        return 1

    logger.info("%s", report.summary())
    if report.failure is not None and report.failure.report_path:
        logger.info("failure report: %s", report.failure.report_path)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
