#!/usr/bin/env python3
"""
test-bot CLI: run a tap's test phases and report the results.

Usage:
    test-bot run [OPTIONS] [TARGETS]...
    test-bot report [PATH]
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated

import typer

from testbot.core.models import Phase, RunOptions
from testbot.domain.config import ConfigError
from testbot.domain.resolution import UsageError
from testbot.domain.step import FailFastAbort
from testbot.infra.io.config import ConfigurationError, TestBotConfig
from testbot.infra.io.console import Colors, log, set_verbose
from testbot.infra.io.log_output import cleanup_debug_logging, configure_debug_logging
from testbot.infra.io.report import (
    JUNIT_FILENAME,
    ReportError,
    format_report,
    format_step_table,
    format_summary,
    parse_report,
    write_junit,
    write_summary,
)
from testbot.infra.tools.env import load_user_env
from testbot.orchestration.factory import create_orchestrator

# Bootstrap state: tracks whether bootstrap() has been called
_bootstrapped = False


def bootstrap() -> None:
    """Initialize environment.

    Idempotent. Loads environment variables from ~/.config/testbot/.env so
    TestBotConfig.from_env() sees them.
    """
    global _bootstrapped

    if _bootstrapped:
        return

    load_user_env()

    _bootstrapped = True


app = typer.Typer(
    name="test-bot",
    help="Run CI test phases against a package tap and report the results",
    add_completion=False,
)


def _selected_phases(
    cleanup_before: bool,
    setup: bool,
    tap_syntax: bool,
    formulae: bool,
    cleanup_after: bool,
) -> frozenset[Phase]:
    chosen = {
        Phase.CLEANUP_BEFORE: cleanup_before,
        Phase.SETUP: setup,
        Phase.STATIC_CHECKS: tap_syntax,
        Phase.FUNCTIONAL_TESTS: formulae,
        Phase.CLEANUP_AFTER: cleanup_after,
    }
    return frozenset(phase for phase, selected in chosen.items() if selected)


def _inside(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


@app.command()
def run(
    targets: Annotated[
        list[str] | None,
        typer.Argument(
            help="Revisions or packages to test (default: HEAD)",
            show_default=False,
        ),
    ] = None,
    tap: Annotated[
        str | None,
        typer.Option(
            "--tap",
            help="Tap under test, as user/repo",
            rich_help_panel="Target",
        ),
    ] = None,
    test_default_package: Annotated[
        str | None,
        typer.Option(
            "--test-default-package",
            help="Package to test when a target is a revision",
            rich_help_panel="Target",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Phase command file (default: testbot.yaml in the repository)",
            rich_help_panel="Target",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-d",
            help="Print the commands that would run without running them",
            rich_help_panel="Execution",
        ),
    ] = False,
    fail_fast: Annotated[
        bool,
        typer.Option(
            "--fail-fast",
            help="Stop at the first failed step, without cleanup or reports",
            rich_help_panel="Execution",
        ),
    ] = False,
    skip_setup: Annotated[
        bool,
        typer.Option(
            "--skip-setup",
            help="Skip the setup phase",
            rich_help_panel="Execution",
        ),
    ] = False,
    cleanup: Annotated[
        bool,
        typer.Option(
            "--cleanup",
            help="Reset and clean the repository before and after testing",
            rich_help_panel="Execution",
        ),
    ] = False,
    local: Annotated[
        bool,
        typer.Option(
            "--local",
            help="Use ./home and ./logs for the package manager, removed afterwards",
            rich_help_panel="Execution",
        ),
    ] = False,
    only_cleanup_before: Annotated[
        bool,
        typer.Option(
            "--only-cleanup-before",
            help="Run only the cleanup-before phase (combinable)",
            rich_help_panel="Phase Selection",
        ),
    ] = False,
    only_setup: Annotated[
        bool,
        typer.Option(
            "--only-setup",
            help="Run only the setup phase (combinable)",
            rich_help_panel="Phase Selection",
        ),
    ] = False,
    only_tap_syntax: Annotated[
        bool,
        typer.Option(
            "--only-tap-syntax",
            help="Run only the static checks phase (combinable)",
            rich_help_panel="Phase Selection",
        ),
    ] = False,
    only_formulae: Annotated[
        bool,
        typer.Option(
            "--only-formulae",
            help="Run only the functional tests phase (combinable)",
            rich_help_panel="Phase Selection",
        ),
    ] = False,
    only_cleanup_after: Annotated[
        bool,
        typer.Option(
            "--only-cleanup-after",
            help="Run only the cleanup-after phase (combinable)",
            rich_help_panel="Phase Selection",
        ),
    ] = False,
    junit: Annotated[
        bool,
        typer.Option(
            "--junit",
            help=f"Write {JUNIT_FILENAME} with one test case per step",
            rich_help_panel="Reporting",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Stream every command's output as it runs",
            rich_help_panel="Reporting",
        ),
    ] = False,
) -> None:
    """Run the test phases for each target."""
    set_verbose(verbose)

    try:
        config = TestBotConfig.from_env()
    except ConfigurationError as e:
        log("✗", str(e), Colors.RED)
        raise typer.Exit(1) from e

    if cleanup and _inside(config.work_dir, config.prefix):
        log(
            "✗",
            f"--cleanup cannot be used from inside {config.prefix}; "
            "run test-bot from another directory",
            Colors.RED,
        )
        raise typer.Exit(2)

    options = RunOptions(
        dry_run=dry_run,
        fail_fast=fail_fast,
        verbose=verbose,
        cleanup=cleanup,
        local=local,
        skip_setup=skip_setup,
        junit=junit,
        only_phases=_selected_phases(
            only_cleanup_before, only_setup, only_tap_syntax, only_formulae, only_cleanup_after
        ),
        test_default_package=test_default_package,
    )

    run_id = str(uuid.uuid4())
    debug_log = configure_debug_logging(config.logs_dir, run_id)
    if debug_log is not None:
        log("◦", f"Debug log: {debug_log}", Colors.GRAY, dim=True)

    try:
        try:
            orchestrator = create_orchestrator(
                config, options, tap_name=tap, config_path=config_path
            )
        except ConfigError as e:
            log("✗", f"Invalid configuration: {e}", Colors.RED)
            raise typer.Exit(1) from e
        except UsageError as e:
            log("✗", str(e), Colors.RED)
            raise typer.Exit(2) from e

        try:
            test_run = orchestrator.run(targets or [])
        except FailFastAbort as e:
            log("✗", str(e), Colors.RED)
            raise typer.Exit(1) from e
    finally:
        cleanup_debug_logging(run_id)

    print()
    print(format_step_table(test_run))
    print()
    print(format_summary(test_run))

    write_summary(test_run, config.report_dir)
    if junit:
        path = write_junit(test_run, config.host, config.report_dir)
        log("◦", f"JUnit report: {path}", Colors.GRAY, dim=True)

    raise typer.Exit(0 if test_run.passed else 1)


@app.command()
def report(
    path: Annotated[
        Path | None,
        typer.Argument(
            help=f"Report to show (default: {JUNIT_FILENAME} in the report directory)",
            show_default=False,
        ),
    ] = None,
) -> None:
    """Show the results stored in an existing JUnit report."""
    if path is None:
        try:
            path = TestBotConfig.from_env().report_dir / JUNIT_FILENAME
        except ConfigurationError as e:
            log("✗", str(e), Colors.RED)
            raise typer.Exit(1) from e

    try:
        suites = parse_report(path)
    except ReportError as e:
        log("✗", str(e), Colors.RED)
        raise typer.Exit(1) from e

    print(format_report(suites))
