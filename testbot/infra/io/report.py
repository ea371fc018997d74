"""Report files written at the end of a run.

- test-bot.xml: JUnit-style XML, one testsuite per target, one testcase per step
- steps_output.txt: plain-text summary of the failed steps

Also reads test-bot.xml back for the `test-bot report` viewer, and renders
console tables with tabulate.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tabulate import tabulate

from testbot.domain.sanitize import sanitize_output_for_xml

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from testbot.core.models import HostInfo
    from testbot.domain.step import Step
    from testbot.domain.target_run import TargetRun, TestRun

logger = logging.getLogger(__name__)

JUNIT_FILENAME = "test-bot.xml"
SUMMARY_FILENAME = "steps_output.txt"
SUITE_NAME_PREFIX = "test-bot"

ALL_PASSED_MESSAGE = "All steps passed!"


class ReportError(Exception):
    """Raised when an existing report cannot be read."""


def _iso(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    return moment.astimezone().isoformat(timespec="seconds")


def _build_testcase(suite: ET.Element, step: Step) -> None:
    testcase = ET.SubElement(suite, "testcase")
    testcase.set("name", step.command_short)
    testcase.set("status", step.status.value)
    if step.end_time is not None:
        testcase.set("time", str(step.duration))
    timestamp = _iso(step.start_time)
    if timestamp is not None:
        testcase.set("timestamp", timestamp)

    if not step.has_output:
        return
    assert step.output is not None

    if step.passed:
        element = ET.SubElement(testcase, "system-out")
    else:
        element = ET.SubElement(testcase, "failure")
        element.set("message", f"{step.status.value}: {' '.join(step.command)}")
    element.text = sanitize_output_for_xml(step.output)


def _build_testsuite(root: ET.Element, run: TargetRun, suite_name: str) -> None:
    suite = ET.SubElement(root, "testsuite")
    suite.set("name", suite_name)
    suite.set("tests", str(sum(1 for step in run.steps if step.passed)))
    suite.set("failures", str(sum(1 for step in run.steps if step.failed)))
    if run.steps:
        timestamp = _iso(run.steps[0].start_time)
        if timestamp is not None:
            suite.set("timestamp", timestamp)
    for step in run.steps:
        _build_testcase(suite, step)


def build_junit(test_run: TestRun, host: HostInfo) -> ET.ElementTree:
    """Build the JUnit document for a run.

    Args:
        test_run: The finished run.
        host: Host the run happened on; names the test suites.

    Returns:
        ElementTree rooted at <testsuites>.
    """
    root = ET.Element("testsuites")
    suite_name = f"{SUITE_NAME_PREFIX}.{host.environment_tag()}"
    for run in test_run.runs:
        _build_testsuite(root, run, suite_name)
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return tree


def write_junit(test_run: TestRun, host: HostInfo, report_dir: Path) -> Path:
    """Write test-bot.xml into report_dir, replacing any earlier report.

    Raises:
        OSError: If the file cannot be written.
    """
    path = report_dir / JUNIT_FILENAME
    report_dir.mkdir(parents=True, exist_ok=True)
    path.unlink(missing_ok=True)
    build_junit(test_run, host).write(path, encoding="utf-8", xml_declaration=True)
    logger.debug("Wrote %s", path)
    return path


def format_summary(test_run: TestRun) -> str:
    """Plain-text summary: a verdict line, then each failed command.

    Example:
        Error: 1 failed steps!
        false
    """
    failed = test_run.failed_steps
    if not failed:
        return ALL_PASSED_MESSAGE
    lines = [f"Error: {len(failed)} failed steps!"]
    lines.extend(step.command_trimmed for step in failed)
    return "\n".join(lines)


def write_summary(test_run: TestRun, report_dir: Path) -> Path:
    """Write steps_output.txt into report_dir, replacing any earlier file.

    Raises:
        OSError: If the file cannot be written.
    """
    path = report_dir / SUMMARY_FILENAME
    report_dir.mkdir(parents=True, exist_ok=True)
    path.unlink(missing_ok=True)
    path.write_text(format_summary(test_run), encoding="utf-8")
    logger.debug("Wrote %s", path)
    return path


def format_step_table(test_run: TestRun) -> str:
    """Table of every step: target, status, seconds and command."""
    rows = []
    for run in test_run.runs:
        for step in run.steps:
            seconds = f"{step.duration:.2f}" if step.end_time is not None else "-"
            rows.append([run.target, step.status.value, seconds, step.command_trimmed])
    if not rows:
        return "No steps were run."
    return tabulate(rows, headers=["Target", "Status", "Seconds", "Command"])


@dataclass(frozen=True)
class ReportCase:
    name: str
    status: str
    time: float | None = None
    failure: str | None = None


@dataclass(frozen=True)
class ReportSuite:
    """One <testsuite> read back from test-bot.xml."""

    name: str
    tests: int
    failures: int
    timestamp: str | None = None
    cases: list[ReportCase] = field(default_factory=list)


def _int_attr(element: ET.Element, name: str, path: Path) -> int:
    value = element.get(name, "0")
    try:
        return int(value)
    except ValueError as e:
        raise ReportError(f"{path}: {name}='{value}' is not an integer") from e


def _float_attr(element: ET.Element, name: str, path: Path) -> float | None:
    value = element.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ReportError(f"{path}: {name}='{value}' is not a number") from e


def parse_report(path: Path) -> list[ReportSuite]:
    """Read the test suites of an existing JUnit report.

    Raises:
        ReportError: If the file is missing or is not a testsuites document.
    """
    if not path.is_file():
        raise ReportError(f"Report {path} not found")
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ReportError(f"Report {path} is not valid XML: {e}") from e
    if root.tag != "testsuites":
        raise ReportError(f"Report {path} has root <{root.tag}>, expected <testsuites>")

    suites = []
    for suite in root.iter("testsuite"):
        cases = []
        for case in suite.iter("testcase"):
            failure = case.find("failure")
            cases.append(
                ReportCase(
                    name=case.get("name", ""),
                    status=case.get("status", ""),
                    time=_float_attr(case, "time", path),
                    failure=failure.get("message") if failure is not None else None,
                )
            )
        suites.append(
            ReportSuite(
                name=suite.get("name", ""),
                tests=_int_attr(suite, "tests", path),
                failures=_int_attr(suite, "failures", path),
                timestamp=suite.get("timestamp"),
                cases=cases,
            )
        )
    return suites


def format_report(suites: list[ReportSuite]) -> str:
    """Render parsed suites as one table per suite."""
    if not suites:
        return "Report contains no test suites."
    blocks = []
    for suite in suites:
        header = f"{suite.name}: {suite.tests} passed, {suite.failures} failed"
        if suite.timestamp:
            header = f"{header} ({suite.timestamp})"
        rows = [
            [case.status, f"{case.time:.2f}" if case.time is not None else "-", case.name]
            for case in suite.cases
        ]
        blocks.append(f"{header}\n{tabulate(rows, headers=['Status', 'Seconds', 'Name'])}")
    return "\n\n".join(blocks)
