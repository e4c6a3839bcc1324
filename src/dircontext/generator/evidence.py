"""
dircontext: test evidence collection

Purpose
- Summarize test health for the root artifact from result files that a test
  runner already left in the project root.

Functional requirements
- Only reads files; never runs a command.
- JSON reports (Jest/Vitest shape, then the passed/failed count shape) win
  over JUnit XML; the first usable file decides.
- Missing or malformed files are skipped; ``None`` means nothing usable was found.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Final

import structlog

from dircontext.core.schema import utc_timestamp

logger = structlog.get_logger(__name__)

JSON_RESULT_FILES: Final[tuple[str, ...]] = ("test-results.json", ".vitest-results.json")
JUNIT_RESULT_FILES: Final[tuple[str, ...]] = ("junit.xml", "test-results.xml")

_JUNIT_COUNT = {
    key: re.compile(rf'\b{key}="(\d+)"') for key in ("tests", "failures", "errors")
}


def collect_basic_evidence(root: str | os.PathLike[str]) -> dict[str, Any] | None:
    directory = Path(root)
    for name in JSON_RESULT_FILES:
        found = _from_json_report(directory / name)
        if found is not None:
            return _stamped(found, source=name)
    for name in JUNIT_RESULT_FILES:
        found = _from_junit_report(directory / name)
        if found is not None:
            return _stamped(found, source=name)
    return None


def _stamped(evidence: dict[str, Any], *, source: str) -> dict[str, Any]:
    logger.debug("evidence_collected", source=source, test_status=evidence["test_status"])
    return {"collected_at": utc_timestamp(), **evidence}


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("evidence_unreadable", path=str(path), error=str(exc))
        return None


def _count(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _from_json_report(path: Path) -> dict[str, Any] | None:
    text = _read(path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("evidence_malformed", path=str(path))
        return None
    if not isinstance(data, dict):
        return None

    success = data.get("success")
    if isinstance(success, bool):
        evidence: dict[str, Any] = {"test_status": "passing" if success else "failing"}
        total = _count(data.get("numTotalTests"))
        if total is not None:
            evidence["test_count"] = total
        suites = data.get("testResults")
        if not success and isinstance(suites, list):
            failing = [
                suite["name"]
                for suite in suites
                if isinstance(suite, dict)
                and suite.get("status") == "failed"
                and isinstance(suite.get("name"), str)
            ]
            if failing:
                evidence["failing_tests"] = failing
        return evidence

    passed = _count(data.get("numPassedTests"))
    failed = _count(data.get("numFailedTests"))
    if passed is not None and failed is not None:
        return {
            "test_status": "passing" if failed == 0 else "failing",
            "test_count": passed + failed,
        }
    return None


def _from_junit_report(path: Path) -> dict[str, Any] | None:
    text = _read(path)
    if text is None:
        return None
    counts: dict[str, int] = {}
    for key, pattern in _JUNIT_COUNT.items():
        match = pattern.search(text)
        if match is not None:
            counts[key] = int(match.group(1))
    if "tests" not in counts:
        return None
    broken = counts.get("failures", 0) + counts.get("errors", 0)
    return {
        "test_status": "passing" if broken == 0 else "failing",
        "test_count": counts["tests"],
    }


__all__ = ["JSON_RESULT_FILES", "JUNIT_RESULT_FILES", "collect_basic_evidence"]
