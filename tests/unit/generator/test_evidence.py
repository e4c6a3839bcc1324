"""
dircontext: unit tests for test-evidence collection

What this test file should cover
- Jest/Vitest JSON reports, including failing suite names.
- The passed/failed count JSON shape and JUnit XML fallback.
- Precedence between report files and tolerance of malformed ones.
"""

from __future__ import annotations

import json
from pathlib import Path

from dircontext.core.schema import validate_artifact
from dircontext.generator.evidence import collect_basic_evidence


def _write_json(root: Path, name: str, payload: object) -> None:
    (root / name).write_text(json.dumps(payload), encoding="utf-8")


def test_no_report_files_means_no_evidence(tmp_path: Path) -> None:
    assert collect_basic_evidence(tmp_path) is None


def test_jest_report_with_failing_suites(tmp_path: Path) -> None:
    _write_json(
        tmp_path,
        "test-results.json",
        {
            "success": False,
            "numTotalTests": 12,
            "testResults": [
                {"name": "src/a.test.ts", "status": "passed"},
                {"name": "src/b.test.ts", "status": "failed"},
                {"status": "failed"},
            ],
        },
    )

    evidence = collect_basic_evidence(tmp_path)

    assert evidence is not None
    assert evidence["test_status"] == "failing"
    assert evidence["test_count"] == 12
    assert evidence["failing_tests"] == ["src/b.test.ts"]
    assert evidence["collected_at"].endswith("Z")


def test_passing_report_has_no_failing_tests(tmp_path: Path) -> None:
    _write_json(tmp_path, ".vitest-results.json", {"success": True, "numTotalTests": 3})

    evidence = collect_basic_evidence(tmp_path)

    assert evidence is not None
    assert evidence["test_status"] == "passing"
    assert "failing_tests" not in evidence


def test_count_only_report_shape(tmp_path: Path) -> None:
    _write_json(tmp_path, "test-results.json", {"numPassedTests": 7, "numFailedTests": 2})

    evidence = collect_basic_evidence(tmp_path)

    assert evidence is not None
    assert evidence["test_status"] == "failing"
    assert evidence["test_count"] == 9


def test_malformed_json_falls_through_to_next_report(tmp_path: Path) -> None:
    (tmp_path / "test-results.json").write_text("{not json", encoding="utf-8")
    _write_json(tmp_path, ".vitest-results.json", {"success": True, "numTotalTests": 1})

    evidence = collect_basic_evidence(tmp_path)

    assert evidence is not None
    assert evidence["test_status"] == "passing"


def test_junit_xml_is_used_when_no_json_report_is_usable(tmp_path: Path) -> None:
    _write_json(tmp_path, "test-results.json", {"unrelated": True})
    (tmp_path / "junit.xml").write_text(
        '<testsuites tests="5" failures="0" errors="1"></testsuites>\n', encoding="utf-8"
    )

    evidence = collect_basic_evidence(tmp_path)

    assert evidence is not None
    assert evidence["test_status"] == "failing"
    assert evidence["test_count"] == 5


def test_collected_evidence_passes_artifact_schema(tmp_path: Path) -> None:
    (tmp_path / "test-results.xml").write_text('<testsuite tests="4"/>\n', encoding="utf-8")
    evidence = collect_basic_evidence(tmp_path)

    result = validate_artifact(
        {
            "version": 1,
            "last_updated": "2026-01-01T00:00:00.000Z",
            "fingerprint": "abcd1234",
            "scope": ".",
            "summary": "root",
            "maintenance": "m",
            "evidence": evidence,
        }
    )

    assert result.is_valid, result.issues
