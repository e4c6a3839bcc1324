"""
dircontext: unit tests for the ignore-pattern matcher

Purpose
- Validate segment vs. path pattern semantics, wildcards, negation order and
  tolerance of malformed lines.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dircontext.core.ignore import (
    IgnoreMatcher,
    PatternKind,
    add_to_ignore,
    compile_rules,
    load_ignore_lines,
    parse_rule,
)


def test_segment_pattern_matches_any_single_segment() -> None:
    matcher = IgnoreMatcher(["generated"])

    assert matcher.is_ignored("generated")
    assert matcher.is_ignored("src/generated")
    assert matcher.is_ignored("src/generated/deep")
    assert not matcher.is_ignored("src/generated_code")


def test_path_pattern_is_anchored_at_root() -> None:
    matcher = IgnoreMatcher(["src/legacy"])

    assert matcher.is_ignored("src/legacy")
    assert not matcher.is_ignored("lib/src/legacy")
    assert not matcher.is_ignored("legacy")


def test_single_star_and_question_mark_do_not_cross_separators() -> None:
    matcher = IgnoreMatcher(["src/*", "tmp?"])

    assert matcher.is_ignored("src/anything")
    assert not matcher.is_ignored("src/a/b")
    assert matcher.is_ignored("tmp1")
    assert not matcher.is_ignored("tmp12")


def test_double_star_crosses_separators_in_path_patterns() -> None:
    matcher = IgnoreMatcher(["**/fixtures", "docs/**"])

    assert matcher.is_ignored("fixtures")
    assert matcher.is_ignored("a/b/fixtures")
    assert matcher.is_ignored("docs/api/v1")
    assert not matcher.is_ignored("fixtures_extra")


def test_last_match_wins_with_negation() -> None:
    matcher = IgnoreMatcher(["gen*", "!gen-tools"])

    assert matcher.is_ignored("gen-out")
    assert not matcher.is_ignored("gen-tools")

    reordered = IgnoreMatcher(["!gen-tools", "gen*"])
    assert reordered.is_ignored("gen-tools")


def test_no_matching_rule_means_kept() -> None:
    assert not IgnoreMatcher([]).is_ignored("src")
    assert not IgnoreMatcher(["other"]).is_ignored("src")


def test_malformed_lines_never_match_and_never_raise() -> None:
    matcher = IgnoreMatcher(["/", "!", "!/"])

    assert all(not rule.is_valid for rule in matcher.rules)
    assert not matcher.is_ignored("anything")
    assert not matcher.is_ignored("a/b/c")


def test_comments_and_blank_lines_are_dropped() -> None:
    rules = compile_rules(["# comment", "", "   ", "  keepme  "])

    assert len(rules) == 1
    assert rules[0].pattern == "keepme"
    assert rules[0].kind is PatternKind.SEGMENT


def test_escaped_leading_bang_is_literal() -> None:
    rule = parse_rule("\\!important")

    assert rule is not None
    assert not rule.negated
    assert rule.matches("!important")


def test_trailing_slash_keeps_segment_semantics() -> None:
    rule = parse_rule("logs/")

    assert rule is not None
    assert rule.kind is PatternKind.SEGMENT
    assert rule.matches("app/logs")


def test_leading_slash_anchors_as_path_pattern() -> None:
    matcher = IgnoreMatcher(["/build-out"])

    assert matcher.is_ignored("build-out")
    assert not matcher.is_ignored("src/build-out")


def test_relative_paths_are_normalized() -> None:
    matcher = IgnoreMatcher(["src/gen"])

    assert matcher.is_ignored("./src/gen/")
    assert not matcher.is_ignored(".")
    assert not matcher.is_ignored("")


def test_project_matcher_reads_gitignore_then_contextignore(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("out*\n", encoding="utf-8")
    (tmp_path / ".contextignore").write_text("!outline\n", encoding="utf-8")

    assert load_ignore_lines(tmp_path) == ["out*", "!outline"]

    matcher = IgnoreMatcher.from_project(tmp_path, extra=["scratch"])
    assert matcher.is_ignored("output")
    assert not matcher.is_ignored("outline")
    assert matcher.is_ignored("scratch")


def test_add_to_ignore_appends_once(tmp_path: Path) -> None:
    assert add_to_ignore(tmp_path, " fixtures ") is True
    assert add_to_ignore(tmp_path, "fixtures") is False
    assert add_to_ignore(tmp_path, "snapshots") is True

    content = (tmp_path / ".contextignore").read_text(encoding="utf-8")
    assert content == "fixtures\nsnapshots\n"


def test_add_to_ignore_rejects_empty_pattern(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        add_to_ignore(tmp_path, "   ")
    assert not (tmp_path / ".contextignore").exists()
