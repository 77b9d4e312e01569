#!/usr/bin/env python3
"""Tests for skill_validation_common.py - report aggregation and rendering."""

import json
from pathlib import Path

import pytest
from skill_validation_common import (
    EXIT_ERRORS,
    EXIT_OK,
    EXIT_WARNINGS,
    ValidationReport,
    finish,
    is_valid_skill_name,
    render_table,
)


class TestExitCodes:
    """Aggregation: errors block, warnings only block in strict mode."""

    def test_empty_report_passes(self) -> None:
        """An empty report passes."""
        report = ValidationReport()
        assert report.exit_code == EXIT_OK
        assert report.exit_code_strict() == EXIT_OK

    def test_warnings_alone_pass(self) -> None:
        """Warnings alone do not fail the report."""
        report = ValidationReport()
        report.warning("body is short", "ContentSizeViolation")
        report.passed("SKILL.md exists")
        assert report.exit_code == EXIT_OK

    def test_warnings_block_in_strict_mode(self) -> None:
        """Warnings exit 1 in strict mode."""
        report = ValidationReport()
        report.warning("body is short", "ContentSizeViolation")
        assert report.exit_code_strict() == EXIT_WARNINGS

    def test_any_error_fails(self) -> None:
        """Any error exits 2."""
        report = ValidationReport()
        report.warning("body is short", "ContentSizeViolation")
        report.error("name invalid", "StructuralViolation")
        assert report.exit_code == EXIT_ERRORS
        assert report.exit_code_strict() == EXIT_ERRORS

    def test_info_and_passed_never_block(self) -> None:
        """INFO and PASSED findings never block."""
        report = ValidationReport()
        report.info("router detected")
        report.passed("table present")
        assert report.exit_code_strict() == EXIT_OK


class TestReportQueries:
    """Tests for counting, grouping and serializing findings."""

    def test_count_and_group_by_level(self) -> None:
        """Findings are counted and grouped per level in order."""
        report = ValidationReport()
        report.error("a", "StructuralViolation")
        report.error("b", "ContentQuality")
        report.warning("c", "ContentQuality")
        report.passed("d")

        assert report.count_by_level() == {"ERROR": 2, "WARNING": 1, "INFO": 0, "PASSED": 1}
        assert [r.message for r in report.group_by_level()["ERROR"]] == ["a", "b"]
        assert [r.message for r in report.by_category("ContentQuality")] == ["b", "c"]

    def test_passed_results_have_no_category(self) -> None:
        """PASSED findings carry no category."""
        report = ValidationReport()
        report.passed("ok")
        assert report.results[0].category is None

    def test_merge_keeps_order(self) -> None:
        """Merging appends the other report's findings in order."""
        first = ValidationReport()
        first.error("one", "StructuralViolation")
        second = ValidationReport()
        second.warning("two", "ContentQuality")
        first.merge(second)
        assert [r.message for r in first.results] == ["one", "two"]

    def test_to_json_round_trips_counts(self) -> None:
        """JSON output carries counts and results."""
        report = ValidationReport()
        report.error("bad name", "StructuralViolation", "SKILL.md", 2)
        data = json.loads(report.to_json())
        assert data["exit_code"] == EXIT_ERRORS
        assert data["passed"] is False
        assert data["counts"]["error"] == 1
        assert data["results"][0] == {
            "level": "ERROR",
            "message": "bad name",
            "category": "StructuralViolation",
            "file": "SKILL.md",
            "line": 2,
        }


class TestApplyFixes:
    """Fixable findings turn into PASSED when their fix succeeds."""

    def test_successful_fix_marks_finding_fixed(self, tmp_path: Path) -> None:
        """A successful fix relabels the finding as fixed."""
        target = tmp_path / "script.sh"
        target.write_text("echo hi\n", encoding="utf-8")
        report = ValidationReport()
        report.add_fixable(
            "ERROR", "script not executable", "StructuralViolation", lambda file, line: True, "chmod", str(target)
        )

        stats = report.apply_fixes()

        assert stats == {"applied": 1, "failed": 0, "skipped": 0}
        fixed = report.results[0]
        assert fixed.level == "PASSED"
        assert fixed.category is None
        assert fixed.message.startswith("[FIXED] ")
        assert report.exit_code == EXIT_OK
        assert any(r.level == "INFO" and "chmod" in r.message for r in report.results)

    def test_failed_fix_keeps_level(self) -> None:
        """A failed fix keeps the finding's level."""
        report = ValidationReport()
        report.add_fixable("ERROR", "missing section", "ContentQuality", lambda file, line: False, "append", "SKILL.md")
        stats = report.apply_fixes()
        assert stats["failed"] == 1
        assert report.results[0].level == "ERROR"
        assert report.exit_code == EXIT_ERRORS

    def test_os_error_counts_as_failure(self) -> None:
        """An OSError in a fix counts as a failure."""
        def broken(file: str, line: int | None) -> bool:
            raise PermissionError(file)

        report = ValidationReport()
        report.add_fixable("ERROR", "x", "StructuralViolation", broken, "chmod", "/nonexistent")
        assert report.apply_fixes()["failed"] == 1

    def test_dry_run_skips(self) -> None:
        """A dry run applies nothing."""
        report = ValidationReport()
        report.add_fixable("ERROR", "x", "StructuralViolation", lambda file, line: True, "chmod", "a")
        assert report.apply_fixes(dry_run=True) == {"applied": 0, "failed": 0, "skipped": 1}
        assert report.results[0].level == "ERROR"


class TestRendering:
    """Tests for tables and final output."""

    def test_render_table_pads_and_right_aligns(self) -> None:
        """Cells are padded and numeric columns right-aligned."""
        lines = render_table(["A", "Num"], [["x", "5"], ["long", "100"]], align_right={1})
        assert lines == [
            "| A    | Num |",
            "|------|-----|",
            "| x    |   5 |",
            "| long | 100 |",
        ]

    def test_finish_json_prints_report_and_returns_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        """JSON mode prints the report and returns its exit code."""
        report = ValidationReport()
        report.warning("short", "ContentSizeViolation")
        code = finish(report, "Title", as_json=True, verbose=False, strict=True)
        assert code == EXIT_WARNINGS
        assert json.loads(capsys.readouterr().out)["counts"]["warning"] == 1

    def test_finish_text_hides_passed_unless_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        """PASSED rows appear only in verbose mode."""
        report = ValidationReport()
        report.passed("table present")
        report.error("name invalid", "StructuralViolation")

        finish(report, "Skill Validation", as_json=False, verbose=False, strict=False)
        quiet = capsys.readouterr().out
        assert "name invalid" in quiet
        assert "table present" not in quiet
        assert "Validation failed" in quiet

        finish(report, "Skill Validation", as_json=False, verbose=True, strict=False)
        assert "table present" in capsys.readouterr().out


@pytest.mark.parametrize(
    ("name", "valid"),
    [("my-skill", True), ("a1", True), ("My-Skill", False), ("1skill", False), ("my_skill", False), ("", False)],
)
def test_skill_name_rule(name: str, valid: bool) -> None:
    """Names are lowercase letters, digits and hyphens, starting with a letter."""
    assert is_valid_skill_name(name) is valid
