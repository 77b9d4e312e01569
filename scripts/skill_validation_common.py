#!/usr/bin/env python3
"""
Skill Scholar Tools - Common Module

Shared validation infrastructure for the skill authoring tools.
This module contains:
- Type definitions (Level, Category, ValidationResult, ValidationReport)
- Common constants (word budgets, section names, naming rules)
- Exceptions raised while reading skill files
- Rendering helpers (colors, summary and detail tables, exit codes)

All individual tools import from this module to ensure consistency.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, TextIO

# =============================================================================
# Type Definitions
# =============================================================================

# Finding severity levels (uppercase for consistency)
# - ERROR: blocks validation (non-zero exit code)
# - WARNING: never blocks, except with --strict
# - INFO: informational only, shown in verbose mode
# - PASSED: check passed, shown in verbose mode
Level = Literal["ERROR", "WARNING", "INFO", "PASSED"]

LEVELS: tuple[Level, ...] = ("ERROR", "WARNING", "INFO", "PASSED")

# Finding categories. PASSED results carry no category.
Category = Literal[
    "MissingRequiredFile",
    "MalformedFrontmatter",
    "StructuralViolation",
    "ContentSizeViolation",
    "ContentQuality",
    "Packaging",
    "DeepAnalysis",
]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # No errors (warnings allowed)
EXIT_WARNINGS = 1  # Warnings found (only in --strict mode)
EXIT_ERRORS = 2  # Errors found

# =============================================================================
# Exceptions
# =============================================================================


class SkillToolError(Exception):
    """Base error for skill parsing and loading."""


class MalformedFrontmatter(SkillToolError):
    """Raised when the leading frontmatter block is absent or unparsable."""


class MissingRequiredFile(SkillToolError):
    """Raised when a required skill file does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"{path.name} not found at {path}")
        self.path = path


# =============================================================================
# Skill Rules
# =============================================================================

SKILL_FILE = "SKILL.md"

# Name validation pattern (lowercase, digits, hyphens, leading letter)
NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
MAX_NAME_LENGTH = 64

# Body word budgets
MAX_BODY_WORDS = 5000
IDEAL_BODY_WORDS_MIN = 1000
IDEAL_BODY_WORDS_MAX = 2500
MAX_ROUTER_BODY_WORDS = 200

# Description length bounds (characters, after folding whitespace)
MIN_DESCRIPTION_CHARS = 50
MAX_DESCRIPTION_CHARS = 500

# Reference file word bounds
MIN_REFERENCE_WORDS = 500
MAX_REFERENCE_WORDS = 10000

REQUIRED_SECTIONS = ["## Overview", "## When to Use", "## Common Mistakes"]
RECOMMENDED_SECTIONS = ["## Core Patterns", "## Quick Reference"]

# Phrases that mark a description as stating when the skill applies
RE_TRIGGER_CONDITIONS = re.compile(r"should be used when|triggers on|use when", re.IGNORECASE)

# A markdown table row has at least two pipe-separated cells
RE_TABLE_ROW = re.compile(r"(?m)^\|.*\|.*\|")

# Three pipes anywhere on a line, so indented tables count too
RE_TABLE_CELLS = re.compile(r"\|.*\|.*\|")

# Skill sub-directories whose paths may be referenced from SKILL.md
RESOURCE_DIRS = ("references", "scripts", "templates", "examples")


def is_valid_skill_name(name: str) -> bool:
    """Check if name follows the skill naming convention."""
    return bool(NAME_PATTERN.match(name))


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ValidationResult:
    """Single validation finding.

    Attributes:
        level: Severity level (ERROR, WARNING, INFO, PASSED)
        message: Human-readable description of the result
        category: Finding category (None for PASSED results)
        file: Optional file path related to the result
        line: Optional line number in the file
        fixable: Whether this issue can be auto-fixed
        fix_id: Identifier for the fix function (if fixable)
    """

    level: Level
    message: str
    category: Category | None = None
    file: str | None = None
    line: int | None = None
    fixable: bool = False
    fix_id: str | None = None

    def to_dict(self) -> dict[str, str | int | bool | None]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, str | int | bool | None] = {"level": self.level, "message": self.message}
        if self.category is not None:
            result["category"] = self.category
        if self.file is not None:
            result["file"] = self.file
        if self.line is not None:
            result["line"] = self.line
        if self.fixable:
            result["fixable"] = self.fixable
            if self.fix_id:
                result["fix_id"] = self.fix_id
        return result


# Type alias for fix functions
FixFunction = Callable[[str, int | None], bool]  # (file_path, line) -> success


@dataclass
class FixableIssue:
    """An issue that can be repaired in place.

    Attributes:
        result: The validation result describing the issue
        fix_func: Function that can fix this issue
        fix_description: Human-readable description of what the fix does
    """

    result: ValidationResult
    fix_func: FixFunction
    fix_description: str

    def apply(self) -> bool:
        """Apply the fix and return success status."""
        if not self.result.file:
            return False
        return self.fix_func(self.result.file, self.result.line)


@dataclass
class ValidationReport:
    """Complete validation report with results collection and verdict.

    This is the base class that all tools use (or extend).
    Provides consistent methods for adding results and computing exit codes.
    """

    results: list[ValidationResult] = field(default_factory=list)
    fixable_issues: list[FixableIssue] = field(default_factory=list)

    def add(
        self,
        level: Level,
        message: str,
        category: Category | None = None,
        file: str | None = None,
        line: int | None = None,
    ) -> None:
        """Add a validation result."""
        self.results.append(ValidationResult(level, message, category, file, line))

    def passed(self, message: str, file: str | None = None) -> None:
        """Add a passed check."""
        self.add("PASSED", message, None, file)

    def info(self, message: str, file: str | None = None) -> None:
        """Add an info message."""
        self.add("INFO", message, None, file)

    def warning(self, message: str, category: Category, file: str | None = None, line: int | None = None) -> None:
        """Add a warning; it blocks only in --strict mode."""
        self.add("WARNING", message, category, file, line)

    def error(self, message: str, category: Category, file: str | None = None, line: int | None = None) -> None:
        """Add an error."""
        self.add("ERROR", message, category, file, line)

    @property
    def has_errors(self) -> bool:
        """Check if any ERROR findings exist."""
        return any(r.level == "ERROR" for r in self.results)

    @property
    def has_warnings(self) -> bool:
        """Check if any WARNING findings exist."""
        return any(r.level == "WARNING" for r in self.results)

    @property
    def exit_code(self) -> int:
        """Exit code: fails on any ERROR, warnings are permitted."""
        if self.has_errors:
            return EXIT_ERRORS
        return EXIT_OK

    def exit_code_strict(self) -> int:
        """Exit code for --strict mode (warnings also block)."""
        code = self.exit_code
        if code != EXIT_OK:
            return code
        if self.has_warnings:
            return EXIT_WARNINGS
        return EXIT_OK

    def count_by_level(self) -> dict[str, int]:
        """Get count of results by level."""
        counts: dict[str, int] = {level: 0 for level in LEVELS}
        for r in self.results:
            counts[r.level] += 1
        return counts

    def group_by_level(self) -> dict[str, list[ValidationResult]]:
        """Group results by level, keeping their original order."""
        groups: dict[str, list[ValidationResult]] = {level: [] for level in LEVELS}
        for r in self.results:
            groups[r.level].append(r)
        return groups

    @property
    def errors(self) -> list[ValidationResult]:
        return [r for r in self.results if r.level == "ERROR"]

    @property
    def warnings(self) -> list[ValidationResult]:
        return [r for r in self.results if r.level == "WARNING"]

    def by_category(self, category: Category) -> list[ValidationResult]:
        """Get all results of a specific category."""
        return [r for r in self.results if r.category == category]

    def merge(self, other: ValidationReport) -> None:
        """Merge results from another report into this one."""
        self.results.extend(other.results)
        self.fixable_issues.extend(other.fixable_issues)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "exit_code": self.exit_code,
            "passed": not self.has_errors,
            "counts": {level.lower(): count for level, count in self.count_by_level().items()},
            "results": [r.to_dict() for r in self.results],
            "fixable_count": len(self.fixable_issues),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    # =========================================================================
    # Fixable Issues Support Methods
    # =========================================================================

    def add_fixable(
        self,
        level: Level,
        message: str,
        category: Category,
        fix_func: FixFunction,
        fix_description: str,
        file: str,
        line: int | None = None,
    ) -> None:
        """Add a validation result that can be auto-fixed.

        Args:
            level: Severity level
            message: Human-readable description
            category: Finding category
            fix_func: Function that fixes this issue
            fix_description: Description of what the fix does
            file: Absolute path of the file the fix edits
            line: Optional line number
        """
        fix_id = f"fix_{len(self.fixable_issues)}"
        result = ValidationResult(
            level=level,
            message=message,
            category=category,
            file=file,
            line=line,
            fixable=True,
            fix_id=fix_id,
        )
        self.results.append(result)
        self.fixable_issues.append(FixableIssue(result=result, fix_func=fix_func, fix_description=fix_description))

    def apply_fixes(self, dry_run: bool = False) -> dict[str, int]:
        """Apply all registered fixes in place.

        Edits are applied one by one with no rollback: a failure leaves
        earlier fixes in place and keeps the failed finding's level.

        Args:
            dry_run: If True, don't actually apply fixes, just count them

        Returns:
            Dictionary with counts: {"applied": N, "failed": M, "skipped": K}
        """
        stats = {"applied": 0, "failed": 0, "skipped": 0}

        for fixable in self.fixable_issues:
            if dry_run:
                stats["skipped"] += 1
                continue

            try:
                success = fixable.apply()
            except OSError:
                success = False

            if success:
                stats["applied"] += 1
                fixable.result.level = "PASSED"
                fixable.result.category = None
                fixable.result.message = f"[FIXED] {fixable.result.message}"
                self.info(f"fixed: {fixable.fix_description}", fixable.result.file)
            else:
                stats["failed"] += 1

        return stats


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

# ANSI color codes
COLORS = {
    "ERROR": "\033[91m",  # Red
    "WARNING": "\033[93m",  # Yellow
    "INFO": "\033[94m",  # Blue
    "PASSED": "\033[92m",  # Green
    "RESET": "\033[0m",  # Reset
    "BOLD": "\033[1m",  # Bold
    "DIM": "\033[2m",  # Dim
}

# Status-line labels, matching the tools' console prefixes
STATUS_LABELS = {
    "ERROR": "FAIL:",
    "WARNING": "WARN:",
    "INFO": "INFO:",
    "PASSED": "  OK:",
}


def colorize(text: str, level: str) -> str:
    """Apply color to text based on level."""
    color = COLORS.get(level, "")
    return f"{color}{text}{COLORS['RESET']}"


def status(level: Level, message: str, file: TextIO | None = None) -> None:
    """Print a single colored status line (OK/WARN/FAIL/INFO), to stdout unless file is given."""
    print(f"{colorize(STATUS_LABELS[level], level)} {message}", file=file)


def format_location(result: ValidationResult) -> str:
    """Format the file:line part of a result, or an empty string."""
    if not result.file:
        return ""
    location = result.file
    if result.line:
        location += f":{result.line}"
    return location


def render_table(headers: list[str], rows: list[list[str]], align_right: set[int] | None = None) -> list[str]:
    """Render rows as a pipe-delimited markdown-style table.

    Args:
        headers: Column titles
        rows: Cell values (already stringified)
        align_right: Column indices to right-align (numbers)

    Returns:
        Table lines, header and separator first
    """
    align_right = align_right or set()
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def fmt(cells: list[str]) -> str:
        padded = [c.rjust(widths[i]) if i in align_right else c.ljust(widths[i]) for i, c in enumerate(cells)]
        return "| " + " | ".join(padded) + " |"

    lines = [fmt(headers), "|" + "|".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(fmt(row) for row in rows)
    return lines


def print_report_summary(report: ValidationReport, title: str) -> None:
    """Print the report header and the per-level count table."""
    counts = report.count_by_level()

    print(f"\n{'=' * 60}")
    print(f"{COLORS['BOLD']}{title}{COLORS['RESET']}")
    print(f"{'=' * 60}")

    print("\nSummary:")
    for line in render_table(["Level", "Count"], [[level, str(counts[level])] for level in LEVELS], {1}):
        print(f"  {line}")


def print_results_by_level(report: ValidationReport, verbose: bool = False) -> None:
    """Print a details table, blocking levels first."""
    groups = report.group_by_level()
    shown = ["ERROR", "WARNING"] + (["INFO", "PASSED"] if verbose else [])

    rows: list[list[str]] = []
    for level in shown:
        for r in groups[level]:
            rows.append([level, r.category or "-", r.message, format_location(r) or "-"])

    if not rows:
        return

    print("\nDetails:")
    for line in render_table(["Level", "Category", "Message", "Location"], rows):
        level = line.split("|")[1].strip()
        print(f"  {colorize(line, level) if level in COLORS else line}")


def print_verdict(report: ValidationReport, strict: bool = False) -> None:
    """Print the final pass/fail line."""
    counts = report.count_by_level()
    print("\n" + "-" * 60)
    summary = f"{counts['ERROR']} error(s), {counts['WARNING']} warning(s)"
    if report.has_errors:
        print(colorize(f"✗ Validation failed: {summary}", "ERROR"))
    elif strict and report.has_warnings:
        print(colorize(f"! Warnings block in --strict mode: {summary}", "WARNING"))
    else:
        print(colorize(f"✓ Validation passed: {summary}", "PASSED"))
    print()


def print_results(report: ValidationReport, title: str, verbose: bool = False, strict: bool = False) -> None:
    """Print validation results in human-readable format."""
    print_report_summary(report, title)
    print_results_by_level(report, verbose)
    print_verdict(report, strict)


def finish(report: ValidationReport, title: str, *, as_json: bool, verbose: bool, strict: bool) -> int:
    """Render a report the way every CLI does and return its exit code."""
    if as_json:
        print(report.to_json())
    else:
        print_results(report, title, verbose, strict)

    if strict:
        return report.exit_code_strict()
    return report.exit_code
