#!/usr/bin/env python3
"""
Skill Scholar Tools - Skill Validator

Validates a produced skill directory against the authoring checklist:
SKILL.md presence, frontmatter fields, body word budget, required sections,
a quick reference table, and one-level-deep reference files.

Usage:
    uv run python scripts/validate_skill.py path/to/skill/
    uv run python scripts/validate_skill.py path/to/skill/ --verbose
    uv run python scripts/validate_skill.py path/to/skill/ --json

Exit codes:
    0 - No errors (warnings allowed)
    1 - Warnings found (--strict only)
    2 - Errors found
"""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from skill_frontmatter import count_words, extract_body, field_text, has_section, parse_frontmatter, read_skill_md
from skill_validation_common import (
    IDEAL_BODY_WORDS_MAX,
    IDEAL_BODY_WORDS_MIN,
    MAX_BODY_WORDS,
    MAX_NAME_LENGTH,
    RE_TABLE_CELLS,
    RE_TRIGGER_CONDITIONS,
    REQUIRED_SECTIONS,
    SKILL_FILE,
    Level,
    MalformedFrontmatter,
    MissingRequiredFile,
    ValidationReport,
    finish,
    is_valid_skill_name,
)

# Cap on nested reference paths quoted in one finding
MAX_NESTED_LISTED = 5


@dataclass
class SkillValidationReport(ValidationReport):
    """Skill validation report with skill-specific metadata."""

    skill_path: str = ""

    def to_dict(self) -> dict[str, object]:
        return {"skill_path": self.skill_path, **super().to_dict()}


def validate_skill_md_exists(skill_path: Path, report: ValidationReport) -> str | None:
    """Validate SKILL.md exists (required) and return its content."""
    if not skill_path.is_dir():
        report.error(f"Skill directory not found: {skill_path}", "MissingRequiredFile")
        return None

    try:
        content = read_skill_md(skill_path)
    except MissingRequiredFile as e:
        report.error(str(e), "MissingRequiredFile", SKILL_FILE)
        return None

    report.passed("SKILL.md exists", SKILL_FILE)
    return content


def validate_frontmatter(content: str, report: ValidationReport) -> dict[str, Any] | None:
    """Validate the frontmatter block parses into a mapping."""
    try:
        frontmatter, _body, _end_line = parse_frontmatter(content)
    except MalformedFrontmatter as e:
        report.error(f"Malformed frontmatter: {e}", "MalformedFrontmatter", SKILL_FILE, 1)
        return None

    report.passed("Valid YAML frontmatter", SKILL_FILE)
    return frontmatter


def validate_name_field(frontmatter: dict[str, Any], report: ValidationReport) -> str | None:
    """Validate the 'name' frontmatter field."""
    if "name" not in frontmatter or frontmatter["name"] in (None, ""):
        report.error("name field missing from frontmatter", "MalformedFrontmatter", SKILL_FILE)
        return None

    name = frontmatter["name"]
    if not isinstance(name, str):
        report.error(f"name must be a string, got {type(name).__name__}", "MalformedFrontmatter", SKILL_FILE)
        return None

    name = name.strip()
    if is_valid_skill_name(name):
        report.passed(f"name field valid: {name}", SKILL_FILE)
    else:
        report.error(
            f"name field contains invalid characters (use lowercase, numbers, hyphens only): {name}",
            "StructuralViolation",
            SKILL_FILE,
        )

    if len(name) > MAX_NAME_LENGTH:
        report.error(
            f"name exceeds {MAX_NAME_LENGTH} characters: {len(name)}",
            "StructuralViolation",
            SKILL_FILE,
        )

    return name


def validate_description_field(frontmatter: dict[str, Any], report: ValidationReport) -> str | None:
    """Validate the 'description' field is present and return it folded onto one line."""
    if "description" not in frontmatter:
        report.error("description field missing from frontmatter", "MalformedFrontmatter", SKILL_FILE)
        return None

    desc = frontmatter["description"]
    if desc is not None and not isinstance(desc, (str, list)):
        report.error(
            f"description must be a string, got {type(desc).__name__}",
            "MalformedFrontmatter",
            SKILL_FILE,
        )
        return None

    report.passed("description field present", SKILL_FILE)
    return field_text(frontmatter, "description")


def validate_trigger_conditions(description: str, report: ValidationReport) -> None:
    """Validate the description says when the skill should be used."""
    if RE_TRIGGER_CONDITIONS.search(description):
        report.passed("description includes trigger conditions", SKILL_FILE)
    else:
        report.error(
            "description should include trigger conditions (e.g., 'This skill should be used when...')",
            "ContentQuality",
            SKILL_FILE,
        )


def validate_body_word_count(body: str, report: ValidationReport) -> int:
    """Validate the body word count against the hard limit and the ideal range."""
    word_count = count_words(body)

    if word_count > MAX_BODY_WORDS:
        report.error(
            f"body word count: {word_count:,} exceeds hard limit of {MAX_BODY_WORDS:,}",
            "ContentSizeViolation",
            SKILL_FILE,
        )
        return word_count

    report.passed(f"body word count: {word_count:,} (limit: {MAX_BODY_WORDS:,})", SKILL_FILE)

    ideal = f"{IDEAL_BODY_WORDS_MIN:,}-{IDEAL_BODY_WORDS_MAX:,}"
    if word_count < IDEAL_BODY_WORDS_MIN:
        report.warning(
            f"body word count {word_count:,} is below ideal range ({ideal})",
            "ContentSizeViolation",
            SKILL_FILE,
        )
    elif word_count > IDEAL_BODY_WORDS_MAX:
        report.warning(
            f"body word count {word_count:,} is above ideal range ({ideal}) — consider extracting to references/",
            "ContentSizeViolation",
            SKILL_FILE,
        )
    else:
        report.passed(f"body word count in ideal range ({ideal})", SKILL_FILE)

    return word_count


def validate_required_sections(content: str, report: ValidationReport) -> list[str]:
    """Validate the required sections are present and return the missing ones."""
    missing = []
    for section in REQUIRED_SECTIONS:
        if has_section(content, section):
            report.passed(f"section present: {section}", SKILL_FILE)
        else:
            missing.append(section)
            report.error(f"missing section: {section}", "ContentQuality", SKILL_FILE)
    return missing


def validate_tables(
    content: str, report: ValidationReport, level: Level = "ERROR", pattern: re.Pattern[str] = RE_TABLE_CELLS
) -> None:
    """Validate the document contains at least one markdown table."""
    if pattern.search(content):
        report.passed("contains at least one table", SKILL_FILE)
        return
    report.add(level, "no tables found — add a Quick Reference table", "ContentQuality", SKILL_FILE)


def find_nested_references(skill_path: Path) -> list[Path]:
    """Return markdown files nested below references/<subdir>/, sorted."""
    refs_dir = skill_path / "references"
    if not refs_dir.is_dir():
        return []
    return sorted(p for p in refs_dir.rglob("*.md") if p.is_file() and len(p.relative_to(refs_dir).parts) > 1)


def validate_reference_nesting(skill_path: Path, report: ValidationReport) -> None:
    """Validate reference files are one level deep."""
    if not (skill_path / "references").is_dir():
        return

    nested = find_nested_references(skill_path)
    if not nested:
        report.passed("reference files are one level deep", "references/")
        return

    listed = ", ".join(p.relative_to(skill_path).as_posix() for p in nested[:MAX_NESTED_LISTED])
    more = f" (+{len(nested) - MAX_NESTED_LISTED} more)" if len(nested) > MAX_NESTED_LISTED else ""
    report.error(
        f"nested reference files found (must be one level deep): {listed}{more}",
        "StructuralViolation",
        "references/",
    )


def validate_skill(skill_path: Path) -> SkillValidationReport:
    """Validate a complete skill directory.

    Args:
        skill_path: Path to the skill directory

    Returns:
        SkillValidationReport with all results
    """
    report = SkillValidationReport(skill_path=str(skill_path))

    content = validate_skill_md_exists(skill_path, report)
    if content is None:
        return report

    frontmatter = validate_frontmatter(content, report)
    if frontmatter is not None:
        validate_name_field(frontmatter, report)
        description = validate_description_field(frontmatter, report)
        if description is not None:
            validate_trigger_conditions(description, report)

    validate_body_word_count(extract_body(content), report)
    validate_required_sections(content, report)
    validate_tables(content, report)
    validate_reference_nesting(skill_path, report)

    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a skill directory against the authoring checklist")
    parser.add_argument("skill_path", help="Path to the skill directory")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show all results including passed checks",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode — warnings also block validation")
    args = parser.parse_args()

    skill_path = Path(args.skill_path)
    report = validate_skill(skill_path)
    return finish(
        report,
        f"Skill Validation: {skill_path}",
        as_json=args.json,
        verbose=args.verbose,
        strict=args.strict,
    )


if __name__ == "__main__":
    sys.exit(main())
