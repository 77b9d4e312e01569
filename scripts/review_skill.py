#!/usr/bin/env python3
"""
Skill Scholar Tools - Skill Reviewer

Enhanced quality review for a skill directory. Runs every checklist rule
from validate_skill.py and adds:
- File structure: executable scripts, non-empty templates
- Description quality: length, quoted trigger phrases, no workflow summary
- Router skills: short body, routing table, no code blocks or references
- Content: recommended sections, code fence language tags, emojis
- File references: paths mentioned in SKILL.md exist on disk
- Reference files: top-level header, word count, tables
- Writing style: imperative phrasing, no CLAUDE_PLUGIN_ROOT in the body
- Plugin packaging and sibling overlap listing (--plugin-dir)
- LLM analysis through the claude CLI (--deep)

Usage:
    uv run python scripts/review_skill.py path/to/skill/
    uv run python scripts/review_skill.py path/to/skill/ --fix
    uv run python scripts/review_skill.py path/to/skill/ --plugin-dir path/to/plugin --deep

--fix edits files in place (chmod +x on scripts, appends missing required
sections with a TODO placeholder). Edits are not transactional.

Exit codes:
    0 - No errors (warnings allowed)
    1 - Warnings found (--strict only)
    2 - Errors found
"""

from __future__ import annotations

import argparse
import functools
import os
import re
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from claude_cli import ClaudeRequest, have_claude, run_claude
from skill_frontmatter import (
    count_words,
    extract_body,
    field_text,
    has_section,
    read_frontmatter,
)
from skill_layout import PLUGIN_MANIFEST, find_skill_dirs, list_files, list_files_recursive, load_manifest
from skill_validation_common import (
    MAX_DESCRIPTION_CHARS,
    MAX_REFERENCE_WORDS,
    MAX_ROUTER_BODY_WORDS,
    MIN_DESCRIPTION_CHARS,
    MIN_REFERENCE_WORDS,
    RE_TABLE_ROW,
    RECOMMENDED_SECTIONS,
    REQUIRED_SECTIONS,
    RESOURCE_DIRS,
    SKILL_FILE,
    ValidationReport,
    colorize,
    finish,
)
from validate_skill import (
    SkillValidationReport,
    validate_body_word_count,
    validate_description_field,
    validate_frontmatter,
    validate_name_field,
    validate_reference_nesting,
    validate_skill_md_exists,
    validate_tables,
    validate_trigger_conditions,
)

RE_QUOTED_TRIGGER = re.compile(r"\"[^\"]+\"|“[^”]+”")
RE_WORKFLOW_SUMMARY = re.compile(r"step [0-9]|phase [0-9]|first.*then.*finally", re.IGNORECASE)
RE_ROUTER = re.compile(r"unsure which|route", re.IGNORECASE)
RE_FENCE = re.compile(r"^\s*```(.*)$")
RE_EMOJI = re.compile("[\\U0001f300-\\U0001f9ff\\u2600-\\u26ff\\u2700-\\u27bf]")
RE_RESOURCE_PATH = re.compile(r"(?:" + "|".join(RESOURCE_DIRS) + r")/[a-zA-Z0-9_./-]+")
RE_TOP_HEADER = re.compile(r"(?m)^# ")

NON_IMPERATIVE_PHRASES = ["you should", "you can", "we will", "you need to", "you must"]

# Lines of a reference file searched for its top-level header
REFERENCE_HEADER_LINES = 5

# Sibling descriptions are truncated to this many characters
SIBLING_DESCRIPTION_CHARS = 80

PLUGIN_MANIFEST_FIELDS = ["name", "version", "description"]

DEEP_PROMPT = (
    "Analyze this skill file for: 1) Are code examples correct and idiomatic? "
    "2) Are trigger phrases specific enough to avoid false positives? "
    "3) Rate overall quality 1-10 with brief justification. Be concise."
)
DEEP_MODEL = "haiku"
DEEP_BUDGET = "0.05"

SECTION_PLACEHOLDER = "TODO: Fill in this section."


@dataclass
class SkillReviewReport(SkillValidationReport):
    """Review report with the router flag and the optional LLM analysis."""

    is_router: bool = False
    deep_analysis: str | None = None

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["is_router"] = self.is_router
        if self.deep_analysis is not None:
            data["deep_analysis"] = self.deep_analysis
        return data


# =============================================================================
# Fix Functions
# =============================================================================


def make_executable(file: str, line: int | None = None) -> bool:
    """chmod +x a file (user, group and other execute bits)."""
    path = Path(file)
    if not path.is_file():
        return False
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return True


def append_section_placeholder(section: str, file: str, line: int | None = None) -> bool:
    """Append a section heading with a TODO placeholder to a markdown file."""
    path = Path(file)
    if not path.is_file():
        return False
    with path.open("a", encoding="utf-8") as f:
        f.write(f"\n{section}\n\n{SECTION_PLACEHOLDER}\n")
    return True


# =============================================================================
# File Structure
# =============================================================================


def validate_scripts_executable(skill_path: Path, report: ValidationReport) -> None:
    """Validate every file under scripts/ is executable (fixable)."""
    for script in list_files_recursive(skill_path / "scripts"):
        rel = script.relative_to(skill_path).as_posix()
        if os.access(script, os.X_OK):
            report.passed(f"script executable: {script.name}", rel)
        else:
            report.add_fixable(
                "ERROR",
                f"script not executable: {rel}",
                "StructuralViolation",
                make_executable,
                f"chmod +x {rel}",
                str(script),
            )


def validate_templates_non_empty(skill_path: Path, report: ValidationReport) -> None:
    """Validate no file under templates/ is empty."""
    templates_dir = skill_path / "templates"
    if not templates_dir.is_dir():
        return

    for template in list_files_recursive(templates_dir):
        if template.stat().st_size == 0:
            rel = template.relative_to(skill_path).as_posix()
            report.error(f"template is empty: {rel}", "StructuralViolation", rel)
    report.passed("templates non-empty check complete", "templates/")


# =============================================================================
# Description
# =============================================================================


def validate_description_length(description: str, report: ValidationReport) -> None:
    """Validate the folded description length."""
    length = len(description)
    if length < MIN_DESCRIPTION_CHARS:
        report.error(
            f"description too short ({length} chars, minimum {MIN_DESCRIPTION_CHARS})",
            "ContentSizeViolation",
            SKILL_FILE,
        )
    elif length > MAX_DESCRIPTION_CHARS:
        report.error(
            f"description too long ({length} chars, maximum {MAX_DESCRIPTION_CHARS})",
            "ContentSizeViolation",
            SKILL_FILE,
        )
    else:
        report.passed(f"description length: {length} chars", SKILL_FILE)


def validate_trigger_phrases(description: str, report: ValidationReport) -> None:
    """Validate the description quotes the phrases that should trigger the skill."""
    if RE_QUOTED_TRIGGER.search(description):
        report.passed("description contains quoted trigger phrases", SKILL_FILE)
    else:
        report.warning("description should contain quoted trigger phrases", "ContentQuality", SKILL_FILE)

    if RE_WORKFLOW_SUMMARY.search(description):
        report.warning(
            "description looks like a workflow summary — keep it to triggers only",
            "ContentQuality",
            SKILL_FILE,
        )


def is_router_skill(description: str) -> bool:
    """A router skill only points to other skills; its description says so."""
    return bool(RE_ROUTER.search(description))


# =============================================================================
# Body Content
# =============================================================================


def validate_router_body(skill_path: Path, body: str, report: ValidationReport) -> None:
    """Apply the router rules: short body, table, no code, no references."""
    word_count = count_words(body)
    if word_count > MAX_ROUTER_BODY_WORDS:
        report.error(
            f"router skill body too long: {word_count} words (limit {MAX_ROUTER_BODY_WORDS})",
            "ContentSizeViolation",
            SKILL_FILE,
        )
    else:
        report.passed(f"router body word count: {word_count} (limit {MAX_ROUTER_BODY_WORDS})", SKILL_FILE)

    if any(RE_FENCE.match(line) for line in body.splitlines()):
        report.error("router skill should not contain code blocks", "ContentQuality", SKILL_FILE)

    if RE_TABLE_ROW.search(body):
        report.passed("router has routing table", SKILL_FILE)
    else:
        report.error("router skill missing routing table", "ContentQuality", SKILL_FILE)

    refs_dir = skill_path / "references"
    if refs_dir.is_dir() and any(refs_dir.iterdir()):
        report.error("router skill should not have references/", "StructuralViolation", "references/")


def validate_required_sections_fixable(skill_path: Path, content: str, report: ValidationReport) -> None:
    """Validate required sections; each missing one can be appended as a placeholder."""
    skill_md = skill_path / SKILL_FILE
    for section in REQUIRED_SECTIONS:
        if has_section(content, section):
            report.passed(f"section present: {section}", SKILL_FILE)
            continue
        report.add_fixable(
            "ERROR",
            f"missing section: {section}",
            "ContentQuality",
            functools.partial(append_section_placeholder, section),
            f"appended {section} with TODO placeholder",
            str(skill_md),
        )


def validate_recommended_sections(content: str, report: ValidationReport) -> None:
    for section in RECOMMENDED_SECTIONS:
        if has_section(content, section):
            report.passed(f"recommended section present: {section}", SKILL_FILE)
        else:
            report.warning(f"missing recommended section: {section}", "ContentQuality", SKILL_FILE)


def count_untagged_code_blocks(content: str) -> tuple[int, int]:
    """Return (code blocks, blocks whose opening fence has no language tag)."""
    blocks = 0
    untagged = 0
    in_block = False
    for line in content.splitlines():
        match = RE_FENCE.match(line)
        if not match:
            continue
        if in_block:
            in_block = False
            continue
        in_block = True
        blocks += 1
        if not match.group(1).strip():
            untagged += 1
    return blocks, untagged


def validate_code_blocks(content: str, report: ValidationReport) -> None:
    """Validate code blocks carry language tags."""
    blocks, untagged = count_untagged_code_blocks(content)
    if not blocks:
        return
    if untagged:
        report.warning(f"{untagged} code block(s) missing language tags", "ContentQuality", SKILL_FILE)
    else:
        report.passed("all code blocks have language tags", SKILL_FILE)


def validate_no_emojis(content: str, report: ValidationReport) -> None:
    for lineno, line in enumerate(content.splitlines(), 1):
        if RE_EMOJI.search(line):
            report.warning("SKILL.md contains emojis — prefer plain text", "ContentQuality", SKILL_FILE, lineno)
            return


# =============================================================================
# File References
# =============================================================================


def find_resource_references(content: str) -> list[str]:
    """Return unique resource paths (references/, scripts/, ...) mentioned in the text."""
    return sorted({m.rstrip(".") for m in RE_RESOURCE_PATH.findall(content)})


def validate_file_references(skill_path: Path, content: str, report: ValidationReport) -> None:
    """Validate referenced resource paths exist on disk."""
    for ref_path in find_resource_references(content):
        if (skill_path / ref_path).exists():
            report.passed(f"referenced path exists: {ref_path}", SKILL_FILE)
        else:
            report.error(f"referenced path not found on disk: {ref_path}", "StructuralViolation", SKILL_FILE)


def validate_reference_files(skill_path: Path, report: ValidationReport) -> None:
    """Validate each references/*.md has a header, a sensible size and a table."""
    for ref in list_files(skill_path / "references", "*.md"):
        rel = ref.relative_to(skill_path).as_posix()
        content = ref.read_text(encoding="utf-8", errors="replace")

        head = "\n".join(content.splitlines()[:REFERENCE_HEADER_LINES])
        if RE_TOP_HEADER.search(head):
            report.passed(f"{ref.name} has top-level header", rel)
        else:
            report.warning(f"{ref.name} missing top-level header", "ContentQuality", rel)

        words = count_words(content)
        if words < MIN_REFERENCE_WORDS:
            report.warning(f"{ref.name} is short: {words:,} words (ideal 2,000-5,000)", "ContentSizeViolation", rel)
        elif words > MAX_REFERENCE_WORDS:
            report.warning(
                f"{ref.name} is very long: {words:,} words (ideal 2,000-5,000)", "ContentSizeViolation", rel
            )
        else:
            report.passed(f"{ref.name} word count: {words:,}", rel)

        if RE_TABLE_ROW.search(content):
            report.passed(f"{ref.name} contains tables", rel)
        else:
            report.warning(f"{ref.name} has no tables", "ContentQuality", rel)


# =============================================================================
# Writing Style
# =============================================================================


def validate_writing_style(content: str, body: str, report: ValidationReport) -> None:
    """Validate imperative phrasing and skill-relative paths."""
    lowered_lines = content.lower().splitlines()
    for phrase in NON_IMPERATIVE_PHRASES:
        occurrences = sum(1 for line in lowered_lines if phrase in line)
        if occurrences:
            report.warning(
                f'non-imperative phrasing found: "{phrase}" ({occurrences} occurrences)',
                "ContentQuality",
                SKILL_FILE,
            )

    if "CLAUDE_PLUGIN_ROOT" in body:
        report.warning(
            "SKILL.md body references CLAUDE_PLUGIN_ROOT — use relative paths from skill dir instead",
            "ContentQuality",
            SKILL_FILE,
        )


# =============================================================================
# Plugin Packaging
# =============================================================================


def validate_plugin_packaging(plugin_dir: Path, report: ValidationReport) -> None:
    """Validate plugin.json fields and the plugin directory layout."""
    manifest_rel = PLUGIN_MANIFEST.as_posix()
    manifest_path = plugin_dir / PLUGIN_MANIFEST

    if manifest_path.is_file():
        report.passed("plugin.json exists", manifest_rel)
        manifest = load_manifest(plugin_dir)
        if manifest is None:
            report.error("plugin.json is not a valid JSON object", "Packaging", manifest_rel)
            manifest = {}
        for fld in PLUGIN_MANIFEST_FIELDS:
            if fld in manifest:
                report.passed(f"plugin.json has {fld}", manifest_rel)
            else:
                report.error(f"plugin.json missing {fld}", "Packaging", manifest_rel)
    else:
        report.error(f"plugin.json not found at {manifest_path}", "Packaging", manifest_rel)

    extra = [p.name for p in list_files_recursive(plugin_dir / ".claude-plugin") if p.name != "plugin.json"]
    if extra:
        report.warning(f"extra files in .claude-plugin/: {', '.join(extra)}", "Packaging", ".claude-plugin/")

    if (plugin_dir / "skills").is_dir():
        report.passed("skills/ directory exists", "skills/")
    else:
        report.error("skills/ directory not found in plugin", "Packaging", "skills/")


def list_sibling_skills(plugin_dir: Path, report: ValidationReport) -> None:
    """Record the plugin's skills as INFO so overlaps can be spotted."""
    for skill_dir in find_skill_dirs(plugin_dir):
        frontmatter = read_frontmatter(skill_dir / SKILL_FILE)
        desc = field_text(frontmatter, "description")[:SIBLING_DESCRIPTION_CHARS]
        report.info(f"sibling skill {skill_dir.name}: {desc}")


# =============================================================================
# Deep Mode
# =============================================================================


def run_deep_analysis(content: str, report: SkillReviewReport) -> None:
    """Ask the claude CLI for a short qualitative review."""
    if not have_claude():
        report.warning("claude CLI not found — skipping deep analysis", "DeepAnalysis")
        return

    reply = run_claude(
        ClaudeRequest(prompt=f"{DEEP_PROMPT}\n\n{content}", model=DEEP_MODEL, budget=DEEP_BUDGET, unattended=False)
    )
    if reply is None:
        report.warning("LLM analysis failed", "DeepAnalysis")
        return

    report.deep_analysis = reply.strip()
    report.info("deep analysis completed")


# =============================================================================
# Review
# =============================================================================


def review_frontmatter(content: str, report: SkillReviewReport) -> str:
    """Validate frontmatter fields and return the folded description ('' if unusable)."""
    frontmatter: dict[str, Any] | None = validate_frontmatter(content, report)
    if frontmatter is None:
        return ""

    validate_name_field(frontmatter, report)
    description = validate_description_field(frontmatter, report)
    if description is None:
        return ""

    validate_description_length(description, report)
    validate_trigger_conditions(description, report)
    validate_trigger_phrases(description, report)
    return description


def review_skill(
    skill_path: Path,
    plugin_dir: Path | None = None,
    fix: bool = False,
    deep: bool = False,
) -> SkillReviewReport:
    """Review a complete skill directory.

    Args:
        skill_path: Path to the skill directory
        plugin_dir: Plugin root for packaging and overlap checks
        fix: Apply in-place fixes for fixable findings
        deep: Run the LLM analysis

    Returns:
        SkillReviewReport with all results
    """
    report = SkillReviewReport(skill_path=str(skill_path))

    content = validate_skill_md_exists(skill_path, report)
    if content is None:
        return report

    # File structure
    validate_reference_nesting(skill_path, report)
    validate_scripts_executable(skill_path, report)
    validate_templates_non_empty(skill_path, report)

    description = review_frontmatter(content, report)

    # Body content
    body = extract_body(content)
    report.is_router = is_router_skill(description)
    if report.is_router:
        report.info("detected as router skill — applying router rules")
        validate_router_body(skill_path, body, report)
    else:
        validate_body_word_count(body, report)

    validate_required_sections_fixable(skill_path, content, report)
    validate_recommended_sections(content, report)
    validate_tables(content, report, level="WARNING", pattern=RE_TABLE_ROW)
    validate_code_blocks(content, report)
    validate_no_emojis(content, report)

    validate_file_references(skill_path, content, report)
    validate_reference_files(skill_path, report)
    validate_writing_style(content, body, report)

    if plugin_dir is not None:
        validate_plugin_packaging(plugin_dir, report)
        list_sibling_skills(plugin_dir, report)

    if fix:
        report.apply_fixes()

    if deep:
        run_deep_analysis((skill_path / SKILL_FILE).read_text(encoding="utf-8", errors="replace"), report)

    return report


def print_deep_analysis(report: SkillReviewReport) -> None:
    if report.deep_analysis is None:
        return
    print(colorize("--- Deep Analysis (LLM) ---", "INFO"))
    print(report.deep_analysis)
    print()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Review a skill directory for quality issues")
    parser.add_argument("skill_path", help="Path to the skill directory")
    parser.add_argument("--deep", action="store_true", help="Add an LLM analysis through the claude CLI")
    parser.add_argument("--fix", action="store_true", help="Fix what can be fixed in place (no rollback)")
    parser.add_argument("--plugin-dir", type=Path, help="Plugin root for packaging and overlap checks")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show all results including passed checks",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode — warnings also block validation")
    args = parser.parse_args()

    if args.plugin_dir is not None and not args.plugin_dir.is_dir():
        print(f"Error: {args.plugin_dir} is not a directory", file=sys.stderr)
        return 2

    skill_path = Path(args.skill_path)
    report = review_skill(skill_path, plugin_dir=args.plugin_dir, fix=args.fix, deep=args.deep)

    code = finish(
        report,
        f"Skill Review: {skill_path}",
        as_json=args.json,
        verbose=args.verbose,
        strict=args.strict,
    )
    if not args.json:
        print_deep_analysis(report)
    return code


if __name__ == "__main__":
    sys.exit(main())
