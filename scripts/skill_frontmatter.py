#!/usr/bin/env python3
"""
Skill Scholar Tools - Frontmatter and Markdown Helpers

Parses the leading YAML block of a skill document and extracts the pieces
of markdown the tools look at (body, headings, sections, trigger phrases).

Usage:
    frontmatter, body, end_line = parse_frontmatter(text)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from skill_validation_common import SKILL_FILE, MalformedFrontmatter, MissingRequiredFile

FRONTMATTER_DELIMITER = "---"

RE_HEADING = re.compile(r"^#{2,}\s+(.+?)\s*$", re.MULTILINE)
# Straight or curly double quotes
RE_QUOTED_PHRASE = re.compile(r"\"([^\"]+)\"|“([^”]+)”")
RE_INLINE_CODE = re.compile(r"`([^`\n]+)`")
RE_BULLET = re.compile(r"^- (.+)$", re.MULTILINE)


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == FRONTMATTER_DELIMITER


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str, int]:
    """Parse YAML frontmatter from skill content.

    Returns:
        Tuple of (frontmatter_dict, body_content, frontmatter_end_line) where
        frontmatter_end_line is the 1-based line of the closing delimiter.

    Raises:
        MalformedFrontmatter: the leading block is absent, unterminated,
            invalid YAML, or not a mapping.
    """
    lines = content.lstrip("\ufeff").splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        raise MalformedFrontmatter("no YAML frontmatter block (file must start with ---)")

    end = next((i for i in range(1, len(lines)) if _is_delimiter(lines[i])), None)
    if end is None:
        raise MalformedFrontmatter("frontmatter block is missing its closing ---")

    raw = "".join(lines[1:end])
    try:
        frontmatter = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise MalformedFrontmatter(f"invalid YAML in frontmatter: {e}") from e

    if frontmatter is None:
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        raise MalformedFrontmatter(f"frontmatter must be a mapping, got {type(frontmatter).__name__}")

    body = "".join(lines[end + 1 :])
    return frontmatter, body, end + 1


def extract_body(content: str) -> str:
    """Return the document text after the frontmatter, or all of it if there is none."""
    try:
        _, body, _ = parse_frontmatter(content)
    except MalformedFrontmatter:
        return content
    return body


def read_skill_md(skill_path: Path) -> str:
    """Read SKILL.md from a skill directory.

    Raises:
        MissingRequiredFile: SKILL.md does not exist.
    """
    skill_md = skill_path / SKILL_FILE
    if not skill_md.is_file():
        raise MissingRequiredFile(skill_md)
    return skill_md.read_text(encoding="utf-8", errors="replace")


def field_text(frontmatter: dict[str, Any], key: str) -> str:
    """Return a frontmatter value as single-spaced text ('' when absent).

    Lists are joined with spaces; folded and literal YAML blocks are
    collapsed onto one line.
    """
    value = frontmatter.get(key)
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(str(v) for v in value)
    return normalize_description(str(value))


def normalize_description(text: str) -> str:
    """Fold whitespace runs (including newlines) into single spaces."""
    return " ".join(text.split())


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def count_file_words(path: Path) -> int:
    """Count words in a file, 0 when it does not exist."""
    if not path.is_file():
        return 0
    return count_words(path.read_text(encoding="utf-8", errors="replace"))


def extract_sections(content: str) -> list[str]:
    """Return heading titles (## and deeper) in document order."""
    return RE_HEADING.findall(content)


def has_section(content: str, section: str) -> bool:
    """Check whether a heading such as '## Overview' appears in the document."""
    return section in content


def extract_section(content: str, title: str) -> str:
    """Return the text under '## <title>' up to the next '## ' heading."""
    match = re.search(rf"(?m)^## {re.escape(title)}\b.*$", content)
    if not match:
        return ""
    rest = content[match.end() :]
    next_heading = re.search(r"(?m)^## ", rest)
    if next_heading:
        rest = rest[: next_heading.start()]
    return rest.strip()


def extract_bullets(section_text: str) -> list[str]:
    """Return top-level '- ' bullet texts from a section."""
    return [b.strip() for b in RE_BULLET.findall(section_text)]


def extract_trigger_phrases(description: str) -> list[str]:
    """Return the double-quoted phrases of a description."""
    return [straight or curly for straight, curly in RE_QUOTED_PHRASE.findall(description)]


def extract_inline_code(content: str) -> list[str]:
    """Return unique inline code spans, sorted."""
    return sorted(set(RE_INLINE_CODE.findall(content)))


def read_frontmatter(md_path: Path) -> dict[str, Any]:
    """Return the frontmatter of a markdown file, {} when absent or unreadable."""
    try:
        frontmatter, _, _ = parse_frontmatter(md_path.read_text(encoding="utf-8", errors="replace"))
    except (MalformedFrontmatter, OSError):
        return {}
    return frontmatter


def document_name(md_path: Path, fallback: str) -> str:
    """Return the frontmatter name of a markdown document, or the fallback."""
    name = read_frontmatter(md_path).get("name")
    return str(name).strip() if name else fallback
