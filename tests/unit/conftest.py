"""Shared fixtures: skill and plugin directories built under tmp_path."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable

import pytest

DEFAULT_DESCRIPTION = (
    'This skill should be used when the user asks to "parse skill frontmatter" '
    'or "validate a skill directory".'
)

BODY_TEMPLATE = """# Sample Skill

## Overview

Checks skill directories before they ship.

## When to Use

- Validating a new skill before release
- Reviewing frontmatter after an edit

## Core Patterns

Run `validate_skill.py` first, then `review_skill.py`.

## Quick Reference

| Command | Purpose |
|---|---|
| `validate_skill.py` | Checklist validation |

## Common Mistakes

- Forgetting the closing delimiter
"""


def build_body(body_words: int, template: str = BODY_TEMPLATE) -> str:
    """Pad the template with filler so the body has exactly body_words words."""
    base = len(template.split())
    filler = max(body_words - base, 0)
    return template + "\n" + " ".join(["filler"] * filler) + "\n"


def write_skill_md(
    skill_dir: Path,
    *,
    name: str | None = "sample-skill",
    description: str | None = DEFAULT_DESCRIPTION,
    body: str | None = None,
    body_words: int = 1500,
    frontmatter: bool = True,
) -> Path:
    """Write SKILL.md into skill_dir (created if needed) and return its path."""
    skill_dir.mkdir(parents=True, exist_ok=True)
    if body is None:
        body = build_body(body_words)

    lines: list[str] = []
    if frontmatter:
        lines.append("---")
        if name is not None:
            lines.append(f"name: {name}")
        if description is not None:
            lines.append(f"description: {json.dumps(description)}")
        lines.append("---")
    text = "\n".join(lines) + ("\n" if lines else "") + body

    skill_md = skill_dir / "SKILL.md"
    skill_md.write_text(text, encoding="utf-8")
    return skill_md


def write_plugin(plugin_dir: Path, manifest: dict[str, object] | None = None) -> Path:
    """Write .claude-plugin/plugin.json and an empty skills/ directory."""
    manifest_dir = plugin_dir / ".claude-plugin"
    manifest_dir.mkdir(parents=True, exist_ok=True)
    if manifest is None:
        manifest = {"name": "sample-plugin", "version": "1.0.0", "description": "Sample plugin"}
    (manifest_dir / "plugin.json").write_text(json.dumps(manifest), encoding="utf-8")
    (plugin_dir / "skills").mkdir(exist_ok=True)
    return plugin_dir


def write_fake_claude(path: Path, reply: str, exit_code: int = 0) -> Path:
    """Write an executable stand-in for the claude CLI that prints a fixed reply."""
    path.write_text(
        f"#!{sys.executable}\nimport sys\nprint({reply!r})\nsys.exit({exit_code})\n",
        encoding="utf-8",
    )
    path.chmod(0o755)
    return path


@pytest.fixture
def make_skill(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a skill directory under tmp_path and returning it."""

    def _make(dir_name: str = "sample-skill", **kwargs: object) -> Path:
        skill_dir = tmp_path / dir_name
        write_skill_md(skill_dir, **kwargs)  # type: ignore[arg-type]
        return skill_dir

    return _make


@pytest.fixture
def plugin_with_skill(tmp_path: Path) -> tuple[Path, Path]:
    """A plugin containing one valid skill; returns (plugin_dir, skill_dir)."""
    plugin_dir = write_plugin(tmp_path / "plugin")
    skill_dir = plugin_dir / "skills" / "sample-skill"
    write_skill_md(skill_dir)
    return plugin_dir, skill_dir


@pytest.fixture
def no_claude(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the CLI override at a binary that does not exist."""
    monkeypatch.setenv("SKILL_SCHOLAR_CLAUDE_BIN", "claude-binary-that-does-not-exist")
