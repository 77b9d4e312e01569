#!/usr/bin/env python3
"""
Skill Scholar Tools - README Generator

Builds README.md content for a plugin from what it ships: manifest
metadata, then one table each for skills, agents, commands, scripts and
templates, then the install command. Sections with nothing to list are
left out. The README goes to stdout; status lines go to stderr.

Usage:
    uv run python scripts/generate_readme.py path/to/plugin/ > README.md
    uv run python scripts/generate_readme.py path/to/plugin/ --repo owner/marketplace

Exit codes:
    0 - README printed
    2 - Plugin directory not found
"""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path

from skill_frontmatter import document_name, field_text, read_frontmatter
from skill_layout import find_skill_dirs, list_files, list_files_recursive, load_manifest
from skill_validation_common import SKILL_FILE, status

MARKETPLACE_REPO = "mostlyhumanagency/claude-plugins"
DEFAULT_VERSION = "0.0.0"

# Cell widths; only skill descriptions get an ellipsis when cut
DESCRIPTION_CHARS = 120
AGENT_DESCRIPTION_CHARS = 100

# Script descriptions come from the first comment on lines 2-5
SCRIPT_HEADER_LINES = slice(1, 5)
RE_COMMENT_PREFIX = re.compile(r"^#\s*")


def cell(text: str) -> str:
    """Escape pipes so a value stays inside its table column."""
    return text.replace("|", "\\|")


def table(headers: list[str], rows: list[list[str]]) -> list[str]:
    lines = ["| " + " | ".join(headers) + " |", "|" + "|".join("---" for _ in headers) + "|"]
    lines.extend("| " + " | ".join(cell(c) for c in row) + " |" for row in rows)
    return lines


def section(title: str, headers: list[str], rows: list[list[str]]) -> list[str]:
    if not rows:
        return []
    return [f"## {title}", "", *table(headers, rows), ""]


def skill_rows(plugin_dir: Path) -> list[list[str]]:
    rows = []
    for skill_dir in find_skill_dirs(plugin_dir):
        skill_md = skill_dir / SKILL_FILE
        desc = field_text(read_frontmatter(skill_md), "description")
        if len(desc) >= DESCRIPTION_CHARS:
            desc = desc[:DESCRIPTION_CHARS] + "..."
        rows.append([document_name(skill_md, skill_dir.name), desc])
    return rows


def agent_rows(plugin_dir: Path) -> list[list[str]]:
    rows = []
    for agent in list_files(plugin_dir / "agents", "*.md"):
        frontmatter = read_frontmatter(agent)
        rows.append(
            [
                document_name(agent, agent.stem),
                field_text(frontmatter, "model") or "-",
                field_text(frontmatter, "description")[:AGENT_DESCRIPTION_CHARS],
            ]
        )
    return rows


def command_rows(plugin_dir: Path) -> list[list[str]]:
    return [
        [f"/{command.stem}", field_text(read_frontmatter(command), "description")[:DESCRIPTION_CHARS]]
        for command in list_files(plugin_dir / "commands", "*.md")
    ]


def _skill_files_under(plugin_dir: Path, dir_name: str) -> list[Path]:
    """Files below skills/ with a dir_name directory somewhere in their path."""
    skills_root = plugin_dir / "skills"
    return [f for f in list_files_recursive(skills_root) if dir_name in f.relative_to(skills_root).parts[:-1]]


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def script_description(script: Path) -> str:
    """First comment line after the shebang, '-' when there is none."""
    for line in _read_lines(script)[SCRIPT_HEADER_LINES]:
        if line.startswith("#"):
            return RE_COMMENT_PREFIX.sub("", line, count=1)[:DESCRIPTION_CHARS] or "-"
    return "-"


def template_description(template: Path) -> str:
    """The template's first level-one heading, else its file name."""
    for line in _read_lines(template):
        if line.startswith("# "):
            return line[2:][:DESCRIPTION_CHARS] or template.name
    return template.name[:DESCRIPTION_CHARS]


def generate_readme(plugin_dir: Path, repo: str = MARKETPLACE_REPO) -> str:
    """Return README.md content for a plugin directory."""
    manifest = load_manifest(plugin_dir) or {}
    dir_name = plugin_dir.resolve().name
    name = str(manifest.get("name") or dir_name)
    version = str(manifest.get("version") or DEFAULT_VERSION)
    description = str(manifest.get("description") or "")

    status("INFO", f"generating README for {name} v{version}", file=sys.stderr)

    lines = [f"# {name}", ""]
    if description:
        lines.extend([description, ""])
    lines.extend([f"**Version:** {version}", ""])

    lines.extend(section("Skills", ["Skill", "Description"], skill_rows(plugin_dir)))
    lines.extend(section("Agents", ["Agent", "Model", "Description"], agent_rows(plugin_dir)))
    lines.extend(section("Commands", ["Command", "Description"], command_rows(plugin_dir)))
    scripts = [[s.name, script_description(s)] for s in _skill_files_under(plugin_dir, "scripts")]
    lines.extend(section("Scripts", ["Script", "Description"], scripts))
    templates = [[t.name, template_description(t)] for t in _skill_files_under(plugin_dir, "templates")]
    lines.extend(section("Templates", ["Template", "Description"], templates))

    lines.extend(
        [
            "## Installation",
            "",
            "```bash",
            f"claude plugin add {repo} --path plugins/{dir_name}",
            "```",
        ]
    )
    return "\n".join(lines) + "\n"


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate README.md content for a plugin")
    parser.add_argument("plugin_dir", help="Path to the plugin directory")
    parser.add_argument("--repo", default=MARKETPLACE_REPO, help=f"Marketplace repository (default: {MARKETPLACE_REPO})")
    args = parser.parse_args()

    plugin_dir = Path(args.plugin_dir)
    if not plugin_dir.is_dir():
        status("ERROR", f"directory not found: {plugin_dir}", file=sys.stderr)
        return 2

    sys.stdout.write(generate_readme(plugin_dir, args.repo))
    status("INFO", "README generation complete", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
