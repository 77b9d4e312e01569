#!/usr/bin/env python3
"""
Skill Scholar Tools - Plugin Inventory

Counts the skills, agents, commands, templates and scripts of a plugin and
prints per-skill word statistics.

Usage:
    uv run python scripts/count_skills.py path/to/plugin/
    uv run python scripts/count_skills.py path/to/plugin/ --json

Exit codes:
    0 - Inventory printed
    2 - Plugin directory not found
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path

from skill_frontmatter import count_file_words, document_name
from skill_layout import find_skill_dirs, list_files, list_files_recursive, plugin_name
from skill_validation_common import SKILL_FILE, render_table

SKILL_TABLE_HEADERS = ["Name", "SKILL.md Words", "Refs", "Ref Words", "Scripts", "Examples"]


@dataclass
class SkillStats:
    """Word and file counts for one skill."""

    name: str
    path: str
    skill_words: int
    reference_count: int
    reference_words: int
    script_count: int
    example_count: int


@dataclass
class PluginInventory:
    """Everything a plugin ships, by kind."""

    name: str
    skills: list[SkillStats] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    templates: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)

    @property
    def total_skill_words(self) -> int:
        return sum(s.skill_words + s.reference_words for s in self.skills)

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["total_skill_words"] = self.total_skill_words
        return data


def collect_skill_stats(skill_dir: Path) -> SkillStats:
    """Collect word and file counts for one skill directory."""
    references = list_files(skill_dir / "references")
    return SkillStats(
        name=document_name(skill_dir / SKILL_FILE, skill_dir.name),
        path=str(skill_dir),
        skill_words=count_file_words(skill_dir / SKILL_FILE),
        reference_count=len(references),
        reference_words=sum(count_file_words(ref) for ref in references),
        script_count=len(list_files_recursive(skill_dir / "scripts")),
        example_count=len(list_files_recursive(skill_dir / "examples")),
    )


def _files_in_named_dirs(root: Path, dir_name: str) -> list[str]:
    """Return names of files directly inside every <dir_name>/ below root."""
    if not root.is_dir():
        return []
    names: list[str] = []
    for directory in sorted(p for p in root.rglob(dir_name) if p.is_dir()):
        names.extend(f.name for f in list_files(directory))
    return names


def collect_inventory(plugin_dir: Path) -> PluginInventory:
    """Build the inventory of a plugin directory."""
    skills_root = plugin_dir / "skills"
    return PluginInventory(
        name=plugin_name(plugin_dir),
        skills=[collect_skill_stats(d) for d in find_skill_dirs(plugin_dir)],
        agents=[document_name(a, a.stem) for a in list_files(plugin_dir / "agents", "*.md")],
        commands=[f"/{c.stem}" for c in list_files(plugin_dir / "commands", "*.md")],
        templates=_files_in_named_dirs(skills_root, "templates"),
        scripts=_files_in_named_dirs(skills_root, "scripts"),
    )


def _listing(label: str, items: list[str]) -> str:
    return f"{label} ({len(items)}): {' '.join(items) if items else '(none)'}"


def print_inventory(inventory: PluginInventory) -> None:
    """Print the inventory as tables and one-line listings."""
    print(f"=== Plugin Inventory: {inventory.name} ===")
    print()

    print(f"Skills ({len(inventory.skills)}):")
    if inventory.skills:
        rows = [
            [
                s.name,
                f"{s.skill_words:,}",
                str(s.reference_count),
                f"{s.reference_words:,}",
                str(s.script_count),
                str(s.example_count),
            ]
            for s in inventory.skills
        ]
        for line in render_table(SKILL_TABLE_HEADERS, rows, align_right={1, 2, 3, 4, 5}):
            print(line)
    print()

    print(_listing("Agents", inventory.agents))
    print(_listing("Commands", inventory.commands))
    print(_listing("Templates", inventory.templates))
    print(_listing("Scripts", inventory.scripts))
    print()
    print(f"Total skill words (SKILL.md + references): {inventory.total_skill_words:,}")
    print()
    print("=== Inventory Complete ===")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Plugin inventory with skill statistics")
    parser.add_argument("plugin_dir", help="Path to the plugin directory")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    plugin_dir = Path(args.plugin_dir)
    if not plugin_dir.is_dir():
        print(f"Error: directory not found: {plugin_dir}", file=sys.stderr)
        return 2

    inventory = collect_inventory(plugin_dir)
    if args.json:
        print(json.dumps(inventory.to_dict(), indent=2))
    else:
        print_inventory(inventory)
    return 0


if __name__ == "__main__":
    sys.exit(main())
