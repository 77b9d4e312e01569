#!/usr/bin/env python3
"""
Skill Scholar Tools - Plugin Layout Helpers

Locates plugins and the skills inside them. A plugin is a directory with
.claude-plugin/plugin.json; its skills live under skills/<name>/SKILL.md.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from skill_validation_common import SKILL_FILE

PLUGIN_MANIFEST = Path(".claude-plugin") / "plugin.json"

# Parent levels searched above a skill directory for its plugin
PLUGIN_SEARCH_DEPTH = 5


def find_plugin_dir(skill_path: Path, max_depth: int = PLUGIN_SEARCH_DEPTH) -> Path | None:
    """Walk up from a skill directory to the nearest plugin root."""
    current = skill_path.resolve()
    for _ in range(max_depth):
        current = current.parent
        if (current / PLUGIN_MANIFEST).is_file():
            return current
        if current.parent == current:
            break
    return None


def load_manifest(plugin_dir: Path) -> dict[str, Any] | None:
    """Load plugin.json, or None when absent or not a JSON object."""
    manifest_path = plugin_dir / PLUGIN_MANIFEST
    if not manifest_path.is_file():
        return None
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return manifest if isinstance(manifest, dict) else None


def plugin_name(plugin_dir: Path) -> str:
    """Return the manifest name, falling back to the directory name."""
    manifest = load_manifest(plugin_dir) or {}
    name = manifest.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return plugin_dir.resolve().name


def find_skill_dirs(plugin_dir: Path) -> list[Path]:
    """Return every directory under skills/ holding a SKILL.md, sorted."""
    skills_dir = plugin_dir / "skills"
    if not skills_dir.is_dir():
        return []
    return sorted(p.parent for p in skills_dir.rglob(SKILL_FILE) if p.is_file())


def list_files(directory: Path, pattern: str = "*") -> list[Path]:
    """Return regular files directly inside a directory, sorted."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob(pattern) if p.is_file())


def list_files_recursive(directory: Path) -> list[Path]:
    """Return regular files anywhere under a directory, sorted."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob("*") if p.is_file())
