#!/usr/bin/env python3
"""
Skill Scholar Tools - Skill Diff

Compares two versions of a skill: word counts of SKILL.md, sections added
and removed, whether the description changed, and per reference file
NEW / REMOVED / word delta.

The old version is either a second directory or the same skill at a git
ref (SKILL.md and references/* are extracted with git show into a
temporary directory).

Usage:
    uv run python scripts/diff_skill.py old/skill/ new/skill/
    uv run python scripts/diff_skill.py path/to/skill/ --ref HEAD~1
    uv run python scripts/diff_skill.py path/to/skill/ --ref main --json

Exit codes:
    0 - Diff printed
    2 - Usage error, SKILL.md missing, or not a git repository
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path, PurePosixPath
from typing import Literal

from skill_frontmatter import count_file_words, document_name, extract_sections, field_text, read_frontmatter
from skill_layout import list_files
from skill_validation_common import SKILL_FILE, MissingRequiredFile, SkillToolError, status

GIT_TIMEOUT = 30

ChangeKind = Literal["NEW", "REMOVED", "CHANGED"]


class GitExportError(SkillToolError):
    """Raised when a skill cannot be read from a git ref."""


@dataclass
class ReferenceChange:
    """Word count change of one references/*.md file."""

    name: str
    kind: ChangeKind
    old_words: int = 0
    new_words: int = 0

    @property
    def delta(self) -> int:
        return self.new_words - self.old_words


@dataclass
class SkillDiff:
    """Differences between an old and a new version of a skill."""

    name: str
    old_words: int
    new_words: int
    sections_added: list[str] = field(default_factory=list)
    sections_removed: list[str] = field(default_factory=list)
    description_changed: bool = False
    references: list[ReferenceChange] = field(default_factory=list)

    @property
    def word_delta(self) -> int:
        return self.new_words - self.old_words

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["word_delta"] = self.word_delta
        for ref, change in zip(data["references"], self.references):
            ref["delta"] = change.delta
        return data


def signed(delta: int) -> str:
    return f"+{delta}" if delta >= 0 else str(delta)


def read_description(skill_md: Path) -> str:
    """Folded frontmatter description, '' when absent or unparsable."""
    return field_text(read_frontmatter(skill_md), "description")


def read_sections(skill_md: Path) -> set[str]:
    return set(extract_sections(skill_md.read_text(encoding="utf-8", errors="replace")))


def compare_references(old_dir: Path, new_dir: Path) -> list[ReferenceChange]:
    """Compare references/*.md by file name, sorted."""
    old_refs = {p.name: p for p in list_files(old_dir / "references", "*.md")}
    new_refs = {p.name: p for p in list_files(new_dir / "references", "*.md")}

    changes: list[ReferenceChange] = []
    for name in sorted(old_refs.keys() | new_refs.keys()):
        if name not in old_refs:
            changes.append(ReferenceChange(name, "NEW", new_words=count_file_words(new_refs[name])))
        elif name not in new_refs:
            changes.append(ReferenceChange(name, "REMOVED", old_words=count_file_words(old_refs[name])))
        else:
            changes.append(
                ReferenceChange(
                    name,
                    "CHANGED",
                    old_words=count_file_words(old_refs[name]),
                    new_words=count_file_words(new_refs[name]),
                )
            )
    return changes


def compare_skills(old_dir: Path, new_dir: Path) -> SkillDiff:
    """Compare two skill directories.

    Raises:
        MissingRequiredFile: either side has no SKILL.md.
    """
    old_md = old_dir / SKILL_FILE
    new_md = new_dir / SKILL_FILE
    for skill_md in (old_md, new_md):
        if not skill_md.is_file():
            raise MissingRequiredFile(skill_md)

    old_sections = read_sections(old_md)
    new_sections = read_sections(new_md)
    return SkillDiff(
        name=document_name(new_md, new_dir.resolve().name),
        old_words=count_file_words(old_md),
        new_words=count_file_words(new_md),
        sections_added=sorted(new_sections - old_sections),
        sections_removed=sorted(old_sections - new_sections),
        description_changed=read_description(old_md) != read_description(new_md),
        references=compare_references(old_dir, new_dir),
    )


# =============================================================================
# Git export
# =============================================================================


def _git(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, timeout=GIT_TIMEOUT)


def git_toplevel(path: Path) -> Path:
    """Return the work tree root containing path.

    Raises:
        GitExportError: path is not inside a git work tree or git is unavailable.
    """
    try:
        result = _git(["rev-parse", "--show-toplevel"], cwd=path)
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        raise GitExportError(f"git not available: {e}") from e
    if result.returncode != 0:
        raise GitExportError(f"not a git repository: {path}")
    return Path(result.stdout.strip())


def _git_show(git_root: Path, ref: str, rel_path: str) -> str | None:
    result = _git(["show", f"{ref}:{rel_path}"], cwd=git_root)
    return result.stdout if result.returncode == 0 else None


def export_skill_at_ref(skill_dir: Path, ref: str, dest: Path) -> None:
    """Write SKILL.md and references/* of skill_dir as of ref into dest.

    Files absent at the ref are skipped, so a skill that did not exist yet
    leaves dest without SKILL.md.

    Raises:
        GitExportError: skill_dir is not inside a git work tree.
    """
    git_root = git_toplevel(skill_dir)
    rel = PurePosixPath(skill_dir.resolve().relative_to(git_root.resolve()).as_posix())

    content = _git_show(git_root, ref, str(rel / SKILL_FILE))
    if content is not None:
        (dest / SKILL_FILE).write_text(content, encoding="utf-8")

    listing = _git(["ls-tree", "--name-only", ref, f"{rel / 'references'}/"], cwd=git_root)
    ref_files = [line for line in listing.stdout.splitlines() if line] if listing.returncode == 0 else []
    if not ref_files:
        return

    (dest / "references").mkdir(exist_ok=True)
    for ref_file in ref_files:
        content = _git_show(git_root, ref, ref_file)
        if content is not None:
            (dest / "references" / PurePosixPath(ref_file).name).write_text(content, encoding="utf-8")


def diff_against_ref(skill_dir: Path, ref: str) -> SkillDiff:
    """Compare the skill at ref (old) with the working copy (new).

    Raises:
        GitExportError: skill_dir is not inside a git work tree.
        MissingRequiredFile: SKILL.md missing at ref or in the working copy.
    """
    if not skill_dir.is_dir():
        raise MissingRequiredFile(skill_dir / SKILL_FILE)
    with tempfile.TemporaryDirectory(prefix="skill-diff-") as tmp:
        old_dir = Path(tmp)
        export_skill_at_ref(skill_dir, ref, old_dir)
        return compare_skills(old_dir, skill_dir)


# =============================================================================
# Output
# =============================================================================


def format_reference_change(change: ReferenceChange) -> str:
    if change.kind == "NEW":
        return f"NEW: {change.name} ({change.new_words} words)"
    if change.kind == "REMOVED":
        return f"REMOVED: {change.name}"
    return f"{change.name}: {change.old_words} -> {change.new_words} words ({signed(change.delta)})"


def print_diff(diff: SkillDiff) -> None:
    print(f"=== Skill Diff: {diff.name} ===")
    print()
    print("--- SKILL.md ---")
    print(f"SKILL.md: {diff.old_words} -> {diff.new_words} words ({signed(diff.word_delta)})")
    print(f"Sections added: {', '.join(diff.sections_added) or '(none)'}")
    print(f"Sections removed: {', '.join(diff.sections_removed) or '(none)'}")
    print(f"Description changed: {'yes' if diff.description_changed else 'no'}")
    print()
    print("--- References ---")
    if not diff.references:
        print("No reference files in either version.")
    for change in diff.references:
        print(format_reference_change(change))
    print()
    print("=== Diff Complete ===")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Compare two versions of a skill",
        epilog="Give two directories (old, new), or one directory with --ref.",
    )
    parser.add_argument("dirs", nargs="+", type=Path, help="Skill directories: OLD NEW, or DIR with --ref")
    parser.add_argument("--ref", help="Compare DIR against this git ref (ref is old, working copy is new)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    if args.ref is not None and len(args.dirs) != 1:
        parser.error("--ref takes exactly one skill directory")
    if args.ref is None and len(args.dirs) != 2:
        parser.error("two skill directories are required without --ref")

    try:
        if args.ref is not None:
            if not args.json:
                status("INFO", f"comparing: {args.ref} (old) vs current (new)")
            diff = diff_against_ref(args.dirs[0], args.ref)
        else:
            diff = compare_skills(args.dirs[0], args.dirs[1])
    except (MissingRequiredFile, GitExportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(diff.to_dict(), indent=2))
    else:
        print_diff(diff)
    return 0


if __name__ == "__main__":
    sys.exit(main())
