#!/usr/bin/env python3
"""
Skill Scholar Tools - Skill Smoke Test

Runs the claude CLI against scenarios derived from a skill and checks that
each reply is substantial and mentions the skill's key terms.

Scenarios come from the quoted trigger phrases of the description
("I want to <trigger>") and the bullets under "## When to Use". Key terms
are the inline code spans and headings of SKILL.md. A scenario passes when
at least 20% of the key terms appear in the reply (case-insensitive) and
the reply is longer than 50 words.

Usage:
    uv run python scripts/smoke_test_skill.py path/to/skill/
    uv run python scripts/smoke_test_skill.py path/to/skill/ --model sonnet --budget 0.50 --verbose

Exit codes:
    0 - All scenarios passed
    1 - At least one scenario failed
    2 - Usage error or SKILL.md not found
"""

from __future__ import annotations

import argparse
import re
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from claude_cli import DEFAULT_ALLOWED_TOOLS, ClaudeRequest, run_claude
from skill_frontmatter import (
    count_words,
    extract_bullets,
    extract_inline_code,
    extract_section,
    extract_sections,
    extract_trigger_phrases,
    field_text,
    parse_frontmatter,
    read_skill_md,
)
from skill_layout import find_plugin_dir
from skill_validation_common import MalformedFrontmatter, MissingRequiredFile, status

DEFAULT_MODEL = "haiku"
DEFAULT_BUDGET = "0.25"

MIN_SCENARIOS = 3
MAX_CODE_TERMS = 20
MAX_HEADING_TERMS = 10

# Pass thresholds
MIN_TERM_MATCH_PCT = 20
MIN_RESPONSE_WORDS = 50

RESPONSE_PREVIEW_LINES = 20

Domain = Literal["node", "python", "generic"]

RE_NODE_DOMAIN = re.compile(r"node|javascript|typescript|npm|react|vue|svelte", re.IGNORECASE)
RE_PYTHON_DOMAIN = re.compile(r"python|django|flask|pip", re.IGNORECASE)


@dataclass
class SkillProfile:
    """What the smoke test needs to know about a skill."""

    name: str
    description: str
    triggers: list[str] = field(default_factory=list)
    when_to_use: list[str] = field(default_factory=list)
    key_terms: list[str] = field(default_factory=list)


@dataclass
class ScenarioResult:
    """Outcome of one scenario run."""

    scenario: str
    passed: bool
    response_words: int = 0
    matched_terms: int = 0
    total_terms: int = 0
    response: str | None = None

    @property
    def match_pct(self) -> int:
        if self.total_terms == 0:
            return 100
        return (self.matched_terms * 100) // self.total_terms


def extract_key_terms(content: str) -> list[str]:
    """Inline code spans (unique, sorted) followed by heading titles."""
    code_terms = extract_inline_code(content)[:MAX_CODE_TERMS]
    headings = extract_sections(content)[:MAX_HEADING_TERMS]
    return code_terms + headings


def load_skill_profile(skill_path: Path) -> SkillProfile:
    """Read SKILL.md and collect name, description, triggers and key terms.

    A skill without usable frontmatter still gets a profile named after its
    directory; the scenarios then fall back to generic prompts.

    Raises:
        MissingRequiredFile: SKILL.md does not exist.
    """
    content = read_skill_md(skill_path)
    try:
        frontmatter, body, _ = parse_frontmatter(content)
    except MalformedFrontmatter:
        frontmatter, body = {}, content

    description = field_text(frontmatter, "description")
    return SkillProfile(
        name=field_text(frontmatter, "name") or skill_path.resolve().name,
        description=description,
        triggers=extract_trigger_phrases(description),
        when_to_use=extract_bullets(extract_section(body, "When to Use")),
        key_terms=extract_key_terms(content),
    )


def build_scenarios(profile: SkillProfile) -> list[str]:
    """Turn triggers and When-to-Use bullets into prompts, padded with generic ones."""
    scenarios = [f"I want to {trigger}" for trigger in profile.triggers]
    scenarios.extend(profile.when_to_use)
    if len(scenarios) < MIN_SCENARIOS:
        scenarios.extend(
            [
                f"Help me with {profile.name}",
                f"How do I use {profile.name} effectively?",
                f"Show me best practices for {profile.name}",
            ]
        )
    return scenarios


def detect_domain(profile: SkillProfile) -> Domain:
    text = f"{profile.name} {profile.description}"
    if RE_NODE_DOMAIN.search(text):
        return "node"
    if RE_PYTHON_DOMAIN.search(text):
        return "python"
    return "generic"


def scaffold_project(project_dir: Path, domain: Domain) -> None:
    """Write a minimal project so the CLI has something to work in."""
    if domain == "node":
        (project_dir / "package.json").write_text(
            '{"name":"test-project","version":"1.0.0","description":"test"}\n', encoding="utf-8"
        )
        (project_dir / "index.js").write_text("console.log('hello');\n", encoding="utf-8")
    elif domain == "python":
        (project_dir / "main.py").write_text("print('hello')\n", encoding="utf-8")
        (project_dir / "requirements.txt").touch()
    else:
        (project_dir / "README.md").write_text("# Test Project\n", encoding="utf-8")


def score_response(scenario: str, response: str, key_terms: list[str]) -> ScenarioResult:
    """Count key-term matches and words in a reply and decide pass/fail."""
    lowered = response.lower()
    matched = sum(1 for term in key_terms if term.lower() in lowered)
    result = ScenarioResult(
        scenario=scenario,
        passed=False,
        response_words=count_words(response),
        matched_terms=matched,
        total_terms=len(key_terms),
        response=response,
    )
    result.passed = result.match_pct >= MIN_TERM_MATCH_PCT and result.response_words > MIN_RESPONSE_WORDS
    return result


def run_scenario(
    scenario: str,
    profile: SkillProfile,
    *,
    model: str,
    budget: str,
    plugin_dir: Path | None,
) -> ScenarioResult:
    """Run one scenario in a throwaway project directory."""
    with tempfile.TemporaryDirectory(prefix="skill-test-") as tmp:
        project_dir = Path(tmp)
        scaffold_project(project_dir, detect_domain(profile))
        response = run_claude(
            ClaudeRequest(
                prompt=scenario,
                model=model,
                budget=budget,
                cwd=project_dir,
                plugin_dir=plugin_dir,
                allowed_tools=DEFAULT_ALLOWED_TOOLS,
            )
        )

    if response is None:
        return ScenarioResult(scenario=scenario, passed=False, total_terms=len(profile.key_terms))
    return score_response(scenario, response, profile.key_terms)


def print_result(result: ScenarioResult, verbose: bool = False) -> None:
    if result.response is None:
        status("ERROR", "FAIL — claude command failed")
        return

    detail = (
        f"{result.response_words} words, {result.matched_terms}/{result.total_terms} terms matched "
        f"({result.match_pct}%)"
    )
    if result.passed:
        status("PASSED", f"PASS — {detail}")
    else:
        status("ERROR", f"FAIL — {detail}")

    if verbose:
        print("--- Response Preview ---")
        print("\n".join(result.response.splitlines()[:RESPONSE_PREVIEW_LINES]))
        print("--- End Preview ---")


def smoke_test(
    skill_path: Path,
    model: str = DEFAULT_MODEL,
    budget: str = DEFAULT_BUDGET,
    verbose: bool = False,
) -> list[ScenarioResult]:
    """Run every scenario of a skill, printing progress as it goes.

    Raises:
        MissingRequiredFile: SKILL.md does not exist.
    """
    print(f"=== Skill Smoke Test: {skill_path} ===")
    print()

    print("--- Parsing Skill Metadata ---")
    profile = load_skill_profile(skill_path)
    status("INFO", f"skill name: {profile.name}")
    status("INFO", f"description: {profile.description[:100]}...")
    status("INFO", f"found {len(profile.triggers)} trigger phrase(s)")
    status("INFO", f"found {len(profile.when_to_use)} when-to-use condition(s)")

    print()
    print("--- Locating Plugin ---")
    plugin_dir = find_plugin_dir(skill_path)
    if plugin_dir is not None:
        status("PASSED", f"plugin directory: {plugin_dir}")
    else:
        status("WARNING", "could not locate plugin directory, running without --plugin-dir")

    print()
    print("--- Generating Scenarios ---")
    scenarios = build_scenarios(profile)
    status("INFO", f"generated {len(scenarios)} test scenario(s)")
    status("INFO", f"extracted {len(profile.key_terms)} key terms for pattern matching")

    print()
    print("--- Running Scenarios ---")
    results: list[ScenarioResult] = []
    for num, scenario in enumerate(scenarios, start=1):
        print()
        status("INFO", f"scenario {num}/{len(scenarios)}: {scenario[:80]}")
        result = run_scenario(scenario, profile, model=model, budget=budget, plugin_dir=plugin_dir)
        print_result(result, verbose)
        results.append(result)

    return results


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Smoke-test a skill with the claude CLI")
    parser.add_argument("skill_path", help="Path to the skill directory")
    parser.add_argument("--model", default=DEFAULT_MODEL, help=f"Model for scenario runs (default: {DEFAULT_MODEL})")
    parser.add_argument("--budget", default=DEFAULT_BUDGET, help=f"USD cap per scenario (default: {DEFAULT_BUDGET})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show a preview of each reply")
    args = parser.parse_args()

    skill_path = Path(args.skill_path)
    try:
        results = smoke_test(skill_path, model=args.model, budget=args.budget, verbose=args.verbose)
    except MissingRequiredFile as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    passed = sum(1 for r in results if r.passed)
    failed = len(results) - passed
    print()
    print(f"=== Test Summary: {passed}/{len(results)} passed, {failed}/{len(results)} failed ===")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
