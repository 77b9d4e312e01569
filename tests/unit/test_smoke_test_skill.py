#!/usr/bin/env python3
"""Tests for smoke_test_skill.py - scenario generation and reply scoring."""

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable

import pytest
import smoke_test_skill
from conftest import write_fake_claude, write_plugin, write_skill_md
from smoke_test_skill import (
    SkillProfile,
    build_scenarios,
    detect_domain,
    extract_key_terms,
    load_skill_profile,
    run_scenario,
    scaffold_project,
    score_response,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPT_PATH = PROJECT_ROOT / "scripts" / "smoke_test_skill.py"

GOOD_REPLY = (
    "Start with validate_skill.py to check the Overview and the When to Use section, "
    "then run review_skill.py for the Quick Reference and Common Mistakes. "
    + "More detail follows here. " * 15
)


def run_smoke(skill_dir: Path, claude_bin: str) -> subprocess.CompletedProcess[str]:
    """Run smoke_test_skill.py against a skill with the given CLI binary."""
    env = {**os.environ, "SKILL_SCHOLAR_CLAUDE_BIN": claude_bin}
    cmd = [sys.executable, str(SCRIPT_PATH), str(skill_dir)]
    return subprocess.run(cmd, capture_output=True, text=True, timeout=60, env=env)


class TestProfile:
    """Tests for loading the skill profile."""

    def test_load_profile(self, make_skill: Callable[..., Path]) -> None:
        """Name, triggers and When to Use bullets are loaded."""
        profile = load_skill_profile(make_skill())
        assert profile.name == "sample-skill"
        assert profile.triggers == ["parse skill frontmatter", "validate a skill directory"]
        assert profile.when_to_use == [
            "Validating a new skill before release",
            "Reviewing frontmatter after an edit",
        ]

    def test_profile_without_frontmatter_uses_directory_name(self, make_skill: Callable[..., Path]) -> None:
        """Without frontmatter the directory name is used."""
        profile = load_skill_profile(make_skill("bare-skill", frontmatter=False))
        assert profile.name == "bare-skill"
        assert profile.triggers == []

    def test_key_terms_code_spans_then_headings(self) -> None:
        """Key terms are code spans first, then headings."""
        content = "## Setup\n\nRun `b` then `a` and `b`.\n\n### Notes\n"
        assert extract_key_terms(content) == ["a", "b", "Setup", "Notes"]

    def test_key_terms_are_capped(self) -> None:
        """Code spans and headings are capped separately."""
        spans = " ".join(f"`t{i:02d}`" for i in range(30))
        headings = "\n".join(f"## H{i}" for i in range(15))
        terms = extract_key_terms(f"{spans}\n{headings}\n")
        assert len(terms) == 30
        assert terms[19] == "t19"
        assert terms[20:] == [f"H{i}" for i in range(10)]


class TestScenarios:
    """Tests for building test scenarios."""

    def test_triggers_and_bullets(self) -> None:
        """Triggers and When to Use bullets become scenarios."""
        profile = SkillProfile(name="x", description="", triggers=["lint code"], when_to_use=["A", "B"])
        assert build_scenarios(profile) == ["I want to lint code", "A", "B"]

    def test_padded_with_generic_prompts_when_short(self) -> None:
        """Too few scenarios are padded with generic prompts."""
        profile = SkillProfile(name="yaml-helper", description="", triggers=["parse yaml"])
        assert build_scenarios(profile) == [
            "I want to parse yaml",
            "Help me with yaml-helper",
            "How do I use yaml-helper effectively?",
            "Show me best practices for yaml-helper",
        ]


class TestDomain:
    """Tests for domain detection and project scaffolding."""

    @pytest.mark.parametrize(
        ("description", "domain"),
        [("Use when writing React hooks", "node"), ("Use when packaging Django apps", "python"), ("Use when", "generic")],
    )
    def test_detect_domain(self, description: str, domain: str) -> None:
        """The description decides the project domain."""
        assert detect_domain(SkillProfile(name="s", description=description)) == domain

    def test_scaffold_node_project(self, tmp_path: Path) -> None:
        """A node project gets package.json and index.js."""
        scaffold_project(tmp_path, "node")
        assert (tmp_path / "package.json").is_file()
        assert (tmp_path / "index.js").is_file()

    def test_scaffold_python_project(self, tmp_path: Path) -> None:
        """A python project gets main.py and requirements.txt."""
        scaffold_project(tmp_path, "python")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["main.py", "requirements.txt"]

    def test_scaffold_generic_project(self, tmp_path: Path) -> None:
        """A generic project gets a README."""
        scaffold_project(tmp_path, "generic")
        assert (tmp_path / "README.md").read_text(encoding="utf-8") == "# Test Project\n"


class TestScoring:
    """Tests for scoring CLI replies."""

    TERMS = ["alpha", "beta", "gamma", "delta", "epsilon"]

    def test_pass_needs_term_match_and_length(self) -> None:
        """A reply passes with enough matched terms and words."""
        reply = "Alpha is used here. " + "word " * 60
        result = score_response("s", reply, self.TERMS)
        assert result.matched_terms == 1
        assert result.match_pct == 20
        assert result.passed

    def test_short_reply_fails(self) -> None:
        """A short reply fails even with matches."""
        result = score_response("s", "alpha beta gamma", self.TERMS)
        assert not result.passed

    def test_low_match_fails(self) -> None:
        """A reply matching no terms fails."""
        result = score_response("s", "nothing relevant " * 40, self.TERMS)
        assert result.match_pct == 0
        assert not result.passed

    def test_no_terms_counts_as_full_match(self) -> None:
        """A skill without key terms only needs a long reply."""
        result = score_response("s", "word " * 60, [])
        assert result.match_pct == 100
        assert result.passed


class TestRunScenario:
    """Tests for running one scenario through the CLI."""

    def test_request_carries_model_budget_and_plugin(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The request carries options and runs in a scaffolded project."""
        seen = {}

        def fake_run(request, timeout=600):  # type: ignore[no-untyped-def]
            seen["request"] = request
            seen["files"] = sorted(p.name for p in request.cwd.iterdir())
            return GOOD_REPLY

        monkeypatch.setattr(smoke_test_skill, "run_claude", fake_run)
        profile = SkillProfile(name="py-skill", description="python tooling", key_terms=["Overview"])

        result = run_scenario("Help", profile, model="sonnet", budget="0.10", plugin_dir=tmp_path)

        assert result.passed
        request = seen["request"]
        assert (request.model, request.budget, request.plugin_dir) == ("sonnet", "0.10", tmp_path)
        assert "Bash" in request.allowed_tools
        assert seen["files"] == ["main.py", "requirements.txt"]
        assert not request.cwd.exists()

    def test_failed_cli_is_failed_scenario(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A failed CLI run fails the scenario."""
        monkeypatch.setattr(smoke_test_skill, "run_claude", lambda request, timeout=600: None)
        profile = SkillProfile(name="s", description="")
        result = run_scenario("Help", profile, model="haiku", budget="0.25", plugin_dir=None)
        assert not result.passed
        assert result.response is None


class TestCli:
    """Tests for the command-line interface."""

    def test_all_scenarios_pass(self, tmp_path: Path) -> None:
        """Passing scenarios exit with code 0."""
        plugin = write_plugin(tmp_path / "plugin")
        skill_dir = plugin / "skills" / "sample-skill"
        write_skill_md(skill_dir)
        fake = write_fake_claude(tmp_path / "fake-claude", GOOD_REPLY)

        result = run_smoke(skill_dir, str(fake))

        assert result.returncode == 0, result.stdout
        assert "plugin directory:" in result.stdout
        assert "=== Test Summary: 4/4 passed, 0/4 failed ===" in result.stdout

    def test_failing_cli_exits_one(self, make_skill: Callable[..., Path], tmp_path: Path) -> None:
        """A failing CLI exits with code 1."""
        fake = write_fake_claude(tmp_path / "fake-claude", "", exit_code=1)
        result = run_smoke(make_skill(), str(fake))
        assert result.returncode == 1
        assert "claude command failed" in result.stdout

    def test_missing_skill_md_exits_two(self, tmp_path: Path) -> None:
        """A missing SKILL.md exits with code 2."""
        result = run_smoke(tmp_path, "claude")
        assert result.returncode == 2
        assert "SKILL.md not found" in result.stderr
