#!/usr/bin/env python3
"""
Skill Scholar Tools - Host CLI Runner

Thin wrapper around the `claude` command-line client used by the smoke
test, the A/B evaluation, and the reviewer's --deep mode. Every call is
one non-interactive `claude -p` run; failures (missing binary, non-zero
exit, timeout) come back as None so callers can fall back.

Environment:
    SKILL_SCHOLAR_CLAUDE_BIN  Path or name of the CLI binary (default: claude)
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

CLAUDE_BIN_ENV = "SKILL_SCHOLAR_CLAUDE_BIN"
DEFAULT_BINARY = "claude"

# Tools granted to scenario and trial runs
DEFAULT_ALLOWED_TOOLS = ("Read", "Write", "Edit", "Bash", "Glob", "Grep")

# Seconds before a single run is abandoned
DEFAULT_TIMEOUT = 600


@dataclass(frozen=True)
class ClaudeRequest:
    # Prompt text passed with -p
    prompt: str
    model: str
    # Spend cap in USD, formatted as given (e.g. "0.25")
    budget: str
    # Working directory of the run (a scratch project)
    cwd: Path | None = None
    # Plugin loaded into the run (treatment side of an A/B trial)
    plugin_dir: Path | None = None
    allowed_tools: tuple[str, ...] = ()
    # Non-interactive runs print and skip permission prompts
    unattended: bool = True


def which(cmd: str) -> str | None:
    return shutil.which(cmd)


def resolve_claude_binary() -> str | None:
    """Return the CLI executable path, honouring the env override."""
    return which(os.environ.get(CLAUDE_BIN_ENV, DEFAULT_BINARY))


def have_claude() -> bool:
    return resolve_claude_binary() is not None


def build_argv(binary: str, request: ClaudeRequest) -> list[str]:
    """Build the argv for one run."""
    argv = [binary, "-p", request.prompt, "--model", request.model, "--max-budget-usd", request.budget]
    if request.unattended:
        argv += ["--print", "--dangerously-skip-permissions"]
    if request.allowed_tools:
        argv += ["--allowedTools", ",".join(request.allowed_tools)]
    if request.plugin_dir is not None:
        argv += ["--plugin-dir", str(request.plugin_dir)]
    return argv


def run_claude(request: ClaudeRequest, timeout: int = DEFAULT_TIMEOUT) -> str | None:
    """Run the CLI once and return its stdout, or None on any failure."""
    binary = resolve_claude_binary()
    if binary is None:
        return None

    try:
        result = subprocess.run(
            build_argv(binary, request),
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(request.cwd) if request.cwd is not None else None,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None

    if result.returncode != 0:
        return None
    return result.stdout
