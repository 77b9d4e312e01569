#!/usr/bin/env python3
"""
Skill Scholar Tools - A/B Skill Evaluation

Measures whether a skill improves answers. Each trial sends the same prompt
to the claude CLI twice (control without the plugin, treatment with it),
then a judge model scores both replies on five dimensions. Averages, deltas
and an impact band per dimension are written to report.json.

Phases:
    1. Extract skill metadata (metadata.json)
    2. Generate evaluation prompts (fallback prompts on failure)
    3. Run control vs treatment per selected prompt
    4. Judge each pair
    5. Aggregate into report.json

Usage:
    uv run python scripts/evaluate_skill.py path/to/skill/
    uv run python scripts/evaluate_skill.py path/to/skill/ --trials 5 --budget 4.00 --judge-model opus

Exit codes:
    0 - Report written
    1 - No valid trial results to aggregate
    2 - Usage error, SKILL.md not found, or plugin directory not found
"""

from __future__ import annotations

import argparse
import json
import random
import re
import sys
import tempfile
from dataclasses import asdict, dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from claude_cli import DEFAULT_ALLOWED_TOOLS, ClaudeRequest, run_claude
from skill_frontmatter import extract_section, field_text, parse_frontmatter, read_skill_md
from skill_layout import find_plugin_dir
from skill_validation_common import MalformedFrontmatter, MissingRequiredFile, render_table, status

DEFAULT_TRIALS = 3
DEFAULT_MODEL = "haiku"
DEFAULT_JUDGE_MODEL = "sonnet"
DEFAULT_BUDGET = "2.00"

# Control, treatment and judge run per trial
RUNS_PER_TRIAL = 3

DIMENSIONS = ["accuracy", "completeness", "best_practices", "error_avoidance", "specificity"]

# (lower bound, inclusive?, band, interpretation), checked top to bottom
IMPACT_BANDS = [
    (2.0, True, "STRONG+", "STRONG POSITIVE: skill significantly improves responses"),
    (0.5, True, "MODERATE+", "MODERATE POSITIVE: skill noticeably improves responses"),
    (-0.5, False, "NEUTRAL", "NEUTRAL: skill has minimal measurable impact"),
    (-2.0, False, "MODERATE-", "MODERATE NEGATIVE: skill may be hurting responses"),
]
LOWEST_BAND = ("STRONG-", "STRONG NEGATIVE: skill is degrading response quality")

CONTROL_FAILED = "ERROR: control failed"
TREATMENT_FAILED = "ERROR: treatment failed"

RE_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

GEN_PROMPT_TEMPLATE = """Given this skill metadata, generate exactly {count} realistic evaluation prompts that a developer would ask. Each prompt should test whether the skill improves Claude's response. Output one prompt per line, no numbering, no quotes.

Skill: {name}
Description: {description}
When to use: {when_to_use}"""

JUDGE_PROMPT_TEMPLATE = """You are evaluating two AI responses to the same prompt. Score each on 5 dimensions (0-10 scale).

PROMPT: {prompt}

RESPONSE A (control):
{control}

RESPONSE B (treatment):
{treatment}

Score each response on these dimensions. Output ONLY valid JSON with this exact structure:
{{
  "control": {{"accuracy": N, "completeness": N, "best_practices": N, "error_avoidance": N, "specificity": N}},
  "treatment": {{"accuracy": N, "completeness": N, "best_practices": N, "error_avoidance": N, "specificity": N}}
}}"""


class EvaluationError(Exception):
    """Raised when an evaluation cannot start."""


class NoValidTrials(EvaluationError):
    """Raised when no trial produced usable judge scores."""


@dataclass
class SkillMetadata:
    """Skill content handed to prompt generation, saved as metadata.json."""

    name: str
    description: str
    when_to_use: str
    common_mistakes: str
    core_patterns: str


@dataclass
class Trial:
    """One prompt and its control/treatment replies."""

    number: int
    prompt: str
    control: str
    treatment: str


@dataclass
class TrialScores:
    """Judge scores of one trial, per side and dimension."""

    control: dict[str, float]
    treatment: dict[str, float]


# =============================================================================
# Budget and bands
# =============================================================================


def per_run_budget(budget: str, trials: int) -> str:
    """Split the total budget over every run, truncated to cents.

    Raises:
        EvaluationError: budget is not a positive finite number, is too large
            to split into cents, or trials is not positive.
    """
    if trials < 1:
        raise EvaluationError(f"trials must be at least 1, got {trials}")
    try:
        total = Decimal(budget)
    except InvalidOperation as e:
        raise EvaluationError(f"invalid budget: {budget!r}") from e
    if not total.is_finite() or total <= 0:
        raise EvaluationError(f"budget must be a positive amount, got {budget!r}")
    try:
        share = (total / (trials * RUNS_PER_TRIAL)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
    except InvalidOperation as e:
        raise EvaluationError(f"budget too large: {budget!r}") from e
    return f"{share:.2f}"


def _band(delta: float) -> tuple[str, str]:
    for bound, inclusive, band, interpretation in IMPACT_BANDS:
        if (delta >= bound) if inclusive else (delta > bound):
            return band, interpretation
    return LOWEST_BAND


def impact_band(delta: float) -> str:
    """Classify a treatment-minus-control delta (STRONG+ ... STRONG-)."""
    return _band(delta)[0]


def interpret(delta: float) -> str:
    """One-line interpretation of the overall delta."""
    return _band(delta)[1]


# =============================================================================
# Phase 1: metadata
# =============================================================================


def extract_metadata(skill_path: Path) -> SkillMetadata:
    """Collect the skill fields used to generate evaluation prompts.

    Raises:
        MissingRequiredFile: SKILL.md does not exist.
    """
    content = read_skill_md(skill_path)
    try:
        frontmatter, body, _ = parse_frontmatter(content)
    except MalformedFrontmatter:
        frontmatter, body = {}, content

    return SkillMetadata(
        name=field_text(frontmatter, "name") or skill_path.resolve().name,
        description=field_text(frontmatter, "description"),
        when_to_use=extract_section(body, "When to Use"),
        common_mistakes=extract_section(body, "Common Mistakes"),
        core_patterns=extract_section(body, "Core Patterns"),
    )


# =============================================================================
# Phase 2: prompts
# =============================================================================


def fallback_prompts(name: str) -> list[str]:
    return [
        f"How do I use {name} effectively?",
        f"Show me best practices for {name}",
        f"Help me implement a project using {name}",
    ]


def parse_prompt_lines(raw: str) -> list[str]:
    """One prompt per non-blank line, surrounding whitespace removed."""
    return [line.strip() for line in raw.splitlines() if line.strip()]


def generate_prompts(metadata: SkillMetadata, trials: int, model: str, run_budget: str) -> list[str]:
    """Ask the CLI for 2 x trials prompts, falling back to generic ones."""
    prompt = GEN_PROMPT_TEMPLATE.format(
        count=trials * 2,
        name=metadata.name,
        description=metadata.description,
        when_to_use=metadata.when_to_use,
    )
    reply = run_claude(ClaudeRequest(prompt=prompt, model=model, budget=run_budget))
    prompts = parse_prompt_lines(reply or "")
    if not prompts:
        status("WARNING", "prompt generation failed, using fallback prompts")
        return fallback_prompts(metadata.name)
    return prompts


def select_prompts(prompts: list[str], trials: int, rng: random.Random) -> list[str]:
    """Pick trials prompts at random, cycling through a shuffled list when there are too few."""
    if not prompts:
        return []
    if len(prompts) >= trials:
        return rng.sample(prompts, trials)
    shuffled = rng.sample(prompts, len(prompts))
    return [shuffled[i % len(shuffled)] for i in range(trials)]


# =============================================================================
# Phase 3: control vs treatment
# =============================================================================


def scaffold_trial_project(project_dir: Path) -> None:
    (project_dir / "README.md").write_text("# Test Project\n", encoding="utf-8")
    (project_dir / "package.json").write_text('{"name":"test","version":"1.0.0"}\n', encoding="utf-8")


def _run_side(prompt: str, model: str, run_budget: str, plugin_dir: Path | None) -> str | None:
    with tempfile.TemporaryDirectory(prefix="skill-eval-") as tmp:
        project_dir = Path(tmp)
        scaffold_trial_project(project_dir)
        return run_claude(
            ClaudeRequest(
                prompt=prompt,
                model=model,
                budget=run_budget,
                cwd=project_dir,
                plugin_dir=plugin_dir,
                allowed_tools=DEFAULT_ALLOWED_TOOLS,
            )
        )


def run_trial(number: int, prompt: str, model: str, run_budget: str, plugin_dir: Path) -> Trial:
    """Run the control (no plugin) and treatment (plugin loaded) sides of one prompt."""
    status("INFO", "  running control (no skill)...")
    control = _run_side(prompt, model, run_budget, plugin_dir=None)
    status("INFO", "  running treatment (with skill)...")
    treatment = _run_side(prompt, model, run_budget, plugin_dir=plugin_dir)
    return Trial(
        number=number,
        prompt=prompt,
        control=control if control is not None else CONTROL_FAILED,
        treatment=treatment if treatment is not None else TREATMENT_FAILED,
    )


def save_trial(trial: Trial, results_dir: Path) -> None:
    stem = f"trial-{trial.number}"
    (results_dir / f"{stem}-prompt.txt").write_text(trial.prompt + "\n", encoding="utf-8")
    (results_dir / f"{stem}-control.txt").write_text(trial.control + "\n", encoding="utf-8")
    (results_dir / f"{stem}-treatment.txt").write_text(trial.treatment + "\n", encoding="utf-8")


# =============================================================================
# Phase 4: judging
# =============================================================================


def extract_judge_json(reply: str) -> dict[str, Any]:
    """Pull the JSON object out of a judge reply, tolerating markdown fences.

    Returns an empty dict when no object can be decoded.
    """
    match = RE_JSON_OBJECT.search(reply)
    if not match:
        return {}
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def parse_scores(data: dict[str, Any]) -> TrialScores | None:
    """Validate judge output; missing dimensions score 0, unusable output gives None."""
    control = data.get("control")
    treatment = data.get("treatment")
    if not isinstance(control, dict) or not isinstance(treatment, dict):
        return None
    try:
        return TrialScores(
            control={d: float(control.get(d, 0)) for d in DIMENSIONS},
            treatment={d: float(treatment.get(d, 0)) for d in DIMENSIONS},
        )
    except (TypeError, ValueError):
        return None


def judge_trial(trial: Trial, judge_model: str, run_budget: str) -> dict[str, Any]:
    prompt = JUDGE_PROMPT_TEMPLATE.format(prompt=trial.prompt, control=trial.control, treatment=trial.treatment)
    reply = run_claude(ClaudeRequest(prompt=prompt, model=judge_model, budget=run_budget))
    return extract_judge_json(reply or "")


# =============================================================================
# Phase 5: aggregation
# =============================================================================


def aggregate_scores(scores: list[TrialScores]) -> dict[str, Any]:
    """Average the trials per dimension and overall.

    Raises:
        NoValidTrials: no trial produced usable scores.
    """
    if not scores:
        raise NoValidTrials("No valid trial results to aggregate")

    count = len(scores)
    report: dict[str, Any] = {"trials": count, "dimensions": {}, "overall": {}}
    overall_control = 0.0
    overall_treatment = 0.0

    for d in DIMENSIONS:
        c_avg = sum(s.control[d] for s in scores) / count
        t_avg = sum(s.treatment[d] for s in scores) / count
        delta = t_avg - c_avg
        overall_control += c_avg
        overall_treatment += t_avg
        report["dimensions"][d] = {
            "control": round(c_avg, 2),
            "treatment": round(t_avg, 2),
            "delta": round(delta, 2),
            "impact": impact_band(delta),
        }

    overall_c = overall_control / len(DIMENSIONS)
    overall_t = overall_treatment / len(DIMENSIONS)
    overall_delta = overall_t - overall_c
    report["overall"] = {
        "control": round(overall_c, 2),
        "treatment": round(overall_t, 2),
        "delta": round(overall_delta, 2),
        "interpretation": interpret(overall_delta),
    }
    return report


def print_aggregate(report: dict[str, Any]) -> None:
    rows = [
        [d, f"{v['control']:.1f}", f"{v['treatment']:.1f}", f"{v['delta']:+.1f}", v["impact"]]
        for d, v in report["dimensions"].items()
    ]
    overall = report["overall"]
    rows.append(["OVERALL", f"{overall['control']:.1f}", f"{overall['treatment']:.1f}", f"{overall['delta']:+.1f}", ""])

    print()
    for line in render_table(["Dimension", "Control", "Treatment", "Delta", "Impact"], rows, {1, 2, 3}):
        print(line)
    print(f"\nInterpretation: {overall['interpretation']}")


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_skill(
    skill_path: Path,
    *,
    trials: int = DEFAULT_TRIALS,
    model: str = DEFAULT_MODEL,
    judge_model: str = DEFAULT_JUDGE_MODEL,
    budget: str = DEFAULT_BUDGET,
    output_dir: Path | None = None,
    rng: random.Random | None = None,
) -> tuple[Path, dict[str, Any]]:
    """Run all five phases and write report.json.

    Returns:
        Tuple of (evaluation directory, report dict)

    Raises:
        MissingRequiredFile: SKILL.md does not exist.
        EvaluationError: bad budget or trials, or no plugin directory.
        NoValidTrials: no trial produced usable scores.
    """
    rng = rng or random.Random()
    run_budget = per_run_budget(budget, trials)

    print("=== Skill A/B Evaluation ===")
    print(f"  skill: {skill_path}")
    print(f"  model: {model} | judge: {judge_model}")
    print(f"  trials: {trials} | budget: ${budget} (per-run: ${run_budget})")
    print()

    # Fail on a missing SKILL.md before the plugin lookup
    metadata = extract_metadata(skill_path)

    plugin_dir = find_plugin_dir(skill_path)
    if plugin_dir is None:
        raise EvaluationError("could not locate plugin directory")
    status("PASSED", f"plugin directory: {plugin_dir}")

    eval_dir = output_dir or Path(tempfile.mkdtemp(prefix="skill-eval-"))
    eval_dir.mkdir(parents=True, exist_ok=True)
    results_dir = eval_dir / "results"
    results_dir.mkdir(exist_ok=True)

    print("\n--- Phase 1: Extract Skill Metadata ---")
    metadata_path = eval_dir / "metadata.json"
    metadata_path.write_text(json.dumps(asdict(metadata), indent=2), encoding="utf-8")
    status("PASSED", f"metadata extracted to {metadata_path}")

    print("\n--- Phase 2: Generate Evaluation Prompts ---")
    selected = select_prompts(generate_prompts(metadata, trials, model, run_budget), trials, rng)
    status("INFO", f"selected {len(selected)} evaluation prompts")

    print("\n--- Phase 3: Running A/B Trials ---")
    runs: list[Trial] = []
    for number, prompt in enumerate(selected, start=1):
        print()
        status("INFO", f"trial {number}/{trials}: {prompt[:80]}")
        trial = run_trial(number, prompt, model, run_budget, plugin_dir)
        save_trial(trial, results_dir)
        status("PASSED", f"  trial {number} responses saved")
        runs.append(trial)

    print("\n--- Phase 4: Judging Responses ---")
    valid: list[TrialScores] = []
    for trial in runs:
        status("INFO", f"judging trial {trial.number}...")
        data = judge_trial(trial, judge_model, run_budget)
        (results_dir / f"trial-{trial.number}-scores.json").write_text(json.dumps(data), encoding="utf-8")
        scores = parse_scores(data)
        if scores is None:
            status("WARNING", f"trial {trial.number} has no usable scores")
            continue
        valid.append(scores)
        status("PASSED", f"trial {trial.number} scored")

    print("\n--- Phase 5: Aggregation ---")
    report = aggregate_scores(valid)
    print_aggregate(report)

    report_path = eval_dir / "report.json"
    report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"\nMachine-readable report: {report_path}")
    return eval_dir, report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="A/B evaluation of a skill with vs without it loaded")
    parser.add_argument("skill_path", help="Path to the skill directory")
    parser.add_argument("--trials", type=int, default=DEFAULT_TRIALS, help=f"Number of trials (default: {DEFAULT_TRIALS})")
    parser.add_argument("--model", default=DEFAULT_MODEL, help=f"Model under test (default: {DEFAULT_MODEL})")
    parser.add_argument(
        "--judge-model", default=DEFAULT_JUDGE_MODEL, help=f"Model scoring the replies (default: {DEFAULT_JUDGE_MODEL})"
    )
    parser.add_argument("--budget", default=DEFAULT_BUDGET, help=f"Total USD budget (default: {DEFAULT_BUDGET})")
    parser.add_argument("--output-dir", type=Path, help="Where to write results (default: a new temp directory)")
    parser.add_argument("--seed", type=int, help="Seed for prompt selection")
    args = parser.parse_args()

    skill_path = Path(args.skill_path)
    try:
        eval_dir, _ = evaluate_skill(
            skill_path,
            trials=args.trials,
            model=args.model,
            judge_model=args.judge_model,
            budget=args.budget,
            output_dir=args.output_dir,
            rng=random.Random(args.seed),
        )
    except MissingRequiredFile as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except NoValidTrials as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except EvaluationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print("\n=== Evaluation Complete ===")
    print(f"Results directory: {eval_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
