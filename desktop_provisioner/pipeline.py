from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .lib.env import RunContext
from .lib.hwdetect import HardwareFact, probe
from .lib.prompt import ask_yes_no
from .steps import FailurePolicy, PackageInstall, Step, StepResult, StepStatus

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RunOutcome:
    state: RunState = RunState.NOT_STARTED
    results: List[StepResult] = field(default_factory=list)
    facts: List[HardwareFact] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> List[StepResult]:
        return [r for r in self.results if r.status is StepStatus.DEGRADED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "steps": [r.to_dict() for r in self.results],
            "not_run": list(self.pending),
            "hardware": [
                {
                    "name": f.name,
                    "detected": f.detected_value,
                    "expected": f.expected_value,
                    "match": f.match,
                }
                for f in self.facts
            ],
        }


def relabel_for_hardware(steps: Sequence[Step], facts: Sequence[HardwareFact]) -> List[Step]:
    """Downgrade hardware-dependent package groups to best-effort.

    A PackageInstall whose required hardware fact did not match (or is not
    known) is replaced by a non-critical copy. Steps are never removed.
    """

    matched = {f.name: f.match for f in facts}
    out: List[Step] = []
    for step in steps:
        if isinstance(step, PackageInstall) and step.critical and step.requires_hardware:
            missing = [name for name in step.requires_hardware if not matched.get(name, False)]
            if missing:
                logger.warning(
                    "%s: hardware %s not as expected; treating as best-effort",
                    step.label,
                    ", ".join(missing),
                )
                step = replace(step, critical=False)
        out.append(step)
    return out


def _apply_policy(step: Step, error: Exception) -> StepResult:
    policy = step.policy
    detail = str(error).strip() or type(error).__name__
    if policy is FailurePolicy.FATAL:
        logger.error("Step %s failed: %s", step.label, detail)
        return StepResult(step_ref=step.label, status=StepStatus.FATAL, detail=detail)
    if policy is FailurePolicy.DEGRADED:
        logger.warning("Step %s degraded: %s - continuing", step.label, detail)
        return StepResult(step_ref=step.label, status=StepStatus.DEGRADED, detail=detail)
    logger.info("Step %s failed (ignored): %s", step.label, detail)
    return StepResult(step_ref=step.label, status=StepStatus.SUCCESS, detail=f"ignored error: {detail}")


def execute_step(step: Step, ctx: RunContext) -> StepResult:
    """Run one step and convert any failure into a StepResult by policy."""

    if step.confirm and not ask_yes_no(step.confirm, assume_yes=ctx.assume_yes):
        logger.info("Skipping step %s (declined)", step.label)
        return StepResult(step_ref=step.label, status=StepStatus.SUCCESS, detail="skipped by operator")

    logger.info("Running step %s", step.label)
    try:
        return step.run(ctx)
    except Exception as e:
        logger.debug("Step %s raised", step.label, exc_info=True)
        return _apply_policy(step, e)


def run_pipeline(
    steps: Sequence[Step],
    *,
    ctx: RunContext,
    expected_hardware: Optional[Mapping[str, Any]] = None,
    probe_fn: Optional[Callable[..., List[HardwareFact]]] = None,
) -> RunOutcome:
    """Run steps in declared order; stop at the first fatal result."""

    outcome = RunOutcome()
    outcome.facts = (probe_fn or probe)(expected_hardware or {})
    queue = relabel_for_hardware(steps, outcome.facts)

    outcome.state = RunState.RUNNING
    for i, step in enumerate(queue):
        result = execute_step(step, ctx)
        outcome.results.append(result)
        if result.status is StepStatus.FATAL:
            outcome.pending = [s.label for s in queue[i + 1 :]]
            outcome.state = RunState.ABORTED
            logger.error("Aborting run at %s (%d step(s) not run)", step.label, len(outcome.pending))
            return outcome

    outcome.state = RunState.COMPLETED
    return outcome


_MARKS = {
    StepStatus.SUCCESS: "OK",
    StepStatus.DEGRADED: "WARN",
    StepStatus.FATAL: "FATAL",
}


def render_summary(outcome: RunOutcome) -> str:
    lines = [f"Provisioning {outcome.state.value}"]
    for r in outcome.results:
        line = f"  [{_MARKS[r.status]:<5}] {r.step_ref}"
        if r.detail:
            line += f": {r.detail}"
        lines.append(line)
    for label in outcome.pending:
        lines.append(f"  [SKIP ] {label}: not run")
    warnings = len(outcome.degraded)
    ok = sum(1 for r in outcome.results if r.status is StepStatus.SUCCESS)
    lines.append(f"{ok} succeeded, {warnings} with warnings, {len(outcome.pending)} not run")
    return "\n".join(lines)
