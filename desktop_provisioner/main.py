from __future__ import annotations

import argparse
import logging
from typing import Optional

from .lib.env import resolve_run_context
from .lib.manifests import resolve_plan_path
from .lib.sudo_keepalive import start_sudo_keepalive
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import RunOutcome, RunState, render_summary, run_pipeline
from .plan_config import build_steps, load_plan_config
from .preconditions import PreconditionError, check_os, check_privilege
from .report_store import save_report

logger = logging.getLogger(__name__)

DEFAULT_PLAN = "gnome-desktop"

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_ABORTED = 2


def run(
    *,
    plan: str = DEFAULT_PLAN,
    log_path: str = DEFAULT_LOG_PATH,
    report_path: Optional[str] = None,
    dry_run: bool = False,
    assume_yes: bool = False,
) -> RunOutcome:
    """Load a plan, check preconditions, and run its steps.

    Raises PreconditionError before any step runs when the host or invocation
    is unfit.
    """

    actual_log_path = configure_logging(log_path=log_path)

    plan_path = resolve_plan_path(plan)
    try:
        cfg = load_plan_config(plan_path)
        privilege = cfg.privilege
        steps = build_steps(cfg)
        expected_hardware = cfg.hardware
    except (OSError, ValueError) as e:
        raise PreconditionError(f"Cannot load plan {plan_path}: {e}") from e

    logger.info("Plan: %s (%d steps) from %s", cfg.name, len(steps), plan_path)

    ctx = resolve_run_context(use_sudo=privilege == "sudo", dry_run=dry_run, assume_yes=assume_yes)
    check_privilege(privilege, ctx)
    check_os(cfg.supported_os, ctx)

    if ctx.use_sudo and not ctx.dry_run:
        start_sudo_keepalive()

    try:
        outcome = run_pipeline(steps, ctx=ctx, expected_hardware=expected_hardware)
    except Exception:
        logger.exception("Provisioning failed")
        raise

    for line in render_summary(outcome).splitlines():
        logger.info("%s", line)
    logger.info("Full log available at: %s", actual_log_path)

    if report_path:
        save_report(report_path, outcome.to_dict())
    return outcome


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="desktop-provisioner")
    p.add_argument(
        "plan",
        nargs="?",
        default=DEFAULT_PLAN,
        help="Plan manifest (path to YAML, or name of a bundled plan)",
    )
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to run log")
    p.add_argument("--report", default=None, help="Write a machine-readable run report (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Log commands and writes without executing them")
    p.add_argument("--yes", action="store_true", help="Answer yes to every prompt")

    args = p.parse_args(argv)

    try:
        outcome = run(
            plan=args.plan,
            log_path=args.log,
            report_path=args.report,
            dry_run=bool(args.dry_run),
            assume_yes=bool(args.yes),
        )
    except PreconditionError as e:
        logger.error("%s", e)
        return EXIT_PRECONDITION

    if outcome.state is RunState.ABORTED:
        return EXIT_ABORTED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
