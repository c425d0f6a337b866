from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .command import as_admin, fmt_argv, run_cmd
from .env import RunContext

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
DPKG_KEEP_CONFIG = [
    "-o",
    "Dpkg::Options::=--force-confdef",
    "-o",
    "Dpkg::Options::=--force-confold",
]


@dataclass(frozen=True)
class PackageOutcome:
    description: str
    packages: List[str]
    preflight_ok: bool
    unknown_packages: List[str] = field(default_factory=list)


def apt_has_package(package: str, *, ctx: RunContext) -> bool:
    """Return True if apt knows about a package name."""
    if ctx.dry_run:
        # Be permissive in dry-run so planning doesn't fail.
        return True
    r = run_cmd(["apt-cache", "show", package], check=False)
    return r.returncode == 0


def apt_update(*, ctx: RunContext) -> None:
    run_cmd(as_admin(["apt-get", "update", "-qq"], use_sudo=ctx.use_sudo), env=APT_ENV, dry_run=ctx.dry_run)


def apt_preflight(packages: Sequence[str], *, ctx: RunContext) -> bool:
    """Simulate the install; the answer is advisory only."""

    argv = as_admin(["apt-get", "install", "-y", "--dry-run", *packages], use_sudo=ctx.use_sudo)
    r = run_cmd(argv, check=False, env=APT_ENV, dry_run=ctx.dry_run)
    return r.returncode == 0


def apt_install(packages: Sequence[str], *, ctx: RunContext) -> None:
    if not packages:
        return
    argv = as_admin(["apt-get", "install", "-y", *DPKG_KEEP_CONFIG, *packages], use_sudo=ctx.use_sudo)
    r = run_cmd(argv, check=False, env=APT_ENV, dry_run=ctx.dry_run)
    if r.returncode != 0:
        raise RuntimeError(f"apt-get install failed ({r.returncode}): {fmt_argv(packages)}")


def install_group(
    description: str,
    packages: Sequence[str],
    *,
    ctx: RunContext,
    refresh_index: bool = False,
) -> PackageOutcome:
    """Install one package group with a single package-manager invocation.

    A failed preflight is only a warning; a failed install raises RuntimeError.
    The whole group succeeds or fails together.
    """

    pkgs = [p.strip() for p in packages if p and p.strip()]
    if not pkgs:
        logger.info("Nothing to install for %s", description)
        return PackageOutcome(description=description, packages=[], preflight_ok=True)

    logger.info("Installing: %s (%s)", description, " ".join(pkgs))
    if refresh_index:
        apt_update(ctx=ctx)

    preflight_ok = apt_preflight(pkgs, ctx=ctx)
    unknown: List[str] = []
    if not preflight_ok:
        unknown = [p for p in pkgs if not apt_has_package(p, ctx=ctx)]
        if unknown:
            logger.warning(
                "Preflight check flagged issues for %s (unknown: %s). Attempting install anyway...",
                description,
                ", ".join(unknown),
            )
        else:
            logger.warning("Preflight check flagged issues for %s. Attempting install anyway...", description)

    apt_install(pkgs, ctx=ctx)
    logger.info("%s installed.", description)
    return PackageOutcome(description=description, packages=pkgs, preflight_ok=preflight_ok, unknown_packages=unknown)
