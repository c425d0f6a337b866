from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Sequence

from .lib.command import run_cmd
from .lib.env import RunContext
from .lib.prompt import ask_yes_no

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")


class PreconditionError(RuntimeError):
    """The host or invocation is not fit for provisioning; nothing was changed."""


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    info: Dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return info
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        info[key.strip()] = value.strip().strip('"').strip("'")
    return info


def check_privilege(mode: str, ctx: RunContext) -> None:
    if mode == "root":
        if os.geteuid() != 0:
            raise PreconditionError("Please run as root: sudo desktop-provisioner ...")
    elif mode == "sudo":
        if os.geteuid() == 0:
            raise PreconditionError("Please do not run as root. Sudo is requested when needed.")
        if ctx.dry_run:
            return
        r = run_cmd(["sudo", "-v"], check=False)
        if r.returncode != 0:
            raise PreconditionError("This plan requires sudo privileges.")


def check_os(supported: Sequence[str], ctx: RunContext, *, path: Path = OS_RELEASE) -> Dict[str, str]:
    """Warn (and ask) when the host is not one the plan targets."""

    info = read_os_release(path)
    if not info:
        logger.warning("Cannot detect OS version (%s missing) - proceeding anyway.", path)
        return info

    codename = info.get("VERSION_CODENAME", "unknown")
    logger.info("Detected OS: %s (codename: %s)", info.get("PRETTY_NAME", "unknown"), codename)
    if not supported:
        return info

    seen = {info.get("ID", ""), codename}
    if seen.isdisjoint(supported):
        logger.warning("This plan targets %s. Detected: %s.", ", ".join(supported), codename)
        if not ask_yes_no("Continue anyway?", assume_yes=ctx.assume_yes):
            raise PreconditionError(f"Unsupported host: {info.get('PRETTY_NAME', codename)}")
    return info
