from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    log_default: str = "/var/log/desktop-provisioner.log"
    runtime_dir_fmt: str = "/run/user/{uid}"


PATHS = Paths()


@dataclass(frozen=True)
class RunContext:
    """Who the run acts for, resolved once and handed to every step.

    `user`/`home`/`uid`/`gid` describe the unprivileged target user (the invoking
    user when running under sudo). `elevated` is true when the process itself
    runs as root; `use_sudo` is true when it does not and prefixes admin commands
    with sudo instead.
    """

    user: str
    home: str
    uid: int
    gid: int
    elevated: bool = False
    use_sudo: bool = False
    dry_run: bool = False
    assume_yes: bool = False

    @property
    def runtime_dir(self) -> str:
        return PATHS.runtime_dir_fmt.format(uid=self.uid)

    @property
    def session_bus_address(self) -> str:
        return f"unix:path={self.runtime_dir}/bus"

    def owns_path(self, path: str) -> bool:
        """True if path lives under the target user's home directory."""
        try:
            Path(path).resolve().relative_to(Path(self.home).resolve())
        except ValueError:
            return False
        return True

    @property
    def should_chown(self) -> bool:
        return self.elevated and self.uid != 0


def resolve_run_context(
    *,
    use_sudo: bool = False,
    dry_run: bool = False,
    assume_yes: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> RunContext:
    env = os.environ if environ is None else environ
    elevated = os.geteuid() == 0

    entry = None
    sudo_user = env.get("SUDO_USER")
    if elevated and sudo_user and sudo_user != "root":
        try:
            entry = pwd.getpwnam(sudo_user)
        except KeyError:
            logger.warning("SUDO_USER=%s not found in passwd; acting for root", sudo_user)
    if entry is None:
        entry = pwd.getpwuid(os.getuid())

    ctx = RunContext(
        user=entry.pw_name,
        home=entry.pw_dir,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        elevated=elevated,
        use_sudo=use_sudo and not elevated,
        dry_run=dry_run,
        assume_yes=assume_yes,
    )
    logger.info("Target user: %s (home: %s, elevated=%s)", ctx.user, ctx.home, ctx.elevated)
    return ctx
