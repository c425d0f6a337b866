from __future__ import annotations

import logging

from .command import as_admin, run_cmd
from .env import RunContext

logger = logging.getLogger(__name__)


def set_service_enabled(name: str, enabled: bool, *, ctx: RunContext) -> None:
    """Enable+start or disable+stop a systemd unit. Raises RuntimeError on failure."""

    verb = "enable" if enabled else "disable"
    run_cmd(as_admin(["systemctl", verb, "--now", name], use_sudo=ctx.use_sudo), dry_run=ctx.dry_run)
    logger.info("%s %s", "Enabled" if enabled else "Disabled", name)
