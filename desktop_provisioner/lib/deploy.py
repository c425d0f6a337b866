from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .env import RunContext

logger = logging.getLogger(__name__)

BACKUP_TS_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class BackupRecord:
    original_path: str
    backup_path: str
    timestamp: str


def _backup_path_for(target: Path, ts: str) -> Path:
    candidate = target.with_name(f"{target.name}.bak.{ts}")
    n = 1
    # Same-second redeploys must not clobber an earlier backup.
    while candidate.exists():
        candidate = target.with_name(f"{target.name}.bak.{ts}-{n}")
        n += 1
    return candidate


def backup_existing(target: Path, *, now: Callable[[], datetime] = datetime.now) -> Optional[BackupRecord]:
    if not target.exists():
        return None
    ts = now().strftime(BACKUP_TS_FORMAT)
    backup = _backup_path_for(target, ts)
    shutil.copy2(target, backup)
    logger.info("Backed up %s -> %s", target, backup)
    return BackupRecord(original_path=str(target), backup_path=str(backup), timestamp=ts)


def _atomic_write(target: Path, content: str) -> None:
    mode = (target.stat().st_mode & 0o7777) if target.exists() else 0o644
    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, target)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _chown_to_user(path: Path, ctx: RunContext) -> None:
    # Walk up so directories created on the user's behalf are theirs too.
    home = Path(ctx.home).resolve()
    p = path
    while True:
        os.chown(p, ctx.uid, ctx.gid)
        if p.parent == p or p.parent.resolve() == home:
            break
        p = p.parent


def deploy_config(
    target_path: str,
    content: str,
    *,
    ctx: RunContext,
    now: Callable[[], datetime] = datetime.now,
) -> Optional[BackupRecord]:
    """Write content to target_path, backing up whatever was there first.

    The write is atomic (temp file + rename in the same directory). When the
    process is elevated and the target lives in the target user's home, the
    file is handed over to that user. I/O errors propagate.

    Returns the BackupRecord when pre-existing content was preserved.
    """

    target = Path(target_path)
    if not target.is_absolute():
        raise ValueError(f"Deploy target must be an absolute path: {target_path}")

    if ctx.dry_run:
        action = "overwrite (with backup)" if target.exists() else "create"
        logger.info("Would %s %s (%d bytes)", action, target, len(content))
        return None

    target.parent.mkdir(parents=True, exist_ok=True)
    backup = backup_existing(target, now=now)
    _atomic_write(target, content)

    if ctx.should_chown and ctx.owns_path(str(target)):
        _chown_to_user(target, ctx)
        if backup is not None:
            os.chown(backup.backup_path, ctx.uid, ctx.gid)

    logger.info("Deployed %s", target)
    return backup
