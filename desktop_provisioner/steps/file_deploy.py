from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from ..lib.deploy import deploy_config
from ..lib.env import RunContext
from .base import FailurePolicy, StepResult, StepStatus

logger = logging.getLogger(__name__)


def expand_user_path(path: str, ctx: RunContext) -> str:
    """`~/x` means the target user's home, not root's."""
    if path == "~":
        return ctx.home
    if path.startswith("~/"):
        return str(Path(ctx.home) / path[2:])
    return path


@dataclass(frozen=True)
class FileDeploy:
    target_path: str
    content: str
    step_id: str = ""
    on_error: Optional[FailurePolicy] = None
    confirm: Optional[str] = None

    kind: ClassVar[str] = "file_deploy"

    @property
    def label(self) -> str:
        return self.step_id or f"deploy {self.target_path}"

    @property
    def policy(self) -> FailurePolicy:
        return self.on_error or FailurePolicy.FATAL

    @classmethod
    def from_manifest(cls, entry: Dict[str, Any], base_dir: Path) -> "FileDeploy":
        target = entry.get("target_path")
        if not target:
            raise ValueError("file_deploy requires target_path")
        if "content" in entry:
            content = str(entry["content"])
        elif "source" in entry:
            content = (base_dir / str(entry["source"])).read_text(encoding="utf-8")
        else:
            raise ValueError(f"file_deploy {target}: one of content/source is required")
        return cls(
            target_path=str(target),
            content=content,
            step_id=str(entry.get("id") or ""),
            on_error=FailurePolicy.parse(entry.get("on_error")),
            confirm=entry.get("confirm"),
        )

    def run(self, ctx: RunContext) -> StepResult:
        target = expand_user_path(self.target_path, ctx)
        backup = deploy_config(target, self.content, ctx=ctx)
        detail = f"wrote {target}"
        if backup is not None:
            detail += f" (previous content in {backup.backup_path})"
        return StepResult(step_ref=self.label, status=StepStatus.SUCCESS, detail=detail, backup=backup)
