from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple

from ..lib.env import RunContext
from ..lib.pkg import install_group
from .base import FailurePolicy, StepResult, StepStatus, manifest_bool

logger = logging.getLogger(__name__)


def _str_tuple(value: Any, field_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return tuple(str(v).strip() for v in value if str(v).strip())


@dataclass(frozen=True)
class PackageInstall:
    description: str
    package_ids: Tuple[str, ...]
    critical: bool = False
    requires_hardware: Tuple[str, ...] = ()
    refresh_index: bool = False
    step_id: str = ""
    on_error: Optional[FailurePolicy] = None
    confirm: Optional[str] = None

    kind: ClassVar[str] = "package_install"

    @property
    def label(self) -> str:
        return self.step_id or self.description

    @property
    def policy(self) -> FailurePolicy:
        # critical is the caller's explicit word and always wins.
        if self.critical:
            return FailurePolicy.FATAL
        return self.on_error or FailurePolicy.DEGRADED

    @classmethod
    def from_manifest(cls, entry: Dict[str, Any], base_dir: Path) -> "PackageInstall":
        description = entry.get("description")
        if not description:
            raise ValueError("package_install requires description")
        return cls(
            description=str(description),
            package_ids=_str_tuple(entry.get("packages"), f"{description}: packages"),
            critical=manifest_bool(entry, "critical", False),
            requires_hardware=_str_tuple(entry.get("requires_hardware"), f"{description}: requires_hardware"),
            refresh_index=manifest_bool(entry, "refresh_index", False),
            step_id=str(entry.get("id") or ""),
            on_error=FailurePolicy.parse(entry.get("on_error")),
            confirm=entry.get("confirm"),
        )

    def run(self, ctx: RunContext) -> StepResult:
        outcome = install_group(self.description, self.package_ids, ctx=ctx, refresh_index=self.refresh_index)
        detail = f"{len(outcome.packages)} package(s) installed"
        if not outcome.preflight_ok:
            detail += " despite preflight warnings"
        return StepResult(step_ref=self.label, status=StepStatus.SUCCESS, detail=detail)
