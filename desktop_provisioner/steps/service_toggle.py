from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from ..lib.env import RunContext
from ..lib.services import set_service_enabled
from .base import FailurePolicy, StepResult, StepStatus, manifest_bool


@dataclass(frozen=True)
class ServiceToggle:
    name: str
    enabled: bool = True
    step_id: str = ""
    on_error: Optional[FailurePolicy] = None
    confirm: Optional[str] = None

    kind: ClassVar[str] = "service_toggle"

    @property
    def label(self) -> str:
        return self.step_id or f"{'enable' if self.enabled else 'disable'} {self.name}"

    @property
    def policy(self) -> FailurePolicy:
        # Never fatal: a failure here degrades or is ignored.
        if self.on_error is FailurePolicy.IGNORE:
            return FailurePolicy.IGNORE
        return FailurePolicy.DEGRADED

    @classmethod
    def from_manifest(cls, entry: Dict[str, Any], base_dir: Path) -> "ServiceToggle":
        name = entry.get("name")
        if not name:
            raise ValueError("service_toggle requires name")
        return cls(
            name=str(name),
            enabled=manifest_bool(entry, "enabled", True),
            step_id=str(entry.get("id") or ""),
            on_error=FailurePolicy.parse_best_effort(entry.get("on_error")),
            confirm=entry.get("confirm"),
        )

    def run(self, ctx: RunContext) -> StepResult:
        set_service_enabled(self.name, self.enabled, ctx=ctx)
        return StepResult(
            step_ref=self.label,
            status=StepStatus.SUCCESS,
            detail=f"{self.name} {'enabled' if self.enabled else 'disabled'}",
        )
