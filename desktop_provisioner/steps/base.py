from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..lib.deploy import BackupRecord
from ..lib.env import RunContext


class StepStatus(str, enum.Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    FATAL = "fatal"


class FailurePolicy(str, enum.Enum):
    """What a step failure turns into."""

    FATAL = "fatal"
    DEGRADED = "degraded"
    IGNORE = "ignore"

    @classmethod
    def parse(cls, value: Any) -> Optional["FailurePolicy"]:
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"on_error must be one of {allowed}, got {value!r}") from e

    @classmethod
    def parse_best_effort(cls, value: Any) -> Optional["FailurePolicy"]:
        """Like parse, for steps whose failure must never abort a run."""
        policy = cls.parse(value)
        if policy is cls.FATAL:
            raise ValueError(f"on_error must be degraded or ignore for this step, got {value!r}")
        return policy


def manifest_bool(entry: Dict[str, Any], key: str, default: bool) -> bool:
    value = entry.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


@dataclass(frozen=True)
class StepResult:
    step_ref: str
    status: StepStatus
    detail: str = ""
    backup: Optional[BackupRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"step": self.step_ref, "status": self.status.value, "detail": self.detail}
        if self.backup is not None:
            d["backup"] = self.backup.backup_path
        return d


class ProvisioningStep(Protocol):
    """An immutable unit of host change; `run` raises on failure."""

    kind: str
    step_id: str
    confirm: Optional[str]

    @property
    def label(self) -> str:
        ...

    @property
    def policy(self) -> FailurePolicy:
        ...

    def run(self, ctx: RunContext) -> StepResult:
        ...
