from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple

from ..lib.env import RunContext
from ..lib.settings_store import GSettingsStore, SettingsStore, merge_into_store, split_store_key
from .base import FailurePolicy, StepResult, StepStatus


@dataclass(frozen=True)
class StateMerge:
    store_key: str
    candidate_ids: Tuple[str, ...]
    step_id: str = ""
    on_error: Optional[FailurePolicy] = None
    confirm: Optional[str] = None

    kind: ClassVar[str] = "state_merge"

    @property
    def label(self) -> str:
        return self.step_id or f"merge into {self.store_key}"

    @property
    def policy(self) -> FailurePolicy:
        # Never fatal: a failure here degrades or is ignored.
        if self.on_error is FailurePolicy.IGNORE:
            return FailurePolicy.IGNORE
        return FailurePolicy.DEGRADED

    @classmethod
    def from_manifest(cls, entry: Dict[str, Any], base_dir: Path) -> "StateMerge":
        key = entry.get("store_key")
        if not key:
            raise ValueError("state_merge requires store_key")
        split_store_key(str(key))
        ids = entry.get("candidate_ids")
        if not isinstance(ids, list) or not ids:
            raise ValueError(f"state_merge {key}: candidate_ids must be a non-empty list")
        return cls(
            store_key=str(key),
            candidate_ids=tuple(str(i) for i in ids),
            step_id=str(entry.get("id") or ""),
            on_error=FailurePolicy.parse_best_effort(entry.get("on_error")),
            confirm=entry.get("confirm"),
        )

    def run(self, ctx: RunContext, *, store: Optional[SettingsStore] = None) -> StepResult:
        outcome = merge_into_store(store or GSettingsStore(ctx), self.store_key, self.candidate_ids)
        if outcome.written:
            detail = f"added {', '.join(outcome.added)}"
        else:
            detail = "already up to date"
        return StepResult(step_ref=self.label, status=StepStatus.SUCCESS, detail=detail)
