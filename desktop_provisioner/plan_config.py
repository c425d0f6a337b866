from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .lib.manifests import load_yaml
from .steps import Step, step_from_manifest

PRIVILEGE_MODES = {"root", "sudo", "any"}


@dataclass(frozen=True)
class PlanConfig:
    raw: Dict[str, Any]
    base_dir: Path

    @property
    def name(self) -> str:
        return str(self.raw.get("name") or "provisioning plan")

    @property
    def privilege(self) -> str:
        mode = str(self.raw.get("privilege") or "root").lower()
        if mode not in PRIVILEGE_MODES:
            raise ValueError(f"privilege must be one of {', '.join(sorted(PRIVILEGE_MODES))}, got {mode!r}")
        return mode

    @property
    def supported_os(self) -> List[str]:
        return [str(x) for x in (self.raw.get("supported_os") or [])]

    @property
    def hardware(self) -> Dict[str, Any]:
        hw = self.raw.get("hardware") or {}
        if not isinstance(hw, dict):
            raise ValueError("hardware must be a mapping of fact name -> expected value(s)")
        return hw

    @property
    def step_entries(self) -> List[Dict[str, Any]]:
        steps = self.raw.get("steps") or []
        if not isinstance(steps, list):
            raise ValueError("steps must be a list")
        return steps


def load_plan_config(path: str | Path) -> PlanConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(path))

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("plan must be YAML")

    return PlanConfig(raw=load_yaml(p), base_dir=p.resolve().parent)


def build_steps(plan: PlanConfig) -> List[Step]:
    """Turn the plan's step entries into immutable step descriptors, in order."""

    steps: List[Step] = []
    for i, entry in enumerate(plan.step_entries, start=1):
        try:
            steps.append(step_from_manifest(entry, plan.base_dir))
        except (ValueError, OSError) as e:
            raise ValueError(f"{plan.name}: step #{i}: {e}") from e
    return steps
