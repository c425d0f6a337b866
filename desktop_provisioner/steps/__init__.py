from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

from .base import FailurePolicy, ProvisioningStep, StepResult, StepStatus
from .file_deploy import FileDeploy
from .package_install import PackageInstall
from .service_toggle import ServiceToggle
from .state_merge import StateMerge

Step = Union[FileDeploy, PackageInstall, ServiceToggle, StateMerge]

STEP_KINDS = {cls.kind: cls for cls in (FileDeploy, PackageInstall, ServiceToggle, StateMerge)}


def step_from_manifest(entry: Dict[str, Any], base_dir: Path) -> Step:
    if not isinstance(entry, dict):
        raise ValueError(f"Step entries must be mappings, got {type(entry).__name__}")
    kind = entry.get("kind")
    cls = STEP_KINDS.get(str(kind))
    if cls is None:
        raise ValueError(f"Unknown step kind {kind!r} (expected one of {', '.join(sorted(STEP_KINDS))})")
    return cls.from_manifest(entry, base_dir)


__all__ = [
    "FailurePolicy",
    "FileDeploy",
    "PackageInstall",
    "ProvisioningStep",
    "STEP_KINDS",
    "ServiceToggle",
    "StateMerge",
    "Step",
    "StepResult",
    "StepStatus",
    "step_from_manifest",
]
