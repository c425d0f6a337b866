from __future__ import annotations

from pathlib import Path
from typing import Any, Dict


def repo_root() -> Path:
    # desktop_provisioner/lib/manifests.py -> desktop_provisioner -> repo root
    return Path(__file__).resolve().parents[2]


def load_yaml(path: str | Path) -> Dict[str, Any]:
    """Load a YAML mapping from disk."""
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML required to load manifests") from e

    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def resolve_plan_path(plan: str) -> Path:
    """Accept a path, or the name of a bundled plan under manifests/plans/."""

    p = Path(plan)
    if p.exists() or p.suffix or "/" in plan:
        return p
    return repo_root() / "manifests" / "plans" / f"{plan}.yaml"
