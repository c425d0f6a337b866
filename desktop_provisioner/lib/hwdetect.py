from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

FACT_NAMES = ("cpu", "gpu", "storage", "memory")

_GPU_VENDOR_MAP = {
    "0x8086": "intel",
    "0x1002": "amd",
    "0x10de": "nvidia",
    "0x13b5": "arm",  # Arm (Mali)
    "0x5143": "qualcomm",  # Qualcomm / Adreno (sometimes)
}


@dataclass(frozen=True)
class HardwareFact:
    name: str
    detected_value: str
    expected_value: Optional[str]
    match: bool


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except Exception:
        return None


def _detect_cpu() -> str:
    cpuinfo = _read_text(Path("/proc/cpuinfo")) or ""
    for line in cpuinfo.splitlines():
        if line.startswith("model name"):
            model = line.split(":", 1)[1].strip()
            if model:
                return model
    return platform.processor() or UNKNOWN


def _detect_gpu() -> str:
    """Display controller description, lspci first, DRM vendor id second."""

    try:
        r = run_cmd(["lspci"], check=False)
        for ln in r.stdout.splitlines():
            if any(x in ln.lower() for x in ("vga", "3d", "display")):
                desc = ln.split(": ", 1)[-1].strip()
                if desc:
                    return desc
    except Exception:
        pass

    drm = Path("/sys/class/drm")
    cards = sorted([p for p in drm.glob("card[0-9]*") if p.is_dir()]) if drm.exists() else []
    for card in cards:
        vendor_id = _read_text(card / "device" / "vendor")
        if vendor_id:
            vendor = _GPU_VENDOR_MAP.get(vendor_id.lower(), UNKNOWN)
            return f"{vendor} ({vendor_id})"
    return UNKNOWN


def _detect_storage() -> str:
    """Block devices as `name:transport` pairs, e.g. `nvme0n1:nvme, sda:sata`."""

    try:
        r = run_cmd(["lsblk", "-dno", "NAME,TRAN"], check=False)
    except Exception:
        return UNKNOWN
    devices = []
    for ln in r.stdout.splitlines():
        parts = ln.split()
        if not parts:
            continue
        devices.append(":".join(parts[:2]))
    return ", ".join(devices) or UNKNOWN


def _detect_memory() -> str:
    """Total memory in whole GiB."""

    meminfo = _read_text(Path("/proc/meminfo")) or ""
    for line in meminfo.splitlines():
        if line.startswith("MemTotal:"):
            try:
                mem_kb = int(line.split()[1])
            except (IndexError, ValueError):
                break
            return str(round(mem_kb / 1024 / 1024))
    return UNKNOWN


_DETECTORS = {
    "cpu": _detect_cpu,
    "gpu": _detect_gpu,
    "storage": _detect_storage,
    "memory": _detect_memory,
}


def detect_facts() -> Dict[str, str]:
    """Raw detected values per fact name; never raises."""

    facts: Dict[str, str] = {}
    for name, detector in _DETECTORS.items():
        try:
            facts[name] = detector() or UNKNOWN
        except Exception:
            logger.debug("Hardware fact %s not queryable", name, exc_info=True)
            facts[name] = UNKNOWN
    return facts


def match_fact(detected: str, expected: Any) -> bool:
    """Case-insensitive substring test; a list of expectations means any-of."""

    if expected is None:
        return True
    options = expected if isinstance(expected, (list, tuple)) else [expected]
    hay = detected.lower()
    return any(str(opt).lower() in hay for opt in options)


def _fmt_expected(expected: Any) -> Optional[str]:
    if expected is None:
        return None
    if isinstance(expected, (list, tuple)):
        return " | ".join(str(x) for x in expected)
    return str(expected)


def probe(expected: Optional[Mapping[str, Any]] = None) -> List[HardwareFact]:
    """Read host facts and compare them to an expected profile.

    Mismatches only produce warnings; nothing is blocked here.
    """

    expected = expected or {}
    detected = detect_facts()

    facts: List[HardwareFact] = []
    for name in FACT_NAMES:
        value = detected.get(name, UNKNOWN)
        want = expected.get(name)
        ok = match_fact(value, want)
        facts.append(HardwareFact(name=name, detected_value=value, expected_value=_fmt_expected(want), match=ok))
        logger.info("Hardware %-7s: %s", name, value)
        if not ok:
            logger.warning(
                "Hardware %s does not match expected %s (detected: %s); dependent steps are best-effort",
                name,
                _fmt_expected(want),
                value,
            )

    for name in expected:
        if name not in FACT_NAMES:
            logger.warning("Ignoring expectation for unknown hardware fact %r", name)

    return facts
