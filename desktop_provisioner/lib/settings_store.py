"""Set-merge into the desktop settings store.

Collection-valued gsettings keys (e.g. `org.gnome.shell enabled-extensions`) are
stored as GVariant text such as `@as []` or `['a', 'b']`. A merge parses that
value into an ordered list, appends the missing candidates, and writes the
serialized result back. Existing entries are never dropped or reordered.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Protocol, Sequence, Tuple

from .command import run_cmd
from .env import RunContext

logger = logging.getLogger(__name__)

_TYPE_ANNOTATION = re.compile(r"^@[a-z{}()]+\s+")


class StoreUnavailable(RuntimeError):
    """The settings store cannot be reached (typically: no active session)."""


class SettingsStore(Protocol):
    def get(self, key: str) -> str:
        ...

    def set(self, key: str, value: str) -> None:
        ...


def split_store_key(store_key: str) -> Tuple[str, str]:
    """`"org.gnome.shell enabled-extensions"` -> (schema, key)."""
    parts = store_key.split()
    if len(parts) != 2:
        raise ValueError(f"Store key must be '<schema> <key>', got {store_key!r}")
    return parts[0], parts[1]


def parse_serialized(value: str) -> List[str]:
    """Parse a serialized string collection; blank means empty."""

    text = (value or "").strip()
    if not text:
        return []
    text = _TYPE_ANNOTATION.sub("", text, count=1)
    try:
        parsed = ast.literal_eval(text)
    except (ValueError, SyntaxError) as e:
        raise ValueError(f"Malformed serialized set: {value!r}") from e
    if not isinstance(parsed, (list, tuple)) or not all(isinstance(x, str) for x in parsed):
        raise ValueError(f"Serialized set must be a flat array of strings: {value!r}")
    return list(parsed)


def _quote(item: str) -> str:
    return "'" + item.replace("\\", "\\\\").replace("'", "\\'") + "'"


def serialize_set(items: Iterable[str]) -> str:
    return "[" + ", ".join(_quote(i) for i in items) + "]"


def _missing(existing: Sequence[str], candidates: Iterable[str]) -> List[str]:
    out: List[str] = []
    for c in candidates:
        if not isinstance(c, str) or not c:
            raise ValueError(f"Candidate ids must be non-empty strings, got {c!r}")
        if c not in existing and c not in out:
            out.append(c)
    return out


def merge_serialized(current: str, candidates: Iterable[str]) -> str:
    """Pure merge: `merge_serialized("[]", ["ext-a"]) == "['ext-a']"`."""

    existing = parse_serialized(current)
    return serialize_set([*existing, *_missing(existing, candidates)])


@dataclass(frozen=True)
class MergeOutcome:
    store_key: str
    added: List[str] = field(default_factory=list)
    value: str = "[]"
    written: bool = False


def merge_into_store(store: SettingsStore, store_key: str, candidates: Iterable[str]) -> MergeOutcome:
    """Read-modify-write one collection key.

    StoreUnavailable and ValueError (malformed current value) propagate before
    anything is written. Nothing is written when every candidate is present.
    """

    current = store.get(store_key)
    existing = parse_serialized(current)
    added = _missing(existing, candidates)
    if not added:
        logger.info("%s already contains all requested entries", store_key)
        return MergeOutcome(store_key=store_key, added=[], value=serialize_set(existing), written=False)

    new_value = serialize_set([*existing, *added])
    store.set(store_key, new_value)
    logger.info("%s: added %s", store_key, ", ".join(added))
    return MergeOutcome(store_key=store_key, added=added, value=new_value, written=True)


class GSettingsStore:
    """gsettings run on behalf of the target user's D-Bus session."""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx

    def _argv(self, *args: str) -> List[str]:
        if self.ctx.elevated and self.ctx.uid != 0:
            return [
                "sudo",
                "-u",
                self.ctx.user,
                "env",
                f"DBUS_SESSION_BUS_ADDRESS={self.ctx.session_bus_address}",
                "gsettings",
                *args,
            ]
        return ["gsettings", *args]

    def _ensure_session(self) -> None:
        if self.ctx.dry_run:
            return
        bus = Path(self.ctx.runtime_dir) / "bus"
        if not bus.exists():
            raise StoreUnavailable(
                f"No active session bus for {self.ctx.user} ({bus}); change deferred to next login"
            )

    def get(self, key: str) -> str:
        schema, name = split_store_key(key)
        self._ensure_session()
        r = run_cmd(self._argv("get", schema, name), check=False, dry_run=self.ctx.dry_run)
        if r.returncode != 0:
            raise StoreUnavailable(f"gsettings get {key} failed ({r.returncode}); change deferred to next login")
        return r.stdout.strip()

    def set(self, key: str, value: str) -> None:
        schema, name = split_store_key(key)
        self._ensure_session()
        r = run_cmd(self._argv("set", schema, name, value), check=False, dry_run=self.ctx.dry_run)
        if r.returncode != 0:
            raise StoreUnavailable(f"gsettings set {key} failed ({r.returncode}); change deferred to next login")
