"""Pytest fixtures for desktop_provisioner tests.

No test runs a real external command: `run_cmd` is replaced everywhere it is
imported by a FakeRunner that records argv and answers by rule.
"""

import os
import pwd
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from desktop_provisioner.lib.command import CmdResult, fmt_argv
from desktop_provisioner.lib.env import RunContext
from desktop_provisioner.lib.hwdetect import HardwareFact
from desktop_provisioner.lib.settings_store import StoreUnavailable

RUN_CMD_MODULES = [
    "desktop_provisioner.lib.pkg",
    "desktop_provisioner.lib.services",
    "desktop_provisioner.lib.settings_store",
    "desktop_provisioner.lib.hwdetect",
    "desktop_provisioner.preconditions",
]


class FakeRunner:
    """Stands in for run_cmd; the first rule whose tokens all appear in argv wins."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.rules: List[Tuple[Tuple[str, ...], int, str]] = []

    def on(self, *tokens: str, returncode: int = 0, stdout: str = "") -> "FakeRunner":
        self.rules.append((tokens, returncode, stdout))
        return self

    def __call__(self, argv, *, check=True, env=None, dry_run=False):
        argv = list(argv)
        self.calls.append(argv)
        if dry_run:
            return CmdResult(argv=argv, returncode=0, stdout="", stderr="")
        rc, out = 0, ""
        for tokens, code, text in self.rules:
            if all(t in argv for t in tokens):
                rc, out = code, text
                break
        if check and rc != 0:
            raise RuntimeError(f"Command failed ({rc}): {fmt_argv(argv)}")
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr="")

    def calls_with(self, *tokens: str) -> List[List[str]]:
        return [c for c in self.calls if all(t in c for t in tokens)]


class FakeStore:
    """In-memory settings store keyed by '<schema> <key>'."""

    def __init__(self, values: Optional[Dict[str, str]] = None, available: bool = True) -> None:
        self.values = dict(values or {})
        self.available = available
        self.writes: List[Tuple[str, str]] = []

    def get(self, key: str) -> str:
        if not self.available:
            raise StoreUnavailable("no session bus; change deferred to next login")
        return self.values.get(key, "")

    def set(self, key: str, value: str) -> None:
        if not self.available:
            raise StoreUnavailable("no session bus; change deferred to next login")
        self.values[key] = value
        self.writes.append((key, value))


@pytest.fixture
def fake_cmd(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    for mod in RUN_CMD_MODULES:
        monkeypatch.setattr(f"{mod}.run_cmd", runner)
    return runner


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def run_ctx(tmp_path: Path) -> RunContext:
    home = tmp_path / "home"
    home.mkdir()
    entry = pwd.getpwuid(os.getuid())
    return RunContext(
        user=entry.pw_name,
        home=str(home),
        uid=os.getuid(),
        gid=os.getgid(),
        elevated=False,
        use_sudo=False,
        dry_run=False,
        assume_yes=True,
    )


def all_match_probe(expected):
    return [HardwareFact(name=n, detected_value="test", expected_value=None, match=True) for n in expected]


def mismatch_probe(*names: str):
    def _probe(expected):
        return [
            HardwareFact(name=n, detected_value="unknown", expected_value=str(expected.get(n)), match=n not in names)
            for n in ("cpu", "gpu", "storage", "memory")
        ]

    return _probe
