"""Tests for package-group installation."""

from dataclasses import replace

import pytest

from desktop_provisioner.lib.pkg import install_group
from desktop_provisioner.steps import FailurePolicy, PackageInstall


def test_install_runs_preflight_then_single_install(fake_cmd, run_ctx):
    outcome = install_group("Audio", ["pipewire", "wireplumber"], ctx=run_ctx)

    assert outcome.preflight_ok
    assert outcome.packages == ["pipewire", "wireplumber"]
    preflight, install = fake_cmd.calls
    assert preflight[:4] == ["apt-get", "install", "-y", "--dry-run"]
    assert preflight[-2:] == ["pipewire", "wireplumber"]
    assert install[:3] == ["apt-get", "install", "-y"]
    assert "--dry-run" not in install
    assert "Dpkg::Options::=--force-confold" in install
    assert install[-2:] == ["pipewire", "wireplumber"]


def test_failed_preflight_does_not_block_install(fake_cmd, run_ctx):
    fake_cmd.on("--dry-run", returncode=100)
    fake_cmd.on("apt-cache", "show", "ghost-pkg", returncode=100)

    outcome = install_group("Tools", ["htop", "ghost-pkg"], ctx=run_ctx)

    assert not outcome.preflight_ok
    assert outcome.unknown_packages == ["ghost-pkg"]
    assert len(fake_cmd.calls_with("apt-get", "install", "htop")) == 2


def test_failed_install_raises(fake_cmd, run_ctx):
    fake_cmd.on("apt-get", "install", "nope", returncode=100)

    with pytest.raises(RuntimeError, match="apt-get install failed"):
        install_group("Broken", ["nope"], ctx=run_ctx)


def test_empty_group_is_noop(fake_cmd, run_ctx):
    outcome = install_group("Nothing", [" ", ""], ctx=run_ctx)

    assert outcome.packages == []
    assert fake_cmd.calls == []


def test_refresh_index_updates_first(fake_cmd, run_ctx):
    install_group("Base", ["git"], ctx=run_ctx, refresh_index=True)

    assert fake_cmd.calls[0][:2] == ["apt-get", "update"]


def test_sudo_mode_prefixes_admin_commands(fake_cmd, run_ctx):
    install_group("Base", ["git"], ctx=replace(run_ctx, use_sudo=True))

    assert all(c[0] == "sudo" for c in fake_cmd.calls_with("apt-get"))


def test_dry_run_assumes_success(fake_cmd, run_ctx):
    fake_cmd.on("apt-get", returncode=100)

    outcome = install_group("Base", ["git"], ctx=replace(run_ctx, dry_run=True))

    assert outcome.preflight_ok


def test_policy_defaults_and_critical_override():
    group = PackageInstall(description="Extras", package_ids=("vlc",))

    assert group.policy is FailurePolicy.DEGRADED
    assert replace(group, critical=True).policy is FailurePolicy.FATAL
    assert replace(group, on_error=FailurePolicy.IGNORE).policy is FailurePolicy.IGNORE
    assert replace(group, critical=True, on_error=FailurePolicy.IGNORE).policy is FailurePolicy.FATAL
