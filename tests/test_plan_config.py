"""Tests for YAML plan loading."""

import textwrap

import pytest

from desktop_provisioner.lib.manifests import resolve_plan_path
from desktop_provisioner.plan_config import build_steps, load_plan_config
from desktop_provisioner.steps import FailurePolicy, FileDeploy, PackageInstall, ServiceToggle, StateMerge

PLAN = """\
name: test-plan
privilege: any
supported_os: [trixie]
hardware:
  gpu: [AMD, Radeon]
steps:
  - kind: file_deploy
    target_path: /etc/demo.conf
    source: files/demo.conf
  - kind: package_install
    id: gpu
    description: GPU drivers
    critical: true
    requires_hardware: [gpu]
    packages: [mesa-vulkan-drivers, " "]
  - kind: service_toggle
    name: fstrim.timer
    on_error: ignore
  - kind: state_merge
    store_key: org.gnome.shell enabled-extensions
    candidate_ids: [dash-to-dock@micxgx.gmail.com]
    confirm: Enable extensions?
"""


def _write_plan(tmp_path, text):
    path = tmp_path / "plan.yaml"
    path.write_text(textwrap.dedent(text))
    return path


def test_plan_builds_all_step_kinds(tmp_path):
    (tmp_path / "files").mkdir()
    (tmp_path / "files" / "demo.conf").write_text("key=value\n")

    cfg = load_plan_config(_write_plan(tmp_path, PLAN))
    deploy, group, service, merge = build_steps(cfg)

    assert cfg.name == "test-plan"
    assert cfg.privilege == "any"
    assert cfg.supported_os == ["trixie"]
    assert cfg.hardware == {"gpu": ["AMD", "Radeon"]}
    assert isinstance(deploy, FileDeploy) and deploy.content == "key=value\n"
    assert isinstance(group, PackageInstall)
    assert group.label == "gpu"
    assert group.package_ids == ("mesa-vulkan-drivers",)
    assert group.requires_hardware == ("gpu",)
    assert group.critical
    assert isinstance(service, ServiceToggle) and service.policy is FailurePolicy.IGNORE
    assert isinstance(merge, StateMerge) and merge.confirm == "Enable extensions?"


def test_unknown_step_kind_is_rejected(tmp_path):
    cfg = load_plan_config(_write_plan(tmp_path, "steps:\n  - kind: reboot\n"))

    with pytest.raises(ValueError, match="step #1"):
        build_steps(cfg)


@pytest.mark.parametrize(
    "entry",
    [
        "{kind: file_deploy, target_path: /etc/x}",
        "{kind: state_merge, store_key: no-space-key, candidate_ids: [a]}",
        "{kind: state_merge, store_key: org.x key, candidate_ids: []}",
        "{kind: service_toggle, name: x, on_error: panic}",
        "{kind: package_install, description: x, packages: not-a-list}",
    ],
)
def test_invalid_entries_are_rejected(tmp_path, entry):
    cfg = load_plan_config(_write_plan(tmp_path, f"steps:\n  - {entry}\n"))

    with pytest.raises(ValueError):
        build_steps(cfg)


def test_missing_source_file_is_rejected(tmp_path):
    cfg = load_plan_config(_write_plan(tmp_path, "steps:\n  - {kind: file_deploy, target_path: /etc/x, source: nope}\n"))

    with pytest.raises(ValueError, match="step #1"):
        build_steps(cfg)


def test_invalid_privilege_is_rejected(tmp_path):
    cfg = load_plan_config(_write_plan(tmp_path, "privilege: admin\n"))

    with pytest.raises(ValueError):
        cfg.privilege


def test_non_yaml_plan_is_rejected(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text("{}")

    with pytest.raises(ValueError):
        load_plan_config(path)


@pytest.mark.parametrize("name", ["gnome-desktop", "hyprland-user"])
def test_bundled_plans_build(name):
    cfg = load_plan_config(resolve_plan_path(name))

    steps = build_steps(cfg)

    assert steps
    assert cfg.privilege in {"root", "sudo"}


@pytest.mark.parametrize(
    "entry",
    [
        "{kind: state_merge, store_key: org.x key, candidate_ids: [a], on_error: fatal}",
        "{kind: service_toggle, name: gdm3.service, on_error: fatal}",
    ],
)
def test_best_effort_steps_reject_fatal_policy(tmp_path, entry):
    cfg = load_plan_config(_write_plan(tmp_path, f"steps:\n  - {entry}\n"))

    with pytest.raises(ValueError, match="degraded or ignore"):
        build_steps(cfg)


@pytest.mark.parametrize(
    "entry",
    [
        '{kind: package_install, description: x, packages: [a], critical: "false"}',
        "{kind: package_install, description: x, packages: [a], refresh_index: 1}",
        '{kind: service_toggle, name: x, enabled: "no"}',
    ],
)
def test_flags_must_be_real_booleans(tmp_path, entry):
    cfg = load_plan_config(_write_plan(tmp_path, f"steps:\n  - {entry}\n"))

    with pytest.raises(ValueError, match="true or false"):
        build_steps(cfg)


def test_boolean_flags_are_read(tmp_path):
    cfg = load_plan_config(_write_plan(tmp_path, "steps:\n  - {kind: service_toggle, name: x, enabled: false}\n"))

    (toggle,) = build_steps(cfg)

    assert toggle.enabled is False
