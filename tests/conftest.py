"""
Pytest configuration and shared fixtures for quick-cli tests.

Provides temporary quickemu/profile directories and a fake process
spawner so no real viewer or hypervisor is ever launched.
"""

from pathlib import Path

import pytest

from quickcli.config import Config, Platform
from quickcli.logsink import LogSink
from quickcli.utils import AttemptOutcome
from quickcli.vms import VirtualMachine


class FakeSpawner:
    """Records spawn requests; commands listed in ``fail`` are 'not found'."""

    def __init__(self, fail=(), fail_all: bool = False):
        self.fail = set(fail)
        self.fail_all = fail_all
        self.calls: list[list[str]] = []
        self.envs: list[dict | None] = []

    def __call__(self, cmd, env=None):
        self.calls.append(list(cmd))
        self.envs.append(dict(env) if env else None)
        if self.fail_all or cmd[0] in self.fail:
            return AttemptOutcome.failed("command not found")
        return AttemptOutcome.ok()

    @property
    def commands(self) -> list[str]:
        return [call[0] for call in self.calls]


# ============ Directory Fixtures ============

@pytest.fixture
def quickemu_dir(tmp_path: Path) -> Path:
    path = tmp_path / "quickemu"
    path.mkdir()
    return path


@pytest.fixture
def profile_dir(tmp_path: Path) -> Path:
    path = tmp_path / "remmina"
    path.mkdir()
    return path


@pytest.fixture
def config(quickemu_dir: Path, profile_dir: Path) -> Config:
    """Linux configuration pointing at temporary directories."""
    return Config(
        remote_app="remmina",
        quickemu_dir=quickemu_dir,
        default_spice_port=5930,
        os_type=Platform.LINUX,
        profile_dir=profile_dir,
    )


# ============ VM Fixtures ============

@pytest.fixture
def make_vm(quickemu_dir: Path):
    """Factory writing a VM definition file and returning its VirtualMachine."""

    def _make(name: str, text: str = "") -> VirtualMachine:
        path = quickemu_dir / f"{name}.conf"
        path.write_text(text)
        return VirtualMachine(path)

    return _make


RDP_DEFINITION = (
    '#!/usr/bin/quickemu --vm\n'
    'guest_os="windows"\n'
    'disk_img="win11/disk.qcow2"\n'
    'port_forwards=("2222:22" "3390:3389")\n'
)

VNC_DEFINITION = (
    'guest_os="linux"\n'
    'port_forwards=("5901:5900")\n'
)

SPICE_DEFINITION = (
    'guest_os="linux"\n'
    'disk_img="ubuntu/disk.qcow2"\n'
)


# ============ Process Fixtures ============

@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def sink() -> LogSink:
    return LogSink()
