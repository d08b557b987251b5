"""
Tests for the VM catalog and liveness checks.
"""

import os
import socket
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from quickcli.config import Platform
from quickcli.protocols import RemoteProtocol
from quickcli.utils import is_port_open
from quickcli.vms import (
    VirtualMachine,
    find_vm,
    get_vm_list,
    is_monitor_alive,
    is_vm_running,
)

from conftest import RDP_DEFINITION, SPICE_DEFINITION


def _stat_result(mode: int, mtime: float) -> os.stat_result:
    return os.stat_result((mode, 0, 0, 1, 0, 0, 0, mtime, mtime, mtime))


@pytest.fixture
def listening_port():
    """A TCP port on 127.0.0.1 that accepts connections."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def closed_port():
    """A TCP port on 127.0.0.1 with nothing listening."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


class TestVmCatalog:
    """Tests for listing and finding VM definitions."""

    def test_lists_conf_files_only(self, config, quickemu_dir, make_vm):
        make_vm("win11", RDP_DEFINITION)
        make_vm("Ubuntu", SPICE_DEFINITION)
        (quickemu_dir / "notes.txt").write_text("hello")
        (quickemu_dir / "win11").mkdir()

        names = [vm.name for vm in get_vm_list(config)]
        assert names == ["Ubuntu", "win11"]

    def test_missing_directory_is_empty(self, config, tmp_path):
        config.quickemu_dir = tmp_path / "nope"
        assert get_vm_list(config) == []

    def test_identity(self, quickemu_dir):
        vm = VirtualMachine(quickemu_dir / "Windows-11.conf")
        assert vm.name == "Windows-11"
        assert vm.key == "windows-11"

    def test_find_vm(self, config, make_vm):
        make_vm("Win11", RDP_DEFINITION)

        assert find_vm(config, "Win11").name == "Win11"
        assert find_vm(config, "win11").name == "Win11"
        assert find_vm(config, "Win11.conf").name == "Win11"
        assert find_vm(config, "macos") is None


class TestPortProbe:
    """Tests for is_port_open()."""

    def test_open_port(self, listening_port):
        assert is_port_open("127.0.0.1", listening_port) is True

    def test_closed_port(self, closed_port):
        assert is_port_open("127.0.0.1", closed_port) is False

    def test_invalid_port(self):
        assert is_port_open("127.0.0.1", 70000) is False


class TestMonitorSocket:
    """Tests for the SPICE monitor socket heartbeat."""

    def test_fresh_socket_alive(self):
        st = _stat_result(stat.S_IFSOCK | 0o600, mtime=1000.0)
        with patch.object(Path, "stat", return_value=st):
            assert is_monitor_alive(Path("/x/vm-monitor.socket"), now=1005.0) is True

    def test_stale_socket_not_alive(self):
        st = _stat_result(stat.S_IFSOCK | 0o600, mtime=1000.0)
        with patch.object(Path, "stat", return_value=st):
            assert is_monitor_alive(Path("/x/vm-monitor.socket"), now=1010.0) is False

    def test_future_mtime_not_alive(self):
        st = _stat_result(stat.S_IFSOCK | 0o600, mtime=2000.0)
        with patch.object(Path, "stat", return_value=st):
            assert is_monitor_alive(Path("/x/vm-monitor.socket"), now=1000.0) is False

    def test_regular_file_not_alive(self, tmp_path):
        path = tmp_path / "vm-monitor.socket"
        path.write_text("")
        assert is_monitor_alive(path) is False

    def test_directory_not_alive(self, tmp_path):
        assert is_monitor_alive(tmp_path) is False

    def test_missing_not_alive(self, tmp_path):
        assert is_monitor_alive(tmp_path / "missing.socket") is False


class TestIsVmRunning:
    """Tests for is_vm_running()."""

    def test_rdp_closed_port_not_running(self, config, make_vm, closed_port):
        vm = make_vm("win11", f'port_forwards=("{closed_port}:3389")\n')
        assert vm.protocol(config) == RemoteProtocol.rdp(closed_port)
        assert is_vm_running(vm, config) is False

    def test_rdp_open_port_running(self, config, make_vm, listening_port):
        vm = make_vm("win11", f'port_forwards=("{listening_port}:3389")\n')
        assert is_vm_running(vm, config) is True

    def test_spice_checks_monitor_socket(self, config, make_vm, quickemu_dir):
        vm = make_vm("ubuntu", SPICE_DEFINITION)
        expected = quickemu_dir / "ubuntu" / "ubuntu-monitor.socket"

        with patch("quickcli.vms.is_monitor_alive", return_value=True) as alive:
            assert is_vm_running(vm, config) is True
        alive.assert_called_once_with(expected)

    def test_spice_on_windows_probes_default_port(self, config, make_vm):
        config.os_type = Platform.WINDOWS
        vm = make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.vms.is_port_open", return_value=False) as probe:
            assert is_vm_running(vm, config) is False
        probe.assert_called_once_with("127.0.0.1", 5930, 0.2)

    def test_uses_given_protocol(self, config, make_vm):
        vm = make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.vms.is_port_open", return_value=True) as probe:
            assert is_vm_running(vm, config, RemoteProtocol.vnc(5901)) is True
        probe.assert_called_once_with("127.0.0.1", 5901, 0.2)
