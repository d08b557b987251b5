"""
VM catalog and liveness functions.

Handles listing quickemu VM definitions, looking VMs up by name, and
checking whether a VM is currently running.
"""

import logging
import stat
import time
from dataclasses import dataclass
from pathlib import Path

from quickcli.config import Config, Platform
from quickcli.protocols import RemoteProtocol, classify_file
from quickcli.utils import LOCALHOST, PROBE_TIMEOUT, is_port_open

logger = logging.getLogger(__name__)

VM_DEFINITION_SUFFIX = ".conf"
MONITOR_HEARTBEAT_SECS = 10.0


@dataclass(frozen=True)
class VirtualMachine:
    """A quickemu VM, identified by its definition file."""

    path: Path

    @property
    def name(self) -> str:
        """Display name: the definition file name without extension."""
        return self.path.stem

    @property
    def key(self) -> str:
        """Lower-cased name used for matching."""
        return self.path.stem.lower()

    def monitor_socket(self, quickemu_dir: Path) -> Path:
        """quickemu's QEMU monitor socket for this VM."""
        return quickemu_dir / self.name / f"{self.name}-monitor.socket"

    def protocol(self, config: Config) -> RemoteProtocol:
        """Classify this VM's remote-display protocol (re-reads the file)."""
        return classify_file(self.path, config.default_spice_port)


def get_vm_list(config: Config) -> list[VirtualMachine]:
    """
    Get all VM definitions in the quickemu directory.

    Args:
        config: Configuration providing quickemu_dir

    Returns:
        VMs sorted by lower-cased name; empty if the directory is missing
    """
    vms = []
    try:
        entries = list(config.quickemu_dir.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", config.quickemu_dir, e)
        return []

    for entry in entries:
        try:
            if entry.suffix == VM_DEFINITION_SUFFIX and entry.is_file():
                vms.append(VirtualMachine(entry))
        except OSError:
            continue

    return sorted(vms, key=lambda vm: (vm.key, vm.name))


def find_vm(config: Config, name: str) -> VirtualMachine | None:
    """
    Look a VM up by name.

    An exact name match wins over a case-insensitive one.

    Args:
        config: Configuration providing quickemu_dir
        name: VM name, with or without the .conf suffix

    Returns:
        The matching VM, or None if not found
    """
    if name.endswith(VM_DEFINITION_SUFFIX):
        name = name[: -len(VM_DEFINITION_SUFFIX)]

    vms = get_vm_list(config)
    for vm in vms:
        if vm.name == name:
            return vm
    for vm in vms:
        if vm.key == name.lower():
            return vm
    return None


def is_monitor_alive(socket_path: Path, now: float | None = None) -> bool:
    """
    Check a quickemu monitor socket for signs of a running VM.

    The socket must exist, be a socket, and have been modified within
    the last MONITOR_HEARTBEAT_SECS seconds.

    Args:
        socket_path: Path of the monitor socket
        now: Current time (defaults to time.time())

    Returns:
        True if the socket looks alive
    """
    try:
        st = socket_path.stat()
    except OSError:
        return False

    if not stat.S_ISSOCK(st.st_mode):
        return False

    age = (time.time() if now is None else now) - st.st_mtime
    # An mtime in the future is treated as stale
    return 0 <= age < MONITOR_HEARTBEAT_SECS


def is_vm_running(
    vm: VirtualMachine,
    config: Config,
    protocol: RemoteProtocol | None = None
) -> bool:
    """
    Determine whether a VM is currently running.

    RDP and VNC VMs are probed on their forwarded host port. SPICE VMs
    are checked through the monitor socket heartbeat, except on Windows
    where the default SPICE port is probed instead.

    Args:
        vm: VM to check
        config: Configuration (platform, default SPICE port)
        protocol: Pre-classified protocol; classified from the file if None

    Returns:
        True if the VM appears to be running
    """
    protocol = protocol or vm.protocol(config)

    if protocol.is_forwarded:
        return is_port_open(LOCALHOST, protocol.port, PROBE_TIMEOUT)

    if config.os_type == Platform.WINDOWS:
        return is_port_open(LOCALHOST, config.default_spice_port, PROBE_TIMEOUT)

    return is_monitor_alive(vm.monitor_socket(config.quickemu_dir))
