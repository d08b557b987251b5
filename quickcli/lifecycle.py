"""
VM start/stop through quickemu.
"""

import time
from collections.abc import Callable

from quickcli.config import Config, Platform
from quickcli.logsink import LogSink
from quickcli.utils import Spawner, spawn_detached
from quickcli.vms import VirtualMachine

# Time for quickemu to bind its ports before anything probes or connects
SETTLE_DELAY = 2.0


def get_quickemu_cmd(config: Config) -> str:
    """Name of the quickemu launcher for the configured platform."""
    if config.os_type == Platform.WINDOWS:
        return "quickemu.exe"
    return "quickemu"


def start_vm(
    vm: VirtualMachine,
    config: Config,
    sink: LogSink,
    spawner: Spawner = spawn_detached,
    sleep: Callable[[float], None] | None = None
) -> bool:
    """
    Start a VM with quickemu.

    VMs exposing RDP or VNC are started headless (--display none) since
    they are meant to be used through that channel. After a successful
    spawn, waits SETTLE_DELAY seconds before returning.

    Args:
        vm: VM to start
        config: Configuration
        sink: Log receiving progress and errors
        spawner: Function spawning a command
        sleep: Function used for the settle delay (defaults to time.sleep)

    Returns:
        True if the quickemu process was spawned
    """
    cmd = [get_quickemu_cmd(config), "--vm", str(vm.path)]

    if vm.protocol(config).is_forwarded:
        sink.append(f"Launching VM {vm.path} headless...")
        cmd.extend(["--display", "none"])
    else:
        sink.append(f"Launching VM {vm.path} normally...")

    outcome = spawner(cmd, None)
    if not outcome.success:
        sink.append(f"Error launching VM {vm.path}: {outcome.cause}")
        return False

    sleep = sleep or time.sleep
    sleep(SETTLE_DELAY)
    return True


def stop_vm(
    vm: VirtualMachine,
    config: Config,
    sink: LogSink,
    spawner: Spawner = spawn_detached
) -> bool:
    """
    Ask quickemu to kill a VM.

    Success only means the kill request was issued, not that the VM
    has terminated.

    Args:
        vm: VM to stop
        config: Configuration
        sink: Log receiving progress and errors
        spawner: Function spawning a command

    Returns:
        True if the kill command was spawned
    """
    sink.append(f"Stopping VM {vm.path}...")
    outcome = spawner([get_quickemu_cmd(config), "--kill", "--vm", str(vm.path)], None)

    if outcome.success:
        sink.append(f"Stop command issued for {vm.path}.")
        return True

    sink.append(f"Error stopping VM {vm.path}: {outcome.cause}")
    return False
