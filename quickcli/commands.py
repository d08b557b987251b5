"""
CLI command implementations.

Contains the handlers behind the quick-cli Click commands.
"""

import json
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from quickcli.config import Config
from quickcli.connect import connect_vm, force_spice_connect
from quickcli.lifecycle import start_vm, stop_vm
from quickcli.logsink import LogSink
from quickcli.profiles import resolve_profile
from quickcli.vms import VirtualMachine, find_vm, get_vm_list, is_vm_running

console = Console()


def _get_vm_or_exit(config: Config, vm_name: str) -> VirtualMachine:
    vm = find_vm(config, vm_name)
    if vm is None:
        console.print(f"[red]VM not found: {vm_name}[/]")
        console.print(f"[dim]Looked in: {config.quickemu_dir}[/]")
        sys.exit(1)
    return vm


def _console_sink() -> LogSink:
    return LogSink(console=console)


def show_status(config: Config, as_json: bool) -> None:
    """
    Show all VMs with their protocol, state and connection profile.

    Args:
        config: Configuration
        as_json: Output as JSON
    """
    vms = get_vm_list(config)

    if not vms:
        if as_json:
            console.print_json("[]")
        else:
            console.print(f"[yellow]No VM definitions found in {config.quickemu_dir}[/]")
        return

    rows = []
    for vm in vms:
        protocol = vm.protocol(config)
        profile = resolve_profile(vm.name, config.overrides, config.profile_dir)
        rows.append({
            "name": vm.name,
            "protocol": protocol.kind.value,
            "port": protocol.port,
            "running": is_vm_running(vm, config, protocol),
            "profile": str(profile) if profile else None,
            "definition": str(vm.path),
        })

    if as_json:
        console.print_json(json.dumps(rows))
        return

    console.print()
    table = Table(title="quickemu VMs")
    table.add_column("VM Name", style="cyan")
    table.add_column("Protocol", style="magenta")
    table.add_column("Port", justify="right")
    table.add_column("State", style="yellow")
    table.add_column("Profile", style="green")

    for row in rows:
        state = "[green]running[/]" if row["running"] else "[dim]stopped[/]"
        table.add_row(
            row["name"],
            row["protocol"].upper(),
            str(row["port"]),
            state,
            row["profile"] or "[dim]-[/]",
        )

    console.print(table)
    running = sum(1 for row in rows if row["running"])
    console.print(f"\n[dim]Total: {len(rows)} VMs, running: {running}[/]")
    console.print(f"[dim]Platform: {config.os_type.value}, remote app: {config.remote_app}[/]")


def start_vm_cmd(config: Config, vm_name: str) -> None:
    """
    Start a VM.

    Args:
        config: Configuration
        vm_name: Name of the VM to start
    """
    vm = _get_vm_or_exit(config, vm_name)

    if is_vm_running(vm, config):
        console.print(f"[yellow]VM {vm.name} is already running[/]")
        return

    console.print(Panel.fit(f"[bold green]Starting {vm.name}[/]", border_style="green"))
    if start_vm(vm, config, _console_sink()):
        console.print(f"\n[green]✓ VM {vm.name} started[/]")
    else:
        console.print(f"\n[red]✗ VM {vm.name} failed to start[/]")
        sys.exit(1)


def stop_vm_cmd(config: Config, vm_name: str) -> None:
    """
    Stop a VM.

    Args:
        config: Configuration
        vm_name: Name of the VM to stop
    """
    vm = _get_vm_or_exit(config, vm_name)

    if not stop_vm(vm, config, _console_sink()):
        sys.exit(1)


def connect_vm_cmd(config: Config, vm_name: str, force: bool) -> None:
    """
    Connect to a running VM.

    Args:
        config: Configuration
        vm_name: Name of the VM to connect to
        force: Connect even if the VM does not look running
    """
    vm = _get_vm_or_exit(config, vm_name)
    sink = _console_sink()

    if not force and not is_vm_running(vm, config):
        sink.append(f"VM {vm.path} is not running; cannot connect.")
        console.print("[dim]Use --force to try anyway, or 'quick-cli up' to start it first[/]")
        sys.exit(1)

    if not connect_vm(vm, config, sink):
        sys.exit(1)


def spice_connect_cmd(config: Config, vm_name: str) -> None:
    """
    Connect to a VM over SPICE regardless of its declared protocol.

    Args:
        config: Configuration
        vm_name: Name of the VM to connect to
    """
    vm = _get_vm_or_exit(config, vm_name)

    if not force_spice_connect(vm, config, _console_sink()):
        sys.exit(1)


def up_vm_cmd(config: Config, vm_name: str) -> None:
    """
    Start a VM and connect to it.

    Args:
        config: Configuration
        vm_name: Name of the VM
    """
    vm = _get_vm_or_exit(config, vm_name)
    sink = _console_sink()

    if is_vm_running(vm, config):
        sink.append(f"VM {vm.name} is already running")
    elif not start_vm(vm, config, sink):
        sys.exit(1)

    if not connect_vm(vm, config, sink):
        sys.exit(1)
