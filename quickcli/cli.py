"""
CLI setup and entry point.

Defines the Click command group and registers all commands.
"""

import logging
from pathlib import Path

import click
from rich.logging import RichHandler

from quickcli import __version__
from quickcli.commands import (
    connect_vm_cmd,
    show_status,
    spice_connect_cmd,
    start_vm_cmd,
    stop_vm_cmd,
    up_vm_cmd,
)
from quickcli.config import load_config


@click.group()
@click.version_option(version=__version__, prog_name="quick-cli")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: ~/.quick-cli.conf or $QUICK_CLI_CONFIG)"
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show debug logging"
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, debug: bool):
    """
    quick-cli - start, stop and connect to quickemu VMs.

    Picks RDP, VNC or SPICE from each VM's port forwards and launches the
    first remote viewer available on this platform.
    """
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
        )
    ctx.obj = load_config(config_path)


@cli.command("list")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Output as JSON"
)
@click.pass_obj
def list_cmd(config, as_json: bool):
    """Show VMs with their protocol, state and connection profile."""
    show_status(config, as_json)


@cli.command("start")
@click.argument("vm_name", required=True)
@click.pass_obj
def start(config, vm_name: str):
    """Start a VM (headless for RDP/VNC VMs)."""
    start_vm_cmd(config, vm_name)


@cli.command("stop")
@click.argument("vm_name", required=True)
@click.pass_obj
def stop(config, vm_name: str):
    """Ask quickemu to kill a VM."""
    stop_vm_cmd(config, vm_name)


@cli.command("connect")
@click.argument("vm_name", required=True)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Connect even if the VM does not look running"
)
@click.pass_obj
def connect(config, vm_name: str, force: bool):
    """Open a remote viewer for a running VM."""
    connect_vm_cmd(config, vm_name, force)


@cli.command("spice")
@click.argument("vm_name", required=True)
@click.pass_obj
def spice(config, vm_name: str):
    """Open a SPICE viewer regardless of the VM's protocol."""
    spice_connect_cmd(config, vm_name)


@cli.command("up")
@click.argument("vm_name", required=True)
@click.pass_obj
def up(config, vm_name: str):
    """Start a VM if needed, then connect to it."""
    up_vm_cmd(config, vm_name)


@cli.command("tui")
@click.pass_obj
def tui(config):
    """Interactive VM browser."""
    from quickcli.tui import run_tui

    run_tui(config)
