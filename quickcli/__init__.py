"""
quick-cli - quickemu VM launcher

This package lists quickemu VM definitions, starts and stops them, and
connects to them through whichever remote viewer is available.
"""

__version__ = "0.1.0"

from quickcli.config import Config, Platform, load_config
from quickcli.connect import connect_vm, force_spice_connect
from quickcli.lifecycle import start_vm, stop_vm
from quickcli.logsink import LogSink
from quickcli.profiles import resolve_profile
from quickcli.protocols import ProtocolKind, RemoteProtocol, classify
from quickcli.vms import VirtualMachine, get_vm_list, is_vm_running

__all__ = [
    "__version__",
    "Config",
    "Platform",
    "load_config",
    "connect_vm",
    "force_spice_connect",
    "start_vm",
    "stop_vm",
    "LogSink",
    "resolve_profile",
    "ProtocolKind",
    "RemoteProtocol",
    "classify",
    "VirtualMachine",
    "get_vm_list",
    "is_vm_running",
]
