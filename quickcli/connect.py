"""
Viewer launching for VM connections.

Connecting to a VM means trying an ordered list of external viewers until
one of them spawns. The lists are kept in a table keyed by
(platform, protocol) and evaluated by a single cascade runner. Every
attempt and its outcome is appended to the LogSink.

A saved connection profile, when one resolves, is tried first and
preempts the protocol-specific viewers. RDP and VNC VMs whose viewers
all fail fall back to the SPICE viewers.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from quickcli.config import Config, Platform
from quickcli.logsink import LogSink
from quickcli.profiles import resolve_profile
from quickcli.protocols import ProtocolKind, RemoteProtocol
from quickcli.utils import LOCALHOST, Spawner, spawn_detached
from quickcli.vms import VirtualMachine


@dataclass(frozen=True)
class Attempt:
    """
    One viewer invocation in a cascade.

    label, command and args are str.format templates over the
    ConnectionContext fields (remote_app, host, port, name, profile).
    """

    label: str
    command: str
    args: tuple[str, ...] = ()
    # Only tried when a profile resolved and it has not been tried yet
    needs_profile: bool = False
    # Provide DISPLAY=:0 when the environment has no DISPLAY
    x11_display: bool = False

    def render(self, ctx: "ConnectionContext") -> tuple[str, list[str]]:
        values = ctx.template_values()
        label = self.label.format(**values)
        argv = [self.command.format(**values)]
        argv.extend(arg.format(**values) for arg in self.args)
        return label, argv

    def environment(self) -> dict[str, str] | None:
        if not self.x11_display:
            return None
        return {"DISPLAY": os.environ.get("DISPLAY", ":0")}


@dataclass
class ConnectionContext:
    """Mutable state shared by the attempts of one connection."""

    name: str
    remote_app: str
    port: int
    host: str = LOCALHOST
    profile: Path | None = None
    profile_tried: bool = False

    def template_values(self) -> dict[str, str]:
        return {
            "name": self.name,
            "remote_app": self.remote_app,
            "host": self.host,
            "port": str(self.port),
            "profile": str(self.profile) if self.profile else "",
        }


PROFILE_ATTEMPT = Attempt(
    "{remote_app} with profile {profile}",
    "{remote_app}",
    ("-c", "{profile}"),
    needs_profile=True,
    x11_display=True,
)

CASCADES: dict[tuple[Platform, ProtocolKind], tuple[Attempt, ...]] = {
    # RDP
    (Platform.WINDOWS, ProtocolKind.RDP): (
        Attempt("Windows RDP client", "mstsc.exe", ("/v:{host}:{port}",)),
    ),
    (Platform.MACOS, ProtocolKind.RDP): (
        Attempt("macOS RDP handler", "open", ("rdp://{host}:{port}",)),
    ),
    (Platform.LINUX, ProtocolKind.RDP): (
        Attempt(
            "{remote_app} RDP",
            "{remote_app}",
            ("--quiet", "-p", "rdp", "rdp://{host}:{port}"),
            x11_display=True,
        ),
        Attempt(
            "xfreerdp",
            "xfreerdp",
            ("/v:{host}:{port}", "/f", "/dynamic-resolution"),
            x11_display=True,
        ),
    ),
    # VNC
    (Platform.WINDOWS, ProtocolKind.VNC): (
        Attempt("TightVNC viewer", "tvnviewer", ("{host}:{port}",)),
        Attempt("vncviewer", "vncviewer", ("{host}:{port}",)),
    ),
    (Platform.MACOS, ProtocolKind.VNC): (
        Attempt("macOS Screen Sharing", "open", ("vnc://{host}:{port}",)),
    ),
    (Platform.LINUX, ProtocolKind.VNC): (
        Attempt(
            "{remote_app} VNC",
            "{remote_app}",
            ("--quiet", "-p", "vnc", "vnc://{host}:{port}"),
            x11_display=True,
        ),
        Attempt("vncviewer", "vncviewer", ("{host}:{port}",), x11_display=True),
    ),
    # SPICE
    (Platform.WINDOWS, ProtocolKind.SPICE): (
        PROFILE_ATTEMPT,
        Attempt("virt-viewer", "virt-viewer", ("spice://{host}:{port}",)),
    ),
    (Platform.MACOS, ProtocolKind.SPICE): (
        PROFILE_ATTEMPT,
        Attempt("macOS SPICE handler", "open", ("spice://{host}:{port}",)),
    ),
    (Platform.LINUX, ProtocolKind.SPICE): (
        Attempt(
            "{remote_app} SPICE",
            "{remote_app}",
            ("--quiet", "-p", "spice", "spice://{host}:{port}"),
            x11_display=True,
        ),
        Attempt(
            "spicy",
            "spicy",
            ("--title", "{name}", "-h", "{host}", "-p", "{port}"),
            x11_display=True,
        ),
        Attempt(
            "remote-viewer",
            "remote-viewer",
            ("spice://{host}:{port}",),
            x11_display=True,
        ),
    ),
}


def run_cascade(
    attempts: tuple[Attempt, ...],
    ctx: ConnectionContext,
    sink: LogSink,
    spawner: Spawner = spawn_detached
) -> bool:
    """
    Try attempts in order until one spawns.

    Args:
        attempts: Ordered viewer invocations
        ctx: Connection state used to render the invocations
        sink: Log receiving one line per attempt and one per outcome
        spawner: Function spawning a command (see utils.spawn_detached)

    Returns:
        True as soon as an attempt spawns, False if all of them failed
    """
    for attempt in attempts:
        if attempt.needs_profile:
            if ctx.profile is None or ctx.profile_tried:
                continue
            ctx.profile_tried = True

        label, argv = attempt.render(ctx)
        sink.append(f"Launching {label}: {' '.join(argv)}")
        outcome = spawner(argv, attempt.environment())

        if outcome.success:
            sink.append(f"{label} launched")
            return True

        sink.append(f"{label} failed to launch: {outcome.cause}")

    return False


def _run_protocol(
    protocol: RemoteProtocol,
    ctx: ConnectionContext,
    config: Config,
    sink: LogSink,
    spawner: Spawner
) -> bool:
    ctx.port = protocol.port
    if run_cascade(CASCADES[(config.os_type, protocol.kind)], ctx, sink, spawner):
        return True

    if protocol.kind == ProtocolKind.SPICE:
        return False

    sink.append(
        f"{protocol.kind.value.upper()} viewers unavailable for {ctx.name}, "
        f"falling back to SPICE on port {config.default_spice_port}"
    )
    spice = RemoteProtocol.spice(config.default_spice_port)
    return _run_protocol(spice, ctx, config, sink, spawner)


def connect_vm(
    vm: VirtualMachine,
    config: Config,
    sink: LogSink,
    spawner: Spawner = spawn_detached
) -> bool:
    """
    Open a viewer for a VM.

    A resolved connection profile is launched first; if it spawns, no
    other viewer is tried. Otherwise the protocol-specific cascade for
    the configured platform runs, with RDP/VNC falling back to SPICE.

    Args:
        vm: VM to connect to
        config: Configuration (platform, remote app, overrides, ports)
        sink: Log receiving every attempt and outcome
        spawner: Function spawning a command

    Returns:
        True if some viewer process was spawned
    """
    profile = resolve_profile(vm.name, config.overrides, config.profile_dir)
    ctx = ConnectionContext(
        name=vm.name,
        remote_app=config.remote_app,
        port=config.default_spice_port,
        profile=profile,
    )

    if profile is not None:
        sink.append(f"Profile found for {vm.name}: {profile}")
        if run_cascade((PROFILE_ATTEMPT,), ctx, sink, spawner):
            return True
        sink.append(f"Trying protocol viewers for {vm.name}")

    protocol = vm.protocol(config)
    sink.append(f"Connecting to {vm.name} via {protocol} on {config.os_type.value}")

    if _run_protocol(protocol, ctx, config, sink, spawner):
        return True

    sink.append(f"No viewer could be launched for {vm.name}")
    return False


def force_spice_connect(
    vm: VirtualMachine,
    config: Config,
    sink: LogSink,
    spawner: Spawner = spawn_detached
) -> bool:
    """
    Open a SPICE viewer for a VM, ignoring its declared protocol.

    Useful for misclassified or headless VMs. On Windows and macOS a
    resolved profile is tried before the SPICE viewer.

    Args:
        vm: VM to connect to
        config: Configuration
        sink: Log receiving every attempt and outcome
        spawner: Function spawning a command

    Returns:
        True if some viewer process was spawned
    """
    sink.append(f"Force SPICE connect for {vm.name}")
    ctx = ConnectionContext(
        name=vm.name,
        remote_app=config.remote_app,
        port=config.default_spice_port,
        profile=resolve_profile(vm.name, config.overrides, config.profile_dir),
    )

    spice = RemoteProtocol.spice(config.default_spice_port)
    if _run_protocol(spice, ctx, config, sink, spawner):
        return True

    sink.append(f"No viewer could be launched for {vm.name}")
    return False
