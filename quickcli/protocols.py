"""
Remote-display protocol detection.

Reads a quickemu VM definition and decides which protocol the VM exposes
from its port_forwards declaration. Anything that is not an RDP or VNC
forward is treated as SPICE, quickemu's native display channel.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

PORT_FORWARDS_MARKER = "port_forwards"
RDP_GUEST_PORT = 3389
VNC_GUEST_PORT = 5900


class ProtocolKind(str, Enum):
    RDP = "rdp"
    VNC = "vnc"
    SPICE = "spice"


@dataclass(frozen=True)
class RemoteProtocol:
    """A remote-display protocol and the host port it is reachable on."""

    kind: ProtocolKind
    port: int

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port number: {self.port}")

    @classmethod
    def rdp(cls, port: int) -> "RemoteProtocol":
        return cls(ProtocolKind.RDP, port)

    @classmethod
    def vnc(cls, port: int) -> "RemoteProtocol":
        return cls(ProtocolKind.VNC, port)

    @classmethod
    def spice(cls, port: int) -> "RemoteProtocol":
        return cls(ProtocolKind.SPICE, port)

    @property
    def is_forwarded(self) -> bool:
        """True for protocols reached through a guest port forward (RDP/VNC)."""
        return self.kind in (ProtocolKind.RDP, ProtocolKind.VNC)

    def __str__(self) -> str:
        return f"{self.kind.value.upper()}:{self.port}"


def _parse_port(value: str) -> int | None:
    value = value.strip()
    # int() would also accept signs and underscores
    if not (value.isascii() and value.isdigit()):
        return None
    port = int(value)
    if port <= 65535:
        return port
    return None


def classify(definition_text: str, default_spice_port: int) -> RemoteProtocol:
    """
    Classify the remote-display protocol declared by a VM definition.

    Only the first line containing the port_forwards marker is
    considered. Within it, the quoted "host:guest" mappings between the
    first '(' and the last ')' are checked in order; guest port 3389 means
    RDP and 5900 means VNC. Malformed mappings are skipped.

    Args:
        definition_text: Contents of the VM definition file
        default_spice_port: Port to report when falling back to SPICE

    Returns:
        The detected protocol, or SPICE on default_spice_port
    """
    for line in definition_text.splitlines():
        if PORT_FORWARDS_MARKER not in line:
            continue

        start = line.find("(")
        end = line.rfind(")")
        if start != -1 and end > start:
            forwards = line[start + 1:end]
            mappings = [m for m in forwards.split('"') if m.strip()]
            for mapping in mappings:
                parts = mapping.split(":")
                if len(parts) != 2:
                    continue
                guest_port = _parse_port(parts[1])
                host_port = _parse_port(parts[0])
                if guest_port is None or host_port is None:
                    logger.debug("Skipping malformed port mapping: %r", mapping)
                    continue
                if guest_port == RDP_GUEST_PORT:
                    return RemoteProtocol.rdp(host_port)
                if guest_port == VNC_GUEST_PORT:
                    return RemoteProtocol.vnc(host_port)
        # First match wins: later port_forwards lines are never consulted
        break

    return RemoteProtocol.spice(default_spice_port)


def classify_file(path: Path, default_spice_port: int) -> RemoteProtocol:
    """
    Classify a VM definition file, re-reading it on every call.

    An unreadable file degrades to SPICE on default_spice_port.
    """
    try:
        text = path.read_text(errors="replace")
    except OSError as e:
        logger.debug("Could not read VM definition %s: %s", path, e)
        return RemoteProtocol.spice(default_spice_port)
    return classify(text, default_spice_port)
