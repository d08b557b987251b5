"""
Utility functions for launching external programs and probing ports.

Provides wrappers around subprocess and socket for spawning detached
viewer/hypervisor processes and for point-in-time TCP probes.
"""

import os
import socket
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass

LOCALHOST = "127.0.0.1"
PROBE_TIMEOUT = 0.2


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of trying to spawn one external program."""

    success: bool
    cause: str | None = None

    @classmethod
    def ok(cls) -> "AttemptOutcome":
        return cls(True)

    @classmethod
    def failed(cls, cause: str) -> "AttemptOutcome":
        return cls(False, cause)


Spawner = Callable[[list[str], Mapping[str, str] | None], AttemptOutcome]


def spawn_detached(
    cmd: list[str],
    env: Mapping[str, str] | None = None
) -> AttemptOutcome:
    """
    Spawn a command detached from the terminal and return immediately.

    The child's stdin/stdout/stderr are discarded and its exit status is
    never collected. Success only means the OS created the process.

    Args:
        cmd: Command and arguments as a list
        env: Extra environment variables for the child

    Returns:
        AttemptOutcome describing whether the process was created
    """
    child_env = None
    if env:
        child_env = dict(os.environ)
        child_env.update(env)

    kwargs = {}
    if os.name == "posix":
        kwargs["start_new_session"] = True

    try:
        subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=child_env,
            **kwargs
        )
    except FileNotFoundError:
        return AttemptOutcome.failed("command not found")
    except (OSError, ValueError) as e:
        return AttemptOutcome.failed(f"spawn error: {e}")

    return AttemptOutcome.ok()


def is_port_open(host: str, port: int, timeout: float = PROBE_TIMEOUT) -> bool:
    """
    Check whether a TCP port accepts connections.

    Args:
        host: Address to connect to
        port: TCP port
        timeout: Connect timeout in seconds

    Returns:
        True if the connection succeeded, False on refusal, timeout or
        any other error
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (OSError, ValueError, OverflowError):
        return False
