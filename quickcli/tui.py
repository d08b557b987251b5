"""
Interactive terminal UI.

Shows the VM list (running VMs get a spinner), the shared status log and
a key-binding footer, and maps keys to the lifecycle and connection
actions. Actions run on the render loop thread, one at a time.
"""

import time

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from quickcli.config import Config
from quickcli.connect import connect_vm, force_spice_connect
from quickcli.keys import KEY_DOWN, KEY_ENTER, KEY_ESC, KEY_UP, KeyReader
from quickcli.lifecycle import start_vm, stop_vm
from quickcli.logsink import LogSink
from quickcli.utils import Spawner, spawn_detached
from quickcli.vms import VirtualMachine, get_vm_list, is_vm_running

SPINNER_FRAMES = ["-", "\\", "|", "/"]
TICK_SECS = 0.2
POLL_SECS = 0.05

KEY_BINDINGS = [
    ("r", "Start"),
    ("Enter", "Start & Connect"),
    ("c", "Connect running"),
    ("v", "Force Spice Connect"),
    ("s", "Stop"),
    ("j/k", "Navigate"),
    ("q/Esc", "Quit"),
]


class VmBrowser:
    """State and key handling for the interactive VM list."""

    def __init__(
        self,
        config: Config,
        vms: list[VirtualMachine] | None = None,
        sink: LogSink | None = None,
        spawner: Spawner = spawn_detached
    ):
        self.config = config
        self.vms = get_vm_list(config) if vms is None else vms
        self.sink = sink or LogSink(initial=["Application started."])
        self.spawner = spawner
        self.selected = 0
        self.spinner_index = 0

    @property
    def selected_vm(self) -> VirtualMachine | None:
        if not self.vms:
            return None
        return self.vms[self.selected]

    def update_spinner(self) -> None:
        self.spinner_index = (self.spinner_index + 1) % len(SPINNER_FRAMES)

    def move(self, delta: int) -> None:
        """Move the selection, wrapping around at both ends."""
        if self.vms:
            self.selected = (self.selected + delta) % len(self.vms)

    def handle_key(self, pressed: str) -> bool:
        """
        Apply a key press.

        Args:
            pressed: Normalized key (see quickcli.keys)

        Returns:
            False when the UI should exit, True otherwise
        """
        if pressed in ("q", KEY_ESC):
            return False
        if pressed in ("j", KEY_DOWN):
            self.move(1)
            return True
        if pressed in ("k", KEY_UP):
            self.move(-1)
            return True

        vm = self.selected_vm
        if vm is None:
            return True

        if pressed == "r":
            start_vm(vm, self.config, self.sink, self.spawner)
        elif pressed == KEY_ENTER:
            if is_vm_running(vm, self.config):
                self.sink.append(f"VM {vm.name} is already running")
                connect_vm(vm, self.config, self.sink, self.spawner)
            elif start_vm(vm, self.config, self.sink, self.spawner):
                connect_vm(vm, self.config, self.sink, self.spawner)
        elif pressed == "c":
            if is_vm_running(vm, self.config):
                connect_vm(vm, self.config, self.sink, self.spawner)
            else:
                self.sink.append(f"VM {vm.path} is not running; cannot connect.")
        elif pressed == "v":
            force_spice_connect(vm, self.config, self.sink, self.spawner)
        elif pressed == "s":
            stop_vm(vm, self.config, self.sink, self.spawner)

        return True

    def render_vm_list(self) -> Panel:
        lines = []
        spinner = SPINNER_FRAMES[self.spinner_index]
        for index, vm in enumerate(self.vms):
            marker = ">> " if index == self.selected else "   "
            if is_vm_running(vm, self.config):
                line = Text(f"{marker}{spinner} {vm.name}", style="bold green")
            else:
                line = Text(f"{marker}{vm.name}")
            if index == self.selected:
                line.stylize("reverse")
            lines.append(line)

        if not lines:
            lines.append(Text(f"No VM definitions in {self.config.quickemu_dir}", style="dim"))

        return Panel(Group(*lines), title="Quick-CLI - VMs")

    def render_logs(self, height: int) -> Panel:
        lines = [Text(line) for line in self.sink.tail(max(height, 1))]
        return Panel(Group(*lines), title="Logs")

    def render_footer(self) -> Panel:
        footer = Text("Keybindings: ")
        for index, (key_name, action) in enumerate(KEY_BINDINGS):
            if index:
                footer.append(" | ")
            footer.append(f"[{key_name}] {action}", style="yellow")
        return Panel(footer, title="Footer")

    def render(self, console_height: int) -> Layout:
        log_height = max(int(console_height * 0.3) - 2, 1)
        layout = Layout()
        layout.split_column(
            Layout(self.render_vm_list(), name="vms", ratio=6),
            Layout(self.render_logs(log_height), name="logs", ratio=3),
            Layout(self.render_footer(), name="footer", size=3),
        )
        return layout


def run_tui(config: Config, console: Console | None = None) -> None:
    """
    Run the interactive UI until the operator quits.

    Args:
        config: Configuration
        console: Console to render on
    """
    console = console or Console()
    browser = VmBrowser(config)
    reader = KeyReader()
    reader.start()

    last_tick = time.monotonic()
    try:
        with Live(console=console, screen=True, auto_refresh=False) as live:
            while True:
                if time.monotonic() - last_tick >= TICK_SECS:
                    browser.update_spinner()
                    last_tick = time.monotonic()

                live.update(browser.render(console.size.height), refresh=True)

                pressed = reader.read_key()
                if pressed is None:
                    time.sleep(POLL_SECS)
                    continue
                if not browser.handle_key(pressed):
                    break
    except KeyboardInterrupt:
        pass
    finally:
        reader.stop()
