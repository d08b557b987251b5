"""
Background keyboard reader for the interactive UI.

readchar blocks until a key is pressed, so keys are read on a daemon
thread and handed to the render loop through a queue.
"""

import queue
import threading

from readchar import key, readkey

KEY_UP = "KEY_UP"
KEY_DOWN = "KEY_DOWN"
KEY_ENTER = "KEY_ENTER"
KEY_ESC = "KEY_ESC"

_KEY_MAP = {
    key.UP: KEY_UP,
    key.DOWN: KEY_DOWN,
    key.ENTER: KEY_ENTER,
    key.ESC: KEY_ESC,
    "\r": KEY_ENTER,
    "\n": KEY_ENTER,
    # Windows console arrow keys
    "\x00H": KEY_UP,
    "\x00P": KEY_DOWN,
    "\xe0H": KEY_UP,
    "\xe0P": KEY_DOWN,
}


def normalize_key(raw: str) -> str:
    """Map a raw key sequence to a KEY_* name, or return it unchanged."""
    return _KEY_MAP.get(raw, raw)


class KeyReader:
    """Reads keys on a daemon thread; poll with read_key()."""

    def __init__(self) -> None:
        self._queue: queue.Queue[str] = queue.Queue()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="KeyReader")

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                raw = readkey()
            except (OSError, EOFError):
                # stdin is gone; nothing more to read
                return
            except KeyboardInterrupt:
                raw = "q"
            self._queue.put(raw)

    def read_key(self) -> str | None:
        """Return the next pressed key, or None if none is pending."""
        try:
            return normalize_key(self._queue.get_nowait())
        except queue.Empty:
            return None
