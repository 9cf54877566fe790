"""Terminal primitives for the plain console mode: key reads and resizes."""

import shutil
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO


@contextmanager
def cbreak(stream: TextIO = sys.stdin) -> Iterator[None]:
    """Put the terminal in cbreak mode so single key presses can be read."""
    if sys.platform == "win32" or not stream.isatty():
        yield
        return

    import termios
    import tty

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def read_key(stream: TextIO = sys.stdin) -> str | None:
    """Block for one key. Returns None at end of input."""
    ch = stream.read(1)
    return ch or None


class ResizeWatcher:
    """Blocking wait for terminal size changes, fed by SIGWINCH.

    install() must be called from the main thread; wait() may then be called
    from any thread.
    """

    def __init__(self) -> None:
        self._changed = threading.Event()
        self._installed = False
        self._previous: object = None

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> bool:
        """Register the signal handler. Returns False where SIGWINCH is missing."""
        if not hasattr(signal, "SIGWINCH"):
            return False
        self._previous = signal.signal(signal.SIGWINCH, self._on_signal)
        self._installed = True
        return True

    def uninstall(self) -> None:
        """Put back the handler that was in place before install()."""
        if not self._installed:
            return
        previous = self._previous if self._previous is not None else signal.SIG_DFL
        signal.signal(signal.SIGWINCH, previous)
        self._installed = False

    def _on_signal(self, signum: int, frame: object) -> None:
        self._changed.set()

    def notify(self) -> None:
        """Wake a waiter as if the terminal had been resized."""
        self._changed.set()

    def wait(self) -> tuple[int, int] | None:
        """Block until the next resize; return (columns, lines)."""
        if not self._installed:
            return None
        self._changed.wait()
        self._changed.clear()
        size = shutil.get_terminal_size()
        return size.columns, size.lines
