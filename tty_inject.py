"""
tty_inject.py - Replay text into the controlling terminal's input queue

The picker never runs the chosen command. It pushes the characters back through the
TIOCSTI ioctl so the shell's line editor sees them as typed, pre-filled on the next
prompt and waiting for Enter.

Everything platform-specific sits behind `CharInjector`, a callable that injects exactly
one character or raises `OSError`. Tests substitute a recording fake.
"""

from __future__ import annotations

import sys
from typing import Callable, TextIO

from rich.markup import escape

from pick_engine import console_print

CharInjector = Callable[[str], None]


def tiocsti_injector(fd: int) -> CharInjector:
    """→ The real capability: one TIOCSTI request per byte of each character"""
    import fcntl
    import termios

    request = getattr(termios, "TIOCSTI", None)

    def inject_char(char: str) -> None:
        if request is None:
            raise OSError("TIOCSTI is not supported on this platform")
        for byte in char.encode("utf-8"):
            fcntl.ioctl(fd, request, bytes([byte]))

    return inject_char


class TerminalInjector:
    """Writes a chosen history entry into the terminal as pending, uncommitted input."""

    def __init__(
        self,
        inject_char: CharInjector | None = None,
        output: TextIO | None = None,
        padding: bool = True,
    ):
        self._inject_char = inject_char
        self.output = output
        self.padding = padding

    @property
    def inject_char(self) -> CharInjector:
        if self._inject_char is None:
            self._inject_char = tiocsti_injector(sys.stdin.fileno())
        return self._inject_char

    def inject(self, text: str) -> bool:
        """Injects `text` one character at a time.

        Stops at the first rejected character; whatever was delivered before it stays in
        the queue. Failure is reported on the console but never raised.
        """
        if not text:
            return True

        for position, char in enumerate(text):
            try:
                self.inject_char(char)
            except OSError as e:
                console_print(
                    f"[error]Failed to simulate terminal input at character {position}: {escape(str(e))}[/error]"
                )
                return False

        if self.padding:
            # Only moves the visible cursor; this goes to the output stream, not the input queue
            output = self.output or sys.stdout
            output.write("\n")
            output.flush()
        return True
