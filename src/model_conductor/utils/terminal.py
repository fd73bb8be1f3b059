"""Terminal-related helpers: raw keyboard capture and key decoding."""

from __future__ import annotations

import os
import select
import signal
import sys
import termios
import threading
import tty
from typing import Any, Dict, Optional, TextIO

HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_TO_END = "\x1b[0J"

KEY_UP = "up"
KEY_DOWN = "down"
KEY_ENTER = "enter"
KEY_QUIT = "quit"

ESCAPE_TIMEOUT = 0.05

_SEQUENCES = {
    "\x1b[A": KEY_UP,
    "\x1bOA": KEY_UP,
    "\x1b[B": KEY_DOWN,
    "\x1bOB": KEY_DOWN,
    "k": KEY_UP,
    "w": KEY_UP,
    "j": KEY_DOWN,
    "s": KEY_DOWN,
    "\r": KEY_ENTER,
    "\n": KEY_ENTER,
    "q": KEY_QUIT,
    "\x03": KEY_QUIT,
    "\x04": KEY_QUIT,
}

_TERMINATING_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


def is_interactive(stdin: TextIO, stream: TextIO) -> bool:
    """True when both keyboard input and the status stream are terminals."""
    try:
        return stdin.isatty() and stream.isatty()
    except (AttributeError, ValueError):
        return False


def decode_key(data: str) -> str:
    """Map raw terminal input to a key name; unknown input is returned lowercased."""
    if data in _SEQUENCES:
        return _SEQUENCES[data]
    lowered = data.lower()
    return _SEQUENCES.get(lowered, lowered)


def _pending(fd: int, timeout: float) -> bool:
    ready, _, _ = select.select([fd], [], [], timeout)
    return bool(ready)


def read_key(stdin: TextIO, escape_timeout: float = ESCAPE_TIMEOUT) -> str:
    """Read exactly one keypress (including arrow escape sequences) from a raw terminal.

    Input is consumed byte by byte so keys that arrive together in one
    chunk are returned one per call.
    """
    fd = stdin.fileno()
    data = os.read(fd, 1)
    if not data:
        return KEY_QUIT

    lead = data[0]
    if data == b"\x1b":
        if _pending(fd, escape_timeout):
            intro = os.read(fd, 1)
            data += intro
            if intro in (b"[", b"O"):
                # Parameter bytes until a final byte in @..~
                while _pending(fd, escape_timeout):
                    byte = os.read(fd, 1)
                    data += byte
                    if not byte or 0x40 <= byte[0] <= 0x7E:
                        break
    elif lead >= 0xC0:
        data += os.read(fd, 1 if lead < 0xE0 else 2 if lead < 0xF0 else 3)

    return decode_key(data.decode("utf-8", errors="ignore"))


class RawCapture:
    """Scoped, process-exclusive raw keyboard capture.

    Terminal attributes are restored on every way out of the ``with`` block,
    including SIGTERM/SIGHUP, which are turned into ``SystemExit`` while held.
    """

    _held = False

    def __init__(self, stdin: Optional[TextIO] = None, stream: Optional[TextIO] = None) -> None:
        self.stdin = stdin or sys.stdin
        self.stream = stream or sys.stderr
        self._fd: Optional[int] = None
        self._saved: Optional[Any] = None
        self._previous_handlers: Dict[int, Any] = {}

    @classmethod
    def is_held(cls) -> bool:
        return cls._held

    def __enter__(self) -> "RawCapture":
        if RawCapture._held:
            raise RuntimeError("Raw keyboard capture is already held by another session.")
        self._fd = self.stdin.fileno()
        self._saved = termios.tcgetattr(self._fd)
        self._install_signal_handlers()
        try:
            tty.setraw(self._fd)
        except BaseException:
            self._restore_signal_handlers()
            raise
        RawCapture._held = True
        self.stream.write(HIDE_CURSOR)
        self.stream.flush()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._fd is not None and self._saved is not None:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        finally:
            RawCapture._held = False
            self._restore_signal_handlers()
            self.stream.write(SHOW_CURSOR)
            self.stream.flush()

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def _exit(signum, _frame):
            raise SystemExit(128 + signum)

        for sig in _TERMINATING_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, _exit)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()
