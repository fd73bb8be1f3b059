"""Keyboard-driven, windowed single-column model picker."""

from __future__ import annotations

import logging
import shutil
import sys
from dataclasses import dataclass
from typing import Callable, ContextManager, List, Optional, Sequence, TextIO, Tuple

from model_conductor import constants
from model_conductor.config import Settings
from model_conductor.models.catalog import Catalog, model_ids
from model_conductor.models.enums import Role
from model_conductor.utils.terminal import (
    CLEAR_TO_END,
    KEY_DOWN,
    KEY_ENTER,
    KEY_QUIT,
    KEY_UP,
    RawCapture,
    is_interactive,
    read_key,
)

LOG = logging.getLogger(__name__)

HIGHLIGHT = "\x1b[36m"
RESET = "\x1b[0m"
HINT = "(Up/Down or k/j to move, Enter to select, q to quit)"

KeyReader = Callable[[TextIO], str]
CaptureFactory = Callable[[TextIO, TextIO], ContextManager[object]]


class SelectionCancelled(RuntimeError):
    """Raised when the operator quits an interactive selection."""


def _fit(text: str, limit: Optional[int]) -> str:
    if limit is None or len(text) <= limit:
        return text
    if limit <= 3:
        return text[: max(limit, 0)]
    return text[: limit - 3] + "..."


@dataclass
class SelectionSession:
    """Cursor and window state for one selector invocation."""

    candidates: Tuple[str, ...]
    cursor: int = 0
    height: int = constants.MAX_VISIBLE_ROWS

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError("A selection session needs at least one candidate.")
        self.height = max(1, min(self.height, constants.MAX_VISIBLE_ROWS))
        self.cursor = self._clamp(self.cursor)

    def _clamp(self, index: int) -> int:
        return max(0, min(index, len(self.candidates) - 1))

    def move(self, delta: int) -> int:
        self.cursor = self._clamp(self.cursor + delta)
        return self.cursor

    @property
    def current(self) -> str:
        return self.candidates[self.cursor]

    @property
    def scrolls(self) -> bool:
        return len(self.candidates) > self.height

    @property
    def origin(self) -> int:
        """First visible index, keeping the cursor roughly centred."""
        if not self.scrolls:
            return 0
        centred = self.cursor - self.height // 2
        return max(0, min(centred, len(self.candidates) - self.height))

    def render(self, role: str, width: Optional[int] = None) -> List[str]:
        """Rows for the current window, each at most ``width - 1`` visible characters.

        Rows must never wrap: redraws move up by the row count.
        """
        start = self.origin
        end = min(start + self.height, len(self.candidates))
        limit = width - 1 if width else None
        lines = [_fit(f"Select the {role} model ({len(self.candidates)} loaded):", limit)]

        # Marker rows are always present when scrolling so the block height is fixed.
        if self.scrolls:
            lines.append(_fit(f"  ... {start} more above", limit) if start else "")
        for index in range(start, end):
            label = _fit(f"{index + 1}. {self.candidates[index]}", limit - 2 if limit is not None else None)
            if index == self.cursor:
                lines.append(f"> {HIGHLIGHT}{label}{RESET}")
            else:
                lines.append(f"  {label}")
        if self.scrolls:
            remaining = len(self.candidates) - end
            lines.append(_fit(f"  ... {remaining} more below", limit) if remaining else "")

        lines.append(_fit(HINT, limit))
        return lines


class TerminalSelector:
    """Resolve one model identifier per role, interactively when possible."""

    def __init__(
        self,
        settings: Settings,
        stream: Optional[TextIO] = None,
        stdin: Optional[TextIO] = None,
        key_reader: Optional[KeyReader] = None,
        capture_factory: Optional[CaptureFactory] = None,
        height: int = constants.MAX_VISIBLE_ROWS,
        columns: Optional[Callable[[], int]] = None,
    ) -> None:
        self.settings = settings
        self.stream = stream or sys.stderr
        self.stdin = stdin or sys.stdin
        self.read_key = key_reader or read_key
        self.capture_factory = capture_factory or RawCapture
        self.height = height
        self.columns = columns or (lambda: shutil.get_terminal_size().columns)
        self._drawn = 0

    @property
    def interactive(self) -> bool:
        if self.settings.non_interactive:
            return False
        return is_interactive(self.stdin, self.stream)

    def select(self, catalog: Catalog, role: Role | str, default_id: Optional[str] = None) -> str:
        role_name = Role(role).value
        ids = model_ids(catalog)
        if not ids:
            raise ValueError("Cannot select a model from an empty catalog.")

        if len(ids) == 1:
            self._status(f"One model found for {role_name}: {ids[0]}")
            return ids[0]

        if not self.interactive:
            choice = default_id or ids[0]
            LOG.info("Non-interactive selection for %s: %s", role_name, choice)
            return choice

        cursor = ids.index(default_id) if default_id in ids else 0
        session = SelectionSession(tuple(ids), cursor=cursor, height=self.height)
        choice = self._run_session(session, role_name)
        self._status(f"Selected {role_name} model: {choice}")
        return choice

    def ask(self, message: str, choices: Sequence[str]) -> str:
        """Show ``message`` and wait for one of ``choices``; quit keys return ``"q"``."""
        self._status(message)
        with self.capture_factory(self.stdin, self.stream):
            while True:
                key = self.read_key(self.stdin)
                if key == KEY_QUIT:
                    return "q"
                if key in choices:
                    return key

    def _run_session(self, session: SelectionSession, role: str) -> str:
        self._drawn = 0
        with self.capture_factory(self.stdin, self.stream):
            try:
                while True:
                    self._draw(session.render(role, width=self.columns()))
                    key = self.read_key(self.stdin)
                    if key == KEY_UP:
                        session.move(-1)
                    elif key == KEY_DOWN:
                        session.move(1)
                    elif key == KEY_ENTER:
                        return session.current
                    elif key == KEY_QUIT:
                        raise SelectionCancelled(f"Selection of the {role} model was cancelled.")
            finally:
                self._erase()

    def _draw(self, lines: List[str]) -> None:
        # Raw mode disables output post-processing, hence explicit \r\n.
        self._erase()
        self.stream.write("\r\n".join(lines) + "\r\n")
        self.stream.flush()
        self._drawn = len(lines)

    def _erase(self) -> None:
        if self._drawn:
            self.stream.write(f"\x1b[{self._drawn}A\r{CLEAR_TO_END}")
            self.stream.flush()
            self._drawn = 0

    def _status(self, message: str) -> None:
        self.stream.write(message + "\n")
        self.stream.flush()
