"""Full-screen terminal session drawn with raw ANSI escapes (no curses)."""
from __future__ import annotations
import os
import select
import shutil
import signal
import sys
from typing import IO, Callable, Optional

from .log import get_logger
from .navigation import Event, VisibleState
from .utils import shorten_path

logger = get_logger(__name__)

ESC = '\033'
CSI = ESC + '['

RED = CSI + '31m'
GREY = CSI + '90m'
YELLOW = CSI + '33m'
BOLD = CSI + '1m'
RESET = CSI + '0m'

COLORS = {"file": RED, "dir": ""}

HELP = "move with (↑ & ↓), navigate dirs (→ or [Enter] & ← or [Backspace]), [o] open in file manager, [Esc] to exit"

KEY_EVENTS = {
    'UP': Event.MOVE_UP, 'k': Event.MOVE_UP,
    'DOWN': Event.MOVE_DOWN, 'j': Event.MOVE_DOWN,
    'ENTER': Event.SELECT, 'RIGHT': Event.SELECT, 'l': Event.SELECT,
    'BACKSPACE': Event.BACK, 'LEFT': Event.BACK, 'h': Event.BACK,
    'ESC': Event.EXIT, 'q': Event.EXIT,
    'o': Event.OPEN_IN_FILE_MANAGER,
}

ARROWS = {'A': 'UP', 'B': 'DOWN', 'C': 'RIGHT', 'D': 'LEFT'}


def move_cursor(row: int, col: int) -> str:
    return CSI + '%d;%dH' % (row, col)


class TerminalSession:
    """Owns the terminal between ``__enter__`` and ``__exit__``.

    ``render`` draws a VisibleState, ``next_event`` blocks for the next
    mapped key, ``warn`` shows a one-line message until the next render.
    """

    def __init__(self, stdin: Optional[IO] = None, stdout: Optional[IO] = None,
                 header_extra: str = "",
                 state_for_rows: Optional[Callable[[int], VisibleState]] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.header_extra = header_extra
        self.state_for_rows = state_for_rows
        self._saved_tty = None
        self._old_winch = None
        self._last_state: Optional[VisibleState] = None
        self._warning = ""

    # ---------- lifecycle
    def __enter__(self) -> "TerminalSession":
        import termios
        import tty
        fd = self.stdin.fileno()
        self._saved_tty = termios.tcgetattr(fd)
        tty.setraw(fd)
        if hasattr(signal, "SIGWINCH"):
            self._old_winch = signal.signal(signal.SIGWINCH, self._on_resize)
        self._write(CSI + '?1049h' + CSI + '?25l' + CSI + '2J')
        self._flush()
        return self

    def __exit__(self, exc_type, exc, tb):
        import termios
        if hasattr(signal, "SIGWINCH"):
            signal.signal(signal.SIGWINCH, self._old_winch or signal.SIG_DFL)
        self._write(RESET + CSI + '?25h' + CSI + '?1049l')
        self._flush()
        if self._saved_tty is not None:
            termios.tcsetattr(self.stdin.fileno(), termios.TCSADRAIN, self._saved_tty)
        return False

    def _on_resize(self, signum, frame):
        # the viewport is a function of the height
        if self.state_for_rows is not None:
            self.render(self.state_for_rows(self.visible_rows()))
        elif self._last_state is not None:
            self.render(self._last_state)

    # ---------- output
    def _write(self, s: str):
        self.stdout.write(s)

    def _flush(self):
        self.stdout.flush()

    def size(self):
        return shutil.get_terminal_size((80, 24))

    def visible_rows(self) -> int:
        return self.size().lines

    def render(self, state: VisibleState):
        self._last_state = state
        cols, rows = self.size()
        out = [CSI + '2J', move_cursor(1, 1), GREY]
        header = f"{state.path}  [{state.total_display}]"
        if self.header_extra:
            header += "  " + self.header_extra
        out.append(shorten_path(header, cols) + RESET)

        last_item_row = rows - 1
        if not state.items:
            out.append(move_cursor(2, 1) + "  (nothing above the size threshold here)")
        for offset, item in enumerate(state.items):
            row = 2 + offset
            if row > last_item_row:
                break
            marker = "> " if item.is_cursor else "  "
            text = f"{marker}{item.label} - {item.size_display}"[:cols]
            style = COLORS.get(item.color_class, "")
            if item.is_cursor:
                style = BOLD + style
            out.append(move_cursor(row, 1) + style + text + RESET)

        out.append(move_cursor(rows, 1))
        if self._warning:
            out.append(YELLOW + self._warning[:cols] + RESET)
            self._warning = ""
        else:
            out.append(HELP[:cols])
        self._write("".join(out))
        self._flush()

    def warn(self, message: str):
        logger.warning(message)
        self._warning = message
        cols, rows = self.size()
        self._write(move_cursor(rows, 1) + CSI + '2K' + YELLOW + message[:cols] + RESET)
        self._flush()

    # ---------- input
    def _read_char(self, timeout: Optional[float] = None) -> str:
        fd = self.stdin.fileno()
        if timeout is not None:
            ready, _, _ = select.select([fd], [], [], timeout)
            if not ready:
                return ''
        data = os.read(fd, 1)
        return data.decode('latin-1') if data else ''

    def read_key(self) -> str:
        """Read one keypress, folding escape sequences into key names."""
        ch = self._read_char()
        if ch == ESC:
            ch2 = self._read_char(timeout=0.05)
            if ch2 in ('[', 'O'):
                ch3 = self._read_char(timeout=0.05)
                return ARROWS.get(ch3, 'UNKNOWN')
            return 'ESC' if ch2 == '' else 'UNKNOWN'
        if ch in ('\x7f', '\x08'):
            return 'BACKSPACE'
        if ch in ('\r', '\n'):
            return 'ENTER'
        if ch == '\x03':
            raise KeyboardInterrupt
        if ch == '':
            return 'ESC'  # stdin closed
        return ch

    def next_event(self) -> Event:
        while True:
            key = self.read_key()
            event = KEY_EVENTS.get(key)
            if event is not None:
                return event
