"""
Logging for dirsize.

- One base logger ("dirsize"); feature modules call get_logger(__name__)
  and never add handlers themselves.
- configure() installs a colored stderr handler and an optional file handler.
- console_suspended() detaches the stderr handler while the interactive
  session owns the screen; the file handler keeps recording.
"""
from __future__ import annotations

import logging
import sys
import threading
from contextlib import contextmanager
from typing import Generator, Optional

BASE_NAME = "dirsize"

_config_lock = threading.Lock()
_console_handler: Optional[logging.Handler] = None


class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, "")
        message = super().format(record)
        if color:
            message = f"{color}{message}{self.RESET}"
        return message


_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"


def configure(level: int = logging.INFO,
              log_file: Optional[str] = None,
              console: bool = True) -> logging.Logger:
    """(Re)configure the base logger. Safe to call more than once."""
    global _console_handler
    with _config_lock:
        base = logging.getLogger(BASE_NAME)
        base.setLevel(level)
        base.propagate = False

        for h in list(base.handlers):
            base.removeHandler(h)
            h.close()
        _console_handler = None

        if console:
            sh = logging.StreamHandler(sys.stderr)
            sh.setLevel(level)
            if sys.stderr.isatty():
                sh.setFormatter(ColorFormatter(_FMT, datefmt=_DATEFMT))
            else:
                sh.setFormatter(logging.Formatter(_FMT, datefmt=_DATEFMT))
            base.addHandler(sh)
            _console_handler = sh

        if log_file:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(_FMT, datefmt=_DATEFMT))
            base.addHandler(fh)

        if not base.handlers:
            base.addHandler(logging.NullHandler())
        return base


def get_logger(name: Optional[str] = None) -> logging.Logger:
    base = logging.getLogger(BASE_NAME)
    if not name or name == BASE_NAME:
        return base
    if name.startswith(BASE_NAME + "."):
        name = name[len(BASE_NAME) + 1:]
    return base.getChild(name)


@contextmanager
def console_suspended() -> Generator[None, None, None]:
    base = logging.getLogger(BASE_NAME)
    handler = _console_handler
    if handler is not None and handler in base.handlers:
        # an empty handler list would hand records to logging.lastResort (stderr)
        quiet = logging.NullHandler()
        base.addHandler(quiet)
        base.removeHandler(handler)
        try:
            yield
        finally:
            base.removeHandler(quiet)
            base.addHandler(handler)
    else:
        yield
