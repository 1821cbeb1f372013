from __future__ import annotations
import os
import sys
import subprocess
from typing import List

from .log import get_logger

logger = get_logger(__name__)


def format_bytes(num: int) -> str:
    """Binary size for the running byte count on the scan progress line."""
    if num < 0:
        return str(num)
    if num < 1024:
        return f"{num} B"
    value = float(num)
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1024.0
        if value < 1024.0:
            return f"{value:.2f} {unit}"
    return f"{value / 1024.0:.2f} PB"


def shorten_path(path: str, limit: int) -> str:
    if limit <= 3 or len(path) <= limit:
        return path[:max(0, limit)]
    keep = limit - 1
    head = keep // 3
    return path[:head] + "…" + path[-(keep - head):]


def _reveal_command(target: str) -> List[str]:
    if sys.platform == 'darwin':
        return ['open', '-R', target]
    if sys.platform.startswith('win'):
        return ['explorer', '/select,', target]
    # xdg-open cannot highlight an entry; open the folder that holds it
    return ['xdg-open', target if os.path.isdir(target) else os.path.dirname(target)]


def reveal_in_file_manager(path: str) -> bool:
    """Show the entry under the browser's cursor in the desktop file manager.

    The launcher is not waited on. A launch failure is logged and reported as
    False so the session can show a warning line and keep running.
    """
    if not path:
        return False
    target = os.path.abspath(path)
    try:
        if sys.platform.startswith('win') and os.path.isdir(target):
            os.startfile(target)
        else:
            subprocess.Popen(_reveal_command(target),
                             stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        logger.warning("Could not open %s in the file manager: %s", path, e)
        return False
    return True
