from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

import psutil

from .utils import format_bytes


@dataclass
class DiskUsage:
    path: str
    total: int
    used: int
    free: int
    percent: float

    def describe(self) -> str:
        return (f"disk: {format_bytes(self.used)} used of {format_bytes(self.total)}"
                f" ({self.percent:.0f}%), {format_bytes(self.free)} free")


def disk_usage_for(path: str) -> Optional[DiskUsage]:
    """Usage of the partition holding ``path``; None when psutil cannot tell."""
    ap = os.path.abspath(path)
    try:
        u = psutil.disk_usage(ap)
    except OSError:
        return None
    return DiskUsage(
        path=ap,
        total=int(u.total),
        used=int(u.used),
        free=int(u.free),
        percent=float(u.percent),
    )
