from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class TreeLookupError(LookupError):
    """The tree and a requested path disagree; signals a bug, not bad input."""


class SizeFormat(Enum):
    BYTES = "bytes"
    KILOBYTES = "kb"
    MEGABYTES = "mb"
    GIGABYTES = "gb"

    @property
    def divisor(self) -> float:
        return _DIVISORS[self]

    @classmethod
    def parse(cls, text: str) -> "SizeFormat":
        key = (text or "").strip().lower()
        try:
            return _ALIASES[key]
        except KeyError:
            raise ValueError(f"unknown size format: {text!r} (use one of {', '.join(sorted(_ALIASES))})")


_DIVISORS = {
    SizeFormat.BYTES: 1.0,
    SizeFormat.KILOBYTES: 1e3,
    SizeFormat.MEGABYTES: 1e6,
    SizeFormat.GIGABYTES: 1e9,
}

_ALIASES = {
    "b": SizeFormat.BYTES, "bytes": SizeFormat.BYTES,
    "kb": SizeFormat.KILOBYTES, "kilobytes": SizeFormat.KILOBYTES,
    "mb": SizeFormat.MEGABYTES, "megabytes": SizeFormat.MEGABYTES,
    "gb": SizeFormat.GIGABYTES, "gigabytes": SizeFormat.GIGABYTES,
}


def is_within(path: str, ancestor: str) -> bool:
    """Component-wise prefix test: 'a/bc' is not within 'a/b'."""
    if path == ancestor:
        return True
    prefix = ancestor if ancestor.endswith(os.sep) else ancestor + os.sep
    return path.startswith(prefix)


@dataclass
class Node:
    """A file or directory with its aggregate size.

    ``children`` is None for files and for directories that could not be
    listed; an empty list means a readable directory with no entries.
    """
    path: str
    size: int = 0
    is_file: bool = False
    children: Optional[List["Node"]] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip("\\/")) or self.path

    def count(self) -> int:
        return len(self.children) if self.children is not None else 0

    def is_empty(self) -> bool:
        return self.children is not None and not self.children

    def iter_nodes(self) -> Iterator["Node"]:
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def size_formatted(self, fmt: SizeFormat = SizeFormat.MEGABYTES) -> Tuple[float, str]:
        return self.size / fmt.divisor, fmt.value

    def display(self, fmt: SizeFormat = SizeFormat.MEGABYTES) -> str:
        value, unit = self.size_formatted(fmt)
        return f'path: "{self.path}" size: {value:.2f} {unit}'

    def __str__(self) -> str:
        return self.display()

    def sort_by_size(self) -> None:
        # list.sort is stable with reverse=True, equal sizes keep insertion order
        stack = [self]
        while stack:
            node = stack.pop()
            if node.children:
                node.children.sort(key=lambda n: n.size, reverse=True)
                stack.extend(node.children)

    def filter_size(self, min_bytes: int) -> Optional[List["Node"]]:
        """Children strictly above ``min_bytes``; None for a leaf or when nothing qualifies."""
        if self.children is None:
            return None
        kept = [c for c in self.children if c.size > min_bytes]
        return kept or None

    def find_parent(self, path: str) -> "Node":
        """Walk down from this node to the node whose path is ``dirname(path)``."""
        parent = os.path.dirname(path)
        if path == self.path or not parent or parent == path:
            return self
        node = self
        while node.path != parent:
            if node.children is None:
                raise TreeLookupError(f"directory {parent!r} was not found under {self.path!r}")
            for child in node.children:
                if is_within(path, child.path):
                    node = child
                    break
            else:
                return node
        return node


@dataclass
class ScanResult:
    root: Node
    strategy: str
    files: int = 0
    dirs: int = 0
    bytes_scanned: int = 0
    skipped: int = 0
    elapsed_sec: float = 0.0
    cancelled: bool = False
