from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Tuple

from .log import get_logger
from .models import Node, SizeFormat

logger = get_logger(__name__)

SIZE_FILTER_MIN = 1_000_000
CHROME_ROWS = 3  # header row, help row, and the viewport's inclusive end row


class Event(Enum):
    MOVE_UP = auto()
    MOVE_DOWN = auto()
    SELECT = auto()
    BACK = auto()
    EXIT = auto()
    OPEN_IN_FILE_MANAGER = auto()


@dataclass
class RowItem:
    label: str
    size_display: str
    is_cursor: bool
    color_class: str  # "file" or "dir"


@dataclass
class VisibleState:
    path: str
    total_display: str
    items: List[RowItem]
    bounds: Tuple[int, int]  # inclusive; (0, -1) when there is nothing to show
    count: int


def viewport_bounds(cursor: int, count: int, height: int) -> Tuple[int, int]:
    """Inclusive index range of a ``count``-item list to draw in ``height`` rows.

    Keeps ``cursor`` on screen, centring it once the list scrolls, and pins the
    window to the end of the list when there is no room left below.
    """
    if count <= 0:
        return 0, -1
    last = count - 1
    half = height // 2
    if cursor <= half:
        start, end = 0, height
    elif last > cursor + half:
        start, end = cursor - half - 1, cursor + half
    elif last > height:
        start, end = cursor - (height - (last - cursor)), last
    else:
        start, end = 0, last
    return max(0, start), min(last, end)


def format_size(size: int, fmt: SizeFormat) -> str:
    return f"{size / fmt.divisor:.2f} {fmt.value}"


class NavigationEngine:
    """Cursor over a sorted size tree.

    Holds references into the tree owned by the scan result; nothing is copied.
    """

    def __init__(self, root: Node,
                 size_format: SizeFormat = SizeFormat.MEGABYTES,
                 min_size: int = SIZE_FILTER_MIN,
                 chrome_rows: int = CHROME_ROWS):
        self.root = root
        self.size_format = size_format
        self.min_size = min_size
        self.chrome_rows = chrome_rows
        self.current = root
        self.filtered: List[Node] = root.filter_size(min_size) or []
        self.cursor = 0
        self.breadcrumbs: List[int] = []

    @property
    def selected(self) -> Optional[Node]:
        if not self.filtered:
            return None
        return self.filtered[self.cursor]

    @property
    def depth(self) -> int:
        return len(self.breadcrumbs)

    def move_up(self):
        if not self.filtered:
            return
        self.cursor = self.cursor - 1 if self.cursor > 0 else len(self.filtered) - 1

    def move_down(self):
        if not self.filtered:
            return
        self.cursor = self.cursor + 1 if self.cursor < len(self.filtered) - 1 else 0

    def select(self) -> bool:
        item = self.selected
        if item is None or item.children is None:
            return False
        filtered = item.filter_size(self.min_size)
        if filtered is None:
            return False
        self.breadcrumbs.append(self.cursor)
        self.current = item
        self.filtered = filtered
        self.cursor = 0
        logger.debug("Entered %s", item.path)
        return True

    def back(self):
        self.current = self.root.find_parent(self.current.path)
        self.filtered = self.current.filter_size(self.min_size) or []
        self.cursor = self.breadcrumbs.pop() if self.breadcrumbs else 0
        if self.cursor >= len(self.filtered):
            self.cursor = 0
        logger.debug("Back to %s", self.current.path)

    def apply(self, event: Event) -> bool:
        """Apply one input event; False means the interaction should end."""
        if event is Event.EXIT:
            return False
        if event is Event.MOVE_UP:
            self.move_up()
        elif event is Event.MOVE_DOWN:
            self.move_down()
        elif event is Event.SELECT:
            self.select()
        elif event is Event.BACK:
            self.back()
        return True

    def visible_state(self, rows: int) -> VisibleState:
        height = max(1, rows - self.chrome_rows)
        start, end = viewport_bounds(self.cursor, len(self.filtered), height)
        width = max((len(n.name) for n in self.filtered), default=0)
        items = [
            RowItem(
                label=self.filtered[i].name.ljust(width),
                size_display=format_size(self.filtered[i].size, self.size_format),
                is_cursor=i == self.cursor,
                color_class="file" if self.filtered[i].is_file else "dir",
            )
            for i in range(start, end + 1)
        ]
        return VisibleState(
            path=self.current.path,
            total_display=format_size(self.current.size, self.size_format),
            items=items,
            bounds=(start, end),
            count=len(self.filtered),
        )
