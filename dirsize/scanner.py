from __future__ import annotations
import os
import time
import threading
import stat as statmod
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import psutil

from .log import get_logger
from .models import Node, ScanResult

logger = get_logger(__name__)

ProgressCb = Callable[[str, int, int, int], None]  # (current_path, files, dirs, bytes_scanned)
CancelCb = Callable[[], bool]

STRATEGIES = ("pool", "threaded", "sequential")
DEFAULT_STRATEGY = "pool"
MAX_POOL_WORKERS = 32
PROGRESS_INTERVAL = 0.10


class CancelFlag:
    def __init__(self):
        self._cancel = threading.Event()

    def cancel(self):
        self._cancel.set()

    def __call__(self):
        return self._cancel.is_set()


def default_workers() -> int:
    # I/O bound: twice the logical cores, capped
    return max(1, min(MAX_POOL_WORKERS, (psutil.cpu_count() or 4) * 2))


class _Tally:
    """Counters shared by every thread of one scan."""

    def __init__(self, progress: Optional[ProgressCb] = None):
        self._lock = threading.Lock()
        self._emit_lock = threading.Lock()  # one progress line at a time
        self._progress = progress
        self._last_emit = 0.0
        self.files = 0
        self.dirs = 0
        self.bytes_scanned = 0
        self.skipped = 0
        self.cancelled = False

    def add(self, path: str, files: int = 0, dirs: int = 0, size: int = 0, skipped: int = 0):
        snapshot = None
        with self._lock:
            self.files += files
            self.dirs += dirs
            self.bytes_scanned += size
            self.skipped += skipped
            if self._progress:
                now = time.monotonic()
                if now - self._last_emit >= PROGRESS_INTERVAL:
                    self._last_emit = now
                    snapshot = (path, self.files, self.dirs, self.bytes_scanned)
        if snapshot:
            with self._emit_lock:
                self._progress(*snapshot)

    def flush(self, path: str):
        if self._progress:
            with self._lock:
                snapshot = (path, self.files, self.dirs, self.bytes_scanned)
            with self._emit_lock:
                self._progress(*snapshot)


@dataclass
class _Listing:
    path: str
    files: List[Node] = field(default_factory=list)
    subdirs: List[str] = field(default_factory=list)
    readable: bool = True


def _stat_entry(entry: os.DirEntry) -> os.stat_result:
    return entry.stat(follow_symlinks=False)


def _read_dir(path: str, tally: _Tally, cancel_flag: Optional[CancelCb]) -> _Listing:
    """List one directory: size its files, collect its subdirectories."""
    try:
        it = os.scandir(path)
    except OSError as e:
        logger.warning("Error occurred when trying to read %s error: %s", path, e)
        return _Listing(path, readable=False)

    listing = _Listing(path)
    with it:
        try:
            for entry in it:
                if cancel_flag and cancel_flag():
                    tally.cancelled = True
                    break

                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if is_dir:
                    logger.debug("%s is a directory", entry.path)
                    listing.subdirs.append(entry.path)
                    continue

                try:
                    st = _stat_entry(entry)
                except PermissionError:
                    logger.warning("Permission denied when accessing file/directory: %s", entry.path)
                    tally.add(entry.path, skipped=1)
                    continue
                except OSError as e:
                    logger.info("Error occurred when trying to read %s error: %s", entry.path, e)
                    tally.add(entry.path, skipped=1)
                    continue

                size = int(st.st_size)
                logger.debug("%s is a file with size: %d bytes", entry.path, size)
                listing.files.append(Node(entry.path, size, statmod.S_ISREG(st.st_mode), None))
                tally.add(entry.path, files=1, size=size)
        except OSError as e:
            # the listing broke off part way; keep what was read
            logger.warning("Error occurred while listing %s error: %s", path, e)

    tally.add(path, dirs=1)
    return listing


def _make_dir(listing: _Listing, subtrees: List[Node]) -> Node:
    if not listing.readable:
        return Node(listing.path, 0, False, None)
    children = listing.files + subtrees
    return Node(listing.path, sum(c.size for c in children), False, children)


def _scan_sequential(path: str, tally: _Tally, cancel_flag: Optional[CancelCb]) -> Node:
    listing = _read_dir(path, tally, cancel_flag)
    subtrees = [_scan_sequential(sub, tally, cancel_flag) for sub in listing.subdirs]
    return _make_dir(listing, subtrees)


def _scan_threaded(path: str, tally: _Tally, cancel_flag: Optional[CancelCb]) -> Node:
    listing = _read_dir(path, tally, cancel_flag)
    results: List[Optional[Node]] = [None] * len(listing.subdirs)

    def work(i: int, sub: str):
        results[i] = _scan_threaded(sub, tally, cancel_flag)

    started: List[threading.Thread] = []
    for i, sub in enumerate(listing.subdirs):
        t = threading.Thread(target=work, args=(i, sub), daemon=True)
        try:
            t.start()
        except RuntimeError as e:
            # out of threads: finish this subtree on the current one
            logger.warning("Could not spawn a thread for %s (%s); scanning inline", sub, e)
            work(i, sub)
            continue
        started.append(t)
    for t in started:
        t.join()

    return _make_dir(listing, [r if r is not None else Node(sub, 0, False, None)
                               for r, sub in zip(results, listing.subdirs)])


def _scan_pooled(root: str, tally: _Tally, cancel_flag: Optional[CancelCb], workers: int) -> Node:
    listings: Dict[str, _Listing] = {}
    order: List[str] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dirsize-scan") as pool:
        pending = {pool.submit(_read_dir, root, tally, cancel_flag)}
        try:
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    listing = fut.result()
                    listings[listing.path] = listing
                    order.append(listing.path)
                    for sub in listing.subdirs:
                        pending.add(pool.submit(_read_dir, sub, tally, cancel_flag))
        except KeyboardInterrupt:
            pool.shutdown(wait=False, cancel_futures=True)
            raise

    # a directory is listed before any of its subdirectories are submitted,
    # so walking the completion order backwards builds children first
    built: Dict[str, Node] = {}
    for path in reversed(order):
        listing = listings[path]
        built[path] = _make_dir(listing, [built.pop(sub) for sub in listing.subdirs])
    return built[root]


def scan_path(path: str,
              strategy: str = DEFAULT_STRATEGY,
              workers: Optional[int] = None,
              progress: Optional[ProgressCb] = None,
              cancel_flag: Optional[CancelCb] = None) -> ScanResult:
    """Scan ``path`` and return its size tree together with scan statistics.

    Per-entry failures never propagate: unreadable directories become
    zero-size leaves and unreadable files are left out of the tree.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"unknown scan strategy: {strategy!r} (expected one of {', '.join(STRATEGIES)})")
    if workers is not None and workers < 1:
        raise ValueError("workers must be at least 1")

    t0 = time.time()
    root_path = os.path.normpath(path)
    tally = _Tally(progress)
    logger.info("Running size calculation for directory: %s (strategy=%s)", root_path, strategy)

    if strategy == "sequential":
        root = _scan_sequential(root_path, tally, cancel_flag)
    elif strategy == "threaded":
        root = _scan_threaded(root_path, tally, cancel_flag)
    else:
        root = _scan_pooled(root_path, tally, cancel_flag, workers or default_workers())

    tally.flush(root_path)
    elapsed = time.time() - t0
    logger.info("Scanned %d files in %d directories (%d skipped) in %.2f s",
                tally.files, tally.dirs, tally.skipped, elapsed)
    return ScanResult(
        root=root,
        strategy=strategy,
        files=tally.files,
        dirs=tally.dirs,
        bytes_scanned=tally.bytes_scanned,
        skipped=tally.skipped,
        elapsed_sec=elapsed,
        cancelled=tally.cancelled,
    )


def scan_tree(path: str) -> Node:
    return scan_path(path, strategy="sequential").root


def scan_tree_threaded(path: str) -> Node:
    return scan_path(path, strategy="threaded").root


def scan_tree_pooled(path: str, workers: Optional[int] = None) -> Node:
    return scan_path(path, strategy="pool", workers=workers).root


def benchmark(path: str, strategy: str = DEFAULT_STRATEGY, runs: int = 10,
              workers: Optional[int] = None) -> float:
    """Scan ``path`` ``runs`` times and return the mean wall time in seconds."""
    if runs < 1:
        raise ValueError("runs must be at least 1")
    times: List[float] = []
    for _ in range(runs):
        start = time.perf_counter()
        scan_path(path, strategy=strategy, workers=workers)
        times.append(time.perf_counter() - start)
    total = sum(times)
    average = total / len(times)
    logger.info("%s scan ran %d times and took an average of %.4f s, total: %.4f s",
                strategy, runs, average, total)
    return average
