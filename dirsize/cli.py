from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Callable, List, Optional, TextIO

from .config import ConfigError, Settings
from .drives import disk_usage_for
from .log import configure, console_suspended, get_logger
from .models import ScanResult, SizeFormat
from .navigation import Event, NavigationEngine, format_size
from .scanner import STRATEGIES, CancelFlag, benchmark, scan_path
from .terminal import TerminalSession
from .utils import format_bytes, reveal_in_file_manager, shorten_path

APP_NAME = "dirsize"

logger = get_logger(__name__)


def _size_format(text: str) -> SizeFormat:
    try:
        return SizeFormat.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Scan a directory tree and browse its largest entries in the terminal.",
    )
    parser.add_argument("path", help="path to directory")
    parser.add_argument("-s", "--size", type=_size_format, default=None,
                        help="size format, possible values: gb, mb, kb, b (default: mb)")
    parser.add_argument("--strategy", choices=STRATEGIES, default=None,
                        help="scan strategy (default: pool)")
    parser.add_argument("--workers", type=_positive_int, default=None,
                        help="worker threads for the pool strategy (default: 2x CPU count, max 32)")
    parser.add_argument("--min-size", type=_non_negative_int, default=None,
                        help="hide entries of this many bytes or less (default: 1000000)")
    parser.add_argument("--no-ui", action="store_true",
                        help="print the largest top-level entries instead of starting the browser")
    parser.add_argument("--benchmark", type=_positive_int, metavar="N", default=None,
                        help="scan N times and report the average time")
    parser.add_argument("--log-file", default=None, help="also write log records to this file")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def _progress_printer(stream: TextIO) -> Callable[[str, int, int, int], None]:
    def show(cur: str, files: int, dirs: int, bytes_scanned: int):
        line = f"Scanning… {format_bytes(bytes_scanned)} • {files} files • {dirs} dirs • {cur}"
        stream.write("\r\033[2K" + shorten_path(line, 120))
        stream.flush()
    return show


def run_interactive(engine: NavigationEngine, session,
                    reveal: Callable[[str], bool] = reveal_in_file_manager) -> None:
    """Render, wait for one event, apply it; repeat until Exit."""
    while True:
        session.render(engine.visible_state(session.visible_rows()))
        event = session.next_event()
        if event is Event.OPEN_IN_FILE_MANAGER:
            node = engine.selected
            target = node.path if node is not None else engine.current.path
            if not reveal(target):
                session.warn(f"Could not open {target} in the file manager")
            continue
        if not engine.apply(event):
            break


def print_listing(result: ScanResult, engine: NavigationEngine, out: TextIO) -> None:
    fmt = engine.size_format
    out.write(result.root.display(fmt) + "\n")
    out.write(f"{result.files} files, {result.dirs} directories, {result.skipped} skipped"
              f" in {result.elapsed_sec:.2f} s\n")
    width = max((len(n.name) for n in engine.filtered), default=0)
    for node in engine.filtered:
        out.write(f"  {node.name.ljust(width)} - {format_size(node.size, fmt)}\n")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env().merged(
            size_format=args.size,
            strategy=args.strategy,
            workers=args.workers,
            min_size=args.min_size,
            log_file=args.log_file,
            log_level=logging.DEBUG if args.debug else None,
        )
    except ConfigError as e:
        parser.error(str(e))

    if not os.path.isdir(args.path):
        parser.error(f"not a directory: {args.path}")

    configure(settings.log_level, log_file=settings.log_file)

    if args.benchmark:
        avg = benchmark(args.path, strategy=settings.strategy, runs=args.benchmark,
                        workers=settings.workers)
        print(f"{settings.strategy} scan ran {args.benchmark} times, average {avg:.4f} s")
        return 0

    print(f"Running size calculation for directory: {args.path}")
    progress = _progress_printer(sys.stderr) if sys.stderr.isatty() else None
    cancel = CancelFlag()
    try:
        result = scan_path(args.path, strategy=settings.strategy, workers=settings.workers,
                           progress=progress, cancel_flag=cancel)
    except KeyboardInterrupt:
        cancel.cancel()
        sys.stderr.write("\nScan interrupted.\n")
        return 130
    if progress:
        sys.stderr.write("\n")

    root = result.root
    root.sort_by_size()
    if root.children is None:
        logger.warning("%s could not be read; showing an empty result", root.path)

    engine = NavigationEngine(root, size_format=settings.size_format,
                              min_size=settings.min_size, chrome_rows=settings.chrome_rows)

    if args.no_ui or not (sys.stdin.isatty() and sys.stdout.isatty()):
        print_listing(result, engine, sys.stdout)
        return 0

    disk = disk_usage_for(args.path)
    with console_suspended():
        with TerminalSession(header_extra=disk.describe() if disk else "",
                             state_for_rows=engine.visible_state) as session:
            run_interactive(engine, session)
    return 0


def run():
    sys.exit(main())
