#!/usr/bin/env python3
"""
histsearch - Interactively search shell history and reuse a command.

Reads a bash or zsh history file, collapses duplicates, ranks the unique
commands by frequency and recency, and opens a live-filtered list. Type to
narrow the list (case-insensitive substring), move with Up/Down/PageUp/PageDown,
Enter to pick, Esc or Ctrl-C to cancel. The picked command is copied to the
clipboard, or printed with --print.

Shell kind
----------
--shell, then $HUI_TERM ("zsh" or "bash"), then $SHELL.

Exit status
-----------
0 a command was selected, 1 cancelled, 2 configuration error,
3 history file unreadable, 4 clipboard/output failed (the command is printed
to stdout instead).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from rich.markup import escape

from histconfig import Config, configure_logging, console, load_config
from histfilter import filter_commands
from histhighlight import display_text
from histmodel import (
    EXIT_CANCELLED,
    EXIT_OK,
    ConfigurationError,
    RankedCommand,
    SinkUnavailable,
    SourceUnavailable,
)
from histparse import HistoryParser, read_history_sources
from histrank import rank_commands
from histsearch import DEFAULT_VIEWPORT_HEIGHT, SearchController, SearchState
from histsearch_app import run_app
from histsink import StdoutSink, build_sink

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="histsearch",
        description="Interactively search shell history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument(
        "files",
        nargs="*",
        help="History files to read, in order (default: $HISTFILE or the shell's default)",
    )
    ap.add_argument("--shell", choices=["bash", "zsh"], help="History format (default: $HUI_TERM)")
    ap.add_argument("-q", "--query", help="Initial search query")
    ap.add_argument(
        "-p", "--print", action="store_true", help="Print the selection instead of copying it"
    )
    ap.add_argument(
        "-l",
        "--list",
        action="store_true",
        help="Print the ranked (and --query filtered) commands, one per line, and exit",
    )
    ap.add_argument(
        "-0",
        "--null",
        action="store_true",
        help="With --list, print commands verbatim, each terminated by a NUL byte",
    )
    ap.add_argument(
        "--height",
        type=int,
        default=DEFAULT_VIEWPORT_HEIGHT,
        help=argparse.SUPPRESS,
    )
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    return ap


def load_master_list(config: Config) -> list[RankedCommand]:
    """→ Reads, parses and ranks every configured history file"""
    buffers = read_history_sources(config.history_paths)
    parser = HistoryParser(config.shell)
    entries = parser.parse(buffers)
    stats = parser.stats
    logger.info(
        "Parsed %d entries from %d %s file(s) (%d lines)",
        len(entries),
        stats.sources,
        config.shell.value,
        stats.lines,
    )
    if stats.malformed:
        logger.warning("%d malformed history record(s) were read as plain text", stats.malformed)
    master = rank_commands(entries)
    logger.info("%d unique commands", len(master))
    return master


def list_commands(master: list[RankedCommand], query: str, null_separated: bool = False) -> int:
    """→ Prints matches one per line (multi-line commands flattened), or NUL-terminated"""
    out = StdoutSink(terminator="\0") if null_separated else StdoutSink()
    try:
        for command in filter_commands(master, query):
            out(command.text if null_separated else display_text(command.text))
    except SinkUnavailable as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        return e.exit_code
    return EXIT_OK


def run_interactive(config: Config, master: list[RankedCommand]) -> int:
    controller = SearchController(
        master, query=config.initial_query, viewport_height=config.viewport_height
    )
    run_app(controller)

    if controller.state is not SearchState.CONFIRMED:
        logger.info("Cancelled, nothing selected")
        return EXIT_CANCELLED

    sink = build_sink(config.use_stdout)
    try:
        controller.deliver(sink)
    except SinkUnavailable as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        if not config.use_stdout:
            console.print("[warning]Printing the selected command instead:[/warning]")
            print(controller.selection)
        return e.exit_code

    if not config.use_stdout:
        console.print(f"[success]Copied to clipboard:[/success] {escape(controller.selection)}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """→ Main: resolves configuration, loads history, runs the search"""
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args, os.environ)
        master = load_master_list(config)
    except (ConfigurationError, SourceUnavailable) as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        return e.exit_code

    if config.list_only:
        return list_commands(master, config.initial_query, config.null_separated)
    return run_interactive(config, master)


if __name__ == "__main__":
    sys.exit(main())
