"""
histconfig.py - Run configuration, console and logging for histsearch.

The shell kind and history locations are resolved here, once, from command-line
flags and an environment mapping, and passed down explicitly. Nothing below the
CLI reads the environment.

Resolution order
----------------
- Shell kind: --shell, then $HUI_TERM, then the basename of $SHELL.
- History files: explicit paths, then $HISTFILE, then ~/.zsh_history or
  ~/.bash_history depending on the shell kind.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from histmodel import ConfigurationError, ShellKind
from histsearch import DEFAULT_VIEWPORT_HEIGHT

# ============================================================================
# CONSOLE & LOGGING
# ============================================================================

CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "context": "#5C6370",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

SHELL_ENV_VAR = "HUI_TERM"

DEFAULT_HISTORY_FILES = {
    ShellKind.ZSH: ".zsh_history",
    ShellKind.BASH: ".bash_history",
}

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def configure_logging(verbosity: int = 0) -> None:
    """→ Routes all log records through Rich on the shared stderr console"""
    level = LOG_LEVELS[min(max(verbosity, 0), len(LOG_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


# ============================================================================
# CONFIGURATION
# ============================================================================


@dataclass
class Config:
    """Everything the CLI needs to run one search session."""

    shell: ShellKind
    history_paths: list[Path]
    use_stdout: bool = False
    initial_query: str = ""
    list_only: bool = False
    null_separated: bool = False
    viewport_height: int = DEFAULT_VIEWPORT_HEIGHT
    verbosity: int = 0

    @property
    def sink_name(self) -> str:
        return "stdout" if self.use_stdout else "clipboard"


def resolve_shell_kind(explicit: str | None, environ: Mapping[str, str]) -> ShellKind:
    if explicit:
        return ShellKind.from_name(explicit)
    if hui_term := environ.get(SHELL_ENV_VAR):
        return ShellKind.from_name(hui_term)
    if login_shell := environ.get("SHELL"):
        return ShellKind.from_name(login_shell)
    raise ConfigurationError(
        f"Cannot tell which shell's history to read: pass --shell or set ${SHELL_ENV_VAR}"
    )


def resolve_history_paths(
    shell: ShellKind,
    explicit: Sequence[str],
    environ: Mapping[str, str],
    home: Path | None = None,
) -> list[Path]:
    if explicit:
        return [Path(p).expanduser() for p in explicit]
    if histfile := environ.get("HISTFILE"):
        return [Path(histfile).expanduser()]
    home = home if home is not None else Path(environ.get("HOME") or Path.home())
    return [home / DEFAULT_HISTORY_FILES[shell]]


def load_config(args, environ: Mapping[str, str], home: Path | None = None) -> Config:
    """→ Builds a Config from parsed CLI arguments and an environment mapping"""
    shell = resolve_shell_kind(args.shell, environ)
    return Config(
        shell=shell,
        history_paths=resolve_history_paths(shell, args.files, environ, home),
        use_stdout=args.print,
        initial_query=args.query or "",
        list_only=args.list,
        null_separated=args.null,
        viewport_height=args.height,
        verbosity=args.verbose,
    )
