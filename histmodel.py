"""
histmodel.py - Shared data structures for histsearch.

Everything downstream of the parser works on the two shapes defined here:

- `Entry`: one command occurrence as read from a history file.
- `RankedCommand`: one unique command after deduplication and scoring.

The parser produces tagged records (`StructuredRecord` for zsh extended-history
lines, `PlainRecord` for everything else) which collapse into a single `Entry`
shape, so the ranker never has to care which grammar branch produced a command.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ============================================================================
# EXIT STATUSES
# ============================================================================

EXIT_OK = 0
EXIT_CANCELLED = 1
EXIT_CONFIG = 2
EXIT_SOURCE_UNAVAILABLE = 3
EXIT_SINK_UNAVAILABLE = 4


# ============================================================================
# SHELL KINDS
# ============================================================================


class ShellKind(Enum):
    BASH = "bash"
    ZSH = "zsh"

    @classmethod
    def from_name(cls, name: str) -> ShellKind:
        """→ Resolves 'zsh', '/bin/zsh', 'BASH' etc. to a ShellKind"""
        key = name.strip().rsplit("/", 1)[-1].lower()
        for kind in cls:
            if kind.value == key:
                return kind
        supported = ", ".join(k.value for k in cls)
        raise ConfigurationError(f"Unsupported shell {name!r} (supported: {supported})")


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class Entry:
    """A single command occurrence, before deduplication."""

    text: str
    sequence: int
    timestamp: int | None = None
    duration: int | None = None


@dataclass(frozen=True)
class RankedCommand:
    """A unique command with its aggregated stats and relevance score."""

    text: str
    occurrences: int
    last_sequence: int
    last_timestamp: int | None
    score: float

    @property
    def sort_key(self) -> tuple[float, int, str]:
        return (-self.score, -self.last_sequence, self.text)


@dataclass(frozen=True)
class StructuredRecord:
    """A zsh extended-history record: ': <timestamp>:<duration>;<command>'."""

    timestamp: int
    duration: int
    text: str


@dataclass(frozen=True)
class PlainRecord:
    """A record with no metadata (bash lines, or zsh lines without a valid header)."""

    text: str


ParsedRecord = StructuredRecord | PlainRecord


def record_to_entry(record: ParsedRecord, sequence: int) -> Entry:
    if isinstance(record, StructuredRecord):
        return Entry(
            text=record.text,
            sequence=sequence,
            timestamp=record.timestamp,
            duration=record.duration,
        )
    return Entry(text=record.text, sequence=sequence)


# ============================================================================
# ERRORS
# ============================================================================


class HistSearchError(Exception):
    """Base class for failures that end the process with a specific status."""

    exit_code = 1


class ConfigurationError(HistSearchError):
    """The shell kind or history location could not be resolved."""

    exit_code = EXIT_CONFIG


class SourceUnavailable(HistSearchError):
    """A history file could not be opened or read."""

    exit_code = EXIT_SOURCE_UNAVAILABLE

    def __init__(self, path, reason: str):
        super().__init__(f"Cannot read history file '{path}': {reason}")
        self.path = path
        self.reason = reason


class SinkUnavailable(HistSearchError):
    """The output sink refused the selected command."""

    exit_code = EXIT_SINK_UNAVAILABLE

    def __init__(self, sink_name: str, reason: str):
        super().__init__(f"{sink_name} unavailable: {reason}")
        self.sink_name = sink_name
        self.reason = reason
