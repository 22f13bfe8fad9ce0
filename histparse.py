"""
histparse.py - Reads bash and zsh history files into `Entry` records.

Two grammars are supported:

- bash-like: one command per line. A line ending in an unescaped backslash
  continues onto the next physical line.
- zsh extended history: ": <epoch>:<duration>;command", with the same backslash
  continuation rule for multi-line commands. Lines that do not carry a valid header
  are read as bash-like lines, so a history written before EXTENDED_HISTORY was
  switched on still parses.

Zsh writes its history "metafied": bytes in the 0x83..0x9f range (and a few
others) are stored as 0x83 followed by the byte XOR 0x20. Zsh buffers are
unmetafied before decoding.

Parsing never fails on content. A header with bad numbers degrades to a plain
record, undecodable bytes become U+FFFD. The only hard failure is a file that
cannot be read at all, raised by `read_history_sources` before parsing starts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from histmodel import (
    Entry,
    ParsedRecord,
    PlainRecord,
    ShellKind,
    SourceUnavailable,
    StructuredRecord,
    record_to_entry,
)

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTS & PATTERNS
# ============================================================================

ZSH_META = 0x83

ZSH_HEADER_RE = re.compile(r"^:\s*(\d+):(\d+);")

# Starts like a header (": <digits>") but the fields do not parse, e.g.
# ": 1690000000:x;ls". Lines such as ": ${FOO:=bar};" are ordinary commands.
ZSH_MALFORMED_HEADER_RE = re.compile(r"^:\s*\d[^:;\s]*:[^;]*;")

CONTINUATION_MARKER = "\\"


# ============================================================================
# SOURCE READING
# ============================================================================


def read_history_sources(paths: Iterable[Path]) -> list[bytes]:
    """→ File I/O: Reads every history file, in order, as raw bytes"""
    buffers = []
    for path in paths:
        try:
            buffers.append(Path(path).read_bytes())
        except FileNotFoundError:
            raise SourceUnavailable(path, "file not found") from None
        except IsADirectoryError:
            raise SourceUnavailable(path, "is a directory") from None
        except PermissionError:
            raise SourceUnavailable(path, "permission denied") from None
        except OSError as e:
            raise SourceUnavailable(path, e.strerror or str(e)) from e
        logger.debug("Read %d bytes from %s", len(buffers[-1]), path)
    return buffers


# ============================================================================
# DECODING
# ============================================================================


def unmetafy(data: bytes) -> bytes:
    """→ Reverses zsh metafication: drops each Meta byte and XORs the next byte with 32"""
    if ZSH_META not in data:
        return data
    head, *rest = data.split(bytes([ZSH_META]))
    out = bytearray(head)
    for chunk in rest:
        if chunk:
            out.append(chunk[0] ^ 32)
            out += chunk[1:]
    return bytes(out)


def decode_history(data: bytes, shell: ShellKind) -> str:
    if shell is ShellKind.ZSH:
        data = unmetafy(data)
    return data.decode("utf-8", errors="replace")


def split_lines(text: str) -> list[str]:
    """Splits on newlines, dropping the final empty chunk and any trailing CR."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def has_continuation(line: str) -> bool:
    """True when the line ends with an odd run of backslashes."""
    stripped = line.rstrip(CONTINUATION_MARKER)
    return (len(line) - len(stripped)) % 2 == 1


# ============================================================================
# PARSING
# ============================================================================


@dataclass
class ParseStats:
    """Counters collected during one parse pass, for the startup summary."""

    sources: int = 0
    lines: int = 0
    structured: int = 0
    plain: int = 0
    malformed: int = 0
    dropped_empty: int = 0

    @property
    def records(self) -> int:
        return self.structured + self.plain


class HistoryParser:
    """Turns history file contents into a sequence of entries for one shell kind."""

    def __init__(self, shell: ShellKind):
        self.shell = shell
        self.stats = ParseStats()

    def parse(self, buffers: Iterable[bytes]) -> list[Entry]:
        """→ Parses byte buffers in order, numbering kept entries across all of them"""
        self.stats = ParseStats()
        entries: list[Entry] = []
        for buffer in buffers:
            self.stats.sources += 1
            lines = split_lines(decode_history(buffer, self.shell))
            self.stats.lines += len(lines)
            for record in self.iter_records(lines):
                if not record.text:
                    self.stats.dropped_empty += 1
                    continue
                entries.append(record_to_entry(record, sequence=len(entries)))
        return entries

    def iter_records(self, lines: list[str]) -> Iterator[ParsedRecord]:
        """→ Groups physical lines into records, resolving continuation markers"""
        i = 0
        num_lines = len(lines)
        while i < num_lines:
            header = self._parse_header(lines[i]) if self.shell is ShellKind.ZSH else None
            if header is not None:
                timestamp, duration, first_line = header
            else:
                first_line = lines[i]

            parts = [first_line]
            i += 1
            while has_continuation(parts[-1]) and i < num_lines:
                if self.shell is ShellKind.ZSH and ZSH_HEADER_RE.match(lines[i]):
                    break
                parts.append(lines[i])
                i += 1

            text = _join_continued(parts)
            if header is not None:
                self.stats.structured += 1
                yield StructuredRecord(timestamp=timestamp, duration=duration, text=text)
            else:
                self.stats.plain += 1
                yield PlainRecord(text=text)

    def _parse_header(self, line: str) -> tuple[int, int, str] | None:
        m = ZSH_HEADER_RE.match(line)
        if not m:
            if ZSH_MALFORMED_HEADER_RE.match(line):
                self.stats.malformed += 1
            return None
        return int(m.group(1)), int(m.group(2)), line[m.end():]


def _join_continued(parts: list[str]) -> str:
    """Strips the marker from every line that has one and joins with newlines."""
    cleaned = [part[:-1] if has_continuation(part) else part for part in parts]
    joined = "\n".join(cleaned).lstrip()
    text = joined.rstrip()
    if has_continuation(text):
        # Keep the whitespace character the final backslash escapes ("echo \ ").
        text = joined[: len(text) + 1]
    return text


def parse_history(shell: ShellKind, buffers: Iterable[bytes]) -> list[Entry]:
    return HistoryParser(shell).parse(buffers)
