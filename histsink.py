"""
histsink.py - Where the chosen command goes: stdout or the system clipboard.

A sink is any callable taking the command text. Sinks raise `SinkUnavailable`
when they cannot deliver; the caller decides on the fallback.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import tempfile
from typing import TextIO

from histmodel import SinkUnavailable

logger = logging.getLogger(__name__)

CLIPBOARD_TIMEOUT = 2.0

# First available tool wins.
CLIPBOARD_COMMANDS: list[list[str]] = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]


class StdoutSink:
    name = "stdout"

    def __init__(self, stream: TextIO | None = None, terminator: str = "\n"):
        self.stream = stream
        self.terminator = terminator

    def __call__(self, text: str) -> None:
        stream = self.stream or sys.stdout
        try:
            stream.write(text + self.terminator)
            stream.flush()
        except (BrokenPipeError, OSError) as e:
            raise SinkUnavailable(self.name, str(e)) from e


class ClipboardSink:
    name = "clipboard"

    def __init__(self, commands: list[list[str]] | None = None):
        self.commands = CLIPBOARD_COMMANDS if commands is None else commands

    def find_command(self) -> list[str] | None:
        for command in self.commands:
            if shutil.which(command[0]):
                return command
        return None

    def __call__(self, text: str) -> None:
        command = self.find_command()
        if command is None:
            tools = ", ".join(c[0] for c in self.commands)
            raise SinkUnavailable(self.name, f"no clipboard tool found (tried {tools})")
        logger.debug("Copying %d characters with %s", len(text), command[0])
        # xclip and xsel leave a child running to own the selection; it inherits
        # stdout/stderr, so neither may be a pipe we wait on.
        with tempfile.TemporaryFile() as errors:
            try:
                subprocess.run(
                    command,
                    input=text.encode(),
                    check=True,
                    stdout=subprocess.DEVNULL,
                    stderr=errors,
                    timeout=CLIPBOARD_TIMEOUT,
                )
            except subprocess.CalledProcessError as e:
                errors.seek(0)
                detail = errors.read().decode(errors="replace").strip()
                raise SinkUnavailable(
                    self.name, f"{command[0]} exited with status {e.returncode} {detail}".strip()
                ) from e
            except subprocess.TimeoutExpired as e:
                raise SinkUnavailable(self.name, f"{command[0]} timed out") from e
            except OSError as e:
                raise SinkUnavailable(self.name, f"{command[0]}: {e}") from e


def build_sink(use_stdout: bool):
    return StdoutSink() if use_stdout else ClipboardSink()
