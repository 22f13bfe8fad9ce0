import io
import subprocess
import sys
import time

import pytest

import histsink
from histmodel import SinkUnavailable
from histsink import ClipboardSink, StdoutSink, build_sink


class BrokenStream(io.StringIO):
    def write(self, s):
        raise BrokenPipeError("pipe closed")


class TestStdoutSink:
    def test_writes_line(self):
        stream = io.StringIO()
        StdoutSink(stream)("git status")
        assert stream.getvalue() == "git status\n"

    def test_multiline_command_written_verbatim(self):
        stream = io.StringIO()
        StdoutSink(stream)("echo \nhello")
        assert stream.getvalue() == "echo \nhello\n"

    def test_custom_terminator(self):
        stream = io.StringIO()
        StdoutSink(stream, terminator="\0")("echo \nhello")
        assert stream.getvalue() == "echo \nhello\0"

    def test_broken_pipe(self):
        with pytest.raises(SinkUnavailable) as excinfo:
            StdoutSink(BrokenStream())("ls")
        assert excinfo.value.exit_code == 4


class TestClipboardSink:
    def test_no_tool_available(self, monkeypatch):
        monkeypatch.setattr(histsink.shutil, "which", lambda name: None)
        with pytest.raises(SinkUnavailable) as excinfo:
            ClipboardSink()("ls")
        assert "no clipboard tool" in str(excinfo.value)

    def test_first_available_tool_used(self, monkeypatch):
        monkeypatch.setattr(
            histsink.shutil, "which", lambda name: f"/usr/bin/{name}" if name == "xclip" else None
        )
        calls = []

        def fake_run(command, **kwargs):
            calls.append((command, kwargs["input"]))
            return subprocess.CompletedProcess(command, 0)

        monkeypatch.setattr(histsink.subprocess, "run", fake_run)
        ClipboardSink()("git status")
        assert calls == [(["xclip", "-selection", "clipboard"], b"git status")]

    def test_tool_failure(self, monkeypatch):
        monkeypatch.setattr(histsink.shutil, "which", lambda name: "/usr/bin/pbcopy")

        def fake_run(command, **kwargs):
            kwargs["stderr"].write(b"no display\n")
            raise subprocess.CalledProcessError(1, command)

        monkeypatch.setattr(histsink.subprocess, "run", fake_run)
        with pytest.raises(SinkUnavailable) as excinfo:
            ClipboardSink()("ls")
        assert "no display" in str(excinfo.value)

    def test_tool_timeout(self, monkeypatch):
        monkeypatch.setattr(histsink.shutil, "which", lambda name: "/usr/bin/pbcopy")

        def fake_run(command, **kwargs):
            raise subprocess.TimeoutExpired(command, kwargs["timeout"])

        monkeypatch.setattr(histsink.subprocess, "run", fake_run)
        with pytest.raises(SinkUnavailable):
            ClipboardSink()("ls")


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
class TestClipboardTools:
    def make_tool(self, tmp_path, body):
        tool = tmp_path / "fake-xclip"
        tool.write_text("#!/bin/sh\n" + body)
        tool.chmod(0o755)
        return str(tool)

    def test_tool_that_forks_a_selection_owner(self, tmp_path):
        # Like xclip: read stdin, then leave a child holding the selection.
        out = tmp_path / "clipboard.txt"
        tool = self.make_tool(tmp_path, 'cat > "$1"\n(sleep 5) &\n')
        started = time.monotonic()
        ClipboardSink(commands=[[tool, str(out)]])("git status")
        assert time.monotonic() - started < histsink.CLIPBOARD_TIMEOUT
        assert out.read_text() == "git status"

    def test_tool_error_output_reported(self, tmp_path):
        tool = self.make_tool(tmp_path, 'cat > /dev/null\necho "Error: Can\'t open display" >&2\nexit 1\n')
        with pytest.raises(SinkUnavailable) as excinfo:
            ClipboardSink(commands=[[tool]])("ls")
        assert "status 1" in str(excinfo.value)
        assert "Can't open display" in str(excinfo.value)


def test_build_sink():
    assert isinstance(build_sink(True), StdoutSink)
    assert isinstance(build_sink(False), ClipboardSink)
