import pytest

from histmodel import ShellKind, SourceUnavailable
from histparse import (
    HistoryParser,
    has_continuation,
    parse_history,
    read_history_sources,
    split_lines,
    unmetafy,
)


def texts(entries):
    return [e.text for e in entries]


class TestBashGrammar:
    def test_one_entry_per_line(self):
        entries = parse_history(ShellKind.BASH, [b"ls -la\ngit status\n  make test  \n"])
        assert texts(entries) == ["ls -la", "git status", "make test"]
        assert [e.sequence for e in entries] == [0, 1, 2]
        assert all(e.timestamp is None and e.duration is None for e in entries)

    def test_empty_and_blank_lines_dropped(self):
        entries = parse_history(ShellKind.BASH, [b"ls\n\n   \n\tpwd\n"])
        assert texts(entries) == ["ls", "pwd"]
        assert [e.sequence for e in entries] == [0, 1]

    def test_missing_trailing_newline(self):
        assert texts(parse_history(ShellKind.BASH, [b"a\nb"])) == ["a", "b"]

    def test_crlf_line_endings(self):
        assert texts(parse_history(ShellKind.BASH, [b"echo hi\r\nls\r\n"])) == ["echo hi", "ls"]

    def test_continuation_joins_lines(self):
        entries = parse_history(ShellKind.BASH, [b"docker run \\\n  -it \\\n  ubuntu\nls\n"])
        assert texts(entries) == ["docker run \n  -it \n  ubuntu", "ls"]

    def test_escaped_backslash_is_not_continuation(self):
        entries = parse_history(ShellKind.BASH, [b"echo foo\\\\\nls\n"])
        assert texts(entries) == ["echo foo\\\\", "ls"]

    def test_continuation_at_end_of_file(self):
        entries = parse_history(ShellKind.BASH, [b"echo \\\n"])
        assert texts(entries) == ["echo"]

    def test_zsh_header_is_plain_text_for_bash(self):
        entries = parse_history(ShellKind.BASH, [b": 1690000000:0;ls\n"])
        assert texts(entries) == [": 1690000000:0;ls"]
        assert entries[0].timestamp is None

    def test_escaped_trailing_space_keeps_backslash_escaped(self):
        entries = parse_history(ShellKind.BASH, [b"echo \\ \n"])
        assert texts(entries) == ["echo \\ "]
        assert not has_continuation(entries[0].text)


class TestZshGrammar:
    def test_extended_record(self):
        entries = parse_history(ShellKind.ZSH, [b": 1690000000:3;make build\n"])
        assert len(entries) == 1
        assert entries[0].text == "make build"
        assert entries[0].timestamp == 1690000000
        assert entries[0].duration == 3

    def test_continuation_joining(self):
        entries = parse_history(ShellKind.ZSH, [b": 1690000000:0;echo \\\nhello"])
        assert len(entries) == 1
        assert entries[0].text == "echo \nhello"
        assert entries[0].timestamp == 1690000000

    def test_multiline_record_followed_by_record(self):
        data = b": 1690000000:0;for f in *; do\\\necho $f\\\ndone\n: 1690000005:1;ls\n"
        entries = parse_history(ShellKind.ZSH, [data])
        assert texts(entries) == ["for f in *; do\necho $f\ndone", "ls"]
        assert [e.timestamp for e in entries] == [1690000000, 1690000005]

    def test_header_line_ends_pending_continuation(self):
        data = b": 1690000000:0;echo \\\n: 1690000001:0;ls\n"
        entries = parse_history(ShellKind.ZSH, [data])
        assert texts(entries) == ["echo", "ls"]

    def test_plain_lines_fall_back_to_bash_grammar(self):
        data = b"ls\n: 1690000000:0;pwd\ncd /tmp\n"
        entries = parse_history(ShellKind.ZSH, [data])
        assert texts(entries) == ["ls", "pwd", "cd /tmp"]
        assert [e.timestamp for e in entries] == [None, 1690000000, None]

    def test_malformed_header_degrades_to_plain(self):
        parser = HistoryParser(ShellKind.ZSH)
        entries = parser.parse([b": 1690000000:x;ls\n: 1690000000:0;pwd\n"])
        assert texts(entries) == [": 1690000000:x;ls", "pwd"]
        assert entries[0].timestamp is None
        assert parser.stats.malformed == 1
        assert parser.stats.structured == 1
        assert parser.stats.plain == 1

    def test_colon_command_continues_record(self):
        parser = HistoryParser(ShellKind.ZSH)
        data = b": 1690000000:0;f() {\\\n: ${FOO:=bar}; echo $FOO\\\n}\n"
        entries = parser.parse([data])
        assert texts(entries) == ["f() {\n: ${FOO:=bar}; echo $FOO\n}"]
        assert entries[0].timestamp == 1690000000
        assert parser.stats.malformed == 0

    def test_colon_command_is_plain_not_malformed(self):
        parser = HistoryParser(ShellKind.ZSH)
        entries = parser.parse([b": ${FOO:=bar}; ls\n: abc:0;pwd\n"])
        assert texts(entries) == [": ${FOO:=bar}; ls", ": abc:0;pwd"]
        assert parser.stats.plain == 2
        assert parser.stats.malformed == 0

    def test_empty_command_in_record_dropped(self):
        parser = HistoryParser(ShellKind.ZSH)
        entries = parser.parse([b": 1690000000:0;\n: 1690000001:0;ls\n"])
        assert texts(entries) == ["ls"]
        assert entries[0].sequence == 0
        assert parser.stats.dropped_empty == 1

    def test_metafied_bytes_decoded(self):
        # "→" is E2 86 92; zsh stores 86 and 92 as Meta followed by the byte ^ 0x20.
        data = b": 1690000000:0;echo \xe2\x83\xa6\x83\xb2\n"
        entries = parse_history(ShellKind.ZSH, [data])
        assert entries[0].text == "echo →"

    def test_bash_buffers_are_not_unmetafied(self):
        entries = parse_history(ShellKind.BASH, [b"echo \xe2\x86\x92\n"])
        assert entries[0].text == "echo →"


class TestDecoding:
    def test_unmetafy(self):
        assert unmetafy(b"abc\x83\x44ef") == b"abc\x64ef"
        assert unmetafy(b"plain") == b"plain"

    def test_unmetafy_trailing_meta(self):
        assert unmetafy(b"ab\x83") == b"ab"

    def test_invalid_utf8_is_replaced(self):
        entries = parse_history(ShellKind.BASH, [b"echo \xff\xfe\n"])
        assert entries[0].text == "echo ��"

    def test_split_lines(self):
        assert split_lines("a\nb\n") == ["a", "b"]
        assert split_lines("") == []
        assert split_lines("a\r\n\nb") == ["a", "", "b"]

    def test_has_continuation(self):
        assert has_continuation("echo \\")
        assert not has_continuation("echo \\\\")
        assert has_continuation("echo \\\\\\")
        assert not has_continuation("echo")


class TestMultipleSources:
    def test_sequences_span_buffers(self):
        entries = parse_history(ShellKind.BASH, [b"a\nb\n", b"c\n"])
        assert texts(entries) == ["a", "b", "c"]
        assert [e.sequence for e in entries] == [0, 1, 2]

    def test_continuation_does_not_span_files(self):
        entries = parse_history(ShellKind.BASH, [b"echo \\\n", b"ls\n"])
        assert texts(entries) == ["echo", "ls"]

    def test_no_sources(self):
        assert parse_history(ShellKind.ZSH, []) == []

    def test_stats_reset_between_parses(self):
        parser = HistoryParser(ShellKind.BASH)
        parser.parse([b"a\n"])
        parser.parse([b"b\nc\n"])
        assert parser.stats.sources == 1
        assert parser.stats.lines == 2


class TestReadHistorySources:
    def test_reads_in_order(self, tmp_path):
        first = tmp_path / "one"
        second = tmp_path / "two"
        first.write_bytes(b"a\n")
        second.write_bytes(b"b\n")
        assert read_history_sources([first, second]) == [b"a\n", b"b\n"]

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope"
        with pytest.raises(SourceUnavailable) as excinfo:
            read_history_sources([missing])
        assert excinfo.value.path == missing
        assert excinfo.value.exit_code == 3

    def test_directory(self, tmp_path):
        with pytest.raises(SourceUnavailable):
            read_history_sources([tmp_path])
