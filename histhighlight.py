"""
histhighlight.py - Rich rendering of a single result row.

Commands are tokenized with Pygments' BashLexer (zsh history is close enough to
bash for coloring), styled with a Monokai Pro palette, and every occurrence of
the query is overlaid with a match style.
"""

from __future__ import annotations

from pygments.lexers.shell import BashLexer
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
    _TokenType,
)
from rich.style import Style
from rich.text import Text as RichText

NEWLINE_GLYPH = " ⏎ "

_BLACK = "#2d2a2e"
_SELECTED_BG = "#403e41"
_RED = "#ff6188"
_GREEN = "#a9dc76"
_YELLOW = "#ffd866"
_ORANGE = "#fc9867"
_PURPLE = "#ab9df2"
_CYAN = "#78dce8"
_WHITE = "#fcfcfa"
_COMMENT_GRAY = "#727072"

DEFAULT_STYLE = Style(color=_WHITE)
MATCH_STYLE = Style(color=_BLACK, bgcolor=_YELLOW, bold=True)
SELECTED_STYLE = Style(bgcolor=_SELECTED_BG, bold=True)
GLYPH_STYLE = Style(color=_COMMENT_GRAY)

TOKEN_STYLES: dict[_TokenType, Style] = {
    Name.Builtin: Style(color=_CYAN, italic=True),
    Name.Variable: Style(color=_PURPLE),
    Name.Attribute: Style(color=_ORANGE),
    Number: Style(color=_CYAN),
    Text: DEFAULT_STYLE,
    Comment: Style(color=_COMMENT_GRAY, italic=True),
    Keyword: Style(color=_RED, bold=True),
    Operator: Style(color=_RED),
    Punctuation: Style(color=_WHITE),
    String: Style(color=_YELLOW),
    String.Escape: Style(color=_PURPLE),
    String.Interpol: Style(color=_PURPLE, bold=True),
    Error: Style(color=_RED, bold=True),
}

_lexer = BashLexer(stripnl=False, ensurenl=False)


def style_for_token(token: _TokenType) -> Style:
    """Walks up the token hierarchy until a styled ancestor is found."""
    while token is not Token:
        if token in TOKEN_STYLES:
            return TOKEN_STYLES[token]
        token = token.parent
    return DEFAULT_STYLE


def display_text(command: str) -> str:
    return command.replace("\r", "").replace("\n", NEWLINE_GLYPH)


def match_spans(text: str, query: str) -> list[tuple[int, int]]:
    """→ Non-overlapping (start, end) spans of case-insensitive query occurrences"""
    if not query:
        return []
    haystack = text.lower()
    needle = query.lower()
    if len(haystack) != len(text):
        # Lowercasing changed the length; offsets would not line up.
        return []
    spans = []
    start = haystack.find(needle)
    while start != -1:
        spans.append((start, start + len(needle)))
        start = haystack.find(needle, start + len(needle))
    return spans


def highlight_command(command: str, query: str = "", *, selected: bool = False) -> RichText:
    """→ Builds the styled one-line row for a command"""
    row = RichText(style=SELECTED_STYLE if selected else "", no_wrap=True, overflow="ellipsis")
    for token, value in _lexer.get_tokens(display_text(command)):
        row.append(value, style=style_for_token(token))

    # Offsets come from what the lexer emitted; it drops a leading BOM.
    shown = row.plain
    start = shown.find(NEWLINE_GLYPH)
    while start != -1:
        row.stylize(GLYPH_STYLE, start, start + len(NEWLINE_GLYPH))
        start = shown.find(NEWLINE_GLYPH, start + len(NEWLINE_GLYPH))

    for start, end in match_spans(shown, query):
        row.stylize(MATCH_STYLE, start, end)
    return row
