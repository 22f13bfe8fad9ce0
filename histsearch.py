"""
histsearch.py - The interactive search state machine.

`SearchController` owns the query, the current matches, the cursor and the
viewport. It knows nothing about terminals: it consumes `KeyEvent`s and produces
`RenderModel`s, and it hands the chosen command to a sink once the user confirms.

States
------
- BROWSING: initial; the list is visible and the query is editable.
- CONFIRMED: terminal; `selection` holds the chosen command.
- CANCELLED: terminal; nothing is emitted.

Any backend can drive it. The Textual app calls `handle()` from its key handlers;
tests and scripted sessions use the pull loop in `run()`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto

from histfilter import FilterEngine
from histmodel import RankedCommand

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT_HEIGHT = 20


class KeyKind(Enum):
    CHARACTER = auto()
    BACKSPACE = auto()
    CLEAR = auto()
    MOVE_UP = auto()
    MOVE_DOWN = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    CONFIRM = auto()
    CANCEL = auto()


@dataclass(frozen=True)
class KeyEvent:
    kind: KeyKind
    char: str = ""

    @classmethod
    def character(cls, char: str) -> KeyEvent:
        return cls(KeyKind.CHARACTER, char)


class SearchState(Enum):
    BROWSING = "browsing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RenderModel:
    """Everything a renderer needs to draw one frame."""

    visible_entries: tuple[str, ...]
    highlighted_index: int | None
    query: str
    match_count: int
    total_count: int
    offset: int
    state: SearchState


Renderer = Callable[[RenderModel], None]
Sink = Callable[[str], None]


class SearchController:
    """Applies key events to the filter state and reports whether anything changed."""

    def __init__(
        self,
        master: Sequence[RankedCommand],
        *,
        query: str = "",
        viewport_height: int = DEFAULT_VIEWPORT_HEIGHT,
    ):
        self.master = master
        self.engine = FilterEngine(master)
        self.viewport_height = max(1, viewport_height)
        self.state = SearchState.BROWSING
        self.selection: str | None = None
        self.query = query
        self.matches: list[RankedCommand] = self.engine.filter(query)
        self.cursor = 0
        self.offset = 0
        self._delivered = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle(self, event: KeyEvent | None) -> bool:
        """→ Applies one event; True when the state changed and a frame is due"""
        if self.state is not SearchState.BROWSING or event is None:
            return False

        kind = event.kind
        if kind is KeyKind.CHARACTER:
            if not event.char:
                return False
            return self._set_query(self.query + event.char)
        if kind is KeyKind.BACKSPACE:
            if not self.query:
                return False
            return self._set_query(self.query[:-1])
        if kind is KeyKind.CLEAR:
            if not self.query:
                return False
            return self._set_query("")
        if kind is KeyKind.MOVE_UP:
            return self._move_cursor(-1)
        if kind is KeyKind.MOVE_DOWN:
            return self._move_cursor(1)
        if kind is KeyKind.PAGE_UP:
            return self._move_cursor(-self.viewport_height)
        if kind is KeyKind.PAGE_DOWN:
            return self._move_cursor(self.viewport_height)
        if kind is KeyKind.CONFIRM:
            if not self.matches:
                return False
            self.selection = self.matches[self.cursor].text
            self.state = SearchState.CONFIRMED
            logger.debug("Confirmed match %d of %d", self.cursor + 1, len(self.matches))
            return True
        if kind is KeyKind.CANCEL:
            self.state = SearchState.CANCELLED
            return True
        return False

    def resize(self, viewport_height: int) -> bool:
        viewport_height = max(1, viewport_height)
        if viewport_height == self.viewport_height:
            return False
        self.viewport_height = viewport_height
        self._scroll_to_cursor()
        return True

    def _set_query(self, query: str) -> bool:
        self.query = query
        self.matches = self.engine.filter(query)
        self.cursor = 0
        self.offset = 0
        return True

    def _move_cursor(self, delta: int) -> bool:
        if not self.matches:
            return False
        cursor = min(max(self.cursor + delta, 0), len(self.matches) - 1)
        if cursor == self.cursor:
            return False
        self.cursor = cursor
        self._scroll_to_cursor()
        return True

    def _scroll_to_cursor(self) -> None:
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + self.viewport_height:
            self.offset = self.cursor - self.viewport_height + 1

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def render_model(self) -> RenderModel:
        window = self.matches[self.offset : self.offset + self.viewport_height]
        return RenderModel(
            visible_entries=tuple(command.text for command in window),
            highlighted_index=self.cursor - self.offset if self.matches else None,
            query=self.query,
            match_count=len(self.matches),
            total_count=len(self.master),
            offset=self.offset,
            state=self.state,
        )

    def deliver(self, sink: Sink) -> None:
        """→ Hands the confirmed selection to the sink; allowed once, only after confirm"""
        if self.state is not SearchState.CONFIRMED or self.selection is None:
            raise RuntimeError("No confirmed selection to deliver")
        if self._delivered:
            raise RuntimeError("Selection was already delivered")
        self._delivered = True
        sink(self.selection)

    def run(
        self,
        next_event: Callable[[], KeyEvent | None],
        render: Renderer,
        sink: Sink | None = None,
    ) -> SearchState:
        """→ Pull loop: render, read an event, apply it, until a terminal state

        `next_event` may block. Raising StopIteration (an exhausted script)
        counts as cancel.
        """
        render(self.render_model())
        while self.state is SearchState.BROWSING:
            try:
                event = next_event()
            except StopIteration:
                event = KeyEvent(KeyKind.CANCEL)
            if self.handle(event):
                render(self.render_model())
        if self.state is SearchState.CONFIRMED and sink is not None:
            self.deliver(sink)
        return self.state
