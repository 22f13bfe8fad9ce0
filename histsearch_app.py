"""
histsearch_app.py - Textual front end for the search controller.

The app is a thin backend: it translates Textual key events into `KeyEvent`s,
feeds them to the `SearchController`, and redraws from the controller's
`RenderModel` whenever the controller reports a change. It exits with the
selected command (or None) once the controller reaches a terminal state.
"""

from __future__ import annotations

from rich.console import Group
from rich.text import Text as RichText
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static

from histhighlight import highlight_command
from histsearch import KeyEvent, KeyKind, RenderModel, SearchController, SearchState

# Header, search box (with border), results border, status line, footer.
CHROME_ROWS = 8

KEYMAP: dict[str, KeyKind] = {
    "up": KeyKind.MOVE_UP,
    "down": KeyKind.MOVE_DOWN,
    "pageup": KeyKind.PAGE_UP,
    "pagedown": KeyKind.PAGE_DOWN,
    "enter": KeyKind.CONFIRM,
    "escape": KeyKind.CANCEL,
    "ctrl+c": KeyKind.CANCEL,
    "backspace": KeyKind.BACKSPACE,
    "ctrl+u": KeyKind.CLEAR,
}


def translate_key(key: str, character: str | None = None) -> KeyEvent | None:
    """→ Maps a Textual key name (and its character) to a controller event, or None"""
    kind = KEYMAP.get(key)
    if kind is not None:
        return KeyEvent(kind)
    if character and len(character) == 1 and character.isprintable():
        return KeyEvent.character(character)
    return None


class HistorySearchApp(App[str | None]):
    TITLE = "histsearch"

    CSS = """
    #search {
        height: 3;
        border: round #4B5263;
        padding: 0 1;
    }
    #results {
        height: 1fr;
        border: round #4B5263;
    }
    #status {
        height: 1;
        color: #5C6370;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("enter", "apply_key('enter')", "Select", priority=True),
        Binding("escape", "apply_key('escape')", "Cancel", priority=True),
        Binding("ctrl+c", "apply_key('ctrl+c')", "Cancel", show=False, priority=True),
        Binding("ctrl+u", "apply_key('ctrl+u')", "Clear query", priority=True),
        Binding("up", "apply_key('up')", "Up", show=False, priority=True),
        Binding("down", "apply_key('down')", "Down", show=False, priority=True),
        Binding("pageup", "apply_key('pageup')", "Page up", show=False, priority=True),
        Binding("pagedown", "apply_key('pagedown')", "Page down", show=False, priority=True),
        Binding("backspace", "apply_key('backspace')", "Delete", show=False, priority=True),
    ]

    def __init__(self, controller: SearchController, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.controller = controller
        self._frame_ready = False

    def compose(self) -> ComposeResult:
        yield Header()
        search = Static(id="search")
        search.border_title = "Search"
        yield search
        results = Static(id="results")
        results.border_title = "History"
        yield results
        yield Static(id="status")
        yield Footer()

    def on_mount(self):
        self._frame_ready = True
        self.controller.resize(self.size.height - CHROME_ROWS)
        self.render_frame(self.controller.render_model())

    def on_resize(self, event: events.Resize):
        if self.controller.resize(event.size.height - CHROME_ROWS) and self._frame_ready:
            self.render_frame(self.controller.render_model())

    def on_key(self, event: events.Key):
        key_event = translate_key(event.key, event.character)
        if key_event is not None:
            event.stop()
            self.apply_key_event(key_event)

    def action_apply_key(self, key: str):
        self.apply_key_event(translate_key(key))

    def apply_key_event(self, key_event: KeyEvent | None):
        if not self.controller.handle(key_event):
            return
        self.render_frame(self.controller.render_model())
        if self.controller.state is not SearchState.BROWSING:
            self.exit(self.controller.selection)

    def render_frame(self, model: RenderModel):
        search_text = RichText.assemble(("› ", "bold #FF6188"), model.query, ("▏", "#FCFCFA"))
        self.query_one("#search", Static).update(search_text)

        if model.visible_entries:
            rows = [
                highlight_command(text, model.query, selected=i == model.highlighted_index)
                for i, text in enumerate(model.visible_entries)
            ]
            self.query_one("#results", Static).update(Group(*rows))
        else:
            empty = "History is empty" if not model.total_count else "No matching commands"
            self.query_one("#results", Static).update(RichText(empty, style="italic #5C6370"))

        position = model.offset + (model.highlighted_index or 0) + 1 if model.match_count else 0
        self.query_one("#status", Static).update(
            f"{position}/{model.match_count} matches · {model.total_count} commands"
        )


def run_app(controller: SearchController) -> str | None:
    """→ Runs the interactive session; returns the selection or None"""
    return HistorySearchApp(controller).run()
