#!/usr/bin/env python3
"""
histpick.py - Interactive shell history picker

**Architecture & Extension Guide**

`histpick` loads your shell history, lets you narrow it down live as you type, and on
confirmation pushes the chosen line back into the terminal, pre-filled on your next prompt.
It never runs anything itself.

**1. The Guiding Philosophy**

The core is a plain state object, `PickerSession` (see `pick_engine.py`), which owns the
candidate list, the query, the filtered result and the viewport. The Textual app in this
file is only an event source and a renderer: every key binding calls one session method and
then `refresh_view()` re-reads the session. Nothing here mutates matching or scroll state
directly.

**2. The Lifecycle of a Pick**

1.  **Load:** `load_candidates()` reads the history file (most recent first, no comments,
    no duplicates). An unreadable file gives an empty, but still usable, session.
2.  **Filter:** each keystroke, `ctrl+e` (match mode) or `ctrl+t` (case policy) re-filters
    and resets the selection to the top.
3.  **Navigate:** up/down move the cursor; the window scrolls one row at a time.
4.  **Exit:** enter/tab returns the selected line from `App.run()`; escape/ctrl+c returns None.
5.  **Inject:** after the alternate screen is gone, `TerminalInjector` replays the line
    through TIOCSTI (or `--print` writes it to stdout instead).

**3. How to Add a New Match Mode**

1.  Add a member to `MatchMode`; `next()` picks it up in the toggle cycle automatically.
2.  Write a `_match_<mode>(candidates, query)` function and register it in `MATCHERS`.
3.  Teach `highlight_spans()` which characters to mark for it.

The header, the toggle binding and the `--mode` flag all derive from the enum.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.style import Style
from rich.text import Text as RichText
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import Resize
from textual.widgets import Input, Label, Static

from pick_engine import (
    CasePolicy,
    MatchMode,
    PickerSession,
    Query,
    compile_query_pattern,
    console_print,
    default_history_path,
    highlight_spans,
    load_candidates,
)
from shell_lexer import colorize_command
from tty_inject import TerminalInjector

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

PROMPT = "$ "
PLACEHOLDER = "Filter..."
HELP_TEXT = "Type to filter, UP/DOWN move, RET/TAB select"
QUERY_CHAR_LIMIT = 10000

HIGHLIGHT_STYLE = Style(color="#FF0000")
CURSOR_STYLE = Style(color="#FF4500", bold=True)

# Below this width rows are shown as-is rather than shortened
MIN_FIT_WIDTH = 10


@dataclass
class PickerConfig:
    """Everything `main()` needs, as resolved from the command line."""

    history_path: Path
    mode: MatchMode = MatchMode.EXACT
    case: CasePolicy = CasePolicy.INSENSITIVE
    padding: bool = True
    print_only: bool = False


def parse_args(argv: list[str] | None = None) -> PickerConfig:
    ap = argparse.ArgumentParser(
        description="Pick a line from your shell history and pre-fill it on the next prompt"
    )
    ap.add_argument(
        "history_file",
        nargs="?",
        help="History file to read (default: $HISTFILE, else ~/.bash_history)",
    )
    ap.add_argument(
        "--mode",
        choices=[mode.value for mode in MatchMode],
        default=MatchMode.EXACT.value,
        help="Initial match mode (ctrl+e cycles it)",
    )
    ap.add_argument(
        "--case",
        choices=[case.value for case in CasePolicy],
        default=CasePolicy.INSENSITIVE.value,
        help="Initial case policy (ctrl+t cycles it)",
    )
    ap.add_argument(
        "--no-padding",
        dest="padding",
        action="store_false",
        help="Do not print a newline after injecting the selection",
    )
    ap.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Write the selection to stdout instead of injecting it into the terminal",
    )
    args = ap.parse_args(argv)

    history_path = Path(args.history_file).expanduser() if args.history_file else default_history_path()
    return PickerConfig(
        history_path=history_path,
        mode=MatchMode(args.mode),
        case=CasePolicy(args.case),
        padding=args.padding,
        print_only=args.print_only,
    )


# ============================================================================
# RENDERING
# ============================================================================


def fit_to_width(command: str, width: int) -> str:
    """→ Shortens a long command in the middle, keeping both ends visible"""
    if len(command) <= width or width < MIN_FIT_WIDTH:
        return command
    part_length = (width - 3) // 2
    return command[:part_length] + "..." + command[len(command) - part_length:]


def render_header(query: Query, width: int) -> str:
    header = f"- HISTORY - match:{query.mode} (C-e) - case:{query.case} (C-t)"
    # The header widget pads one cell on each side
    remaining = width - (len(header) + 2)
    if remaining > 0:
        header += " " + "-" * (remaining - 1)
    return header


def render_row(command: str, query: Query, selected: bool, width: int) -> RichText:
    display = fit_to_width(command, width - 2)
    line = colorize_command(display)
    offset = 0
    for chunk, is_match in highlight_spans(display, query):
        if is_match:
            line.stylize(HIGHLIGHT_STYLE, offset, offset + len(chunk))
        offset += len(chunk)
    cursor = RichText(">", style=CURSOR_STYLE) if selected else RichText(" ")
    return RichText.assemble(cursor, " ", line)


def render_status(session: PickerSession) -> str:
    status = f"{len(session.filtered)}/{len(session.candidates)} matches"
    query = session.query
    if (
        query.mode is MatchMode.REGEX
        and not query.is_empty
        and compile_query_pattern(query.text, ignore_case=True) is None
    ):
        status += " (invalid regex)"
    return status


# ============================================================================
# USER INTERFACE
# ============================================================================


class HistoryPickApp(App[str | None]):
    CSS = """
    #prompt-line {
        height: 1;
    }
    #prompt {
        width: auto;
        color: #98C379;
    }
    #query {
        border: none;
        height: 1;
        padding: 0;
        width: 1fr;
    }
    #query:focus {
        border: none;
    }
    #help {
        height: 1;
        color: #5C6370;
    }
    #header {
        height: 1;
        padding: 0 1;
        background: #6b0582;
        color: #FFFFFF;
    }
    #results {
        height: 1fr;
    }
    #status {
        height: 1;
        color: #5C6370;
    }
    """

    BINDINGS = [
        Binding("up", "move_up", "Up", priority=True, show=False),
        Binding("down", "move_down", "Down", priority=True, show=False),
        Binding("enter,tab", "confirm", "Select", priority=True),
        Binding("escape,ctrl+c", "cancel", "Cancel", priority=True),
        Binding("ctrl+e", "toggle_mode", "Match mode", priority=True),
        Binding("ctrl+t", "toggle_case", "Case", priority=True),
    ]

    def __init__(self, session: PickerSession, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = session
        self._view_ready = False

    def compose(self) -> ComposeResult:
        with Horizontal(id="prompt-line"):
            yield Label(PROMPT, id="prompt")
            yield Input(
                value=self.session.query.text,
                placeholder=PLACEHOLDER,
                max_length=QUERY_CHAR_LIMIT,
                id="query",
            )
        yield Static(HELP_TEXT, id="help")
        yield Static(id="header")
        yield Static(id="results")
        yield Static(id="status")

    def on_mount(self):
        self.query_one("#query", Input).focus()
        self.session.resize(self.size.height)
        self._view_ready = True
        self.refresh_view()

    def on_resize(self, event: Resize):
        self.session.resize(event.size.height)
        self.refresh_view()

    @on(Input.Changed, "#query")
    def handle_query_changed(self, event: Input.Changed):
        self.session.set_text(event.value)
        self.refresh_view()

    def refresh_view(self):
        if not self._view_ready:
            return
        session = self.session
        width = self.size.width
        rows = [
            render_row(command, session.query, selected, width)
            for _, command, selected in session.visible_rows()
        ]
        self.query_one("#header", Static).update(render_header(session.query, width))
        self.query_one("#results", Static).update(RichText("\n").join(rows))
        self.query_one("#status", Static).update(render_status(session))

    def action_move_up(self):
        self.session.move_up()
        self.refresh_view()

    def action_move_down(self):
        self.session.move_down()
        self.refresh_view()

    def action_toggle_mode(self):
        self.session.toggle_mode()
        self.refresh_view()

    def action_toggle_case(self):
        self.session.toggle_case()
        self.refresh_view()

    def action_confirm(self):
        self.session.set_text(self.query_one("#query", Input).value)
        selection = self.session.confirm()
        if selection is not None:
            self.exit(selection)

    def action_cancel(self):
        self.session.cancel()
        self.exit(None)


def main(argv: list[str] | None = None) -> int:
    """→ Main: load, pick, then hand the selection to the terminal"""
    config = parse_args(argv)

    candidates = load_candidates(config.history_path)
    session = PickerSession(candidates, query=Query(mode=config.mode, case=config.case))

    app = HistoryPickApp(session)
    selection = app.run()

    if selection is None:
        return 0

    if config.print_only:
        print(selection)
        return 0

    # Injection failures are reported by the injector and are not an error exit
    if not TerminalInjector(padding=config.padding).inject(selection):
        console_print("[warning]Selection was not fully injected; use --print to get it on stdout[/warning]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
