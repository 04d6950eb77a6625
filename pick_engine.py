"""
pick_engine.py - Search/selection engine behind histpick

Everything in here is a pure in-memory computation over the candidate list, so the
Textual front end in `histpick.py` stays a thin event source and renderer.

1.  **HistoryLoader:** `load_candidates()` turns a history file into a recency-first,
    comment-free, de-duplicated list of candidates.
2.  **MatchEngine:** `filter_candidates()` applies a `Query` (text + `MatchMode` + `CasePolicy`).
3.  **Highlighter:** `highlight_spans()` splits one candidate into `(text, is_match)` runs.
4.  **ViewportController:** `ViewState` keeps the selection cursor inside a bounded window.
5.  **InteractionLoop:** `PickerSession` is the Active → Confirmed / Cancelled state machine
    that ties the above together. Each handler re-filters and resets the view as needed.
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

# Prompt line, help line, header and status line
CHROME_HEIGHT = 4
DEFAULT_PAGE_SIZE = 20

# zsh EXTENDED_HISTORY prefix, e.g. ": 1700012345:0;git status"
HISTORY_ENTRY_RE = re.compile(r"^: \d{10}:\d+;")


def console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        print(string, file=sys.stderr)


# ============================================================================
# HISTORY LOADING
# ============================================================================


def default_history_path() -> Path:
    """→ $HISTFILE when exported, otherwise ~/.bash_history"""
    histfile = os.environ.get("HISTFILE")
    if histfile:
        return Path(histfile).expanduser()
    return Path.home() / ".bash_history"


def read_history_file(file_path: Path) -> list[str] | None:
    """→ File I/O: Reads the history file and returns its lines, handling errors"""
    try:
        text = Path(file_path).read_bytes().decode("utf-8", errors="ignore")
    except FileNotFoundError:
        console_print(f"[warning]History file not found at '{escape(str(file_path))}'[/warning]")
        return None
    except IOError as e:
        console_print(f"[warning]Could not read history file '{escape(str(file_path))}': {escape(str(e))}[/warning]")
        return None

    # One command per "\n"; other Unicode line breaks belong to the command
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def remove_timestamp_from_line(line: str) -> str:
    """→ Strips a zsh EXTENDED_HISTORY prefix, leaving the command text"""
    if HISTORY_ENTRY_RE.match(line):
        return line.split(";", 1)[1]
    return line


def clean_history_lines(lines: Iterable[str]) -> list[str]:
    """Orders raw history lines most-recent-first and drops comments and repeats.

    Only the first (most recent) occurrence of a command survives; the relative order
    of survivors is otherwise preserved.
    """
    seen: set[str] = set()
    candidates: list[str] = []
    for line in reversed(list(lines)):
        if line.startswith("#"):
            continue
        command = remove_timestamp_from_line(line)
        if not command.strip() or command in seen:
            continue
        seen.add(command)
        candidates.append(command)
    return candidates


def load_candidates(file_path: Path) -> list[str]:
    """→ HistoryLoader: an unreadable source degrades to an empty session"""
    lines = read_history_file(file_path)
    if lines is None:
        return []
    return clean_history_lines(lines)


# ============================================================================
# QUERY MODEL
# ============================================================================


class MatchMode(Enum):
    EXACT = "exact"
    KEYWORDS = "keywords"
    REGEX = "regex"

    def next(self) -> MatchMode:
        members = list(MatchMode)
        return members[(members.index(self) + 1) % len(members)]

    def __str__(self) -> str:
        return self.value


class CasePolicy(Enum):
    INSENSITIVE = "insensitive"
    SENSITIVE = "sensitive"

    def next(self) -> CasePolicy:
        members = list(CasePolicy)
        return members[(members.index(self) + 1) % len(members)]

    def __str__(self) -> str:
        return self.value


@dataclass
class Query:
    """The user's filter text plus the active match mode and case policy."""

    text: str = ""
    mode: MatchMode = MatchMode.EXACT
    case: CasePolicy = CasePolicy.INSENSITIVE

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def fold(self, value: str) -> str:
        return value.lower() if self.case is CasePolicy.INSENSITIVE else value

    @property
    def keywords(self) -> list[str]:
        return [word for word in self.text.split(" ") if word]


def compile_query_pattern(pattern: str, ignore_case: bool) -> re.Pattern | None:
    """→ Compiles a user regex; None when it is not (yet) valid"""
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error:
        return None


# ============================================================================
# MATCH ENGINE
# ============================================================================


def _match_exact(candidates: list[str], query: Query) -> list[str]:
    prefix = query.fold(query.text)
    return [cmd for cmd in candidates if query.fold(cmd).startswith(prefix)]


def _match_keywords(candidates: list[str], query: Query) -> list[str]:
    words = [query.fold(word) for word in query.keywords]
    return [cmd for cmd in candidates if all(word in query.fold(cmd) for word in words)]


def _match_regex(candidates: list[str], query: Query) -> list[str]:
    pattern = compile_query_pattern(query.text, query.case is CasePolicy.INSENSITIVE)
    if pattern is None:
        return []
    return [cmd for cmd in candidates if pattern.search(cmd)]


MATCHERS = {
    MatchMode.EXACT: _match_exact,
    MatchMode.KEYWORDS: _match_keywords,
    MatchMode.REGEX: _match_regex,
}


def filter_candidates(candidates: list[str], query: Query) -> list[str]:
    """Returns the subsequence of `candidates` satisfying `query`.

    A blank query keeps everything regardless of mode. An invalid regular expression
    matches nothing until the text compiles again.
    """
    if query.is_empty:
        return list(candidates)
    return MATCHERS[query.mode](candidates, query)


# ============================================================================
# HIGHLIGHTER
# ============================================================================


def _mask_to_spans(text: str, mask: list[bool]) -> list[tuple[str, bool]]:
    spans: list[tuple[str, bool]] = []
    start = 0
    for i in range(1, len(text) + 1):
        if i == len(text) or mask[i] != mask[start]:
            spans.append((text[start:i], mask[start]))
            start = i
    return spans


def highlight_spans(candidate: str, query: Query) -> list[tuple[str, bool]]:
    """Splits `candidate` into `(text, is_match)` runs for rendering emphasis.

    Joining the run texts always gives back `candidate`. Highlighting never hides a
    row: a blank query or a broken regex just yields one unmarked run.
    """
    if not candidate:
        return []
    unmarked = [(candidate, False)]
    if query.is_empty:
        return unmarked

    mask = [False] * len(candidate)

    if query.mode is MatchMode.EXACT:
        prefix = query.fold(query.text.strip())
        if not query.fold(candidate).startswith(prefix):
            return unmarked
        # Folding may change length (e.g. "İ"), so find the original prefix that covers it
        matched = next(
            k for k in range(1, len(candidate) + 1) if len(query.fold(candidate[:k])) >= len(prefix)
        )
        for i in range(matched):
            mask[i] = True

    elif query.mode is MatchMode.KEYWORDS:
        for word in query.keywords:
            for match in re.finditer(re.escape(word), candidate, re.IGNORECASE):
                for i in range(match.start(), match.end()):
                    mask[i] = True

    elif query.mode is MatchMode.REGEX:
        pattern = compile_query_pattern(query.text, ignore_case=True)
        if pattern is None:
            return unmarked
        for match in pattern.finditer(candidate):
            for i in range(match.start(), match.end()):
                mask[i] = True

    return _mask_to_spans(candidate, mask)


# ============================================================================
# VIEWPORT
# ============================================================================


def page_size_for_height(height: int) -> int:
    """→ Rows left for results once the fixed chrome is drawn (never below one)"""
    return max(1, height - CHROME_HEIGHT)


@dataclass
class ViewState:
    """Selection cursor plus the visible window `[start, end)` over the filtered list."""

    selected: int = 0
    start: int = 0
    end: int = 0
    page_size: int = DEFAULT_PAGE_SIZE

    def reset(self, total: int) -> None:
        self.selected = 0
        self.start = 0
        self.end = min(self.page_size, total)

    def move_up(self) -> None:
        if self.selected > 0:
            self.selected -= 1
            if self.selected < self.start:
                self.start -= 1
                self.end -= 1

    def move_down(self, total: int) -> None:
        if self.selected < total - 1:
            self.selected += 1
            if self.selected >= self.end:
                self.start += 1
                self.end += 1

    def resize(self, page_size: int, total: int) -> None:
        """Applies a new page size without losing the current selection."""
        self.page_size = page_size
        if total == 0:
            self.selected = self.start = self.end = 0
            return
        self.selected = min(self.selected, total - 1)
        self.start = min(self.start, self.selected)
        if self.selected >= self.start + page_size:
            self.start = self.selected - page_size + 1
        self.end = min(self.start + page_size, total)


# ============================================================================
# INTERACTION LOOP
# ============================================================================


class SessionState(Enum):
    ACTIVE = "active"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass
class PickerSession:
    """Owns everything that mutates during one picking session.

    Event handlers are no-ops once the session has left `ACTIVE`. `visible_rows()`
    and `selected_candidate` are pure reads for the renderer.
    """

    candidates: list[str]
    query: Query = field(default_factory=Query)
    view: ViewState = field(default_factory=ViewState)
    state: SessionState = SessionState.ACTIVE
    selection: str | None = None
    filtered: list[str] = field(init=False)

    def __post_init__(self):
        self.filtered = []
        self.refilter()

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def selected_candidate(self) -> str | None:
        if not self.filtered:
            return None
        return self.filtered[self.view.selected]

    def refilter(self) -> None:
        self.filtered = filter_candidates(self.candidates, self.query)
        self.view.reset(len(self.filtered))

    # --- Query-affecting events ---

    def set_text(self, text: str) -> None:
        if not self.is_active or text == self.query.text:
            return
        self.query.text = text
        self.refilter()

    def insert_text(self, chars: str) -> None:
        self.set_text(self.query.text + chars)

    def delete_char(self) -> None:
        self.set_text(self.query.text[:-1])

    def toggle_mode(self) -> None:
        if not self.is_active:
            return
        self.query.mode = self.query.mode.next()
        self.refilter()

    def toggle_case(self) -> None:
        if not self.is_active:
            return
        self.query.case = self.query.case.next()
        self.refilter()

    # --- Navigation & resize ---

    def move_up(self) -> None:
        if self.is_active:
            self.view.move_up()

    def move_down(self) -> None:
        if self.is_active:
            self.view.move_down(len(self.filtered))

    def resize(self, height: int) -> None:
        if self.is_active:
            self.view.resize(page_size_for_height(height), len(self.filtered))

    # --- Terminal transitions ---

    def confirm(self) -> str | None:
        """→ Confirmed with the selected candidate; ignored while nothing matches"""
        if not self.is_active or not self.filtered:
            return None
        self.selection = self.filtered[self.view.selected]
        self.state = SessionState.CONFIRMED
        return self.selection

    def cancel(self) -> None:
        if self.is_active:
            self.state = SessionState.CANCELLED

    def visible_rows(self) -> list[tuple[int, str, bool]]:
        return [
            (index, self.filtered[index], index == self.view.selected)
            for index in range(self.view.start, self.view.end)
        ]
