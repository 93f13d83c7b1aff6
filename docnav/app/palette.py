"""Command palette state machine.

Owns open/closed state, the query, the current results and the selection
cursor. Views feed it key names and pointer events and redraw from
``render_rows()`` whenever ``on_change`` fires; nothing here touches Qt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from docnav.server.models import IndexEntry

logger = logging.getLogger(__name__)

TRIGGER_KEY = "k"
EMPTY_MESSAGE = "No results found."
SNIPPET_BEFORE = 20
SNIPPET_AFTER = 40

SearchFn = Callable[[str], List[IndexEntry]]
NavigateFn = Callable[[str, str, str], None]


@dataclass
class PaletteState:
    is_open: bool = False
    query: str = ""
    results: List[IndexEntry] = field(default_factory=list)
    selected_index: int = 0


@dataclass(frozen=True)
class ResultRow:
    title: str
    snippet: str
    context: str
    is_sub_section: bool
    selected: bool


def route_hash(page_id: str, category_id: str, anchor: str = "") -> str:
    route = f"#{category_id}/{page_id}"
    if anchor:
        route += f"#{anchor}"
    return route


def context_path(entry: IndexEntry) -> str:
    parts = [part for part in (entry.category, entry.section) if part]
    return " > ".join(part.replace("-", " ") for part in parts)


def snippet_for(entry: IndexEntry, query: str) -> str:
    """Return content around the first literal match of the query, or ''."""
    if not entry.content or not query:
        return ""
    idx = entry.content.find(query.lower())
    if idx == -1:
        return ""
    start = max(0, idx - SNIPPET_BEFORE)
    end = min(len(entry.content), idx + len(query) + SNIPPET_AFTER)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(entry.content) else ""
    return f"{prefix}{entry.content[start:end]}{suffix}"


class PaletteController:
    def __init__(
        self,
        search: SearchFn,
        navigate: Optional[NavigateFn] = None,
        on_change: Optional[Callable[[PaletteState], None]] = None,
    ) -> None:
        self._search = search
        self._navigate = navigate
        self._on_change = on_change
        self.state = PaletteState()
        self.last_route: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    def set_on_change(self, callback: Optional[Callable[[PaletteState], None]]) -> None:
        self._on_change = callback

    def _changed(self) -> None:
        if self._on_change:
            self._on_change(self.state)

    def open(self) -> None:
        self.state = PaletteState(is_open=True)
        self._changed()

    def close(self) -> None:
        if not self.state.is_open:
            return
        self.state.is_open = False
        self._changed()

    dismiss = close

    def toggle(self) -> None:
        if self.state.is_open:
            self.close()
        else:
            self.open()

    def set_query(self, text: str) -> None:
        if not self.state.is_open:
            return
        self.state.query = text
        self.state.results = self._search(text.strip())
        self.state.selected_index = 0
        self._changed()

    def move_selection(self, delta: int) -> None:
        count = len(self.state.results)
        if not self.state.is_open or count == 0:
            return
        self.state.selected_index = (self.state.selected_index + delta) % count
        self._changed()

    def hover(self, index: int) -> None:
        if 0 <= index < len(self.state.results) and index != self.state.selected_index:
            self.state.selected_index = index
            self._changed()

    def selected_entry(self) -> Optional[IndexEntry]:
        if 0 <= self.state.selected_index < len(self.state.results):
            return self.state.results[self.state.selected_index]
        return None

    def activate(self, index: Optional[int] = None) -> Optional[IndexEntry]:
        """Close and navigate to the entry at ``index`` (default: the selection)."""
        if not self.state.is_open:
            return None
        if index is not None:
            entry = self.state.results[index] if 0 <= index < len(self.state.results) else None
        else:
            entry = self.selected_entry()
        if entry is None:
            return None
        self.close()
        self.last_route = route_hash(entry.id, entry.category, entry.anchor)
        if self._navigate:
            self._navigate(entry.id, entry.category, entry.anchor)
        else:
            logger.info("No navigation handler installed; route %s", self.last_route)
        return entry

    def handle_key(self, key: str) -> bool:
        """Handle a key pressed inside the palette. Returns True when consumed."""
        if not self.state.is_open:
            return False
        if key == "Escape":
            self.dismiss()
            return True
        if not self.state.results:
            return False
        if key == "ArrowDown":
            self.move_selection(1)
            return True
        if key == "ArrowUp":
            self.move_selection(-1)
            return True
        if key == "Enter":
            self.activate()
            return True
        return False

    def handle_shortcut(self, key: str, platform_modifier: bool) -> bool:
        """Document-level shortcut: modifier+K toggles, Escape closes."""
        if platform_modifier and key.lower() == TRIGGER_KEY:
            self.toggle()
            return True
        if key == "Escape" and self.state.is_open:
            self.dismiss()
            return True
        return False

    def render_rows(self) -> List[ResultRow]:
        query = self.state.query.strip()
        return [
            ResultRow(
                title=entry.title,
                snippet=snippet_for(entry, query),
                context=context_path(entry),
                is_sub_section=entry.is_sub_section,
                selected=index == self.state.selected_index,
            )
            for index, entry in enumerate(self.state.results)
        ]

    def empty_message(self) -> Optional[str]:
        if not self.state.results and self.state.query.strip():
            return EMPTY_MESSAGE
        return None
