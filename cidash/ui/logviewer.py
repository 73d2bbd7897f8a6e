"""Full-screen log viewer with search."""

from __future__ import annotations

from typing import Optional

from ..config import DEFAULT_LOG_CONTEXT
from . import keys
from .dialogs import LineInput
from .logsearch import ContextLine, build_log_context
from .messages import KeyPress

LOG_VIEW_OVERHEAD = 4  # header, spacer, blank line before help, help bar

BACK = "back"
QUIT = "quit"


class LogViewer:
    """Scrolling over raw or filtered log lines.

    Three modes: viewing all lines, typing a search query, and viewing the
    context windows of a submitted query.
    """

    def __init__(self, context: int = DEFAULT_LOG_CONTEXT) -> None:
        self.context = context
        self.input = LineInput(placeholder="search logs...")
        self.set_logs("", "")

    def set_logs(self, logs: str, job_name: str) -> None:
        self.logs = logs
        self.lines = logs.split("\n")
        self.job_name = job_name
        self.offset = 0
        self.searching = False
        self._clear_query()

    def _clear_query(self) -> None:
        self.query = ""
        self.context_lines: list[ContextLine] = []
        self.match_groups: list[int] = []
        self.match_idx = 0

    @property
    def filtered(self) -> bool:
        return bool(self.query)

    def display_len(self) -> int:
        if self.query:
            return len(self.context_lines)
        return len(self.lines)

    @staticmethod
    def visible_lines(height: int) -> int:
        return max(1, height - LOG_VIEW_OVERHEAD)

    def max_offset(self, height: int) -> int:
        return max(0, self.display_len() - self.visible_lines(height))

    def handle_key(self, event: KeyPress, height: int) -> Optional[str]:
        """Handle a key. Returns BACK or QUIT when the viewer should close."""
        if self.searching:
            self._handle_search(event)
            return None

        key = event.key
        visible = self.visible_lines(height)
        max_offset = self.max_offset(height)

        if keys.matches(key, "quit"):
            return QUIT
        if keys.matches(key, "back", "left") or key == "backspace":
            self.searching = False
            self._clear_query()
            return BACK
        if keys.matches(key, "search"):
            self.searching = True
            self.input.reset()
        elif keys.matches(key, "search_next"):
            if self.query and self.match_idx < len(self.match_groups) - 1:
                self.match_idx += 1
                self.offset = min(self.match_groups[self.match_idx], max_offset)
        elif keys.matches(key, "search_prev"):
            if self.query and self.match_idx > 0:
                self.match_idx -= 1
                self.offset = min(self.match_groups[self.match_idx], max_offset)
        elif keys.matches(key, "up"):
            self.offset = max(0, self.offset - 1)
        elif keys.matches(key, "down"):
            self.offset = min(max_offset, self.offset + 1)
        elif keys.matches(key, "page_up"):
            self.offset = max(0, self.offset - visible)
        elif keys.matches(key, "page_down"):
            self.offset = min(max_offset, self.offset + visible)
        elif keys.matches(key, "half_page_up"):
            self.offset = max(0, self.offset - visible // 2)
        elif keys.matches(key, "half_page_down"):
            self.offset = min(max_offset, self.offset + visible // 2)
        elif keys.matches(key, "top"):
            self.offset = 0
        elif keys.matches(key, "bottom"):
            self.offset = max_offset
        return None

    def _handle_search(self, event: KeyPress) -> None:
        if event.key == "escape":
            self.searching = False
            return
        if event.key == "enter":
            self.submit(self.input.value)
            return
        self.input.feed(event)

    def submit(self, query: str) -> None:
        """Run a search and jump to the first match group."""
        self.searching = False
        self.offset = 0
        self.match_idx = 0
        self.query = query
        if query:
            self.context_lines, self.match_groups = build_log_context(
                self.lines, query, self.context
            )
        else:
            self.context_lines, self.match_groups = [], []
