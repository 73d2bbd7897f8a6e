"""Modal dialogs owned by the dashboard: branch picker and confirmations.

Each dialog is inactive until opened with its parameters, and closes itself
on confirm or cancel. The dashboard guarantees at most one is active.
"""

from __future__ import annotations

from typing import Optional

from .messages import KeyPress
from .tasks import Dispatch, Rerun, RerunFailed, Task

CANCEL_KEYS = ("escape", "q")


class LineInput:
    """Single-line text entry fed with key presses."""

    def __init__(self, placeholder: str = "", char_limit: int = 100) -> None:
        self.placeholder = placeholder
        self.char_limit = char_limit
        self.value = ""

    def reset(self) -> None:
        self.value = ""

    def feed(self, event: KeyPress) -> bool:
        """Apply an editing key. Returns True if the value changed."""
        if event.key in ("backspace", "ctrl+h"):
            if self.value:
                self.value = self.value[:-1]
                return True
            return False
        if event.key == "ctrl+u":
            changed = bool(self.value)
            self.value = ""
            return changed
        ch = event.character
        if ch and len(ch) == 1 and ch.isprintable() and len(self.value) < self.char_limit:
            self.value += ch
            return True
        return False

    def view(self) -> str:
        return f"> {self.value or self.placeholder}"


class BranchPicker:
    """Fuzzy-filtered branch selection list."""

    MAX_SUGGESTIONS = 4

    def __init__(self) -> None:
        self.active = False
        self.input = LineInput(placeholder="filter branches...")
        self.branches: list[str] = []
        self.suggestion_cursor = 0

    def open(self, branches: list[str]) -> None:
        self.active = True
        self.branches = list(branches)
        self.input.reset()
        self.suggestion_cursor = 0

    def close(self) -> None:
        self.active = False

    def suggestions(self) -> list[str]:
        q = self.input.value.lower()
        return [b for b in self.branches if not q or q in b.lower()]

    def visible_suggestions(self) -> tuple[int, list[str]]:
        """The window of suggestions to show, scrolled to keep the cursor in it.

        Returns the index of the first shown suggestion and the shown slice.
        """
        suggestions = self.suggestions()
        cursor = min(self.suggestion_cursor, max(len(suggestions) - 1, 0))
        start = max(0, cursor - self.MAX_SUGGESTIONS + 1)
        return start, suggestions[start : start + self.MAX_SUGGESTIONS]

    def handle_key(self, event: KeyPress) -> Optional[str]:
        """Handle a key while open. Returns the chosen branch on commit."""
        if event.key == "escape":
            self.close()
            return None

        if event.key == "enter":
            suggestions = self.suggestions()
            chosen = None
            if suggestions:
                idx = min(self.suggestion_cursor, len(suggestions) - 1)
                chosen = suggestions[idx]
            self.close()
            return chosen

        if event.key == "up":
            if self.suggestion_cursor > 0:
                self.suggestion_cursor -= 1
            return None

        if event.key == "down":
            if self.suggestion_cursor < len(self.suggestions()) - 1:
                self.suggestion_cursor += 1
            return None

        if self.input.feed(event):
            self.suggestion_cursor = 0
        return None

    def help_text(self) -> str:
        return "↑/↓ navigate  ↵ confirm  esc cancel"


class RerunDialog:
    """Re-run confirmation: y (normal), d (debug logs), f (failed jobs only)."""

    def __init__(self) -> None:
        self.active = False
        self.repo = ""
        self.run_id = 0

    def open(self, repo: str, run_id: int) -> None:
        self.active = True
        self.repo = repo
        self.run_id = run_id

    def handle_key(self, event: KeyPress) -> tuple[Optional[Task], str]:
        """Returns (task, status) on confirm; (None, "") otherwise."""
        key = event.key
        if key == "y":
            self.active = False
            return Rerun(self.repo, self.run_id, debug=False), "re-running..."
        if key == "d":
            self.active = False
            return Rerun(self.repo, self.run_id, debug=True), "re-running with debug..."
        if key == "f":
            self.active = False
            return RerunFailed(self.repo, self.run_id), "re-running failed jobs..."
        if key in CANCEL_KEYS:
            self.active = False
        return None, ""

    def help_items(self) -> list[tuple[str, str]]:
        return [("y", "normal"), ("d", "debug logs"), ("f", "failed only"), ("esc", "cancel")]

    def prompt(self) -> str:
        return "re-run?"


class DispatchDialog:
    """Dispatch confirmation for a workflow file on a ref."""

    def __init__(self) -> None:
        self.active = False
        self.repo = ""
        self.file = ""
        self.ref = ""

    def open(self, repo: str, file: str, ref: str) -> None:
        self.active = True
        self.repo = repo
        self.file = file
        self.ref = ref

    def handle_key(self, event: KeyPress) -> tuple[Optional[Task], str]:
        if event.key == "y":
            self.active = False
            return Dispatch(self.repo, self.file, self.ref), "dispatching..."
        if event.key in CANCEL_KEYS:
            self.active = False
        return None, ""

    def help_items(self) -> list[tuple[str, str]]:
        return [("y", "yes"), ("esc", "cancel")]

    def prompt(self) -> str:
        return f"dispatch {self.file} on {self.ref}?"
