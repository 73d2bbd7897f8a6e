"""Fuzzy log search with grep -C style context windows."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ContextLine:
    """One display row of the filtered log view.

    ``line_no`` is the 1-based original line number; 0 marks the blank
    separator row between non-adjacent groups.
    """

    line_no: int
    text: str = ""
    is_match: bool = False

    @property
    def is_separator(self) -> bool:
        return self.line_no == 0


def fuzzy_match(line: str, query: str) -> bool:
    """True if every character of query appears in line in order (case-insensitive)."""
    query = query.lower()
    if not query:
        return True
    qi = 0
    for ch in line.lower():
        if ch == query[qi]:
            qi += 1
            if qi == len(query):
                return True
    return False


def build_log_context(
    lines: list[str], query: str, ctx: int
) -> tuple[list[ContextLine], list[int]]:
    """Build the context-window view for query over lines.

    Windows of ``ctx`` lines around each hit are merged when they touch or
    overlap. Returns the flattened rows and, per merged group, the offset of
    the group's first row. Both are empty when nothing matches.
    """
    matches = [i for i, line in enumerate(lines) if fuzzy_match(line, query)]
    rows: list[ContextLine] = []
    group_offsets: list[int] = []
    if not matches:
        return rows, group_offsets

    row_of_line: dict[int, int] = {}
    prev_end = -1
    for m in matches:
        start = max(0, m - ctx)
        end = min(len(lines) - 1, m + ctx)

        if prev_end < 0 or start > prev_end + 1:
            if prev_end >= 0:
                rows.append(ContextLine(line_no=0))
            group_offsets.append(len(rows))
            first = start
        else:
            first = prev_end + 1

        for i in range(first, end + 1):
            row_of_line[i] = len(rows)
            rows.append(ContextLine(line_no=i + 1, text=lines[i], is_match=i == m))

        # the hit may sit inside rows already emitted by the previous window
        rows[row_of_line[m]].is_match = True
        prev_end = max(prev_end, end)
    return rows, group_offsets
