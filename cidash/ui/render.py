"""Text frame rendering for the dashboard and the log viewer.

Frames are ``rich.text.Text`` values sized to the terminal; the shell shows
them in a single Static widget.
"""

from __future__ import annotations

from typing import Iterable

from rich.text import Text

from ..models import format_duration, status_icon, truncate
from . import keys
from .dashboard import (
    BRANCH_ROW,
    PANEL_DETAIL,
    PANEL_NAMES,
    PANEL_RUNS,
    PANEL_WORKFLOWS,
    WORKFLOW_ALL,
    Dashboard,
)
from .fetchable import LoadState
from .logviewer import LogViewer

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
COL_SEP = "  "

STYLE_TITLE = "bold magenta"
STYLE_HEADER = "bold grey50"
STYLE_HEADER_ACTIVE = "bold magenta"
STYLE_SELECTED = "bold white on grey23"
STYLE_SELECTED_INACTIVE = "bold magenta"
STYLE_DIM = "grey50"
STYLE_BRANCH = "cyan"
STYLE_REPO = "blue"
STYLE_DURATION = "grey62"
STYLE_HELP_KEY = "bold magenta"
STYLE_MATCH = "bold yellow"
STYLE_SEPARATOR = "grey37"


def status_style(status: str, conclusion: str) -> str:
    if status == "completed":
        if conclusion == "success":
            return "green"
        if conclusion == "failure":
            return "red"
        return "grey62"
    if status == "in_progress":
        return "yellow"
    return "grey62"


def _fit(text: Text | str, width: int) -> Text:
    """Copy of text truncated or padded to exactly width cells."""
    t = Text(text) if isinstance(text, str) else text.copy()
    t.truncate(max(0, width), overflow="ellipsis", pad=True)
    return t


def _help(items: Iterable[tuple[str, str]]) -> Text:
    out = Text()
    for i, (key, desc) in enumerate(items):
        if i:
            out.append("  ")
        out.append(key, style=STYLE_HELP_KEY)
        out.append(" " + desc, style=STYLE_DIM)
    return out


def _row_style(selected: bool, active: bool, default: str = "") -> str:
    if selected and active:
        return STYLE_SELECTED
    if selected:
        return STYLE_SELECTED_INACTIVE
    return default


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def panel_widths(width: int) -> tuple[int, int, int]:
    workflow_w = 22
    detail_w = min(40, width * 30 // 100)
    runs_w = width - workflow_w - detail_w - 2
    if runs_w < 20:
        detail_w = max(8, width * 20 // 100)
        workflow_w = max(12, width * 25 // 100)
        runs_w = max(1, width - workflow_w - detail_w - 2)
    return workflow_w, runs_w, detail_w


def render_dashboard(d: Dashboard, width: int, height: int, message: str = "") -> Text:
    w = width or 80
    h = height or 24
    body_h = max(5, h - 3)  # title + panel headers + help bar
    workflow_w, runs_w, detail_w = panel_widths(w)

    title = Text("cidash", style=STYLE_TITLE)
    if d.runs.is_fetching():
        title.append("  ⟳", style=STYLE_DIM)
    if d.runs.error is not None and d.runs.has_data():
        title.append("  (stale)", style=STYLE_DIM)

    columns = [
        _pad_rows(render_workflows(d, workflow_w, body_h), workflow_w, body_h),
        _pad_rows(render_runs(d, runs_w, body_h), runs_w, body_h),
        _pad_rows(render_detail(d, detail_w), detail_w, body_h),
    ]
    lines = [title, render_panel_headers(d, (workflow_w, runs_w, detail_w))]
    for i in range(body_h):
        line = Text()
        for c, col in enumerate(columns):
            if c:
                line.append("│", style=STYLE_SEPARATOR)
            line.append_text(col[i])
        lines.append(line)
    lines.append(render_help_bar(d, w, message))
    return Text("\n").join(lines)


def _pad_rows(rows: list[Text], width: int, height: int) -> list[Text]:
    rows = [_fit(r, width) for r in rows[:height]]
    while len(rows) < height:
        rows.append(_fit("", width))
    return rows


def render_panel_headers(d: Dashboard, widths: tuple[int, int, int]) -> Text:
    out = Text()
    for panel, (name, w) in enumerate(zip(PANEL_NAMES, widths)):
        if panel:
            out.append("│", style=STYLE_SEPARATOR)
        style = "bold black on magenta" if d.active_panel == panel else "white on grey19"
        out.append(name.center(w)[:w], style=style)
    return out


def render_workflows(d: Dashboard, width: int, height: int) -> list[Text]:
    active = d.active_panel == PANEL_WORKFLOWS
    header_style = STYLE_HEADER_ACTIVE if active else STYLE_HEADER
    rule = Text("─" * (width - 1), style=STYLE_DIM)

    rows = [Text("REPO", style=header_style)]
    rows.append(Text(truncate(", ".join(d.config.repos), width - 2), style=STYLE_REPO))
    rows.append(rule)

    rows.append(Text("BRANCH", style=header_style))
    picker = d.branch_picker
    if picker.active:
        rows.append(Text(truncate(picker.input.view(), width - 1)))
        start, suggestions = picker.visible_suggestions()
        for i, branch in enumerate(suggestions, start):
            if i == picker.suggestion_cursor:
                rows.append(Text("> " + truncate(branch, width - 4), style=STYLE_SELECTED))
            else:
                rows.append(Text("  " + truncate(branch, width - 4), style=STYLE_DIM))
    else:
        selected = d.workflow_cursor == BRANCH_ROW
        rows.append(Text(
            truncate(d.selected_branch(), width - 2),
            style=_row_style(selected, active, STYLE_BRANCH),
        ))
    rows.append(rule)

    rows.append(Text("NAME", style=header_style))
    if not d.workflows:
        rows.append(Text("loading...", style=STYLE_DIM))
        return rows

    filename = ""
    wf_name = d.selected_workflow()
    if wf_name and wf_name != WORKFLOW_ALL:
        filename = d.workflow_files.get(wf_name, "")

    list_h = max(1, height - len(rows) - (1 if filename else 0))
    wf_cursor = max(0, d.workflow_cursor - 1)
    start = wf_cursor - list_h + 1 if wf_cursor >= list_h else 0
    for i in range(start, min(start + list_h, len(d.workflows))):
        selected = i + 1 == d.workflow_cursor
        rows.append(Text(truncate(d.workflows[i], width - 2), style=_row_style(selected, active)))

    if filename:
        while len(rows) < height - 1:
            rows.append(Text(""))
        rows.append(Text(truncate(filename, width - 2), style=STYLE_DIM))
    return rows


def render_runs(d: Dashboard, width: int, height: int) -> list[Text]:
    active = d.active_panel == PANEL_RUNS
    runs = d.filtered_runs
    if not runs:
        if d.runs.state == LoadState.ERROR:
            return [Text("◆ workflow runs unavailable", style=STYLE_DIM)]
        if not d.runs.has_data() or d.runs.is_fetching():
            return [Text("◆ workflow runs loading", style=STYLE_DIM)]
        return [Text("◇ workflow runs empty", style=STYLE_DIM)]

    col_ok, col_num, col_dur = 2, 6, 7
    col_file, col_disp = 14, 16

    def name_width(file_w: int, disp_w: int) -> int:
        cols = [col_ok, col_num, col_dur] + [c for c in (file_w, disp_w) if c]
        return width - sum(cols) - len(cols) * len(COL_SEP)

    col_name = name_width(col_file, col_disp)
    if col_name < 10:
        col_file = 0
        col_name = name_width(col_file, col_disp)
    if col_name < 10:
        col_disp = 0
        col_name = name_width(col_file, col_disp)
    col_name = max(4, col_name)

    header = []
    if col_disp:
        header.append("DISPATCHED (UTC)".ljust(col_disp))
    if col_file:
        header.append("FILE".ljust(col_file))
    header += ["NAME".ljust(col_name), "RUN".rjust(col_num), "TIME".ljust(col_dur), "OK".ljust(col_ok)]
    rows = [Text(COL_SEP.join(header), style=STYLE_HEADER_ACTIVE if active else STYLE_HEADER)]

    list_h = max(1, height - 2)
    start = d.cursor - list_h + 1 if d.cursor >= list_h else 0
    for i in range(start, min(start + list_h, len(runs))):
        run = runs[i]
        selected = i == d.cursor
        row = Text(style=_row_style(selected, active))
        if col_disp:
            stamp = run.created_at.strftime(TIMESTAMP_FORMAT) if run.created_at else ""
            row.append(stamp.ljust(col_disp) + COL_SEP, style="" if selected else STYLE_DIM)
        if col_file:
            file = truncate(d.workflow_files.get(run.name, ""), col_file)
            row.append(file.ljust(col_file) + COL_SEP, style="" if selected else STYLE_DIM)
        row.append(truncate(run.name, col_name).ljust(col_name) + COL_SEP)
        row.append(f"#{run.run_number}".rjust(col_num) + COL_SEP)
        row.append(format_duration(run.duration()).ljust(col_dur) + COL_SEP, style=STYLE_DURATION)
        row.append(
            status_icon(run.status, run.conclusion).ljust(col_ok),
            style=status_style(run.status, run.conclusion),
        )
        rows.append(row)

    if len(runs) > list_h:
        rows.append(Text(f" {d.cursor + 1}/{len(runs)}", style=STYLE_DIM))
    return rows


def render_detail(d: Dashboard, width: int) -> list[Text]:
    active = d.active_panel == PANEL_DETAIL
    run = d.selected_run()
    if run is None:
        return [Text("no run selected", style=STYLE_DIM)]

    header_style = STYLE_HEADER_ACTIVE if active else STYLE_HEADER
    rows = [Text(f"[#{run.run_number}] {truncate(run.name, width - 10)}", style=header_style), Text("")]

    def field(label: str, value: str, style: str = "") -> None:
        row = Text(label.ljust(8), style=STYLE_DIM)
        row.append(value, style=style)
        rows.append(row)

    field("repo", truncate(run.repo, width - 10), STYLE_REPO)
    field("branch", run.head_branch, STYLE_BRANCH)
    field("commit", run.head_sha[:8])
    field(
        "status",
        f"{status_icon(run.status, run.conclusion)} {run.display_status}  {format_duration(run.duration())}",
        status_style(run.status, run.conclusion),
    )
    rows.append(Text(""))
    rows.append(Text("jobs", style=STYLE_HEADER_ACTIVE if active else STYLE_DIM))

    jobs = d.jobs.data or []
    if not jobs:
        if d.jobs.state == LoadState.ERROR:
            rows.append(Text("  failed to load jobs", style=STYLE_DIM))
        else:
            rows.append(Text("  loading...", style=STYLE_DIM))
        return rows

    for i, job in enumerate(jobs):
        selected = i == d.job_cursor
        row = Text(style=_row_style(selected, active))
        row.append("  ")
        row.append(
            status_icon(job.status, job.conclusion),
            style="" if selected else status_style(job.status, job.conclusion),
        )
        row.append(" " + truncate(job.name, width - 5))
        rows.append(row)
    return rows


def render_help_bar(d: Dashboard, width: int, message: str) -> Text:
    if d.rerun_dialog.active:
        out = Text(d.rerun_dialog.prompt() + "  ")
        return out.append_text(_help(d.rerun_dialog.help_items()))
    if d.dispatch_dialog.active:
        out = Text(d.dispatch_dialog.prompt() + "  ")
        return out.append_text(_help(d.dispatch_dialog.help_items()))
    if d.branch_picker.active:
        return Text(d.branch_picker.help_text(), style=STYLE_DIM)
    if message:
        return Text(message.replace("\n", "  "), style=STYLE_DIM)

    items = []
    run = d.selected_run()
    if run is not None:
        items.append(keys.help_item("rerun"))
        if run.in_progress:
            items.append(keys.help_item("cancel"))
    if d.can_dispatch():
        items.append(keys.help_item("dispatch"))
    items.append(keys.help_item("open"))
    items.append(keys.help_item("refresh"))

    left = _help(items)
    right = _help([keys.help_item("quit")])
    gap = max(2, width - left.cell_len - right.cell_len)
    return left.append(" " * gap).append_text(right)


# ---------------------------------------------------------------------------
# Log viewer
# ---------------------------------------------------------------------------

def render_logs(lv: LogViewer, width: int, height: int) -> Text:
    w = width or 80
    h = height or 24
    visible = lv.visible_lines(h)
    max_line_w = max(40, w - 8)

    lines: list[Text] = []
    if lv.query and lv.context_lines:
        total = len(lv.context_lines)
        end = min(lv.offset + visible, total)
        header = Text(f"Logs: {lv.job_name}", style=STYLE_TITLE)
        header.append(f"  [/{lv.query}  match {lv.match_idx + 1}/{len(lv.match_groups)}]", style=STYLE_DIM)
        lines.append(_with_right(header, f"{lv.offset + 1}-{end} / {total}", w))
        lines.append(Text(""))
        for row in lv.context_lines[lv.offset:end]:
            if row.is_separator:
                lines.append(Text(""))
                continue
            line = Text(f"{row.line_no:5d} ", style=STYLE_DIM)
            line.append(truncate(row.text, max_line_w), style=STYLE_MATCH if row.is_match else STYLE_DIM)
            lines.append(line)
    elif lv.query:
        lines.append(Text(f"Logs: {lv.job_name}", style=STYLE_TITLE))
        lines.append(Text(""))
        lines.append(Text(f"no matches for /{lv.query}", style=STYLE_DIM))
    else:
        total = len(lv.lines)
        end = min(lv.offset + visible, total)
        header = Text(f"Logs: {lv.job_name}", style=STYLE_TITLE)
        lines.append(_with_right(header, f"{lv.offset + 1}-{end} / {total}", w))
        lines.append(Text(""))
        for i in range(lv.offset, end):
            line = Text(f"{i + 1:5d} ", style=STYLE_DIM)
            line.append(truncate(lv.lines[i], max_line_w))
            lines.append(line)

    while len(lines) < h - 2:
        lines.append(Text(""))
    lines.append(Text(""))
    lines.append(render_log_help(lv, w))
    return Text("\n").join(lines)


def _with_right(left: Text, right: str, width: int) -> Text:
    gap = max(1, width - left.cell_len - len(right) - 2)
    return left.append(" " * gap).append(right, style=STYLE_DIM)


def render_log_help(lv: LogViewer, width: int) -> Text:
    if lv.searching:
        prompt = Text("/", style=STYLE_HELP_KEY).append(" " + (lv.input.value or lv.input.placeholder))
        return _with_right(prompt, "esc to cancel", width)
    if lv.query:
        return _help([
            keys.help_item("search_next"),
            keys.help_item("search_prev"),
            ("↑/↓", "scroll"),
            ("/", "new search"),
            ("h/esc", "back"),
            keys.help_item("quit"),
        ])
    return _help([
        keys.help_item("up"),
        keys.help_item("down"),
        ("g/G", "top/bottom"),
        ("ctrl+u/d", "½ page"),
        keys.help_item("search"),
        ("h/esc/⌫", "back"),
        keys.help_item("quit"),
    ])
