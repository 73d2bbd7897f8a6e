"""Key bindings, declared once and matched by action name."""

from __future__ import annotations

from textual.binding import Binding

# Key names follow Textual's conventions; printable keys are the character itself.
BINDINGS = [
    Binding("up,k", "up", "up", key_display="↑/k"),
    Binding("down,j", "down", "down", key_display="↓/j"),
    Binding("enter", "enter", "select", key_display="enter"),
    Binding("r", "rerun", "re-run", key_display="r"),
    Binding("c", "cancel", "cancel", key_display="c"),
    Binding("d", "dispatch", "dispatch", key_display="d"),
    Binding("l,right", "right", "right", key_display="l/→"),
    Binding("h,left", "left", "left", key_display="h/←"),
    Binding("o", "open", "open in browser", key_display="o"),
    Binding("R", "refresh", "refresh", key_display="R"),
    Binding("q,ctrl+c", "quit", "quit", key_display="q"),
    Binding("escape", "back", "back", key_display="esc"),
    Binding("pageup,ctrl+b", "page_up", "page up", key_display="pgup"),
    Binding("pagedown,ctrl+f", "page_down", "page down", key_display="pgdn"),
    Binding("ctrl+u", "half_page_up", "½ page up", key_display="ctrl+u"),
    Binding("ctrl+d", "half_page_down", "½ page down", key_display="ctrl+d"),
    Binding("g,home", "top", "top", key_display="g"),
    Binding("G,end", "bottom", "bottom", key_display="G"),
    Binding("/", "search", "search", key_display="/"),
    Binding("n", "search_next", "next match", key_display="n"),
    Binding("p", "search_prev", "prev match", key_display="p"),
]

KEYMAP: dict[str, Binding] = {b.action: b for b in BINDINGS}


def keys_for(action: str) -> tuple[str, ...]:
    return tuple(k.strip() for k in KEYMAP[action].key.split(","))


def matches(key: str, *actions: str) -> bool:
    """True if key is bound to any of the given actions."""
    return any(key in keys_for(action) for action in actions)


def help_item(action: str) -> tuple[str, str]:
    """Return (key_display, description) for the help bar."""
    binding = KEYMAP[action]
    return binding.key_display or binding.key, binding.description
