"""cidash: Textual shell around the controller.

The shell turns terminal events into messages, runs the returned task
descriptors (timers on the event loop, everything else on worker threads),
and feeds every result back into the controller.
"""

from __future__ import annotations

import logging
from typing import Optional

from textual import events, work
from textual.app import App, ComposeResult
from textual.widgets import Static

from ..config import Config
from .controller import AppController
from .messages import KeyPress, Message, Resize
from .tasks import SHELL_TASKS, Delay, Quit, Task, run_task

logger = logging.getLogger(__name__)


def normalize_key(key: str, character: Optional[str]) -> KeyPress:
    """Printable keys are reported as the character itself ('/', 'G', ...)."""
    if character and len(character) == 1 and character.isprintable() and character != " ":
        return KeyPress(key=character, character=character)
    return KeyPress(key=key, character=character)


class CIDashboard(App):
    """Terminal dashboard for CI workflow runs."""

    TITLE = "cidash"

    CSS = """
    Screen {
        overflow: hidden;
    }
    #frame {
        width: 100%;
        height: 100%;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        config: Config,
        source,
        default_branch: str = "",
        local_branch: str = "",
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)
        self.source = source
        self.controller = AppController(
            config, default_branch=default_branch, local_branch=local_branch
        )

    def compose(self) -> ComposeResult:
        yield Static(id="frame")

    def on_mount(self) -> None:
        self.controller.width = self.size.width
        self.controller.height = self.size.height
        self._dispatch(self.controller.init())
        self._render()

    def on_resize(self, event: events.Resize) -> None:
        self._apply(Resize(event.size.width, event.size.height))

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self._apply(normalize_key(event.key, event.character))

    def _apply(self, msg: Message) -> None:
        """Feed one message to the controller and re-render (UI thread)."""
        tasks = self.controller.update(msg)
        self._dispatch(tasks)
        self._render()

    def _dispatch(self, tasks: list[Task]) -> None:
        for task in tasks:
            if isinstance(task, SHELL_TASKS):
                self._run_shell_task(task)
            else:
                self._run_worker(task)

    def _run_shell_task(self, task: Task) -> None:
        if isinstance(task, Quit):
            self.exit()
        elif isinstance(task, Delay):
            message = task.message
            self.set_timer(task.seconds, lambda: self._apply(message))

    @work(thread=True, exit_on_error=False)
    def _run_worker(self, task: Task) -> None:
        """Run a blocking task in a background thread."""
        result = run_task(task, self.source)
        if result is not None:
            self.call_from_thread(self._apply, result)

    def _render(self) -> None:
        try:
            self.query_one("#frame", Static).update(self.controller.render())
        except Exception:
            logger.exception("Failed to render frame")
