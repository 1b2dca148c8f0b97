"""Terminal UI (Textual) over `SessionController`.

The app only translates: keys and timer ticks become `Action` values, the
controller's state becomes widgets. All decisions live in
`core.services.session_machine`.

Keys:
- Ctrl+C quits from anywhere (cancelling a running backup).
- Enter submits the email and API key inputs.
- Ctrl+D finishes the domain text area (Enter inserts a newline there).
- Esc goes back one stage.
- y / n / b / q on the confirm screen, q on the output screens.
"""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import ContentSwitcher, Input, Label, RichLog, Static, TextArea

from cli.ui_components import (
    build_confirm_panel,
    help_text,
    render_log_entry,
    stage_title,
)
from core.domain.models import Stage
from core.services.session_machine import Action, Directive, SessionController

_PANES: dict[Stage, str] = {
    Stage.EMAIL: "email-pane",
    Stage.API: "api-pane",
    Stage.DOMAINS: "domains-pane",
    Stage.CONFIRM: "confirm-pane",
    Stage.RUNNING: "log-pane",
    Stage.DONE: "log-pane",
}


class BackupApp(App[int]):
    """Interactive front-end for one backup session."""

    TITLE = "CW Backup"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        padding: 1 2;
    }
    #title {
        height: auto;
        margin-bottom: 1;
    }
    #stages {
        height: 1fr;
    }
    #domains {
        height: 12;
    }
    #log-pane {
        height: 1fr;
        border: round $primary;
    }
    #help {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit_session", "Quit", priority=True),
        Binding("ctrl+d", "finish_domains", "Done", priority=True),
        Binding("escape", "go_back", "Back", priority=True),
        Binding("y", "run_backup", "Run"),
        Binding("n", "edit_domains", "Edit domains"),
        Binding("b", "go_back", "Back"),
        Binding("q", "quit_session", "Quit"),
    ]

    def __init__(self, controller: SessionController, *, tick_seconds: float = 0.12) -> None:
        super().__init__()
        self.controller = controller
        self._tick_seconds = tick_seconds
        self._frame = 0
        self._rendered = 0

    def compose(self) -> ComposeResult:
        session = self.controller.session
        yield Static(id="title")
        with ContentSwitcher(initial=_PANES[session.stage], id="stages"):
            with Vertical(id="email-pane"):
                yield Label("Cloudways email:")
                yield Input(value=session.email, placeholder="you@example.com", id="email")
            with Vertical(id="api-pane"):
                yield Label("Cloudways API key:")
                yield Input(value=session.api_key, password=True, id="api-key")
            with Vertical(id="domains-pane"):
                yield Label("Paste domain(s) here (any format). Press Ctrl+D when done.")
                yield TextArea(session.domains_raw, show_line_numbers=False, id="domains")
            yield Static(id="confirm-pane")
            yield RichLog(id="log-pane", wrap=True, markup=False, highlight=False)
        yield Static(id="help")

    def on_mount(self) -> None:
        self._render_stage()
        self._focus_stage(self.controller.stage)

    # -- input -------------------------------------------------------------

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._dispatch(Action.SUBMIT)

    def action_quit_session(self) -> None:
        if self.controller.stage is Stage.RUNNING:
            self._dispatch(Action.CANCEL)
        else:
            self._dispatch(Action.QUIT)

    def action_finish_domains(self) -> None:
        self._dispatch(Action.FINISH)

    def action_go_back(self) -> None:
        self._dispatch(Action.BACK)

    def action_run_backup(self) -> None:
        self._dispatch(Action.RUN)

    def action_edit_domains(self) -> None:
        self._dispatch(Action.EDIT)

    def _on_tick(self) -> None:
        self._frame += 1
        self._dispatch(Action.TICK)

    # -- plumbing ------------------------------------------------------------

    def _pull_inputs(self) -> None:
        session = self.controller.session
        session.email = self.query_one("#email", Input).value
        session.api_key = self.query_one("#api-key", Input).value
        session.domains_raw = self.query_one("#domains", TextArea).text

    def _dispatch(self, action: Action) -> None:
        if self.controller.stage in (Stage.EMAIL, Stage.API, Stage.DOMAINS):
            self._pull_inputs()

        directive = self.controller.dispatch(action)
        if directive is Directive.QUIT:
            self.exit(0)
            return
        if directive is Directive.SCHEDULE_TICK:
            self.set_timer(self._tick_seconds, self._on_tick)
        self._render_stage()

    def _render_stage(self) -> None:
        stage = self.controller.stage
        self.query_one("#title", Static).update(stage_title(stage, self._frame))
        self.query_one("#help", Static).update(help_text(stage))

        switcher = self.query_one("#stages", ContentSwitcher)
        if switcher.current != _PANES[stage]:
            switcher.current = _PANES[stage]
            self._focus_stage(stage)

        if stage is Stage.CONFIRM:
            self.query_one("#confirm-pane", Static).update(build_confirm_panel(self.controller.session))
        self._sync_log()

    def _focus_stage(self, stage: Stage) -> None:
        if stage is Stage.EMAIL:
            self.query_one("#email", Input).focus()
        elif stage is Stage.API:
            self.query_one("#api-key", Input).focus()
        elif stage is Stage.DOMAINS:
            self.query_one("#domains", TextArea).focus()
        elif stage is Stage.CONFIRM:
            # Nothing focused: y/n/b/q reach the app bindings.
            self.screen.set_focus(None)
        else:
            self.query_one("#log-pane", RichLog).focus()

    def _sync_log(self) -> None:
        entries = self.controller.session.log
        log = self.query_one("#log-pane", RichLog)
        if len(entries) < self._rendered:
            log.clear()
            self._rendered = 0
        for entry in entries[self._rendered:]:
            log.write(render_log_entry(entry))
        self._rendered = len(entries)
