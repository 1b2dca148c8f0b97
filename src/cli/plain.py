"""Modo plano (sin TUI).

Por qué existe:
- Terminales donde Textual no arranca (CI, consolas muy limitadas, TERM=dumb).
- Recorre la misma máquina de estados que la TUI, pero con prompts de Typer y
  la salida del script impresa línea a línea con Rich.
"""

from __future__ import annotations

import time

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from cli.ui_components import OK_STYLE, build_confirm_panel, print_banner, render_log_entry
from core.domain.models import Stage
from core.services.session_machine import Action, LogLevel, SessionController


def _read_domains(console: Console, current: str) -> str:
    console.print("Paste domain(s) here (any format). Finish with an empty line.")
    if current.strip():
        console.print("[dim]An empty first line keeps the current list.[/dim]")

    lines: list[str] = []
    while True:
        try:
            line = console.input()
        except EOFError:
            break
        if not line.strip():
            break
        lines.append(line)
    if not lines:
        return current
    return "\n".join(lines)


def _collect_inputs(controller: SessionController, console: Console) -> None:
    session = controller.session

    while controller.stage is Stage.EMAIL:
        session.email = typer.prompt("Cloudways email", default=session.email or None)
        controller.dispatch(Action.SUBMIT)

    while controller.stage is Stage.API:
        session.api_key = typer.prompt(
            "Cloudways API key",
            default=session.api_key or None,
            hide_input=True,
            show_default=False,
        )
        controller.dispatch(Action.SUBMIT)

    while controller.stage in (Stage.DOMAINS, Stage.CONFIRM):
        if controller.stage is Stage.DOMAINS:
            session.domains_raw = _read_domains(console, session.domains_raw)
            controller.dispatch(Action.FINISH)

        console.print(Panel(build_confirm_panel(session), title="Confirm", border_style="cyan"))
        if typer.confirm("Run backup?", default=True):
            controller.dispatch(Action.RUN)
        else:
            controller.dispatch(Action.EDIT)


def run_plain(controller: SessionController, *, console: Console, tick_seconds: float = 0.12) -> int:
    """Ejecuta una sesión completa sin TUI. Devuelve el exit code del comando."""

    print_banner(console)
    _collect_inputs(controller, console)

    session = controller.session
    printed = 0

    def flush() -> None:
        nonlocal printed
        for entry in session.log[printed:]:
            console.print(render_log_entry(entry))
        printed = len(session.log)

    flush()
    try:
        while controller.stage is Stage.RUNNING:
            time.sleep(tick_seconds)
            controller.dispatch(Action.TICK)
            flush()
    except KeyboardInterrupt:
        controller.dispatch(Action.CANCEL)
        console.print(Text("Cancelled.", style=OK_STYLE))
        return 0

    if session.log and session.log[-1].level is LogLevel.ERROR:
        return 1
    return 0
