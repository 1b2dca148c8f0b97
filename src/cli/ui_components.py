"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar la lógica de la sesión con detalles visuales.
- Los mismos renderables sirven a la TUI (Textual los pinta tal cual), al modo
  plano y al doctor.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from core.domain.models import Stage
from core.services.session_machine import LogEntry, LogLevel, Session

TITLE_STYLE = "bold"
HELP_STYLE = "color(245)"
OK_STYLE = "color(42)"
ERR_STYLE = "color(196)"

SPINNER_FRAMES = "⣾⣽⣻⢿⡿⣟⣯⣷"

_TITLES: dict[Stage, str] = {
    Stage.EMAIL: "CW Backup",
    Stage.API: "CW Backup",
    Stage.DOMAINS: "CW Backup - Paste Domains",
    Stage.CONFIRM: "Confirm",
    Stage.RUNNING: "Running backup…",
    Stage.DONE: "Finished",
}

_HELP: dict[Stage, str] = {
    Stage.EMAIL: "Enter to continue, Ctrl+C to quit.",
    Stage.API: "Enter to continue, Esc to go back, Ctrl+C to quit.",
    Stage.DOMAINS: "Ctrl+D when done. Esc to go back, Ctrl+C to quit.",
    Stage.CONFIRM: "[y] run  [n] edit domains  [b] back  [q] quit",
    Stage.RUNNING: "q/Ctrl+C to cancel. PgUp/PgDn to scroll.",
    Stage.DONE: "Press q to exit.",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (modo plano y doctor)."""

    title = Text("CW Backup", style="bold cyan")
    subtitle = Text("Cloudways domain-based backups • interactive runner", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def stage_title(stage: Stage, frame: int = 0) -> Text:
    title = Text(_TITLES[stage], style=TITLE_STYLE)
    if stage is Stage.RUNNING:
        title.append(" " + SPINNER_FRAMES[frame % len(SPINNER_FRAMES)])
    return title


def help_text(stage: Stage) -> Text:
    return Text(_HELP[stage], style=HELP_STYLE)


def domains_list(domains: list[str]) -> Text:
    if not domains:
        return Text("No valid domains parsed.", style=ERR_STYLE)
    return Text("\n".join(f"  • {d}" for d in domains))


def build_confirm_panel(session: Session) -> RenderableType:
    """Resumen previo a lanzar el script. La API key nunca aparece."""

    header = Text.assemble(
        ("Email: ", "bold"),
        session.email.strip(),
        "\n",
        ("Domains ", "bold"),
        f"({len(session.normalized_domains)}):",
    )
    return Group(header, domains_list(session.normalized_domains))


def render_log_entry(entry: LogEntry) -> Text:
    if entry.level is LogLevel.OK:
        return Text(entry.text, style=OK_STYLE)
    if entry.level is LogLevel.ERROR:
        return Text(entry.text, style=ERR_STYLE)
    return Text(entry.text)


def mask_secret(value: str) -> str:
    """`abcd1234` -> `ab••••34`; cadenas cortas se ocultan enteras."""

    if not value:
        return ""
    if len(value) <= 6:
        return "•" * len(value)
    return value[:2] + "•" * (len(value) - 4) + value[-2:]
