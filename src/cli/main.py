"""CLI principal (Typer).

Por qué Typer:
- Un único comando con el argumento posicional opcional (ruta del script) y
  flags, con `--help` generado.
- La config sale de `AppSettings`; aquí solo se cablean runner, sesión y UI.
"""

from __future__ import annotations

import sys

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.process_runner import SubprocessRunner
from cli.plain import run_plain
from cli.tui import BackupApp
from core.config import AppSettings, resolve_script_path
from core.logger import get_logger, setup_logger
from core.services.session_machine import Session, SessionController

app = typer.Typer(
    add_completion=False,
    help="Interactive runner for the Cloudways domain-based backup script.",
)

_console = Console()
_err_console = Console(stderr=True)

logger = get_logger("cli")


def _fail(message: str) -> typer.Exit:
    _err_console.print(f"error: {message}", markup=False, highlight=False)
    return typer.Exit(1)


@app.command()
def tui(
    script: str | None = typer.Argument(
        None,
        help="Path to the backup script. CW_BACKUP_SCRIPT takes precedence.",
        show_default=False,
    ),
    plain: bool = typer.Option(
        False,
        "--plain",
        help="Prompt on the console instead of opening the full-screen TUI.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging (to CW_LOG_FILE, and to stderr in --plain mode).",
    ),
) -> None:
    """Collect email, API key and domains, then run the backup script."""

    try:
        settings = AppSettings()
    except ValidationError as exc:
        raise _fail(f"invalid configuration: {exc}") from exc

    setup_logger(
        "DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file,
        console=_err_console if plain and verbose else None,
    )

    script_path, source = resolve_script_path(settings, script)
    logger.info("backup script %s (from %s)", script_path, source)

    controller = SessionController(
        SubprocessRunner.from_settings(settings),
        script_path,
        session=Session.from_settings(settings),
        drain_batch=settings.drain_batch,
    )

    if plain:
        raise typer.Exit(run_plain(controller, console=_console, tick_seconds=settings.tick_seconds))

    backup_app = BackupApp(controller, tick_seconds=settings.tick_seconds)
    try:
        backup_app.run()
    except Exception as exc:
        logger.exception("terminal UI failed")
        raise _fail(str(exc)) from exc

    if backup_app.return_code:
        raise typer.Exit(backup_app.return_code)


def run() -> None:
    # Spinner and bullets are non-ASCII; cp1252 consoles would raise on them.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    app()


if __name__ == "__main__":
    run()
