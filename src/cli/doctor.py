"""Doctor command for environment diagnostics."""

from __future__ import annotations

import shutil
import stat
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cli.ui_components import mask_secret
from core.config import AppSettings, resolve_script_path
from core.services.domain_normalizer import normalize_domains

app = typer.Typer(add_completion=False, help="Environment diagnostics for the backup runner.")

_console = Console()


def check_script(path: Path) -> tuple[str, str]:
    """Status/detail for the script file. Read-only: never changes permissions."""

    try:
        st = path.stat()
    except OSError as exc:
        return "FAIL", f"not found ({exc.strerror or exc})"
    if stat.S_ISDIR(st.st_mode):
        return "FAIL", "is a directory"
    if not st.st_mode & 0o111:
        return "FIXABLE", "not executable yet; chmod 755 is applied on first run"
    return "OK", f"{st.st_size} bytes, executable"


def check_interpreter(interpreter: str | None) -> tuple[str, str]:
    if not interpreter:
        return "OK", "script executed directly (shebang)"
    found = shutil.which(interpreter)
    if found is None:
        return "FAIL", f"{interpreter} not found"
    return "OK", found


@app.command()
def run(
    script: str | None = typer.Argument(
        None,
        help="Path to the backup script, as given to cwbackup-tui.",
        show_default=False,
    ),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    script_path, source = resolve_script_path(settings, script)

    table = Table(title="CW Backup Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Script
    table.add_row("Script path", "OK", f"{script_path} (from {source})")
    script_status, script_detail = check_script(script_path)
    table.add_row("Script file", script_status, script_detail)
    interp_status, interp_detail = check_interpreter(settings.interpreter)
    table.add_row("Interpreter", interp_status, interp_detail)

    # Terminal
    if sys.stdin.isatty() and sys.stdout.isatty():
        table.add_row("Terminal", "OK", "interactive")
    else:
        table.add_row("Terminal", "WARN", "not a TTY -> use --plain")

    # Pre-filled values
    table.add_row("CW_EMAIL", "SET" if settings.email else "OPTIONAL", "prefills the email field")
    if settings.api_key:
        table.add_row("CW_API_KEY", "SET", mask_secret(settings.api_key))
    else:
        table.add_row("CW_API_KEY", "OPTIONAL", "prefills the API key field")
    if settings.domains:
        table.add_row("CW_DOMAINS", "SET", f"{len(normalize_domains(settings.domains))} domain(s) parsed")
    else:
        table.add_row("CW_DOMAINS", "OPTIONAL", "prefills the domain list")

    table.add_row("Log file", "OK", str(settings.log_file) if settings.log_file else "disabled")

    _console.print(table)

    failed = "FAIL" in (script_status, interp_status)
    if script_status == "FAIL":
        _console.print(
            "\n[yellow]Note:[/yellow] set CW_BACKUP_SCRIPT or pass the script path as an argument."
        )
    if failed:
        raise typer.Exit(1)
