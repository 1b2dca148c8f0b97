"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que el runner, la TUI y el modo plano lean la config de forma consistente.

Nada de lo que escribe el usuario en la sesión se guarda aquí: los valores
`CW_EMAIL`, `CW_API_KEY` y `CW_DOMAINS` solo prellenan los campos.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCRIPT = "./domain-based-backup.sh"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "cwbackup-tui"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cwbackup-tui"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "cwbackup-tui"
    return Path.home() / ".config" / "cwbackup-tui"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para TUI/modo plano/doctor.
    """

    model_config = SettingsConfigDict(
        env_prefix="CW_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    email: str = Field(
        default="",
        description="Valor inicial del campo email.",
    )
    api_key: str = Field(
        default="",
        repr=False,
        description="Valor inicial del campo API key (se muestra enmascarado).",
    )
    domains: str = Field(
        default="",
        description="Texto inicial del área de dominios.",
    )

    backup_script: str | None = Field(
        default=None,
        description="Ruta al script de backup. Tiene prioridad sobre el argumento CLI.",
    )
    interpreter: str | None = Field(
        default=None,
        description="Intérprete con el que lanzar el script (p.ej. /bin/bash). Vacío = ejecutar directo.",
    )

    tick_seconds: float = Field(
        default=0.12,
        gt=0,
        le=5.0,
        description="Intervalo de polling de la salida mientras corre el script (segundos).",
    )
    drain_batch: int = Field(
        default=200,
        ge=1,
        le=100_000,
        description="Máximo de líneas que se vuelcan al log por tick.",
    )
    line_queue_size: int = Field(
        default=4096,
        ge=1,
        description="Capacidad de la cola de líneas entre el lector y la UI.",
    )
    terminate_grace_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Espera entre SIGTERM y SIGKILL al cancelar (segundos).",
    )

    log_file: Path | None = Field(
        default=None,
        description="Fichero de log. La TUI ocupa el terminal, así que sin fichero no se registra nada.",
    )
    log_level: str = Field(
        default="INFO",
        min_length=1,
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )


def resolve_script_path(settings: AppSettings, cli_arg: str | None = None) -> tuple[Path, str]:
    """Resuelve la ruta del script y de dónde salió.

    Orden:
    1) `CW_BACKUP_SCRIPT`
    2) argumento posicional de la CLI
    3) `./domain-based-backup.sh`

    Devuelve la ruta absoluta y el origen (`env`, `argument`, `default`).
    """

    if settings.backup_script:
        raw, source = settings.backup_script, "env"
    elif cli_arg:
        raw, source = cli_arg, "argument"
    else:
        raw, source = DEFAULT_SCRIPT, "default"

    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = path.absolute()
    return path, source
