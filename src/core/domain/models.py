"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validamos los tres valores que recibe el script (email, API key, dominios)
  en el borde, antes de lanzar ningún proceso.
- El payload de stdin se construye en un único sitio, con las reglas de
  recorte y salto de línea final.

Nota:
- Estos modelos describen *qué* se envía, no *cómo* se ejecuta el script.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class Stage(str, Enum):
    """Etapas de una sesión interactiva, en el orden en que se recorren."""

    EMAIL = "email"
    API = "api"
    DOMAINS = "domains"
    CONFIRM = "confirm"
    RUNNING = "running"
    DONE = "done"


class BackupRequest(BaseModel):
    """Los tres valores que el script de backup lee por stdin.

    Reglas:
    - `email` y `api_key` se recortan; no pueden quedar vacíos.
    - `domains_raw` se envía tal cual lo escribió el usuario (el script hace
      su propio parseo); solo se garantiza un salto de línea final.
    """

    model_config = ConfigDict(frozen=True)

    email: str = Field(
        ...,
        min_length=1,
        description="Email de la cuenta Cloudways.",
    )
    api_key: str = Field(
        ...,
        min_length=1,
        repr=False,
        description="API key de Cloudways. Nunca se muestra ni se registra.",
    )
    domains_raw: str = Field(
        default="",
        description="Texto libre con los dominios, tal cual se pegó.",
    )

    @field_validator("email", "api_key", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    def stdin_payload(self) -> str:
        """Texto exacto que se escribe en el stdin del proceso."""

        domains = self.domains_raw
        if not domains.endswith("\n"):
            domains += "\n"
        return f"{self.email}\n{self.api_key}\n{domains}"
