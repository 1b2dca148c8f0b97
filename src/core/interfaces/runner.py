"""Contrato del ejecutor de procesos.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que la máquina de estados use el runner real (`subprocess`) o un
  doble de test sin acoplarse a la implementación concreta.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import BackupRequest
from core.domain.run import RunHandle


@runtime_checkable
class ProcessRunner(Protocol):
    """Contrato mínimo para lanzar el script de backup.

    Reglas de diseño:
    - `ensure_executable` falla rápido (`ExecutableError`) antes de lanzar nada.
    - `start` no bloquea: devuelve un `RunHandle` cuya salida y finalización se
      consultan por polling.
    """

    def ensure_executable(self, path: str | Path) -> Path:
        """Valida la ruta y le da permiso de ejecución si le falta."""

        ...

    def start(self, executable: Path, request: BackupRequest) -> RunHandle:
        """Lanza el proceso y devuelve su handle."""

        ...
