"""Lanzador desde el checkout, sin instalar el paquete.

Uso:
- `python main.py [SCRIPT] [--plain]`, equivalente a `cwbackup-tui`.

Los paquetes viven en `src/`; se añade al path antes de importar la CLI.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"

if __name__ == "__main__":
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    from cli.main import run  # noqa: PLC0415

    run()
