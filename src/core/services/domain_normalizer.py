"""Normalización de dominios pegados por el usuario.

Convierte texto en cualquier formato (comas, punto y coma, pipes, tabs,
saltos de línea, URLs con esquema y path, mayúsculas) en una lista ordenada
de hostnames únicos, en minúsculas y sin `www.`.

Es puramente léxico: no hay DNS ni validación de TLD. Los tokens que no
contienen nada con forma de hostname se descartan en silencio.
"""

from __future__ import annotations

import re
from typing import Iterable

_SEPARATORS: tuple[tuple[str, str], ...] = (
    ("\t", " "),
    (",", " "),
    (";", " "),
    ("|", " "),
    ("\r", " "),
    ("https://", ""),
    ("http://", ""),
    ("/", " "),
)

_HOSTNAME_RE = re.compile(r"(?:[a-z0-9-]+\.)+[a-z]{2,}")


def _clean(text: str) -> str:
    out = text.lower()
    for old, new in _SEPARATORS:
        out = out.replace(old, new)
    return out


def extract_hostname(token: str) -> str | None:
    """Primer hostname embebido en `token`, sin `www.`; None si no hay."""

    match = _HOSTNAME_RE.search(token)
    if match is None:
        return None
    hostname = match.group(0)
    # `www.com` stays as is; `www.www.a.com` becomes `a.com`.
    # A single strip would turn `www.com` into `com`, and a second pass would change the result.
    while hostname.startswith("www.") and _HOSTNAME_RE.fullmatch(hostname[4:]):
        hostname = hostname[4:]
    return hostname


def dedupe(values: Iterable[str]) -> list[str]:
    """Quita duplicados conservando la primera aparición."""

    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def normalize_domains(text: str) -> list[str]:
    """Devuelve los dominios de `text` normalizados y deduplicados.

    >>> normalize_domains("B.com, a.com www.a.com")
    ['b.com', 'a.com']
    """

    if not text:
        return []
    hostnames = (extract_hostname(token) for token in _clean(text).split())
    return dedupe(h for h in hostnames if h)
