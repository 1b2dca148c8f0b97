"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos del flujo de backup (etapas, peticiones,
  handles de ejecución).
- El dominio no conoce Textual, Typer ni `subprocess`: solo conceptos del problema.
"""
