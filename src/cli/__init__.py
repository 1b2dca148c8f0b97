"""Capa de presentación: CLI (Typer), TUI (Textual) y componentes Rich."""
