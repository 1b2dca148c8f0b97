"""Core: dominio, configuración, servicios y contratos. Sin UI ni `subprocess`."""
