"""Servicios del Core: normalización de dominios y máquina de estados de la sesión."""
