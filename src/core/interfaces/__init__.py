"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: la máquina de estados depende de abstracciones,
  no de `subprocess`.
"""
