"""Modelos y entidades del dominio.

Reglas:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce HTTP, CLI, ni zip: solo paquetes, versiones y planes.
"""
