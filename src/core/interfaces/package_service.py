"""Contrato del servicio remoto de paquetes.

Reglas de diseño:
- Síncrono: cada acción es una secuencia lineal de llamadas bloqueantes.
- Cada método es una única operación HTTP; los fallos se propagan como
  `ProtocolError`/`ParseError` (listado) o `CommandError` (comandos).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import PackageRecord


@runtime_checkable
class PackageService(Protocol):
    """Directorio remoto + ejecutor de comandos."""

    def list_packages(self, package_name: str) -> list[PackageRecord]:
        """Devuelve los registros cuyo `name` coincide exactamente."""

        ...

    def delete(self, download_name: str) -> None:
        ...

    def upload(self, file_path: Path) -> None:
        ...

    def install(self, download_name: str, *, recursive: bool = False) -> None:
        ...

    def activate(self, download_name: str) -> None:
        """Replica (publica) el paquete."""

        ...

    def uninstall(self, download_name: str) -> None:
        ...
