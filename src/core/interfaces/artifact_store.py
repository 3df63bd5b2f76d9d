"""Contrato del almacén local de artefactos."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import DesiredPackage


@runtime_checkable
class ArtifactStore(Protocol):
    def ensure(self, desired: DesiredPackage) -> Path:
        """Garantiza que el artefacto existe en `desired.file_path` y lo devuelve."""

        ...

    def remove(self, path: Path) -> None:
        """Elimina la copia local (no falla si ya no existe)."""

        ...
