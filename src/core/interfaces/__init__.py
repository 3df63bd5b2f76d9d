"""Interfaces/abstracciones del Core.

Responsabilidad:
- Define contratos (Protocol) que implementan adaptadores concretos.
- El motor de reconciliación depende de estos contratos, no de httpx.
"""

from core.interfaces.artifact_store import ArtifactStore
from core.interfaces.package_service import PackageService

__all__ = ["ArtifactStore", "PackageService"]
