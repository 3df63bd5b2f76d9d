"""Motor de reconciliación del ciclo de vida de paquetes.

Este módulo concentra la lógica que decide qué operaciones remotas hay que
lanzar para converger al estado deseado (nombre + versión). Se divide en:

- planificadores puros (`plan_upload`, `plan_install`), que solo miran el
  listado actual y la versión deseada;
- `PackageLifecycle`, que obtiene artefacto, versión y listado, ejecuta el
  plan contra un `PackageService` y devuelve un `ActionResult`.

No hay reintentos ni compensación: el primer fallo aborta la acción y las
operaciones restantes del plan no se ejecutan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from core.domain.models import (
    ActionResult,
    DesiredPackage,
    OperationKind,
    PackageRecord,
    PlannedOperation,
    ReconciliationPlan,
)
from core.interfaces import ArtifactStore, PackageService
from core.services.versioning import resolve_version

logger = logging.getLogger(__name__)


def _stale_deletes(
    records: Sequence[PackageRecord], version: str
) -> list[PlannedOperation]:
    return [
        PlannedOperation(kind=OperationKind.DELETE, target=record.download_name)
        for record in records
        if record.version != version
    ]


def plan_upload(
    *,
    package_name: str,
    version: str,
    records: Sequence[PackageRecord],
    file_path: Path,
) -> ReconciliationPlan:
    """Borra todas las versiones obsoletas y sube el artefacto si falta."""

    operations = _stale_deletes(records, version)
    if not any(record.version == version for record in records):
        operations.append(
            PlannedOperation(kind=OperationKind.UPLOAD, target=str(file_path))
        )
    return ReconciliationPlan(
        package_name=package_name, version=version, operations=tuple(operations)
    )


def plan_install(
    *,
    package_name: str,
    version: str,
    records: Sequence[PackageRecord],
    download_name: str,
    recursive: bool = False,
) -> ReconciliationPlan:
    """Borra versiones obsoletas e instala salvo que ya haya una copia desempaquetada."""

    operations = _stale_deletes(records, version)
    already_unpacked = any(
        record.version == version and record.is_unpacked for record in records
    )
    if not already_unpacked:
        operations.append(
            PlannedOperation(
                kind=OperationKind.INSTALL, target=download_name, recursive=recursive
            )
        )
    return ReconciliationPlan(
        package_name=package_name, version=version, operations=tuple(operations)
    )


def plan_single(
    kind: OperationKind, *, package_name: str, download_name: str
) -> ReconciliationPlan:
    """Plan incondicional de una sola operación (delete/activate/uninstall)."""

    return ReconciliationPlan(
        package_name=package_name,
        operations=(PlannedOperation(kind=kind, target=download_name),),
    )


@dataclass
class LifecycleHooks:
    """Callbacks opcionales para capas de UI."""

    operation_start: Callable[[PlannedOperation], None] | None = None


@dataclass
class PackageLifecycle:
    """Ejecuta las acciones upload/install/delete/activate/uninstall."""

    service: PackageService
    artifacts: ArtifactStore
    recursive: bool = False
    dry_run: bool = False
    hooks: LifecycleHooks = field(default_factory=LifecycleHooks)

    def upload(self, desired: DesiredPackage) -> ActionResult:
        file_path = self._artifact(desired)
        version = resolve_version(desired)
        records = self.service.list_packages(desired.name)
        plan = plan_upload(
            package_name=desired.name,
            version=version,
            records=records,
            file_path=file_path,
        )
        return self._run(OperationKind.UPLOAD, plan, records)

    def install(self, desired: DesiredPackage) -> ActionResult:
        version = resolve_version(desired)
        records = self.service.list_packages(desired.name)
        plan = plan_install(
            package_name=desired.name,
            version=version,
            records=records,
            download_name=desired.download_name,
            recursive=self.recursive,
        )
        return self._run(OperationKind.INSTALL, plan, records)

    def delete(self, desired: DesiredPackage) -> ActionResult:
        plan = plan_single(
            OperationKind.DELETE,
            package_name=desired.name,
            download_name=desired.download_name,
        )
        result = self._run(OperationKind.DELETE, plan, [])
        if not self.dry_run:
            self.artifacts.remove(desired.file_path)
        return result

    def activate(self, desired: DesiredPackage) -> ActionResult:
        plan = plan_single(
            OperationKind.ACTIVATE,
            package_name=desired.name,
            download_name=desired.download_name,
        )
        return self._run(OperationKind.ACTIVATE, plan, [])

    def uninstall(self, desired: DesiredPackage) -> ActionResult:
        plan = plan_single(
            OperationKind.UNINSTALL,
            package_name=desired.name,
            download_name=desired.download_name,
        )
        return self._run(OperationKind.UNINSTALL, plan, [])

    def _artifact(self, desired: DesiredPackage) -> Path:
        """Artefacto local para `upload`.

        En dry-run no se descarga nada salvo que la versión haya que leerla de
        un artefacto que todavía no existe en disco.
        """

        local = Path(desired.file_path)
        if (
            self.dry_run
            and desired.package_url
            and (local.is_file() or not desired.extracts_version)
        ):
            logger.info("(dry run) would download %s -> %s", desired.package_url, local)
            return local
        return self.artifacts.ensure(desired)

    def _run(
        self,
        action: OperationKind,
        plan: ReconciliationPlan,
        records: Sequence[PackageRecord],
    ) -> ActionResult:
        if plan.is_noop:
            logger.info(
                "%s '%s': already converged at version %s",
                action.label(),
                plan.package_name,
                plan.version,
            )
        if self.dry_run:
            for op in plan.operations:
                logger.info("(dry run) would %s %s", op.kind.value, op.target)
            return ActionResult(
                action=action, plan=plan, executed=False, current=list(records)
            )

        for op in plan.operations:
            if self.hooks.operation_start:
                self.hooks.operation_start(op)
            self._apply(op)
        return ActionResult(action=action, plan=plan, executed=True, current=list(records))

    def _apply(self, op: PlannedOperation) -> None:
        if op.kind is OperationKind.DELETE:
            self.service.delete(op.target)
        elif op.kind is OperationKind.UPLOAD:
            self.service.upload(Path(op.target))
        elif op.kind is OperationKind.INSTALL:
            self.service.install(op.target, recursive=op.recursive)
        elif op.kind is OperationKind.ACTIVATE:
            self.service.activate(op.target)
        elif op.kind is OperationKind.UNINSTALL:
            self.service.uninstall(op.target)
        else:  # pragma: no cover
            raise ValueError(f"Unsupported operation: {op.kind}")
