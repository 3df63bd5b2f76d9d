"""Modelos del dominio (Pydantic v2).

Nota:
- Estos modelos describen *qué* es un paquete y *qué* se quiere conseguir, no
  *cómo* se habla con el servicio remoto.
- `PackageRecord` es inmutable: se construye en cada listado y se descarta al
  terminar la reconciliación.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict


class PackageRecord(BaseModel):
    """Una instancia de paquete tal como la reporta el servicio remoto.

    Ejemplo de origen (XML de `cmd=ls`):

        <package>
          <group>com.example.aem</group>
          <name>aem-deployment</name>
          <version>1.2.3</version>
          <downloadName>aem-deployment-1.2.3.zip</downloadName>
          <size>9166080</size>
          <created>Thu, 12 Feb 2015 16:41:49 +0000</created>
          <createdBy>admin</createdBy>
          <lastModified/>
          <lastModifiedBy>null</lastModifiedBy>
          <lastUnpacked>Fri, 13 Feb 2015 21:51:13 +0000</lastUnpacked>
          <lastUnpackedBy>admin</lastUnpackedBy>
        </package>

    Los campos numéricos y de fecha se conservan como strings opacos.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(
        ...,
        min_length=1,
        description="Nombre del paquete (único dentro del grupo por paquete conceptual).",
    )
    download_name: str = Field(
        ...,
        min_length=1,
        description="Nombre del fichero remoto; único handle para operaciones.",
    )
    group: str | None = Field(default=None, description="Namespace del paquete.")
    version: str | None = Field(default=None, description="Versión declarada en el paquete.")
    size: str | None = Field(default=None, description="Tamaño en bytes (string opaco).")
    created: str | None = None
    created_by: str | None = None
    last_modified: str | None = None
    last_modified_by: str | None = None
    last_unpacked: str | None = None
    last_unpacked_by: str | None = None

    @property
    def size_bytes(self) -> int | None:
        if self.size is None:
            return None
        try:
            return int(self.size)
        except ValueError:
            return None

    @property
    def is_unpacked(self) -> bool:
        return self.last_unpacked is not None


class ServiceTarget(BaseModel):
    """Destino explícito de todas las operaciones remotas.

    Sustituye al contexto implícito de "recurso actual": cada operación recibe
    host, credenciales, grupo y flag recursivo de forma explícita.
    """

    model_config = ConfigDict(frozen=True)

    scheme: str = Field(default="http", pattern=r"^https?$")
    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: str = Field(default="", repr=False)
    group_id: str = Field(..., min_length=1)
    recursive: bool = False

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class DesiredPackage(BaseModel):
    """Intención del caller para un paquete.

    Reglas:
    - Si `properties_file` y `version_pattern` están definidos, la versión sale
      del artefacto y `version` se ignora.
    - `version_pattern` debe compilar y tener al menos un grupo de captura.
    """

    name: str = Field(..., min_length=1, description="Nombre del paquete remoto.")
    file_path: Path = Field(..., description="Ruta local del artefacto.")
    file_name: str | None = Field(
        default=None,
        description="Download name remoto; por defecto el basename de `file_path`.",
    )
    package_url: str | None = Field(
        default=None,
        description="URL de origen del artefacto (si hay que descargarlo).",
    )
    version: str | None = Field(
        default=None,
        description="Versión explícita (puede ser un alias como 'latest').",
    )
    properties_file: str | None = Field(
        default=None,
        description="Entrada dentro del zip con las propiedades del paquete.",
    )
    version_pattern: str | None = Field(
        default=None,
        description="Regex cuyo primer grupo captura la versión.",
    )

    @field_validator("version_pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            compiled = re.compile(value, re.MULTILINE)
        except re.error as exc:
            raise ValueError(f"invalid version_pattern: {exc}") from exc
        if compiled.groups < 1:
            raise ValueError("version_pattern needs at least one capture group")
        return value

    @model_validator(mode="after")
    def _default_file_name(self) -> "DesiredPackage":
        if not self.file_name:
            self.file_name = self.file_path.name
        return self

    @property
    def download_name(self) -> str:
        return self.file_name or self.file_path.name

    @property
    def extracts_version(self) -> bool:
        return bool(self.properties_file and self.version_pattern)


class OperationKind(str, Enum):
    """Comandos remotos soportados."""

    DELETE = "delete"
    UPLOAD = "upload"
    INSTALL = "install"
    ACTIVATE = "activate"
    UNINSTALL = "uninstall"

    def label(self) -> str:
        """Etiqueta legible para logs y tablas."""

        return self.value.capitalize()


class PlannedOperation(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    target: str = Field(..., min_length=1, description="Download name o ruta local.")
    recursive: bool = False


class ReconciliationPlan(BaseModel):
    """Plan efímero: operaciones ordenadas para converger al estado deseado."""

    model_config = ConfigDict(frozen=True)

    package_name: str
    version: str | None = None
    operations: tuple[PlannedOperation, ...] = ()

    def count(self, kind: OperationKind) -> int:
        return sum(1 for op in self.operations if op.kind is kind)

    @property
    def is_noop(self) -> bool:
        return not self.operations


class ActionResult(BaseModel):
    """Resultado de una acción de ciclo de vida."""

    action: OperationKind
    plan: ReconciliationPlan
    executed: bool = Field(
        default=True,
        description="False si fue dry-run (el plan no se aplicó).",
    )
    current: list[PackageRecord] = Field(
        default_factory=list,
        description="Registros remotos vistos antes de reconciliar.",
    )
