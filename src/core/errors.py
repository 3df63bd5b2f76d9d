"""Excepciones del dominio.

Todas heredan de `PackageManagerError`; la CLI las captura en un único punto y
las presenta al operador. Ninguna se reintenta ni se captura dentro del Core.
"""

from __future__ import annotations


class PackageManagerError(Exception):
    """Error base de crx-pkgsync."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PackageManagerError):
    """Configuración ausente o inválida."""

    code = "CONFIG_ERROR"


class ProtocolError(PackageManagerError):
    """El listado devolvió un status distinto de éxito."""

    code = "PROTOCOL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.expected = expected
        self.actual = actual


class ParseError(PackageManagerError):
    """La respuesta del listado no se pudo decodificar."""

    code = "PARSE_ERROR"


class VersionExtractionError(PackageManagerError):
    """No se pudo determinar la versión del artefacto."""

    code = "VERSION_EXTRACTION_ERROR"


class CommandError(PackageManagerError):
    """Un comando remoto (delete/upload/install/replicate/uninstall) falló."""

    code = "COMMAND_ERROR"

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        url: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.url = url
        self.status_code = status_code


class ArtifactError(PackageManagerError):
    """El artefacto local no existe o no se pudo descargar."""

    code = "ARTIFACT_ERROR"
