"""Cliente HTTP del gestor de paquetes (`/crx/packmgr`).

Responsabilidad:
- Listado de paquetes (`service.jsp?cmd=ls`).
- Comandos delete/install/replicate/uninstall sobre
  `service/.json/etc/packages/{group}/{downloadName}`.
- Upload multipart a `service/.json?cmd=upload`.

Cada método hace exactamente una llamada HTTP y no reintenta.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from adapters.http_client import build_client
from adapters.packmgr.listing import parse_package_listing
from core.config import AppSettings
from core.domain.models import OperationKind, PackageRecord, ServiceTarget
from core.errors import CommandError, ProtocolError

logger = logging.getLogger(__name__)

LIST_PATH = "/crx/packmgr/service.jsp"
COMMAND_ROOT = "/crx/packmgr/service/.json/etc/packages"
UPLOAD_PATH = "/crx/packmgr/service/.json"

# OperationKind -> valor de `cmd` en el servicio
_COMMANDS: dict[OperationKind, str] = {
    OperationKind.DELETE: "delete",
    OperationKind.INSTALL: "install",
    OperationKind.ACTIVATE: "replicate",
    OperationKind.UNINSTALL: "uninstall",
}


def package_path(group_id: str, download_name: str) -> str:
    """Ruta del comando para un paquete; cada segmento va percent-encoded."""

    group = quote(group_id.strip("/"), safe="/")
    name = quote(download_name, safe="")
    return f"{COMMAND_ROOT}/{group}/{name}"


def command_params(kind: OperationKind, *, recursive: bool = False) -> dict[str, str]:
    params = {"cmd": _COMMANDS[kind]}
    if kind is OperationKind.INSTALL and recursive:
        params["recursive"] = "true"
    return params


def _service_message(response: httpx.Response) -> tuple[bool | None, str]:
    """Extrae (`success`, `msg`) del JSON de respuesta si existe."""

    try:
        payload: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, response.text[:500]
    if not isinstance(payload, dict):
        return None, response.text[:500]
    success = payload.get("success")
    message = str(payload.get("msg") or "")
    return (success if isinstance(success, bool) else None), message


class PackageManagerClient:
    """Implementación httpx de `core.interfaces.PackageService`."""

    def __init__(
        self,
        target: ServiceTarget,
        settings: AppSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._target = target
        self._client = build_client(target, settings, transport=transport)

    @property
    def target(self) -> ServiceTarget:
        return self._target

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PackageManagerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Directorio
    # ------------------------------------------------------------------

    def list_packages(self, package_name: str) -> list[PackageRecord]:
        request = self._client.build_request("GET", LIST_PATH, params={"cmd": "ls"})
        endpoint = str(request.url)
        logger.debug("Listing packages named %r from %s", package_name, endpoint)
        try:
            response = self._client.send(request)
        except httpx.HTTPError as exc:
            raise ProtocolError(
                f"Request failed while listing packages from {endpoint}: {exc}",
                endpoint=endpoint,
            ) from exc

        if not response.is_success:
            raise ProtocolError(
                f"HTTP {response.status_code} while listing packages from {endpoint}.",
                endpoint=endpoint,
                expected="2xx",
                actual=str(response.status_code),
            )

        records = parse_package_listing(response.text, package_name, endpoint=endpoint)
        logger.info(
            "Found %d remote package(s) named %r: %s",
            len(records),
            package_name,
            ", ".join(f"{r.download_name}@{r.version}" for r in records) or "-",
        )
        return records

    # ------------------------------------------------------------------
    # Comandos
    # ------------------------------------------------------------------

    def delete(self, download_name: str) -> None:
        self._command(OperationKind.DELETE, download_name)

    def install(self, download_name: str, *, recursive: bool = False) -> None:
        self._command(OperationKind.INSTALL, download_name, recursive=recursive)

    def activate(self, download_name: str) -> None:
        self._command(OperationKind.ACTIVATE, download_name)

    def uninstall(self, download_name: str) -> None:
        self._command(OperationKind.UNINSTALL, download_name)

    def upload(self, file_path: Path) -> None:
        path = Path(file_path)
        if not path.is_file():
            raise CommandError(
                f"Upload failed: local package file not found: {path}",
                operation=OperationKind.UPLOAD.label(),
                url=UPLOAD_PATH,
            )
        with path.open("rb") as fh:
            files = {"package": (path.name, fh, "application/zip")}
            self._send(
                OperationKind.UPLOAD,
                "POST",
                UPLOAD_PATH,
                params={"cmd": "upload"},
                files=files,
            )

    def _command(
        self,
        kind: OperationKind,
        download_name: str,
        *,
        recursive: bool = False,
    ) -> None:
        path = package_path(self._target.group_id, download_name)
        params = command_params(kind, recursive=recursive)
        self._send(kind, "POST", path, params=params)

    def _send(
        self,
        kind: OperationKind,
        method: str,
        path: str,
        *,
        params: dict[str, str],
        files: dict[str, Any] | None = None,
    ) -> httpx.Response:
        label = kind.label()
        request = self._client.build_request(method, path, params=params, files=files)
        url = str(request.url)
        logger.info("Running '%s' package command: %s %s", label, method, url)

        try:
            response = self._client.send(request)
        except httpx.HTTPError as exc:
            raise CommandError(
                f"{label} failed: request to {url} errored: {exc}",
                operation=label,
                url=url,
            ) from exc

        success, message = _service_message(response)
        logger.debug("%s response (%s): %s", label, response.status_code, response.text)

        if not response.is_success:
            raise CommandError(
                f"{label} failed: HTTP {response.status_code} from {url}: {message}",
                operation=label,
                url=url,
                status_code=response.status_code,
            )
        if success is False:
            raise CommandError(
                f"{label} failed: service reported success=false at {url}: {message}",
                operation=label,
                url=url,
                status_code=response.status_code,
            )
        if message:
            logger.info("%s: %s", label, message)
        return response
