"""Almacén local de artefactos.

Responsabilidad:
- Descargar el paquete desde `package_url` a `file_path` (streaming, escritura
  atómica vía fichero temporal hermano).
- Verificar que el artefacto existe cuando no hay URL.
- Borrar la copia local tras un `delete`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

import httpx

from adapters.http_client import build_download_client
from core.config import AppSettings
from core.domain.models import DesiredPackage
from core.errors import ArtifactError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))
_CHUNK_SIZE = 64 * 1024
_FILE_MODE = 0o755


class HttpArtifactStore:
    """Implementación httpx de `core.interfaces.ArtifactStore`."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    def ensure(self, desired: DesiredPackage) -> Path:
        dest = Path(desired.file_path)
        if not desired.package_url:
            if not dest.is_file():
                raise ArtifactError(
                    f"Local package file not found and no package URL given: {dest}"
                )
            logger.debug("Using local artifact %s", dest)
            return dest

        url = desired.package_url
        scheme = urlparse(url).scheme
        if scheme not in _ALLOWED_SCHEMES:
            raise ArtifactError(
                f"URL scheme '{scheme}' not allowed for {url}; only http/https."
            )

        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(f".{dest.name}.part")
        logger.info("Downloading package %s -> %s", url, dest)
        try:
            with build_download_client(self._settings, transport=self._transport) as client:
                with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise ArtifactError(
                            f"Download failed: HTTP {response.status_code} from {url}"
                        )
                    with tmp.open("wb") as fh:
                        for chunk in response.iter_bytes(_CHUNK_SIZE):
                            fh.write(chunk)
            os.chmod(tmp, _FILE_MODE)
            tmp.replace(dest)
        except httpx.HTTPError as exc:
            raise ArtifactError(f"Download failed from {url}: {exc}") from exc
        except OSError as exc:
            raise ArtifactError(f"Could not write {dest}: {exc}") from exc
        finally:
            # Tras un replace correcto el temporal ya no existe.
            if tmp.exists():
                tmp.unlink()

        logger.info("Saved %s (%d bytes)", dest, dest.stat().st_size)
        return dest

    def remove(self, path: Path) -> None:
        target = Path(path)
        if target.exists():
            target.unlink()
            logger.info("Removed local artifact %s", target)
        else:
            logger.debug("Local artifact already absent: %s", target)
