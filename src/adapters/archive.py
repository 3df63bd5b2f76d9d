"""Lectura de una única entrada dentro del artefacto (zip).

No extrae el paquete completo: abre el zip y lee solo la entrada pedida
(equivalente a `unzip -p <zip> <entry>`).
"""

from __future__ import annotations

import zipfile
from pathlib import Path

from core.errors import VersionExtractionError


def read_archive_entry(archive_path: Path, entry: str) -> str:
    """Devuelve el contenido de `entry` como texto UTF-8."""

    inner = entry.lstrip("/")
    try:
        with zipfile.ZipFile(archive_path) as zf:
            raw = zf.read(inner)
    except FileNotFoundError as exc:
        raise VersionExtractionError(f"Package archive not found: {archive_path}") from exc
    except KeyError as exc:
        raise VersionExtractionError(
            f"Entry '{inner}' not found in {archive_path}."
        ) from exc
    except zipfile.BadZipFile as exc:
        raise VersionExtractionError(f"{archive_path} is not a valid zip archive: {exc}") from exc
    return raw.decode("utf-8", errors="replace")
