"""Resolución de la versión autoritativa de un artefacto.

Si el caller pide un alias simbólico (p.ej. "latest"), la versión real vive
dentro del paquete; hay que leerla para no re-subir paquetes idénticos.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable

from adapters.archive import read_archive_entry
from core.domain.models import DesiredPackage
from core.errors import VersionExtractionError

logger = logging.getLogger(__name__)

EntryReader = Callable[[Path, str], str]


def resolve_version(
    desired: DesiredPackage,
    *,
    read_entry: EntryReader = read_archive_entry,
) -> str:
    """Devuelve la versión deseada.

    - Con `properties_file` + `version_pattern`: primer grupo del patrón sobre
      la entrada leída del artefacto local (sin red).
    - En otro caso: `desired.version` sin modificar.
    """

    if desired.properties_file and desired.version_pattern:
        contents = read_entry(Path(desired.file_path), desired.properties_file)
        # `^`/`$` anclan por línea: el fichero de propiedades es multilínea.
        match = re.search(desired.version_pattern, contents, re.MULTILINE)
        if match is None:
            raise VersionExtractionError(
                f"Failed to find package version in {desired.file_path} "
                f"(entry '{desired.properties_file}', pattern '{desired.version_pattern}')."
            )
        version = match.group(1)
        logger.debug(
            "Found package version %r in %s (%s)",
            version,
            desired.file_path,
            desired.properties_file,
        )
        return version

    if desired.version is None:
        raise VersionExtractionError(
            f"No version configured for package '{desired.name}': pass a version "
            "or a properties file + version pattern."
        )
    return desired.version
