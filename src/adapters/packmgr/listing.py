"""Decodificador del listado `cmd=ls`.

Forma esperada (navegable tipo XPath):

    response/status/@code            -> "200"
    response/data/packages/package   -> repetido, con hijos group, name,
                                        version, downloadName, size, created, ...

Reglas:
- Se parsea con BeautifulSoup (`html.parser`): nombres de tag en minúsculas y
  tolerancia a markup imperfecto.
- Campos ausentes o vacíos -> `None`; el resto son strings opacos.
- `name` y `downloadName` son obligatorios en los paquetes seleccionados.
"""

from __future__ import annotations

import warnings

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning
from pydantic import ValidationError

from core.domain.models import PackageRecord
from core.errors import ParseError, ProtocolError

SUCCESS_CODE = "200"

# tag (en minúsculas) -> campo de PackageRecord
_FIELDS: dict[str, str] = {
    "group": "group",
    "name": "name",
    "version": "version",
    "downloadname": "download_name",
    "size": "size",
    "created": "created",
    "createdby": "created_by",
    "lastmodified": "last_modified",
    "lastmodifiedby": "last_modified_by",
    "lastunpacked": "last_unpacked",
    "lastunpackedby": "last_unpacked_by",
}


def _child_text(element: Tag, tag_name: str) -> str | None:
    child = element.find(tag_name, recursive=False)
    if not isinstance(child, Tag):
        return None
    text = child.get_text(strip=True)
    return text or None


def _child(element: Tag, tag_name: str) -> Tag | None:
    child = element.find(tag_name, recursive=False)
    return child if isinstance(child, Tag) else None


def decode_package(element: Tag) -> PackageRecord:
    """Convierte un `<package>` en `PackageRecord` (fail closed)."""

    values = {field: _child_text(element, tag) for tag, field in _FIELDS.items()}
    missing = [tag for tag in ("name", "downloadname") if not values[_FIELDS[tag]]]
    if missing:
        raise ParseError(
            f"Package element missing required fields {missing}: {str(element)[:200]}"
        )
    try:
        return PackageRecord(**values)
    except ValidationError as exc:
        raise ParseError(f"Invalid package element in listing: {exc}") from exc


def parse_package_listing(
    markup: str,
    package_name: str,
    *,
    endpoint: str = "service.jsp?cmd=ls",
) -> list[PackageRecord]:
    """Parsea el listado y devuelve los paquetes cuyo `name` == `package_name`."""

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(markup or "", "html.parser")

    response = soup.find("response")
    if not isinstance(response, Tag):
        raise ParseError(f"No <response> element in listing from {endpoint}.")

    status = _child(response, "status")
    code = status.get("code") if status is not None else None
    code = str(code).strip() if code is not None else None
    if code != SUCCESS_CODE:
        raise ProtocolError(
            f"Invalid response ({code}) while listing packages from {endpoint}; "
            f"expected {SUCCESS_CODE}.",
            endpoint=endpoint,
            expected=SUCCESS_CODE,
            actual=code,
        )

    data = _child(response, "data")
    packages = _child(data, "packages") if data is not None else None
    if packages is None:
        raise ParseError(f"No response/data/packages element in listing from {endpoint}.")

    records: list[PackageRecord] = []
    for element in packages.find_all("package", recursive=False):
        if _child_text(element, "name") != package_name:
            continue
        records.append(decode_package(element))
    return records
