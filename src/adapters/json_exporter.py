"""Exportación JSON de listados de paquetes.

Permite persistir el estado remoto observado (p.ej. como evidencia en CI) sin
depender de la salida Rich.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import PackageRecord


def export_records_json(*, records: Sequence[PackageRecord], output_path: Path) -> Path:
    """Exporta los registros a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record.model_dump(mode="json") for record in records]
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
