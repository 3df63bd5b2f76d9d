"""Wrapper de httpx.

Responsabilidad:
- Estandariza base_url, basic auth, timeouts y headers para todas las llamadas
  al servicio de paquetes.
- Acepta un `transport` inyectable (p.ej. `httpx.MockTransport`) para tests.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings
from core.domain.models import ServiceTarget


def build_client(
    target: ServiceTarget,
    settings: AppSettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` autenticado contra `target`."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        base_url=target.base_url,
        auth=httpx.BasicAuth(target.user, target.password),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        headers=headers,
        transport=transport,
    )


def build_download_client(
    settings: AppSettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Cliente sin auth para descargar artefactos desde URLs públicas/internas."""

    settings = settings or AppSettings()
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )
