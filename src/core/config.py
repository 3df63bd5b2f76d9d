"""Configuración del Core.

Responsabilidad:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Produce el `ServiceTarget` explícito que reciben todas las operaciones
  remotas (host, puerto, credenciales, grupo, flag recursivo).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import ServiceTarget
from core.errors import ConfigError

APP_DIR_NAME = "crx-pkgsync"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# crx-pkgsync user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Orden de resolución: flags de CLI > env vars > `.env` del proyecto >
    `.env` del usuario > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRX_PKGSYNC_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    scheme: str = Field(
        default="http",
        pattern=r"^https?$",
        description="Esquema del servicio de paquetes (http/https).",
    )
    host: str = Field(
        default="localhost",
        min_length=1,
        description="Host del servicio de gestión de paquetes.",
    )
    port: int = Field(
        default=4502,
        ge=1,
        le=65535,
        description="Puerto del servicio de gestión de paquetes.",
    )
    user: str = Field(
        default="admin",
        min_length=1,
        description="Usuario para basic auth.",
    )
    password: SecretStr = Field(
        default=SecretStr("admin"),
        description="Password para basic auth (nunca se loguea).",
    )
    group_id: str = Field(
        default="my_packages",
        min_length=1,
        description="Grupo de paquetes bajo /etc/packages.",
    )
    recursive: bool = Field(
        default=False,
        description="Instalar subpaquetes de forma recursiva.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout por request (segundos). Los uploads grandes pueden tardar.",
    )
    user_agent: str = Field(
        default="crx-pkgsync/0.1",
        min_length=1,
        description="User-Agent de las peticiones HTTP.",
    )

    artifact_dir: Path = Field(
        default=Path("packages"),
        description="Directorio local por defecto para artefactos descargados.",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
    log_json: bool = Field(
        default=False,
        description="Emitir logs en JSON (útil en CI).",
    )

    def to_target(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        group_id: str | None = None,
        recursive: bool | None = None,
    ) -> ServiceTarget:
        """Construye el `ServiceTarget` aplicando overrides no nulos."""

        try:
            return ServiceTarget(
                scheme=self.scheme,
                host=host or self.host,
                port=port or self.port,
                user=user or self.user,
                password=password if password is not None else self.password.get_secret_value(),
                group_id=group_id or self.group_id,
                recursive=self.recursive if recursive is None else recursive,
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid connection settings: {_describe(exc)}") from exc


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )


def load_settings() -> AppSettings:
    """Carga `AppSettings` traduciendo valores inválidos a `ConfigError`."""

    try:
        return AppSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid CRX_PKGSYNC_* configuration: {_describe(exc)}") from exc
