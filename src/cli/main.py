"""CLI principal (Typer).

Expone los verbos del ciclo de vida (`upload`, `install`, `delete`,
`activate`, `uninstall`) más `list` y el sub-app `doctor`.

La CLI solo traduce flags a `DesiredPackage`/`ServiceTarget`, delega en
`core.services.lifecycle` y presenta resultados; los errores del Core se
muestran en una línea y terminan con exit code 1 (2 si la configuración o
los parámetros son inválidos).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from adapters.artifact_store import HttpArtifactStore
from adapters.json_exporter import export_records_json
from adapters.packmgr import PackageManagerClient
from cli import doctor
from cli.ui_components import build_packages_table, print_action_result
from core.config import AppSettings, load_settings
from core.domain.models import DesiredPackage, PlannedOperation, ServiceTarget
from core.errors import ConfigError, PackageManagerError
from core.interfaces import ArtifactStore, PackageService
from core.logging_config import setup_logging
from core.services.lifecycle import LifecycleHooks, PackageLifecycle

logger = logging.getLogger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    help="Manage content packages on a CRX package manager (/crx/packmgr).",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _default_service_factory(target: ServiceTarget, settings: AppSettings) -> PackageService:
    return PackageManagerClient(target, settings)


def _default_artifact_factory(settings: AppSettings) -> ArtifactStore:
    return HttpArtifactStore(settings)


@dataclass
class CliState:
    """Estado compartido entre el callback global y los comandos."""

    settings: AppSettings | None = None
    overrides: dict[str, object] = field(default_factory=dict)
    service_factory: Callable[[ServiceTarget, AppSettings], PackageService] = _default_service_factory
    artifact_factory: Callable[[AppSettings], ArtifactStore] = _default_artifact_factory

    def get_settings(self) -> AppSettings:
        if self.settings is None:
            self.settings = load_settings()
        return self.settings

    def target(self, *, recursive: bool | None = None) -> ServiceTarget:
        return self.get_settings().to_target(recursive=recursive, **self.overrides)  # type: ignore[arg-type]


@contextmanager
def _guard() -> Iterator[None]:
    """Traduce errores del Core a salida de CLI + exit code."""

    try:
        yield
    except ConfigError as exc:
        _console.print(f"[red]Error ({exc.code}):[/red] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc
    except PackageManagerError as exc:
        logger.error("%s: %s", exc.code, exc)
        _console.print(f"[red]Error ({exc.code}):[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        _console.print(f"[red]Invalid parameters:[/red] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc


@contextmanager
def _open_service(state: CliState, target: ServiceTarget) -> Iterator[PackageService]:
    service = state.service_factory(target, state.get_settings())
    try:
        yield service
    finally:
        close = getattr(service, "close", None)
        if callable(close):
            close()


def _print_operation(op: PlannedOperation) -> None:
    _console.print(f"[dim]→ {op.kind.value}[/dim] {op.target}")


def _lifecycle(
    state: CliState,
    service: PackageService,
    *,
    recursive: bool,
    dry_run: bool,
) -> PackageLifecycle:
    return PackageLifecycle(
        service=service,
        artifacts=state.artifact_factory(state.get_settings()),
        recursive=recursive,
        dry_run=dry_run,
        hooks=LifecycleHooks(operation_start=_print_operation),
    )


def _state(ctx: typer.Context) -> CliState:
    return ctx.ensure_object(CliState)


@app.callback()
def main_callback(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Package manager host."),
    port: Optional[int] = typer.Option(None, "--port", help="Package manager port."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Basic auth user."),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Basic auth password.", envvar="CRX_PKGSYNC_PASSWORD"
    ),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Package group id."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--text-logs", help="Structured JSON logs on stderr."
    ),
) -> None:
    state = _state(ctx)
    with _guard():
        settings = state.get_settings()
    setup_logging(
        log_level or settings.log_level,
        json_output=settings.log_json if json_logs is None else json_logs,
    )
    overrides = {
        "host": host,
        "port": port,
        "user": user,
        "password": password,
        "group_id": group,
    }
    state.overrides = {k: v for k, v in overrides.items() if v is not None}


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Package name (exact match)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the records as JSON."),
) -> None:
    """List remote packages with the given name."""

    state = _state(ctx)
    with _guard(), _open_service(state, state.target()) as service:
        records = service.list_packages(name)

    if not records:
        _console.print(f"[yellow]No remote packages named[/yellow] {name}")
    else:
        _console.print(build_packages_table(records, title=f"Packages: {name}"))
    if output is not None:
        path = export_records_json(records=records, output_path=output)
        _console.print(f"[green]Saved:[/green] {path}")


def _desired(
    *,
    name: str,
    file_path: Path,
    file_name: str | None = None,
    package_url: str | None = None,
    version: str | None = None,
    properties_file: str | None = None,
    version_pattern: str | None = None,
) -> DesiredPackage:
    with _guard():
        return DesiredPackage(
            name=name,
            file_path=file_path,
            file_name=file_name,
            package_url=package_url,
            version=version,
            properties_file=properties_file,
            version_pattern=version_pattern,
        )


@app.command()
def upload(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Package name."),
    file_path: Path = typer.Argument(..., help="Local path of the package artifact."),
    url: Optional[str] = typer.Option(None, "--url", help="Download the artifact from this URL first."),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Desired version."),
    properties_file: Optional[str] = typer.Option(
        None, "--properties-file", help="Entry inside the archive holding the version."
    ),
    version_pattern: Optional[str] = typer.Option(
        None, "--version-pattern", help="Regex whose first group captures the version."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without applying it."),
) -> None:
    """Upload a package, deleting remote versions that differ from the desired one."""

    state = _state(ctx)
    desired = _desired(
        name=name,
        file_path=file_path,
        package_url=url,
        version=version,
        properties_file=properties_file,
        version_pattern=version_pattern,
    )
    with _guard():
        target = state.target()
        with _open_service(state, target) as service:
            result = _lifecycle(state, service, recursive=target.recursive, dry_run=dry_run).upload(desired)
    print_action_result(_console, result)


@app.command()
def install(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Package name."),
    file_name: str = typer.Argument(..., help="Remote download name of the package."),
    file_path: Optional[Path] = typer.Option(
        None, "--file-path", help="Local artifact (defaults to <artifact_dir>/<file_name>)."
    ),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Desired version."),
    properties_file: Optional[str] = typer.Option(None, "--properties-file"),
    version_pattern: Optional[str] = typer.Option(None, "--version-pattern"),
    recursive: Optional[bool] = typer.Option(
        None, "--recursive/--no-recursive", help="Install sub-packages too."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without applying it."),
) -> None:
    """Install a package unless the desired version is already unpacked."""

    state = _state(ctx)
    desired = _desired(
        name=name,
        file_path=file_path or state.get_settings().artifact_dir / file_name,
        file_name=file_name,
        version=version,
        properties_file=properties_file,
        version_pattern=version_pattern,
    )
    with _guard():
        target = state.target(recursive=recursive)
        with _open_service(state, target) as service:
            result = _lifecycle(state, service, recursive=target.recursive, dry_run=dry_run).install(desired)
    print_action_result(_console, result)


def _single(
    ctx: typer.Context,
    action: str,
    *,
    file_name: str,
    name: str | None,
    file_path: Path | None = None,
) -> None:
    state = _state(ctx)
    desired = _desired(
        name=name or file_name,
        file_path=file_path or state.get_settings().artifact_dir / file_name,
        file_name=file_name,
    )
    with _guard():
        target = state.target()
        with _open_service(state, target) as service:
            lifecycle = _lifecycle(state, service, recursive=target.recursive, dry_run=False)
            result = getattr(lifecycle, action)(desired)
    print_action_result(_console, result)


@app.command()
def delete(
    ctx: typer.Context,
    file_name: str = typer.Argument(..., help="Remote download name of the package."),
    name: Optional[str] = typer.Option(None, "--name", help="Package name (informational)."),
    file_path: Optional[Path] = typer.Option(
        None, "--file-path", help="Local copy to remove (defaults to <artifact_dir>/<file_name>)."
    ),
) -> None:
    """Delete a package remotely and remove its local copy."""

    _single(ctx, "delete", file_name=file_name, name=name, file_path=file_path)


@app.command()
def activate(
    ctx: typer.Context,
    file_name: str = typer.Argument(..., help="Remote download name of the package."),
    name: Optional[str] = typer.Option(None, "--name", help="Package name (informational)."),
) -> None:
    """Replicate (activate) a package."""

    _single(ctx, "activate", file_name=file_name, name=name)


@app.command()
def uninstall(
    ctx: typer.Context,
    file_name: str = typer.Argument(..., help="Remote download name of the package."),
    name: Optional[str] = typer.Option(None, "--name", help="Package name (informational)."),
) -> None:
    """Uninstall a package."""

    _single(ctx, "uninstall", file_name=file_name, name=name)


def run() -> None:
    app()
