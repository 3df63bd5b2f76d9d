"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.packmgr import PackageManagerClient
from core.config import AppSettings, get_user_env_file, load_settings, write_user_env_vars
from core.errors import PackageManagerError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()

# Nombre que no debería existir: solo interesa que el listado responda 200.
_PROBE_PACKAGE = "__crx_pkgsync_doctor_probe__"


def _check_service(settings: AppSettings) -> tuple[bool, str]:
    try:
        target = settings.to_target()
        with PackageManagerClient(target, settings) as client:
            client.list_packages(_PROBE_PACKAGE)
        return True, f"{target.base_url} answered status 200"
    except PackageManagerError as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = load_settings()

    table = Table(title="crx-pkgsync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Service", "OK", f"{settings.scheme}://{settings.host}:{settings.port}")
    table.add_row("User", "OK", settings.user)
    table.add_row("Group", "OK", settings.group_id)
    env_file = get_user_env_file()
    table.add_row(
        "User config",
        "OK" if env_file.exists() else "OPTIONAL",
        str(env_file) if env_file.exists() else "Not created -> run `doctor setup`",
    )

    ok_service, detail_service = _check_service(settings)
    table.add_row("Package listing", "OK" if ok_service else "FAIL", escape(detail_service))

    _console.print(table)

    if not ok_service:
        _console.print(
            "\n[yellow]Note:[/yellow] check host/port and credentials "
            "(CRX_PKGSYNC_HOST, CRX_PKGSYNC_PORT, CRX_PKGSYNC_USER, CRX_PKGSYNC_PASSWORD)."
        )
        raise typer.Exit(code=1)


@app.command()
def setup() -> None:
    """Interactive connection setup (stored in the user config .env)."""

    settings = load_settings()

    host = typer.prompt("Host", default=settings.host, show_default=True).strip()
    port = typer.prompt("Port", default=settings.port, type=int, show_default=True)
    user = typer.prompt("User", default=settings.user, show_default=True).strip()
    password = typer.prompt("Password", hide_input=True, confirmation_prompt=False).strip()
    group = typer.prompt("Package group", default=settings.group_id, show_default=True).strip()

    if not host or not user or not group:
        raise typer.BadParameter("host, user and group are required")

    env_path = write_user_env_vars(
        {
            "CRX_PKGSYNC_HOST": host,
            "CRX_PKGSYNC_PORT": str(port),
            "CRX_PKGSYNC_USER": user,
            "CRX_PKGSYNC_PASSWORD": password,
            "CRX_PKGSYNC_GROUP_ID": group,
        }
    )

    _console.print(f"[green]Saved connection config to:[/green] {env_path}")
