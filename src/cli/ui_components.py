"""Componentes de UI para CLI (Rich).

Responsabilidad:
- Tablas de paquetes remotos y de planes de reconciliación.
- Mantener los comandos libres de detalles visuales.
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from core.domain.models import ActionResult, OperationKind, PackageRecord

_KIND_STYLES: dict[OperationKind, str] = {
    OperationKind.DELETE: "red",
    OperationKind.UPLOAD: "cyan",
    OperationKind.INSTALL: "green",
    OperationKind.ACTIVATE: "magenta",
    OperationKind.UNINSTALL: "yellow",
}


def build_packages_table(records: Sequence[PackageRecord], *, title: str = "Packages") -> Table:
    """Tabla con los registros remotos de un paquete."""

    table = Table(title=title)
    table.add_column("Download name", style="cyan", no_wrap=True)
    table.add_column("Version", style="white")
    table.add_column("Group", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Last unpacked", style="green")
    for record in records:
        size = record.size_bytes
        table.add_row(
            record.download_name,
            record.version or "-",
            record.group or "-",
            f"{size:,}" if size is not None else (record.size or "-"),
            record.last_unpacked or "-",
        )
    return table


def build_plan_table(result: ActionResult) -> Table:
    """Tabla con las operaciones del plan (ejecutadas o no)."""

    status = "applied" if result.executed else "dry run"
    table = Table(title=f"{result.action.label()} plan ({status})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Operation", no_wrap=True)
    table.add_column("Target", style="white")
    for idx, op in enumerate(result.plan.operations, start=1):
        label = op.kind.value
        if op.recursive:
            label += " (recursive)"
        table.add_row(str(idx), Text(label, style=_KIND_STYLES[op.kind]), op.target)
    return table


def print_action_result(console: Console, result: ActionResult) -> None:
    plan = result.plan
    if plan.is_noop:
        version = f" {plan.version}" if plan.version else ""
        console.print(
            f"[green]Up to date:[/green] {plan.package_name}{version} (no operations needed)"
        )
        return
    console.print(build_plan_table(result))
    if result.executed:
        console.print(
            f"[green]Done:[/green] {result.action.value} {plan.package_name} "
            f"({len(plan.operations)} operation(s))"
        )
    else:
        console.print("[yellow](dry run)[/yellow] no changes were made.")
