"""CLI entry point for aumos-rpac.

Invoked as::

    rpac [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_rpac.cli.main

Commands
--------
- check             Resolve one (namespace, action) decision for a synthetic subject
- permissions list  Show the dynamic permission records
- policies show     Show a policy's action table with merged roles
- gate              Evaluate a role gate for a set of roles
- version           Show version information
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from aumos_rpac.config import ConfigLoader
from aumos_rpac.convenience import RpacAuthorizer
from aumos_rpac.errors import RpacError

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("rpac.yaml")
_CLI_SUBJECT_ID = "cli-subject"


class _CliSubject:
    """Stand-in subject built from command-line roles."""

    def __init__(self, roles: tuple[str, ...]) -> None:
        self.id = _CLI_SUBJECT_ID
        self.roles = roles


def _load_authorizer(config_path: str) -> RpacAuthorizer:
    path = Path(config_path)
    loader = ConfigLoader()
    config = loader.load(path) if path.exists() else loader.defaults()
    return RpacAuthorizer(config)


def _build_entity(
    namespace: str,
    relations: tuple[str, ...],
    soft_deletes: bool,
    trashed: bool,
) -> Any:
    attributes: dict[str, object] = {
        "__rpac_namespace__": namespace,
        "__rpac_relationships__": relations,
        "__rpac_soft_deletes__": soft_deletes,
    }
    entity_type = type(f"{namespace}Entity", (), attributes)
    entity = entity_type()
    for relation in relations:
        setattr(entity, f"{relation}_id", _CLI_SUBJECT_ID)
    entity.deleted_at = "cli" if trashed else None
    return entity


_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to rpac.yaml.",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-rpac")
def cli() -> None:
    """RPAC CLI: inspect policies, permissions and authorization decisions."""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_rpac import __version__

    console.print(
        Panel(
            f"[bold]aumos-rpac[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Role and relationship based authorization resolver.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("namespace")
@click.argument("action")
@click.option("--role", "-r", "roles", multiple=True, help="Static role held by the subject.")
@click.option(
    "--relation",
    "relations",
    multiple=True,
    help="Relationship the subject has with the entity (e.g. owner).",
)
@click.option("--anonymous", is_flag=True, default=False, help="Resolve for an absent subject.")
@click.option(
    "--soft-deletes/--no-soft-deletes",
    default=True,
    show_default=True,
    help="Whether the entity type supports soft delete.",
)
@click.option("--trashed", is_flag=True, default=False, help="The entity is soft-deleted.")
@_config_option
def check_command(
    namespace: str,
    action: str,
    roles: tuple[str, ...],
    relations: tuple[str, ...],
    anonymous: bool,
    soft_deletes: bool,
    trashed: bool,
    config_path: str,
) -> None:
    """Resolve ACTION on NAMESPACE for a synthetic subject and entity."""
    try:
        authorizer = _load_authorizer(config_path)
        resolver = authorizer.resolver(namespace)
    except (RpacError, FileNotFoundError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    subject = None if anonymous else _CliSubject(roles)
    needs_entity = resolver.policy.is_model_action(action) or bool(relations) or trashed
    entity = _build_entity(namespace, relations, soft_deletes, trashed) if needs_entity else None

    try:
        decision = resolver.decide(action, subject, entity)
    except RpacError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    status_str = "[green]ALLOWED[/green]" if decision.allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Authorization Result", border_style="blue"))
    console.print(f"  Signature: [cyan]{decision.signature or '-'}[/cyan]")
    console.print(f"  Reason: [magenta]{decision.reason.value}[/magenta]")
    if decision.matched_roles:
        console.print(f"  Matched roles: {', '.join(sorted(decision.matched_roles))}")
    if decision.error is not None:
        console.print(f"  Lookup failure: [yellow]{decision.error}[/yellow]")

    sys.exit(0 if decision.allowed else 1)


# ---------------------------------------------------------------------------
# permissions group
# ---------------------------------------------------------------------------


@cli.group(name="permissions")
def permissions_group() -> None:
    """Dynamic permission store commands."""


@permissions_group.command(name="list")
@click.option("--namespace", "-n", default=None, help="Only show records for this namespace.")
@_config_option
def permissions_list_command(namespace: str | None, config_path: str) -> None:
    """List dynamic permission records."""
    try:
        snapshot = _load_authorizer(config_path).store.current()
    except (RpacError, FileNotFoundError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    records = snapshot.for_namespace(namespace) if namespace else list(snapshot)
    if not records:
        console.print("[yellow]No permission records found.[/yellow]")
        return

    table = Table(title="Permission Records", box=box.SIMPLE)
    table.add_column("Signature", style="cyan")
    table.add_column("Role", style="magenta")
    for record in records:
        table.add_row(record.signature, record.role)
    console.print(table)
    console.print(f"  Snapshot version: [cyan]{snapshot.version}[/cyan]  records: [cyan]{len(records)}[/cyan]")


# ---------------------------------------------------------------------------
# policies group
# ---------------------------------------------------------------------------


@cli.group(name="policies")
def policies_group() -> None:
    """Policy unit commands."""


@policies_group.command(name="show")
@click.argument("namespace")
@_config_option
def policies_show_command(namespace: str, config_path: str) -> None:
    """Show the action table of NAMESPACE with static and merged roles."""
    try:
        resolver = _load_authorizer(config_path).resolver(namespace)
        table = Table(title=f"Policy: {namespace}", box=box.SIMPLE)
        table.add_column("Action", style="cyan")
        table.add_column("Kind", style="dim")
        table.add_column("Static roles")
        table.add_column("Merged roles", style="magenta")
        for name, spec in resolver.policy.action_table.items():
            merged = resolver.permissions_for(name)
            table.add_row(
                name,
                spec.kind.value,
                ", ".join(sorted(spec.default_roles)) or "-",
                ", ".join(sorted(merged)) or "-",
            )
    except (RpacError, FileNotFoundError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)
    console.print(table)


# ---------------------------------------------------------------------------
# gate
# ---------------------------------------------------------------------------


@cli.command(name="gate")
@click.argument("allowed")
@click.option("--role", "-r", "roles", multiple=True, help="Static role held by the subject.")
@click.option("--anonymous", is_flag=True, default=False, help="Check an absent subject.")
@_config_option
def gate_command(allowed: str, roles: tuple[str, ...], anonymous: bool, config_path: str) -> None:
    """Check a role gate.  ALLOWED is a configured gate name or "role1|role2"."""
    try:
        authorizer = _load_authorizer(config_path)
    except (RpacError, FileNotFoundError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    subject = None if anonymous else _CliSubject(roles)
    granted = authorizer.check_role(subject, allowed)
    status_str = "[green]ALLOWED[/green]" if granted else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Role Gate", border_style="blue"))
    sys.exit(0 if granted else 1)


if __name__ == "__main__":
    cli()
