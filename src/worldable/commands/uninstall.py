"""Uninstall command: drop world tables and forget their migrations."""

from typing import Optional

import click

from ._common import _component_options, _configure_logging, _prompt_components, _resolve_db_path, _selected_components


@click.command("uninstall")
@click.option("--all", "uninstall_all", is_flag=True, help="Uninstall all world data")
@_component_options("Uninstall")
@click.option(
    "--strategy",
    default="nullify",
    show_default=True,
    help="How to handle dependent records (nullify, block, cascade)",
)
@click.option("--force", is_flag=True, help="Skip confirmation")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def uninstall_cmd(
    uninstall_all: bool,
    strategy: str,
    force: bool,
    db_path: Optional[str],
    verbose: bool,
    **components: bool,
):
    """
    Uninstall world data.

    \b
    Strategies:
        nullify   Drop the tables and set dependent references to NULL
        block     Refuse while dependent data exists
        cascade   Also drop the dependent components

    \b
    Examples:
        worldable uninstall --cities --force
        worldable uninstall --countries --strategy cascade
        worldable uninstall --all --force
    """
    _configure_logging(verbose)

    from ..components import DEFAULT_REGISTRY
    from ..exceptions import WorldableError
    from ..store import WorldDatabase
    from ..uninstaller import Uninstaller

    if uninstall_all:
        selected = list(DEFAULT_REGISTRY.components)
    else:
        selected = _selected_components(components)
        if not selected:
            selected = _prompt_components("uninstall")
            if selected == ["all"]:
                selected = list(DEFAULT_REGISTRY.components)

    if not selected:
        raise click.ClickException("No components selected.")

    db = WorldDatabase(db_path=_resolve_db_path(db_path))
    uninstaller = Uninstaller(db)

    try:
        plan = uninstaller.plan(selected, strategy=strategy)
    except WorldableError as e:
        raise click.ClickException(str(e)) from e

    if plan.has_dependents and plan.strategy == "nullify":
        click.echo("\nWarning: dependent data will be orphaned:", err=True)
        for component, dependents in plan.dependents.items():
            for dependent, count in dependents.items():
                click.echo(f"  - {dependent} ({count:,} records) reference {component}", err=True)
        click.echo("Their references will be set to NULL.", err=True)
        if not force and not click.confirm("Continue with nullify strategy?", default=False, err=True):
            click.echo("Uninstallation cancelled.", err=True)
            return

    if plan.cascaded:
        click.echo(f"\nCascade will also remove: {', '.join(plan.cascaded)}", err=True)
        if not force and not click.confirm("Continue with cascade?", default=False, err=True):
            click.echo("Uninstallation cancelled.", err=True)
            return

    click.echo("\nUninstallation plan:", err=True)
    for component in plan.components:
        click.echo(f"  - {component} ({db.table(component)})", err=True)

    if not force and not click.confirm(
        "Are you sure you want to uninstall these components? This will delete all data.", default=False, err=True
    ):
        click.echo("Uninstallation cancelled.", err=True)
        return

    report = uninstaller.uninstall(plan)

    for component in report.dropped:
        click.echo(f"  - dropped {db.table(component)}", err=True)
    for component in report.skipped:
        click.echo(f"  - {db.table(component)} does not exist, skipped", err=True)
    for reference, count in report.nullified.items():
        click.echo(f"  - nullified {count:,} {reference} references", err=True)

    click.echo("\nUninstallation complete!", err=True)
