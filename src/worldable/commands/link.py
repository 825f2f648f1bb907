"""Link command: backfill NULL parent references."""

from typing import Optional

import click

from ._common import _configure_logging, _resolve_db_path


@click.command("link")
@click.option("--component", help="Specific component to link (subregions, countries, states, cities)")
@click.option("--dry-run", is_flag=True, help="Show what would be linked without making changes")
@click.option("--force", is_flag=True, help="Re-link records even if they already have relationships")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def link_cmd(component: Optional[str], dry_run: bool, force: bool, db_path: Optional[str], verbose: bool):
    """
    Link orphaned world records to their parents.

    \b
    Examples:
        worldable link
        worldable link --component cities
        worldable link --dry-run
    """
    _configure_logging(verbose)

    from ..components import DEFAULT_REGISTRY
    from ..linkers import LinkerRegistry
    from ..store import WorldDatabase

    if component is not None and component not in DEFAULT_REGISTRY.linkable:
        raise click.ClickException(
            f"Invalid component: {component}. Valid components: {', '.join(DEFAULT_REGISTRY.linkable)}"
        )

    db = WorldDatabase(db_path=_resolve_db_path(db_path))
    linkers = LinkerRegistry(db)

    if dry_run:
        click.echo("DRY RUN MODE - No changes will be made", err=True)

    results = linkers.link_all(dry_run=dry_run, force=force, components=[component] if component else None)

    click.echo(f"\n{'Component':<15} {'Linked':>10} {'Not found':>10} {'Total':>10} {'Success':>9}")
    click.echo("-" * 58)
    for name, result in results.items():
        click.echo(
            f"{name:<15} {result.linked:>10,} {result.not_found:>10,} {result.total:>10,} {result.success_rate:>8.2f}%"
        )
        if verbose:
            for key, count in result.details.items():
                click.echo(f"  {key}: {count:,}", err=True)

    if dry_run:
        click.echo("\nRun without --dry-run to apply these changes.", err=True)
    else:
        click.echo("\nRelationship linking complete!", err=True)
