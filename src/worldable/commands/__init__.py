"""CLI commands package: main click group and command registration."""

import click

from worldable import __version__


@click.group()
@click.version_option(version=__version__)
@click.option("--db", "db_path", type=click.Path(), default=None, help="Database path (default: WORLDABLE_DB or ~/.cache/worldable/world.db)")
@click.pass_context
def main(ctx: click.Context, db_path: str | None):
    """
    Install and manage world reference data.

    \b
    Commands:
        install     Provision tables and seed continents, countries, cities...
        uninstall   Drop world tables
        link        Backfill missing parent relationships
        health      Show installation status and orphan counts

    \b
    Examples:
        worldable install --all --skip-large
        worldable install --cities --with-dependencies
        worldable link --dry-run
        worldable uninstall --countries --strategy cascade
        worldable health --json
    """
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


# Register all commands
from .install import install_cmd
from .uninstall import uninstall_cmd
from .link import link_cmd
from .health import health_cmd

main.add_command(install_cmd)
main.add_command(uninstall_cmd)
main.add_command(link_cmd)
main.add_command(health_cmd)
