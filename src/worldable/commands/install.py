"""Install command: provision tables, seed data, link relationships."""

from typing import Optional

import click

from ._common import _component_options, _configure_logging, _prompt_components, _resolve_db_path, _selected_components


@click.command("install")
@click.option("--all", "install_all", is_flag=True, help="Install all world data")
@_component_options("Install")
@click.option("--skip-large", is_flag=True, help="Skip large datasets (cities, states)")
@click.option("--with-dependencies", is_flag=True, help="Automatically install required dependencies")
@click.option("--auto-link", is_flag=True, help="Link relationships after installation without asking")
@click.option("--no-link", is_flag=True, help="Skip relationship linking")
@click.option("--rollback-on-error", is_flag=True, help="Drop this run's tables if seeding fails")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def install_cmd(
    install_all: bool,
    skip_large: bool,
    with_dependencies: bool,
    auto_link: bool,
    no_link: bool,
    rollback_on_error: bool,
    db_path: Optional[str],
    verbose: bool,
    **components: bool,
):
    """
    Install world reference data.

    \b
    Examples:
        worldable install --all
        worldable install --all --skip-large
        worldable install --countries --states --with-dependencies
        worldable install --cities --auto-link
    """
    _configure_logging(verbose)

    from ..exceptions import WorldableError
    from ..installer import DependencyPolicy, Installer, LinkMode
    from ..store import WorldDatabase

    if auto_link and no_link:
        raise click.UsageError("--auto-link and --no-link are mutually exclusive")

    selected = _selected_components(components)
    if not install_all and not selected:
        selected = _prompt_components("install")
        if selected == ["all"]:
            install_all = True
            skip_large = not click.confirm(
                "Include large datasets (cities, states)? This may take several minutes.", default=False, err=True
            )

    if with_dependencies:
        policy = DependencyPolicy.INCLUDE
    elif auto_link:
        policy = DependencyPolicy.LINK
    else:
        policy = DependencyPolicy.WARN
    link_mode = LinkMode.SKIP if no_link else LinkMode.AUTO if auto_link else LinkMode.PROMPT

    db = WorldDatabase(db_path=_resolve_db_path(db_path))
    installer = Installer(db)

    click.echo("Worldable Installation", err=True)
    click.echo("=" * 40, err=True)

    try:
        plan = installer.plan(selected, all_components=install_all, skip_large=skip_large, policy=policy)
    except WorldableError as e:
        raise click.ClickException(str(e)) from e

    if not plan.components:
        raise click.ClickException("No components selected.")

    if plan.missing_dependencies:
        click.echo("\nWarning: installing components without their dependencies", err=True)
        for component, deps in plan.missing_dependencies.items():
            click.echo(f"  - {component} works best with: {', '.join(deps)}", err=True)
        click.echo("Records will be created with NULL foreign keys.", err=True)
        click.echo("Link them later with 'worldable link', or use --with-dependencies.", err=True)

    if plan.added_dependencies:
        click.echo("\nAdding required dependencies:", err=True)
        for dependency in plan.added_dependencies:
            click.echo(f"  - {dependency}", err=True)

    click.echo("\nInstallation plan:", err=True)
    for component in plan.components:
        marker = "*" if installer.registry.is_large(component) else "-"
        click.echo(f"  {marker} {component}", err=True)

    def confirm(question: str) -> bool:
        click.echo("\nNewly installed components can be linked to their parents.", err=True)
        return click.confirm(question, default=True, err=True)

    report = installer.install(plan, rollback_on_error=rollback_on_error or None, link_mode=link_mode, confirm=confirm)

    click.echo("", err=True)
    for component, result in report.seed_results.items():
        suffix = f" ({result.inserted:,} new)" if result.inserted else ""
        click.echo(f"  + {component} installed{suffix}", err=True)
    for component in report.failed:
        click.echo(f"  x {component} failed: {report.errors.get(component, '')}", err=True)

    if report.rolled_back:
        click.echo(f"\nRolled back: {', '.join(report.rolled_back)}", err=True)

    if report.link_results:
        click.echo("\nRelationship linking:", err=True)
        for component, result in report.link_results.items():
            click.echo(f"  {component}: {result.linked:,} linked, {result.not_found:,} not found", err=True)
    elif report.linkable and link_mode != LinkMode.AUTO and report.success:
        click.echo(f"\nRun 'worldable link' later to link: {', '.join(report.linkable)}", err=True)

    if not report.success:
        raise click.ClickException(report.error or "Installation failed")

    click.echo("\nWorld data installation complete!", err=True)
