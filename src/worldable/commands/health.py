"""Health command: installation status, orphan counts and score."""

from typing import Optional

import click
import orjson

from ._common import _configure_logging, _resolve_db_path


@click.command("health")
@click.option("--detailed", is_flag=True, help="Show orphaned record examples")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def health_cmd(detailed: bool, as_json: bool, db_path: Optional[str], verbose: bool):
    """
    Check world data installation health.

    \b
    Examples:
        worldable health
        worldable health --detailed
        worldable health --json
    """
    _configure_logging(verbose)

    from ..health import ORPHAN_LABELS, HealthChecker
    from ..store import WorldDatabase

    checker = HealthChecker(WorldDatabase(db_path=_resolve_db_path(db_path)))
    report = checker.report()

    if as_json:
        click.echo(orjson.dumps(report, option=orjson.OPT_INDENT_2).decode())
        return

    components = report["components"]
    orphans = report["orphans"]

    click.echo("\nWorld Data Health")
    click.echo("=" * 40)
    click.echo(f"{'Component':<15} {'Status':<14} {'Records':>10}")
    click.echo("-" * 41)
    for name, status in components.items():
        label = "installed" if status["installed"] else "not installed"
        click.echo(f"{name:<15} {label:<14} {status['count']:>10,}")

    click.echo("\n=== Orphaned Records ===")
    if report["total_orphans"] == 0:
        click.echo("No orphaned records")
    else:
        for key, count in orphans.items():
            if count:
                click.echo(f"{ORPHAN_LABELS[key]:<32} {count:>10,}")

    if detailed:
        samples = checker.orphan_samples()
        for key, rows in samples.items():
            click.echo(f"\n{ORPHAN_LABELS[key]} (examples):")
            for row in rows:
                click.echo("  " + ", ".join(f"{k}={v}" for k, v in row.items()))

    click.echo(f"\nTotal records: {report['total_records']:,}")
    click.echo(f"Health score: {report['health_score']:.2f}%")

    recommendations = checker.recommendations(components, orphans)
    if recommendations:
        click.echo("\nRecommendations:")
        for recommendation in recommendations:
            click.echo(f"  - {recommendation}")
