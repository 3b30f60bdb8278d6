"""Allowances command - validate and show intentional regressions."""

import click

from regtrack.cli import pass_context


@click.command()
@click.option(
    "--file",
    "allowances_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Intentional regressions YAML file (default: from config)",
)
@click.option("--release", type=str, default=None, help="Only show this release")
@pass_context
def allowances(ctx, allowances_file, release):
    """Validate an intentional regressions file and list its entries."""
    from pathlib import Path

    from regtrack.models.allowance import AllowanceError
    from regtrack.services.allowances import load_allowances

    path = Path(allowances_file) if allowances_file else ctx.config.allowances_file
    if path is None:
        raise click.ClickException("No allowances file given; pass --file or set REGTRACK_ALLOWANCES_FILE")

    try:
        registry = load_allowances(path, logger=ctx.logger)
    except AllowanceError as e:
        raise click.ClickException(str(e)) from e

    releases = [release] if release else registry.releases()
    click.echo(f"{path}: {len(registry)} intentional regressions")
    for name in releases:
        entries = registry.for_release(name)
        click.echo(f"Release {name} ({len(entries)}):")
        for entry in entries:
            click.echo(
                f"  {entry.test_name} [{entry.key_variants}] "
                f"{entry.previous_pass_percentage}% -> {entry.regressed_pass_percentage}% "
                f"({entry.jira_component})"
            )
