"""Sync command - reconcile a component report with the regression ledger."""

import click

from regtrack.cli import build_store, pass_context


@click.command()
@click.argument("release")
@click.argument("report_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--allowances",
    "allowances_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Intentional regressions YAML file",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@pass_context
def sync(ctx, release, report_file, allowances_file, output_format):
    """Open, reopen and close regressions for RELEASE from REPORT_FILE."""
    result = _sync_impl(ctx, release, report_file, allowances_file=allowances_file)

    if output_format == "json":
        import json

        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_summary(result)


def _sync_impl(ctx, release: str, report_file: str, allowances_file: str | None = None):
    """Implementation of sync logic."""
    from pathlib import Path

    from regtrack.models.allowance import AllowanceError
    from regtrack.services.allowances import RegressionAllowances, load_allowances
    from regtrack.services.reports import ReportError, load_component_report
    from regtrack.services.tracker import RegressionTracker, SyncError

    config = ctx.config
    logger = ctx.logger

    try:
        report = load_component_report(Path(report_file), logger=logger)
    except ReportError as e:
        raise click.ClickException(str(e)) from e

    allowances_path = Path(allowances_file) if allowances_file else config.allowances_file
    allowances = RegressionAllowances()
    if allowances_path:
        try:
            allowances = load_allowances(allowances_path, logger=logger)
        except AllowanceError as e:
            raise click.ClickException(str(e)) from e

    store = build_store(ctx)
    tracker = RegressionTracker(store, dry_run=ctx.dry_run, allowances=allowances, logger=logger)

    try:
        return tracker.sync_component_report(release, report)
    except SyncError as e:
        raise click.ClickException(f"Sync failed, re-run to retry: {e}") from e


def _print_summary(result) -> None:
    """Print sync results in text format."""
    click.echo("")
    if result.dry_run:
        click.echo("DRY RUN: no changes were written to the ledger")

    if result.opened:
        click.echo(f"Opened ({len(result.opened)}):")
        for test in result.opened:
            click.echo(f"  + {test.test_name or test.test_id} [{test.variants}]")
    if result.reopened:
        click.echo(f"Reopened ({len(result.reopened)}):")
        for record in result.reopened:
            click.echo(f"  ~ {record.regression_id[:8]} {record.test_name} [{record.variants}]")
    if result.closed:
        click.echo(f"Closed ({len(result.closed)}):")
        for record in result.closed:
            click.echo(f"  - {record.regression_id[:8]} {record.test_name} [{record.variants}]")

    click.echo("")
    click.echo(
        f"Summary for {result.release}: {len(result.opened)} opened, {len(result.reopened)} reopened, "
        f"{len(result.closed)} closed, {len(result.unchanged)} unchanged"
    )
    if result.skipped:
        click.echo(f"Skipped {len(result.skipped)} regressed tests without a test ID")
    if result.allowed:
        click.echo(f"{len(result.allowed)} regressions are approved intentional regressions")
