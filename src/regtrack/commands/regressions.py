"""List command - show the regressions currently tracked for a release."""

import click

from regtrack.cli import build_store, pass_context


@click.command("list")
@click.argument("release")
@click.option("--open-only", is_flag=True, default=False, help="Hide recently closed regressions")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@pass_context
def list_regressions(ctx, release, open_only, output_format):
    """List open and recently closed regressions for RELEASE."""
    from regtrack.services.stores import StoreError

    store = build_store(ctx)
    try:
        records = store.list_current(release)
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    if open_only:
        records = [r for r in records if r.is_open]
    records.sort(key=lambda r: r.opened)

    if output_format == "json":
        import json

        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        click.echo(f"No current regressions for {release}")
        return

    click.echo(f"Regressions for {release} ({len(records)}):")
    for record in records:
        state = "open" if record.is_open else f"closed {record.closed:%Y-%m-%d %H:%M}"
        click.echo(
            f"  {record.regression_id[:8]} {record.opened:%Y-%m-%d} {state:<22} "
            f"{record.test_name} [{record.variants}]"
        )
