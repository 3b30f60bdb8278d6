"""Init command - create the regression ledger."""

import click

from regtrack.cli import build_store, pass_context


@click.command()
@pass_context
def init(ctx):
    """Create the regression ledger if it does not exist."""
    from regtrack.services.stores import StoreError

    config = ctx.config
    if ctx.dry_run:
        click.echo("DRY RUN: Would create regression ledger")
        click.echo(f"  Store: {config.store}")
        if config.store == "bigquery":
            click.echo(f"  Dataset: {config.bigquery_dataset}")
            click.echo(f"  Table: {config.table}")
        else:
            click.echo(f"  Ledger: {config.resolved_ledger_path}")
        return

    store = build_store(ctx)
    try:
        if config.store == "bigquery":
            table = store.create_table()
            click.echo(f"Regression table ready: {store.table_id} ({table.num_rows or 0} rows)")
        elif store.initialize():
            click.echo(f"Created regression ledger: {store.ledger_path}")
        else:
            click.echo(f"Regression ledger already exists: {store.ledger_path}")
    except StoreError as e:
        raise click.ClickException(str(e)) from e
