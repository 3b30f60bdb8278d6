"""Click CLI entry point for the regression tracker."""

import click

from regtrack import __version__
from regtrack.utils.config import load_config
from regtrack.utils.logging import get_logger


class Context:
    """Shared context for all CLI commands."""

    def __init__(self):
        self.config = None
        self.logger = None
        self.verbose = False
        self.dry_run = False


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output with structured JSON logging",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Compute and log decisions without writing to the ledger",
)
@click.option(
    "--store",
    type=click.Choice(["bigquery", "json"]),
    default=None,
    help="Regression ledger backend (default: json)",
)
@click.version_option(version=__version__, prog_name="regtrack")
@pass_context
def main(ctx, config_path, verbose, dry_run, store):
    """Regression Tracker - keep a ledger of test regressions in step with component reports."""
    from pathlib import Path

    config = load_config(Path(config_path) if config_path else None)

    # Apply CLI overrides
    config.verbose = verbose
    config.dry_run = dry_run
    if store is not None:
        config.store = store

    ctx.config = config
    ctx.verbose = verbose
    ctx.dry_run = dry_run
    ctx.logger = get_logger("regtrack", verbose=verbose)


def build_store(ctx):
    """Validate configuration and create the configured regression store."""
    from regtrack.services.stores import create_store

    valid, errors = ctx.config.validate()
    if not valid:
        raise click.ClickException("Invalid configuration:\n  " + "\n  ".join(errors))
    return create_store(ctx.config, logger=ctx.logger)


# Import and register commands (must be after main to avoid circular imports)
from regtrack.commands import allowances, init, regressions, sync  # noqa: E402

main.add_command(sync.sync)
main.add_command(regressions.list_regressions)
main.add_command(init.init)
main.add_command(allowances.allowances)


if __name__ == "__main__":
    main()
