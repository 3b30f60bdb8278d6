"""Regression ledger backends."""

import logging

from regtrack.services.stores.base import (
    DEFAULT_GRACE_PERIOD,
    TEST_REGRESSIONS_TABLE,
    RegressionStore,
    StoreError,
)
from regtrack.services.stores.json_file import JSONRegressionStore
from regtrack.services.stores.memory import MemoryRegressionStore
from regtrack.utils.config import RegTrackConfig


def create_store(config: RegTrackConfig, logger: logging.Logger | None = None) -> RegressionStore:
    """Build the regression store selected by configuration.

    Args:
        config: Loaded configuration
        logger: Optional logger passed to the store

    Returns:
        A ready-to-use regression store
    """
    if config.store == "bigquery":
        # Imported lazily so the json backend works without cloud credentials
        from google.cloud import bigquery

        from regtrack.services.stores.bigquery import BigQueryRegressionStore

        client = bigquery.Client(project=config.bigquery_project or None)
        return BigQueryRegressionStore(
            client=client,
            dataset=config.bigquery_dataset,
            table=config.table,
            grace_period=config.grace_period,
            timeout=config.timeout,
            logger=logger,
        )
    if config.store == "json":
        return JSONRegressionStore(
            ledger_path=config.resolved_ledger_path,
            grace_period=config.grace_period,
            logger=logger,
        )
    raise ValueError(f"Unknown regression store: {config.store!r}")


__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "TEST_REGRESSIONS_TABLE",
    "JSONRegressionStore",
    "MemoryRegressionStore",
    "RegressionStore",
    "StoreError",
    "create_store",
]
