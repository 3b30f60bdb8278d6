"""BigQuery regression store - the production ledger.

Regressions live in one `test_regressions` table. Rows are inserted once
when a regression opens; afterwards only the `closed` column changes.
"""

import concurrent.futures
import logging
from datetime import datetime, timedelta, timezone

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigquery

from regtrack.models.regression import RegressionRecord
from regtrack.models.report import RegressedTestSummary
from regtrack.services.stores.base import (
    DEFAULT_GRACE_PERIOD,
    TEST_REGRESSIONS_TABLE,
    RegressionStore,
    StoreError,
)

_STORE_ERRORS = (GoogleAPIError, concurrent.futures.TimeoutError, TimeoutError)


def _stats_fields(prefix: str) -> list[bigquery.SchemaField]:
    return [
        bigquery.SchemaField(f"{prefix}_success_count", "INTEGER"),
        bigquery.SchemaField(f"{prefix}_failure_count", "INTEGER"),
        bigquery.SchemaField(f"{prefix}_flake_count", "INTEGER"),
        bigquery.SchemaField(f"{prefix}_success_rate", "FLOAT"),
    ]


TEST_REGRESSIONS_SCHEMA = [
    bigquery.SchemaField("regression_id", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("release", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("test_id", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("test_name", "STRING"),
    bigquery.SchemaField(
        "variants",
        "RECORD",
        mode="REPEATED",
        fields=[
            bigquery.SchemaField("key", "STRING"),
            bigquery.SchemaField("value", "STRING"),
        ],
    ),
    bigquery.SchemaField("opened", "TIMESTAMP", mode="REQUIRED"),
    bigquery.SchemaField("closed", "TIMESTAMP"),
    *_stats_fields("sample"),
    *_stats_fields("basis"),
]

_VARIANT_PARAMETER_TYPE = bigquery.StructQueryParameterType(
    bigquery.ScalarQueryParameterType("STRING", name="key"),
    bigquery.ScalarQueryParameterType("STRING", name="value"),
)

# Legacy schema type names mapped to the names query parameters accept
_PARAMETER_TYPES = {"INTEGER": "INT64", "FLOAT": "FLOAT64"}


def _insert_parameters(record: RegressionRecord) -> list:
    """Build one query parameter per `test_regressions` column."""
    row = record.to_row()
    row["opened"] = record.opened
    row["closed"] = record.closed
    parameters = []
    for field in TEST_REGRESSIONS_SCHEMA:
        if field.name == "variants":
            parameters.append(
                bigquery.ArrayQueryParameter(
                    "variants",
                    _VARIANT_PARAMETER_TYPE,
                    [
                        bigquery.StructQueryParameter(
                            None,
                            bigquery.ScalarQueryParameter("key", "STRING", v.key),
                            bigquery.ScalarQueryParameter("value", "STRING", v.value),
                        )
                        for v in record.variants.to_pairs()
                    ],
                )
            )
            continue
        field_type = _PARAMETER_TYPES.get(field.field_type, field.field_type)
        parameters.append(bigquery.ScalarQueryParameter(field.name, field_type, row[field.name]))
    return parameters


class BigQueryRegressionStore(RegressionStore):
    """Store regressions in a BigQuery table.

    Args:
        client: Authenticated BigQuery client
        dataset: Dataset name, optionally qualified as `project.dataset`
        table: Table name within the dataset
        grace_period: How long closed regressions remain current
        timeout: Seconds to wait for each API call and query job
        logger: Optional logger
    """

    def __init__(
        self,
        client: bigquery.Client,
        dataset: str,
        table: str = TEST_REGRESSIONS_TABLE,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        timeout: float | None = 60.0,
        logger: logging.Logger | None = None,
    ):
        self.client = client
        self.dataset = dataset
        self.table = table
        self.grace_period = grace_period
        self.timeout = timeout
        self.logger = logger

    @property
    def table_id(self) -> str:
        """Fully qualified table id."""
        if "." in self.dataset:
            return f"{self.dataset}.{self.table}"
        return f"{self.client.project}.{self.dataset}.{self.table}"

    def _run_query(self, query: str, parameters: list) -> bigquery.QueryJob:
        """Run a parameterised query and wait for it to finish."""
        job_config = bigquery.QueryJobConfig(query_parameters=parameters)
        if self.logger:
            self.logger.debug(f"Running query:\n{query}\nParameters: {parameters}")
        job = self.client.query(query, job_config=job_config, timeout=self.timeout)
        job.result(timeout=self.timeout)
        return job

    def create_table(self) -> bigquery.Table:
        """Create the regressions table if it does not exist yet."""
        table = bigquery.Table(self.table_id, schema=TEST_REGRESSIONS_SCHEMA)
        try:
            return self.client.create_table(table, exists_ok=True, timeout=self.timeout)
        except _STORE_ERRORS as e:
            raise StoreError(f"Failed to create table {self.table_id}: {e}") from e

    def list_current(self, release: str) -> list[RegressionRecord]:
        # Recently closed regressions are included so a test falling in and out
        # of the report keeps its original record and opened date.
        query = (
            f"SELECT * FROM `{self.table_id}` "
            "WHERE release = @release AND (closed IS NULL OR closed > @closed_after)"
        )
        closed_after = datetime.now(timezone.utc) - self.grace_period
        parameters = [
            bigquery.ScalarQueryParameter("release", "STRING", release),
            bigquery.ScalarQueryParameter("closed_after", "TIMESTAMP", closed_after),
        ]

        if self.logger:
            self.logger.info(f"Fetching current test regressions for {release} from {self.table_id}")

        try:
            job = self.client.query(
                query,
                job_config=bigquery.QueryJobConfig(query_parameters=parameters),
                timeout=self.timeout,
            )
            rows = job.result(timeout=self.timeout)
            return [RegressionRecord.from_row(dict(row.items())) for row in rows]
        except _STORE_ERRORS as e:
            raise StoreError(f"Error querying current regressions for {release}: {e}") from e
        except (KeyError, ValueError, TypeError) as e:
            raise StoreError(f"Error parsing regression row from {self.table_id}: {e}") from e

    def open_regression(self, release: str, summary: RegressedTestSummary) -> RegressionRecord:
        # Streamed rows cannot be updated until the streaming buffer flushes,
        # so new rows go in through DML like every other write.
        record = RegressionRecord.open_for(release, summary)
        parameters = _insert_parameters(record)
        columns = ", ".join(p.name for p in parameters)
        values = ", ".join(f"@{p.name}" for p in parameters)
        query = f"INSERT INTO `{self.table_id}` ({columns}) VALUES ({values})"
        try:
            job = self._run_query(query, parameters)
        except _STORE_ERRORS as e:
            raise StoreError(f"Error inserting regression for {summary.test_id}: {e}") from e
        if not job.num_dml_affected_rows:
            raise StoreError(f"Error inserting regression for {summary.test_id}: no row written")
        return record

    def reopen_regression(self, regression_id: str) -> None:
        self._update_closed(regression_id, None)

    def close_regression(self, regression_id: str, closed_at: datetime) -> None:
        self._update_closed(regression_id, closed_at)

    def _update_closed(self, regression_id: str, closed: datetime | None) -> None:
        query = f"UPDATE `{self.table_id}` SET closed = @closed WHERE regression_id = @regression_id"
        parameters = [
            bigquery.ScalarQueryParameter("closed", "TIMESTAMP", closed),
            bigquery.ScalarQueryParameter("regression_id", "STRING", regression_id),
        ]
        try:
            job = self._run_query(query, parameters)
        except _STORE_ERRORS as e:
            raise StoreError(f"Error updating regression {regression_id}: {e}") from e
        if not job.num_dml_affected_rows:
            raise StoreError(f"No regression found with id {regression_id}")
