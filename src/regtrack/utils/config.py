"""Configuration loading from environment and YAML file."""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Literal

import yaml

StoreBackend = Literal["bigquery", "json"]

STORE_BACKENDS: tuple[str, ...] = ("bigquery", "json")


@dataclass
class RegTrackConfig:
    """Regression tracker configuration from environment and config file."""

    # Ledger backend
    store: StoreBackend = "json"
    bigquery_project: str = ""
    bigquery_dataset: str = ""
    table: str = "test_regressions"
    ledger_path: Path | None = None

    # Tracking behavior
    grace_period_days: int = 2
    timeout: int = 60
    allowances_file: Path | None = None

    # Runtime
    config_path: Path | None = None
    verbose: bool = False
    dry_run: bool = False

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the selected backend has what it needs."""
        errors = []
        if self.store not in STORE_BACKENDS:
            errors.append(f"REGTRACK_STORE must be one of {', '.join(STORE_BACKENDS)}, got {self.store!r}")
        if self.store == "bigquery" and not self.bigquery_dataset:
            errors.append("BIGQUERY_DATASET is required for the bigquery store")
        if self.grace_period_days < 0:
            errors.append("grace_period_days must not be negative")
        if self.timeout <= 0:
            errors.append("timeout must be positive")
        return len(errors) == 0, errors

    @property
    def grace_period(self) -> timedelta:
        return timedelta(days=self.grace_period_days)

    @property
    def resolved_ledger_path(self) -> Path:
        """Ledger file for the json store, defaulting under the data dir."""
        return self.ledger_path or get_data_dir() / "regressions.json"


def load_config(config_path: Path | None = None) -> RegTrackConfig:
    """Load configuration from environment variables and an optional YAML file.

    Configuration is loaded in order (later overrides earlier):
    1. Default values
    2. ~/.regtrack/config.yaml, or the explicit config_path
    3. Environment variables

    Args:
        config_path: Path to config file (default: ~/.regtrack/config.yaml)
    """
    config = RegTrackConfig()

    if config_path is None:
        default_path = Path.home() / ".regtrack" / "config.yaml"
        if default_path.exists():
            config_path = default_path

    if config_path and config_path.exists():
        config.config_path = config_path
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        if "store" in yaml_config:
            config.store = yaml_config["store"]
        if "bigquery_project" in yaml_config:
            config.bigquery_project = yaml_config["bigquery_project"]
        if "bigquery_dataset" in yaml_config:
            config.bigquery_dataset = yaml_config["bigquery_dataset"]
        if "table" in yaml_config:
            config.table = yaml_config["table"]
        if "ledger_path" in yaml_config:
            config.ledger_path = Path(yaml_config["ledger_path"]).expanduser()
        if "grace_period_days" in yaml_config:
            config.grace_period_days = int(yaml_config["grace_period_days"])
        if "timeout" in yaml_config:
            config.timeout = int(yaml_config["timeout"])
        if "allowances_file" in yaml_config:
            config.allowances_file = Path(yaml_config["allowances_file"]).expanduser()

    # Override with environment variables (strip whitespace to handle common input errors)
    if env_store := os.getenv("REGTRACK_STORE"):
        config.store = env_store.strip()
    if env_project := os.getenv("BIGQUERY_PROJECT"):
        config.bigquery_project = env_project.strip()
    if env_dataset := os.getenv("BIGQUERY_DATASET"):
        config.bigquery_dataset = env_dataset.strip()
    if env_ledger := os.getenv("REGTRACK_LEDGER_PATH"):
        config.ledger_path = Path(env_ledger.strip()).expanduser()
    if env_grace := os.getenv("REGTRACK_GRACE_DAYS"):
        config.grace_period_days = int(env_grace)
    if env_timeout := os.getenv("REGTRACK_TIMEOUT"):
        config.timeout = int(env_timeout)
    if env_allowances := os.getenv("REGTRACK_ALLOWANCES_FILE"):
        config.allowances_file = Path(env_allowances.strip()).expanduser()

    return config


def get_data_dir() -> Path:
    """Get the local data directory for the regression tracker."""
    data_dir = Path.home() / ".regtrack" / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
