"""Structured JSON logging with stage timing."""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

# Record attributes promoted to top-level JSON fields when present
_CONTEXT_FIELDS = ("release", "regression_id", "dry_run")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON with structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)
        if hasattr(record, "stage"):
            log_data["stage"] = record.stage
        if hasattr(record, "duration"):
            log_data["duration_seconds"] = record.duration
        if hasattr(record, "error_type"):
            log_data["error"] = {
                "type": record.error_type,
                "message": getattr(record, "error_message", ""),
            }
        if hasattr(record, "extra"):
            log_data.update(record.extra)

        return json.dumps(log_data, default=str)


class StageTimer:
    """Time one stage of a reconciliation pass and log how it ended.

    Every record carries the stage name plus the fields given at
    construction, so a pass can be followed by `release` in JSON logs.
    """

    def __init__(self, stage_name: str, logger: logging.Logger, **fields: Any):
        self.stage_name = stage_name
        self.logger = logger
        self.fields = fields
        self.started: float | None = None
        self.duration: float | None = None

    def _extra(self, event: str, **more: Any) -> dict[str, Any]:
        return {"stage": self.stage_name, **self.fields, **more, "extra": {"event": event}}

    def start(self) -> None:
        self.started = time.monotonic()
        self.logger.debug(f"Stage {self.stage_name} started", extra=self._extra("stage_start"))

    def finish(self, error: Exception | None = None) -> float:
        """Log completion, or a single error record when `error` is set."""
        self.duration = time.monotonic() - (self.started or time.monotonic())
        if error is None:
            self.logger.info(
                f"Stage {self.stage_name} completed in {self.duration:.2f}s",
                extra=self._extra("stage_complete", duration=self.duration),
            )
        else:
            self.logger.error(
                f"Stage {self.stage_name} failed after {self.duration:.2f}s: {error}",
                extra=self._extra(
                    "stage_failed",
                    duration=self.duration,
                    error_type=type(error).__name__,
                    error_message=str(error),
                ),
            )
        return self.duration


def get_logger(name: str, verbose: bool = False) -> logging.Logger:
    """Get a logger configured for the regression tracker."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)

        if verbose:
            handler.setFormatter(JSONFormatter())
            logger.setLevel(logging.DEBUG)
        else:
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.setLevel(logging.INFO)

        logger.addHandler(handler)

    return logger


@contextmanager
def stage_context(stage_name: str, logger: logging.Logger, **fields: Any):
    """Time a stage and log its outcome; errors are logged once and re-raised.

    Extra keyword fields (for example `release=...`) are attached to every
    record the stage emits.
    """
    timer = StageTimer(stage_name, logger, **fields)
    timer.start()
    try:
        yield timer
    except Exception as e:
        timer.finish(error=e)
        raise
    timer.finish()
