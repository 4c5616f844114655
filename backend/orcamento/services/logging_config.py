"""
Structured logging for the budget costing service.

Records are emitted as one JSON object per line on stdout. Budget and HTTP
context travel as ``extra`` fields; engines attach the budget id through
``budget_logger`` instead of formatting it into every message.
"""
import json
import logging
import sys
from datetime import datetime, timezone

# Extra attributes promoted to top-level JSON keys when present on a record
CONTEXT_FIELDS = (
    "budget_id",
    "composition_id",
    "request_id",
    "http_method",
    "http_path",
    "http_status",
    "duration_ms",
)

QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        # Portuguese labels (Prejuízo, Orçamento) stay readable
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class BudgetLogAdapter(logging.LoggerAdapter):
    """Adds budget_id (and optionally composition_id) to every record."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def budget_logger(logger: logging.Logger, budget_id: str, **context) -> BudgetLogAdapter:
    return BudgetLogAdapter(logger, {"budget_id": budget_id, **context})


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
