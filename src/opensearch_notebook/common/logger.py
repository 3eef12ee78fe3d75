import contextvars
import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, TextIO, Union

ROOT_LOGGER_NAME = "opensearch_notebook"
NOISY_LOGGERS = ("httpx", "httpcore")
PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(execution_tag)s%(name)s: %(message)s"

_execution_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("execution_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "execution_id",
    "execution_tag",
}


class ExecutionContextFilter(logging.Filter):
    """Stamps each record with the id of the query execution that emitted it."""

    def filter(self, record):
        execution_id = _execution_id_ctx.get()
        record.execution_id = execution_id
        record.execution_tag = f"[{execution_id}] " if execution_id else ""
        return True


@contextmanager
def execution_context(execution_id: str):
    """Binds an execution id to every log line emitted inside the block.

    Context variables follow asyncio tasks, so executions gathered
    concurrently keep their own ids.
    """
    token = _execution_id_ctx.set(execution_id)
    try:
        yield
    finally:
        _execution_id_ctx.reset(token)


def current_execution_id() -> Optional[str]:
    return _execution_id_ctx.get()


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and any `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        execution_id = getattr(record, "execution_id", None)
        if execution_id:
            payload["execution_id"] = execution_id

        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(
    level: Union[str, int] = "INFO", json_format: bool = False, stream: Optional[TextIO] = None
):
    """Installs a single stderr handler on the root logger.

    Args:
        level: Root logging level name or number.
        json_format: Emit JSON lines instead of plain text.
        stream: Output stream; defaults to stderr so stdout stays free for results.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(ExecutionContextFilter())
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Returns a logger namespaced under the package (`parser` -> `opensearch_notebook.parser`)."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
