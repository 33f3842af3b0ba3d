"""
Root logger configuration for the scorecard CLI.

``configure_logging(config)`` runs once per CLI command, after the config is
loaded and before a submission is graded.  Everything else in the package
only asks for ``logging.getLogger(__name__)``.

Console output goes to stderr: ``grade --no-save`` and ``report`` print
markdown on stdout, and log lines must not end up inside it.

With ``[logging] json_format = true`` each record becomes a single JSON
object, for example::

    {"ts": "2026-10-16T15:00:00Z", "level": "WARNING",
     "logger": "diversity_scorecard.scorecard.assembler",
     "msg": "Similarity search failed; ..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diversity_scorecard.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_QUIET_LOGGERS = ("httpx", "httpcore")

# Keys present on a bare LogRecord; anything beyond them arrived via extra=.
_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """Render a record as ``{"ts", "level", "logger", "msg", ...extras}``."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": created.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(
            (key, val)
            for key, val in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def _prepare(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Install stderr (and optionally file) handlers on the root logger.

    Args:
        config: The ``[logging]`` section.  ``level`` applies to every
            handler; an empty ``log_file`` disables file output; the log
            file's directory is created when missing.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = (
        _JsonFormatter()
        if config.json_format
        else logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )

    handlers = [_prepare(logging.StreamHandler(sys.stderr), level, formatter)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _prepare(logging.FileHandler(log_path, encoding="utf-8"), level, formatter)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
