# sensitive_patterns/logging_config.py

"""JSON logging for the detection engine.

Detection code logs with ``extra={...}`` (pattern ids, counts, lengths);
those fields become top-level keys of each JSON line. Matched values are
never passed as extras.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

QUIET_LOGGERS = ("presidio-analyzer", "presidio", "spacy", "urllib3")


class StructuredFormatter(logging.Formatter):
    """Renders one record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in log_data
        )

        # Unknown extra types (paths, enums) fall back to str()
        return json.dumps(log_data, default=str)


def configure_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Routes the root logger through a single JSON handler.

    Args:
        level: Level name, case-insensitive; unknown names mean INFO
        stream: Output stream, stdout when omitted
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging configured", extra={"log_level": level})
