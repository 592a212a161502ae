"""JSON log lines for the gateway."""

import json
import logging
from datetime import datetime, timezone

# Request context the proxy passes through ``extra=``
CONTEXT_FIELDS = ("user_id", "action", "tier", "usage_date", "upstream_status")


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                data[field] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure root logger with JSON formatter.

    ``level`` may be a name such as ``"DEBUG"``; unknown names fall back to INFO.
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.strip().upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler])
