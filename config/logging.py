import json
import logging
import random
from datetime import datetime, timezone

# LogRecord attributes that are not part of the structured payload
_RESERVED = frozenset(
    (
        "msg",
        "args",
        "levelname",
        "levelno",
        "name",
        "created",
        "msecs",
        "relativeCreated",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "exc_info",
        "exc_text",
        "stack_info",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    )
)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for production logs.

    - Merges base fields (time, level, name, message) with any attributes
      provided via `extra` on the log record (e.g., event, order_id).
    - If the message is a JSON object, its keys are merged into the payload.
    - Dates are ISO-8601 UTC.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
        }

        msg = record.getMessage()
        try:
            parsed = json.loads(msg)
        except ValueError:
            parsed = msg

        if isinstance(parsed, dict):
            payload = {**base, **parsed}
        else:
            payload = {**base, "message": msg}

        for key, value in record.__dict__.items():
            if key in _RESERVED:
                continue
            # Only include simple JSON-serializable values
            try:
                json.dumps(value)
                payload.setdefault(key, value)
            except TypeError:
                payload.setdefault(key, str(value))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class SamplingFilter(logging.Filter):
    """Probabilistically drop logs to reduce noise while keeping signal.

    - `rate`: float in [0.0, 1.0]; fraction of matching records to allow.
    - `levels`: iterable of level names to which sampling applies (e.g., ["INFO"]).
    - `allow_events`: event names that are never sampled.

    Records with level not in `levels` are always allowed. A record whose
    `event` extra (or message) is in `allow_events` is always allowed.
    """

    def __init__(self, rate: float = 1.0, levels: list[str] | None = None, allow_events: list[str] | None = None):
        super().__init__()
        try:
            self.rate = float(rate)
        except (TypeError, ValueError):
            self.rate = 1.0
        self.levels = set(levels or ["INFO"])
        self.allow_events = set(allow_events or [])

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if record.levelname not in self.levels:
            return True
        event = getattr(record, "event", None) or getattr(record, "msg", "")
        if event in self.allow_events:
            return True
        if self.rate >= 1.0:
            return True
        if self.rate <= 0.0:
            return False
        return random.random() < self.rate
