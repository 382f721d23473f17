"""JSON logging to standard output."""

import json
import logging
import sys
from datetime import datetime, timedelta

_LEVELS = {"DEBUG": logging.DEBUG, "WARN": logging.WARNING, "ERROR": logging.ERROR}
_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message", "asctime", "taskName",
}


def _json_default(value):
    if isinstance(value, timedelta):
        return (value // timedelta(microseconds=1)) * 1000
    return str(value)


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object with its extra attributes."""

    def format(self, record):
        payload = {
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds"),
            "level": "WARN" if record.levelno == logging.WARNING else record.levelname,
            "msg": record.getMessage(),
        }
        payload.update((k, v) for k, v in record.__dict__.items() if k not in _RESERVED)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, ensure_ascii=False)


def new_logger(level, stream=None):
    """Create a JSON logger; unknown level names fall back to INFO."""
    logger = logging.Logger("stockledger", _LEVELS.get(level, logging.INFO))
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger