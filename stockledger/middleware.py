"""WSGI middleware that gives each request its own logger and logs the outcome."""

import logging
import time
import uuid
from datetime import timedelta

from .context import with_logger


class _BoundLogger(logging.LoggerAdapter):
    """Adds its fields to every record, keeping per-call extras."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def _real_ip(environ):
    forwarded = environ.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        first, sep, _ = forwarded.partition(",")
        return first.strip().strip("[]") if sep and first else forwarded
    real = environ.get("HTTP_X_REAL_IP", "")
    return real.strip("[]") if real else environ.get("REMOTE_ADDR", "")


class RequestLogger:
    """Wrap a WSGI application, tagging each request with an id and logging it."""

    def __init__(self, app, logger):
        self.app = app
        self.logger = logger

    def __call__(self, environ, start_response):
        status = ["200"]

        def _start_response(line, headers, exc_info=None):
            status[0] = line
            return start_response(line, headers, exc_info) if exc_info else start_response(line, headers)

        def fields():
            head = status[0].split(" ", 1)[0]
            return {
                "method": environ.get("REQUEST_METHOD", ""),
                "path": environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", ""),
                "ip": _real_ip(environ),
                "status": int(head) if head.isdigit() else 200,
                "duration": timedelta(seconds=time.monotonic() - started),
            }

        started = time.monotonic()
        with with_logger(_BoundLogger(self.logger, {"request_id": str(uuid.uuid4())})):
            try:
                result = self.app(environ, _start_response)
            except Exception as exc:
                self.logger.error("request failed", extra={**fields(), "err": str(exc)})
                raise
        self.logger.info("request handled", extra=fields())
        return result