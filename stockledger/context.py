"""Request-scoped logger storage."""

import logging
from contextlib import contextmanager
from contextvars import ContextVar

_current_logger: ContextVar = ContextVar("stockledger_logger", default=None)


@contextmanager
def with_logger(logger):
    """Make ``logger`` the current logger inside the block."""
    token = _current_logger.set(logger)
    try:
        yield logger
    finally:
        _current_logger.reset(token)


def logger_from_context():
    """Return the current logger, or the root logger when none is set."""
    return _current_logger.get() or logging.getLogger()