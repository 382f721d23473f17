"""Command that runs the service until it receives a stop signal."""

import argparse
import signal
import threading

from .config import must_load
from .errors import AppError, ConnectionFailedError
from .logger import new_logger
from .repository import SqliteRepository
from .server import Server


def _database_path(url):
    """Turn ``sqlite:///path`` or a plain path into a file path."""
    if "://" not in url:
        return url
    scheme, _, rest = url.partition("://")
    path = rest[1:] if rest.startswith("/") else rest
    if scheme != "sqlite" or not path:
        raise ValueError(f"unsupported database URL {url!r}")
    return path


def apply_migrations(repository, logger):
    """Bring the database schema up to date."""
    try:
        repository.create_schema()
    except AppError as exc:
        raise ConnectionFailedError(f"failed to apply migrations: {exc}") from exc
    logger.info("Database migrations applied successfully")


def main(argv=None):
    """Run the service; return the process exit status."""
    argparse.ArgumentParser(
        prog="stockledger",
        description="Product accounting HTTP service, configured by PORT, LOGGER_LEVEL, "
        "DATABASE_URL and SHUTTING_DOWN_TIME.",
    ).parse_args(argv)

    cfg = must_load()
    logger = new_logger(cfg.logger_level)
    try:
        repository = SqliteRepository(_database_path(cfg.database_url))
    except (ValueError, AppError) as exc:
        raise SystemExit(f"Unable to connect to database: {exc}") from exc

    with repository:
        try:
            apply_migrations(repository, logger)
        except AppError as exc:
            logger.error("Database migrations failed", extra={"error": str(exc)})
            return 1

        server = Server(logger, cfg, repository)
        stop = threading.Event()
        crashes = []

        def _serve():
            try:
                server.start()
            except Exception as exc:
                crashes.append(exc)
                stop.set()

        thread = threading.Thread(target=_serve, name="stockledger-server", daemon=True)
        signals = (signal.SIGINT, signal.SIGTERM)
        previous = {sig: signal.signal(sig, lambda *_: stop.set()) for sig in signals}
        try:
            thread.start()
            while not stop.wait(0.5):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        if crashes:
            raise SystemExit(f"Server crash: {crashes[0]}")

        logger.info("Shutting down...")
        try:
            server.shutdown(cfg.shutting_down_time)
        except Exception as exc:
            logger.error("Shutdown failed", extra={"error": str(exc)})
        else:
            logger.info("Server stopped")
        thread.join(cfg.shutting_down_time)
    return 0