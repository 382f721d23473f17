"""Configuration read from environment variables."""

import os
import re
from dataclasses import dataclass

_LOGGER_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


class ConfigError(Exception):
    """The environment does not describe a valid configuration."""


@dataclass(frozen=True)
class Configuration:
    database_url: str
    port: int = 8080
    logger_level: str = "INFO"
    shutting_down_time: int = 5


def _parse_int(env, key, default):
    raw = env.get(key)
    if not raw:
        return default
    if not re.fullmatch(r"[+-]?\d+", raw):
        raise ConfigError(f'failed to parse environment variables: {key}: invalid integer "{raw}"')
    return int(raw)


def load(environ=None):
    """Read and validate the configuration, raising ConfigError on failure."""
    env = os.environ if environ is None else environ
    cfg = Configuration(
        database_url=env.get("DATABASE_URL", ""),
        port=_parse_int(env, "PORT", 8080),
        logger_level=env.get("LOGGER_LEVEL") or "INFO",
        shutting_down_time=_parse_int(env, "SHUTTING_DOWN_TIME", 5),
    )
    checks = [
        (1 <= cfg.port <= 65535, "PORT must be between 1 and 65535"),
        (cfg.logger_level in _LOGGER_LEVELS, "LOGGER_LEVEL must be one of " + " ".join(_LOGGER_LEVELS)),
        (bool(cfg.database_url), "DATABASE_URL is required"),
        (5 <= cfg.shutting_down_time <= 600, "SHUTTING_DOWN_TIME must be between 5 and 600"),
    ]
    problems = [message for ok, message in checks if not ok]
    if problems:
        raise ConfigError("validator error: " + "; ".join(problems))
    return cfg


def must_load(environ=None):
    """Load the configuration or exit the process with a message."""
    try:
        return load(environ)
    except ConfigError as exc:
        raise SystemExit(f"failed to load config: {exc}") from exc