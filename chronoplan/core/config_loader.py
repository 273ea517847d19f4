"""chronoplan.core.config_loader

Configuration loader for chronoplan.

- Reads YAML (PyYAML); JSON files are valid YAML.
- Loads ``.env`` defaults without overriding the real environment.
- Applies ``CHRONOPLAN_*`` environment overrides on top of file values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_TASKS_FILE = "chronoplan_tasks.json"

# Environment variable -> Config field
ENV_OVERRIDES: dict[str, str] = {
    "CHRONOPLAN_TASKS_FILE": "tasks_file",
    "CHRONOPLAN_REMINDER_INTERVAL": "reminder_interval_seconds",
    "CHRONOPLAN_DEFAULT_REMINDER_MINUTES": "default_reminder_minutes",
    "CHRONOPLAN_MAX_ITERATIONS": "max_iterations",
    "CHRONOPLAN_NOTIFIED_RETENTION_HOURS": "notified_retention_hours",
    "CHRONOPLAN_SERVER_BIND": "server_bind",
    "CHRONOPLAN_SERVER_PORT": "server_port",
    "CHRONOPLAN_LOG_LEVEL": "log_level",
}


@dataclass
class Config:
    """Typed configuration for chronoplan.

    Fields:
        tasks_file: JSON file holding the task list
        reminder_interval_seconds: reminder scanner cadence (1..60)
        default_reminder_minutes: reminder offset assigned on batch import
        max_iterations: recurrence expansion cap per series
        notified_retention_hours: how long fired reminders are remembered
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
    """

    tasks_file: str = DEFAULT_TASKS_FILE
    reminder_interval_seconds: int = 10
    default_reminder_minutes: int = 15
    max_iterations: int = 1000
    notified_retention_hours: int = 24
    server_bind: str = "127.0.0.1"
    server_port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int; invalid values log a warning
        and fall back to the default. The reminder cadence is clamped to
        1..60 seconds so a reminder never lags its minute.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        interval = _coerce_int("reminder_interval_seconds", 10)
        if interval < 1:
            logger.warning("reminder_interval_seconds %d below minimum; coercing to 1", interval)
            interval = 1
        elif interval > 60:
            logger.warning("reminder_interval_seconds %d above maximum; coercing to 60", interval)
            interval = 60

        default_reminder = _coerce_int("default_reminder_minutes", 15)
        if default_reminder < 0:
            logger.warning("default_reminder_minutes %d is negative; using 15", default_reminder)
            default_reminder = 15

        max_iterations = _coerce_int("max_iterations", 1000)
        if max_iterations < 1:
            logger.warning("max_iterations %d below minimum; coercing to 1", max_iterations)
            max_iterations = 1

        retention = max(_coerce_int("notified_retention_hours", 24), 1)

        tasks_file = data.get("tasks_file") or DEFAULT_TASKS_FILE
        server_bind = data.get("server_bind") or "127.0.0.1"
        log_level = str(data.get("log_level") or "INFO").upper()

        return cls(
            tasks_file=str(tasks_file),
            reminder_interval_seconds=interval,
            default_reminder_minutes=default_reminder,
            max_iterations=max_iterations,
            notified_retention_hours=retention,
            server_bind=str(server_bind),
            server_port=_coerce_int("server_port", 8080),
            log_level=log_level,
        )


def load_env_file(env_file_path: Path | None = None) -> list[str]:
    """Load a ``.env`` file into ``os.environ``.

    Only sets variables that are not already in the environment.

    Returns:
        List of keys that were loaded from the file.
    """
    path = env_file_path or Path.cwd() / ".env"
    if not path.exists():
        logger.debug("No .env file found at %s", path)
        return []

    set_keys = []
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)
        return []

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = val
            set_keys.append(key)

    if set_keys:
        logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
    return set_keys


def _load_config_file(path: Path) -> Any:
    """Load a mapping from a YAML file; JSON parses as YAML too.

    Raises:
        ValueError: if the file is not valid YAML.
    """
    text = path.read_text(encoding="utf-8")
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Unable to parse config file {path}: {exc}") from exc
    # safe_load returns None for empty files
    if loaded is None:
        return {}
    return loaded


def _env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for env_key, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value:
            overrides[field_name] = value
    return overrides


def load_config(path: str | None = None, env_file: Path | None = None) -> Config:
    """Load configuration from file, ``.env`` and the environment.

    Args:
        path: Optional path to a YAML/JSON config file. Defaults to
              ./chronoplan.yaml in the current working directory.
        env_file: Optional ``.env`` path (defaults to ./.env).

    Returns:
        Config instance. A missing file yields defaults plus env overrides.

    Raises:
        ValueError: if the file exists but its top level is not a mapping.
    """
    load_env_file(env_file)

    p = Path(path) if path else Path.cwd() / "chronoplan.yaml"
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if p.exists():
        loaded = _load_config_file(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ValueError("Config file must contain a mapping at top level")
        raw = loaded
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    raw.update(_env_overrides())
    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
