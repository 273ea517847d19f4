"""chronoplan - personal task planner with recurrence expansion, conflict detection and reminders.

The package keeps top-level imports light: the domain engine lives in
``chronoplan.domain`` and the aiohttp server in ``chronoplan.api`` which is
only imported when the server is started.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorlog stderr handler. The
    CHRONOPLAN_DEBUG environment variable (truthy values: "1", "true", "yes",
    "on") forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("CHRONOPLAN_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler once to avoid duplicate output.
    if not root.handlers:
        from colorlog import ColoredFormatter

        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the chronoplan HTTP server and reminder scanner.

    Args:
        args: Optional argparse namespace carrying ``config`` and ``port`` overrides.

    Loads configuration (file, .env and environment), applies command line
    overrides and blocks until SIGINT/SIGTERM.
    """
    import logging
    import os

    _init_logging(os.environ.get("CHRONOPLAN_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from chronoplan.api.server import start_server
    from chronoplan.core.config_loader import load_config

    config_path = getattr(args, "config", None)
    cfg = load_config(path=config_path)

    port = getattr(args, "port", None)
    if port is not None:
        cfg.server_port = int(port)
        logger.debug("Applied command line port override: %d", cfg.server_port)

    logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))
    logger.debug(
        "Resolved configuration: tasks_file=%s bind=%s port=%d",
        cfg.tasks_file,
        cfg.server_bind,
        cfg.server_port,
    )
    start_server(cfg)
