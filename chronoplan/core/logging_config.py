"""Log levels for the chronoplan server process.

The console handler itself is installed by :func:`chronoplan._init_logging`;
this module only decides levels. aiohttp's per-request access lines and
asyncio's loop chatter stay at WARNING so reminder activity remains readable.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

THIRD_PARTY_LEVELS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "asyncio": logging.WARNING,
}

_TRUTHY = ("1", "true", "yes", "on")


def _debug_requested(debug_mode: bool, force_debug: Optional[bool]) -> bool:
    if force_debug is not None:
        return force_debug
    return debug_mode or os.getenv("CHRONOPLAN_DEBUG", "").strip().lower() in _TRUTHY


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """Set chronoplan, root and third-party logger levels.

    ``CHRONOPLAN_DEBUG`` turns on debug output unless ``force_debug`` decides
    it explicitly. ``CHRONOPLAN_LOG_LEVEL`` (any standard level name) sets the
    root level independently of the package level.
    """
    debug = _debug_requested(debug_mode, force_debug)
    package_level = logging.DEBUG if debug else logging.INFO

    root_level = logging.getLevelName(os.getenv("CHRONOPLAN_LOG_LEVEL", "").strip().upper())
    if not isinstance(root_level, int):
        root_level = package_level

    # no-op when _init_logging already attached the colorized handler
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(root_level)
    logging.getLogger("chronoplan").setLevel(package_level)
    for name, level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    logger.debug(
        "Log levels: chronoplan=%s root=%s",
        logging.getLevelName(package_level),
        logging.getLevelName(root_level),
    )


def get_logging_status() -> dict[str, str]:
    """Current level names of the root, chronoplan and quieted loggers."""
    names = ["chronoplan", *THIRD_PARTY_LEVELS]
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    status.update({name: logging.getLevelName(logging.getLogger(name).level) for name in names})
    return status
