import logging
import sys
from typing import Optional

ANALYTICS_LOGGER = "backend.analytics"


def _to_level(name: Optional[str], default: int) -> int:
    return getattr(logging, name.upper(), default) if name else default


def setup_logging(level: str = "INFO", analytics_level: Optional[str] = None) -> None:
    root_level = _to_level(level, logging.INFO)
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # the analytics core can be turned up (DEBUG shows per-dashboard stats)
    # without flooding the log with framework output
    logging.getLogger(ANALYTICS_LOGGER).setLevel(_to_level(analytics_level, root_level))

    # access log is too chatty for the dashboard polling
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
