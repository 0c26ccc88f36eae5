from __future__ import annotations

from typing import Callable, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


def best_effort(description: str, action: Callable[[], T]) -> bool:
    """
    Run a secondary write that must never fail or undo the primary one.

    The failure is logged with its traceback and reported as False; the caller
    keeps going. Use only for derived data that is allowed to undercount
    (e.g. the rating trend log), never for the primary write itself.
    """
    try:
        action()
    except Exception:
        logger.exception("best-effort step failed: %s", description)
        return False
    return True
