"""Logging helpers shared by the CLI and long-running jobs."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: we default
    to INFO level and a terse format suitable for CLI output. Pass ``force=True`` to
    reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


@contextmanager
def timed(
    logger: logging.Logger, operation: str, *, level: int = logging.DEBUG
) -> Iterator[None]:
    """Log the wall-clock duration of the wrapped block under ``operation``."""

    started = time.perf_counter()
    logger.log(level, "Started %s", operation)
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.log(level, "Finished %s in %.1fms", operation, elapsed_ms)
