"""Logging configuration helpers for hosts and the CLI."""

from __future__ import annotations

import logging
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def configure_logging(level: str | int = "INFO", stream: TextIO | None = None) -> None:
    """Configure root logging and the ``hookrelay`` logger level.

    Hosts that already configure logging only need to adjust the
    ``hookrelay`` logger; this helper exists for the CLI and small scripts.
    """
    resolved = resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=stream)
    logging.getLogger("hookrelay").setLevel(resolved)
