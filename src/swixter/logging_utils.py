"""Logging configuration."""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.WARNING) -> None:
    """Configure root logging with a single console handler."""
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(console_handler)
