"""Whole-file writes and backups shared by the store and the adapters."""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path


def atomic_write(path: Path, text: str) -> None:
    """Replace path with text via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def backup_file(path: Path, raw: str) -> Path:
    """Copy raw content next to path as <name>.backup.<millis>."""
    backup = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}")
    backup.write_text(raw, encoding="utf-8")
    return backup
