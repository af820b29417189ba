"""Export profiles to a portable JSON file and import them back."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from swixter.config import (
    Config,
    InvalidConfigError,
    load_config,
    now_iso,
    profile_from_dict,
    profile_to_dict,
    save_config,
    validate_config,
)
from swixter.fsutil import atomic_write

LOG = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"


class ExportError(ValueError):
    """Raised when there is nothing to export."""


class ImportFormatError(ValueError):
    """Raised when an import file is missing or malformed."""


class SanitizedImportError(ValueError):
    """Raised when importing a file whose API keys were masked on export."""

    def __init__(self) -> None:
        super().__init__(
            "The import file contains sanitized API keys and cannot be imported. "
            "Use a full export or pass allow_sanitized=True."
        )


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ExportFileInfo:
    valid: bool
    error: str | None = None
    profile_count: int | None = None
    sanitized: bool | None = None


def sanitize_api_key(api_key: str) -> str:
    """Mask an API key, keeping the first and last four characters.

    Example: ``"sk-abcdefghijk"`` → ``"sk-a***hijk"``
    """
    if len(api_key) <= 8:
        return "***"
    return f"{api_key[:4]}***{api_key[-4:]}"


def export_profiles(
    file_path: Path,
    sanitize: bool = False,
    names: list[str] | None = None,
    config_path: Path | None = None,
) -> int:
    """Write profiles to file_path. Returns the number exported."""
    config = load_config(config_path)

    if names:
        profiles = [config.profiles[n] for n in names if n in config.profiles]
        if not profiles:
            raise ExportError("None of the requested profiles were found")
    else:
        profiles = list(config.profiles.values())

    if not profiles:
        raise ExportError("There are no profiles to export")

    if sanitize:
        profiles = [replace(p, api_key=sanitize_api_key(p.api_key)) for p in profiles]

    data = {
        "profiles": [profile_to_dict(p) for p in profiles],
        "exportedAt": now_iso(),
        "version": EXPORT_VERSION,
        "sanitized": sanitize,
    }
    atomic_write(Path(file_path), json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    return len(profiles)


def _read_export(file_path: Path) -> dict[str, Any]:
    path = Path(file_path)
    if not path.exists():
        raise ImportFormatError(f"File not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ImportFormatError(f"Invalid import file: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("profiles"), list):
        raise ImportFormatError("Invalid import file: missing profiles list")
    for key in ("exportedAt", "version"):
        if not isinstance(data.get(key), str):
            raise ImportFormatError(f"Invalid import file: missing {key}")
    for entry in data["profiles"]:
        if not isinstance(entry, dict) or "name" not in entry or "providerId" not in entry:
            raise ImportFormatError("Invalid import file: malformed profile entry")
    return data


def import_profiles(
    file_path: Path,
    overwrite: bool = False,
    allow_sanitized: bool = False,
    config_path: Path | None = None,
) -> ImportResult:
    """Import profiles from an export file into the store.

    Sanitized files are refused unless allow_sanitized is set, before the
    store is touched. Existing profiles are skipped unless overwrite is set.
    """
    data = _read_export(file_path)
    if data.get("sanitized") and not allow_sanitized:
        raise SanitizedImportError()

    config = load_config(config_path)
    result = ImportResult()

    for entry in data["profiles"]:
        name = entry["name"]
        if not isinstance(name, str):
            result.errors.append(f"Failed to import {name!r}: profile name must be a string")
            continue
        profile = profile_from_dict(entry)
        try:
            validate_config(Config(profiles={name: profile}))
        except InvalidConfigError as exc:
            result.errors.append(f'Failed to import "{name}": {exc}')
            continue

        existing = config.profiles.get(name)
        if existing and not overwrite:
            result.skipped += 1
            continue

        now = now_iso()
        config.profiles[name] = replace(
            profile,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        result.imported += 1

    if result.imported:
        save_config(config, config_path)
    LOG.info("Imported %d profile(s), skipped %d", result.imported, result.skipped)
    return result


def validate_export_file(file_path: Path) -> ExportFileInfo:
    try:
        data = _read_export(file_path)
    except ImportFormatError as exc:
        return ExportFileInfo(valid=False, error=str(exc))
    return ExportFileInfo(
        valid=True,
        profile_count=len(data["profiles"]),
        sanitized=bool(data.get("sanitized")),
    )
