"""Abstract base class for coder config adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from swixter.config import Profile
from swixter.fsutil import atomic_write, backup_file
from swixter.presets import ProviderPreset, resolve_preset

LOG = logging.getLogger(__name__)


class CoderAdapter(ABC):
    """Writes a profile into one coder's native config file.

    ``apply`` must be idempotent and must not fail on a missing or corrupt
    config file. ``verify`` returns False instead of raising.
    """

    name: str = ""

    def __init__(self, config_path: Path | None = None, presets_path: Path | None = None):
        self.config_path = config_path or self.default_config_path()
        self.presets_path = presets_path

    @classmethod
    @abstractmethod
    def default_config_path(cls) -> Path:
        """Where the coder keeps its config file."""

    @abstractmethod
    def apply(self, profile: Profile) -> None:
        """Write the profile into the coder's config file."""

    @abstractmethod
    def verify(self, profile: Profile) -> bool:
        """Check that the config file matches what apply would write."""

    @abstractmethod
    def remove(self, profile_name: str) -> None:
        """Remove whatever this profile left in the config file."""

    def env_export_commands(self, profile: Profile) -> list[str]:
        return []

    def _read_text(self) -> str | None:
        """Read the config file. Returns None if missing or unreadable."""
        try:
            return self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            LOG.warning("Unable to read %s: %s", self.config_path, exc)
            return None

    def _write_text(self, text: str) -> None:
        atomic_write(self.config_path, text)

    def _backup(self, raw: str) -> Path:
        backup = backup_file(self.config_path, raw)
        LOG.warning("Corrupted %s backed up to %s", self.config_path.name, backup)
        return backup

    def _preset(self, profile: Profile) -> ProviderPreset | None:
        return resolve_preset(profile.provider_id, self.presets_path)

    def _base_url(self, profile: Profile, preset: ProviderPreset | None = None) -> str:
        if profile.base_url:
            return profile.base_url
        if preset is None:
            preset = self._preset(profile)
        return preset.base_url if preset else ""
