"""Codex adapter: prefixed provider/profile tables in ~/.codex/config.toml."""

from __future__ import annotations

import logging
from pathlib import Path

import tomlkit
from tomlkit.container import OutOfOrderTableProxy
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import InlineTable, Table
from tomlkit.toml_document import TOMLDocument

from swixter.adapters.base import CoderAdapter
from swixter.coders import get_coder
from swixter.config import Profile
from swixter.envkeys import env_export_commands, resolve_env_key
from swixter.presets import ProviderPreset, require_preset

LOG = logging.getLogger(__name__)

ENTRY_PREFIX = "swixter-"
DEFAULT_WIRE_API = "chat"


def entry_name(profile_name: str) -> str:
    """Name of the provider and profile tables owned by a swixter profile."""
    return f"{ENTRY_PREFIX}{profile_name}"


class CodexAdapter(CoderAdapter):
    """Owns ``[model_providers.swixter-*]`` and ``[profiles.swixter-*]``.

    Everything else in config.toml (MCP servers, approval policy, tables the
    user wrote by hand) is left as is, formatting included. API keys are
    never stored; the provider table names the environment variable Codex
    reads the key from.
    """

    name = "codex"

    @classmethod
    def default_config_path(cls) -> Path:
        return get_coder("codex").config_path

    def provider_table(self, profile: Profile, preset: ProviderPreset) -> Table:
        table = tomlkit.table()
        table.add("name", preset.display_name)
        table.add("base_url", self._base_url(profile, preset))
        table.add("wire_api", preset.wire_api or DEFAULT_WIRE_API)
        table.add("env_key", resolve_env_key(profile, preset))
        if preset.headers:
            headers = tomlkit.inline_table()
            headers.update(preset.headers)
            table.add("http_headers", headers)
        return table

    def profile_table(self, profile: Profile, preset: ProviderPreset) -> Table:
        table = tomlkit.table()
        table.add("model_provider", entry_name(profile.name))
        model = profile.model or (preset.default_models[0] if preset.default_models else None)
        if model:
            table.add("model", model)
        return table

    def _load_for_write(self) -> TOMLDocument:
        raw = self._read_text()
        if raw is None:
            return tomlkit.document()
        try:
            return tomlkit.parse(raw)
        except (TOMLKitError, ValueError):
            self._backup(raw)
            return tomlkit.document()

    def _load_for_read(self) -> dict | None:
        raw = self._read_text()
        if raw is None:
            return None
        try:
            return tomlkit.parse(raw).unwrap()
        except (TOMLKitError, ValueError):
            return None

    @staticmethod
    def _is_dotted(doc: TOMLDocument, key: str) -> bool:
        """True if key is defined through dotted root keys (``a.b.c = 1``)."""
        return any(k is not None and k.key == key and k.is_dotted() for k, _ in doc.body)

    @classmethod
    def _super_table(cls, doc: TOMLDocument, key: str) -> Table:
        """Return doc[key] as a ``[key.*]`` header table we can add entries to.

        Inline, dotted-key and split definitions are rebuilt as one header
        table with their entries carried over.
        """
        existing = doc.get(key)
        if isinstance(existing, Table) and not cls._is_dotted(doc, key):
            return existing
        table = tomlkit.table(is_super_table=True)
        if isinstance(existing, (Table, InlineTable, OutOfOrderTableProxy)):
            for k, v in existing.unwrap().items():
                table[k] = v
        elif existing is not None:
            LOG.warning("Replacing non-table '%s' in Codex config", key)
        if existing is not None:
            del doc[key]
        doc.add(key, table)
        return table

    def apply(self, profile: Profile) -> None:
        preset = require_preset(profile.provider_id, self.presets_path)
        doc = self._load_for_write()
        name = entry_name(profile.name)

        self._super_table(doc, "model_providers")[name] = self.provider_table(profile, preset)
        self._super_table(doc, "profiles")[name] = self.profile_table(profile, preset)

        # Root keys go above the first table header.
        doc["profile"] = name
        # Older Codex releases only read the root model_provider.
        doc["model_provider"] = name

        self._write_text(tomlkit.dumps(doc))
        LOG.debug("Applied profile %s to %s", profile.name, self.config_path)

    def verify(self, profile: Profile) -> bool:
        config = self._load_for_read()
        if config is None:
            return False
        preset = self._preset(profile)
        if preset is None:
            return False

        name = entry_name(profile.name)
        if config.get("profile") != name:
            return False

        profiles = config.get("profiles")
        providers = config.get("model_providers")
        if not isinstance(profiles, dict) or not isinstance(providers, dict):
            return False

        profile_entry = profiles.get(name)
        if not isinstance(profile_entry, dict):
            return False
        provider_name = profile_entry.get("model_provider")
        if not isinstance(provider_name, str):
            return False
        provider_entry = providers.get(provider_name)
        if not isinstance(provider_entry, dict):
            return False

        return (
            provider_entry.get("base_url") == self._base_url(profile, preset)
            and provider_entry.get("env_key") == resolve_env_key(profile, preset)
        )

    def remove(self, profile_name: str) -> None:
        raw = self._read_text()
        if raw is None:
            return
        try:
            doc = tomlkit.parse(raw)
        except (TOMLKitError, ValueError) as exc:
            LOG.warning("Failed to remove profile from Codex config: %s", exc)
            return

        name = entry_name(profile_name)
        modified = False

        for key in ("model_providers", "profiles"):
            table = doc.get(key)
            if isinstance(table, (Table, OutOfOrderTableProxy)) and name in table:
                del table[name]
                modified = True

        for key in ("profile", "model_provider"):
            if doc.get(key) == name:
                del doc[key]
                modified = True

        if modified:
            self._write_text(tomlkit.dumps(doc))

    def env_export_commands(self, profile: Profile) -> list[str]:
        return env_export_commands(profile, self._preset(profile))
