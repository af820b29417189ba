"""Continue/Qwen adapter: the ``models`` list of ~/.continue/config.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from swixter.adapters.base import CoderAdapter
from swixter.coders import get_coder
from swixter.config import Profile

LOG = logging.getLogger(__name__)

YAML_INDENT = 2
ROLES = ("chat", "edit", "apply")
DEFAULT_PROVIDER = "openai"

# swixter provider id -> Continue provider type
PROVIDER_MAP = {
    "anthropic": "anthropic",
    "openai": "openai",
    "openrouter": "openai",
    "ollama": "ollama",
    "custom": "openai",
}

_MANAGED_KEYS = ("title", "provider", "apiBase", "apiKey", "model", "roles")


def continue_provider(provider_id: str) -> str:
    return PROVIDER_MAP.get(provider_id, DEFAULT_PROVIDER)


@dataclass
class ContinueModel:
    """One entry of the models list; unknown keys ride along in ``extra``."""

    title: str
    provider: str
    api_base: str
    api_key: str | None = None
    model: str | None = None
    roles: list[str] = field(default_factory=lambda: list(ROLES))
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> "ContinueModel":
        roles = d.get("roles")
        return cls(
            title=d.get("title", ""),
            provider=d.get("provider", ""),
            api_base=d.get("apiBase", ""),
            api_key=d.get("apiKey"),
            model=d.get("model"),
            roles=list(roles) if isinstance(roles, list) else [],
            extra={k: v for k, v in d.items() if k not in _MANAGED_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "provider": self.provider,
            "apiBase": self.api_base,
        }
        if self.api_key:
            data["apiKey"] = self.api_key
        if self.model:
            data["model"] = self.model
        data["roles"] = list(self.roles)
        data.update(self.extra)
        return data

    def managed_fields(self) -> tuple:
        return (self.title, self.provider, self.api_base, self.api_key, self.model, list(self.roles))


def _dump(config: dict) -> str:
    return yaml.safe_dump(
        config,
        indent=YAML_INDENT,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )


class ContinueAdapter(CoderAdapter):
    """Upserts one model entry per profile, keyed by title."""

    name = "continue"

    @classmethod
    def default_config_path(cls) -> Path:
        return get_coder("qwen").config_path

    def build_model(self, profile: Profile) -> ContinueModel:
        return ContinueModel(
            title=profile.name,
            provider=continue_provider(profile.provider_id),
            api_base=self._base_url(profile),
            api_key=profile.api_key or None,
            model=profile.model or None,
        )

    def _load(self, backup_on_error: bool) -> dict | None:
        raw = self._read_text()
        if raw is None:
            return None
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError:
            if backup_on_error:
                self._backup(raw)
            return None
        if data is None:
            return {}
        if not isinstance(data, dict):
            if backup_on_error:
                self._backup(raw)
            return None
        return data

    def apply(self, profile: Profile) -> None:
        config = self._load(backup_on_error=True) or {}
        models = config.get("models")
        if not isinstance(models, list):
            if models is not None:
                LOG.warning("Replacing non-list 'models' in %s", self.config_path)
            models = []

        new_model = self.build_model(profile)
        for i, entry in enumerate(models):
            if isinstance(entry, dict) and entry.get("title") == profile.name:
                new_model.extra = ContinueModel.from_dict(entry).extra
                models[i] = new_model.to_dict()
                break
        else:
            models.append(new_model.to_dict())

        config["models"] = models
        self._write_text(_dump(config))
        LOG.debug("Applied profile %s to %s", profile.name, self.config_path)

    def verify(self, profile: Profile) -> bool:
        config = self._load(backup_on_error=False)
        if not config:
            return False
        models = config.get("models")
        if not isinstance(models, list):
            return False

        expected = self.build_model(profile).managed_fields()
        for entry in models:
            if isinstance(entry, dict) and entry.get("title") == profile.name:
                return ContinueModel.from_dict(entry).managed_fields() == expected
        return False

    def remove(self, profile_name: str) -> None:
        config = self._load(backup_on_error=False)
        if not config:
            return
        models = config.get("models")
        if not isinstance(models, list):
            return

        kept = [m for m in models if not (isinstance(m, dict) and m.get("title") == profile_name)]
        if len(kept) < len(models):
            config["models"] = kept
            self._write_text(_dump(config))
