"""Claude Code adapter: the ``env`` block of ~/.claude/settings.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from swixter.adapters.base import CoderAdapter
from swixter.coders import get_coder
from swixter.config import Profile

LOG = logging.getLogger(__name__)

API_KEY = "ANTHROPIC_API_KEY"
AUTH_TOKEN = "ANTHROPIC_AUTH_TOKEN"
BASE_URL = "ANTHROPIC_BASE_URL"
MODEL = "ANTHROPIC_MODEL"
HAIKU_MODEL = "ANTHROPIC_DEFAULT_HAIKU_MODEL"
OPUS_MODEL = "ANTHROPIC_DEFAULT_OPUS_MODEL"
SONNET_MODEL = "ANTHROPIC_DEFAULT_SONNET_MODEL"

MODEL_KEYS = (MODEL, HAIKU_MODEL, OPUS_MODEL, SONNET_MODEL)


def model_env(profile: Profile) -> dict[str, str]:
    """Role model variables for a profile; unset roles are left out."""
    roles = profile.models
    values = {
        MODEL: (roles.anthropic_model if roles else None) or profile.model,
        HAIKU_MODEL: roles.default_haiku_model if roles else None,
        OPUS_MODEL: roles.default_opus_model if roles else None,
        SONNET_MODEL: roles.default_sonnet_model if roles else None,
    }
    return {k: v for k, v in values.items() if v}


class ClaudeCodeAdapter(CoderAdapter):
    """Replaces the whole ``env`` object, keeps every other section."""

    name = "claude"

    @classmethod
    def default_config_path(cls) -> Path:
        return get_coder("claude").config_path

    def build_env(self, profile: Profile) -> dict[str, str]:
        env: dict[str, str] = {}
        base_url = self._base_url(profile)
        if base_url:
            env[BASE_URL] = base_url
        if profile.api_key:
            env[API_KEY] = profile.api_key
        if profile.auth_token:
            env[AUTH_TOKEN] = profile.auth_token
        env.update(model_env(profile))
        return env

    def _load(self) -> dict[str, Any] | None:
        raw = self._read_text()
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            self._backup(raw)
            return None
        if not isinstance(data, dict):
            self._backup(raw)
            return None
        return data

    def apply(self, profile: Profile) -> None:
        settings = self._load() or {}
        # Keys set by hand under env are dropped too.
        settings["env"] = self.build_env(profile)
        self._write_text(json.dumps(settings, indent=2, ensure_ascii=False) + "\n")
        LOG.debug("Applied profile %s to %s", profile.name, self.config_path)

    def verify(self, profile: Profile) -> bool:
        raw = self._read_text()
        if raw is None:
            return False
        try:
            settings = json.loads(raw)
        except ValueError:
            return False
        env = settings.get("env") if isinstance(settings, dict) else None
        if not isinstance(env, dict):
            return False

        if profile.api_key or profile.auth_token:
            has_api_key = bool(profile.api_key) and env.get(API_KEY) == profile.api_key
            has_auth_token = bool(profile.auth_token) and env.get(AUTH_TOKEN) == profile.auth_token
            if not (has_api_key or has_auth_token):
                return False
        elif API_KEY in env or AUTH_TOKEN in env:
            return False

        if env.get(BASE_URL, "") != self._base_url(profile):
            return False

        expected_models = model_env(profile)
        return all(env.get(key) == expected_models.get(key) for key in MODEL_KEYS)

    def remove(self, profile_name: str) -> None:
        # settings.json holds no per-profile entries.
        return None
