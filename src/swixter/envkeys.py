"""Credential environment variable name resolution.

Every place that needs to know which variable a coder reads its API key from
(the Codex provider table, the environment handed to a spawned coder, and the
``export`` hints shown to the user) goes through :func:`resolve_env_key`.
"""

from __future__ import annotations

from swixter.config import Profile
from swixter.presets import ProviderPreset

FALLBACK_ENV_KEY = "OPENAI_API_KEY"


def resolve_env_key(profile: Profile, preset: ProviderPreset | None) -> str:
    """Profile override, else the preset default, else OPENAI_API_KEY."""
    if profile.env_key:
        return profile.env_key
    if preset is not None and preset.env_key:
        return preset.env_key
    return FALLBACK_ENV_KEY


def default_env_key(preset: ProviderPreset | None) -> str:
    if preset is not None and preset.env_key:
        return preset.env_key
    return FALLBACK_ENV_KEY


def has_custom_env_key(profile: Profile, preset: ProviderPreset | None) -> bool:
    return bool(profile.env_key) and profile.env_key != default_env_key(preset)


def env_export_commands(profile: Profile, preset: ProviderPreset | None) -> list[str]:
    """Shell lines that export the profile's credential, if it has one."""
    if not profile.api_key:
        return []
    return [f'export {resolve_env_key(profile, preset)}="{profile.api_key}"']
