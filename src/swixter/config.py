"""Profile store: the swixter config file and per-coder active profiles."""

from __future__ import annotations

import json
import logging
import re
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from swixter.fsutil import atomic_write

LOG = logging.getLogger(__name__)

CONFIG_VERSION = "2.0.0"
LEGACY_VERSION = "1.0.0"
CONFIG_FILENAME = "config.json"
USER_PRESETS_FILENAME = "providers.json"

MIN_PROFILE_NAME_LENGTH = 2
PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ProfileNotFoundError(ValueError):
    """Raised when an operation names a profile that does not exist."""

    def __init__(self, name: str):
        super().__init__(f'Profile "{name}" does not exist')
        self.name = name


class InvalidConfigError(ValueError):
    """Raised when a config fails validation before being written."""


def config_dir() -> Path:
    """Return the per-user swixter directory."""
    if sys.platform == "win32":
        return Path.home() / "swixter"
    return Path.home() / ".config" / "swixter"


def config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


def user_presets_path() -> Path:
    return config_dir() / USER_PRESETS_FILENAME


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ModelRoles:
    """Per-role model names for coders exposing several model slots."""

    anthropic_model: str | None = None
    default_haiku_model: str | None = None
    default_opus_model: str | None = None
    default_sonnet_model: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.anthropic_model,
                self.default_haiku_model,
                self.default_opus_model,
                self.default_sonnet_model,
            )
        )


@dataclass
class Profile:
    """A named provider/credential bundle, independent of any coder."""

    name: str
    provider_id: str
    api_key: str = ""
    auth_token: str | None = None
    base_url: str | None = None
    model: str | None = None
    env_key: str | None = None
    models: ModelRoles | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CoderState:
    """Per-coder settings kept in the store."""

    active_profile: str = ""


@dataclass
class Config:
    """Root configuration object."""

    version: str = CONFIG_VERSION
    profiles: dict[str, Profile] = field(default_factory=dict)
    coders: dict[str, CoderState] = field(default_factory=dict)

    def active_profile_name(self, coder: str) -> str:
        state = self.coders.get(coder)
        return state.active_profile if state else ""


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

_MODEL_ROLE_KEYS = {
    "anthropic_model": "anthropicModel",
    "default_haiku_model": "defaultHaikuModel",
    "default_opus_model": "defaultOpusModel",
    "default_sonnet_model": "defaultSonnetModel",
}

_PROFILE_OPTIONAL_KEYS = {
    "auth_token": "authToken",
    "base_url": "baseURL",
    "model": "model",
    "env_key": "envKey",
}


def _model_roles_from_dict(d: dict) -> ModelRoles:
    return ModelRoles(**{attr: d.get(key) for attr, key in _MODEL_ROLE_KEYS.items()})


def _model_roles_to_dict(roles: ModelRoles) -> dict[str, str]:
    out = {}
    for attr, key in _MODEL_ROLE_KEYS.items():
        value = getattr(roles, attr)
        if value:
            out[key] = value
    return out


def profile_from_dict(d: dict) -> Profile:
    models = d.get("models")
    return Profile(
        name=d["name"],
        provider_id=d["providerId"],
        api_key=d.get("apiKey", ""),
        auth_token=d.get("authToken"),
        base_url=d.get("baseURL"),
        model=d.get("model"),
        env_key=d.get("envKey"),
        models=_model_roles_from_dict(models) if isinstance(models, dict) else None,
        created_at=d.get("createdAt", ""),
        updated_at=d.get("updatedAt", ""),
    )


def profile_to_dict(profile: Profile) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": profile.name,
        "providerId": profile.provider_id,
        "apiKey": profile.api_key,
    }
    for attr, key in _PROFILE_OPTIONAL_KEYS.items():
        value = getattr(profile, attr)
        if value:
            data[key] = value
    if profile.models and not profile.models.is_empty():
        data["models"] = _model_roles_to_dict(profile.models)
    data["createdAt"] = profile.created_at
    data["updatedAt"] = profile.updated_at
    return data


def _migrate(data: dict) -> bool:
    """Upgrade a 1.0.0 single-active-profile document in place."""
    if data.get("version") == LEGACY_VERSION and data.get("activeProfile"):
        LOG.info("Upgrading config from %s to %s", LEGACY_VERSION, CONFIG_VERSION)
        active = data.pop("activeProfile")
        data["coders"] = {"claude": {"activeProfile": active}}
        data["version"] = CONFIG_VERSION
        return True
    return False


def _config_from_dict(data: dict) -> Config:
    if not isinstance(data, dict):
        raise InvalidConfigError("config root must be an object")
    profiles = {}
    for key, p in data.get("profiles", {}).items():
        profiles[key] = profile_from_dict(p)
    coders = {}
    for cname, cconf in data.get("coders", {}).items():
        coders[cname] = CoderState(active_profile=cconf.get("activeProfile", ""))
    return Config(
        version=str(data["version"]),
        profiles=profiles,
        coders=coders,
    )


def config_to_dict(config: Config) -> dict[str, Any]:
    return {
        "profiles": {name: profile_to_dict(p) for name, p in config.profiles.items()},
        "coders": {
            cname: {"activeProfile": state.active_profile}
            for cname, state in config.coders.items()
        },
        "version": config.version,
    }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_profile_name(name: str) -> str | None:
    """Return an error message for an invalid profile name, else None."""
    if not name:
        return "Profile name is required"
    if len(name) < MIN_PROFILE_NAME_LENGTH:
        return f"Profile name must be at least {MIN_PROFILE_NAME_LENGTH} characters"
    if not PROFILE_NAME_RE.match(name):
        return "Profile name may only contain letters, digits, underscores and hyphens"
    return None


def _is_http_url(value: str) -> bool:
    if not isinstance(value, str) or not value.startswith(("http://", "https://")):
        return False
    return len(value.split("://", 1)[1]) > 0


def validate_config(config: Config) -> None:
    """Raise InvalidConfigError if the config breaks a store invariant."""
    for key, profile in config.profiles.items():
        if key != profile.name:
            raise InvalidConfigError(f"Profile key '{key}' does not match name '{profile.name}'")
        problem = validate_profile_name(profile.name)
        if problem:
            raise InvalidConfigError(f"{problem}: '{profile.name}'")
        if not profile.provider_id:
            raise InvalidConfigError(f"Profile '{profile.name}' has no provider")
        if profile.base_url and not _is_http_url(profile.base_url):
            raise InvalidConfigError(
                f"Profile '{profile.name}' has an invalid base URL: {profile.base_url}"
            )
    for cname, state in config.coders.items():
        if state.active_profile and state.active_profile not in config.profiles:
            raise InvalidConfigError(
                f"Coder '{cname}' points at missing profile '{state.active_profile}'"
            )


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> Config:
    """Load config from disk.

    A missing file is created with an empty config. A file that cannot be
    read, parsed or validated is logged and replaced in memory by an empty
    config so the calling command can still proceed.
    """
    path = path or config_path()
    if not path.exists():
        config = Config()
        save_config(config, path)
        return config

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        migrated = _migrate(data) if isinstance(data, dict) else False
        config = _config_from_dict(data)
        validate_config(config)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        LOG.error("Failed to load configuration from %s, using defaults: %s", path, exc)
        return Config()

    if migrated:
        save_config(config, path)
    return config


def save_config(config: Config, path: Path | None = None) -> None:
    """Validate and atomically write config to disk."""
    path = path or config_path()
    validate_config(config)
    atomic_write(path, json.dumps(config_to_dict(config), indent=2, ensure_ascii=False) + "\n")


# ---------------------------------------------------------------------------
# Mutators (load → modify → save)
# ---------------------------------------------------------------------------


def upsert_profile(
    profile: Profile,
    coder: str | None = None,
    path: Path | None = None,
) -> Profile:
    """Insert or replace a profile by name.

    The stored created_at of an existing profile is kept. When coder is
    given and it has no active profile yet, or this is the only profile,
    the profile becomes that coder's active profile.
    """
    config = load_config(path)
    now = now_iso()
    existing = config.profiles.get(profile.name)

    stored = replace(
        profile,
        created_at=existing.created_at if existing and existing.created_at else now,
        updated_at=now,
    )
    config.profiles[profile.name] = stored

    if coder:
        state = config.coders.setdefault(coder, CoderState())
        if len(config.profiles) == 1 or not state.active_profile:
            state.active_profile = profile.name

    save_config(config, path)
    return stored


def set_active_profile(coder: str, name: str, path: Path | None = None) -> None:
    config = load_config(path)
    if name not in config.profiles:
        raise ProfileNotFoundError(name)
    config.coders.setdefault(coder, CoderState()).active_profile = name
    save_config(config, path)


def get_active_profile(coder: str, path: Path | None = None) -> Profile | None:
    config = load_config(path)
    return config.profiles.get(config.active_profile_name(coder))


def delete_profile(name: str, path: Path | None = None) -> None:
    """Delete a profile, reassigning every coder that had it active."""
    config = load_config(path)
    if name not in config.profiles:
        raise ProfileNotFoundError(name)

    del config.profiles[name]

    remaining = list(config.profiles)
    for cname, state in config.coders.items():
        if state.active_profile == name:
            state.active_profile = remaining[0] if remaining else ""
            LOG.debug("Coder %s now points at %r", cname, state.active_profile)

    save_config(config, path)


def get_profile(name: str, path: Path | None = None) -> Profile | None:
    return load_config(path).profiles.get(name)


def list_profiles(path: Path | None = None) -> list[Profile]:
    return list(load_config(path).profiles.values())


def profile_exists(name: str, path: Path | None = None) -> bool:
    return name in load_config(path).profiles
