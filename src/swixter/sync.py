"""Sync orchestration: push a store profile into a coder's config and run it."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from swixter.adapters import CoderAdapter, create_adapter
from swixter.coders import get_coder, list_coders
from swixter.config import (
    InvalidConfigError,
    Profile,
    delete_profile,
    get_active_profile,
    set_active_profile,
    upsert_profile,
    validate_profile_name,
)
from swixter.envkeys import resolve_env_key
from swixter.presets import require_preset, resolve_preset

LOG = logging.getLogger(__name__)


class NoActiveProfileError(RuntimeError):
    """Raised when a coder has no active profile to apply."""

    def __init__(self, coder: str):
        super().__init__(f"No active profile for {coder}")
        self.coder = coder


class CoderNotInstalledError(RuntimeError):
    """Raised when a coder's executable cannot be started."""

    def __init__(self, coder: str, executable: str, display_name: str):
        super().__init__(
            f"Could not run '{executable}'. Is {display_name} installed and on your PATH?"
        )
        self.coder = coder
        self.executable = executable


@dataclass
class SyncResult:
    """Outcome of applying a profile to a coder."""

    coder: str
    profile: Profile
    config_path: Path
    verified: bool
    env_exports: list[str] = field(default_factory=list)


def create_profile(
    profile: Profile,
    coder: str | None = None,
    config_path: Path | None = None,
    presets_path: Path | None = None,
) -> Profile:
    """Validate and store a new or updated profile.

    Unknown providers and bad names are rejected before anything is written.
    """
    require_preset(profile.provider_id, presets_path)
    problem = validate_profile_name(profile.name)
    if problem:
        raise InvalidConfigError(problem)
    if coder:
        get_coder(coder)
    return upsert_profile(profile, coder=coder, path=config_path)


def apply_profile(
    coder: str,
    profile: Profile,
    adapter: CoderAdapter | None = None,
    presets_path: Path | None = None,
) -> SyncResult:
    """Write profile into the coder's config file and read it back."""
    adapter = adapter or create_adapter(coder, presets_path=presets_path)
    adapter.apply(profile)
    verified = adapter.verify(profile)
    if not verified:
        LOG.warning("%s config does not match profile %s after apply", coder, profile.name)
    return SyncResult(
        coder=coder,
        profile=profile,
        config_path=adapter.config_path,
        verified=verified,
        env_exports=adapter.env_export_commands(profile),
    )


def apply_active(
    coder: str,
    config_path: Path | None = None,
    adapter: CoderAdapter | None = None,
    presets_path: Path | None = None,
) -> SyncResult:
    get_coder(coder)
    profile = get_active_profile(coder, config_path)
    if profile is None:
        raise NoActiveProfileError(coder)
    return apply_profile(coder, profile, adapter=adapter, presets_path=presets_path)


def verify_active(
    coder: str,
    config_path: Path | None = None,
    adapter: CoderAdapter | None = None,
    presets_path: Path | None = None,
) -> bool:
    get_coder(coder)
    profile = get_active_profile(coder, config_path)
    if profile is None:
        return False
    adapter = adapter or create_adapter(coder, presets_path=presets_path)
    return adapter.verify(profile)


def switch_profile(
    coder: str,
    name: str,
    config_path: Path | None = None,
    adapter: CoderAdapter | None = None,
    presets_path: Path | None = None,
) -> SyncResult:
    """Make name the coder's active profile and apply it."""
    get_coder(coder)
    set_active_profile(coder, name, config_path)
    return apply_active(coder, config_path, adapter=adapter, presets_path=presets_path)


def remove_profile_everywhere(
    name: str,
    config_path: Path | None = None,
    adapters: dict[str, CoderAdapter] | None = None,
) -> None:
    """Delete a profile from the store, then clean it out of every coder config."""
    delete_profile(name, config_path)

    if adapters is None:
        adapters = {c.id: create_adapter(c.id) for c in list_coders()}
    for coder, adapter in adapters.items():
        try:
            adapter.remove(name)
        except OSError as exc:
            LOG.warning("Could not remove %s from %s config: %s", name, coder, exc)


# ---------------------------------------------------------------------------
# Running a coder
# ---------------------------------------------------------------------------


def build_run_env(
    coder: str,
    profile: Profile,
    base_env: dict[str, str] | None = None,
    presets_path: Path | None = None,
) -> dict[str, str]:
    """Environment for the coder process: the current env plus the profile."""
    spec = get_coder(coder)
    preset = resolve_preset(profile.provider_id, presets_path)
    env = dict(os.environ if base_env is None else base_env)
    mapping = spec.env_var_mapping

    if profile.api_key:
        if spec.uses_profile_env_key:
            env[resolve_env_key(profile, preset)] = profile.api_key
        else:
            env[mapping["api_key"]] = profile.api_key

    if profile.auth_token and spec.supports_auth_token:
        env[mapping["auth_token"]] = profile.auth_token

    base_url = profile.base_url or (preset.base_url if preset else "")
    if base_url and "base_url" in mapping:
        env[mapping["base_url"]] = base_url

    return env


def build_run_args(
    coder: str,
    profile: Profile,
    args: list[str],
    presets_path: Path | None = None,
) -> list[str]:
    """Command line for the coder. Qwen takes credentials as flags too."""
    if coder != "qwen":
        return list(args)

    preset = resolve_preset(profile.provider_id, presets_path)
    base_url = profile.base_url or (preset.base_url if preset else "")
    prefix = []
    if profile.api_key:
        prefix += ["--openai-api-key", profile.api_key]
    if base_url:
        prefix += ["--openai-base-url", base_url]
    return prefix + list(args)


def run_coder(
    coder: str,
    profile: Profile,
    args: list[str] | None = None,
    adapter: CoderAdapter | None = None,
    presets_path: Path | None = None,
) -> int:
    """Apply the profile, run the coder attached to this terminal, return its exit code."""
    spec = get_coder(coder)
    apply_profile(coder, profile, adapter=adapter, presets_path=presets_path)

    cmd = [spec.executable] + build_run_args(coder, profile, args or [], presets_path)
    env = build_run_env(coder, profile, presets_path=presets_path)
    LOG.debug("Running %s with profile %s", spec.executable, profile.name)

    try:
        result = subprocess.run(cmd, env=env)
    except FileNotFoundError as exc:
        raise CoderNotInstalledError(coder, spec.executable, spec.display_name) from exc
    return result.returncode
