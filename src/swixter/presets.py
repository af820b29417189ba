"""Built-in provider presets plus user-defined presets from providers.json."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from swixter.config import user_presets_path
from swixter.fsutil import atomic_write

LOG = logging.getLogger(__name__)

USER_PRESETS_VERSION = "1.0.0"
AUTH_TYPES = ("api-key", "bearer", "custom")
WIRE_APIS = ("chat", "responses")


class UnknownProviderError(ValueError):
    """Raised when a provider id is in neither the built-in nor user presets."""

    def __init__(self, provider_id: str):
        super().__init__(f"Unknown provider: {provider_id}")
        self.provider_id = provider_id


class InvalidPresetError(ValueError):
    """Raised when a preset record is malformed."""


@dataclass(frozen=True)
class ProviderPreset:
    """Defaults for one API provider."""

    id: str
    name: str
    display_name: str
    base_url: str
    default_models: tuple[str, ...] = ()
    auth_type: str = "bearer"
    headers: dict[str, str] = field(default_factory=dict)
    wire_api: str = "chat"
    env_key: str | None = None
    docs: str = ""


BUILTIN_PRESETS: dict[str, ProviderPreset] = {
    p.id: p
    for p in (
        ProviderPreset(
            id="anthropic",
            name="Anthropic",
            display_name="Anthropic (Official)",
            base_url="https://api.anthropic.com",
            default_models=(
                "claude-sonnet-4-20250514",
                "claude-3-5-sonnet-20241022",
                "claude-3-5-haiku-20241022",
                "claude-3-opus-20240229",
            ),
            auth_type="api-key",
            headers={"anthropic-version": "2023-06-01"},
            wire_api="responses",
            env_key="ANTHROPIC_API_KEY",
            docs="https://docs.anthropic.com/",
        ),
        ProviderPreset(
            id="openrouter",
            name="OpenRouter",
            display_name="OpenRouter",
            base_url="https://openrouter.ai/api/v1",
            default_models=("anthropic/claude-sonnet-4", "openai/gpt-4o"),
            auth_type="bearer",
            wire_api="chat",
            env_key="OPENROUTER_API_KEY",
            docs="https://openrouter.ai/docs",
        ),
        ProviderPreset(
            id="deepseek",
            name="DeepSeek",
            display_name="DeepSeek",
            base_url="https://api.deepseek.com",
            default_models=("deepseek-chat", "deepseek-reasoner"),
            auth_type="bearer",
            wire_api="chat",
            env_key="DEEPSEEK_API_KEY",
            docs="https://api-docs.deepseek.com/",
        ),
        ProviderPreset(
            id="zhipu",
            name="Zhipu",
            display_name="Zhipu GLM",
            base_url="https://open.bigmodel.cn/api/anthropic",
            default_models=("glm-4.6", "glm-4.5-air"),
            auth_type="bearer",
            wire_api="chat",
            env_key="ZHIPU_API_KEY",
            docs="https://docs.bigmodel.cn/",
        ),
        ProviderPreset(
            id="ollama",
            name="Ollama",
            display_name="Ollama (Local models)",
            base_url="http://localhost:11434",
            default_models=(
                "qwen2.5-coder:7b",
                "qwen2.5-coder:14b",
                "qwen2.5-coder:32b",
                "qwen2.5:7b",
                "qwen2.5:14b",
            ),
            auth_type="custom",
            wire_api="chat",
            env_key="OLLAMA_API_KEY",
            docs="https://ollama.com/library",
        ),
        ProviderPreset(
            id="custom",
            name="Custom",
            display_name="Custom endpoint",
            base_url="",
            auth_type="bearer",
            wire_api="chat",
            env_key="OPENAI_API_KEY",
        ),
    )
}


def get_builtin_preset(provider_id: str) -> ProviderPreset | None:
    """Get a built-in preset by id, or None if not found."""
    return BUILTIN_PRESETS.get(provider_id)


def list_builtin_presets() -> list[ProviderPreset]:
    return list(BUILTIN_PRESETS.values())


# ---------------------------------------------------------------------------
# User presets
# ---------------------------------------------------------------------------


def validate_preset(preset: ProviderPreset) -> None:
    if not preset.id or not preset.name:
        raise InvalidPresetError("Preset id and name are required")
    if preset.base_url and not preset.base_url.startswith(("http://", "https://")):
        raise InvalidPresetError(f"Preset '{preset.id}' has an invalid base URL: {preset.base_url}")
    if preset.auth_type not in AUTH_TYPES:
        raise InvalidPresetError(f"Preset '{preset.id}' has unknown auth type: {preset.auth_type}")
    if preset.wire_api not in WIRE_APIS:
        raise InvalidPresetError(f"Preset '{preset.id}' has unknown wire api: {preset.wire_api}")


def preset_from_dict(d: dict) -> ProviderPreset:
    try:
        preset = ProviderPreset(
            id=d["id"],
            name=d["name"],
            display_name=d.get("displayName") or d["name"],
            base_url=d.get("baseURL", ""),
            default_models=tuple(d.get("defaultModels", [])),
            auth_type=d.get("authType", "bearer"),
            headers=dict(d.get("headers") or {}),
            wire_api=d.get("wire_api", "chat"),
            env_key=d.get("env_key"),
            docs=d.get("docs", ""),
        )
    except (KeyError, TypeError) as exc:
        raise InvalidPresetError(f"Malformed preset record: {exc}") from exc
    validate_preset(preset)
    return preset


def preset_to_dict(preset: ProviderPreset) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": preset.id,
        "name": preset.name,
        "displayName": preset.display_name,
        "baseURL": preset.base_url,
        "defaultModels": list(preset.default_models),
        "authType": preset.auth_type,
        "wire_api": preset.wire_api,
    }
    if preset.headers:
        data["headers"] = dict(preset.headers)
    if preset.env_key:
        data["env_key"] = preset.env_key
    if preset.docs:
        data["docs"] = preset.docs
    return data


def load_user_presets(path: Path | None = None) -> list[ProviderPreset]:
    """Load user-defined presets. Returns [] if the file is missing or bad."""
    path = path or user_presets_path()
    if not path.exists():
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [preset_from_dict(p) for p in data.get("providers", [])]
    except (OSError, ValueError, AttributeError) as exc:
        LOG.error("Failed to load user providers from %s: %s", path, exc)
        return []


def save_user_presets(presets: list[ProviderPreset], path: Path | None = None) -> None:
    path = path or user_presets_path()
    data = {
        "version": USER_PRESETS_VERSION,
        "providers": [preset_to_dict(p) for p in presets],
    }
    atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def upsert_user_preset(preset: ProviderPreset, path: Path | None = None) -> None:
    validate_preset(preset)
    presets = load_user_presets(path)
    for i, existing in enumerate(presets):
        if existing.id == preset.id:
            presets[i] = preset
            break
    else:
        presets.append(preset)
    save_user_presets(presets, path)


def delete_user_preset(provider_id: str, path: Path | None = None) -> bool:
    """Delete a user preset. Returns False if no such preset exists."""
    presets = load_user_presets(path)
    remaining = [p for p in presets if p.id != provider_id]
    if len(remaining) == len(presets):
        return False
    save_user_presets(remaining, path)
    return True


# ---------------------------------------------------------------------------
# Merged lookup
# ---------------------------------------------------------------------------


def all_presets(path: Path | None = None) -> list[ProviderPreset]:
    """Built-ins not overridden by a user preset, followed by user presets."""
    user = load_user_presets(path)
    user_ids = {p.id for p in user}
    return [p for p in BUILTIN_PRESETS.values() if p.id not in user_ids] + user


def resolve_preset(provider_id: str, path: Path | None = None) -> ProviderPreset | None:
    for preset in load_user_presets(path):
        if preset.id == provider_id:
            return preset
    return BUILTIN_PRESETS.get(provider_id)


def require_preset(provider_id: str, path: Path | None = None) -> ProviderPreset:
    preset = resolve_preset(provider_id, path)
    if preset is None:
        raise UnknownProviderError(provider_id)
    return preset


def presets_for_wire_api(wire_api: str, path: Path | None = None) -> list[ProviderPreset]:
    return [p for p in all_presets(path) if p.wire_api == wire_api]
