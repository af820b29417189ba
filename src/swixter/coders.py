"""Built-in coder definitions: the external tools swixter configures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


class UnknownCoderError(ValueError):
    """Raised for a coder id that is not in the registry."""

    def __init__(self, coder: str):
        super().__init__(f"Unknown coder: {coder}")
        self.coder = coder


@dataclass(frozen=True)
class CoderSpec:
    """A coding tool with its own config file and environment variables."""

    id: str
    display_name: str
    executable: str
    adapter: str
    config_dir: str
    config_file: str
    env_var_mapping: dict[str, str] = field(default_factory=dict)
    supports_auth_token: bool = False
    # Credential goes in the variable named by the profile/preset env key.
    uses_profile_env_key: bool = False
    wire_apis: tuple[str, ...] = ("chat", "responses")

    @property
    def config_path(self) -> Path:
        return Path.home() / self.config_dir / self.config_file


CODERS: dict[str, CoderSpec] = {
    "claude": CoderSpec(
        id="claude",
        display_name="Claude Code",
        executable="claude",
        adapter="claude",
        config_dir=".claude",
        config_file="settings.json",
        env_var_mapping={
            "api_key": "ANTHROPIC_API_KEY",
            "auth_token": "ANTHROPIC_AUTH_TOKEN",
            "base_url": "ANTHROPIC_BASE_URL",
        },
        supports_auth_token=True,
    ),
    "qwen": CoderSpec(
        id="qwen",
        display_name="Continue/Qwen",
        executable="qwen",
        adapter="continue",
        config_dir=".continue",
        config_file="config.yaml",
        env_var_mapping={
            "api_key": "OPENAI_API_KEY",
            "base_url": "OPENAI_BASE_URL",
        },
    ),
    "codex": CoderSpec(
        id="codex",
        display_name="Codex",
        executable="codex",
        adapter="codex",
        config_dir=".codex",
        config_file="config.toml",
        env_var_mapping={
            "api_key": "OPENAI_API_KEY",
        },
        uses_profile_env_key=True,
        wire_apis=("chat",),
    ),
}


def get_coder(coder: str) -> CoderSpec:
    """Get a coder by id. Raises UnknownCoderError if not found."""
    spec = CODERS.get(coder)
    if spec is None:
        raise UnknownCoderError(coder)
    return spec


def list_coders() -> list[CoderSpec]:
    return list(CODERS.values())
