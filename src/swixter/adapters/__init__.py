"""Config adapters for each supported coder."""

from __future__ import annotations

from pathlib import Path

from swixter.adapters.base import CoderAdapter
from swixter.adapters.claude import ClaudeCodeAdapter
from swixter.adapters.codex import CodexAdapter
from swixter.adapters.continue_ import ContinueAdapter
from swixter.coders import get_coder

ADAPTERS: dict[str, type[CoderAdapter]] = {
    ClaudeCodeAdapter.name: ClaudeCodeAdapter,
    CodexAdapter.name: CodexAdapter,
    ContinueAdapter.name: ContinueAdapter,
}


def create_adapter(
    coder: str,
    config_path: Path | None = None,
    presets_path: Path | None = None,
) -> CoderAdapter:
    """Factory: create the adapter that owns a coder's config file."""
    spec = get_coder(coder)
    return ADAPTERS[spec.adapter](config_path=config_path, presets_path=presets_path)


__all__ = [
    "ADAPTERS",
    "ClaudeCodeAdapter",
    "CodexAdapter",
    "CoderAdapter",
    "ContinueAdapter",
    "create_adapter",
]
