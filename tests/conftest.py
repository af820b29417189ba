"""Shared test fixtures."""

import pytest

from swixter.config import ModelRoles, Profile


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory at a temp dir so no real config is touched."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def tmp_config(tmp_path):
    """Return a path for a temporary swixter config file."""
    return tmp_path / "swixter" / "config.json"


@pytest.fixture
def presets_path(tmp_path):
    """Return a path for a temporary user providers file (absent by default)."""
    return tmp_path / "swixter" / "providers.json"


@pytest.fixture
def anthropic_profile():
    return Profile(
        name="work",
        provider_id="anthropic",
        api_key="sk-ant-work-key",
    )


@pytest.fixture
def claude_models_profile():
    return Profile(
        name="with-models",
        provider_id="anthropic",
        api_key="sk-test-key",
        models=ModelRoles(
            anthropic_model="claude-3-5-sonnet-20241022",
            default_haiku_model="claude-3-5-haiku-20241022",
            default_opus_model="claude-3-opus-20240229",
            default_sonnet_model="claude-3-5-sonnet-20241022",
        ),
    )


@pytest.fixture
def ollama_profile():
    return Profile(
        name="local",
        provider_id="ollama",
        api_key="k1",
    )
