"""Tests for sync orchestration and running coders."""

import json
from unittest.mock import MagicMock, patch

import pytest
import tomlkit

from swixter.adapters.claude import ClaudeCodeAdapter
from swixter.adapters.codex import CodexAdapter
from swixter.adapters.continue_ import ContinueAdapter
from swixter.config import (
    InvalidConfigError,
    Profile,
    ProfileNotFoundError,
    get_active_profile,
    load_config,
    profile_exists,
)
from swixter.presets import UnknownProviderError
from swixter.sync import (
    CoderNotInstalledError,
    NoActiveProfileError,
    apply_active,
    apply_profile,
    build_run_args,
    build_run_env,
    create_profile,
    remove_profile_everywhere,
    run_coder,
    switch_profile,
    verify_active,
)


@pytest.fixture
def adapters(tmp_path, presets_path):
    return {
        "claude": ClaudeCodeAdapter(tmp_path / "claude.json", presets_path),
        "codex": CodexAdapter(tmp_path / "codex.toml", presets_path),
        "qwen": ContinueAdapter(tmp_path / "continue.yaml", presets_path),
    }


class TestCreateProfile:
    def test_stores_profile(self, tmp_config, presets_path, anthropic_profile):
        create_profile(anthropic_profile, coder="claude", config_path=tmp_config, presets_path=presets_path)
        assert get_active_profile("claude", tmp_config).name == "work"

    def test_unknown_provider_writes_nothing(self, tmp_config, presets_path):
        with pytest.raises(UnknownProviderError):
            create_profile(Profile(name="bad", provider_id="nope"), config_path=tmp_config, presets_path=presets_path)
        assert not tmp_config.exists()

    def test_invalid_name(self, tmp_config, presets_path):
        with pytest.raises(InvalidConfigError):
            create_profile(
                Profile(name="has space", provider_id="ollama"), config_path=tmp_config, presets_path=presets_path
            )
        assert not tmp_config.exists()


class TestApply:
    def test_apply_active(self, tmp_config, presets_path, adapters, ollama_profile):
        create_profile(ollama_profile, coder="codex", config_path=tmp_config, presets_path=presets_path)

        result = apply_active("codex", tmp_config, adapter=adapters["codex"], presets_path=presets_path)

        assert result.verified is True
        assert result.profile.name == "local"
        assert result.config_path == adapters["codex"].config_path
        assert result.env_exports == ['export OLLAMA_API_KEY="k1"']
        config = tomlkit.parse(adapters["codex"].config_path.read_text()).unwrap()
        assert config["profile"] == "swixter-local"

    def test_apply_without_active_profile(self, tmp_config, adapters):
        with pytest.raises(NoActiveProfileError, match="claude"):
            apply_active("claude", tmp_config, adapter=adapters["claude"])

    def test_verify_mismatch_is_reported_not_raised(self, anthropic_profile):
        adapter = MagicMock()
        adapter.verify.return_value = False
        adapter.env_export_commands.return_value = []

        result = apply_profile("claude", anthropic_profile, adapter=adapter)

        adapter.apply.assert_called_once_with(anthropic_profile)
        assert result.verified is False

    def test_verify_active(self, tmp_config, presets_path, adapters, anthropic_profile):
        assert verify_active("claude", tmp_config, adapter=adapters["claude"]) is False
        create_profile(anthropic_profile, coder="claude", config_path=tmp_config, presets_path=presets_path)
        assert verify_active("claude", tmp_config, adapter=adapters["claude"]) is False
        apply_active("claude", tmp_config, adapter=adapters["claude"], presets_path=presets_path)
        assert verify_active("claude", tmp_config, adapter=adapters["claude"]) is True


class TestSwitch:
    def test_switch_updates_pointer_and_file(self, tmp_config, presets_path, adapters):
        create_profile(Profile(name="aa", provider_id="anthropic", api_key="key-a"), config_path=tmp_config)
        create_profile(Profile(name="bb", provider_id="anthropic", api_key="key-b"), config_path=tmp_config)

        switch_profile("claude", "aa", tmp_config, adapter=adapters["claude"], presets_path=presets_path)
        switch_profile("claude", "bb", tmp_config, adapter=adapters["claude"], presets_path=presets_path)

        assert get_active_profile("claude", tmp_config).name == "bb"
        env = json.loads(adapters["claude"].config_path.read_text())["env"]
        assert env["ANTHROPIC_API_KEY"] == "key-b"

    def test_switch_unknown_profile(self, tmp_config, adapters):
        with pytest.raises(ProfileNotFoundError):
            switch_profile("claude", "ghost", tmp_config, adapter=adapters["claude"])
        assert not adapters["claude"].config_path.exists()


class TestRemoveEverywhere:
    def test_cleans_all_coder_configs(self, tmp_config, presets_path, adapters, ollama_profile):
        create_profile(ollama_profile, coder="codex", config_path=tmp_config, presets_path=presets_path)
        adapters["codex"].apply(ollama_profile)
        adapters["qwen"].apply(ollama_profile)

        remove_profile_everywhere("local", tmp_config, adapters=adapters)

        assert not profile_exists("local", tmp_config)
        assert load_config(tmp_config).active_profile_name("codex") == ""
        assert "swixter-local" not in adapters["codex"].config_path.read_text()
        assert "local" not in adapters["qwen"].config_path.read_text()

    def test_adapter_errors_do_not_stop_cleanup(self, tmp_config, presets_path, adapters, ollama_profile):
        create_profile(ollama_profile, config_path=tmp_config, presets_path=presets_path)
        adapters["qwen"].apply(ollama_profile)
        broken = MagicMock()
        broken.remove.side_effect = OSError("read-only")

        remove_profile_everywhere("local", tmp_config, adapters={"codex": broken, "qwen": adapters["qwen"]})

        broken.remove.assert_called_once_with("local")
        assert "local" not in adapters["qwen"].config_path.read_text()


class TestRunEnvironment:
    def test_claude_env(self):
        profile = Profile(name="pp", provider_id="anthropic", api_key="sk-1", auth_token="tok")
        env = build_run_env("claude", profile, base_env={"PATH": "/bin"})
        assert env == {
            "PATH": "/bin",
            "ANTHROPIC_API_KEY": "sk-1",
            "ANTHROPIC_AUTH_TOKEN": "tok",
            "ANTHROPIC_BASE_URL": "https://api.anthropic.com",
        }

    def test_codex_uses_resolved_env_key(self, ollama_profile):
        env = build_run_env("codex", ollama_profile, base_env={})
        assert env == {"OLLAMA_API_KEY": "k1"}

    def test_codex_env_key_override(self):
        profile = Profile(name="pp", provider_id="ollama", api_key="k1", env_key="MY_KEY")
        assert build_run_env("codex", profile, base_env={}) == {"MY_KEY": "k1"}

    def test_qwen_env_ignores_auth_token(self):
        profile = Profile(name="pp", provider_id="custom", api_key="k", auth_token="tok", base_url="http://h:1")
        env = build_run_env("qwen", profile, base_env={})
        assert env == {"OPENAI_API_KEY": "k", "OPENAI_BASE_URL": "http://h:1"}

    def test_base_env_not_mutated(self, ollama_profile):
        base = {"HOME": "/x"}
        build_run_env("codex", ollama_profile, base_env=base)
        assert base == {"HOME": "/x"}

    def test_qwen_args(self, ollama_profile):
        args = build_run_args("qwen", ollama_profile, ["--help"])
        assert args == [
            "--openai-api-key",
            "k1",
            "--openai-base-url",
            "http://localhost:11434",
            "--help",
        ]

    def test_other_coders_pass_args_through(self, ollama_profile):
        assert build_run_args("codex", ollama_profile, ["exec", "hi"]) == ["exec", "hi"]


class TestRunCoder:
    @patch("swixter.sync.subprocess.run")
    def test_returns_exit_code(self, mock_run, adapters, ollama_profile):
        mock_run.return_value = MagicMock(returncode=3)

        code = run_coder("codex", ollama_profile, ["exec", "hi"], adapter=adapters["codex"])

        assert code == 3
        cmd = mock_run.call_args[0][0]
        assert cmd == ["codex", "exec", "hi"]
        assert mock_run.call_args[1]["env"]["OLLAMA_API_KEY"] == "k1"
        # Config is written before the coder starts.
        assert adapters["codex"].verify(ollama_profile)

    @patch("swixter.sync.subprocess.run", side_effect=FileNotFoundError("codex"))
    def test_missing_executable(self, mock_run, adapters, ollama_profile):
        with pytest.raises(CoderNotInstalledError, match="installed"):
            run_coder("codex", ollama_profile, [], adapter=adapters["codex"])
