"""Tests for the profile store."""

import json

import pytest

from swixter.config import (
    CONFIG_VERSION,
    CoderState,
    Config,
    InvalidConfigError,
    ModelRoles,
    Profile,
    ProfileNotFoundError,
    delete_profile,
    get_active_profile,
    get_profile,
    list_profiles,
    load_config,
    profile_exists,
    save_config,
    set_active_profile,
    upsert_profile,
    validate_profile_name,
)


def _profile(name, provider="anthropic", **kwargs):
    return Profile(name=name, provider_id=provider, **kwargs)


class TestLoadSave:
    def test_load_missing_file_creates_default(self, tmp_config):
        config = load_config(tmp_config)
        assert config.version == CONFIG_VERSION
        assert config.profiles == {}
        assert config.coders == {}
        assert tmp_config.exists()

    def test_save_and_load_roundtrip(self, tmp_config):
        config = Config(
            profiles={
                "work": _profile(
                    "work",
                    api_key="sk-1",
                    auth_token="tok",
                    base_url="https://proxy.example.com",
                    model="claude-3-5-sonnet-20241022",
                    env_key="MY_KEY",
                    models=ModelRoles(default_haiku_model="haiku"),
                    created_at="2024-01-01T00:00:00.000Z",
                    updated_at="2024-01-02T00:00:00.000Z",
                )
            },
            coders={"claude": CoderState(active_profile="work")},
        )
        save_config(config, tmp_config)
        loaded = load_config(tmp_config)

        assert loaded == config

    def test_saved_file_uses_camel_case_keys(self, tmp_config):
        config = Config(profiles={"work": _profile("work", api_key="k", base_url="https://x.io")})
        save_config(config, tmp_config)
        data = json.loads(tmp_config.read_text())

        entry = data["profiles"]["work"]
        assert entry["providerId"] == "anthropic"
        assert entry["apiKey"] == "k"
        assert entry["baseURL"] == "https://x.io"
        assert "authToken" not in entry
        assert data["version"] == CONFIG_VERSION

    def test_save_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "deep" / "nested" / "config.json"
        save_config(Config(), path)
        assert path.exists()

    def test_save_leaves_no_temp_files(self, tmp_config):
        save_config(Config(), tmp_config)
        save_config(Config(profiles={"ab": _profile("ab")}), tmp_config)
        assert [p.name for p in tmp_config.parent.iterdir()] == ["config.json"]

    def test_corrupt_file_falls_back_to_default(self, tmp_config):
        tmp_config.parent.mkdir(parents=True)
        tmp_config.write_text("{not json")
        config = load_config(tmp_config)
        assert config.profiles == {}
        # The broken file is left for the user to inspect.
        assert tmp_config.read_text() == "{not json"

    def test_invalid_pointer_falls_back_to_default(self, tmp_config):
        tmp_config.parent.mkdir(parents=True)
        tmp_config.write_text(
            json.dumps(
                {"version": CONFIG_VERSION, "profiles": {}, "coders": {"claude": {"activeProfile": "gone"}}}
            )
        )
        assert load_config(tmp_config).coders == {}

    def test_save_rejects_invalid_config(self, tmp_config):
        config = Config(coders={"claude": CoderState(active_profile="missing")})
        with pytest.raises(InvalidConfigError):
            save_config(config, tmp_config)
        assert not tmp_config.exists()

    def test_save_rejects_bad_base_url(self, tmp_config):
        config = Config(profiles={"ab": _profile("ab", base_url="ftp://nope")})
        with pytest.raises(InvalidConfigError, match="base URL"):
            save_config(config, tmp_config)


class TestMigration:
    def test_upgrades_single_active_profile(self, tmp_config):
        tmp_config.parent.mkdir(parents=True)
        tmp_config.write_text(
            json.dumps(
                {
                    "version": "1.0.0",
                    "activeProfile": "old",
                    "profiles": {
                        "old": {
                            "name": "old",
                            "providerId": "anthropic",
                            "apiKey": "sk-old",
                            "createdAt": "2024-01-01T00:00:00.000Z",
                            "updatedAt": "2024-01-01T00:00:00.000Z",
                        }
                    },
                }
            )
        )

        config = load_config(tmp_config)

        assert config.version == CONFIG_VERSION
        assert config.active_profile_name("claude") == "old"
        on_disk = json.loads(tmp_config.read_text())
        assert on_disk["version"] == CONFIG_VERSION
        assert "activeProfile" not in on_disk
        assert on_disk["coders"] == {"claude": {"activeProfile": "old"}}

    @pytest.mark.parametrize("active", ["", None])
    def test_legacy_without_active_profile_is_left_alone(self, tmp_config, active):
        tmp_config.parent.mkdir(parents=True)
        raw = json.dumps({"version": "1.0.0", "activeProfile": active, "profiles": {}})
        tmp_config.write_text(raw)

        config = load_config(tmp_config)

        assert config.version == "1.0.0"
        assert config.coders == {}
        assert tmp_config.read_text() == raw


class TestValidateProfileName:
    @pytest.mark.parametrize("name", ["ab", "work", "my_profile-2", "A1"])
    def test_valid(self, name):
        assert validate_profile_name(name) is None

    @pytest.mark.parametrize("name", ["", "a", "has space", "dot.name", "slash/x"])
    def test_invalid(self, name):
        assert validate_profile_name(name) is not None


class TestUpsert:
    def test_first_profile_becomes_active(self, tmp_config):
        upsert_profile(_profile("first"), coder="claude", path=tmp_config)
        assert get_active_profile("claude", tmp_config).name == "first"

    def test_second_profile_does_not_steal_active(self, tmp_config):
        upsert_profile(_profile("first"), coder="claude", path=tmp_config)
        upsert_profile(_profile("second"), coder="claude", path=tmp_config)
        assert get_active_profile("claude", tmp_config).name == "first"

    def test_activates_for_coder_without_active(self, tmp_config):
        upsert_profile(_profile("first"), coder="claude", path=tmp_config)
        upsert_profile(_profile("second"), coder="codex", path=tmp_config)
        assert get_active_profile("codex", tmp_config).name == "second"

    def test_without_coder_sets_nothing_active(self, tmp_config):
        upsert_profile(_profile("first"), path=tmp_config)
        assert load_config(tmp_config).coders == {}

    def test_preserves_created_at(self, tmp_config):
        first = upsert_profile(_profile("work", api_key="old"), path=tmp_config)
        second = upsert_profile(_profile("work", api_key="new"), path=tmp_config)

        assert second.created_at == first.created_at
        stored = get_profile("work", tmp_config)
        assert stored.api_key == "new"
        assert stored.created_at == first.created_at
        assert stored.updated_at

    def test_caller_timestamps_are_ignored(self, tmp_config):
        stored = upsert_profile(_profile("work", created_at="1999", updated_at="1999"), path=tmp_config)
        assert stored.created_at != "1999"
        assert stored.updated_at != "1999"


class TestActive:
    def test_set_active(self, tmp_config):
        upsert_profile(_profile("aa"), path=tmp_config)
        upsert_profile(_profile("bb"), path=tmp_config)
        set_active_profile("codex", "bb", tmp_config)
        assert get_active_profile("codex", tmp_config).name == "bb"

    def test_set_active_unknown_raises(self, tmp_config):
        with pytest.raises(ProfileNotFoundError, match="nope"):
            set_active_profile("claude", "nope", tmp_config)

    def test_get_active_none(self, tmp_config):
        assert get_active_profile("claude", tmp_config) is None

    def test_same_profile_active_for_several_coders(self, tmp_config):
        upsert_profile(_profile("shared"), path=tmp_config)
        set_active_profile("claude", "shared", tmp_config)
        set_active_profile("codex", "shared", tmp_config)
        assert get_active_profile("claude", tmp_config).name == "shared"
        assert get_active_profile("codex", tmp_config).name == "shared"


class TestDelete:
    def test_reassigns_active_pointer(self, tmp_config):
        for name in ("aa", "bb", "cc"):
            upsert_profile(_profile(name), path=tmp_config)
        set_active_profile("claude", "aa", tmp_config)
        set_active_profile("codex", "cc", tmp_config)

        delete_profile("aa", tmp_config)

        config = load_config(tmp_config)
        assert "aa" not in config.profiles
        assert config.active_profile_name("claude") == "bb"
        assert config.active_profile_name("codex") == "cc"

    def test_clears_pointer_when_none_remain(self, tmp_config):
        upsert_profile(_profile("only"), coder="claude", path=tmp_config)
        delete_profile("only", tmp_config)
        assert load_config(tmp_config).active_profile_name("claude") == ""

    def test_delete_unknown_raises(self, tmp_config):
        with pytest.raises(ProfileNotFoundError):
            delete_profile("ghost", tmp_config)

    def test_list_and_exists(self, tmp_config):
        upsert_profile(_profile("aa"), path=tmp_config)
        upsert_profile(_profile("bb"), path=tmp_config)
        assert [p.name for p in list_profiles(tmp_config)] == ["aa", "bb"]
        assert profile_exists("aa", tmp_config)
        delete_profile("aa", tmp_config)
        assert not profile_exists("aa", tmp_config)
