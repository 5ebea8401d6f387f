"""Tests for process settings loading."""

import os

import pytest

from multibot.config import Settings


def _make_settings(tmp_path, yaml_text="") -> Settings:
    if yaml_text:
        (tmp_path / "settings.yaml").write_text(yaml_text)
    return Settings(tmp_path)


class TestDefaults:

    def test_paths_default_under_base_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MULTIBOT_CONFIG_ROOT", raising=False)
        settings = _make_settings(tmp_path)
        assert settings.config_root == tmp_path / "Config"
        assert settings.token_file == tmp_path / "DiscordTokens.json"
        assert settings.resources_dir == tmp_path / "Resources"
        assert settings.log_dir == tmp_path / "logs"

    def test_runtime_defaults(self, tmp_path):
        settings = _make_settings(tmp_path)
        assert settings.text_prefixes == ["!"]
        assert settings.config_reload_debounce == 0.5
        assert settings.response_timeout == 30.0
        assert settings.enabled_bots is None
        assert settings.logging_level == "INFO"
        assert settings.logging_subsystem_levels == {}

    def test_empty_yaml_file(self, tmp_path):
        settings = _make_settings(tmp_path, "\n")
        assert settings.settings == {}


class TestOverrides:

    def test_relative_paths_resolve_against_base_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MULTIBOT_CONFIG_ROOT", raising=False)
        settings = _make_settings(tmp_path, "config_root: conf\nresources_dir: /srv/res\n")
        assert settings.config_root == tmp_path / "conf"
        assert str(settings.resources_dir) == "/srv/res"

    def test_env_var_overrides_config_root(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MULTIBOT_CONFIG_ROOT", str(tmp_path / "from-env"))
        settings = _make_settings(tmp_path, "config_root: conf\n")
        assert settings.config_root == tmp_path / "from-env"

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MULTIBOT_CONFIG_ROOT", raising=False)
        (tmp_path / ".env").write_text(f"MULTIBOT_CONFIG_ROOT={tmp_path / 'dotenv-root'}\n")
        try:
            settings = _make_settings(tmp_path)
            assert settings.config_root == tmp_path / "dotenv-root"
        finally:
            os.environ.pop("MULTIBOT_CONFIG_ROOT", None)

    def test_runtime_values(self, tmp_path):
        settings = _make_settings(
            tmp_path,
            "text_prefixes: ['!', '?']\n"
            "config_reload_debounce: 0.1\n"
            "response_timeout: 5\n"
            "bots: [TCHJR]\n"
            "logging:\n  level: DEBUG\n  subsystem_levels:\n    config: WARNING\n",
        )
        assert settings.text_prefixes == ["!", "?"]
        assert settings.config_reload_debounce == 0.1
        assert settings.response_timeout == 5.0
        assert settings.enabled_bots == ["TCHJR"]
        assert settings.logging_level == "DEBUG"
        assert settings.logging_subsystem_levels == {"config": "WARNING"}


class TestInvalidValues:

    @pytest.mark.parametrize("yaml_text,expected", [
        ("text_prefixes: '!'\n", ["!"]),
        ("text_prefixes: ['!!', ' ', 3]\n", ["!"]),
        ("text_prefixes: ['!!', '$']\n", ["$"]),
    ])
    def test_bad_prefixes_fall_back(self, tmp_path, yaml_text, expected):
        assert _make_settings(tmp_path, yaml_text).text_prefixes == expected

    @pytest.mark.parametrize("yaml_text", [
        "config_reload_debounce: -1\nresponse_timeout: 0\n",
        "config_reload_debounce: soon\nresponse_timeout: never\n",
    ])
    def test_bad_numbers_fall_back(self, tmp_path, yaml_text):
        settings = _make_settings(tmp_path, yaml_text)
        assert settings.config_reload_debounce == 0.5
        assert settings.response_timeout == 30.0

    def test_bots_not_a_list_means_all(self, tmp_path):
        assert _make_settings(tmp_path, "bots: TCHJR\n").enabled_bots is None

    def test_validate_never_raises(self, tmp_path):
        settings = _make_settings(
            tmp_path,
            "text_prefixes: [1, '  ']\nconfig_reload_debounce: -3\nresponse_timeout: x\n",
        )
        settings.validate()
