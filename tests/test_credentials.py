"""Tests for the bot token file."""

import json

import pytest

from multibot.exceptions import MissingCredentialError
from multibot.platforms.credentials import TOKEN_PLACEHOLDER, TokenStore

REAL_TOKEN = "real-token-value"


def _make_store(tmp_path, content=None) -> TokenStore:
    path = tmp_path / "DiscordTokens.json"
    if content is not None:
        path.write_text(content if isinstance(content, str) else json.dumps(content))
    return TokenStore(path)


class TestEnsureEntry:

    def test_missing_file_is_created_with_placeholder(self, tmp_path):
        store = _make_store(tmp_path)
        store.ensure_entry("TCHJR")
        assert json.loads(store.path.read_text()) == {"TCHJR": TOKEN_PLACEHOLDER}

    def test_missing_entry_is_added_next_to_existing_ones(self, tmp_path):
        store = _make_store(tmp_path, {"Other": REAL_TOKEN})
        store.ensure_entry("TCHJR")
        assert json.loads(store.path.read_text()) == {
            "Other": REAL_TOKEN,
            "TCHJR": TOKEN_PLACEHOLDER,
        }

    def test_existing_entry_is_untouched(self, tmp_path):
        store = _make_store(tmp_path, {"TCHJR": REAL_TOKEN})
        before = store.path.read_text()
        store.ensure_entry("TCHJR")
        assert store.path.read_text() == before

    def test_malformed_file_is_never_overwritten(self, tmp_path):
        store = _make_store(tmp_path, '{"TCHJR": "half')
        store.ensure_entry("TCHJR")
        assert store.path.read_text() == '{"TCHJR": "half'


class TestRequire:

    def test_returns_real_token(self, tmp_path):
        store = _make_store(tmp_path, {"TCHJR": REAL_TOKEN})
        assert store.require("TCHJR") == REAL_TOKEN

    def test_surrounding_whitespace_is_stripped(self, tmp_path):
        store = _make_store(tmp_path, {"TCHJR": f"  {REAL_TOKEN}\n"})
        assert store.require("TCHJR") == REAL_TOKEN

    @pytest.mark.parametrize("content", [
        None,
        {"TCHJR": TOKEN_PLACEHOLDER},
        {"TCHJR": ""},
        {"TCHJR": "   "},
        {"Other": REAL_TOKEN},
        {"TCHJR": 12345},
        "[1, 2, 3]",
        "not json",
    ])
    def test_unusable_token_raises(self, tmp_path, content):
        store = _make_store(tmp_path, content)
        with pytest.raises(MissingCredentialError) as exc_info:
            store.require("TCHJR")
        assert exc_info.value.bot == "TCHJR"
        assert exc_info.value.platform == "discord"

    def test_error_names_the_file(self, tmp_path):
        store = _make_store(tmp_path)
        with pytest.raises(MissingCredentialError) as exc_info:
            store.require("TCHJR")
        assert str(store.path) in str(exc_info.value)

    def test_get_missing_bot_is_empty(self, tmp_path):
        store = _make_store(tmp_path, {"Other": REAL_TOKEN})
        assert store.get("TCHJR") == ""
