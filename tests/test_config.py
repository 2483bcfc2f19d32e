"""Tests for the config module."""
import json

import pytest

from streak_guard.config import (
    get_is_pro,
    get_max_shields,
    load_config,
    save_config,
    set_max_shields,
    set_pro,
)


class TestLoadConfig:
    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(tmp_path / "nonexistent.json") == {}

    def test_invalid_json_returns_empty(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")
        assert load_config(path) == {}

    def test_non_object_returns_empty(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == {}

    def test_loads_valid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"key": "value"}', encoding="utf-8")
        assert load_config(path) == {"key": "value"}


class TestSaveConfig:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "sub" / "dir" / "config.json"
        save_config({"nested": True}, path)
        assert json.loads(path.read_text()) == {"nested": True}


class TestSettings:
    def test_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        assert get_is_pro(path) is False
        assert get_max_shields(path) == 3

    def test_set_pro(self, tmp_path):
        path = tmp_path / "config.json"
        set_pro(True, path)
        assert get_is_pro(path) is True
        set_pro(False, path)
        assert get_is_pro(path) is False

    def test_truthy_string_is_not_pro(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"is_pro": "yes"}, path)
        assert get_is_pro(path) is False

    def test_set_max_shields(self, tmp_path):
        path = tmp_path / "config.json"
        set_max_shields(5, path)
        assert get_max_shields(path) == 5

    def test_bad_max_shields_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"max_shields": -2}, path)
        assert get_max_shields(path) == 3
        save_config({"max_shields": "lots"}, path)
        assert get_max_shields(path) == 3

    def test_negative_max_shields_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            set_max_shields(-1, tmp_path / "config.json")

    def test_preserves_other_keys(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"other_key": "keep_me"}, path)
        set_pro(True, path)
        assert load_config(path)["other_key"] == "keep_me"
