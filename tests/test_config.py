"""
Unit tests for settings loading.
"""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from ttsbundle.config import CONFIG_FILE, Settings, load_settings
from ttsbundle.errors import ConfigError


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """An empty working directory with an empty home directory."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self, workspace):
        settings = load_settings()
        assert settings == Settings()
        assert settings.output_dir == ".tts"
        assert settings.include_paths == [os.path.join("~", "Documents", "Tabletop Simulator")]

    def test_workspace_file(self, workspace):
        (workspace / CONFIG_FILE).write_text(json.dumps({"include_paths": ["src", "vendor"]}))
        settings = load_settings()
        assert settings.include_paths == ["src", "vendor"]
        assert settings.output_dir == ".tts"

    def test_user_file(self, workspace, tmp_path):
        user_dir = tmp_path / "home" / ".ttsbundle"
        user_dir.mkdir()
        (user_dir / "config.json").write_text(json.dumps({"output_dir": "scripts"}))
        assert load_settings().output_dir == "scripts"

    def test_workspace_file_wins(self, workspace, tmp_path):
        user_dir = tmp_path / "home" / ".ttsbundle"
        user_dir.mkdir()
        (user_dir / "config.json").write_text(json.dumps({"output_dir": "user"}))
        (workspace / CONFIG_FILE).write_text(json.dumps({"output_dir": "workspace"}))
        assert load_settings().output_dir == "workspace"

    def test_explicit_path(self, workspace):
        path = workspace / "custom.json"
        path.write_text(json.dumps({"encoding": "latin-1"}))
        assert load_settings(str(path)).encoding == "latin-1"

    def test_explicit_path_missing(self, workspace):
        with pytest.raises(ConfigError):
            load_settings("nope.json")

    def test_invalid_json(self, workspace):
        (workspace / CONFIG_FILE).write_text("{ not json")
        with pytest.raises(ConfigError):
            load_settings()

    def test_invalid_field(self, workspace):
        (workspace / CONFIG_FILE).write_text(json.dumps({"include_paths": "src"}))
        with pytest.raises(ConfigError):
            load_settings()

    def test_not_an_object(self, workspace):
        (workspace / CONFIG_FILE).write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_settings()


class TestSearchPaths:
    """Tests for Settings.search_paths()."""

    def test_relative_paths_anchor_at_workspace(self, tmp_path):
        settings = Settings(include_paths=["src", "../shared"])
        root = str(tmp_path / "project")
        assert settings.search_paths(root) == [
            os.path.join(root, "src"),
            os.path.join(str(tmp_path), "shared"),
        ]

    def test_home_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        settings = Settings(include_paths=["~/lib"])
        assert settings.search_paths("/anywhere") == [os.path.join(str(tmp_path), "lib")]
