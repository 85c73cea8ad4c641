"""
Tests for config loading, saving and migration.
"""

import json

from todoist_cli.config import DEFAULT_BASE_URL, LEGACY_BASE_URL, Config, load_config, save_config


def test_defaults_when_missing(config_dir):
    config = load_config()
    assert config.token is None
    assert config.base_url == DEFAULT_BASE_URL
    assert config.default_format == "table"
    assert config.color is True
    assert config.path == config_dir / "config.json"


def test_round_trip(tmp_path):
    config = Config(token="abc", color=False, default_format="json", config_dir=tmp_path)
    save_config(config)

    loaded = load_config(tmp_path)

    assert loaded == config
    assert json.loads(config.path.read_text())["auth"]["token"] == "abc"


def test_malformed_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text("{broken")

    config = load_config(tmp_path)

    assert config == Config(config_dir=tmp_path)


def test_legacy_base_url_is_upgraded_and_saved(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({
        "auth": {"token": "abc"},
        "api": {"base_url": LEGACY_BASE_URL},
    }))

    config = load_config(tmp_path)

    assert config.base_url == DEFAULT_BASE_URL
    assert config.token == "abc"
    stored = json.loads((tmp_path / "config.json").read_text())
    assert stored["api"]["base_url"] == DEFAULT_BASE_URL


def test_color_false_is_respected(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"output": {"color": False}}))
    assert load_config(tmp_path).color is False


def test_snapshot_path_lives_in_config_dir(tmp_path):
    assert Config(config_dir=tmp_path).snapshot_path == tmp_path / "tasks-snapshot.json"
