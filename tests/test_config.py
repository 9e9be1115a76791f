"""Tests for configuration loading and saving."""

import json
from pathlib import Path

import pytest

from treefs import config as config_module
from treefs.config import (
    TreeFSConfig,
    get_config_path,
    load_config,
    save_config,
    update_config,
)


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the home directory at a temporary folder."""
    monkeypatch.setattr(config_module.Path, "home", classmethod(lambda cls: tmp_path))
    return tmp_path


def test_config_path_falls_back_to_dot_folder(home):
    assert get_config_path() == home / ".treefs" / "config.json"


def test_config_path_uses_xdg_folder(home):
    (home / ".config").mkdir()

    assert get_config_path() == home / ".config" / "treefs" / "config.json"


def test_defaults_when_missing(home):
    config = load_config()

    assert config.shell.confirm_removals is True
    assert config.host.mirror_enabled is False
    assert config.resolver.max_symlink_hops == 8


def test_save_and_load_round_trip(home):
    config = TreeFSConfig()
    config.persistence.compress = True
    config.host.mirror_root = "/tmp/mirror"

    path = save_config(config)
    loaded = load_config()

    assert path.exists()
    assert loaded.persistence.compress is True
    assert loaded.host.mirror_root == "/tmp/mirror"


def test_partial_file_keeps_defaults(home):
    path = get_config_path()
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"resolver": {"max_symlink_hops": 3}}))

    config = load_config()

    assert config.resolver.max_symlink_hops == 3
    assert config.shell.color is True


def test_bad_file_falls_back_to_defaults(home, caplog):
    path = get_config_path()
    path.parent.mkdir(parents=True)
    path.write_text("{not json")

    config = load_config()

    assert config.to_dict() == TreeFSConfig().to_dict()
    assert "Failed to load config" in caplog.text


def test_unknown_keys_fall_back_to_defaults(home):
    path = get_config_path()
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"shell": {"colour": False}}))

    assert load_config().shell.color is True


def test_update_only_changes_given_values(home):
    update_config(shell_color=False)
    config = update_config(resolver_max_symlink_hops=12)

    assert config.shell.color is False
    assert config.resolver.max_symlink_hops == 12
    assert config.shell.confirm_removals is True
    assert json.loads(get_config_path().read_text())["shell"]["color"] is False


def test_to_dict_sections():
    assert set(TreeFSConfig().to_dict()) == {"shell", "host", "persistence", "resolver"}
