"""Tests for persisted connection settings."""
import json

import pytest

from src.words_bridge.settings_store import ConnectionSettings, SettingsStore


@pytest.fixture()
def store(tmp_path):
    defaults = ConnectionSettings(host="127.0.0.1", port=1025)
    return SettingsStore(defaults, path=tmp_path / "cfg" / "settings.json")


def test_missing_file_returns_defaults(store):
    settings = store.load()
    assert settings == ConnectionSettings(host="127.0.0.1", port=1025)
    assert settings is not store.defaults


def test_save_and_load_round_trip(store):
    saved = ConnectionSettings(host="pp.local", port=50001, export_format="pptx", last_playlist_id="abc")
    assert store.save(saved) is True
    assert store.load() == saved


def test_corrupt_file_returns_defaults(store):
    store.settings_path.parent.mkdir(parents=True)
    store.settings_path.write_text("{broken", encoding="utf-8")
    assert store.load().host == "127.0.0.1"


def test_bad_values_fall_back_per_field(store):
    store.settings_path.parent.mkdir(parents=True)
    store.settings_path.write_text(
        json.dumps({"host": "  ", "port": 99999, "export_format": 5, "last_playlist_id": 7}),
        encoding="utf-8",
    )
    settings = store.load()
    assert settings.host == "127.0.0.1"
    assert settings.port == 1025
    assert settings.export_format == "default"
    assert settings.last_playlist_id is None


def test_update_merges_and_persists(store):
    store.update(host="10.0.0.3")
    updated = store.update(last_playlist_id="xyz", port=None)
    assert updated.host == "10.0.0.3"
    assert updated.port == 1025
    assert updated.last_playlist_id == "xyz"
    assert json.loads(store.settings_path.read_text(encoding="utf-8"))["host"] == "10.0.0.3"


def test_update_rejects_unknown_keys(store):
    with pytest.raises(KeyError):
        store.update(password="nope")


def test_save_failure_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = SettingsStore(ConnectionSettings(host="h", port=1), path=blocker / "settings.json")
    assert store.save(ConnectionSettings(host="x", port=2)) is False


def test_default_path_uses_user_config_dir(monkeypatch, tmp_path):
    monkeypatch.setattr("src.words_bridge.settings_store.user_config_dir", lambda *a: str(tmp_path / "conf"))
    store = SettingsStore(ConnectionSettings(host="h", port=1))
    assert store.settings_path == tmp_path / "conf" / "settings.json"
