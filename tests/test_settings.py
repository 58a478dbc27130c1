from __future__ import annotations

import json

from h5phub.config import runtime_paths
from h5phub.config.settings import (
    DEFAULT_ENDPOINT_URL_BASE,
    HubSettings,
    default_settings_path,
    load_settings,
    save_settings,
    update_settings,
)


def test_defaults(tmp_path):
    settings = load_settings(tmp_path / "missing.json")
    assert settings.endpoint_url_base == DEFAULT_ENDPOINT_URL_BASE
    assert settings.update_schedule == "never"
    assert settings.state_dir == runtime_paths.data_dir("host")
    assert settings.lock_path.name == "sync.lock"


def test_endpoint_and_schedule_are_sanitized():
    settings = HubSettings(endpoint_url_base="  hub.example.test/v2/  ", update_schedule="Hourly")
    assert settings.endpoint_url_base == "hub.example.test/v2"
    assert settings.update_schedule == "never"
    assert HubSettings(endpoint_url_base="").endpoint_url_base == DEFAULT_ENDPOINT_URL_BASE
    assert HubSettings(update_schedule="WEEKLY").update_schedule == "weekly"


def test_environment_is_read(monkeypatch, tmp_path):
    monkeypatch.setenv("H5PHUB_ENDPOINT_URL_BASE", "env.example.test/v1")
    monkeypatch.setenv("H5PHUB_STATE_DIR", str(tmp_path / "state"))
    settings = load_settings(tmp_path / "missing.json")
    assert settings.endpoint_url_base == "env.example.test/v1"
    assert settings.state_dir == tmp_path / "state"


def test_file_wins_over_environment(monkeypatch, tmp_path):
    path = tmp_path / "h5phub.json"
    path.write_text(json.dumps({"endpoint_url_base": "file.example.test/v1"}), encoding="utf-8")
    monkeypatch.setenv("H5PHUB_ENDPOINT_URL_BASE", "env.example.test/v1")
    assert load_settings(path).endpoint_url_base == "file.example.test/v1"


def test_unreadable_file_is_ignored(tmp_path):
    path = tmp_path / "h5phub.json"
    path.write_text("{broken", encoding="utf-8")
    assert load_settings(path).endpoint_url_base == DEFAULT_ENDPOINT_URL_BASE


def test_save_keeps_foreign_keys(tmp_path):
    path = tmp_path / "h5phub.json"
    path.write_text(json.dumps({"note": "kept"}), encoding="utf-8")
    save_settings(HubSettings(update_schedule="daily"), path)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {
        "endpoint_url_base": DEFAULT_ENDPOINT_URL_BASE,
        "note": "kept",
        "update_schedule": "daily",
    }


def test_update_reports_changes(tmp_path):
    path = tmp_path / "h5phub.json"
    change = update_settings(path, endpoint_url_base="other.example.test/v1/")
    assert change.endpoint_changed
    assert not change.schedule_changed
    assert change.new.endpoint_url_base == "other.example.test/v1"

    again = update_settings(path, endpoint_url_base="other.example.test/v1", update_schedule="weekly")
    assert not again.endpoint_changed
    assert again.schedule_changed
    assert load_settings(path).update_schedule == "weekly"


def test_default_path_lives_in_config_dir():
    path = default_settings_path()
    assert path.name == "h5phub.json"
    assert path.parent == runtime_paths.config_dir()
