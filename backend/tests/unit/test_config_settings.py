"""Unit tests for application settings configuration."""

import json
from pathlib import Path

from recordsync.config import Settings


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized


def test_watcher_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = Settings(_env_file=None)

    assert settings.watcher_poll_interval_seconds == 3.0
    assert settings.cache_significant_threshold == 100
    assert settings.preload_batch_size == 10
    assert settings.preload_pause_ms == 100
    assert settings.watcher_emit_initial_snapshot is False


def test_runtime_overrides_are_merged(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "settings.json").write_text(
        json.dumps({"watcher_poll_interval_seconds": 7, "db_schema": "qa_env", "app_title": "x"}),
        encoding="utf-8",
    )

    settings = Settings(_env_file=None)

    assert settings.watcher_poll_interval_seconds == 7.0
    assert settings.db_schema == "qa_env"
    assert settings.app_title == "Test Automation Sync API"


def test_corrupt_overrides_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "settings.json").write_text("{not json", encoding="utf-8")

    settings = Settings(_env_file=None)

    assert settings.watcher_poll_interval_seconds == 3.0
