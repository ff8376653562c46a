"""Tests for configuration loading."""

import pytest

from votelog.config import Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop any VOTELOG_ variables from the outer environment."""
    for key in (
        "STORE_BACKEND",
        "REDIS_URL",
        "SQLITE_PATH",
        "HOST",
        "PORT",
        "IMPORT_ON_ERROR",
        "LOG_LEVEL",
        "JSON_LOGS",
    ):
        monkeypatch.delenv(f"VOTELOG_{key}", raising=False)


class TestDefaults:
    def test_no_file(self):
        config = load_config(None)

        assert isinstance(config, Config)
        assert config.store.backend == "redis"
        assert config.store.redis_url == "redis://localhost:6379/0"
        assert config.server.port == 8080
        assert config.importer.on_error == "abort"
        assert config.importer.progress_every == 100000

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config.store.backend == "redis"


class TestYamlFile:
    def test_sections(self, tmp_path):
        path = tmp_path / "votelog.yaml"
        path.write_text(
            "store:\n"
            "  backend: sqlite\n"
            "  sqlite_path: /tmp/votes.db\n"
            "server:\n"
            "  port: 9090\n"
            "importer:\n"
            "  on_error: skip\n"
            "logging:\n"
            "  json: true\n"
        )

        config = load_config(path)

        assert config.store.backend == "sqlite"
        assert config.store.sqlite_path == "/tmp/votes.db"
        assert config.store.redis_url == "redis://localhost:6379/0"
        assert config.server.port == 9090
        assert config.server.host == "0.0.0.0"
        assert config.importer.on_error == "skip"
        assert config.logging.json is True

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path).store.backend == "redis"

    def test_unknown_backend(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("store:\n  backend: etcd\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_unknown_policy(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("importer:\n  on_error: ignore\n")

        with pytest.raises(ValueError):
            load_config(path)


class TestEnvOverrides:
    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "votelog.yaml"
        path.write_text("server:\n  port: 9090\n")
        monkeypatch.setenv("VOTELOG_PORT", "7000")
        monkeypatch.setenv("VOTELOG_REDIS_URL", "redis://cache:6379/1")
        monkeypatch.setenv("VOTELOG_JSON_LOGS", "yes")

        config = load_config(path)

        assert config.server.port == 7000
        assert config.store.redis_url == "redis://cache:6379/1"
        assert config.logging.json is True

    def test_env_backend(self, monkeypatch):
        monkeypatch.setenv("VOTELOG_STORE_BACKEND", "memory")
        monkeypatch.setenv("VOTELOG_IMPORT_ON_ERROR", "skip")

        config = load_config()

        assert config.store.backend == "memory"
        assert config.importer.on_error == "skip"
