"""
Unit Tests for Settings
"""
import pytest

from app.core.config import Settings, parse_cors_origins


class TestCorsOrigins:

    @pytest.mark.parametrize("value,expected", [
        ("*", ["*"]),
        ("http://a.com, http://b.com", ["http://a.com", "http://b.com"]),
        ('["http://a.com", "http://b.com"]', ["http://a.com", "http://b.com"]),
        ("", []),
        (["http://a.com"], ["http://a.com"]),
        (None, []),
    ])
    def test_parse(self, value, expected):
        assert parse_cors_origins(value) == expected


class TestSettings:

    def test_defaults(self, tmp_path):
        settings = Settings(
            PROJECTS_ROOT=str(tmp_path / "repos"),
            SCRIPT_TEMP_DIR=str(tmp_path / "scripts"),
            LOG_FILE=str(tmp_path / "logs" / "app.log"),
        )

        assert settings.SERVER_PORT == 1234
        assert settings.COMMAND_TIMEOUT_MS == 5000
        assert settings.SCRIPT_TIMEOUT_MS == 5000
        assert settings.is_production is False

    def test_creates_working_directories(self, tmp_path):
        settings = Settings(
            PROJECTS_ROOT=str(tmp_path / "repos"),
            SCRIPT_TEMP_DIR=str(tmp_path / "scripts"),
            LOG_FILE=str(tmp_path / "logs" / "app.log"),
        )

        assert settings.PROJECTS_DIR.is_dir()
        assert settings.SCRIPT_DIR.is_dir()
        assert (tmp_path / "logs").is_dir()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("COMMAND_TIMEOUT_MS", "250")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("CORS_ORIGINS_STR", "https://editor.example.com")

        settings = Settings(
            PROJECTS_ROOT=str(tmp_path / "repos"),
            SCRIPT_TEMP_DIR=str(tmp_path / "scripts"),
            LOG_FILE=str(tmp_path / "logs" / "app.log"),
        )

        assert settings.COMMAND_TIMEOUT_MS == 250
        assert settings.is_production is True
        assert settings.CORS_ORIGINS == ["https://editor.example.com"]
