import pytest
from pydantic import ValidationError

from app.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_upload_ceilings(self) -> None:
        s = Settings()
        assert s.max_contract_bytes == 10 * 1024 * 1024
        assert s.max_data_bytes == 50 * 1024 * 1024

    def test_default_stale_window(self) -> None:
        s = Settings()
        assert s.stale_processing_seconds == 900

    def test_default_polling(self) -> None:
        s = Settings()
        assert s.poll_interval_seconds == 2.0
        assert s.poll_max_attempts == 30

    def test_default_processing_provider(self) -> None:
        s = Settings()
        assert s.processing_provider == "http"

    def test_default_processing_http_timeout(self) -> None:
        s = Settings()
        assert s.processing_http_timeout_seconds == 30


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_processing_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROCESSING_PROVIDER", "openai")
        s = Settings()
        assert s.processing_provider == "openai"

    def test_loads_max_data_bytes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_DATA_BYTES", "1024")
        s = Settings()
        assert s.max_data_bytes == 1024


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_stale_window_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STALE_PROCESSING_SECONDS", "abc")
        with pytest.raises(ValidationError):
            Settings()
