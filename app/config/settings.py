from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "contract_analysis"
    db_username: str = "contract_analysis"
    db_password: str = "secret"

    blob_root: str = "/app/files"
    max_contract_bytes: int = 10 * 1024 * 1024
    max_data_bytes: int = 50 * 1024 * 1024

    stale_processing_seconds: int = 900
    poll_interval_seconds: float = 2.0
    poll_max_attempts: int = 30

    processing_provider: str = "http"

    processing_http_base_url: str = "http://localhost:8081/api"
    processing_http_username: str = ""
    processing_http_password: str = ""
    processing_http_timeout_seconds: int = 30

    processing_openai_api_key: str = ""
    processing_openai_model_name: str = ""
    processing_openai_timeout_seconds: int = 60
    processing_openai_temperature: float = 0.0

    processing_openai_compatible_api_key: str = ""
    processing_openai_compatible_model_name: str = ""
    processing_openai_compatible_base_url: str = ""
    processing_openai_compatible_timeout_seconds: int = 60

    processing_openrouter_api_key: str = ""
    processing_openrouter_model_name: str = ""
    processing_openrouter_timeout_seconds: int = 60

    processing_ollama_api_key: str = ""
    processing_ollama_model_name: str = ""
    processing_ollama_timeout_seconds: int = 120
