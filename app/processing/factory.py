from typing import ClassVar

from app.config.settings import Settings
from app.processing.base import BaseProcessingAdapter
from app.processing.example_adapter import ExampleProcessingAdapter
from app.processing.http_adapter import HttpProcessingAdapter
from app.processing.openai_adapter import OpenAIProcessingAdapter


class ProcessingAdapterFactory:
    """Creates the configured processing adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseProcessingAdapter:
        """Create a configured adapter from application settings."""
        provider = settings.processing_provider.lower()
        if provider == "example":
            return ExampleProcessingAdapter()
        if provider == "http":
            return HttpProcessingAdapter(
                base_url=settings.processing_http_base_url,
                timeout_seconds=settings.processing_http_timeout_seconds,
                username=settings.processing_http_username,
                password=settings.processing_http_password,
            )
        return OpenAIProcessingAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            model=cls._resolve_model_name(provider, settings),
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            base_url=cls._resolve_base_url(provider, settings),
            temperature=cls._resolve_temperature(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.processing_openai_compatible_base_url.strip()
            if not url:
                raise ValueError(
                    "processing_openai_compatible_base_url is required for "
                    "processing_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "http",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown processing provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.processing_openai_api_key,
            "openai_compatible": settings.processing_openai_compatible_api_key,
            "openrouter": settings.processing_openrouter_api_key,
            "ollama": settings.processing_ollama_api_key or "ollama",
        }
        return key_map.get(provider, "")

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.processing_openai_model_name,
            "openai_compatible": settings.processing_openai_compatible_model_name,
            "openrouter": settings.processing_openrouter_model_name,
            "ollama": settings.processing_ollama_model_name,
        }
        return key_map.get(provider, "")

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        key_map = {
            "openai": settings.processing_openai_timeout_seconds,
            "openai_compatible": settings.processing_openai_compatible_timeout_seconds,
            "openrouter": settings.processing_openrouter_timeout_seconds,
            "ollama": settings.processing_ollama_timeout_seconds,
        }
        return key_map.get(provider, 60) or 60

    @classmethod
    def _resolve_temperature(cls, provider: str, settings: Settings) -> float:
        if provider == "openai":
            return settings.processing_openai_temperature
        return 0.0
