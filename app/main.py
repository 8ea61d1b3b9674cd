import uvicorn

from app.api.main import create_app
from app.config.settings import Settings


def main() -> None:
    """Entry point: build the app -> serve it with uvicorn."""
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
