"""Main entry point - runs the API server."""

import logging

import uvicorn

from crossswap.api.app import create_app
from crossswap.config import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    log_level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Request lines from the HTTP client are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting CrossSwap...")
    logger.info(f"Environment: {settings.environment}")
    if settings.dry_run or not settings.oneinch_api_key:
        logger.warning("ONEINCH_API_KEY not set or DRY_RUN enabled - using simulated providers")

    app = create_app()
    logger.info(f"Starting API server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
