"""CLI entry point for launching the addon API with Uvicorn."""
import logging

import uvicorn

from .app import create_app
from .settings import AddonSettings


def configure_logging(level: str) -> None:
    """Configure root logging once for the server process."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(asctime)s %(name)s: %(message)s",
    )


def main() -> None:
    """Start the addon server on the configured host and port."""

    settings = AddonSettings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logging.getLogger(__name__).info(
        "Addon manifest available at: http://localhost:%d/manifest.json", settings.port
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
