"""Run the IMAP bridge API server."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from loguru import logger

from imapbridge.api.main import create_app
from imapbridge.infrastructure import Settings, configure_logging, get_settings


class GatewayService:
    """Owns the listen configuration and the FastAPI app for one server process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._app: FastAPI | None = None

    @property
    def app(self) -> FastAPI:
        if self._app is None:
            self._app = create_app(self.settings)
        return self._app

    def run(self) -> None:
        logger.info(f"Server running on {self.settings.api_host}:{self.settings.port}")
        uvicorn.run(
            self.app,
            host=self.settings.api_host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
            access_log=False,
        )


def main() -> int:
    """Entry point for ``imapbridge-serve``."""
    settings = get_settings()
    configure_logging(settings.log_level)
    GatewayService(settings).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
