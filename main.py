# /main.py
# Boots the estimation service: settings, validation, wiring, HTTP server.
import asyncio

import click
import uvicorn
from pydantic import SecretStr

from gastimator.core.api import build_app
from gastimator.core.config import settings
from gastimator.core.config_validator import validate as validate_config
from gastimator.core.gastimator import Gastimator
from gastimator.core.logger import configure_logging, get_logger


async def main():
    configure_logging()
    log = get_logger("Gastimator.System")
    validate_config()
    log.info("GASTIMATOR_STARTING", host=settings.HOST, port=settings.PORT)

    gastimator = Gastimator.from_settings(settings)
    app = build_app(gastimator)

    server = uvicorn.Server(uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_config=None))
    log.info("SERVER_STARTED", host=settings.HOST, port=settings.PORT)
    await server.serve()

    log.warning("SYSTEM_SHUTDOWN_COMPLETE")


@click.command()
@click.option("-a", "--address", default=None, help="Address to bind to. [default: 0.0.0.0]")
@click.option("-p", "--port", type=int, default=None, help="Port to listen on. [default: 3000]")
@click.option("-k", "--key", default=None, help="Alchemy API key, falls back to ALCHEMY_API_KEY.")
def cli(address, port, key):
    """Dual-source gas estimation service."""
    if address is not None:
        settings.HOST = address
    if port is not None:
        settings.PORT = port
    if key:
        settings.ALCHEMY_API_KEY = SecretStr(key)
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
