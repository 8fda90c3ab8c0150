"""Command line entry point: `a2a-tasks` or `python -m a2a_tasks`."""

import logging

import click
import uvicorn

from a2a_tasks.settings import Settings
from a2a_tasks.transport import create_starlette_app
from a2a_tasks.utilities.logging import configure_logging

logger = logging.getLogger(__name__)


@click.command()
@click.option("--host", default=None, help="Interface to bind (default: A2A_HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: A2A_PORT or 8000)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (default: A2A_LOG_LEVEL or INFO)",
)
@click.option("--max-workers", type=int, default=None, help="Upper bound on concurrently running requests")
def main(host: str | None, port: int | None, log_level: str | None, max_workers: int | None) -> int:
    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "log_level": log_level.upper() if log_level else None,
            "max_workers": max_workers,
        }.items()
        if value is not None
    }
    settings = Settings(**overrides)
    configure_logging(settings.log_level)

    app = create_starlette_app(settings)
    logger.info("Starting task server on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0
