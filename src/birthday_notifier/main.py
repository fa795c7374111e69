"""Service entrypoint: HTTP server, birthday scheduler and Telegram updates."""

import asyncio
import logging
import sys

import uvicorn

from birthday_notifier.api.app import create_app
from birthday_notifier.app_logging import configure_logging
from birthday_notifier.config import Settings
from birthday_notifier.containers import AppContainer, build_container
from birthday_notifier.domain.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


async def run_background(container: AppContainer, stop: asyncio.Event) -> None:
    """Run the scheduler and, without a webhook, the update poller."""
    async with asyncio.TaskGroup() as group:
        group.create_task(container.scheduler.run(stop))
        if not container.settings.telegram_webhook_url:
            group.create_task(container.update_loop.run(stop))


async def serve(container: AppContainer, stop: asyncio.Event | None = None) -> None:
    """Serve HTTP and the background loops until one of them asks to stop."""
    stop_event = stop or asyncio.Event()
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(container),
            host=container.settings.http_host,
            port=container.settings.http_port,
            log_config=None,
        )
    )

    async def serve_http() -> None:
        try:
            await server.serve()
        finally:
            stop_event.set()

    async def stop_http() -> None:
        await stop_event.wait()
        server.should_exit = True

    async with asyncio.TaskGroup() as group:
        group.create_task(serve_http())
        group.create_task(stop_http())
        group.create_task(run_background(container, stop_event))
    logger.info("Shutdown complete")


async def run(settings: Settings | None = None) -> int:
    """Build dependencies, verify the stores, and serve."""
    configure_logging()
    container = await build_container(settings)
    try:
        try:
            await container.check_resources()
        except StoreUnavailableError:
            logger.exception("Backing stores are unreachable, not starting")
            return 1
        await serve(container)
    finally:
        await container.close_resources()
    return 0


def main() -> None:
    """Console entrypoint."""
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
