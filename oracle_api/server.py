# oracle_api/server.py
import asyncio
import contextlib
import logging
import sys
from typing import Callable, Optional

import uvicorn

from oracle_api.bootstrap.context import BootstrapContext
from oracle_api.bootstrap.port_acquirer import PortAcquirer
from oracle_api.bootstrap.shutdown import ShutdownCoordinator, ShutdownState, terminate_process
from oracle_api.config.base import AppSettings, get_settings
from oracle_api.exceptions import PortUnavailableError
from oracle_api.main import create_app
from oracle_api.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


class ApiServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the ShutdownCoordinator."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


async def serve(
    context: BootstrapContext,
    settings: AppSettings,
    exit_func: Callable[[int], None] = terminate_process,
) -> Optional[int]:
    """Run the API on the already-bound socket until the coordinator shuts it down."""
    # No uvicorn graceful timeout; the coordinator enforces the grace deadline
    config = uvicorn.Config(create_app(settings), log_config=None)
    server = ApiServer(config)
    context.server = server
    serve_task = asyncio.create_task(server.serve(sockets=[context.socket]))

    async def drain() -> None:
        server.should_exit = True
        try:
            await serve_task
        finally:
            context.close()

    coordinator = ShutdownCoordinator(
        drain, grace_period=settings.SHUTDOWN_GRACE_SECONDS, exit_func=exit_func
    )
    coordinator.install(asyncio.get_running_loop())
    logger.info(f"Backend running on http://localhost:{context.port}")

    try:
        try:
            await asyncio.shield(serve_task)
        except asyncio.CancelledError:
            # Forced exit: the grace deadline cancelled the drain and uvicorn with it
            if not serve_task.cancelled() or coordinator.state is ShutdownState.RUNNING:
                raise
        except Exception:
            logger.exception("Server stopped with an error")
            coordinator.trigger("uncaughtException")
        if coordinator.state is ShutdownState.RUNNING:
            # uvicorn stopped by itself, e.g. lifespan startup failed
            logger.error("Server exited without a shutdown request")
            context.close()
            return 1
        return await coordinator.wait()
    finally:
        coordinator.uninstall()


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    context = BootstrapContext(host=settings.HOST, requested_port=settings.PORT)
    try:
        PortAcquirer(max_attempts=settings.PORT_MAX_ATTEMPTS).acquire(context)
    except PortUnavailableError as e:
        logger.error(str(e))
        sys.exit(1)

    if context.port != settings.PORT:
        logger.warning(f"Requested port {settings.PORT} unavailable, bound {context.port} instead")

    status = asyncio.run(serve(context, settings))
    sys.exit(status or 0)


if __name__ == "__main__":
    main()
