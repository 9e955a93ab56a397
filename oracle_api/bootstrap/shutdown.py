# oracle_api/bootstrap/shutdown.py
import asyncio
import enum
import logging
import os
import signal
import sys
import threading
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


class ShutdownState(str, enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


def terminate_process(status: int) -> None:
    """Flush logs and end the process immediately with `status`."""
    logging.shutdown()
    os._exit(status)


class ShutdownCoordinator:
    """
    Graceful shutdown driven by SIGINT, SIGTERM or an uncaught error.

    The first trigger moves RUNNING -> DRAINING and starts the drain; later
    triggers are ignored. If the drain finishes inside the grace period the
    process exits with 0, otherwise it is forced out with 1 at the deadline.
    """

    def __init__(
        self,
        drain: Callable[[], Awaitable[None]],
        grace_period: float = DEFAULT_GRACE_PERIOD,
        exit_func: Callable[[int], None] = terminate_process,
    ):
        self._drain = drain
        self.grace_period = grace_period
        self._exit = exit_func
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.state = ShutdownState.RUNNING
        self.reason: Optional[str] = None
        self.exit_status: Optional[int] = None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Hook termination signals and uncaught-error paths into `loop`."""
        self._loop = loop
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.trigger, sig.name)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: self.trigger(signal.Signals(signum).name))
        loop.set_exception_handler(self._handle_loop_exception)
        sys.excepthook = self._handle_uncaught_exception
        threading.excepthook = self._handle_thread_exception

    def uninstall(self) -> None:
        """Restore default signal handling and error hooks."""
        if self._loop is not None and not self._loop.is_closed():
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    self._loop.remove_signal_handler(sig)
                except NotImplementedError:
                    signal.signal(sig, signal.SIG_DFL if sig is signal.SIGTERM else signal.default_int_handler)
            self._loop.set_exception_handler(None)
        sys.excepthook = sys.__excepthook__
        threading.excepthook = threading.__excepthook__

    def trigger(self, reason: str) -> bool:
        """
        Start shutting down. Safe from signal handlers and other threads.

        Returns:
            True if this call started the shutdown, False if one was already under way.
        """
        with self._lock:
            if self.state is not ShutdownState.RUNNING:
                logger.info(f"Shutdown already in progress, ignoring {reason}")
                return False
            self.state = ShutdownState.DRAINING
            self.reason = reason

        logger.info(f"Caught {reason}. Shutting down gracefully...")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        loop = self._loop = self._loop or running
        if loop is None or loop.is_closed() or not loop.is_running():
            # Nothing left to drain from
            logger.error("Event loop is not running, exiting without drain")
            self._finish(1)
            return True

        if running is loop:
            self._start_drain()
        else:
            loop.call_soon_threadsafe(self._start_drain)
        return True

    async def wait(self) -> Optional[int]:
        """Wait until the shutdown sequence has finished and return the exit status."""
        await self._done.wait()
        return self.exit_status

    def _start_drain(self) -> None:
        self._task = self._loop.create_task(self._run_shutdown())

    async def _run_shutdown(self) -> None:
        try:
            await asyncio.wait_for(self._drain(), timeout=self.grace_period)
        except asyncio.TimeoutError:
            logger.error("Force exiting after timeout", extra={"grace_period": self.grace_period})
            status = 1
        except Exception:
            logger.exception("Error while draining server")
            status = 1
        else:
            logger.info("Server closed. Port released.")
            status = 0
        self._finish(status)

    def _finish(self, status: int) -> None:
        with self._lock:
            self.state = ShutdownState.TERMINATED
            self.exit_status = status
        self._done.set()
        self._exit(status)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.error(
            f"Uncaught Exception: {context.get('message')}",
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )
        self.trigger("uncaughtException")

    def _handle_uncaught_exception(self, exc_type, exc, tb) -> None:
        logger.error("Uncaught Exception", exc_info=(exc_type, exc, tb))
        self.trigger("uncaughtException")

    def _handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        logger.error(
            f"Uncaught Exception in thread {getattr(args.thread, 'name', '?')}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        self.trigger("uncaughtException")
