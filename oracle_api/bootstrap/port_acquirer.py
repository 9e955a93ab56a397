# oracle_api/bootstrap/port_acquirer.py
import logging
import os
import socket
from typing import Callable

import psutil
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from oracle_api.bootstrap.context import BootstrapContext
from oracle_api.exceptions import PortUnavailableError

logger = logging.getLogger(__name__)

MAX_PORT = 65535
KILL_WAIT_SECONDS = 3.0
LISTEN_BACKLOG = 2048


def free_port(port: int) -> None:
    """
    Kill every other process listening on `port` over TCP.

    Raises psutil.AccessDenied if a holder cannot be killed; the caller
    treats that like any other failure on this port.
    """
    try:
        connections = psutil.net_connections(kind="tcp")
    except psutil.AccessDenied:
        # Some platforms only list sockets for root; the bind attempt still tells us if the port is busy
        logger.warning(f"Not allowed to list sockets, skipping kill for port {port}")
        return

    own_pid = os.getpid()
    holders = {
        conn.pid
        for conn in connections
        if conn.laddr and conn.laddr.port == port
        and conn.status == psutil.CONN_LISTEN
        and conn.pid and conn.pid != own_pid
    }
    if not holders:
        return

    procs = []
    for pid in holders:
        try:
            proc = psutil.Process(pid)
            logger.info(f"Killing process {pid} ({proc.name()}) holding port {port}")
            proc.kill()
            procs.append(proc)
        except psutil.NoSuchProcess:
            continue
    _, alive = psutil.wait_procs(procs, timeout=KILL_WAIT_SECONDS)
    if alive:
        raise OSError(f"Processes {[p.pid for p in alive]} still hold port {port}")


def bind_listener(host: str, port: int) -> socket.socket:
    """Create a listening TCP socket on host:port."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(LISTEN_BACKLOG)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class PortAcquirer:
    """
    Frees and binds a TCP port, moving on to the next port after any failure.

    Attempts are bounded by `max_attempts` and by the end of the port range.
    The port finally bound may differ from the one requested; it is written
    to the BootstrapContext and returned.
    """

    def __init__(
        self,
        max_attempts: int = 10,
        free: Callable[[int], None] = free_port,
        bind: Callable[[str, int], socket.socket] = bind_listener,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._free = free
        self._bind = bind

    def acquire(self, context: BootstrapContext) -> int:
        initial_port = context.requested_port
        attempts = min(self.max_attempts, MAX_PORT - initial_port + 1)
        if attempts < 1:
            raise PortUnavailableError(initial_port, 0)

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(Exception),
            after=self._log_failed_attempt(initial_port),
        )
        try:
            for attempt in retrying:
                with attempt:
                    port = initial_port + attempt.retry_state.attempt_number - 1
                    self._free(port)
                    sock = self._bind(context.host, port)
        except RetryError as e:
            raise PortUnavailableError(initial_port, attempts) from e.last_attempt.exception()

        logger.info(f"Port {port} free. Starting fresh server...")
        context.bind(sock, port)
        return port

    @staticmethod
    def _log_failed_attempt(initial_port: int) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            port = initial_port + retry_state.attempt_number - 1
            logger.warning(
                f"Port {port} in use, trying next port",
                extra={"port": port, "error": repr(retry_state.outcome.exception())},
            )
        return log
