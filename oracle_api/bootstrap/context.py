# oracle_api/bootstrap/context.py
import logging
from socket import socket as Socket
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class BootstrapContext:
    """
    Process bootstrap state: where we wanted to listen, where we ended up,
    and the server handle. `port` and `socket` are written once by bind().
    """
    host: str
    requested_port: int
    port: Optional[int] = None
    socket: Optional[Socket] = None
    server: Any = None

    @property
    def is_bound(self) -> bool:
        return self.port is not None

    def bind(self, sock: Socket, port: int) -> None:
        if self.is_bound:
            raise RuntimeError(f"Bootstrap context already bound to port {self.port}")
        self.socket = sock
        self.port = port

    def close(self) -> None:
        """Release the listening socket, if we still hold it."""
        if self.socket is not None:
            try:
                self.socket.close()
            except OSError as e:
                logger.warning(f"Error closing listener on port {self.port}: {e}")
            self.socket = None
