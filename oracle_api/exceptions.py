# oracle_api/exceptions.py
from typing import Any, Dict, Optional

NETWORK_ERROR = "NETWORK_ERROR"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


# --- Provider (JSON-RPC) Exceptions ---
class ProviderError(Exception):
    """Base exception for failures talking to the JSON-RPC node."""
    def __init__(
        self,
        message: str,
        code: str,
        short_message: Optional[str] = None,
        reason: Optional[str] = None,
        info: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.short_message = short_message
        self.reason = reason
        self.info = info or {}

class RpcTransportError(ProviderError):
    """The node could not be reached or answered at the transport level."""
    def __init__(self, message: str, code: str = NETWORK_ERROR, **kwargs):
        super().__init__(message, code, **kwargs)

class RpcCallError(ProviderError):
    """The node answered, but the call itself failed (revert, bad params)."""
    def __init__(self, message: str, code: str = "CALL_EXCEPTION", **kwargs):
        super().__init__(message, code, **kwargs)

class RpcBadDataError(ProviderError):
    """The node answered with data that does not decode against the ABI."""
    def __init__(self, message: str, code: str = "BAD_DATA", **kwargs):
        super().__init__(message, code, **kwargs)


# --- Oracle Reading Exceptions ---
class OracleError(Exception):
    """Classified failure of a feed reading, carries the HTTP status to report."""
    status_code = 500

    def __init__(self, message: str, code: str, contract: str):
        super().__init__(message)
        self.message = message
        self.code = code
        self.contract = contract

class TransportError(OracleError):
    """Network-layer failure reaching the RPC endpoint."""
    status_code = 502

class CallError(OracleError):
    """Contract call reverted, bad ABI response, or another non-network failure."""
    status_code = 500

class UnexpectedError(OracleError):
    """Failure without a structured code."""
    status_code = 500


# --- Bootstrap Exceptions ---
class PortUnavailableError(Exception):
    """No candidate port could be freed and bound."""
    def __init__(self, initial_port: int, attempts: int):
        super().__init__(
            f"Could not bind any port in range {initial_port}-{initial_port + attempts - 1}"
        )
        self.initial_port = initial_port
        self.attempts = attempts
