# oracle_api/connectors/rpc_provider.py
import itertools
import logging
from typing import Any, Dict, Optional

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from oracle_api.exceptions import RpcBadDataError, RpcCallError, RpcTransportError

logger = logging.getLogger(__name__)

# Selector of the standard Solidity `Error(string)` revert payload
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")
# EIP-1474 code some nodes use for "execution reverted"
RPC_REVERT_CODE = 3


def _hex_to_bytes(value: str) -> bytes:
    data = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(data)


def decode_revert_reason(data: Any) -> Optional[str]:
    """Decode the reason string out of `Error(string)` revert data, if that is what it is."""
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, str):
        return None
    try:
        raw = _hex_to_bytes(data)
    except ValueError:
        return None
    if not raw.startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], raw[len(ERROR_STRING_SELECTOR):])
    except (DecodingError, OverflowError, ValueError):
        return None
    return reason


class JsonRpcProvider:
    """
    Minimal JSON-RPC 2.0 provider for read-only contract calls.

    The provider borrows a shared httpx.AsyncClient; creating and closing the
    client is the job of the application lifespan, not of this class.
    """
    def __init__(self, url: str, client: httpx.AsyncClient):
        """
        Args:
            url: The node endpoint, e.g. https://ethereum.publicnode.com
            client: A shared httpx.AsyncClient (its timeout bounds every call).
        """
        self.url = url
        self.client = client
        self._ids = itertools.count(1)

    async def call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        """Run `eth_call` against `to` with ABI-encoded `data` and return the raw return data."""
        result = await self._make_request(
            "eth_call",
            [{"to": to, "data": "0x" + data.hex()}, block],
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcBadDataError(
                f"unexpected eth_call result: {result!r}",
                short_message="could not decode result data",
                info={"result": result},
            )
        try:
            return _hex_to_bytes(result)
        except ValueError:
            raise RpcBadDataError(
                f"eth_call result is not valid hex: {result!r}",
                short_message="could not decode result data",
                info={"result": result},
            )

    async def _make_request(self, method: str, params: list) -> Any:
        """
        Send a single JSON-RPC request and return its `result` member.

        Raises:
            RpcTransportError: The node could not be reached.
            RpcCallError: The node returned a JSON-RPC error object or an HTTP error status.
            RpcBadDataError: The body was not a JSON-RPC response.
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.TransportError as e:
            # Connect failures, timeouts and protocol errors all land here
            raise RpcTransportError(
                f"{type(e).__name__}: {e}",
                short_message=f"network error: {str(e) or type(e).__name__}",
                info={"url": self.url, "method": method},
            ) from e

        if response.status_code >= 400:
            raise RpcCallError(
                f"RPC endpoint returned HTTP {response.status_code}",
                code="SERVER_ERROR",
                info={"status": response.status_code, "url": self.url, "method": method},
            )

        try:
            body: Dict[str, Any] = response.json()
        except ValueError as e:
            raise RpcBadDataError(
                "RPC endpoint returned a non-JSON body",
                info={"url": self.url, "method": method},
            ) from e
        if not isinstance(body, dict):
            raise RpcBadDataError(
                "RPC endpoint returned a non-object body",
                info={"url": self.url, "method": method, "body": body},
            )

        error = body.get("error")
        if error is not None:
            raise self._call_error(method, error)
        if "result" not in body:
            raise RpcBadDataError(
                "JSON-RPC response has neither result nor error",
                info={"url": self.url, "method": method, "body": body},
            )
        return body["result"]

    def _call_error(self, method: str, error: Any) -> RpcCallError:
        if not isinstance(error, dict):
            error = {"message": str(error)}
        rpc_message = str(error.get("message") or "")
        reverted = error.get("code") == RPC_REVERT_CODE or "revert" in rpc_message.lower()
        reason = decode_revert_reason(error.get("data")) if reverted else None
        logger.debug(f"JSON-RPC error for {method}: {error}")
        short_message = None
        if reverted:
            short_message = f"execution reverted: \"{reason}\"" if reason else "execution reverted"
        return RpcCallError(
            f"{method} failed: {rpc_message or 'unknown error'}",
            code="CALL_EXCEPTION" if reverted else "UNKNOWN_ERROR",
            short_message=short_message,
            reason=reason,
            info={"error": error, "method": method},
        )
