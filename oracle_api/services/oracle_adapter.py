# oracle_api/services/oracle_adapter.py
import asyncio
import logging
import time
from typing import Any, Optional

from oracle_api.connectors.feed_client import FeedClient
from oracle_api.domains.oracle.normalizer import normalize_reading
from oracle_api.domains.oracle.schemas import FeedReading
from oracle_api.exceptions import (
    NETWORK_ERROR, UNEXPECTED_ERROR,
    CallError, OracleError, TransportError, UnexpectedError,
)

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def extract_error_message(exc: BaseException) -> str:
    """
    Pick the most human-readable message an error carries.

    Priority: short message, nested provider error message, revert reason,
    generic message, then "Unknown error".
    """
    info = getattr(exc, "info", None)
    nested = None
    if isinstance(info, dict) and isinstance(info.get("error"), dict):
        nested = info["error"].get("message")

    candidates = (
        getattr(exc, "short_message", None),
        nested,
        getattr(exc, "reason", None),
        getattr(exc, "message", None),
        str(exc),
    )
    for candidate in candidates:
        message = _non_empty(candidate)
        if message:
            return message
    return UNKNOWN_ERROR_MESSAGE


def classify_error(exc: BaseException, contract: str) -> OracleError:
    """Map any failure of a feed read onto the TransportError / CallError / UnexpectedError taxonomy."""
    if isinstance(exc, OracleError):
        return exc

    message = extract_error_message(exc)
    code = _non_empty(getattr(exc, "code", None))

    if code == NETWORK_ERROR or "network" in message.lower():
        return TransportError(message, code or UNEXPECTED_ERROR, contract)
    if code:
        return CallError(message, code, contract)
    return UnexpectedError(message, UNEXPECTED_ERROR, contract)


class OracleReadingAdapter:
    """
    Produces one FeedReading per call from three concurrent feed reads.

    The reads share no ordering; all of them finish before anything is
    returned, and a single failure fails the whole reading.
    """

    def __init__(self, feed_client: FeedClient):
        self.feed_client = feed_client

    @property
    def contract(self) -> str:
        return self.feed_client.feed_address

    async def fetch_reading(self) -> FeedReading:
        """
        Fetch and normalize the current reading of the feed.

        Returns:
            A fully populated FeedReading.

        Raises:
            OracleError: One of the reads failed; no partial reading exists.
        """
        start_time = time.time()
        results = await asyncio.gather(
            self.feed_client.decimals(),
            self.feed_client.description(),
            self.feed_client.latest_round_data(),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # Cancellation of a sub-call is not a feed error
                    raise result
                raise classify_error(result, self.contract) from result

        decimals, description, round_data = results
        reading = normalize_reading(decimals, description, round_data, self.contract)

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Fetched feed reading in {duration_ms:.1f}ms",
            extra={"contract": self.contract, "round_id": reading.round_id},
        )
        return reading
