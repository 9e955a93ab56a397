# oracle_api/connectors/feed_client.py
import logging
from typing import Any, Sequence, Tuple

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from oracle_api.connectors.rpc_provider import JsonRpcProvider
from oracle_api.domains.oracle.schemas import RoundData
from oracle_api.exceptions import RpcBadDataError

logger = logging.getLogger(__name__)

# AggregatorV3Interface, read-only subset
DECIMALS_SIGNATURE = "decimals()"
DESCRIPTION_SIGNATURE = "description()"
LATEST_ROUND_DATA_SIGNATURE = "latestRoundData()"

DECIMALS_OUTPUT = ["uint8"]
DESCRIPTION_OUTPUT = ["string"]
LATEST_ROUND_DATA_OUTPUT = ["uint80", "int256", "uint256", "uint256", "uint80"]


class FeedClient:
    """
    Read calls against a Chainlink AggregatorV3 feed contract.

    Every call is independent. Failures are not interpreted or retried here:
    provider errors propagate unchanged, and undecodable return data is raised
    as RpcBadDataError so the caller can classify it.
    """
    def __init__(self, provider: JsonRpcProvider, feed_address: str):
        self.provider = provider
        self.feed_address = feed_address

    async def decimals(self) -> int:
        (value,) = await self._call(DECIMALS_SIGNATURE, DECIMALS_OUTPUT)
        return value

    async def description(self) -> str:
        (value,) = await self._call(DESCRIPTION_SIGNATURE, DESCRIPTION_OUTPUT)
        return value

    async def latest_round_data(self) -> RoundData:
        values = await self._call(LATEST_ROUND_DATA_SIGNATURE, LATEST_ROUND_DATA_OUTPUT)
        return RoundData(*values)

    async def _call(self, signature: str, output_types: Sequence[str]) -> Tuple[Any, ...]:
        selector = function_signature_to_4byte_selector(signature)
        raw = await self.provider.call(self.feed_address, selector)
        if not raw:
            # Calls to an address without code return empty data
            raise RpcBadDataError(
                f"{signature} returned no data from {self.feed_address}",
                short_message="could not decode result data",
                info={"signature": signature, "contract": self.feed_address},
            )
        try:
            return decode(list(output_types), raw)
        except (DecodingError, OverflowError) as e:
            raise RpcBadDataError(
                f"{signature} returned data that does not match {list(output_types)}: {e}",
                short_message="could not decode result data",
                info={"signature": signature, "contract": self.feed_address},
            ) from e
