# oracle_api/api/oracle.py
import logging

from fastapi import APIRouter, Depends

from oracle_api.api.dependencies import get_oracle_adapter
from oracle_api.config.base import AppSettings, get_settings
from oracle_api.domains.oracle.schemas import ErrorResponse, ReadingResponse
from oracle_api.exceptions import OracleError
from oracle_api.middleware.error_handler import error_envelope
from oracle_api.services.oracle_adapter import OracleReadingAdapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Oracle"])


@router.get(
    "/DanyilApiTest",
    response_model=ReadingResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Current Chainlink feed reading",
)
async def get_feed_reading(
    adapter: OracleReadingAdapter = Depends(get_oracle_adapter),
    settings: AppSettings = Depends(get_settings),
):
    """
    Reads decimals, description and the latest round from the configured
    AggregatorV3 feed and returns them as one normalized reading.

    Network failures reaching the RPC node answer 502, every other failure 500.
    """
    try:
        reading = await adapter.fetch_reading()
    except OracleError as e:
        logger.error(
            "Error fetching feed data",
            extra={
                "code": e.code,
                "error_message": e.message,
                "rpc_url": settings.RPC_URL,
                "contract": e.contract,
            },
        )
        return error_envelope(e.status_code, e.message, e.code, e.contract)

    logger.info(
        "Feed data fetched",
        extra={"description": reading.description, "price": reading.price, "round_id": reading.round_id},
    )
    return ReadingResponse(data=reading)
