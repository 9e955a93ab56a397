# oracle_api/domains/oracle/schemas.py
from datetime import datetime, timezone
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class RoundData(NamedTuple):
    """Raw `latestRoundData()` tuple, as decoded from the contract."""
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a `Z` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FeedReading(BaseModel):
    """A normalized snapshot of one price feed. Immutable and request-scoped."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str
    decimals_precision: int = Field(..., ge=0, le=255, alias="decimals")
    price: float = Field(..., description="Display value; not for further on-chain math")
    round_id: str = Field(..., pattern=r"^\d+$", alias="roundId")
    answered_in_round: str = Field(..., pattern=r"^\d+$", alias="answeredInRound")
    started_at: datetime = Field(..., alias="startedAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    contract_address: str = Field(..., alias="contract")

    @field_serializer("started_at", "updated_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class ReadingResponse(BaseModel):
    """Success envelope for a feed reading."""
    ok: bool = True
    data: FeedReading


class ErrorDetails(BaseModel):
    code: str
    contract: str


class ErrorResponse(BaseModel):
    """Failure envelope; every error the API returns has this shape."""
    ok: bool = False
    error: str
    details: ErrorDetails
