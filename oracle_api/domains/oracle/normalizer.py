# oracle_api/domains/oracle/normalizer.py
import logging
from datetime import datetime, timezone
from decimal import Decimal

from oracle_api.domains.oracle.schemas import FeedReading, RoundData

logger = logging.getLogger(__name__)

MAX_DECIMALS = 255
MAX_UINT80 = 2**80 - 1


def _require_int(name: str, value) -> int:
    # bool is an int subclass but never a valid ABI integer here
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def scale_answer(answer: int, decimals: int) -> float:
    """answer / 10**decimals, computed in Decimal and rounded once to float for display."""
    return float(Decimal(answer).scaleb(-decimals))


def to_utc(epoch_seconds: int) -> datetime:
    try:
        return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"timestamp out of range: {epoch_seconds}") from e


def normalize_reading(
    decimals: int,
    description: str,
    round_data: RoundData,
    contract_address: str,
) -> FeedReading:
    """
    Build a FeedReading from raw feed call results.

    Inputs come straight from FeedClient's decoded results, so anything
    malformed is a programming error and raises ValueError.
    """
    decimals = _require_int("decimals", decimals)
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals out of range: {decimals}")
    if not isinstance(description, str):
        raise ValueError(f"description must be a string, got {type(description).__name__}")

    round_id, answer, started_at, updated_at, answered_in_round = (
        _require_int(field, value) for field, value in zip(RoundData._fields, round_data)
    )
    for field, value in (("round_id", round_id), ("answered_in_round", answered_in_round)):
        if not 0 <= value <= MAX_UINT80:
            raise ValueError(f"{field} is not a uint80: {value}")
    if started_at < 0 or updated_at < 0:
        raise ValueError("round timestamps must be non-negative")

    if updated_at < started_at:
        logger.warning(
            "Feed round updated before it started",
            extra={"contract": contract_address, "round_id": str(round_id),
                   "started_at": started_at, "updated_at": updated_at},
        )
    if answered_in_round < round_id:
        logger.warning(
            "Feed answer carried over from an earlier round",
            extra={"contract": contract_address, "round_id": str(round_id),
                   "answered_in_round": str(answered_in_round)},
        )

    return FeedReading(
        description=description,
        decimals_precision=decimals,
        price=scale_answer(answer, decimals),
        round_id=str(round_id),
        answered_in_round=str(answered_in_round),
        started_at=to_utc(started_at),
        updated_at=to_utc(updated_at),
        contract_address=contract_address,
    )
