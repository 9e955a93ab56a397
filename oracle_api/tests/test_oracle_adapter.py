# oracle_api/tests/test_oracle_adapter.py - Fan-out, all-or-nothing and error classification
import asyncio
import time
from unittest.mock import AsyncMock, Mock

import pytest

from oracle_api.connectors.feed_client import FeedClient
from oracle_api.domains.oracle.schemas import FeedReading, RoundData
from oracle_api.exceptions import (
    CallError, OracleError, ProviderError, RpcBadDataError, RpcCallError,
    RpcTransportError, TransportError, UnexpectedError,
)
from oracle_api.services.oracle_adapter import OracleReadingAdapter, classify_error, extract_error_message
from oracle_api.tests.rpc_fakes import ETH_USD_ROUND, FEED_ADDRESS


@pytest.fixture
def feed_client():
    """FeedClient double answering the ETH / USD scenario."""
    client = Mock(spec=FeedClient)
    client.feed_address = FEED_ADDRESS
    client.decimals = AsyncMock(return_value=8)
    client.description = AsyncMock(return_value="ETH / USD")
    client.latest_round_data = AsyncMock(return_value=RoundData(*ETH_USD_ROUND))
    return client


class TestFetchReading:

    @pytest.mark.asyncio
    async def test_success_returns_full_reading(self, feed_client):
        reading = await OracleReadingAdapter(feed_client).fetch_reading()

        assert isinstance(reading, FeedReading)
        assert reading.price == 3500.12
        assert reading.description == "ETH / USD"
        assert reading.contract_address == FEED_ADDRESS
        feed_client.decimals.assert_awaited_once()
        feed_client.description.assert_awaited_once()
        feed_client.latest_round_data.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", ["decimals", "description", "latest_round_data"])
    async def test_any_failed_read_fails_the_reading(self, feed_client, failing):
        getattr(feed_client, failing).side_effect = RpcCallError("reverted", reason="No data present")

        with pytest.raises(CallError) as exc_info:
            await OracleReadingAdapter(feed_client).fetch_reading()

        assert exc_info.value.code == "CALL_EXCEPTION"
        assert exc_info.value.message == "No data present"
        assert exc_info.value.contract == FEED_ADDRESS

    @pytest.mark.asyncio
    async def test_waits_for_all_reads_before_failing(self, feed_client):
        finished = []

        async def slow_round():
            await asyncio.sleep(0.05)
            finished.append("latest_round_data")
            return RoundData(*ETH_USD_ROUND)

        feed_client.decimals.side_effect = RpcTransportError("ECONNREFUSED", short_message="network error")
        feed_client.latest_round_data.side_effect = slow_round

        with pytest.raises(TransportError):
            await OracleReadingAdapter(feed_client).fetch_reading()
        assert finished == ["latest_round_data"]

    @pytest.mark.asyncio
    async def test_first_failure_in_call_order_wins(self, feed_client):
        feed_client.description.side_effect = RpcBadDataError("bad description")
        feed_client.latest_round_data.side_effect = RpcTransportError("down", short_message="network error")

        with pytest.raises(CallError) as exc_info:
            await OracleReadingAdapter(feed_client).fetch_reading()
        assert exc_info.value.code == "BAD_DATA"

    @pytest.mark.asyncio
    async def test_reads_run_concurrently(self, feed_client):
        async def decimals():
            await asyncio.sleep(0.1)
            return 8

        async def description():
            await asyncio.sleep(0.1)
            return "ETH / USD"

        async def latest_round_data():
            await asyncio.sleep(0.1)
            return RoundData(*ETH_USD_ROUND)

        feed_client.decimals.side_effect = decimals
        feed_client.description.side_effect = description
        feed_client.latest_round_data.side_effect = latest_round_data

        start = time.monotonic()
        await OracleReadingAdapter(feed_client).fetch_reading()
        elapsed = time.monotonic() - start

        assert elapsed < 0.25

    @pytest.mark.asyncio
    async def test_cancellation_cancels_outstanding_reads(self, feed_client):
        cancelled = []

        async def never_answers():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        feed_client.latest_round_data.side_effect = never_answers

        task = asyncio.create_task(OracleReadingAdapter(feed_client).fetch_reading())
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled == [True]


class TestErrorClassification:

    def test_network_code_is_transport_error(self):
        error = classify_error(RpcTransportError("ECONNREFUSED"), FEED_ADDRESS)

        assert isinstance(error, TransportError)
        assert error.status_code == 502
        assert error.code == "NETWORK_ERROR"

    def test_network_in_message_is_transport_error(self):
        exc = ProviderError("could not detect Network", code="SERVER_ERROR")
        error = classify_error(exc, FEED_ADDRESS)

        assert isinstance(error, TransportError)
        assert error.code == "SERVER_ERROR"

    def test_network_in_message_without_code(self):
        error = classify_error(RuntimeError("network unreachable"), FEED_ADDRESS)

        assert isinstance(error, TransportError)
        assert error.code == "UNEXPECTED_ERROR"

    def test_coded_error_is_call_error(self):
        error = classify_error(RpcCallError("call failed", reason="Ownable: caller"), FEED_ADDRESS)

        assert isinstance(error, CallError)
        assert error.status_code == 500
        assert error.message == "Ownable: caller"

    def test_bare_exception_is_unexpected_error(self):
        error = classify_error(Exception(), FEED_ADDRESS)

        assert isinstance(error, UnexpectedError)
        assert error.status_code == 500
        assert error.message == "Unknown error"
        assert error.code == "UNEXPECTED_ERROR"

    def test_uncoded_exception_keeps_its_message(self):
        error = classify_error(KeyError("boom"), FEED_ADDRESS)

        assert isinstance(error, UnexpectedError)
        assert "boom" in error.message

    def test_oracle_errors_pass_through(self):
        original = CallError("already classified", "CALL_EXCEPTION", FEED_ADDRESS)
        assert classify_error(original, FEED_ADDRESS) is original

    def test_message_priority(self):
        exc = ProviderError(
            "generic message",
            code="CALL_EXCEPTION",
            short_message="short message",
            reason="revert reason",
            info={"error": {"message": "nested message"}},
        )
        assert extract_error_message(exc) == "short message"

        exc.short_message = None
        assert extract_error_message(exc) == "nested message"

        exc.info = {}
        assert extract_error_message(exc) == "revert reason"

        exc.reason = ""
        assert extract_error_message(exc) == "generic message"

        exc.message = None
        assert extract_error_message(exc) == "generic message"  # str(exc)

    def test_oracle_error_hierarchy(self):
        assert issubclass(TransportError, OracleError)
        assert issubclass(CallError, OracleError)
        assert issubclass(UnexpectedError, OracleError)
