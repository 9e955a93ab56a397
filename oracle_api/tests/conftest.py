# oracle_api/tests/conftest.py - Shared fixtures
import pytest

from oracle_api.config.base import AppSettings
from oracle_api.tests.rpc_fakes import FEED_ADDRESS, RPC_URL


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        APP_ENV="test",
        RPC_URL=RPC_URL,
        FEED_ADDRESS=FEED_ADDRESS,
        PORT=3001,
    )
