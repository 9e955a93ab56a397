# oracle_api/config/base.py
import os
import re
from functools import lru_cache
from typing import Annotated, Optional, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Chainlink ETH/USD AggregatorV3 proxy on Ethereum mainnet
DEFAULT_FEED_ADDRESS = "0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419"
DEFAULT_RPC_URL = "https://ethereum.publicnode.com"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class AppSettings(BaseSettings):
    """
    Application settings with environment variable support.
    """
    # Basic Application Configuration
    APP_ENV: str = "development"
    APP_NAME: str = "Oracle API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Listener
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    PORT_MAX_ATTEMPTS: int = 10
    SHUTDOWN_GRACE_SECONDS: float = 5.0

    # Upstream price feed
    RPC_URL: str = DEFAULT_RPC_URL
    RPC_TIMEOUT_SECONDS: float = 10.0
    FEED_ADDRESS: str = DEFAULT_FEED_ADDRESS

    # Built client bundle, served only in production
    STATIC_DIR: str = "client/build"

    # CORS Settings (empty means "same origin as the listener")
    CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def validate_cors_origins(cls, v):
        # Handle string input (comma-separated)
        if isinstance(v, str):
            if v.startswith("["):
                # If it's a JSON string, parse it
                import json
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Otherwise, split by comma
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    model_config = {
        "env_file": (".env", f".env.{os.getenv('APP_ENV', 'development')}"),
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.upper()

    @field_validator("FEED_ADDRESS")
    @classmethod
    def validate_feed_address(cls, v: str) -> str:
        if not _ADDRESS_RE.match(v):
            raise ValueError("FEED_ADDRESS must be a 0x-prefixed 20-byte hex address")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @field_validator("PORT_MAX_ATTEMPTS")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("PORT_MAX_ATTEMPTS must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def allowed_origins(self) -> List[str]:
        """CORS origins; defaults to the local listener like the bundled client expects."""
        return self.CORS_ORIGINS or [f"http://localhost:{self.PORT}"]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Lazily load and cache application settings."""
    return AppSettings()
