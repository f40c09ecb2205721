"""Central configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ExchangeConfig(BaseSettings):
    ws_url: str = Field(
        default="wss://ws.prod.blockchain.info/mercury-gateway/v1/ws", alias="BCX_WS_URL"
    )
    origin: str = Field(default="https://exchange.blockchain.com", alias="BCX_ORIGIN")
    api_secret: str = Field(default="", alias="BCX_API_SECRET")


class TuningConfig(BaseSettings):
    open_timeout: float = Field(default=10.0, alias="BCX_OPEN_TIMEOUT")
    ack_timeout: float | None = Field(default=30.0, alias="BCX_ACK_TIMEOUT")
    order_timeout: float | None = Field(default=60.0, alias="BCX_ORDER_TIMEOUT")
    ws_ping_interval: int = Field(default=30, alias="WS_PING_INTERVAL")
    ws_pong_timeout: int = Field(default=10, alias="WS_PONG_TIMEOUT")
    ws_max_size: int = Field(default=10 * 1024 * 1024, alias="WS_MAX_SIZE")


class LoggingConfig(BaseSettings):
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


class AppConfig:
    """Aggregated application configuration."""

    def __init__(self) -> None:
        self.exchange = ExchangeConfig()
        self.tuning = TuningConfig()
        self.logging = LoggingConfig()


def get_config() -> AppConfig:
    """Create and return the application configuration."""
    return AppConfig()
