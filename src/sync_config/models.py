"""Pydantic models for application configuration with validation."""

from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


class BrokerConfig(BaseModel):
    """TradeStation connection configuration."""

    mode: Literal["sim", "live"] = Field(
        default="sim",
        description="Which TradeStation environment orders are routed to"
    )
    sim_base_url: str = Field(
        default="https://sim-api.tradestation.com/v3",
        description="Base URL of the simulated trading API"
    )
    live_base_url: str = Field(
        default="https://api.tradestation.com/v3",
        description="Base URL of the live trading API"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="OAuth bearer token; the token lifecycle is managed outside this process"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Total timeout for a single brokerage HTTP request"
    )
    quote_batch_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Maximum number of symbols per quote request"
    )

    @property
    def base_url(self) -> str:
        """Base URL for the configured trading mode."""
        return self.live_base_url if self.mode == "live" else self.sim_base_url


class StrategyEngineConfig(BaseModel):
    """Strategy engine API configuration."""

    base_url: str = Field(
        default="https://api.pennyvault.com",
        description="Base URL of the strategy engine API"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key sent in the X-Pv-Api header"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Total timeout for a single strategy engine request"
    )


class DualClassPair(BaseModel):
    """Two share classes of one company priced off the more liquid class."""

    high_class: str = Field(description="Broker symbol of the higher-priced, rarely quoted class")
    low_class: str = Field(description="Broker symbol of the lower-priced, liquid class")


class PlanningConfig(BaseModel):
    """Planning and identity resolution settings."""

    dual_class_pairs: List[DualClassPair] = Field(
        default_factory=lambda: [DualClassPair(high_class="BRK.A", low_class="BRK.B")],
        description="Share class pairs collapsed onto the low-priced class"
    )
    reject_unknown_transaction_kinds: bool = Field(
        default=False,
        description="Fail planning instead of dropping transactions that are neither BUY nor SELL"
    )
    allocation_weight_tolerance: float = Field(
        default=0.0001,
        ge=0.0,
        le=0.05,
        description="Allowed excess of summed target weights over 1.0"
    )


class ExecutionConfig(BaseModel):
    """Convergence loop timing and budget."""

    max_iterations: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum plan/submit/monitor iterations per sync"
    )
    initial_wait_seconds: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Wait after submitting an order group before the first status poll"
    )
    poll_interval_seconds: float = Field(
        default=300.0,
        ge=0.0,
        le=3600.0,
        description="Delay between order status polls"
    )
    monitoring_timeout_seconds: float = Field(
        default=1800.0,
        ge=0.0,
        le=23400.0,
        description="Maximum time spent waiting for submitted legs to settle"
    )
    max_sync_duration_seconds: float = Field(
        default=7200.0,
        ge=0.0,
        le=86400.0,
        description="Elapsed time after which no further iteration is started"
    )


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level"
    )
    format: Literal["text", "json"] = Field(
        default="text",
        description="Render log lines as text or one JSON object per line"
    )
    file_path: Optional[str] = Field(
        default=None,
        description="Optional log file, rotated daily and gzip-compressed"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v


class AppConfig(BaseModel):
    """Root application configuration."""

    broker: BrokerConfig = Field(
        default_factory=BrokerConfig,
        description="Brokerage connection settings"
    )
    strategy_engine: StrategyEngineConfig = Field(
        default_factory=StrategyEngineConfig,
        description="Strategy engine connection settings"
    )
    planning: PlanningConfig = Field(
        default_factory=PlanningConfig,
        description="Planning and identity resolution settings"
    )
    execution: ExecutionConfig = Field(
        default_factory=ExecutionConfig,
        description="Convergence loop settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )


class SyncTarget(BaseModel):
    """Which portfolio a brokerage account should track."""

    portfolio_id: str = Field(min_length=1)
    account_id: str = Field(min_length=1)
    last_trade_date: Optional[datetime] = None
    next_trade_date: Optional[datetime] = None

    def trade_date_reached(self, now: datetime) -> bool:
        """True unless a previous trade exists and the next trade date is still ahead."""
        if self.last_trade_date is None or self.next_trade_date is None:
            return True
        next_trade_date = self.next_trade_date
        if next_trade_date.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone()
        elif next_trade_date.tzinfo is None and now.tzinfo is not None:
            now = now.replace(tzinfo=None)
        return now >= next_trade_date

    @field_validator("last_trade_date", "next_trade_date", mode="before")
    @classmethod
    def date_to_datetime(cls, v):
        """YAML reads a bare date as a date; treat it as the start of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        return v
