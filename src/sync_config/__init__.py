"""Application configuration management for the rebalance sync."""

from .models import (
    AppConfig,
    BrokerConfig,
    StrategyEngineConfig,
    DualClassPair,
    PlanningConfig,
    ExecutionConfig,
    LoggingConfig,
    SyncTarget,
)
from .loader import load_config, load_sync_target

__all__ = [
    "AppConfig",
    "BrokerConfig",
    "StrategyEngineConfig",
    "DualClassPair",
    "PlanningConfig",
    "ExecutionConfig",
    "LoggingConfig",
    "SyncTarget",
    "load_config",
    "load_sync_target",
]
