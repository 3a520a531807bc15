"""Configuration loader with validation."""

import logging
import os
import yaml
from pathlib import Path
from typing import Mapping, Optional

from .models import AppConfig, SyncTarget

logger = logging.getLogger(__name__)

BROKER_TOKEN_ENV = "TRADESTATION_ACCESS_TOKEN"
ENGINE_API_KEY_ENV = "PV_API_KEY"


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        raw = yaml.safe_load(f)

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping at the top level")
    return raw


def load_config(config_path: Optional[str | Path] = None,
                environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Load and validate application configuration.

    Credentials missing from the file are taken from the environment
    (TRADESTATION_ACCESS_TOKEN, PV_API_KEY). The returned object is the only
    place components read settings from.

    Args:
        config_path: Path to a YAML file, or None for defaults
        environ: Environment mapping, defaults to os.environ

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
        yaml.YAMLError: If YAML parsing fails
    """
    environ = os.environ if environ is None else environ
    raw_config: dict = {}

    if config_path is not None:
        config_path = Path(config_path)
        logger.info(f"Loading configuration from: {config_path}")
        raw_config = _read_yaml(config_path)

    try:
        config = AppConfig(**raw_config)
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    if not config.broker.access_token and environ.get(BROKER_TOKEN_ENV):
        config.broker.access_token = environ[BROKER_TOKEN_ENV]
    if not config.strategy_engine.api_key and environ.get(ENGINE_API_KEY_ENV):
        config.strategy_engine.api_key = environ[ENGINE_API_KEY_ENV]

    # Log loaded configuration for audit trail
    logger.info("Configuration loaded successfully:")
    logger.info(f"  Broker mode: {config.broker.mode} ({config.broker.base_url})")
    logger.info(f"  Broker access token: {'set' if config.broker.access_token else 'missing'}")
    logger.info(f"  Quote batch size: {config.broker.quote_batch_size}")
    logger.info(f"  Strategy engine: {config.strategy_engine.base_url}")
    logger.info(f"  Strategy engine API key: {'set' if config.strategy_engine.api_key else 'missing'}")
    logger.info(f"  Max iterations: {config.execution.max_iterations}")
    logger.info(f"  Initial wait: {config.execution.initial_wait_seconds}s")
    logger.info(f"  Poll interval: {config.execution.poll_interval_seconds}s")
    logger.info(f"  Monitoring timeout: {config.execution.monitoring_timeout_seconds}s")
    logger.info(f"  Max sync duration: {config.execution.max_sync_duration_seconds}s")
    logger.info(f"  Reject unknown transaction kinds: {config.planning.reject_unknown_transaction_kinds}")

    return config


def load_sync_target(path: str | Path) -> SyncTarget:
    """Load the portfolio/account pairing for one sync invocation."""
    path = Path(path)
    raw = _read_yaml(path)

    try:
        return SyncTarget(**raw)
    except Exception as e:
        logger.error(f"Sync target validation failed: {e}")
        raise ValueError(f"Invalid sync target {path}: {e}") from e
