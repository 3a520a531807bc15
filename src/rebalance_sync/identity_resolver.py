"""Mapping between brokerage symbols and strategy engine security identifiers"""

import asyncio
import logging
from typing import Dict, List, Optional

from brokerage_base import AccountPosition
from strategy_engine import Position, SecurityIdentity, StrategyEngineClient, StrategyEngineError
from sync_config import PlanningConfig
from .exceptions import ResolutionError

BROKER_CLASS_SEPARATOR = "."
ENGINE_CLASS_SEPARATOR = "/"


class SecurityIdentityResolver:
    """
    Resolves securities against the strategy engine's directory.

    One resolver lives for exactly one sync invocation; its cache is never
    shared across invocations because listings change between them.
    """

    def __init__(self, engine: StrategyEngineClient, planning_config: PlanningConfig,
                 logger: Optional[logging.Logger] = None):
        self.engine = engine
        self.logger = logger or logging.getLogger(__name__)
        self._by_query: Dict[str, SecurityIdentity] = {}
        self._by_identifier: Dict[str, SecurityIdentity] = {}
        # high class -> low class, in broker symbol form
        self._collapse = {pair.high_class: pair.low_class for pair in planning_config.dual_class_pairs}

    async def _lookup(self, query: str) -> SecurityIdentity:
        cached = self._by_query.get(query) or self._by_identifier.get(query)
        if cached is not None:
            return cached

        try:
            identity = await self.engine.resolve_security(query)
        except StrategyEngineError as e:
            self.logger.error(f"Could not resolve security {query}: {e}")
            raise ResolutionError(
                f"Security could not be resolved: {e.message}",
                security=query,
                operation='resolve_security'
            ) from e

        self._by_query[query] = identity
        if identity.ticker:
            self._by_query.setdefault(identity.ticker, identity)
        self._by_identifier[identity.security_identifier] = identity
        self.logger.debug(f"Resolved {query} -> {identity.security_identifier} ({identity.ticker})")
        return identity

    async def to_strategy_identity(self, broker_symbol: str) -> str:
        query = broker_symbol.replace(BROKER_CLASS_SEPARATOR, ENGINE_CLASS_SEPARATOR)
        identity = await self._lookup(query)
        return identity.security_identifier

    async def to_broker_symbol(self, security_identifier: str) -> str:
        identity = await self._lookup(security_identifier)
        if not identity.ticker:
            raise ResolutionError(
                "Security directory returned no ticker",
                security=security_identifier,
                operation='resolve_security'
            )
        return self.broker_symbol_for_ticker(identity.ticker)

    def broker_symbol_for_ticker(self, ticker: str) -> str:
        """Engine ticker -> tradable broker symbol, collapsing dual-class pairs onto the liquid class"""
        symbol = ticker.replace(ENGINE_CLASS_SEPARATOR, BROKER_CLASS_SEPARATOR)
        return self._collapse.get(symbol, symbol)

    def high_class_symbols(self, low_class_symbol: str) -> List[str]:
        return [high for high, low in self._collapse.items() if low == low_class_symbol]

    async def resolve_positions(self, positions: List[AccountPosition]) -> List[Position]:
        """Translate broker holdings into engine positions; lookups run concurrently"""
        identifiers = await asyncio.gather(
            *(self.to_strategy_identity(pos.symbol) for pos in positions)
        )
        resolved = []
        for pos, identifier in zip(positions, identifiers):
            identity = self._by_identifier[identifier]
            resolved.append(Position(
                security_identifier=identifier,
                broker_symbol=pos.symbol,
                ticker=identity.ticker or pos.symbol,
                share_quantity=float(pos.quantity)
            ))
        return resolved
