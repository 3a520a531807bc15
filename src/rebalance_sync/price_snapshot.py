import asyncio
import logging
from typing import Dict, Iterable, Optional

from brokerage_base import BrokerClient, BrokerAPIError
from strategy_engine import CASH_IDENTIFIER
from .exceptions import ResolutionError
from .identity_resolver import SecurityIdentityResolver
from .models import PriceSnapshot


class PriceSnapshotProvider:
    """Prices a security universe from one batched quote request"""

    def __init__(self, broker: BrokerClient, resolver: SecurityIdentityResolver,
                 logger: Optional[logging.Logger] = None):
        self.broker = broker
        self.resolver = resolver
        self.logger = logger or logging.getLogger(__name__)

    async def get_snapshot(self, security_identifiers: Iterable[str]) -> PriceSnapshot:
        """
        Price every identifier at the bid/ask midpoint.

        Fails closed: a quote error, an unusable price, or any identifier left
        without a price raises ResolutionError instead of returning a partial
        snapshot.
        """
        identifiers = sorted({i for i in security_identifiers if i != CASH_IDENTIFIER})
        if not identifiers:
            return PriceSnapshot()

        broker_symbols = await asyncio.gather(*(self.resolver.to_broker_symbol(i) for i in identifiers))
        tickers = sorted(set(broker_symbols))

        self.logger.info(f"Getting quotes for {len(tickers)} symbols: {', '.join(tickers)}")
        try:
            quotes = await self.broker.get_quotes(tickers)
        except BrokerAPIError as e:
            self.logger.error(f"Quote request failed for {', '.join(tickers)}: {e}")
            raise ResolutionError(
                f"Could not price securities: {e.message}",
                security=e.symbol,
                operation='get_quotes'
            ) from e

        prices: Dict[str, float] = {}
        for quote in quotes:
            price = quote.midpoint
            if not price > 0:
                raise ResolutionError(
                    f"Quote midpoint {price} is not a usable price",
                    security=quote.symbol,
                    operation='get_quotes'
                )

            identifier = await self.resolver.to_strategy_identity(quote.symbol)
            prices[identifier] = price

            # The high class is rarely quoted; it tracks the low class it is paired with
            for high_class in self.resolver.high_class_symbols(quote.symbol):
                high_identifier = await self.resolver.to_strategy_identity(high_class)
                prices[high_identifier] = price
                self.logger.debug(f"Priced {high_class} at {quote.symbol} reference price ${price:.2f}")

        missing = [i for i in identifiers if i not in prices]
        if missing:
            self.logger.error(f"No price for {len(missing)} securities: {', '.join(missing)}")
            raise ResolutionError(
                f"No price for {len(missing)} of {len(identifiers)} securities",
                security=', '.join(missing),
                operation='get_snapshot'
            )

        snapshot = PriceSnapshot(prices=prices)
        self._log_snapshot(snapshot)
        return snapshot

    def _log_snapshot(self, snapshot: PriceSnapshot):
        self.logger.info(f"====== PRICE SNAPSHOT ({len(snapshot.prices)}) ======")
        for identifier in sorted(snapshot.prices):
            self.logger.info(f"  {identifier}: ${snapshot.prices[identifier]:.4f}")
        self.logger.info("=" * 35)
