"""HTTP client for the strategy engine's security directory and rebalance endpoint"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from sync_config import StrategyEngineConfig
from .exceptions import StrategyEngineError
from .models import Position, RebalancePlan, SecurityIdentity


class StrategyEngineClient:
    def __init__(self, config: StrategyEngineConfig, session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.base_url = config.base_url.rstrip('/')
        self.logger = logger or logging.getLogger(__name__)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self._session is None or self._session.closed:
            headers = {'Content-Type': 'application/json'}
            if self.config.api_key:
                headers['X-Pv-Api'] = self.config.api_key
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> Dict[str, Any]:
        if self._session is None or self._session.closed:
            raise StrategyEngineError("Strategy engine session is not open", operation=operation)

        url = f"{self.base_url}{path}"
        self.logger.debug(f"{method} {url}")
        try:
            async with self._session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    response_text = await response.text()
                    self.logger.error(f"Strategy engine returned status {response.status} for {path}: {response_text}")
                    raise StrategyEngineError(
                        f"Strategy engine returned status {response.status}: {response_text}",
                        operation=operation,
                        status=response.status
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"HTTP error during {operation}: {e}")
            raise StrategyEngineError(f"Strategy engine request failed: {e}", operation=operation) from e
        except ValueError as e:
            self.logger.error(f"Invalid JSON response from strategy engine: {e}")
            raise StrategyEngineError(f"Invalid JSON response: {e}", operation=operation) from e

        if not isinstance(data, dict):
            raise StrategyEngineError("Strategy engine response must be a JSON object", operation=operation)
        return data

    async def resolve_security(self, query: str) -> SecurityIdentity:
        """
        Look up a security in the engine's directory.

        The query is a ticker in the engine's own form (class separator "/"),
        sent percent-encoded as a single path segment.
        """
        path = f"/v1/security/{quote(query, safe='')}/"
        try:
            data = await self._request('GET', path, operation='resolve_security')
        except StrategyEngineError as e:
            e.security = query
            raise

        try:
            return SecurityIdentity.model_validate(data)
        except ValidationError as e:
            raise StrategyEngineError(
                f"Security directory returned an invalid entry: {e}",
                operation='resolve_security',
                security=query
            ) from e

    async def rebalance(self, portfolio_id: str, allocation_only: bool,
                        positions: List[Position], prices: Dict[str, float]) -> RebalancePlan:
        """Ask the engine for the target allocation and the transactions that reach it"""
        body = {
            'AllocationOnly': allocation_only,
            'Positions': [pos.model_dump(by_alias=True) for pos in positions],
            'Precision': 0,
            'PriceData': prices,
        }
        mode = "allocation-only" if allocation_only else "rebalance"
        self.logger.info(
            f"Requesting {mode} plan for portfolio {portfolio_id} "
            f"({len(positions)} positions, {len(prices)} prices)"
        )

        try:
            data = await self._request('POST', f"/v1/portfolio/{portfolio_id}/rebalance",
                                       operation='rebalance', json=body)
        except StrategyEngineError as e:
            e.portfolio_id = portfolio_id
            raise

        try:
            return RebalancePlan.model_validate(data)
        except ValidationError as e:
            raise StrategyEngineError(
                f"Rebalance response could not be parsed: {e}",
                operation='rebalance',
                portfolio_id=portfolio_id
            ) from e
