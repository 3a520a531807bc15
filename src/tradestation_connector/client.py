"""TradeStation v3 REST client for account data, quotes and order groups"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

import aiohttp

import brokerage_base
from brokerage_base import (
    BrokerClient,
    AccountPosition,
    Quote,
    OrderRequest,
    OrderLeg,
    OrderExecutionRecord,
    OrderStatus,
    BrokerAPIError,
    BrokerConnectionError,
    OrderSubmissionError,
)
from sync_config import BrokerConfig
from .models import (
    TSBalanceResponse,
    TSError,
    TSOrder,
    TSOrderResponse,
    TSPositionResponse,
    TSQuoteResponse,
    normalize_status,
    order_request_to_wire,
)


class TradeStationClient(BrokerClient):
    """TradeStation client sharing one HTTP session per sync invocation"""

    def __init__(self, config: BrokerConfig, logger: Optional[logging.Logger] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = config.base_url.rstrip('/')
        self._session = session
        self._owns_session = session is None

        self.logger.debug(
            f"Initializing TradeStationClient ({config.mode}) with brokerage-base v{brokerage_base.__version__}"
        )

    async def connect(self) -> bool:
        """Open the HTTP session used for every brokerage call"""
        if self.is_connected():
            return True

        if not self.config.access_token:
            raise BrokerConnectionError(
                "No TradeStation access token configured (set broker.access_token or TRADESTATION_ACCESS_TOKEN)",
                operation="connect"
            )

        self._session = aiohttp.ClientSession(
            headers={
                'Authorization': f"Bearer {self.config.access_token}",
                'Content-Type': 'application/json',
            },
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)
        )
        self._owns_session = True
        self.logger.info(f"Connected to TradeStation {self.config.mode} API at {self.base_url}")
        return True

    async def disconnect(self):
        """Close the HTTP session if this client opened it"""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            self.logger.info("Disconnected from TradeStation")
        self._session = None

    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def _request(self, method: str, path: str, operation: str,
                       account_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        if not self.is_connected():
            raise BrokerConnectionError("Not connected to TradeStation", operation=operation, account_id=account_id)

        url = f"{self.base_url}{path}"
        try:
            async with self._session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    response_text = await response.text()
                    raise BrokerAPIError(
                        f"TradeStation returned status {response.status}: {response_text}",
                        account_id=account_id,
                        operation=operation
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"HTTP error during {operation}: {e}")
            raise BrokerAPIError(f"TradeStation request failed: {e}", account_id=account_id, operation=operation) from e

        if not isinstance(data, dict):
            raise BrokerAPIError("TradeStation response must be a JSON object", account_id=account_id, operation=operation)
        return data

    def _raise_for_errors(self, errors: List[TSError], operation: str, account_id: Optional[str] = None,
                          error_class=BrokerAPIError):
        if not errors:
            return
        details = [err.describe() for err in errors]
        for detail in details:
            self.logger.error(f"TradeStation {operation} error - {detail}")
        raise error_class(
            f"TradeStation returned errors: {'; '.join(details)}",
            account_id=account_id,
            operation=operation,
            symbol=errors[0].symbol
        )

    async def list_positions(self, account_id: str) -> List[AccountPosition]:
        data = await self._request('GET', f"/brokerage/accounts/{account_id}/positions",
                                   operation='list_positions', account_id=account_id)
        response = TSPositionResponse.model_validate(data)
        self._raise_for_errors(response.errors, 'list_positions', account_id)

        positions = [
            AccountPosition(
                symbol=pos.symbol,
                quantity=pos.signed_quantity,
                market_value=pos.market_value or 0.0
            )
            for pos in response.positions
            if pos.signed_quantity != 0
        ]
        self.logger.info(f"Found {len(positions)} positions for account {account_id}")
        return positions

    async def get_cash_balance(self, account_id: str) -> float:
        data = await self._request('GET', f"/brokerage/accounts/{account_id}/balances",
                                   operation='get_cash_balance', account_id=account_id)
        response = TSBalanceResponse.model_validate(data)
        self._raise_for_errors(response.errors, 'get_cash_balance', account_id)

        for balance in response.balances:
            if balance.account_id in (None, account_id) and balance.cash_balance is not None:
                return balance.cash_balance

        raise BrokerAPIError("No cash balance returned", account_id=account_id, operation='get_cash_balance')

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """Get quotes for symbols, chunked to the configured batch size and merged"""
        if not symbols:
            return []

        batch_size = self.config.quote_batch_size
        batches = [symbols[i:i + batch_size] for i in range(0, len(symbols), batch_size)]
        self.logger.info(f"Requesting quotes for {len(symbols)} symbols in {len(batches)} batch(es)")

        results = await asyncio.gather(*(self._get_quote_batch(batch) for batch in batches))
        quotes = [quote for batch in results for quote in batch]

        price_results = [f"{q.symbol} -> ${q.bid:.2f}/${q.ask:.2f}" for q in quotes]
        if price_results:
            self.logger.info(f"Retrieved quotes: {', '.join(price_results)}")
        return quotes

    async def _get_quote_batch(self, symbols: List[str]) -> List[Quote]:
        data = await self._request('GET', f"/marketdata/quotes/{','.join(symbols)}", operation='get_quotes')
        response = TSQuoteResponse.model_validate(data)
        self._raise_for_errors(response.errors, 'get_quotes')

        quotes = []
        for ts_quote in response.quotes:
            if not _valid_price(ts_quote.bid) or not _valid_price(ts_quote.ask):
                self.logger.error(f"Missing bid/ask for {ts_quote.symbol} (bid={ts_quote.bid}, ask={ts_quote.ask})")
                raise BrokerAPIError(
                    f"Quote for {ts_quote.symbol} has no usable bid/ask",
                    operation='get_quotes',
                    symbol=ts_quote.symbol
                )
            quotes.append(Quote(
                symbol=ts_quote.symbol,
                bid=ts_quote.bid,
                ask=ts_quote.ask,
                last=ts_quote.last or 0.0
            ))
        return quotes

    async def submit_order_group(self, account_id: str, orders: List[OrderRequest]) -> List[OrderExecutionRecord]:
        """Place all orders as one NORMAL order group"""
        if not orders:
            return []

        body = {
            'Orders': [order_request_to_wire(order) for order in orders],
            'Type': 'NORMAL',
        }
        try:
            data = await self._request('POST', '/orderexecution/ordergroups',
                                       operation='submit_order_group', account_id=account_id, json=body)
        except BrokerAPIError as e:
            raise OrderSubmissionError(e.message, account_id=account_id, operation='submit_order_group') from e

        response = TSOrderResponse.model_validate(data)
        self._raise_for_errors(response.errors, 'submit_order_group', account_id, error_class=OrderSubmissionError)

        if len(response.orders) != len(orders):
            raise OrderSubmissionError(
                f"Broker acknowledged {len(response.orders)} orders for {len(orders)} requests",
                account_id=account_id,
                operation='submit_order_group'
            )

        records = []
        for order, ts_order in zip(orders, response.orders):
            record = _to_execution_record(ts_order)
            if not record.legs:
                record.legs = [OrderLeg(
                    symbol=order.symbol,
                    action=order.action.value,
                    quantity_requested=order.quantity,
                    quantity_filled=0,
                    quantity_remaining=order.quantity
                )]
            if ts_order.status is None:
                record.status = OrderStatus.RECEIVED
            records.append(record)
            self.logger.info(
                f"Placed order {record.order_id}: {order.action.value} {order.quantity} {order.symbol} "
                f"@ ${order.limit_price:.2f}"
            )

        return records

    async def get_order_status(self, account_id: str) -> List[OrderExecutionRecord]:
        """Get today's orders, following NextToken pagination"""
        path = f"/brokerage/accounts/{account_id}/orders"
        records: List[OrderExecutionRecord] = []
        next_token: Optional[str] = None

        while True:
            params = {'nextToken': next_token} if next_token else None
            data = await self._request('GET', path, operation='get_order_status', account_id=account_id, params=params)
            response = TSOrderResponse.model_validate(data)
            self._raise_for_errors(response.errors, 'get_order_status', account_id)

            records.extend(_to_execution_record(order) for order in response.orders)
            next_token = response.next_token
            if not next_token:
                return records


def _valid_price(value: Optional[float]) -> bool:
    return value is not None and value > 0 and not math.isnan(value)


def _to_execution_record(order: TSOrder) -> OrderExecutionRecord:
    return OrderExecutionRecord(
        order_id=order.order_id,
        status=normalize_status(order.status),
        status_description=order.status_description or order.message or "",
        legs=[
            OrderLeg(
                symbol=leg.symbol or "",
                action=leg.buy_or_sell or "",
                quantity_requested=leg.quantity_ordered or 0,
                quantity_filled=leg.exec_quantity or 0,
                quantity_remaining=leg.quantity_remaining or 0
            )
            for leg in order.legs
        ],
        reject_reason=order.reject_reason,
        filled_price=order.filled_price
    )
