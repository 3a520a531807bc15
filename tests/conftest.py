"""Shared fixtures: in-memory brokerage and strategy engine."""

import itertools
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from brokerage_base import (
    AccountPosition,
    BrokerAPIError,
    BrokerClient,
    OrderAction,
    OrderExecutionRecord,
    OrderLeg,
    OrderRequest,
    OrderStatus,
    Quote,
)
from rebalance_sync import ConfirmationProvider
from strategy_engine import (
    AllocationTarget,
    Position,
    RebalancePlan,
    SecurityIdentity,
    StrategyEngineError,
    Transaction,
)
from sync_config import AppConfig, ExecutionConfig, SyncTarget

AAPL_FIGI = "BBG000B9XRY4"
MSFT_FIGI = "BBG000BPH459"
BRK_B_FIGI = "BBG000DWG505"
BRK_A_FIGI = "BBG000DWCFL4"

DIRECTORY = {
    "AAPL": SecurityIdentity(compositeFigi=AAPL_FIGI, ticker="AAPL"),
    "MSFT": SecurityIdentity(compositeFigi=MSFT_FIGI, ticker="MSFT"),
    "BRK/B": SecurityIdentity(compositeFigi=BRK_B_FIGI, ticker="BRK/B"),
    "BRK/A": SecurityIdentity(compositeFigi=BRK_A_FIGI, ticker="BRK/A"),
}


class FakeBrokerage(BrokerClient):
    """
    Brokerage that fills orders immediately according to fill_policy.

    fill_policy(order) returns the number of shares filled; a partial fill
    leaves the order EXPIRED, as a DAY limit order would be at the close.
    """

    def __init__(self, positions: Optional[Dict[str, int]] = None, cash: float = 0.0,
                 quotes: Optional[Dict[str, Tuple[float, float]]] = None,
                 fill_policy: Optional[Callable[[OrderRequest], int]] = None):
        self.positions = dict(positions or {})
        self.cash = cash
        self.quotes = dict(quotes or {})
        self.fill_policy = fill_policy or (lambda order: order.quantity)
        self.submit_error: Optional[Exception] = None
        self.submitted: List[List[OrderRequest]] = []
        self.quote_requests: List[List[str]] = []
        self.status_polls = 0
        self._orders: Dict[str, OrderExecutionRecord] = {}
        self._ids = itertools.count(1)
        self.connected = False

    async def connect(self) -> bool:
        self.connected = True
        return True

    async def disconnect(self):
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    async def list_positions(self, account_id: str) -> List[AccountPosition]:
        return [
            AccountPosition(symbol=symbol, quantity=quantity)
            for symbol, quantity in sorted(self.positions.items())
            if quantity != 0
        ]

    async def get_cash_balance(self, account_id: str) -> float:
        return self.cash

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        self.quote_requests.append(list(symbols))
        missing = [s for s in symbols if s not in self.quotes]
        if missing:
            raise BrokerAPIError(f"Invalid symbol {missing[0]}", operation="get_quotes", symbol=missing[0])
        return [Quote(symbol=s, bid=self.quotes[s][0], ask=self.quotes[s][1]) for s in symbols]

    async def submit_order_group(self, account_id: str, orders: List[OrderRequest]) -> List[OrderExecutionRecord]:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(list(orders))

        records = []
        for order in orders:
            order_id = f"ORD{next(self._ids)}"
            filled = min(self.fill_policy(order), order.quantity)
            if order.action == OrderAction.BUY:
                self.positions[order.symbol] = self.positions.get(order.symbol, 0) + filled
                self.cash -= filled * order.limit_price
            else:
                self.positions[order.symbol] = self.positions.get(order.symbol, 0) - filled
                self.cash += filled * order.limit_price

            self._orders[order_id] = OrderExecutionRecord(
                order_id=order_id,
                status=OrderStatus.FILLED if filled == order.quantity else OrderStatus.EXPIRED,
                legs=[OrderLeg(
                    symbol=order.symbol,
                    action=order.action.value,
                    quantity_requested=order.quantity,
                    quantity_filled=filled,
                    quantity_remaining=order.quantity - filled
                )]
            )
            records.append(OrderExecutionRecord(
                order_id=order_id,
                status=OrderStatus.RECEIVED,
                legs=[OrderLeg(
                    symbol=order.symbol,
                    action=order.action.value,
                    quantity_requested=order.quantity,
                    quantity_remaining=order.quantity
                )]
            ))
        return records

    async def get_order_status(self, account_id: str) -> List[OrderExecutionRecord]:
        self.status_polls += 1
        return list(self._orders.values())


class FakeStrategyEngine:
    """
    Strategy engine with a fixed security directory.

    plan(positions, prices) returns the engine's transaction list as wire
    dicts; it defaults to "nothing to do".
    """

    def __init__(self, allocation: Optional[Dict[str, float]] = None,
                 plan: Optional[Callable[[List[Position], Dict[str, float]], List[dict]]] = None,
                 directory: Optional[Dict[str, SecurityIdentity]] = None,
                 next_trade_date: Optional[str] = None):
        self.allocation = dict(allocation or {})
        self.plan = plan or (lambda positions, prices: [])
        self.directory = dict(DIRECTORY if directory is None else directory)
        self.next_trade_date = next_trade_date
        self.resolve_calls: List[str] = []
        self.rebalance_calls: List[dict] = []
        self.rebalance_error: Optional[Exception] = None

    async def resolve_security(self, query: str) -> SecurityIdentity:
        self.resolve_calls.append(query)
        if query in self.directory:
            return self.directory[query]
        for identity in self.directory.values():
            if identity.security_identifier == query:
                return identity
        raise StrategyEngineError("Strategy engine returned status 404: not found",
                                  operation="resolve_security", security=query, status=404)

    async def rebalance(self, portfolio_id: str, allocation_only: bool,
                        positions: List[Position], prices: Dict[str, float]) -> RebalancePlan:
        self.rebalance_calls.append({
            "portfolio_id": portfolio_id,
            "allocation_only": allocation_only,
            "positions": list(positions),
            "prices": dict(prices),
        })
        if self.rebalance_error is not None:
            raise self.rebalance_error

        if allocation_only:
            return RebalancePlan(allocation=AllocationTarget(members=self.allocation))
        return RebalancePlan(
            allocation=AllocationTarget(members=self.allocation),
            next_trade_date=self.next_trade_date,
            transactions=[Transaction.model_validate(t) for t in self.plan(positions, prices)]
        )

    def plan_calls(self) -> List[dict]:
        return [call for call in self.rebalance_calls if not call["allocation_only"]]


class ScriptedConfirmation(ConfirmationProvider):
    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts = []

    async def confirm(self, orders, ledger) -> bool:
        self.prompts.append((list(orders), ledger.balance))
        return self.answer


def trx(kind: str, figi: str, ticker: str, shares: float, price: float) -> dict:
    """Transaction in the engine's wire form."""
    return {
        "CompositeFIGI": figi,
        "Ticker": ticker,
        "Kind": kind,
        "Shares": shares,
        "PricePerShare": price,
        "TotalValue": shares * price,
    }


def held(positions: List[Position], figi: str) -> float:
    return sum(p.share_quantity for p in positions if p.security_identifier == figi)


@pytest.fixture
def app_config():
    """Configuration with no waiting between polls."""
    return AppConfig(execution=ExecutionConfig(
        max_iterations=3,
        initial_wait_seconds=0,
        poll_interval_seconds=0,
        monitoring_timeout_seconds=0,
        max_sync_duration_seconds=3600,
    ))


@pytest.fixture
def sync_target():
    return SyncTarget(portfolio_id="pf-123", account_id="SIM123456")
