from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from brokerage_base import OrderAction


class PriceSnapshot(BaseModel):
    """Reference price per security identifier, taken once per planning pass"""
    prices: Dict[str, float] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=datetime.now)

    def price_of(self, security_identifier: str) -> Optional[float]:
        return self.prices.get(security_identifier)

    def __contains__(self, security_identifier: str) -> bool:
        return security_identifier in self.prices


class CashLedger:
    """Running cash figure used while sizing one order set; display only"""

    def __init__(self, balance: float):
        self.starting_balance = balance
        self.balance = balance

    def debit(self, amount: float):
        self.balance -= amount

    def credit(self, amount: float):
        self.balance += amount

    def record(self, action: OrderAction, notional: float):
        if action == OrderAction.BUY:
            self.debit(notional)
        else:
            self.credit(notional)


class SyncState(str, Enum):
    PLANNING = "PLANNING"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    SUBMITTING = "SUBMITTING"
    MONITORING = "MONITORING"
    PARTIAL_REPLAN = "PARTIAL_REPLAN"
    CONVERGED = "CONVERGED"
    ABORTED = "ABORTED"


class AbortReason(str, Enum):
    NOT_CONFIRMED = "not confirmed"
    DID_NOT_CONVERGE = "did not converge"


class LegResult(BaseModel):
    """Observed outcome of one submitted leg after monitoring"""
    order_id: str
    symbol: str
    action: OrderAction
    quantity_requested: int
    quantity_filled: int = 0
    status: str = "UNKNOWN"
    limit_price: float = 0.0

    @property
    def remainder(self) -> int:
        return max(self.quantity_requested - self.quantity_filled, 0)


class SyncOutcome(BaseModel):
    """Structured result of one sync invocation"""
    account_id: str
    portfolio_id: str
    final_state: SyncState
    abort_reason: Optional[AbortReason] = None
    iterations: int = 0
    state_history: List[SyncState] = Field(default_factory=list)
    legs: List[LegResult] = Field(default_factory=list)
    remainders: Dict[str, int] = Field(default_factory=dict)
    next_trade_date: Optional[str] = None

    @property
    def converged(self) -> bool:
        return self.final_state == SyncState.CONVERGED

    @property
    def total_filled(self) -> int:
        return sum(leg.quantity_filled for leg in self.legs)
