from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class OrderAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    LIMIT = "Limit"
    MARKET = "Market"


class TimeInForce(str, Enum):
    DAY = "DAY"
    GOOD_TILL_CANCELLED = "GTC"


# Market data models
class Quote(BaseModel):
    """Standardized bid/ask quote"""
    symbol: str
    bid: float
    ask: float
    last: float = 0.0

    @property
    def midpoint(self) -> float:
        return self.bid + (self.ask - self.bid) / 2


class AccountPosition(BaseModel):
    """Standardized position data, quantity signed (negative for short)"""
    symbol: str
    quantity: int
    market_value: float = 0.0


# Order models
class OrderRequest(BaseModel):
    """Broker-native limit order for one security"""
    account_id: str
    symbol: str
    action: OrderAction
    order_type: OrderType = OrderType.LIMIT
    quantity: int = Field(ge=0)
    limit_price: float
    time_in_force: TimeInForce = TimeInForce.DAY

    @property
    def notional(self) -> float:
        return self.limit_price * self.quantity


class OrderLeg(BaseModel):
    """One security-level component of a broker order"""
    symbol: str
    action: str
    quantity_requested: int = 0
    quantity_filled: int = 0
    quantity_remaining: int = 0


class OrderExecutionRecord(BaseModel):
    """Broker view of a submitted order; only the broker mutates it"""
    order_id: str
    status: str = "RECEIVED"
    status_description: str = ""
    legs: List[OrderLeg] = Field(default_factory=list)
    reject_reason: Optional[str] = None
    filled_price: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.TERMINAL


class OrderStatus:
    """Normalized order statuses across brokers"""
    RECEIVED = "RECEIVED"
    OPEN = "OPEN"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    PENDING_CANCEL = "PENDING_CANCEL"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    BROKEN = "BROKEN"
    UNKNOWN = "UNKNOWN"

    TERMINAL = frozenset({FILLED, CANCELED, REJECTED, EXPIRED, BROKEN})
