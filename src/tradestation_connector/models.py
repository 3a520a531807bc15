"""TradeStation v3 wire models.

TradeStation serialises every number as a string and leaves absent values
as empty strings, so the numeric fields here accept "" as missing.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from brokerage_base import OrderRequest, OrderStatus


class TSModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def empty_string_is_missing(cls, v):
        if v == "":
            return None
        return v


class TSError(TSModel):
    account_id: Optional[str] = Field(default=None, alias="AccountID")
    symbol: Optional[str] = Field(default=None, alias="Symbol")
    error: Optional[str] = Field(default=None, alias="Error")
    message: Optional[str] = Field(default=None, alias="Message")

    def describe(self) -> str:
        subject = self.symbol or self.account_id or "request"
        return f"{subject}: {self.message or self.error or 'unknown error'}"


class TSQuote(TSModel):
    symbol: str = Field(alias="Symbol")
    bid: Optional[float] = Field(default=None, alias="Bid")
    ask: Optional[float] = Field(default=None, alias="Ask")
    last: Optional[float] = Field(default=None, alias="Last")


class TSQuoteResponse(TSModel):
    quotes: List[TSQuote] = Field(default_factory=list, alias="Quotes")
    errors: List[TSError] = Field(default_factory=list, alias="Errors")


class TSPosition(TSModel):
    account_id: Optional[str] = Field(default=None, alias="AccountID")
    symbol: str = Field(alias="Symbol")
    quantity: Optional[int] = Field(default=0, alias="Quantity")
    long_short: Optional[str] = Field(default=None, alias="LongShort")
    market_value: Optional[float] = Field(default=None, alias="MarketValue")

    @property
    def signed_quantity(self) -> int:
        quantity = self.quantity or 0
        if self.long_short == "Short" and quantity > 0:
            return -quantity
        return quantity


class TSPositionResponse(TSModel):
    positions: List[TSPosition] = Field(default_factory=list, alias="Positions")
    errors: List[TSError] = Field(default_factory=list, alias="Errors")


class TSBalance(TSModel):
    account_id: Optional[str] = Field(default=None, alias="AccountID")
    cash_balance: Optional[float] = Field(default=None, alias="CashBalance")
    buying_power: Optional[float] = Field(default=None, alias="BuyingPower")
    equity: Optional[float] = Field(default=None, alias="Equity")


class TSBalanceResponse(TSModel):
    balances: List[TSBalance] = Field(default_factory=list, alias="Balances")
    errors: List[TSError] = Field(default_factory=list, alias="Errors")


class TSOrderLeg(TSModel):
    symbol: Optional[str] = Field(default=None, alias="Symbol")
    buy_or_sell: Optional[str] = Field(default=None, alias="BuyOrSell")
    quantity_ordered: Optional[int] = Field(default=0, alias="QuantityOrdered")
    exec_quantity: Optional[int] = Field(default=0, alias="ExecQuantity")
    quantity_remaining: Optional[int] = Field(default=0, alias="QuantityRemaining")


class TSOrder(TSModel):
    order_id: str = Field(alias="OrderID")
    status: Optional[str] = Field(default=None, alias="Status")
    status_description: Optional[str] = Field(default=None, alias="StatusDescription")
    message: Optional[str] = Field(default=None, alias="Message")
    legs: List[TSOrderLeg] = Field(default_factory=list, alias="Legs")
    reject_reason: Optional[str] = Field(default=None, alias="RejectReason")
    filled_price: Optional[float] = Field(default=None, alias="FilledPrice")

    @field_validator("legs", mode="before")
    @classmethod
    def null_legs(cls, v):
        return v or []


class TSOrderResponse(TSModel):
    orders: List[TSOrder] = Field(default_factory=list, alias="Orders")
    errors: List[TSError] = Field(default_factory=list, alias="Errors")
    next_token: Optional[str] = Field(default=None, alias="NextToken")

    @field_validator("orders", "errors", mode="before")
    @classmethod
    def null_lists(cls, v):
        return v or []


# TradeStation status codes -> normalized statuses
STATUS_CODES = {
    "ACK": OrderStatus.RECEIVED,
    "DON": OrderStatus.RECEIVED,
    "OPN": OrderStatus.OPEN,
    "CND": OrderStatus.OPEN,
    "OSO": OrderStatus.OPEN,
    "SUS": OrderStatus.OPEN,
    "UCH": OrderStatus.OPEN,
    "RSN": OrderStatus.OPEN,
    "RJC": OrderStatus.OPEN,
    # partial fill with the remainder cancelled (UROut); the order is done
    "FLP": OrderStatus.CANCELED,
    "FPR": OrderStatus.PARTIALLY_FILLED,
    "UCN": OrderStatus.PENDING_CANCEL,
    "LAT": OrderStatus.PENDING_CANCEL,
    "FLL": OrderStatus.FILLED,
    "CAN": OrderStatus.CANCELED,
    "TSC": OrderStatus.CANCELED,
    "OUT": OrderStatus.CANCELED,
    "REJ": OrderStatus.REJECTED,
    "EXP": OrderStatus.EXPIRED,
    "BRO": OrderStatus.BROKEN,
}


def normalize_status(code: Optional[str]) -> str:
    if not code:
        return OrderStatus.UNKNOWN
    return STATUS_CODES.get(code.upper(), OrderStatus.UNKNOWN)


def order_request_to_wire(order: OrderRequest) -> dict:
    """Render an order request the way /orderexecution expects it."""
    return {
        "AccountID": order.account_id,
        "Symbol": order.symbol,
        "Quantity": f"{order.quantity:d}",
        "OrderType": order.order_type.value,
        "LimitPrice": f"{order.limit_price:.2f}",
        "TradeAction": order.action.value,
        "TimeInForce": {"Duration": order.time_in_force.value},
    }
