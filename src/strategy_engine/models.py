from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

CASH_IDENTIFIER = "$CASH"


class SecurityIdentity(BaseModel):
    """Entry of the strategy engine's security directory"""
    model_config = ConfigDict(populate_by_name=True)

    security_identifier: str = Field(alias="compositeFigi", min_length=1)
    ticker: str = Field(default="")


class Position(BaseModel):
    """Holding expressed in strategy engine terms, quantity signed"""
    model_config = ConfigDict(populate_by_name=True)

    security_identifier: str = Field(serialization_alias="CompositeFIGI")
    broker_symbol: str = Field(default="", exclude=True)
    ticker: str = Field(default="", serialization_alias="Ticker")
    share_quantity: float = Field(serialization_alias="Shares")

    @classmethod
    def cash(cls, balance: float) -> "Position":
        return cls(security_identifier=CASH_IDENTIFIER, ticker=CASH_IDENTIFIER, share_quantity=balance)

    @property
    def is_cash(self) -> bool:
        return self.security_identifier == CASH_IDENTIFIER


class AllocationTarget(BaseModel):
    """Target weights keyed by security identifier; remainder is cash"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: Optional[str] = Field(default=None, alias="Date")
    members: Dict[str, float] = Field(default_factory=dict, alias="Members")

    @field_validator("members", mode="before")
    @classmethod
    def null_members(cls, v):
        return v or {}


class Transaction(BaseModel):
    """One planned trade as returned by the engine"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    security_identifier: str = Field(default="", alias="CompositeFIGI")
    ticker: str = Field(default="", alias="Ticker")
    kind: str = Field(default="", alias="Kind")
    shares: float = Field(default=0.0, alias="Shares")
    price_per_share: float = Field(default=0.0, alias="PricePerShare")
    total_value: float = Field(default=0.0, alias="TotalValue")
    date: Optional[str] = Field(default=None, alias="Date")
    memo: Optional[str] = Field(default=None, alias="Memo")

    # Filled in locally during planning
    broker_symbol: str = ""
    reference_price: float = 0.0

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        return v.upper() if isinstance(v, str) else v


class RebalancePlan(BaseModel):
    """Engine response for one rebalance request"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    allocation: AllocationTarget = Field(default_factory=AllocationTarget, alias="Allocation")
    next_trade_date: Optional[str] = Field(default=None, alias="NextTradeDate")
    transactions: List[Transaction] = Field(default_factory=list, alias="Transactions")

    @field_validator("allocation", mode="before")
    @classmethod
    def null_allocation(cls, v):
        return v or {}

    @field_validator("transactions", mode="before")
    @classmethod
    def null_transactions(cls, v):
        return v or []
