from abc import ABC, abstractmethod
from typing import List
from .models import AccountPosition, Quote, OrderRequest, OrderExecutionRecord


class BrokerClient(ABC):
    """Abstract base class for broker API clients"""

    @abstractmethod
    async def connect(self) -> bool:
        """Establish connection to broker"""
        pass

    @abstractmethod
    async def disconnect(self):
        """Close connection to broker"""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if connected to broker"""
        pass

    @abstractmethod
    async def list_positions(self, account_id: str) -> List[AccountPosition]:
        """Get current non-zero positions for account"""
        pass

    @abstractmethod
    async def get_cash_balance(self, account_id: str) -> float:
        """Get the account's current cash balance"""
        pass

    @abstractmethod
    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """Get bid/ask quotes for symbols; any per-symbol error fails the whole call"""
        pass

    @abstractmethod
    async def submit_order_group(
        self,
        account_id: str,
        orders: List[OrderRequest]
    ) -> List[OrderExecutionRecord]:
        """Submit orders as one group; records are returned in request order"""
        pass

    @abstractmethod
    async def get_order_status(self, account_id: str) -> List[OrderExecutionRecord]:
        """Get today's orders for account"""
        pass

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.disconnect()
