from typing import Optional


class BrokerError(Exception):
    """Base class for brokerage failures, carrying the call context"""

    def __init__(self, message: str, account_id: Optional[str] = None,
                 operation: Optional[str] = None, symbol: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.account_id = account_id
        self.operation = operation
        self.symbol = symbol

    def __str__(self) -> str:
        context = [
            f"{key}={value}"
            for key, value in (("operation", self.operation),
                               ("account_id", self.account_id),
                               ("symbol", self.symbol))
            if value
        ]
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class BrokerConnectionError(BrokerError):
    """Raised when the broker session cannot be established"""
    pass


class BrokerAPIError(BrokerError):
    """Raised when broker API returns an error"""
    pass


class OrderSubmissionError(BrokerAPIError):
    """Raised when an order group is refused by the broker"""
    pass
