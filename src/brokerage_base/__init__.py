from .base_client import BrokerClient
from .models import (
    # Market data models
    Quote,
    AccountPosition,
    # Order models
    OrderAction,
    OrderType,
    TimeInForce,
    OrderRequest,
    OrderLeg,
    OrderExecutionRecord,
    OrderStatus,
)
from .exceptions import (
    BrokerError,
    BrokerConnectionError,
    BrokerAPIError,
    OrderSubmissionError,
)

__version__ = "1.0.0"

__all__ = [
    "BrokerClient",
    "Quote",
    "AccountPosition",
    "OrderAction",
    "OrderType",
    "TimeInForce",
    "OrderRequest",
    "OrderLeg",
    "OrderExecutionRecord",
    "OrderStatus",
    "BrokerError",
    "BrokerConnectionError",
    "BrokerAPIError",
    "OrderSubmissionError",
    "__version__",
]
