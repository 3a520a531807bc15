from .client import TradeStationClient
from .models import normalize_status, order_request_to_wire

__version__ = "1.0.0"

__all__ = [
    "TradeStationClient",
    "normalize_status",
    "order_request_to_wire",
    "__version__",
]
