from .client import StrategyEngineClient
from .exceptions import StrategyEngineError
from .models import (
    CASH_IDENTIFIER,
    SecurityIdentity,
    Position,
    AllocationTarget,
    Transaction,
    RebalancePlan,
)

__version__ = "1.0.0"

__all__ = [
    "StrategyEngineClient",
    "StrategyEngineError",
    "CASH_IDENTIFIER",
    "SecurityIdentity",
    "Position",
    "AllocationTarget",
    "Transaction",
    "RebalancePlan",
    "__version__",
]
