from .controller import ExecutionController
from .identity_resolver import SecurityIdentityResolver
from .price_snapshot import PriceSnapshotProvider
from .allocation_planner import AllocationPlanner
from .order_sizer import OrderSizer
from .monitor import OrderMonitor
from .confirmation import ConfirmationProvider, AutoConfirm, TerminalConfirmation
from .models import (
    PriceSnapshot,
    CashLedger,
    SyncState,
    AbortReason,
    LegResult,
    SyncOutcome,
)
from .exceptions import SyncError, ResolutionError, PlanRequestError

__version__ = "1.0.0"

__all__ = [
    "ExecutionController",
    "SecurityIdentityResolver",
    "PriceSnapshotProvider",
    "AllocationPlanner",
    "OrderSizer",
    "OrderMonitor",
    "ConfirmationProvider",
    "AutoConfirm",
    "TerminalConfirmation",
    "PriceSnapshot",
    "CashLedger",
    "SyncState",
    "AbortReason",
    "LegResult",
    "SyncOutcome",
    "SyncError",
    "ResolutionError",
    "PlanRequestError",
    "__version__",
]
