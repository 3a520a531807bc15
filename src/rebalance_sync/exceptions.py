from typing import Optional


class SyncError(Exception):
    """Base class for fatal sync failures, carrying the context needed to diagnose them"""

    def __init__(self, message: str, account_id: Optional[str] = None,
                 security: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.account_id = account_id
        self.security = security
        self.operation = operation

    def __str__(self) -> str:
        context = [
            f"{key}={value}"
            for key, value in (("operation", self.operation),
                               ("account_id", self.account_id),
                               ("security", self.security))
            if value
        ]
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ResolutionError(SyncError):
    """A security or its price could not be resolved; no order may be built"""
    pass


class PlanRequestError(SyncError):
    """The strategy engine could not produce a usable plan"""
    pass
