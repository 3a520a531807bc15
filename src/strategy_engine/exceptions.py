from typing import Optional


class StrategyEngineError(Exception):
    """Raised when the strategy engine is unreachable or returns an unusable response"""

    def __init__(self, message: str, operation: Optional[str] = None,
                 security: Optional[str] = None, portfolio_id: Optional[str] = None,
                 status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.security = security
        self.portfolio_id = portfolio_id
        self.status = status

    def __str__(self) -> str:
        context = [
            f"{key}={value}"
            for key, value in (("operation", self.operation),
                               ("portfolio_id", self.portfolio_id),
                               ("security", self.security),
                               ("status", self.status))
            if value
        ]
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message
