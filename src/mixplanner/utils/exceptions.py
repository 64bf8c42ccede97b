"""
Custom exception classes for the mix planner.
"""
from typing import Iterable


class MixPlannerException(Exception):
    """Base exception for the mix planner."""
    pass


class InvalidInputError(MixPlannerException, ValueError):
    """Raised when a caller passes a value outside an operation's contract.

    Covers negative spend or auxiliary amounts, non-positive horizons,
    out-of-range grid steps and negative budgets.
    """

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class UnknownDomainError(MixPlannerException, LookupError):
    """Raised when a domain name is not in the registry."""

    def __init__(self, domain: str, available: Iterable[str] = ()):
        self.domain = domain
        self.available = sorted(available)
        message = f"Unknown domain: {domain!r}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class ConfigurationError(MixPlannerException):
    """Raised when domain parameters or model configuration are malformed."""
    pass


InvalidInput = InvalidInputError
UnknownDomain = UnknownDomainError
