"""
Exception types raised by the analyzers and stores.
"""


class UPIShieldError(Exception):
    """Base class for all UPIShield errors."""


class TransactionValidationError(UPIShieldError, ValueError):
    """Candidate payment failed input validation (amount, UPI id, hour)."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DependencyError(UPIShieldError):
    """A collaborator (blacklist, history, profile, contacts) could not be read."""

    def __init__(self, dependency: str, message: str):
        super().__init__(f"{dependency}: {message}")
        self.dependency = dependency
