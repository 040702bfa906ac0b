"""
Error types raised by the casino core.
"""
from typing import Optional


class CasinoError(Exception):
    """Base class for recoverable casino errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CasinoError):
    """Malformed bet, out-of-range parameter or unknown bet type."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class InsufficientFundsError(CasinoError):
    """Debit larger than the current balance."""

    def __init__(self, balance: int, required: int):
        super().__init__(f"Insufficient balance. Required: {required}, Available: {balance}")
        self.balance = balance
        self.required = required


class PolicyError(CasinoError):
    """Operation refused by configuration (game disabled, transfers off, cooldowns)."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after  # seconds until the operation is allowed again


class NotFoundError(CasinoError):
    """Unknown user, game type or round."""


class InvariantViolation(Exception):
    """Ledger or statistics state is inconsistent. Never caught by the core."""
