"""Transaction validation package."""

from fintrack.validation.validator import (
    TransactionValidationError,
    TransactionValidator,
)

__all__ = ["TransactionValidationError", "TransactionValidator"]
