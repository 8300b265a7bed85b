"""Transaction repository package."""

from fintrack.repository.transactions import (
    TransactionRepository,
    filter_transactions,
    new_transaction_id,
)

__all__ = ["TransactionRepository", "filter_transactions", "new_transaction_id"]
