"""Transaction lifecycle: open, append segments, flush into an audit entry."""

from txaudit.transactions.coordinator import Coordinator
from txaudit.transactions.exceptions import (
    DuplicateTransactionError,
    TransactionError,
    TransactionNotFoundError,
)
from txaudit.transactions.models import Transaction

__all__ = [
    "Coordinator",
    "Transaction",
    "TransactionError",
    "DuplicateTransactionError",
    "TransactionNotFoundError",
]
