"""Transaction exception hierarchy.

All lifecycle errors inherit from TransactionError, which carries the
offending transaction_id so callers can recover without parsing messages.
"""


class TransactionError(Exception):
    """Base exception for transaction lifecycle errors."""

    def __init__(self, message: str, transaction_id: str) -> None:
        self.message = message
        self.transaction_id = transaction_id
        super().__init__(message)


class DuplicateTransactionError(TransactionError):
    """Raised when opening a transaction whose id is already open."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            f"Transaction {transaction_id} already exists", transaction_id
        )


class TransactionNotFoundError(TransactionError):
    """Raised when appending to or flushing a transaction that is not open."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction {transaction_id} not found", transaction_id)
