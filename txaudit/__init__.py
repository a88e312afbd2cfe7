"""txaudit: transaction-scoped structured audit logging.

Usage:
    from txaudit import Coordinator, SQLSegment

    coordinator = Coordinator(default_fields={"environment": "prod"})
    coordinator.open_transaction("order-42")

    segment = SQLSegment("postgresql", "UPDATE orders SET paid = true")
    ...
    segment.finalize()
    coordinator.append_segment("order-42", segment)

    coordinator.flush_transaction("order-42")
"""

from txaudit.segments import (
    HTTPSegment,
    Segment,
    ServerSegment,
    SQLSegment,
    TimedSegment,
)
from txaudit.transactions import (
    Coordinator,
    DuplicateTransactionError,
    Transaction,
    TransactionError,
    TransactionNotFoundError,
)

__all__ = [
    "Coordinator",
    "Transaction",
    "TransactionError",
    "DuplicateTransactionError",
    "TransactionNotFoundError",
    "Segment",
    "TimedSegment",
    "HTTPSegment",
    "ServerSegment",
    "SQLSegment",
]
