"""Transaction: an ordered, lock-guarded collection of segments."""

import threading
import time
from typing import Any

from txaudit.segments.base import ERROR_FIELD, Segment
from txaudit.transactions.exceptions import TransactionNotFoundError


class Transaction:
    """A named unit of work grouping segments for one audit entry.

    Transactions are created and driven by the Coordinator; the segment
    list is append-only and safe for concurrent appends.
    """

    def __init__(self, transaction_id: str, context: dict[str, Any]) -> None:
        self.id = transaction_id
        self._context = dict(context)
        self._segments: list[Segment] = []
        self._lock = threading.Lock()
        self._start = time.monotonic()
        self._closed = False

    @property
    def segments(self) -> tuple[Segment, ...]:
        """Segments in append order."""
        with self._lock:
            return tuple(self._segments)

    @property
    def context(self) -> dict[str, Any]:
        """Fields bound to the consolidated entry."""
        with self._lock:
            return dict(self._context)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def append(self, segment: Segment) -> None:
        """Append a segment.

        Raises:
            TransactionNotFoundError: If the transaction was already closed
        """
        with self._lock:
            if self._closed:
                raise TransactionNotFoundError(self.id)
            self._segments.append(segment)

    def close(self) -> None:
        """Refuse further appends; segments already appended are final."""
        with self._lock:
            self._closed = True

    def bind(self, **fields: Any) -> None:
        """Merge fields into the consolidated entry's context."""
        with self._lock:
            self._context.update(fields)

    def has_error(self) -> bool:
        """Whether the transaction context itself carries an error."""
        with self._lock:
            return ERROR_FIELD in self._context

    def has_failed_segments(self) -> bool:
        return any(segment.has_failed() for segment in self.segments)

    def summary(self) -> list[dict[str, Any]]:
        """Type and data of each segment, for the consolidated entry."""
        return [
            {"type": segment.classify(), "data": segment.fields()}
            for segment in self.segments
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._segments)

    def __repr__(self) -> str:
        return f"Transaction(id={self.id!r}, segments={len(self)})"
