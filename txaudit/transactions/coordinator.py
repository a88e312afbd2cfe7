"""Coordinator: registry of open transactions and owner of the audit backend.

Every appended segment produces a stand-alone entry (``audit=False``) right
away; flushing a transaction produces one consolidated entry
(``audit=True``) and forgets the transaction id so it can be reused.
"""

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from structlog.types import Processor, WrappedLogger

from txaudit.config.settings import Settings
from txaudit.observability.logging import (
    Hook,
    HookDispatcher,
    LogFormat,
    build_backend_logger,
    get_logger,
)
from txaudit.segments.base import ERROR_FIELD, Segment
from txaudit.transactions.exceptions import (
    DuplicateTransactionError,
    TransactionNotFoundError,
)
from txaudit.transactions.models import Transaction

logger = get_logger(__name__)

AUDIT_FIELD = "audit"
SEGMENT_EVENT = "segment"
TRANSACTION_EVENT = "transaction"

# Set by the coordinator or its processors; default fields may not use them
RESERVED_FIELDS: frozenset[str] = frozenset({
    "event",
    "level",
    "timestamp",
    AUDIT_FIELD,
    ERROR_FIELD,
    "segment.type",
    "segment.data",
    "transaction.id",
    "transaction.elapsed_ms",
    "transaction.segments",
})


class Coordinator:
    """Groups segments under named transactions and emits audit entries.

    Construct one per application and share it between threads. All
    operations reference transactions by id.

    Args:
        log_format: "json", "console" or a structlog renderer processor
        hooks: Observers called with ``(level, fields)`` for every entry
        default_fields: Fields merged into every entry
        escalate_failed_segments: Log the consolidated entry as error when
            any of its segments failed
        include_segments: Summarize segments inside the consolidated entry
        redact_pii: Mask sensitive keys and values
        level: Minimum level emitted by the backend
        logger_factory: Returns the sink wrapped by the backend logger
    """

    def __init__(
        self,
        *,
        log_format: LogFormat | Processor = "json",
        hooks: Iterable[Hook] = (),
        default_fields: Mapping[str, Any] | None = None,
        escalate_failed_segments: bool = True,
        include_segments: bool = True,
        redact_pii: bool = True,
        level: str = "INFO",
        logger_factory: Callable[[], WrappedLogger] | None = None,
    ) -> None:
        self._hooks = HookDispatcher(hooks)
        self._backend = build_backend_logger(
            log_format=log_format,
            hooks=self._hooks,
            redact_pii=redact_pii,
            level=level,
            logger_factory=logger_factory,
        )
        self._default_fields: dict[str, Any] = {}
        self._transactions: dict[str, Transaction] = {}
        self._lock = threading.Lock()
        self.escalate_failed_segments = escalate_failed_segments
        self.include_segments = include_segments

        self.add_default_fields(default_fields or {})
        # Tells consolidated entries apart from per-segment ones
        self._default_fields[AUDIT_FIELD] = True

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        hooks: Iterable[Hook] = (),
        logger_factory: Callable[[], WrappedLogger] | None = None,
    ) -> "Coordinator":
        """Build a coordinator from loaded configuration."""
        return cls(
            log_format=settings.logging.format,
            hooks=hooks,
            default_fields={"app": settings.app_name, **settings.audit.default_fields},
            escalate_failed_segments=settings.audit.escalate_failed_segments,
            include_segments=settings.audit.include_segments,
            redact_pii=settings.logging.redact_pii,
            level=settings.logging.level,
            logger_factory=logger_factory,
        )

    @property
    def default_fields(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._default_fields)

    def add_default_fields(self, fields: Mapping[str, Any]) -> None:
        """Merge fields into every future entry.

        Transactions already open keep the fields they were opened with.

        Raises:
            ValueError: If a key is one of RESERVED_FIELDS
        """
        reserved = sorted(RESERVED_FIELDS.intersection(fields))
        if reserved:
            raise ValueError(f"Reserved field names cannot be defaults: {reserved}")
        with self._lock:
            self._default_fields.update(fields)

    def add_hook(self, hook: Hook) -> None:
        """Register an observer for every future entry."""
        self._hooks.add(hook)

    def open_transaction(self, transaction_id: str) -> None:
        """Open a new transaction.

        Raises:
            DuplicateTransactionError: If the id is already open
        """
        with self._lock:
            if transaction_id in self._transactions:
                raise DuplicateTransactionError(transaction_id)
            self._transactions[transaction_id] = Transaction(
                transaction_id, self._default_fields
            )
        logger.debug("transaction_opened", transaction_id=transaction_id)

    def append_segment(self, transaction_id: str, segment: Segment) -> None:
        """Log a segment on its own and record it in the transaction.

        The stand-alone entry is written before the id is resolved, so raw
        events are never lost even when the id is wrong.

        Raises:
            TransactionNotFoundError: If the id is not open
        """
        self._emit_segment(segment)
        self._get(transaction_id).append(segment)

    def fail_transaction(self, transaction_id: str, error: BaseException | str) -> None:
        """Attach an error to the transaction's consolidated entry.

        Raises:
            TransactionNotFoundError: If the id is not open
        """
        self._get(transaction_id).bind(**{ERROR_FIELD: str(error)})

    def flush_transaction(self, transaction_id: str) -> Transaction:
        """Close a transaction and emit its consolidated audit entry.

        Returns:
            The closed transaction, for inspecting its segments

        Raises:
            TransactionNotFoundError: If the id is not open
        """
        with self._lock:
            transaction = self._transactions.pop(transaction_id, None)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)

        transaction.close()
        self._emit_transaction(transaction)
        logger.debug(
            "transaction_flushed",
            transaction_id=transaction_id,
            segments=len(transaction),
        )
        return transaction

    def segments(self, transaction_id: str) -> tuple[Segment, ...]:
        """Segments appended so far to an open transaction.

        Raises:
            TransactionNotFoundError: If the id is not open
        """
        return self._get(transaction_id).segments

    def is_open(self, transaction_id: str) -> bool:
        with self._lock:
            return transaction_id in self._transactions

    @contextmanager
    def transaction(self, transaction_id: str) -> Iterator[str]:
        """Open a transaction for the duration of a block.

        An exception escaping the block is bound as the transaction error
        and re-raised; the transaction is flushed either way unless the
        block already flushed it.
        """
        self.open_transaction(transaction_id)
        try:
            yield transaction_id
        except Exception as exc:
            if self.is_open(transaction_id):
                self.fail_transaction(transaction_id, exc)
            raise
        finally:
            if self.is_open(transaction_id):
                self.flush_transaction(transaction_id)

    def _get(self, transaction_id: str) -> Transaction:
        with self._lock:
            transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    def _emit_segment(self, segment: Segment) -> None:
        fields = {
            "segment.type": segment.classify(),
            "segment.data": segment.fields(),
            **self.default_fields,
            AUDIT_FIELD: False,
        }
        if segment.has_failed():
            self._backend.error(SEGMENT_EVENT, **fields)
        else:
            self._backend.info(SEGMENT_EVENT, **fields)

    def _emit_transaction(self, transaction: Transaction) -> None:
        fields = transaction.context
        fields["transaction.id"] = transaction.id
        fields["transaction.elapsed_ms"] = transaction.elapsed_ms
        if self.include_segments:
            fields["transaction.segments"] = transaction.summary()

        failed = transaction.has_error() or (
            self.escalate_failed_segments and transaction.has_failed_segments()
        )
        if failed:
            self._backend.error(TRANSACTION_EVENT, **fields)
        else:
            self._backend.info(TRANSACTION_EVENT, **fields)
