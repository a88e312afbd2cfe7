"""Tests for the Transaction model."""

import pytest

from tests.factories import SegmentFactory
from txaudit.transactions import Transaction, TransactionNotFoundError


class TestTransaction:
    """Tests for Transaction."""

    def test_starts_empty(self) -> None:
        transaction = Transaction("tx1", {"audit": True})
        assert transaction.segments == ()
        assert len(transaction) == 0

    def test_context_is_copied(self) -> None:
        """Changes to the source mapping do not affect the transaction."""
        context = {"audit": True}
        transaction = Transaction("tx1", context)
        context["later"] = 1

        assert transaction.context == {"audit": True}

    def test_bind_merges_fields(self) -> None:
        transaction = Transaction("tx1", {"audit": True})
        transaction.bind(error="failed", user="u1")

        assert transaction.context == {"audit": True, "error": "failed", "user": "u1"}
        assert transaction.has_error()

    def test_has_failed_segments(self) -> None:
        transaction = Transaction("tx1", {})
        transaction.append(SegmentFactory.create())
        assert not transaction.has_failed_segments()

        transaction.append(SegmentFactory.create(failed=True))
        assert transaction.has_failed_segments()
        assert not transaction.has_error()

    def test_summary(self) -> None:
        transaction = Transaction("tx1", {})
        transaction.append(SegmentFactory.create(kind="sql", statement="SELECT 1"))

        [summary] = transaction.summary()
        assert summary["type"] == "sql"
        assert summary["data"]["statement"] == "SELECT 1"
        assert summary["data"]["elapsed_ms"] >= 0

    def test_segments_snapshot_is_immutable(self) -> None:
        transaction = Transaction("tx1", {})
        snapshot = transaction.segments
        transaction.append(SegmentFactory.create())

        assert snapshot == ()
        assert len(transaction.segments) == 1

    def test_append_after_close_raises(self) -> None:
        transaction = Transaction("tx1", {})
        transaction.append(SegmentFactory.create())
        transaction.close()

        with pytest.raises(TransactionNotFoundError) as exc_info:
            transaction.append(SegmentFactory.create())

        assert exc_info.value.transaction_id == "tx1"
        assert transaction.closed
        assert len(transaction.segments) == 1
