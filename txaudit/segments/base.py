"""Segment abstract interface and the shared timed implementation."""

import threading
import time
from abc import ABC, abstractmethod
from typing import Any

ERROR_FIELD = "error"
ELAPSED_FIELD = "elapsed_ms"


class Segment(ABC):
    """Abstract interface for one measured unit of work.

    A segment is owned by whoever started the unit of work until it is
    appended to a transaction, after which it is treated as read-only.
    """

    @abstractmethod
    def classify(self) -> str:
        """Return the stable tag identifying this kind of segment."""
        pass

    @abstractmethod
    def mark_failed(self, error: BaseException | str) -> None:
        """Record that the unit of work failed."""
        pass

    @abstractmethod
    def fields(self) -> dict[str, Any]:
        """Return a snapshot of the segment's data fields."""
        pass

    @abstractmethod
    def has_failed(self) -> bool:
        """Return whether an error has been recorded."""
        pass

    @abstractmethod
    def finalize(self) -> None:
        """Stop measuring elapsed time."""
        pass


class TimedSegment(Segment):
    """Segment backed by a lock-guarded field mapping and a start clock.

    Subclasses provide ``kind`` and may override ``default_fields_on_finalize``
    to fill completion fields that were not set by a response.
    """

    kind: str = "generic"

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._start = time.monotonic()
        self._data: dict[str, Any] = dict(data or {})
        self._lock = threading.Lock()

    def classify(self) -> str:
        return self.kind

    def mark_failed(self, error: BaseException | str) -> None:
        with self._lock:
            self._data[ERROR_FIELD] = str(error)

    def fields(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._data)

    def has_failed(self) -> bool:
        with self._lock:
            return self._data.get(ERROR_FIELD) is not None

    def finalize(self) -> None:
        with self._lock:
            self._data[ELAPSED_FIELD] = int((time.monotonic() - self._start) * 1000)
            for key, value in self.default_fields_on_finalize().items():
                self._data.setdefault(key, value)

    def update(self, **fields: Any) -> None:
        """Set data fields atomically."""
        with self._lock:
            self._data.update(fields)

    def default_fields_on_finalize(self) -> dict[str, Any]:
        """Fields set by finalize() only when absent."""
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.classify()!r})"
