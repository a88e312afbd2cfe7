"""Audit middleware: one transaction per HTTP request.

Opens a transaction when a request arrives, records the request as a
ServerSegment and flushes the consolidated audit entry once the response
is produced. Handlers reach the transaction id through
``request.state.transaction_id`` to append their own segments (SQL, outbound
HTTP) to the same transaction.
"""

from collections.abc import Awaitable, Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from txaudit.observability.logging import get_logger
from txaudit.segments.http import ServerSegment
from txaudit.transactions.coordinator import Coordinator
from txaudit.transactions.exceptions import DuplicateTransactionError

logger = get_logger(__name__)

TRANSACTION_HEADER = "X-Transaction-ID"


class AuditMiddleware(BaseHTTPMiddleware):
    """Wraps every request in an audit transaction.

    The transaction id comes from the ``X-Transaction-ID`` header when the
    caller sends one that is not already open, otherwise a UUID is
    generated. The id is echoed back on the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        coordinator: Coordinator,
        header: str = TRANSACTION_HEADER,
    ) -> None:
        super().__init__(app)
        self.coordinator = coordinator
        self.header = header

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        transaction_id = self._open(request.headers.get(self.header))
        request.state.transaction_id = transaction_id
        segment = await ServerSegment.from_request(request)

        try:
            response = await call_next(request)
        except Exception as exc:
            segment.mark_failed(exc)
            self.coordinator.fail_transaction(transaction_id, exc)
            raise
        else:
            segment.response(response)
            response.headers[self.header] = transaction_id
            return response
        finally:
            segment.finalize()
            self.coordinator.append_segment(transaction_id, segment)
            self.coordinator.flush_transaction(transaction_id)

    def _open(self, requested_id: str | None) -> str:
        if requested_id:
            try:
                self.coordinator.open_transaction(requested_id)
                return requested_id
            except DuplicateTransactionError:
                logger.warning("transaction_id_in_use", transaction_id=requested_id)

        transaction_id = str(uuid4())
        self.coordinator.open_transaction(transaction_id)
        return transaction_id
