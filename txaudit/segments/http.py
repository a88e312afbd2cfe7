"""HTTP segments for outbound (httpx) and inbound (starlette) requests.

Request and response bodies are captured without consuming them: httpx
caches content on ``read()`` and starlette caches the request body on
``body()``, so the original caller can still send or read the payload.
"""

import json
from collections.abc import Iterable, Mapping
from http import HTTPStatus
from typing import Any

import httpx
from starlette.requests import Request
from starlette.responses import Response

from txaudit.segments.base import ERROR_FIELD, TimedSegment

STATUS_CODE_FIELD = "status_code"


def _decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def _multi_dict(items: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Group repeated keys (query params) into lists."""
    result: dict[str, list[str]] = {}
    for key, value in items:
        result.setdefault(key, []).append(value)
    return result


class _HTTPSegmentBase(TimedSegment):
    """Behavior shared by client and server HTTP segments.

    A failure forces a 500 status, and finalize() assumes 200 when no
    response was recorded.
    """

    def mark_failed(self, error: BaseException | str) -> None:
        self.update(
            **{
                ERROR_FIELD: str(error),
                STATUS_CODE_FIELD: int(HTTPStatus.INTERNAL_SERVER_ERROR),
            }
        )

    def default_fields_on_finalize(self) -> dict[str, Any]:
        return {STATUS_CODE_FIELD: int(HTTPStatus.OK)}

    @staticmethod
    def _request_fields(
        method: str,
        path: str,
        query: Iterable[tuple[str, str]],
        headers: Mapping[str, str],
        body: bytes,
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "method": method,
            "path": path,
            "request.query_params": _multi_dict(query),
            "request.headers": dict(headers),
        }
        if body:
            data["request.body"] = _decode(body)
        return data


class HTTPSegment(_HTTPSegmentBase):
    """Segment for HTTP calls made with httpx.

    Use it to measure calls to external APIs::

        segment = HTTPSegment.from_request(request)
        response = client.send(request)
        segment.response(response)
        segment.finalize()
    """

    kind = "http"

    @classmethod
    def from_request(cls, request: httpx.Request) -> "HTTPSegment":
        """Capture method, path, query, headers and body of a request."""
        body = request.read()
        return cls(
            cls._request_fields(
                request.method,
                request.url.path,
                request.url.params.multi_items(),
                request.headers,
                body,
            )
        )

    def response(self, response: httpx.Response) -> None:
        """Record status, headers and body of the response."""
        body = response.read()
        fields: dict[str, Any] = {
            STATUS_CODE_FIELD: response.status_code,
            "response.headers": dict(response.headers),
        }
        if body:
            fields["response.body"] = _decode(body)
        self.update(**fields)


class ServerSegment(_HTTPSegmentBase):
    """Segment for requests received by a starlette/FastAPI application."""

    kind = "http - server"

    @classmethod
    async def from_request(cls, request: Request) -> "ServerSegment":
        """Capture the incoming request; the body stays readable downstream."""
        body = await request.body()
        return cls(
            cls._request_fields(
                request.method,
                request.url.path,
                request.query_params.multi_items(),
                request.headers,
                body,
            )
        )

    def json_response(
        self,
        status_code: int,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Record a JSON response.

        If the body cannot be serialized, ``response.body`` is not set.
        """
        fields: dict[str, Any] = {
            STATUS_CODE_FIELD: status_code,
            "response.headers": dict(headers or {}),
        }
        if body is not None:
            try:
                fields["response.body"] = json.dumps(body)
            except (TypeError, ValueError):
                pass
        self.update(**fields)

    def response(self, response: Response) -> None:
        """Record status and headers of a starlette response.

        The body is recorded only for fully rendered responses; streaming
        responses are left untouched.
        """
        fields: dict[str, Any] = {
            STATUS_CODE_FIELD: response.status_code,
            "response.headers": dict(response.headers),
        }
        body = getattr(response, "body", None)
        if isinstance(body, bytes) and body:
            fields["response.body"] = _decode(body)
        self.update(**fields)
