"""Execution of finalized requests.

The dispatcher turns a :class:`~atlas_client.atlasapi.request.Request` into
one HTTP exchange (or, for list routes, a walk over every page) and maps the
outcome to a typed result or to an :class:`~atlas_client.atlasapi.errors.AtlasError`.
Nothing is retried: most failures here come from the caller's input.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
import pydantic
import structlog

from .errors import (
    AuthenticationRejected,
    AuthenticationRequired,
    MalformedResponse,
    TransportFailure,
    UpstreamError,
)
from .paging import Paged, PaginationDriver
from .request import Request
from .routes import Shape
from .transport import Transport
from .types import ApiErrorBody, Page

logger = structlog.get_logger(__name__)

T = TypeVar("T")

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


@dataclass(frozen=True)
class Single(Generic[T]):
    """Result of a call returning one object."""

    value: T


def encode_body(body: Any) -> Any:
    """Turn a payload into JSON-compatible data."""
    if isinstance(body, pydantic.BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_none=True)
    return body


class Dispatcher:
    """Runs requests through a transport and decodes the answers.

    Holds no mutable state, so one instance is shared by every builder of a
    client and may be used from several threads at once.
    """

    def __init__(
        self,
        transport: Transport,
        api_key: str | None = None,
        pagination_deadline: float | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            transport: Collaborator executing the HTTP exchanges.
            api_key: Key sent with every request, None for anonymous calls.
            pagination_deadline: Seconds allowed for a whole list walk.
        """
        self._transport = transport
        self._api_key = api_key
        self._pagination_deadline = pagination_deadline

    def dispatch(self, request: Request) -> Single[Any] | Paged[Any]:
        """Execute a request, choosing the result shape from its route."""
        if request.shape is Shape.PAGED:
            return self.paged(request)
        return self.single(request)

    def single(self, request: Request) -> Single[Any]:
        """Execute a request answering with one object.

        Routes without a model (DELETE) yield ``Single(None)``; on any other
        route an empty body is malformed.
        """
        content = self._exchange(request)
        model = request.route.model
        if model is None:
            return Single(None)
        return Single(self._decode(request, content, model))

    def paged(self, request: Request) -> Paged[Any]:
        """Execute a list request and gather every page."""
        return self._driver().drive(request)

    def stream(self, request: Request) -> Iterator[Any]:
        """Execute a list request, yielding items page after page."""
        return self._driver().walk(request)

    def _driver(self) -> PaginationDriver[Any]:
        return PaginationDriver(self._fetch_page, deadline=self._pagination_deadline)

    def _fetch_page(self, request: Request, timeout: float | None) -> Page[Any]:
        content = self._exchange(request, timeout=timeout)
        return self._decode(request, content, Page[request.route.model])

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Key {self._api_key}"}

    def _exchange(self, request: Request, timeout: float | None = None) -> bytes:
        """Run one HTTP exchange and return the body of a 2xx answer.

        Raises:
            TransportFailure: If the transport could not complete the call.
            AuthenticationRequired: On 401/403 without an API key.
            AuthenticationRejected: On 401/403 with an API key.
            UpstreamError: On any other non-2xx status.
        """
        try:
            response = self._transport.execute(
                request.method,
                request.path,
                headers=self._headers(),
                query=request.query,
                json_body=encode_body(request.body),
                timeout=timeout,
            )
        except httpx.RequestError as exc:
            msg = f"Transport failure: {exc}"
            raise TransportFailure(msg, **request.context) from exc

        if 200 <= response.status_code < 300:  # noqa: PLR2004
            return response.content

        raise self._error_for(request, response.status_code, response.content)

    def _error_for(self, request: Request, status: int, content: bytes) -> Exception:
        title = ""
        detail = content.decode("utf-8", errors="replace")
        try:
            body = ApiErrorBody.model_validate_json(content)
            title, detail = body.error.title, body.error.detail
        except pydantic.ValidationError:
            logger.debug("Error body is not an API error document", status=status)

        logger.error(
            "API error response",
            status=status,
            title=title,
            detail=detail,
            **request.context,
        )

        message = f"{title}: {detail}" if title else detail or f"HTTP {status}"
        if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            if self._api_key:
                msg = f"API key rejected: {message}"
                return AuthenticationRejected(msg, status=status, **request.context)
            msg = f"API key required: {message}"
            return AuthenticationRequired(msg, status=status, **request.context)
        return UpstreamError(
            message,
            title=title,
            detail=detail,
            status=status,
            **request.context,
        )

    def _decode(self, request: Request, content: bytes, model: type[Any]) -> Any:
        try:
            return model.model_validate_json(content)
        except pydantic.ValidationError as exc:
            logger.error(
                "Response does not match schema",
                model=model.__name__,
                errors=exc.error_count(),
                **request.context,
            )
            msg = f"Response does not match {model.__name__}"
            raise MalformedResponse(msg, payload=content, **request.context) from exc
