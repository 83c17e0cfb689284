"""Error taxonomy for the RIPE Atlas API client.

Every error raised by the request builder, the dispatcher or the pagination
driver derives from :class:`AtlasError` and carries enough context (category,
operation, identifier, upstream status) to reproduce the failing call.
"""

from typing import Any


class AtlasError(Exception):
    """Base class for all client errors."""

    def __init__(
        self,
        message: str,
        *,
        category: str | None = None,
        op: str | None = None,
        identifier: Any = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.op = op
        self.identifier = identifier
        self.status = status

    def __str__(self) -> str:
        context = []
        if self.category is not None:
            context.append(f"category={self.category}")
        if self.op is not None:
            context.append(f"op={self.op}")
        if self.identifier is not None:
            context.append(f"id={self.identifier}")
        if self.status is not None:
            context.append(f"status={self.status}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class InvalidArgument(AtlasError):
    """Malformed or missing input detected before any network call."""


class AlreadyDispatched(InvalidArgument):
    """A terminal verb was called twice on the same builder."""


class UnsupportedOperation(AtlasError):
    """The verb does not exist for the selected category."""


class AuthenticationRequired(AtlasError):
    """The upstream refused an unauthenticated call."""


class AuthenticationRejected(AtlasError):
    """The upstream refused the API key that was sent."""


class TransportFailure(AtlasError):
    """Connection-level failure, or the pagination deadline ran out."""


class UpstreamError(AtlasError):
    """Non-2xx response from the API."""

    def __init__(
        self,
        message: str,
        *,
        title: str = "",
        detail: str = "",
        **context: Any,
    ):
        super().__init__(message, **context)
        self.title = title
        self.detail = detail


class MalformedResponse(AtlasError):
    """2xx response whose body does not match the expected schema."""

    def __init__(self, message: str, *, payload: bytes = b"", **context: Any):
        super().__init__(message, **context)
        self.payload = payload
