"""RIPE Atlas REST API client package.

Provides a blocking client for the RIPE Atlas v2 API built around request
builders: pick a category, add options, then call a verb to get a typed
result or a structured error.

Exports:
    AtlasClient: Entry point holding credentials and defaults.
    RequestBuilder, Request: Request construction.
    Single, Paged: Result shapes.
    Category, Op: Route table keys.
    HttpxTransport, RawResponse: Default transport.
    errors, types: Error taxonomy and response models.
"""

from . import errors, types
from .client import AtlasClient
from .dispatch import Dispatcher, Single
from .errors import (
    AlreadyDispatched,
    AtlasError,
    AuthenticationRejected,
    AuthenticationRequired,
    InvalidArgument,
    MalformedResponse,
    TransportFailure,
    UnsupportedOperation,
    UpstreamError,
)
from .paging import Paged, PaginationDriver
from .request import Request, RequestBuilder
from .routes import Category, Op
from .transport import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT, HttpxTransport, RawResponse

__all__ = [
    "DEFAULT_ENDPOINT",
    "DEFAULT_TIMEOUT",
    "AlreadyDispatched",
    "AtlasClient",
    "AtlasError",
    "AuthenticationRejected",
    "AuthenticationRequired",
    "Category",
    "Dispatcher",
    "HttpxTransport",
    "InvalidArgument",
    "MalformedResponse",
    "Op",
    "Paged",
    "PaginationDriver",
    "RawResponse",
    "Request",
    "RequestBuilder",
    "Single",
    "TransportFailure",
    "UnsupportedOperation",
    "UpstreamError",
    "errors",
    "types",
]
