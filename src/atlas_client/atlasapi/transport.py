"""HTTP transport for the RIPE Atlas API.

Thin wrapper over httpx that executes one exchange and hands back the raw
status and body. Proxy selection from the environment (``HTTP_PROXY``,
``HTTPS_PROXY``, ``ALL_PROXY``, ``NO_PROXY``) is left to httpx.
"""

import threading
import time
from typing import Any, NamedTuple, Protocol

import httpx
import structlog

from .. import __version__

logger = structlog.get_logger(__name__)

DEFAULT_ENDPOINT = "https://atlas.ripe.net/api/v2"

DEFAULT_TIMEOUT = 30.0

USER_AGENT = f"atlas-client/{__version__}"


class RawResponse(NamedTuple):
    """Status and body of one HTTP exchange."""

    status_code: int
    content: bytes
    url: str = ""


class Transport(Protocol):
    """Anything able to run one HTTP exchange against the API."""

    def execute(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        query: str = "",
        json_body: Any = None,
        timeout: float | None = None,
    ) -> RawResponse:
        """Run the exchange.

        ``timeout`` caps the exchange in seconds when set. Failures to
        complete the exchange raise ``httpx.RequestError``.
        """
        ...


class HttpxTransport:
    """Transport backed by httpx.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the transport.

        Args:
            endpoint: Base URL of the API (e.g., "https://atlas.ripe.net/api/v2").
            timeout: Per-request timeout in seconds (default: 30.0).
            transport: Optional httpx transport, mostly for tests.

        Raises:
            ValueError: If endpoint is empty or timeout is not positive.
        """
        if not endpoint:
            msg = "endpoint cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.endpoint = endpoint.rstrip("/")
        self._timeout = timeout
        self._transport = transport

        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create the httpx client of the calling thread."""
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                base_url=self.endpoint,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def execute(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        query: str = "",
        json_body: Any = None,
        timeout: float | None = None,
    ) -> RawResponse:
        """Execute one HTTP request.

        The query string is appended verbatim so that the order of repeated
        parameters survives.

        Args:
            method: HTTP method.
            path: Path relative to the endpoint (e.g., "/probes/666/").
            headers: Extra headers for this request.
            query: Already encoded query string.
            json_body: Payload serialized as JSON, if any.
            timeout: Upper bound for this exchange; the transport timeout
                applies when it is larger or unset.

        Returns:
            Status code and raw body.

        Raises:
            httpx.RequestError: If the exchange could not complete.
        """
        start_time = time.time()
        url = f"{path}?{query}" if query else path
        if timeout is None:
            timeout = self._timeout
        else:
            timeout = min(self._timeout, timeout)

        try:
            logger.debug("Making API request", method=method, path=path, query=query)
            response = self.client.request(
                method,
                url,
                headers=headers,
                json=json_body,
                timeout=timeout,
            )
        except httpx.RequestError:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=method,
                path=path,
                duration_seconds=round(duration, 3),
            )
            raise

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status=response.status_code,
            duration_seconds=round(duration, 3),
        )
        return RawResponse(response.status_code, response.content, str(response.url))
