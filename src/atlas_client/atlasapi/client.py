"""RIPE Atlas API client.

:class:`AtlasClient` holds the credentials and defaults shared by every call
and hands out request builders scoped to one resource category. It is
read-only after construction and can be shared between threads.
"""

import uuid
from typing import Any

import structlog

from . import types
from .dispatch import Dispatcher
from .errors import InvalidArgument
from .request import OptionPairs, Options, RequestBuilder, normalize_options
from .routes import Category
from .transport import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT, HttpxTransport, Transport

logger = structlog.get_logger(__name__)


def validate_api_key(api_key: str) -> None:
    """Check that an API key looks like one.

    RIPE Atlas keys are UUIDs. Anything else is logged as a warning and
    still used, the upstream being the one to accept or reject it.

    Args:
        api_key: The raw key.
    """
    try:
        uuid.UUID(api_key)
    except ValueError:
        logger.warning("API key does not look like a UUID, using it anyway")


class AtlasClient:
    """Entry point to the RIPE Atlas API.

    Without an API key the client works in anonymous mode; the upstream then
    masks some fields (probe addresses for instance) and refuses the calls
    that need a key (credits, keys).

    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        default_probe: int | None = None,
        probe_spec: types.ProbeSpec | None = None,
        default_options: OptionPairs | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        pagination_deadline: float | None = None,
        transport: Transport | None = None,
    ):
        """Initialize the client. No network I/O happens here.

        Args:
            api_key: RIPE Atlas API key, None for anonymous calls.
            endpoint: Base URL of the API.
            default_probe: Probe used by probe lookups without an identifier.
            probe_spec: Probe set added to new measurements that name none.
            default_options: Options sent before the builder's on every call.
            timeout: Per-request timeout in seconds.
            pagination_deadline: Seconds allowed for a whole list walk.
            transport: Transport to use instead of an httpx one.
        """
        if api_key:
            validate_api_key(api_key)

        self._api_key = api_key or None
        self._default_probe = default_probe
        self._probe_spec = probe_spec
        self._default_options: Options = normalize_options(default_options)
        self._transport = transport or HttpxTransport(endpoint=endpoint, timeout=timeout)
        self._endpoint = getattr(self._transport, "endpoint", endpoint)
        self._dispatcher = Dispatcher(
            self._transport,
            api_key=self._api_key,
            pagination_deadline=pagination_deadline,
        )
        logger.debug(
            "Created API client",
            endpoint=self._endpoint,
            authenticated=self._api_key is not None,
        )

    @property
    def api_key(self) -> str | None:
        """API key sent with every call."""
        return self._api_key

    @property
    def endpoint(self) -> str:
        """Base URL of the API."""
        return self._endpoint

    @property
    def default_probe(self) -> int | None:
        """Probe used when a probe lookup names none."""
        return self._default_probe

    @property
    def probe_spec(self) -> types.ProbeSpec | None:
        """Default probe set for new measurements."""
        return self._probe_spec

    @property
    def default_options(self) -> Options:
        """Options prepended to every request."""
        return self._default_options

    @property
    def dispatcher(self) -> Dispatcher:
        """Dispatcher shared by every builder of this client."""
        return self._dispatcher

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the underlying transport if it can be closed."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------
    # Category selectors

    def category(self, kind: Category | str) -> RequestBuilder[Any]:
        """Return a builder scoped to a category, with no verb chosen.

        Raises:
            InvalidArgument: If ``kind`` names no known category.
        """
        try:
            category = Category(kind)
        except ValueError:
            msg = f"Unknown category {kind!r}"
            raise InvalidArgument(msg) from None
        return RequestBuilder(self, category)

    def probe(self) -> RequestBuilder[types.Probe]:
        """Builder for ``/probes``."""
        return RequestBuilder(self, Category.PROBES)

    def measurement(self) -> RequestBuilder[types.Measurement]:
        """Builder for ``/measurements``."""
        return RequestBuilder(self, Category.MEASUREMENTS)

    def key(self) -> RequestBuilder[types.Key]:
        """Builder for ``/keys``."""
        return RequestBuilder(self, Category.KEYS)

    def credits(self) -> RequestBuilder[types.Credits]:
        """Builder for ``/credits``."""
        return RequestBuilder(self, Category.CREDITS)

    def anchor(self) -> RequestBuilder[types.Anchor]:
        """Builder for ``/anchors``."""
        return RequestBuilder(self, Category.ANCHORS)

    def anchor_measurement(self) -> RequestBuilder[types.AnchorMeasurement]:
        """Builder for ``/anchor-measurements``."""
        return RequestBuilder(self, Category.ANCHOR_MEASUREMENTS)

    def participation_request(self) -> RequestBuilder[types.ParticipationRequest]:
        """Builder for ``/participation-requests``."""
        return RequestBuilder(self, Category.PARTICIPATION_REQUESTS)
