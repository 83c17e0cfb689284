"""Request construction for the RIPE Atlas API.

A :class:`RequestBuilder` is obtained from one of the category selectors of
:class:`~atlas_client.atlasapi.client.AtlasClient` and accumulates options,
an identifier and a body. Every mutator returns a new builder and performs
no I/O, so builders can be created and thrown away freely. Terminal verbs
(``get``, ``list``, ``create``...) finalize a frozen :class:`Request` and hand
it to the dispatcher.

Example::

    probe = client.probe().get(666).value
    for m in client.measurement().with_option("status", "Ongoing").list():
        ...
"""

import dataclasses
import uuid
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar
from urllib.parse import urlencode

import structlog

from .errors import AlreadyDispatched, InvalidArgument
from .routes import Category, IdKind, Op, Route, Shape, route_for

if TYPE_CHECKING:
    from .client import AtlasClient
    from .dispatch import Single
    from .paging import Paged

logger = structlog.get_logger(__name__)

T = TypeVar("T")

OptionValue: TypeAlias = str | int | float | bool
Options: TypeAlias = tuple[tuple[str, str], ...]
OptionPairs: TypeAlias = Iterable[tuple[str, OptionValue]] | Mapping[str, OptionValue]


def normalize_option(name: Any, value: Any) -> tuple[str, str]:
    """Check one option for structural validity and render its value.

    Names are not checked against the upstream schema; unknown names are
    passed through.

    Raises:
        InvalidArgument: If the name is not a non-empty string or the value
            is not a scalar.
    """
    if not isinstance(name, str) or not name:
        msg = f"Option name must be a non-empty string, got {name!r}"
        raise InvalidArgument(msg)
    if isinstance(value, bool):
        return name, "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return name, str(value)
    msg = f"Option {name!r} has unsupported value {value!r}"
    raise InvalidArgument(msg)


def normalize_options(pairs: OptionPairs | None) -> Options:
    """Normalize an ordered collection of options, keeping its order."""
    if pairs is None:
        return ()
    if isinstance(pairs, Mapping):
        pairs = pairs.items()
    normalized = []
    for pair in pairs:
        if not isinstance(pair, tuple) or len(pair) != 2:  # noqa: PLR2004
            msg = f"Options must be (name, value) pairs, got {pair!r}"
            raise InvalidArgument(msg)
        normalized.append(normalize_option(*pair))
    return tuple(normalized)


def encode_query(options: Options) -> str:
    """Encode options as a query string.

    Insertion order is kept and repeated names are emitted as repeated
    ``name=value`` pairs.
    """
    return urlencode(list(options))


def check_identifier(route: Route, identifier: Any, **context: Any) -> int | str:
    """Validate an identifier against what the route template accepts.

    Args:
        route: Route being prepared.
        identifier: Raw identifier given by the caller.
        **context: Category and operation, for the error message.

    Returns:
        The identifier in canonical form.

    Raises:
        InvalidArgument: If the identifier is missing or malformed.
    """
    if identifier is None:
        msg = "An identifier is required"
        raise InvalidArgument(msg, **context)

    if isinstance(identifier, bool):
        msg = "Identifier cannot be a boolean"
        raise InvalidArgument(msg, identifier=identifier, **context)

    if isinstance(identifier, int) and identifier <= 0:
        msg = "Identifier must be a positive integer"
        raise InvalidArgument(msg, identifier=identifier, **context)

    if route.id_kind is IdKind.INT:
        if isinstance(identifier, int):
            return identifier
        if (
            isinstance(identifier, str)
            and identifier.isascii()
            and identifier.isdigit()
            and int(identifier) > 0
        ):
            return int(identifier)
        msg = "Identifier must be a positive integer"
        raise InvalidArgument(msg, identifier=identifier, **context)

    if route.id_kind is IdKind.UUID:
        try:
            return str(uuid.UUID(str(identifier)))
        except ValueError:
            msg = "Identifier must be a key UUID"
            raise InvalidArgument(msg, identifier=identifier, **context) from None

    if not isinstance(identifier, str) or not identifier or "/" in identifier:
        msg = "Identifier must be a non-empty name"
        raise InvalidArgument(msg, identifier=identifier, **context)
    return identifier


@dataclasses.dataclass(frozen=True)
class Request:
    """One finalized API call.

    Immutable: the pagination driver derives successor pages with
    :meth:`with_cursor` instead of changing the request.
    """

    category: Category
    op: Op
    route: Route
    identifier: int | str | None = None
    options: Options = ()
    body: Any = None

    @property
    def method(self) -> str:
        """HTTP method."""
        return self.route.method

    @property
    def path(self) -> str:
        """Path relative to the API endpoint."""
        return self.route.path(self.identifier)

    @property
    def shape(self) -> Shape:
        """Whether the call yields one object or a paginated listing."""
        return self.route.shape

    @property
    def query(self) -> str:
        """Encoded query string."""
        return encode_query(self.options)

    @property
    def context(self) -> dict[str, Any]:
        """Error context identifying this call."""
        return {
            "category": self.category.value,
            "op": self.op.value,
            "identifier": self.identifier,
        }

    def with_cursor(self, name: str, value: str) -> "Request":
        """Return the same request positioned on another page."""
        options = tuple((k, v) for k, v in self.options if k != name)
        return dataclasses.replace(self, options=(*options, (name, value)))


class RequestBuilder(Generic[T]):
    """Accumulates the pieces of one API call for a given category.

    Mutators return a new builder and never perform I/O. A builder may be
    engaged by a single terminal verb; calling a second one raises
    :class:`AlreadyDispatched` so that a creation body is never submitted
    twice by accident. Builders are not meant to be shared across threads.
    """

    def __init__(
        self,
        client: "AtlasClient",
        category: Category,
        *,
        options: Options = (),
        identifier: Any = None,
        body: Any = None,
    ):
        self._client = client
        self._category = category
        self._options = options
        self._identifier = identifier
        self._body = body
        self._dispatched = False

    def __repr__(self) -> str:
        return (
            f"RequestBuilder(category={self._category.value!r}, "
            f"identifier={self._identifier!r}, options={self._options!r})"
        )

    @property
    def category(self) -> Category:
        """Category this builder is scoped to."""
        return self._category

    @property
    def options(self) -> Options:
        """Options accumulated so far, in insertion order."""
        return self._options

    @property
    def identifier(self) -> Any:
        """Identifier set with :meth:`for_id`, if any."""
        return self._identifier

    @property
    def body(self) -> Any:
        """Payload set with :meth:`with_body`, if any."""
        return self._body

    def _evolve(self, **changes: Any) -> "RequestBuilder[T]":
        state = {
            "options": self._options,
            "identifier": self._identifier,
            "body": self._body,
        }
        state.update(changes)
        return RequestBuilder(self._client, self._category, **state)

    # ------------------------------------------------------------------
    # Mutators

    def with_option(self, name: str, value: OptionValue) -> "RequestBuilder[T]":
        """Append one query option."""
        return self._evolve(options=(*self._options, normalize_option(name, value)))

    def with_options(self, pairs: OptionPairs) -> "RequestBuilder[T]":
        """Append several query options, keeping their order."""
        return self._evolve(options=self._options + normalize_options(pairs))

    def with_body(self, payload: Any) -> "RequestBuilder[T]":
        """Set the payload sent by create, set and update."""
        return self._evolve(body=payload)

    def for_id(self, identifier: Any) -> "RequestBuilder[T]":
        """Set the identifier used by get, set, update and delete."""
        return self._evolve(identifier=identifier)

    # ------------------------------------------------------------------
    # Finalization

    def prepare(
        self,
        op: Op,
        identifier: Any = None,
        payload: Any = None,
        options: OptionPairs | None = None,
    ) -> Request:
        """Finalize a request without dispatching it.

        Args:
            op: Operation to perform.
            identifier: Overrides the identifier set with :meth:`for_id`.
            payload: Overrides the body set with :meth:`with_body`.
            options: Extra options appended after the builder's.

        Returns:
            The frozen request the dispatcher would execute.

        Raises:
            UnsupportedOperation: If the category has no such operation.
            InvalidArgument: If the identifier or the body is missing or
                malformed.
        """
        route = route_for(self._category, op)
        context = {"category": self._category.value, "op": op.value}

        ident = None
        if route.id_kind is not IdKind.NONE:
            ident = identifier if identifier is not None else self._identifier
            if ident is None:
                ident = self._default_identifier(op)
            ident = check_identifier(route, ident, **context)

        body = payload if payload is not None else self._body
        if route.needs_body and body is None:
            msg = "A request body is required"
            raise InvalidArgument(msg, identifier=ident, **context)
        if route.needs_body:
            body = self._fill_body(op, body)

        return Request(
            category=self._category,
            op=op,
            route=route,
            identifier=ident,
            options=self._client.default_options
            + self._options
            + normalize_options(options),
            body=body,
        )

    def _default_identifier(self, op: Op) -> int | None:
        # Only probe lookups fall back on the configured default probe.
        if self._category is Category.PROBES and op in (Op.GET, Op.MEASUREMENTS):
            return self._client.default_probe
        return None

    def _fill_body(self, op: Op, body: Any) -> Any:
        # New measurements without explicit probes use the default probe set.
        if (
            self._category is Category.MEASUREMENTS
            and op is Op.CREATE
            and isinstance(body, Mapping)
            and "probes" not in body
            and self._client.probe_spec is not None
        ):
            spec = self._client.probe_spec.model_dump(
                mode="json", by_alias=True, exclude_none=True
            )
            return {**body, "probes": [spec]}
        return body

    def _engage(self, op: Op, **kwargs: Any) -> Request:
        if self._dispatched:
            msg = "This builder has already been dispatched"
            raise AlreadyDispatched(
                msg, category=self._category.value, op=op.value
            )
        request = self.prepare(op, **kwargs)
        self._dispatched = True
        logger.debug(
            "Dispatching request",
            category=request.category.value,
            op=request.op.value,
            path=request.path,
        )
        return request

    def _single(self, op: Op, **kwargs: Any) -> "Single[Any]":
        return self._client.dispatcher.single(self._engage(op, **kwargs))

    def _paged(self, op: Op, **kwargs: Any) -> "Paged[Any]":
        return self._client.dispatcher.paged(self._engage(op, **kwargs))

    # ------------------------------------------------------------------
    # Core verbs

    def get(self, identifier: Any = None) -> "Single[T]":
        """Fetch one object by identifier."""
        return self._single(Op.GET, identifier=identifier)

    def list(self, options: OptionPairs | None = None) -> "Paged[T]":
        """Fetch every object matching the options, following all pages."""
        return self._paged(Op.LIST, options=options)

    def stream(self, options: OptionPairs | None = None) -> Iterator[T]:
        """Like :meth:`list` but yield objects as each page arrives.

        Objects of the pages already fetched are yielded before an error
        of a later page is raised.
        """
        request = self._engage(Op.LIST, options=options)
        return self._client.dispatcher.stream(request)

    def info(self) -> "Single[T]":
        """Fetch the singleton object of the category."""
        return self._single(Op.INFO)

    def create(self, payload: Any = None) -> "Single[Any]":
        """Create a new object."""
        return self._single(Op.CREATE, payload=payload)

    def set(self, identifier: Any = None, payload: Any = None) -> "Single[T]":
        """Replace an object (PUT)."""
        return self._single(Op.SET, identifier=identifier, payload=payload)

    def update(self, identifier: Any = None, payload: Any = None) -> "Single[T]":
        """Partially update an object (PATCH)."""
        return self._single(Op.UPDATE, identifier=identifier, payload=payload)

    def delete(self, identifier: Any = None) -> "Single[None]":
        """Delete an object."""
        return self._single(Op.DELETE, identifier=identifier)

    # ------------------------------------------------------------------
    # Probe sub-verbs

    def archive(self, options: OptionPairs | None = None) -> "Paged[Any]":
        """List archived probe snapshots."""
        return self._paged(Op.ARCHIVE, options=options)

    def rankings(self, options: OptionPairs | None = None) -> "Paged[Any]":
        """List probe hosting rankings."""
        return self._paged(Op.RANKINGS, options=options)

    def tags(self, options: OptionPairs | None = None) -> "Paged[Any]":
        """List probe tags."""
        return self._paged(Op.TAGS, options=options)

    def slugs(self, tag: str | None = None) -> "Paged[Any]":
        """List the slugs of a probe tag."""
        return self._paged(Op.SLUGS, identifier=tag)

    def measurements(self, probe_id: Any = None) -> "Paged[Any]":
        """List the measurements a probe takes part in."""
        return self._paged(Op.MEASUREMENTS, identifier=probe_id)

    # ------------------------------------------------------------------
    # Key sub-verbs

    def permissions(self) -> "Paged[Any]":
        """List the permissions a key can be granted."""
        return self._paged(Op.PERMISSIONS)

    def targets(self, permission: str | None = None) -> "Paged[Any]":
        """List the targets available for a permission."""
        return self._paged(Op.TARGETS, identifier=permission)

    # ------------------------------------------------------------------
    # Credit sub-verbs

    def incomes(self) -> "Single[Any]":
        """Fetch credit income items."""
        return self._single(Op.INCOMES)

    def expenses(self) -> "Single[Any]":
        """Fetch credit expense items."""
        return self._single(Op.EXPENSES)

    def transactions(self, options: OptionPairs | None = None) -> "Paged[Any]":
        """List credit transactions."""
        return self._paged(Op.TRANSACTIONS, options=options)

    def transfers(self) -> "Single[Any]":
        """Fetch credit transfers."""
        return self._single(Op.TRANSFERS)

    def members(self) -> "Single[Any]":
        """Fetch the members sharing the credit account."""
        return self._single(Op.MEMBERS)
