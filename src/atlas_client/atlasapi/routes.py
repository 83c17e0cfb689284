"""Route table of the RIPE Atlas v2 API.

Maps every supported (category, operation) pair to its HTTP method, URL
template, result shape and response model. This table is the only place
that knows the upstream route layout; everything else treats it as data.
"""

import enum
from dataclasses import dataclass

from pydantic import BaseModel

from . import types
from .errors import UnsupportedOperation


class Category(str, enum.Enum):
    """First-level resource of the API."""

    PROBES = "probes"
    MEASUREMENTS = "measurements"
    KEYS = "keys"
    CREDITS = "credits"
    ANCHORS = "anchors"
    ANCHOR_MEASUREMENTS = "anchor-measurements"
    PARTICIPATION_REQUESTS = "participation-requests"


class Op(str, enum.Enum):
    """Operation performed on a category."""

    GET = "get"
    LIST = "list"
    INFO = "info"
    SET = "set"
    DELETE = "delete"
    CREATE = "create"
    UPDATE = "update"

    # Probes
    ARCHIVE = "archive"
    RANKINGS = "rankings"
    TAGS = "tags"
    SLUGS = "slugs"
    MEASUREMENTS = "measurements"

    # Keys
    PERMISSIONS = "permissions"
    TARGETS = "targets"

    # Credits
    INCOMES = "incomes"
    EXPENSES = "expenses"
    TRANSACTIONS = "transactions"
    TRANSFERS = "transfers"
    MEMBERS = "members"


class Shape(str, enum.Enum):
    """Result shape of a route."""

    SINGLE = "single"
    PAGED = "paged"


class IdKind(str, enum.Enum):
    """What the ``{id}`` placeholder of a template accepts."""

    NONE = "none"
    INT = "int"
    UUID = "uuid"
    NAME = "name"


@dataclass(frozen=True)
class Route:
    """One entry of the route table."""

    method: str
    template: str
    shape: Shape
    model: type[BaseModel] | None
    id_kind: IdKind = IdKind.NONE
    needs_body: bool = False

    def path(self, identifier: object = None) -> str:
        """Render the URL path for the given identifier."""
        if self.id_kind is IdKind.NONE:
            return self.template
        return self.template.format(id=identifier)


_C = Category
_S = Shape.SINGLE
_P = Shape.PAGED

ROUTES: dict[tuple[Category, Op], Route] = {
    # Probes
    (_C.PROBES, Op.GET): Route("GET", "/probes/{id}/", _S, types.Probe, IdKind.INT),
    (_C.PROBES, Op.LIST): Route("GET", "/probes/", _P, types.Probe),
    (_C.PROBES, Op.SET): Route(
        "PUT", "/probes/{id}/", _S, types.Probe, IdKind.INT, needs_body=True
    ),
    (_C.PROBES, Op.UPDATE): Route(
        "PATCH", "/probes/{id}/", _S, types.Probe, IdKind.INT, needs_body=True
    ),
    (_C.PROBES, Op.MEASUREMENTS): Route(
        "GET", "/probes/{id}/measurements/", _P, types.Measurement, IdKind.INT
    ),
    (_C.PROBES, Op.ARCHIVE): Route("GET", "/probes/archive/", _P, types.Probe),
    (_C.PROBES, Op.RANKINGS): Route(
        "GET", "/probes/rankings/", _P, types.ProbeRanking
    ),
    (_C.PROBES, Op.TAGS): Route("GET", "/probes/tags/", _P, types.Tag),
    (_C.PROBES, Op.SLUGS): Route(
        "GET", "/probes/tags/{id}/slugs/", _P, types.TagSlug, IdKind.NAME
    ),
    # Measurements
    (_C.MEASUREMENTS, Op.GET): Route(
        "GET", "/measurements/{id}/", _S, types.Measurement, IdKind.INT
    ),
    (_C.MEASUREMENTS, Op.LIST): Route("GET", "/measurements/", _P, types.Measurement),
    (_C.MEASUREMENTS, Op.CREATE): Route(
        "POST", "/measurements/", _S, types.MeasurementCreated, needs_body=True
    ),
    (_C.MEASUREMENTS, Op.UPDATE): Route(
        "PATCH",
        "/measurements/{id}/",
        _S,
        types.Measurement,
        IdKind.INT,
        needs_body=True,
    ),
    (_C.MEASUREMENTS, Op.DELETE): Route(
        "DELETE", "/measurements/{id}/", _S, None, IdKind.INT
    ),
    # Keys
    (_C.KEYS, Op.GET): Route("GET", "/keys/{id}/", _S, types.Key, IdKind.UUID),
    (_C.KEYS, Op.LIST): Route("GET", "/keys/", _P, types.Key),
    (_C.KEYS, Op.CREATE): Route("POST", "/keys/", _S, types.Key, needs_body=True),
    (_C.KEYS, Op.SET): Route(
        "PUT", "/keys/{id}/", _S, types.Key, IdKind.UUID, needs_body=True
    ),
    (_C.KEYS, Op.DELETE): Route("DELETE", "/keys/{id}/", _S, None, IdKind.UUID),
    (_C.KEYS, Op.PERMISSIONS): Route(
        "GET", "/keys/permissions/", _P, types.Permission
    ),
    (_C.KEYS, Op.TARGETS): Route(
        "GET", "/keys/permissions/{id}/targets/", _P, types.Target, IdKind.NAME
    ),
    # Credits
    (_C.CREDITS, Op.INFO): Route("GET", "/credits/", _S, types.Credits),
    (_C.CREDITS, Op.INCOMES): Route(
        "GET", "/credits/income-items/", _S, types.IncomeItems
    ),
    (_C.CREDITS, Op.EXPENSES): Route(
        "GET", "/credits/expense-items/", _S, types.ExpenseItems
    ),
    (_C.CREDITS, Op.TRANSACTIONS): Route(
        "GET", "/credits/transactions/", _P, types.Transaction
    ),
    (_C.CREDITS, Op.TRANSFERS): Route("GET", "/credits/transfers/", _S, types.Transfer),
    (_C.CREDITS, Op.MEMBERS): Route(
        "GET", "/credits/members/", _S, types.MemberListing
    ),
    # Anchors
    (_C.ANCHORS, Op.GET): Route("GET", "/anchors/{id}/", _S, types.Anchor, IdKind.INT),
    (_C.ANCHORS, Op.LIST): Route("GET", "/anchors/", _P, types.Anchor),
    (_C.ANCHOR_MEASUREMENTS, Op.GET): Route(
        "GET", "/anchor-measurements/{id}/", _S, types.AnchorMeasurement, IdKind.INT
    ),
    (_C.ANCHOR_MEASUREMENTS, Op.LIST): Route(
        "GET", "/anchor-measurements/", _P, types.AnchorMeasurement
    ),
    # Participation requests
    (_C.PARTICIPATION_REQUESTS, Op.GET): Route(
        "GET",
        "/participation-requests/{id}/",
        _S,
        types.ParticipationRequest,
        IdKind.INT,
    ),
    (_C.PARTICIPATION_REQUESTS, Op.LIST): Route(
        "GET", "/participation-requests/", _P, types.ParticipationRequest
    ),
}


def route_for(category: Category, op: Op) -> Route:
    """Look up the route of an operation.

    Raises:
        UnsupportedOperation: If the category has no such operation.
    """
    try:
        return ROUTES[(category, op)]
    except KeyError:
        msg = f"'{op.value}' is not available on {category.value}"
        raise UnsupportedOperation(msg, category=category.value, op=op.value) from None
