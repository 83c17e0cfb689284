"""API response types for the RIPE Atlas v2 REST API.

Pydantic models representing the objects returned by the API. Only the
commonly used fields are declared; unknown fields are kept as extras so that
nothing returned by the upstream is lost. Several fields are optional because
the API masks them on unauthenticated calls.
"""

from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

# Query parameters carrying the position of the next page, by preference.
CURSOR_PARAMS = ("cursor", "page")


class AtlasModel(BaseModel):
    """Base for every API object."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


class Geometry(AtlasModel):
    """GeoJSON point; coordinates are longitude then latitude."""

    geometry_type: str = Field("Point", alias="type")
    coordinates: list[float] = Field(default_factory=list)


class ProbeStatus(AtlasModel):
    """Connection status of a probe."""

    id: int = 0
    name: str = ""
    since: str | None = None


class Tag(AtlasModel):
    """Probe tag, either system-generated or user-defined."""

    name: str = ""
    slug: str = ""


class TagSlug(AtlasModel):
    """Slug attached to a probe tag."""

    slug: str = ""


class Probe(AtlasModel):
    """All information about a given probe."""

    # Core identification
    id: int
    probe_type: str = Field("", alias="type")
    description: str | None = None

    # Addressing (masked without an API key)
    address_v4: str | None = None
    address_v6: str | None = None
    asn_v4: int | None = None
    asn_v6: int | None = None
    prefix_v4: str | None = None
    prefix_v6: str | None = None

    # Location
    country_code: str | None = None
    geometry: Geometry | None = None

    # State information
    is_anchor: bool = False
    is_public: bool = False
    status: ProbeStatus | None = None
    status_since: int | None = None
    first_connected: int | None = None
    last_connected: int | None = None
    total_uptime: int = 0

    tags: list[Tag] = Field(default_factory=list)


class ProbeRanking(AtlasModel):
    """Entry of the probe hosting rankings."""

    probe: int | None = None
    score: float | None = None


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------


class Measurement(AtlasModel):
    """Measurement definition and state."""

    id: int
    measurement_type: str = Field("", alias="type")
    af: int | None = None
    description: str | None = None
    target: str | None = None
    target_ip: str | None = None
    status: dict[str, Any] | None = None
    is_oneoff: bool = False
    is_public: bool = True
    interval: int | None = None
    start_time: int | None = None
    stop_time: int | None = None
    participant_count: int | None = None
    result: str | None = None


class ProbeSpec(AtlasModel):
    """Probe selection sent with a measurement creation request."""

    requested: int = 10
    spec_type: str = Field("area", alias="type")
    value: str = "WW"
    tags: dict[str, list[str]] | None = None


class MeasurementCreated(AtlasModel):
    """Answer to a measurement creation: the new measurement IDs."""

    measurements: list[int] = Field(default_factory=list)


class AnchorMeasurement(AtlasModel):
    """Measurement targeting an anchor."""

    id: int
    measurement_type: str = Field("", alias="type")
    date_created: str | None = None
    date_modified: str | None = None
    is_mesh: bool = False
    measurement: str | None = None
    target: str | None = None


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class Target(AtlasModel):
    """Object a key permission is granted on."""

    target_type: str = Field("", alias="type")
    id: str = ""


class Grant(AtlasModel):
    """One entitlement of an API key."""

    permission: str = ""
    target: Target | None = None


class Key(AtlasModel):
    """API key with its validity and entitlements."""

    uuid: str
    key_type: str = Field("", alias="type")
    label: str = ""
    enabled: bool = False
    is_active: bool = False
    created_at: str | None = None
    valid_from: str | None = None
    valid_to: str | None = None
    grants: list[Grant] = Field(default_factory=list)


class Permission(AtlasModel):
    """Permission that can be granted to a key."""

    id: str = ""
    name: str = ""
    description: str = ""


# ---------------------------------------------------------------------------
# Credits
# ---------------------------------------------------------------------------


class Credits(AtlasModel):
    """Credit balance and flows of the account behind the key."""

    current_balance: int = 0
    credit_checked: bool = False
    max_daily_credits: int | None = None
    estimated_daily_income: int | None = None
    estimated_daily_expenditure: int | None = None
    estimated_daily_balance: int | None = None
    calculation_time: str | None = None
    estimated_runout_seconds: int | None = None
    past_day_measurement_results: int | None = None
    past_day_credits_spent: int | None = None
    last_date_debited: str | None = None
    last_date_credited: str | None = None
    income_items: str | None = None
    expense_items: str | None = None
    transactions: str | None = None


class IncomeItems(AtlasModel):
    """Daily credit income per source."""

    hosted_probes: int | None = None
    hosted_anchors: int | None = None
    sponsored_probes: int | None = None
    results_delivered: int | None = None


class ExpenseItems(AtlasModel):
    """Daily credit expenses per category."""

    results: int | None = None
    measurements: int | None = None


class Transaction(AtlasModel):
    """One credit transaction."""

    id: int | None = None
    amount: int = 0
    description: str = ""
    date: str | None = None


class Transfer(AtlasModel):
    """Credit transfer between accounts."""

    amount: int = 0
    recipient: str | None = None
    date: str | None = None


class MemberListing(AtlasModel):
    """Members sharing the credit account."""

    members: list[dict[str, Any]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Anchors and participation requests
# ---------------------------------------------------------------------------


class Anchor(AtlasModel):
    """RIPE Atlas anchor."""

    id: int
    anchor_type: str = Field("", alias="type")
    fqdn: str = ""
    probe: int | None = None
    is_ipv4_only: bool = False
    ip_v4: str | None = None
    as_v4: int | None = None
    ip_v6: str | None = None
    as_v6: int | None = None
    city: str = ""
    country: str = ""
    geometry: Geometry | None = None
    is_disabled: bool = False
    date_live: str | None = None
    hardware_version: int | None = None


class ParticipationRequest(AtlasModel):
    """Request for a set of probes to join a measurement."""

    id: int
    request_type: str = Field("", alias="type")
    requested: int = 0
    value: str = ""
    action: str = ""
    tags_include: str | None = None
    tags_exclude: str | None = None
    created_at: int | None = None


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class Page(BaseModel, Generic[T]):
    """One block of a paginated listing."""

    count: int | None = None
    next: str | None = None
    previous: str | None = None
    results: list[T] = Field(default_factory=list)

    def next_cursor(self) -> tuple[str, str] | None:
        """Extract the cursor option from the ``next`` link.

        Returns:
            ``(name, value)`` of the cursor query parameter, or None when this
            is the last page.

        Raises:
            ValueError: If ``next`` is set but carries no known cursor.
        """
        if not self.next:
            return None
        params = httpx.URL(self.next).params
        for name in CURSOR_PARAMS:
            if name in params:
                return name, params[name]
        msg = f"No cursor in next link: {self.next}"
        raise ValueError(msg)


class ErrorDetail(BaseModel):
    """Body of an API error document."""

    status: int = 0
    code: int | None = None
    title: str = ""
    detail: str = ""
    errors: list[dict[str, Any]] | None = None


class ApiErrorBody(BaseModel):
    """Error document returned with non-2xx responses."""

    error: ErrorDetail
