"""Configuration and logging setup for the Atlas client."""

import json
import logging
import os
import pathlib
import sys

import pydantic
import structlog

from . import atlasapi

CONFIG_ENV_VAR = "ATLAS_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ProbeSet(pydantic.BaseModel):
    """Default set of probes used when creating measurements."""

    model_config = pydantic.ConfigDict(frozen=True, populate_by_name=True)

    pool_size: int = pydantic.Field(10, description="How many probes to ask", gt=0)
    probe_type: str = pydantic.Field(
        "area",
        alias="type",
        description="Selection type (area, country, asn, prefix, probes, msm)",
    )
    value: str = pydantic.Field("WW", description="Value for the selection type")
    tags: str = pydantic.Field(
        "",
        description="Space-separated tags: +tag or tag to include, -tag or !tag to exclude",
    )

    def parse_tags(self) -> tuple[list[str], list[str]]:
        """Split the tag string into included and excluded tags."""
        include: list[str] = []
        exclude: list[str] = []
        for tag in self.tags.split():
            if tag[0] in "-!":
                if tag[1:]:
                    exclude.append(tag[1:])
            elif tag[0] == "+":
                if tag[1:]:
                    include.append(tag[1:])
            else:
                include.append(tag)
        return include, exclude

    def to_spec(self) -> atlasapi.types.ProbeSpec:
        """Build the probe selection of a measurement creation request."""
        include, exclude = self.parse_tags()
        tags = None
        if include or exclude:
            tags = {"include": include, "exclude": exclude}
        return atlasapi.types.ProbeSpec(
            requested=self.pool_size,
            spec_type=self.probe_type,
            value=self.value,
            tags=tags,
        )


class AtlasConfig(pydantic.BaseModel):
    """Configuration for the Atlas client."""

    model_config = pydantic.ConfigDict(frozen=True)

    api_key: str | None = pydantic.Field(None, description="RIPE Atlas API key")
    endpoint: str = pydantic.Field(
        atlasapi.DEFAULT_ENDPOINT,
        description="Base URL for the RIPE Atlas API",
    )
    default_probe: int | None = pydantic.Field(
        None,
        description="Probe used when none is given",
        gt=0,
    )
    probe_set: ProbeSet = pydantic.Field(
        default_factory=ProbeSet,
        description="Default probe set for new measurements",
    )
    default_options: list[tuple[str, str]] = pydantic.Field(
        default_factory=list,
        description="Query options sent with every request",
    )
    timeout: float = pydantic.Field(
        atlasapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    pagination_deadline: float | None = pydantic.Field(
        None,
        description="Seconds allowed to walk every page of a listing",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output on stderr."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> AtlasConfig:
    """Load the client configuration from a JSON file.

    Args:
        config_path: Path of a JSON object whose keys are the fields of
            :class:`AtlasConfig`; missing keys take their defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not JSON or does not validate, with the
            path in the message.
    """
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    try:
        with path.open("r") as f:
            data = json.load(f)
        return AtlasConfig.model_validate(data)
    except (json.JSONDecodeError, pydantic.ValidationError) as exc:
        logger.error("Invalid configuration", path=config_path)
        msg = f"Invalid configuration in {config_path}: {exc}"
        raise ValueError(msg) from exc


def build_client(
    config: AtlasConfig,
    transport: atlasapi.transport.Transport | None = None,
) -> atlasapi.AtlasClient:
    """Construct the API client from validated config."""
    client = atlasapi.AtlasClient(
        config.api_key,
        endpoint=config.endpoint,
        default_probe=config.default_probe,
        probe_spec=config.probe_set.to_spec(),
        default_options=config.default_options,
        timeout=config.timeout,
        pagination_deadline=config.pagination_deadline,
        transport=transport,
    )
    logger.info("Client configured", endpoint=client.endpoint)
    return client


def create_client(config_path: str | None = None) -> atlasapi.AtlasClient:
    """Create the client from a config path, the environment, or defaults."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    config = load_config(resolved_path) if resolved_path else AtlasConfig()
    configure_logging(config.log_level)
    return build_client(config)
