"""Tests for configuration loading and client creation."""

import json
from unittest.mock import patch

import pydantic
import pytest
import structlog

from atlas_client import config
from atlas_client.atlasapi import DEFAULT_ENDPOINT, types

API_KEY = "0b6b0b42-3a7d-4c52-9d5f-7d2d0f1c9e11"


@pytest.fixture
def config_file(tmp_path):
    """JSON config file with every section filled in."""
    path = tmp_path / "atlas.json"
    path.write_text(
        json.dumps(
            {
                "api_key": API_KEY,
                "endpoint": "https://atlas.test/api/v2",
                "default_probe": 666,
                "probe_set": {
                    "pool_size": 5,
                    "type": "country",
                    "value": "NL",
                    "tags": "+home -cable !dsl wifi",
                },
                "default_options": [["format", "json"]],
                "timeout": 5,
                "pagination_deadline": 60,
                "log_level": "DEBUG",
            }
        )
    )
    return path


# ---------------------------------------------------------------------------
# ProbeSet
# ---------------------------------------------------------------------------


def test_parse_tags_splits_include_and_exclude():
    """Plus or bare tags are included, minus or bang tags excluded."""
    probe_set = config.ProbeSet(tags="+home -cable !dsl wifi")

    assert probe_set.parse_tags() == (["home", "wifi"], ["cable", "dsl"])


def test_parse_tags_ignores_lone_markers():
    """A marker with no tag name is dropped."""
    assert config.ProbeSet(tags="+ - !").parse_tags() == ([], [])


def test_to_spec_without_tags():
    """The default probe set asks ten probes worldwide."""
    spec = config.ProbeSet().to_spec()

    assert spec == types.ProbeSpec(requested=10, spec_type="area", value="WW")
    assert spec.tags is None


def test_to_spec_with_tags():
    """Tags end up in the include and exclude lists of the probe selection."""
    spec = config.ProbeSet(type="asn", value="3333", tags="home -cable").to_spec()

    assert spec.model_dump(by_alias=True, exclude_none=True) == {
        "requested": 10,
        "type": "asn",
        "value": "3333",
        "tags": {"include": ["home"], "exclude": ["cable"]},
    }


# ---------------------------------------------------------------------------
# AtlasConfig
# ---------------------------------------------------------------------------


def test_config_defaults():
    """An empty config gives an anonymous client on the public endpoint."""
    cfg = config.AtlasConfig()

    assert cfg.api_key is None
    assert cfg.endpoint == DEFAULT_ENDPOINT
    assert cfg.pagination_deadline is None
    assert cfg.probe_set == config.ProbeSet()


@pytest.mark.parametrize(
    "field",
    [{"timeout": 0}, {"default_probe": -1}, {"pagination_deadline": 0}],
)
def test_config_rejects_non_positive_values(field):
    """Timeouts, deadlines and probe IDs must be positive."""
    with pytest.raises(pydantic.ValidationError):
        config.AtlasConfig(**field)


def test_load_config_reads_json(config_file):
    """Every field of the file is loaded."""
    cfg = config.load_config(str(config_file))

    assert cfg.api_key == API_KEY
    assert cfg.default_probe == 666
    assert cfg.probe_set.probe_type == "country"
    assert cfg.default_options == [("format", "json")]
    assert cfg.timeout == 5.0


def test_load_config_missing_file_raises(tmp_path):
    """A missing config file is reported with its path."""
    missing = tmp_path / "nope.json"

    with pytest.raises(FileNotFoundError, match="nope.json"):
        config.load_config(str(missing))


def test_load_config_invalid_json_names_file(tmp_path):
    """A file that is not JSON is reported with its path."""
    path = tmp_path / "broken.json"
    path.write_text("{api_key: ")

    with pytest.raises(ValueError, match="broken.json"):
        config.load_config(str(path))


def test_load_config_invalid_value_names_file(tmp_path):
    """A value failing validation is reported with its path and field."""
    path = tmp_path / "atlas.json"
    path.write_text(json.dumps({"timeout": -5}))

    with pytest.raises(ValueError, match="atlas.json") as excinfo:
        config.load_config(str(path))

    assert "timeout" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, pydantic.ValidationError)


# ---------------------------------------------------------------------------
# Client creation
# ---------------------------------------------------------------------------


def test_build_client_applies_config(config_file):
    """Credentials and defaults flow from config into the client."""
    cfg = config.load_config(str(config_file))

    with config.build_client(cfg) as client:
        assert client.api_key == API_KEY
        assert client.endpoint == "https://atlas.test/api/v2"
        assert client.default_probe == 666
        assert client.default_options == (("format", "json"),)
        assert client.probe_spec.requested == 5
        assert client.probe_spec.tags == {"include": ["home", "wifi"], "exclude": ["cable", "dsl"]}


def test_create_client_uses_env_var(config_file, monkeypatch):
    """Without an explicit path the environment variable is used."""
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(config_file))

    with patch.object(config, "configure_logging") as configure:
        client = config.create_client()

    configure.assert_called_once_with("DEBUG")
    assert client.default_probe == 666
    client.close()


def test_create_client_without_config_uses_defaults(monkeypatch):
    """No path and no environment gives the default configuration."""
    monkeypatch.delenv(config.CONFIG_ENV_VAR, raising=False)

    with patch.object(config, "configure_logging"):
        client = config.create_client()

    assert client.endpoint == DEFAULT_ENDPOINT
    assert client.api_key is None
    client.close()


def test_create_client_explicit_path_wins(config_file, tmp_path, monkeypatch):
    """An explicit path takes precedence over the environment."""
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(tmp_path / "missing.json"))

    with patch.object(config, "configure_logging"):
        client = config.create_client(str(config_file))

    assert client.api_key == API_KEY
    client.close()


def test_configure_logging_accepts_unknown_level():
    """An unknown level name falls back to INFO instead of failing."""
    try:
        config.configure_logging("verbose")
        assert structlog.is_configured()
    finally:
        structlog.reset_defaults()
