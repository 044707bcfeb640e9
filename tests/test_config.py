"""Tests for fixture settings."""

import pytest
from pydantic import ValidationError

from mittons_fixtures.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.HEALTH_CHECK_TIMEOUT_SECONDS == 5.0
    assert settings.poll_interval_seconds == 0.05
    assert settings.RUN_ID_LABEL == "mittons.fixtures.run.id"
    assert settings.HOST_RESOLUTION == "published"


def test_environment_overrides(monkeypatch):
    """Test that prefixed environment variables override defaults."""
    monkeypatch.setenv("MITTONS_HEALTH_CHECK_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("MITTONS_HOST_RESOLUTION", "container_ip")
    monkeypatch.setenv("MITTONS_DOCKER_URL", "unix:///var/run/docker.sock")

    settings = Settings(_env_file=None)

    assert settings.HEALTH_CHECK_TIMEOUT_SECONDS == 12.5
    assert settings.HOST_RESOLUTION == "container_ip"
    assert settings.DOCKER_URL == "unix:///var/run/docker.sock"


@pytest.mark.parametrize(
    "field",
    ["HEALTH_CHECK_TIMEOUT_SECONDS", "HEALTH_CHECK_POLL_INTERVAL_MS", "GATEWAY_TIMEOUT_SECONDS", "PULL_TIMEOUT_SECONDS"],
)
@pytest.mark.parametrize("value", [0, -1])
def test_durations_must_be_positive(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_host_resolution_is_restricted():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, HOST_RESOLUTION="bridge")
