import datetime

import pytest

from mdns_snapshot.config.discovery_config import (
    DEFAULT_SERVICE_TYPE,
    DiscoveryConfig,
)


def test_defaults():
    config = DiscoveryConfig()

    assert config.service_type == DEFAULT_SERVICE_TYPE == "_aaxion._tcp.local."
    assert config.duration_seconds == 2.0
    assert config.poll_interval_seconds == pytest.approx(0.1)
    assert config.resolve_timeout_ms == 1000
    assert config.ip_version == "all"
    assert config.interfaces is None
    assert config.raise_on_receive_error is False


@pytest.mark.parametrize(
    "field_name", ["duration", "poll_interval", "resolve_timeout"]
)
@pytest.mark.parametrize(
    "value", [datetime.timedelta(0), datetime.timedelta(seconds=-1)]
)
def test_non_positive_durations_rejected(field_name, value):
    with pytest.raises(ValueError):
        DiscoveryConfig(**{field_name: value})


def test_durations_must_be_timedelta():
    with pytest.raises(TypeError):
        DiscoveryConfig(duration=2)  # type: ignore[arg-type]


@pytest.mark.parametrize("poll_ms", [2000, 3000])
def test_poll_interval_must_be_below_duration(poll_ms):
    with pytest.raises(ValueError):
        DiscoveryConfig(poll_interval=datetime.timedelta(milliseconds=poll_ms))


def test_unknown_ip_version_rejected():
    with pytest.raises(ValueError):
        DiscoveryConfig(ip_version="v5")  # type: ignore[arg-type]


def test_config_is_frozen():
    config = DiscoveryConfig()
    with pytest.raises(AttributeError):
        config.duration = datetime.timedelta(seconds=5)  # type: ignore[misc]
