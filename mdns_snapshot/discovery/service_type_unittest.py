import pytest

from mdns_snapshot.discovery.service_type import normalize_service_type


@pytest.mark.parametrize(
    "label, expected",
    [
        ("_aaxion._tcp.local.", "_aaxion._tcp.local."),
        ("_aaxion._udp.local.", "_aaxion._udp.local."),
        ("_aaxion._tcp", "_aaxion._tcp.local."),
        ("_aaxion._udp", "_aaxion._udp.local."),
        ("_aaxion", "_aaxion._tcp.local."),
        ("_e2e-1a2b3c4d", "_e2e-1a2b3c4d._tcp.local."),
        ("_my_service._tcp.local.", "_my_service._tcp.local."),
    ],
)
def test_valid_labels(label, expected):
    assert normalize_service_type(label) == expected


@pytest.mark.parametrize(
    "label",
    [
        "",
        "_",
        "aaxion._tcp.local.",
        "_aaxion._tcp.local",
        "_aaxion.local.",
        "_aaxion._sctp.local.",
        "_bad--name._tcp.local.",
        "_trailing-._tcp.local.",
        "_has space._tcp.local.",
        "instance._aaxion._tcp.local.",
    ],
)
def test_invalid_labels(label):
    with pytest.raises(ValueError):
        normalize_service_type(label)


def test_non_string_raises_type_error():
    with pytest.raises(TypeError):
        normalize_service_type(None)  # type: ignore[arg-type]
