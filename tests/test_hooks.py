from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from fastly_sdk import DecodeError
from fastly_sdk.encoding import decode_json
from fastly_sdk.hooks import field_table, resolve
from fastly_sdk.models import COMPATIBOOL, HEADER_MAP, RELATION
from sample_models import Backend, Header, Stats, Token


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-01-02T03:04:05Z", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("2024-01-02T03:04:05+00:00", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("2024-01-02 03:04:05", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
        ("2024-01-02T03:04:05.5Z", datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)),
        ("2024-01-02T03:04:05.123456789Z", datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)),
        ("2024-01-02T03:04:05.12+02:00", datetime(2024, 1, 2, 1, 4, 5, 120000, tzinfo=timezone.utc)),
    ],
)
def test_time_strings(raw: str, expected: datetime) -> None:
    assert decode_json(json.dumps({"created_at": raw}), Backend).created_at == expected


def test_empty_time_string_decodes_to_none() -> None:
    backend = decode_json(b'{"created_at": ""}', Backend)
    assert backend.created_at is None


def test_bad_time_string() -> None:
    with pytest.raises(DecodeError):
        decode_json(b'{"created_at": "yesterday"}', Backend)


def test_header_map() -> None:
    body = b'{"name": "h", "request_headers": {"A": "x", "B": ["y", "z"], "C": 3, "D": 1.5}}'
    header = decode_json(body, Header)
    assert header.request_headers == {"A": ["x"], "B": ["y", "z"], "C": ["3"], "D": ["1.500000"]}


def test_header_map_rejects_objects() -> None:
    with pytest.raises(DecodeError):
        decode_json(b'{"request_headers": {"A": {"nested": 1}}}', Header)


def test_weak_typing() -> None:
    body = b'{"requests": "42", "hit_ratio": "0.5", "enabled": "1", "version": 3, "datacenters": "SJC"}'
    stats = decode_json(body, Stats)
    assert stats.requests == 42
    assert stats.hit_ratio == 0.5
    assert stats.enabled is True
    assert stats.version == "3"
    assert stats.datacenters == ["SJC"]


def test_weak_typing_edge_values() -> None:
    stats = decode_json(b'{"requests": "0x1A", "enabled": "0", "version": true, "datacenters": {}}', Stats)
    assert stats.requests == 26
    assert stats.enabled is False
    assert stats.version == "1"
    assert stats.datacenters == []


@pytest.mark.parametrize("raw, expected", [("T", True), ("true", True), ("FALSE", False), ("f", False), ("", False)])
def test_weak_boolean_strings(raw: str, expected: bool) -> None:
    assert decode_json(json.dumps({"enabled": raw}), Stats).enabled is expected


@pytest.mark.parametrize("raw", ["yes", "no", "on", "off", "2"])
def test_weak_boolean_rejects_other_strings(raw: str) -> None:
    with pytest.raises(DecodeError):
        decode_json(json.dumps({"enabled": raw}), Stats)


def test_weak_typing_inside_maps() -> None:
    stats = decode_json(b'{"labels": {"a": "1", "b": 2.0}}', Stats)
    assert stats.labels == {"a": 1, "b": 2}


def test_compatibool_only_accepts_one_as_true() -> None:
    assert decode_json(b'{"use_ssl": "1"}', Backend).use_ssl is True
    assert decode_json(b'{"use_ssl": "true"}', Backend).use_ssl is False
    assert decode_json(b'{"use_ssl": true}', Backend).use_ssl is True


def test_absence_versus_zero() -> None:
    missing = decode_json(b'{"name": "b"}', Backend)
    zero = decode_json(b'{"name": "", "port": 0}', Backend)

    assert missing.port is None
    assert not missing.is_set("port")
    assert zero.port == 0
    assert zero.is_set("port")
    assert zero.name == ""
    assert zero.is_set("name")


def test_explicit_null_is_set_but_none() -> None:
    backend = decode_json(b'{"port": null}', Backend)
    assert backend.port is None
    assert backend.is_set("port")


def test_into_keeps_absent_fields() -> None:
    existing = Backend(name="origin", port=80, address="example.com")
    updated = decode_json(b'{"port": 443, "address": ""}', Backend, into=existing)

    assert updated == Backend(name="origin", port=443, address="")
    assert existing.port == 80


def test_field_table() -> None:
    fields = {field.name: field for field in field_table(Backend)}
    assert fields["use_ssl"].spec.has(COMPATIBOOL)
    assert fields["service_id"].excluded
    assert not fields["name"].excluded

    assert {field.name: field for field in field_table(Header)}["request_headers"].spec.has(HEADER_MAP)
    assert {field.name: field for field in field_table(Token)}["service"].is_relation


def test_resolve_strips_optional() -> None:
    spec = resolve(Stats.model_fields["datacenters"].annotation)
    assert spec.optional
    assert spec.origin is list
    assert spec.item is not None and spec.item.origin is str
    assert not resolve(int).optional
    assert RELATION not in resolve(int).markers
