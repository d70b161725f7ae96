"""
Tests for webhook payload signing.
"""

import time

from easemail.webhook_security import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    build_delivery_headers,
    constant_time_compare,
    serialize_payload,
    verify_signature,
    verify_timestamp,
)


def test_payload_is_canonical():
    assert serialize_payload({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'


def test_headers_without_secret_are_unsigned():
    headers = build_delivery_headers(b"{}", "member.added", None, None, timestamp="1700000000")
    assert headers[EVENT_HEADER] == "member.added"
    assert headers[TIMESTAMP_HEADER] == "1700000000"
    assert SIGNATURE_HEADER not in headers
    assert DELIVERY_HEADER not in headers


def test_signed_headers_verify():
    body = serialize_payload({"event": "member.added"})
    headers = build_delivery_headers(body, "member.added", 7, "whsec_1")

    assert headers[DELIVERY_HEADER] == "7"
    assert headers[SIGNATURE_HEADER].startswith("sha256=")
    assert verify_signature("whsec_1", body, headers[TIMESTAMP_HEADER], headers[SIGNATURE_HEADER])


def test_tampering_is_detected():
    body = serialize_payload({"amount": 1})
    headers = build_delivery_headers(body, "x", 1, "whsec_1")
    timestamp, signature = headers[TIMESTAMP_HEADER], headers[SIGNATURE_HEADER]

    assert not verify_signature("whsec_2", body, timestamp, signature)
    assert not verify_signature("whsec_1", serialize_payload({"amount": 2}), timestamp, signature)
    assert not verify_signature("whsec_1", body, str(int(timestamp) + 1), signature)
    assert not verify_signature("whsec_1", body, timestamp, None)


def test_stale_timestamps_are_rejected():
    now = int(time.time())
    assert verify_timestamp(str(now - 60))
    assert not verify_timestamp(str(now - 301))
    assert not verify_timestamp("yesterday")
    assert not verify_timestamp(None)


def test_constant_time_compare_rejects_empty():
    assert constant_time_compare("abc", "abc")
    assert not constant_time_compare("", "")
