"""Tests for client IP resolution from proxy headers."""

import pytest
from starlette.datastructures import Headers

from lms_presence.utils.client_ip import resolve_client_ip


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"x-forwarded-for": "203.0.113.7"}, "203.0.113.7"),
        ({"x-forwarded-for": "203.0.113.7, 10.0.0.1, 10.0.0.2"}, "203.0.113.7"),
        ({"x-forwarded-for": "  203.0.113.7  ,10.0.0.1"}, "203.0.113.7"),
        ({"x-real-ip": "198.51.100.4"}, "198.51.100.4"),
        ({"cf-connecting-ip": "192.0.2.1"}, "192.0.2.1"),
        (
            {
                "x-forwarded-for": "203.0.113.7",
                "x-real-ip": "198.51.100.4",
                "cf-connecting-ip": "192.0.2.1",
            },
            "203.0.113.7",
        ),
        (
            {"x-real-ip": "198.51.100.4", "cf-connecting-ip": "192.0.2.1"},
            "198.51.100.4",
        ),
        ({"x-forwarded-for": "", "x-real-ip": "198.51.100.4"}, "198.51.100.4"),
        ({"x-forwarded-for": " , 10.0.0.1", "cf-connecting-ip": "192.0.2.1"}, "192.0.2.1"),
        ({}, "unknown"),
        ({"user-agent": "Mozilla/5.0"}, "unknown"),
    ],
)
def test_resolve_client_ip(headers, expected):
    assert resolve_client_ip(headers) == expected


def test_resolve_client_ip_is_case_insensitive_for_request_headers():
    headers = Headers({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

    assert resolve_client_ip(headers) == "203.0.113.7"
