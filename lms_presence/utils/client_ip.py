"""Client IP resolution from reverse-proxy headers."""

from collections.abc import Mapping

from lms_presence.constants import CLIENT_IP_HEADERS, UNKNOWN_IP


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """
    Resolve the client IP address from proxy headers.

    Checks ``x-forwarded-for`` (first comma-separated entry),
    ``x-real-ip`` and ``cf-connecting-ip`` in that order. Empty values are
    skipped.

    Args:
        headers: Request headers. Starlette ``Headers`` are matched
            case-insensitively; plain mappings must use lower-case keys.

    Returns:
        The client IP, or ``"unknown"`` when no header carries one.

    Example:
        >>> resolve_client_ip({"x-forwarded-for": "203.0.113.7, 10.0.0.1"})
        '203.0.113.7'
    """
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if not value:
            continue

        ip = value.split(",")[0].strip()
        if ip:
            return ip

    return UNKNOWN_IP
