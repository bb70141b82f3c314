"""IP geolocation lookups against an ip-api.com compatible service."""

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from lms_presence.constants import NOT_AVAILABLE
from lms_presence.exceptions import ExternalServiceError
from lms_presence.logging import logger
from lms_presence.schemas.connection import NetworkInfo
from lms_presence.settings import app_settings


def unavailable_network_info(
    ip: str, isp: str = NOT_AVAILABLE, is_proxy: bool = False
) -> NetworkInfo:
    """Network info with every resolvable field set to the placeholder."""
    return NetworkInfo(
        ip=ip,
        isp=isp,
        organization=NOT_AVAILABLE,
        country=NOT_AVAILABLE,
        region=NOT_AVAILABLE,
        city=NOT_AVAILABLE,
        timezone=NOT_AVAILABLE,
        is_vpn=False,
        is_proxy=is_proxy,
        is_tor=False,
        latitude=None,
        longitude=None,
    )


def parse_lookup_response(ip: str, data: dict[str, Any]) -> NetworkInfo:
    """
    Build NetworkInfo from an ip-api.com response body.

    Hosting or proxy addresses are flagged as VPN. Tor cannot be detected
    by the service directly, so an organization name containing "tor" is
    used as an approximation.

    Args:
        ip: IP that was looked up, used when the response lacks ``query``.
        data: Decoded JSON response.

    Returns:
        NetworkInfo for the address.
    """
    if data.get("status") == "fail":
        return unavailable_network_info(ip, is_proxy=bool(data.get("proxy")))

    is_proxy = data.get("proxy") is True
    is_vpn = data.get("hosting") is True or is_proxy
    org = data.get("org") or ""

    return NetworkInfo(
        ip=data.get("query") or ip,
        isp=data.get("isp") or NOT_AVAILABLE,
        organization=org or NOT_AVAILABLE,
        country=data.get("country") or NOT_AVAILABLE,
        region=data.get("regionName") or data.get("region") or NOT_AVAILABLE,
        city=data.get("city") or NOT_AVAILABLE,
        timezone=data.get("timezone") or NOT_AVAILABLE,
        isp_type=data.get("as") or NOT_AVAILABLE,
        is_vpn=is_vpn,
        is_proxy=is_proxy,
        is_tor="tor" in org.lower(),
        latitude=data.get("lat") or None,
        longitude=data.get("lon") or None,
    )


async def lookup_network_info(
    ip: str, client: httpx.AsyncClient | None = None
) -> NetworkInfo:
    """
    Look up geolocation and network details for an IP.

    Args:
        ip: Public IP address of the client.
        client: Optional shared HTTP client.

    Returns:
        NetworkInfo for the address.

    Raises:
        ExternalServiceError: If the lookup service is unreachable,
            answers with an error status, or returns a body that is not
            a well-formed lookup result.
    """
    url = f"{app_settings.GEOLOOKUP_URL.rstrip('/')}/{ip}"
    params = {"fields": app_settings.GEOLOOKUP_FIELDS}

    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=app_settings.GEOLOOKUP_TIMEOUT_SECONDS
            ) as own_client:
                response = await own_client.get(url, params=params)
        else:
            response = await client.get(
                url,
                params=params,
                timeout=app_settings.GEOLOOKUP_TIMEOUT_SECONDS,
            )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(
                f"expected a JSON object, got {type(data).__name__}"
            )
        return parse_lookup_response(ip, data)
    except (httpx.HTTPError, ValueError, PydanticValidationError) as ex:
        logger.error(f"IP geolocation lookup failed for {ip}: {ex}")
        raise ExternalServiceError(
            "Error al consultar servicio de geolocalización"
        ) from ex
