# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Best-effort IP geolocation using the ip-api.com JSON API."""

import ipaddress
import logging
from dataclasses import dataclass

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

LOOKUP_FIELDS = "status,message,country,regionName,city,lat,lon,timezone,isp"


@dataclass(frozen=True)
class GeoLocation:
    """Approximate location of an IP address."""

    country: str | None = None
    region: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    isp: str | None = None


LOCAL_LOCATION = GeoLocation(
    country="Local",
    region="Development",
    city="Localhost",
    isp="Local Development",
)

UNKNOWN_LOCATION = GeoLocation(
    country="Unknown",
    region="Unknown",
    city="Unknown",
    isp="Unknown",
)


def is_public_ip(ip: str | None) -> bool | None:
    """Classify an address.

    Returns:
        True for a routable address, False for private/loopback/reserved ones,
        None when the value is not an IP address at all
    """
    if not ip:
        return None
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return None
    return address.is_global


class GeolocationService:
    """Looks up IP locations. Never raises; falls back to placeholders."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        enabled: bool | None = None,
    ) -> None:
        """Initialize the geolocation service.

        Args:
            base_url: API base URL, defaults to the configured one.
            timeout: Request timeout in seconds.
            enabled: Set False to skip all network lookups.
        """
        self.base_url = base_url or settings.geolocation_api_url
        self.timeout = timeout if timeout is not None else settings.geolocation_timeout
        self.enabled = settings.geolocation_enabled if enabled is None else enabled
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def lookup(self, ip: str | None) -> GeoLocation:
        """Resolve an IP address to a location.

        Private and loopback addresses map to LOCAL_LOCATION without a network
        call; anything unresolvable maps to UNKNOWN_LOCATION.
        """
        public = is_public_ip(ip)
        if public is False:
            return LOCAL_LOCATION
        if public is None or not self.enabled:
            return UNKNOWN_LOCATION

        try:
            client = await self._get_client()
            response = await client.get(f"/json/{ip}", params={"fields": LOOKUP_FIELDS})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geolocation lookup failed for {ip}: {e}")
            return UNKNOWN_LOCATION

        if data.get("status") != "success":
            logger.debug(f"Geolocation lookup rejected for {ip}: {data.get('message')}")
            return UNKNOWN_LOCATION

        return GeoLocation(
            country=data.get("country") or "Unknown",
            region=data.get("regionName") or "Unknown",
            city=data.get("city") or "Unknown",
            latitude=data.get("lat"),
            longitude=data.get("lon"),
            timezone=data.get("timezone"),
            isp=data.get("isp") or "Unknown",
        )
