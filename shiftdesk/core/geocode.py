"""Reverse geocoding of shift coordinates for shiftdesk.

Turns a clock-in position into a short human-readable address using the
OpenStreetMap Nominatim API. Lookups go through an explicit, injectable
GeocodeCache keyed on rounded coordinates, so repeated clock-ins from the
same site do not hit the public geocoder.

Example:
    >>> cache = GeocodeCache(ttl_seconds=86400, max_entries=512)
    >>> async with ReverseGeocoder(cache=cache) as geocoder:
    ...     address = await geocoder.reverse(14.5995, 120.9842)
    ...     print(address.label)
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

NOMINATIM_ENDPOINT = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "shiftdesk/0.1 (admin@example.com)"


@dataclass(frozen=True)
class Address:
    """Reverse-geocoded address.

    Attributes:
        barangay: Neighbourhood-level area (suburb, quarter, village...)
        city: City, town, municipality or county
        state: State or region
        country: Country name
    """

    barangay: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def label(self) -> str:
        """Comma-joined non-empty parts, most specific first."""
        return ", ".join(p for p in (self.barangay, self.city, self.state, self.country) if p)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "barangay": self.barangay,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "label": self.label,
        }


class GeocodeError(Exception):
    """Reverse geocoding failed.

    Raised for invalid coordinates, network errors, and non-2xx
    responses from the geocoder.
    """

    pass


class GeocodeCache:
    """Bounded TTL cache of addresses keyed by rounded coordinates.

    Entries expire after ``ttl_seconds``; beyond ``max_entries`` the least
    recently used entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 86400,
        max_entries: int = 512,
        precision: int = 4,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Entry lifetime in seconds
            max_entries: Maximum number of cached addresses
            precision: Decimal places kept in the coordinate key
                (4 places is roughly 11 m)
            clock: Monotonic time source, injectable for tests
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.precision = precision
        self._clock = clock
        self._entries: OrderedDict[tuple[float, float], tuple[float, Address]] = OrderedDict()

    def key(self, lat: float, lng: float) -> tuple[float, float]:
        return (round(lat, self.precision), round(lng, self.precision))

    def get(self, lat: float, lng: float) -> Address | None:
        """Return a live cached address, dropping it if expired."""
        key = self.key(lat, lng)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, address = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return address

    def put(self, lat: float, lng: float, address: Address) -> None:
        key = self.key(lat, lng)
        self._entries[key] = (self._clock(), address)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _first(fields: dict, *names: str) -> str | None:
    for name in names:
        value = fields.get(name)
        if value:
            return value
    return None


def parse_address(payload: dict) -> Address:
    """Map a Nominatim jsonv2 payload onto an Address."""
    if not isinstance(payload, dict):
        raise ValueError("expected a JSON object")
    fields = payload.get("address") or {}
    return Address(
        # Barangay often appears as suburb/neighbourhood/quarter/village in PH
        barangay=_first(fields, "suburb", "neighbourhood", "quarter", "village", "barangay"),
        city=_first(fields, "city", "town", "municipality", "county"),
        state=_first(fields, "state"),
        country=_first(fields, "country"),
    )


class ReverseGeocoder:
    """Async Nominatim reverse geocoder with an injected cache."""

    def __init__(
        self,
        endpoint: str = NOMINATIM_ENDPOINT,
        user_agent: str = DEFAULT_USER_AGENT,
        cache: GeocodeCache | None = None,
        timeout: float = 10.0,
    ):
        """Initialize the geocoder.

        Args:
            endpoint: Nominatim base URL
            user_agent: Identifying User-Agent (required by Nominatim policy)
            cache: Address cache; None disables caching
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint.rstrip("/")
        self.user_agent = user_agent
        self.cache = cache
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        return self._client

    async def reverse(self, lat: float, lng: float) -> Address:
        """Resolve coordinates to an address.

        Args:
            lat: Latitude in degrees (-90..90)
            lng: Longitude in degrees (-180..180)

        Returns:
            Address (possibly with every part None for open sea)

        Raises:
            GeocodeError: On invalid coordinates or geocoder failure
        """
        if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
            raise GeocodeError(f"Invalid coordinates: {lat}, {lng}")

        if self.cache is not None:
            cached = self.cache.get(lat, lng)
            if cached is not None:
                logger.debug(f"Geocode cache hit for {lat:.4f},{lng:.4f}")
                return cached

        params = {
            "format": "jsonv2",
            "addressdetails": 1,
            "lat": lat,
            "lon": lng,
        }

        try:
            client = await self._get_client()
            resp = await client.get(f"{self.endpoint}/reverse", params=params)
            resp.raise_for_status()
            address = parse_address(resp.json())
        except httpx.HTTPStatusError as e:
            raise GeocodeError(f"Geocoder {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GeocodeError(f"Geocoder request failed: {e}") from e
        except ValueError as e:
            raise GeocodeError(f"Geocoder returned invalid JSON: {e}") from e

        if self.cache is not None:
            self.cache.put(lat, lng, address)
        return address

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ReverseGeocoder":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
