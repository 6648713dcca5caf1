# runroute/services/clients/geocoding.py
from typing import Any, Dict, List, Optional

import httpx

from runroute.core.config import settings
from runroute.core.errors import GeocodingError, LocationNotFoundError
from runroute.models.routing import BoundingBox, GeocodeResult


class GeocodingClient:
    """
    Nominatim forward and reverse geocoding.

    "Nothing found" raises LocationNotFoundError, transport failures raise
    GeocodingError.
    """

    def __init__(
        self,
        base_url: str = settings.NOMINATIM_BASE_URL,
        user_agent: str = settings.USER_AGENT,
        timeout_s: float = settings.HTTP_TIMEOUT_S,
        limit: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": user_agent}
        self.timeout_s = timeout_s
        self.limit = limit
        self.transport = transport

    async def search(self, text: str) -> List[GeocodeResult]:
        query = text.strip()
        if not query:
            raise LocationNotFoundError("Please enter a valid address")

        data = await self._get(
            "/search",
            {"q": query, "format": "json", "limit": self.limit, "addressdetails": 1},
        )
        if not data:
            raise LocationNotFoundError(
                f"No results found for '{query}'. Please try a different search term."
            )
        return [self._parse_result(item) for item in data]

    async def reverse(self, lat: float, lon: float) -> str:
        data = await self._get(
            "/reverse",
            {"lat": lat, "lon": lon, "format": "json", "addressdetails": 1},
        )
        if not data or "error" in data:
            raise LocationNotFoundError("No address found for these coordinates")
        return self.format_address(data)

    @staticmethod
    def format_address(data: Dict[str, Any]) -> str:
        """
        Short "road, city, state, country" label, falling back to the
        full display name.
        """
        addr = data.get("address") or {}
        parts = []

        road = addr.get("road")
        if road and addr.get("house_number"):
            parts.append(f"{addr['house_number']} {road}")
        elif road:
            parts.append(road)

        city = addr.get("city") or addr.get("town") or addr.get("village")
        if city:
            parts.append(city)

        if addr.get("state") and addr.get("country"):
            parts.append(f"{addr['state']}, {addr['country']}")
        elif addr.get("country"):
            parts.append(addr["country"])

        return ", ".join(parts) or data.get("display_name") or "Unknown location"

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s), transport=self.transport
            ) as client:
                response = await client.get(
                    f"{self.base_url}{path}", params=params, headers=self.headers
                )
        except httpx.HTTPError as e:
            raise GeocodingError(f"Geocoding request failed: {e}") from e

        if response.status_code != 200:
            raise GeocodingError(
                f"Geocoding failed ({response.status_code})",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise GeocodingError("Geocoding response is not valid JSON") from e

    @staticmethod
    def _parse_result(item: Dict[str, Any]) -> GeocodeResult:
        box = item.get("boundingbox")
        bounding_box = None
        if box and len(box) == 4:
            # Nominatim order: south, north, west, east
            bounding_box = BoundingBox(
                min_lat=float(box[0]),
                max_lat=float(box[1]),
                min_lon=float(box[2]),
                max_lon=float(box[3]),
            )
        importance = item.get("importance")
        return GeocodeResult(
            lat=float(item["lat"]),
            lon=float(item["lon"]),
            display_name=item.get("display_name", ""),
            bounding_box=bounding_box,
            importance=float(importance) if importance is not None else None,
        )
