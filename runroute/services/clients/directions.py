# runroute/services/clients/directions.py
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from runroute.core.config import settings
from runroute.core.errors import DirectionsError
from runroute.core.logger import logger
from runroute.models.routing import Coordinate, DirectionsResult


class DirectionsClient:
    """
    OpenRouteService directions for an ordered waypoint list.

    route() returns None when no route exists between the waypoints and
    raises DirectionsError on transport, auth or payload failures.
    """

    def __init__(
        self,
        api_key: str = settings.ORS_API_KEY,
        base_url: str = settings.ORS_BASE_URL,
        profile: str = settings.ORS_PROFILE,
        timeout_s: float = settings.HTTP_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/v2/directions/{profile}"
        self.timeout_s = timeout_s
        self.transport = transport

    async def route(self, waypoints: Sequence[Coordinate]) -> Optional[DirectionsResult]:
        body = {
            # ORS expects [lon, lat]
            "coordinates": [[c.lon, c.lat] for c in waypoints],
            "elevation": True,
            "extra_info": ["steepness"],
            "instructions": False,
            "options": {"avoid_features": ["ferries"]},
        }
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s), transport=self.transport
            ) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise DirectionsError(f"Directions request failed: {e}") from e

        if response.status_code == 404:
            logger.info("Directions: no route between {} waypoints", len(waypoints))
            return None

        if response.status_code != 200:
            raise DirectionsError(
                f"OpenRouteService API error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DirectionsError("Directions response is not valid JSON") from e

        try:
            routes = data.get("routes") or []
            if not routes or not routes[0].get("geometry"):
                return None

            route = routes[0]
            summary = route.get("summary") or {}
            return DirectionsResult(
                geometry=route["geometry"],
                dimensions=3 if body["elevation"] else 2,
                distance_m=float(summary.get("distance") or 0.0),
                duration_s=float(summary.get("duration") or 0.0),
                ascent_m=float(summary.get("ascent") or 0.0),
                descent_m=float(summary.get("descent") or 0.0),
                segments=route.get("segments") or [],
            )
        except (AttributeError, TypeError, ValueError, ValidationError) as e:
            raise DirectionsError(f"Unexpected directions payload: {e}") from e
