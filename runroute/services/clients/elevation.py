# runroute/services/clients/elevation.py
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from runroute.core.config import settings
from runroute.core.errors import ElevationError
from runroute.core.logger import logger
from runroute.models.routing import Coordinate

CacheKey = Tuple[int, Tuple[float, float], Tuple[float, float], Tuple[float, float]]


class ElevationClient:
    """
    Open-Meteo elevation lookups.

    The API takes at most `batch_size` points per request; longer inputs are
    split into sequential requests and the results concatenated in order.

    Results are cached per geometry, keyed on the point count and the first,
    middle and last points. Once `cache_size` entries are held the oldest
    one is evicted.
    """

    def __init__(
        self,
        url: str = settings.ELEVATION_API_URL,
        batch_size: int = settings.ELEVATION_BATCH_SIZE,
        timeout_s: float = settings.HTTP_TIMEOUT_S,
        cache_size: int = settings.ELEVATION_CACHE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.url = url
        self.batch_size = batch_size
        self.timeout_s = timeout_s
        self.cache_size = cache_size
        self.transport = transport
        self._cache: Dict[CacheKey, List[float]] = {}

    async def elevations(self, coordinates: Sequence[Coordinate]) -> List[float]:
        if not coordinates:
            return []

        key = self.cache_key(coordinates)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Elevation cache hit for {} points", len(coordinates))
            return list(cached)

        result: List[float] = []
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s), transport=self.transport
        ) as client:
            for start in range(0, len(coordinates), self.batch_size):
                batch = coordinates[start:start + self.batch_size]
                result.extend(await self._fetch_batch(client, batch))

        logger.info(
            "Fetched {} elevations in {} request(s)",
            len(result),
            -(-len(coordinates) // self.batch_size),
        )
        self._remember(key, result)
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_entries(self) -> int:
        return len(self._cache)

    @staticmethod
    def cache_key(coordinates: Sequence[Coordinate]) -> CacheKey:
        first = coordinates[0]
        middle = coordinates[len(coordinates) // 2]
        last = coordinates[-1]
        return (
            len(coordinates),
            (round(first.lat, 6), round(first.lon, 6)),
            (round(middle.lat, 6), round(middle.lon, 6)),
            (round(last.lat, 6), round(last.lon, 6)),
        )

    def _remember(self, key: CacheKey, values: List[float]) -> None:
        if self.cache_size < 1:
            return
        self._cache[key] = list(values)
        while len(self._cache) > self.cache_size:
            # dicts keep insertion order, so the first key is the oldest
            del self._cache[next(iter(self._cache))]

    async def _fetch_batch(
        self, client: httpx.AsyncClient, batch: Sequence[Coordinate]
    ) -> List[float]:
        params = {
            "latitude": ",".join(f"{c.lat:.6f}" for c in batch),
            "longitude": ",".join(f"{c.lon:.6f}" for c in batch),
        }
        try:
            response = await client.get(self.url, params=params)
        except httpx.HTTPError as e:
            raise ElevationError(f"Elevation request failed: {e}") from e

        if response.status_code != 200:
            raise ElevationError(
                f"Elevation API error ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            values = response.json().get("elevation")
        except (AttributeError, ValueError) as e:
            raise ElevationError("Elevation response is not valid JSON") from e

        if not isinstance(values, list) or len(values) != len(batch):
            raise ElevationError("Invalid elevation data received")

        try:
            return [float(v) if v is not None else 0.0 for v in values]
        except (TypeError, ValueError) as e:
            raise ElevationError("Invalid elevation data received") from e
