# tests/fakes.py
import asyncio
from typing import Callable, List, Optional, Sequence

from runroute.core.errors import DirectionsError, ElevationError, LocationNotFoundError
from runroute.models.routing import (
    Coordinate,
    DirectionsResult,
    GeocodeResult,
    RouteEvaluation,
    ScoreCriteria,
    ScoringSource,
)
from runroute.services.polyline import encode


def skeleton_route(waypoints: Sequence[Coordinate], dimensions: int = 3) -> DirectionsResult:
    """
    Pretend the road network follows the waypoints exactly, climbing
    10 m per waypoint.
    """
    climbing = [
        Coordinate(lat=w.lat, lon=w.lon, elevation=10.0 * i) for i, w in enumerate(waypoints)
    ]
    return DirectionsResult(
        geometry=encode(climbing, dimensions),
        dimensions=dimensions,
        distance_m=0.0,
        duration_s=0.0,
    )


class FakeDirections:
    def __init__(self, responder: Optional[Callable] = None, dimensions: int = 3) -> None:
        self.responder = responder
        self.dimensions = dimensions
        self.calls: List[List[Coordinate]] = []

    async def route(self, waypoints):
        self.calls.append(list(waypoints))
        if self.responder is not None:
            return self.responder(len(self.calls) - 1, waypoints)
        return skeleton_route(waypoints, self.dimensions)


def no_route(index, waypoints):
    return None


def transport_failure(index, waypoints):
    raise DirectionsError("upstream unavailable", status_code=503)


class FakeScoring:
    """
    Scores candidates with fixed values, or fails with `error` every time.
    """

    def __init__(self, scores: Optional[List[float]] = None, error: Optional[BaseException] = None):
        self.scores = scores
        self.error = error
        self.calls = 0

    async def evaluate(self, candidates, preferences):
        self.calls += 1
        if self.error is not None:
            raise self.error
        scores = self.scores or [0.5] * len(candidates)
        return [
            RouteEvaluation(
                route_id=c.id,
                score=score,
                reasoning="fake",
                criteria=ScoreCriteria(
                    distance_accuracy=score,
                    terrain_match=score,
                    safety_score=score,
                    scenic_value=score,
                    navigation_ease=score,
                ),
                source=ScoringSource.EXTERNAL,
            )
            for c, score in zip(candidates, scores)
        ]


class TimingOutScoring(FakeScoring):
    def __init__(self):
        super().__init__(error=asyncio.TimeoutError())


class FakeGeocoder:
    def __init__(self, results: Optional[List[GeocodeResult]] = None, address: str = "Karl Johans gate, Oslo"):
        self.results = results or []
        self.address = address
        self.queries: List[str] = []

    async def search(self, text):
        self.queries.append(text)
        if not self.results:
            raise LocationNotFoundError(f"No results found for '{text}'")
        return self.results

    async def reverse(self, lat, lon):
        return self.address


class FakeElevation:
    def __init__(self, fail: bool = False, step: float = 5.0):
        self.fail = fail
        self.step = step
        self.calls = 0

    async def elevations(self, coordinates):
        self.calls += 1
        if self.fail:
            raise ElevationError("elevation service down", status_code=500)
        return [100.0 + self.step * i for i in range(len(coordinates))]
