# runroute/services/candidate_generator.py
import math
import random
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from runroute.core.config import settings
from runroute.core.logger import logger
from runroute.models.routing import Coordinate, RouteShape
from runroute.services import geodesy

BEARINGS = (0, 45, 90, 135, 180, 225, 270, 315)
DISTANCE_MULTIPLIERS = (0.9, 1.0, 1.1)
MAX_VARIANTS = len(BEARINGS) * len(DISTANCE_MULTIPLIERS)


class DistanceCorrectionState:
    """
    Learned multiplicative distance corrections keyed by 45-degree bearing
    bucket, bounded to [MIN_FACTOR, MAX_FACTOR].

    Owned by one orchestrator (one request unless shared on purpose).
    record() reads and writes a bucket with no await in between, so
    coroutines finishing in any order never lose an update.
    """

    MIN_FACTOR = 0.5
    MAX_FACTOR = 2.0
    # Weight of the previous factor in the moving average
    SMOOTHING = 0.7

    def __init__(self, initial: Optional[Dict[int, float]] = None) -> None:
        self._factors: Dict[int, float] = {}
        for bearing, factor in (initial or {}).items():
            self._factors[geodesy.bearing_bucket(bearing)] = self._clamp(factor)

    def factor(self, bearing: float) -> float:
        return self._factors.get(geodesy.bearing_bucket(bearing), 1.0)

    def has(self, bearing: float) -> bool:
        return geodesy.bearing_bucket(bearing) in self._factors

    def record(self, bearing: float, actual_km: float, intended_km: float) -> float:
        """
        Update the bucket for `bearing` from one measured candidate and
        return the new factor.
        """
        bucket = geodesy.bearing_bucket(bearing)
        if actual_km <= 0 or intended_km <= 0:
            logger.warning(
                "Ignoring correction sample for bucket {}: actual={} intended={}",
                bucket,
                actual_km,
                intended_km,
            )
            return self._factors.get(bucket, 1.0)

        error = actual_km / intended_km
        correction = 1.0 / error

        previous = self._factors.get(bucket)
        if previous is None:
            updated = correction
        else:
            updated = previous * self.SMOOTHING + correction * (1.0 - self.SMOOTHING)

        updated = self._clamp(updated)
        self._factors[bucket] = updated
        return updated

    def snapshot(self) -> Dict[int, float]:
        return dict(self._factors)

    @classmethod
    def _clamp(cls, value: float) -> float:
        return max(cls.MIN_FACTOR, min(cls.MAX_FACTOR, value))


@dataclass(frozen=True)
class CandidateVariant:
    """
    One (bearing, distance multiplier) pair of a generation batch.
    """
    index: int
    bearing: int
    distance_multiplier: float
    # desired distance x multiplier
    target_distance_km: float
    # target x learned correction for the bearing bucket
    requested_distance_km: float
    waypoints: List[Coordinate]

    @property
    def id(self) -> str:
        return f"route_{self.index}"


class RouteCandidateGenerator:
    """
    Builds waypoint skeletons for candidate routes before they are snapped
    to the road network by the directions service.

    - loop: LOOP_WAYPOINTS points on a jittered circle around the start
    - out-and-back: an intermediate point and a turnaround on one bearing
    """

    JITTER_MIN = 0.8
    JITTER_MAX = 1.2
    INTERMEDIATE_RATIO = 0.7

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        num_waypoints: int = settings.LOOP_WAYPOINTS,
        loop_radius_factor: float = settings.LOOP_RADIUS_FACTOR,
        out_and_back_factor: float = settings.OUT_AND_BACK_FACTOR,
    ) -> None:
        if num_waypoints < 1:
            raise ValueError("num_waypoints must be positive")
        self.rng = rng or random.Random()
        self.num_waypoints = num_waypoints
        self.loop_radius_factor = loop_radius_factor
        self.out_and_back_factor = out_and_back_factor

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def waypoints(
        self,
        start: Coordinate,
        target_distance_km: float,
        shape: RouteShape,
        bearing: float,
    ) -> List[Coordinate]:
        """
        Waypoint skeleton beginning and ending at `start`.
        """
        origin = Coordinate(lat=start.lat, lon=start.lon)
        if shape == RouteShape.LOOP:
            inner = self._loop_waypoints(origin, target_distance_km, bearing)
        else:
            inner = self._out_and_back_waypoints(origin, target_distance_km, bearing)
        return [origin, *inner, origin]

    def loop_radius_km(self, target_distance_km: float) -> float:
        return target_distance_km / (2 * math.pi) * self.loop_radius_factor

    def out_and_back_reach_km(self, target_distance_km: float) -> float:
        return target_distance_km / self.out_and_back_factor

    def variants(
        self,
        start: Coordinate,
        distance_km: float,
        shape: RouteShape,
        alternatives: int,
        corrections: DistanceCorrectionState,
    ) -> Iterator[CandidateVariant]:
        """
        Yield up to `alternatives` variants, bearings first then multipliers.

        Lazy on purpose: the correction for variant i is read when it is
        produced, so a sequential consumer that records results between
        iterations feeds learning forward within the batch.
        """
        count = max(0, min(alternatives, MAX_VARIANTS))
        for i in range(count):
            bearing = BEARINGS[i % len(BEARINGS)]
            multiplier = DISTANCE_MULTIPLIERS[(i // len(BEARINGS)) % len(DISTANCE_MULTIPLIERS)]
            target = distance_km * multiplier

            factor = corrections.factor(bearing)
            if corrections.has(bearing):
                logger.debug(
                    "Applying learned adjustment for bearing {}: {:.3f}x", bearing, factor
                )
            requested = target * factor

            yield CandidateVariant(
                index=i,
                bearing=bearing,
                distance_multiplier=multiplier,
                target_distance_km=target,
                requested_distance_km=requested,
                waypoints=self.waypoints(start, requested, shape, bearing),
            )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _loop_waypoints(
        self, origin: Coordinate, target_distance_km: float, bearing: float
    ) -> List[Coordinate]:
        radius = self.loop_radius_km(target_distance_km)
        step = 360.0 / self.num_waypoints

        points = []
        for i in range(self.num_waypoints):
            # Jitter so the polygon is not perfectly regular
            reach = radius * self.rng.uniform(self.JITTER_MIN, self.JITTER_MAX)
            points.append(geodesy.destination(origin, (bearing + step * i) % 360.0, reach))
        return points

    def _out_and_back_waypoints(
        self, origin: Coordinate, target_distance_km: float, bearing: float
    ) -> List[Coordinate]:
        reach = self.out_and_back_reach_km(target_distance_km)
        return [
            geodesy.destination(origin, bearing, reach * self.INTERMEDIATE_RATIO),
            geodesy.destination(origin, bearing, reach),
        ]
