# runroute/services/orchestrator.py

import asyncio
import math
import re
from enum import Enum
from time import perf_counter
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from runroute.core.config import settings
from runroute.core.errors import (
    DirectionsError,
    ElevationError,
    InvalidPreferencesError,
    LocationNotFoundError,
    RouteGenerationError,
    ScoringError,
)
from runroute.core.logger import logger
from runroute.models.routing import (
    Coordinate,
    GenerationResult,
    GeometryState,
    Preferences,
    RouteCandidate,
    RouteEvaluation,
)
from runroute.services import geodesy
from runroute.services.candidate_generator import (
    MAX_VARIANTS,
    CandidateVariant,
    DistanceCorrectionState,
    RouteCandidateGenerator,
)
from runroute.services.clients.directions import DirectionsClient
from runroute.services.clients.elevation import ElevationClient
from runroute.services.clients.geocoding import GeocodingClient
from runroute.services.clients.scoring import ScoringClient
from runroute.services.elevation_profiler import ElevationProfiler
from runroute.services.polyline import PolylineCodec
from runroute.services.route_scorer import RouteScorer

_COORDINATE_TEXT = re.compile(r"^\s*(-?\d*\.?\d+)\s*[,\s]\s*(-?\d*\.?\d+)\s*$")


class OrchestratorState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GENERATING_CANDIDATES = "generating-candidates"
    AWAITING_GEOMETRY = "awaiting-geometry"
    SCORING = "scoring"
    RANKED = "ranked"
    ENHANCING = "enhancing"
    DONE = "done"
    ERROR = "error"


class CandidateOrchestrator:
    """
    High-level route generation pipeline:
    - validates preferences and resolves the start location
    - generates bearing/distance variants and snaps each to the road network
    - learns a per-bearing distance correction while the batch runs
    - scores candidates (LLM scorer, deterministic fallback) and ranks them
    - enriches a single chosen candidate with elevation analysis on demand

    One instance owns one DistanceCorrectionState; reuse an instance (or
    pass a state in) to carry learning across requests.
    """

    MIN_DISTANCE_KM = 0.5
    MAX_DISTANCE_KM = 50.0
    MIN_PACE = 3.0
    MAX_PACE = 8.0
    PACE_STEP_S = 5

    def __init__(
        self,
        directions: DirectionsClient,
        geocoder: Optional[GeocodingClient] = None,
        elevation: Optional[ElevationClient] = None,
        scoring: Optional[ScoringClient] = None,
        generator: Optional[RouteCandidateGenerator] = None,
        corrections: Optional[DistanceCorrectionState] = None,
        scorer: Optional[RouteScorer] = None,
        profiler: Optional[ElevationProfiler] = None,
        codec: Optional[PolylineCodec] = None,
        max_retries: int = settings.MAX_RETRIES,
        retry_base_delay_s: float = settings.RETRY_BASE_DELAY_S,
        concurrent: bool = settings.CONCURRENT_FANOUT,
        default_alternatives: int = settings.DEFAULT_ALTERNATIVES,
    ) -> None:
        self.directions = directions
        self.geocoder = geocoder
        self.elevation = elevation
        self.scoring = scoring
        self.generator = generator or RouteCandidateGenerator()
        self.corrections = corrections or DistanceCorrectionState()
        self.scorer = scorer or RouteScorer()
        self.profiler = profiler or ElevationProfiler()
        self.codec = codec or PolylineCodec()
        self.max_retries = max(1, max_retries)
        self.retry_base_delay_s = retry_base_delay_s
        self.concurrent = concurrent
        self.default_alternatives = default_alternatives
        self.state = OrchestratorState.IDLE

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def generate_candidates(
        self, preferences: Union[Preferences, Dict[str, Any]]
    ) -> GenerationResult:
        """
        Run the full pipeline and return candidates ranked best first.

        Raises InvalidPreferencesError before any I/O on bad input,
        LocationNotFoundError when a free-text start cannot be geocoded and
        RouteGenerationError when no candidate survives.
        """
        t0 = perf_counter()
        try:
            self._transition(OrchestratorState.VALIDATING)
            prefs = self.validate_preferences(preferences)
            start = await self.resolve_start(prefs.start_location)

            self._transition(OrchestratorState.GENERATING_CANDIDATES)
            candidates, skipped = await self._generate_with_retries(start, prefs)

            self._transition(OrchestratorState.SCORING)
            evaluations, used_external = await self._evaluate(candidates, prefs)

            ranked = self._rank(candidates, evaluations, used_external)
            self._transition(OrchestratorState.RANKED)
        except Exception:
            self._transition(OrchestratorState.ERROR)
            raise

        logger.info(
            "Generated {} candidate(s), {} skipped, best={} ({:.2f}), scoring={} in {:.2f} ms",
            len(ranked),
            skipped,
            ranked[0].id,
            ranked[0].score,
            "external" if used_external else "fallback",
            (perf_counter() - t0) * 1000.0,
        )
        self._transition(OrchestratorState.DONE)

        return GenerationResult(
            start=start,
            candidates=ranked,
            best_candidate_id=ranked[0].id,
            used_external_scoring=used_external,
            skipped=skipped,
        )

    async def enhance_candidate(self, candidate: RouteCandidate) -> RouteCandidate:
        """
        Populate the elevation profile, coloured segments, terrain class and
        kilometre markers of one candidate, fetching elevation first when
        the candidate only has geometry.

        If the elevation lookup fails the candidate stays geometry-only and
        the analysis reflects the flat geometry it has.
        """
        self._transition(OrchestratorState.ENHANCING)
        try:
            enhanced = await self._enhance(candidate)
        except Exception:
            self._transition(OrchestratorState.ERROR)
            raise

        self._transition(OrchestratorState.DONE)
        return enhanced

    async def _enhance(self, candidate: RouteCandidate) -> RouteCandidate:
        coordinates = list(candidate.coordinates)
        geometry_state = candidate.geometry_state
        update: Dict[str, Any] = {}

        if geometry_state == GeometryState.GEOMETRY_ONLY and self.elevation is not None:
            try:
                elevations = await self.elevation.elevations(coordinates)
            except ElevationError as e:
                logger.warning("Elevation lookup failed for {}: {}", candidate.id, e)
            else:
                coordinates = [
                    Coordinate(lat=c.lat, lon=c.lon, elevation=elevation)
                    for c, elevation in zip(coordinates, elevations)
                ]
                geometry_state = GeometryState.ELEVATION_ENRICHED

        profile = self.profiler.profile(coordinates)
        if geometry_state != candidate.geometry_state:
            update["ascent_m"] = profile.total_ascent_m
            update["descent_m"] = profile.total_descent_m

        update.update(
            coordinates=coordinates,
            geometry_state=geometry_state,
            elevation_profile=profile,
            colored_segments=self.profiler.colored_segments(coordinates),
            terrain=self.profiler.classify_terrain(profile),
            kilometer_markers=self.profiler.kilometer_markers(coordinates),
        )
        enhanced = candidate.model_copy(update=update)

        logger.info(
            "Enhanced {}: {} points, ascent={:.0f} m, terrain={}",
            candidate.id,
            len(coordinates),
            profile.total_ascent_m,
            enhanced.terrain.level.value,
        )
        return enhanced

    def validate_preferences(
        self, preferences: Union[Preferences, Dict[str, Any]]
    ) -> Preferences:
        """
        Check ranges and normalise pace and alternatives. Messages are
        user facing.
        """
        if not isinstance(preferences, Preferences):
            try:
                preferences = Preferences.model_validate(preferences)
            except ValidationError as e:
                raise InvalidPreferencesError(self._first_error(e)) from e

        distance = preferences.distance_km
        if not math.isfinite(distance) or not (
            self.MIN_DISTANCE_KM <= distance <= self.MAX_DISTANCE_KM
        ):
            raise InvalidPreferencesError("Distance must be between 0.5 and 50 kilometers")

        pace = self.parse_pace(preferences.pace_min_per_km)

        alternatives = preferences.alternatives
        if alternatives is None:
            alternatives = self.default_alternatives
        if not 1 <= alternatives <= MAX_VARIANTS:
            raise InvalidPreferencesError(
                f"Alternatives must be between 1 and {MAX_VARIANTS}"
            )

        location = preferences.start_location
        if isinstance(location, str):
            location = location.strip()
            if not location:
                raise InvalidPreferencesError("Starting location is required")
            location = self.parse_location(location)

        return preferences.model_copy(
            update={
                "pace_min_per_km": pace,
                "alternatives": alternatives,
                "start_location": location,
            }
        )

    def parse_pace(self, value: Union[float, str]) -> float:
        """
        Pace in minutes per km from a number, "4.5" or "4:30", snapped to
        the nearest 5 seconds.
        """
        try:
            if isinstance(value, str) and ":" in value:
                minutes, seconds = value.strip().split(":")
                pace = int(minutes) + int(seconds) / 60.0
            else:
                pace = float(value)
        except ValueError as e:
            raise InvalidPreferencesError(f"Invalid pace '{value}'") from e

        if not math.isfinite(pace) or not self.MIN_PACE <= pace <= self.MAX_PACE:
            raise InvalidPreferencesError("Pace must be between 3:00 and 8:00 min/km")

        total_seconds = round(pace * 60 / self.PACE_STEP_S) * self.PACE_STEP_S
        return total_seconds / 60.0

    @staticmethod
    def parse_location(text: str) -> Union[Coordinate, str]:
        """
        "lat, lon" becomes a Coordinate; any other text is kept as an
        address for the geocoder.
        """
        match = _COORDINATE_TEXT.match(text)
        if not match:
            return text

        lat, lon = float(match.group(1)), float(match.group(2))
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise InvalidPreferencesError(
                "Invalid starting location. Please enter valid coordinates or address."
            )
        return Coordinate(lat=lat, lon=lon)

    async def resolve_start(self, location: Union[Coordinate, str]) -> Coordinate:
        if isinstance(location, Coordinate):
            return Coordinate(lat=location.lat, lon=location.lon)

        if self.geocoder is None:
            raise LocationNotFoundError(f"Cannot geocode '{location}': no geocoder configured")

        results = await self.geocoder.search(location)
        best = results[0]
        logger.info("Geocoded '{}' -> ({:.6f}, {:.6f})", location, best.lat, best.lon)
        return Coordinate(lat=best.lat, lon=best.lon)

    # ------------------------------------------------------------------ #
    # Generation
    # ------------------------------------------------------------------ #

    async def _generate_with_retries(
        self, start: Coordinate, prefs: Preferences
    ) -> Tuple[List[RouteCandidate], int]:
        """
        Run the batch, retrying the whole batch with linear backoff when it
        produced nothing and at least one variant hit a transport error.
        """
        for attempt in range(1, self.max_retries + 1):
            candidates, skipped, transient = await self._generate_batch(start, prefs)
            if candidates:
                return candidates, skipped

            if not transient:
                raise RouteGenerationError(
                    "No routes could be generated for the given parameters"
                )

            if attempt < self.max_retries:
                delay = attempt * self.retry_base_delay_s
                logger.warning(
                    "Route generation attempt {} produced no routes; retrying in {:.1f}s",
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)

        raise RouteGenerationError(
            f"Route generation failed after {self.max_retries} attempts",
            transient=True,
        )

    async def _generate_batch(
        self, start: Coordinate, prefs: Preferences
    ) -> Tuple[List[RouteCandidate], int, bool]:
        variants = self.generator.variants(
            start,
            prefs.distance_km,
            prefs.shape,
            prefs.alternatives,
            self.corrections,
        )
        self._transition(OrchestratorState.AWAITING_GEOMETRY)

        candidates: List[RouteCandidate] = []
        skipped = 0
        transient = False

        if self.concurrent:
            batch = list(variants)
            outcomes = await asyncio.gather(
                *(self._fetch_candidate(v, prefs) for v in batch),
                return_exceptions=True,
            )
        else:
            batch, outcomes = [], []
            # Lazy iteration so each variant sees corrections learned so far
            for variant in variants:
                batch.append(variant)
                try:
                    outcomes.append(await self._fetch_candidate(variant, prefs))
                except DirectionsError as e:
                    outcomes.append(e)

        for variant, outcome in zip(batch, outcomes):
            if isinstance(outcome, DirectionsError):
                transient = True
                skipped += 1
                logger.warning("Failed to generate {}: {}", variant.id, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is None:
                skipped += 1
                logger.info("No route for {} (bearing {})", variant.id, variant.bearing)
            else:
                candidates.append(outcome)

        return candidates, skipped, transient

    async def _fetch_candidate(
        self, variant: CandidateVariant, prefs: Preferences
    ) -> Optional[RouteCandidate]:
        result = await self.directions.route(variant.waypoints)
        if result is None:
            return None

        coordinates = self.codec.decode(result.geometry, result.dimensions)
        if len(coordinates) < 2:
            logger.warning("Geometry for {} decoded to {} point(s)", variant.id, len(coordinates))
            return None

        distance_km = geodesy.path_distance_km(coordinates)
        if distance_km <= 0:
            distance_km = result.distance_m / 1000.0

        ascent, descent = result.ascent_m, result.descent_m
        if result.dimensions == 3 and ascent == 0 and descent == 0:
            profile = self.profiler.profile(coordinates)
            ascent, descent = profile.total_ascent_m, profile.total_descent_m

        # Only this read-modify-write touches shared state; no await inside.
        new_factor = self.corrections.record(
            variant.bearing, distance_km, variant.target_distance_km
        )
        logger.info(
            "{}: target={:.2f}km, requested={:.2f}km, actual={:.2f}km, "
            "error={:.3f}, new_adj={:.3f}",
            variant.id,
            variant.target_distance_km,
            variant.requested_distance_km,
            distance_km,
            distance_km / variant.target_distance_km,
            new_factor,
        )

        return RouteCandidate(
            id=variant.id,
            coordinates=coordinates,
            shape=prefs.shape,
            bearing=variant.bearing,
            compass=geodesy.compass_direction(variant.bearing),
            distance_multiplier=variant.distance_multiplier,
            target_distance_km=variant.target_distance_km,
            requested_distance_km=variant.requested_distance_km,
            distance_km=distance_km,
            duration_min=round(distance_km * float(prefs.pace_min_per_km), 1),
            ascent_m=ascent,
            descent_m=descent,
            geometry_state=(
                GeometryState.ELEVATION_ENRICHED
                if result.dimensions == 3
                else GeometryState.GEOMETRY_ONLY
            ),
        )

    # ------------------------------------------------------------------ #
    # Scoring and ranking
    # ------------------------------------------------------------------ #

    async def _evaluate(
        self, candidates: List[RouteCandidate], prefs: Preferences
    ) -> Tuple[List[RouteEvaluation], bool]:
        """
        Score with the external scorer, retried with linear backoff, and
        fall back to RouteScorer when it is missing or keeps failing.
        """
        if self.scoring is not None:
            for attempt in range(1, self.max_retries + 1):
                try:
                    return await self.scoring.evaluate(candidates, prefs), True
                except (ScoringError, asyncio.TimeoutError) as e:
                    logger.warning("Route evaluation attempt {} failed: {}", attempt, e)
                    if attempt < self.max_retries:
                        await asyncio.sleep(attempt * self.retry_base_delay_s)
            logger.warning("AI evaluation failed, using fallback scoring")

        return self.scorer.score_all(candidates, prefs), False

    @staticmethod
    def _rank(
        candidates: List[RouteCandidate],
        evaluations: List[RouteEvaluation],
        used_external: bool,
    ) -> List[RouteCandidate]:
        scored = [
            candidate.model_copy(
                update={
                    "score": evaluation.score,
                    "evaluation": evaluation,
                    "used_external_scoring": used_external,
                }
            )
            for candidate, evaluation in zip(candidates, evaluations)
        ]
        # sorted() is stable, so ties keep generation order
        return sorted(scored, key=lambda c: c.score, reverse=True)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _transition(self, state: OrchestratorState) -> None:
        logger.debug("Orchestrator state {} -> {}", self.state.value, state.value)
        self.state = state

    @staticmethod
    def _first_error(error: ValidationError) -> str:
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        return f"Invalid {field}: {first.get('msg', 'invalid value')}"
