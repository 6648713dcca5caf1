# runroute/models/routing.py

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from runroute.core.config import settings


class Coordinate(BaseModel):
    """
    Latitude/longitude in degrees plus elevation in metres.

    Elevation is 0 when unknown.
    """
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    elevation: float = 0.0


class RouteShape(str, Enum):
    LOOP = "loop"
    OUT_AND_BACK = "out-and-back"


class TerrainPreference(str, Enum):
    FLAT = "flat"
    HILLY = "hilly"


class Preferences(BaseModel):
    """
    Request body for the /routes endpoint.

    Ranges are checked by CandidateOrchestrator.validate_preferences so that
    the rejection message reaches the caller verbatim.

    start_location is either a coordinate or free text; "59.91, 10.75" is
    read as coordinates, anything else is geocoded as an address.
    """
    model_config = ConfigDict(frozen=True)

    distance_km: float
    pace_min_per_km: Union[float, str] = settings.DEFAULT_PACE_MIN_PER_KM
    shape: RouteShape = RouteShape.LOOP
    terrain: TerrainPreference = TerrainPreference.FLAT
    start_location: Union[Coordinate, str]
    alternatives: Optional[int] = None


class GeometryState(str, Enum):
    """
    Whether a candidate's elevation component is known.

    geometry-only candidates carry elevation 0 on every coordinate.
    """
    GEOMETRY_ONLY = "geometry-only"
    ELEVATION_ENRICHED = "elevation-enriched"


class GradientBucket(str, Enum):
    FLAT = "flat"
    MODERATE = "moderate"
    STEEP = "steep"


class SegmentGradient(BaseModel):
    distance_km: float
    elevation_change_m: float
    gradient_pct: float
    start_elevation_m: float
    end_elevation_m: float
    cumulative_distance_km: float
    bucket: GradientBucket
    color: str


class ElevationProfile(BaseModel):
    """
    Derived view of a coordinate sequence; never stored apart from the
    coordinates it was computed from.
    """
    total_distance_km: float = 0.0
    total_ascent_m: float = 0.0
    total_descent_m: float = 0.0
    max_elevation_m: float = 0.0
    min_elevation_m: float = 0.0
    average_gradient_pct: float = 0.0
    max_gradient_pct: float = 0.0
    segments: List[SegmentGradient] = []

    @property
    def ascent_per_km(self) -> float:
        if self.total_distance_km <= 0:
            return 0.0
        return self.total_ascent_m / self.total_distance_km


class ColoredSegment(BaseModel):
    """
    One consecutive coordinate pair, coloured by gradient for map display.
    """
    start: Coordinate
    end: Coordinate
    gradient_pct: float
    bucket: GradientBucket
    color: str
    distance_km: float
    elevation_change_m: float


class TerrainLevel(str, Enum):
    FLAT = "flat"
    ROLLING = "rolling"
    HILLY = "hilly"
    MOUNTAINOUS = "mountainous"


class TerrainClassification(BaseModel):
    level: TerrainLevel
    description: str
    difficulty: int
    color: str


class KilometerMarker(BaseModel):
    kilometer: int
    position: Coordinate


class ScoringSource(str, Enum):
    EXTERNAL = "external"
    FALLBACK = "fallback"


class ScoreCriteria(BaseModel):
    distance_accuracy: float = Field(ge=0.0, le=1.0)
    terrain_match: float = Field(ge=0.0, le=1.0)
    safety_score: float = Field(ge=0.0, le=1.0)
    scenic_value: float = Field(ge=0.0, le=1.0)
    navigation_ease: float = Field(ge=0.0, le=1.0)


class RouteEvaluation(BaseModel):
    route_id: str
    score: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    criteria: ScoreCriteria
    source: ScoringSource


class RouteCandidate(BaseModel):
    """
    One generated route alternative.

    Frozen: scoring and elevation enrichment return updated copies.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    coordinates: List[Coordinate] = Field(min_length=2)
    shape: RouteShape
    bearing: int
    compass: str = ""
    distance_multiplier: float = 1.0
    # Desired distance x multiplier, before correction.
    target_distance_km: float
    # Distance actually asked of the generator after correction.
    requested_distance_km: float
    distance_km: float
    duration_min: float
    ascent_m: float = 0.0
    descent_m: float = 0.0
    geometry_state: GeometryState = GeometryState.GEOMETRY_ONLY

    score: Optional[float] = None
    evaluation: Optional[RouteEvaluation] = None
    used_external_scoring: bool = False

    elevation_profile: Optional[ElevationProfile] = None
    colored_segments: Optional[List[ColoredSegment]] = None
    terrain: Optional[TerrainClassification] = None
    kilometer_markers: Optional[List[KilometerMarker]] = None


class DirectionsResult(BaseModel):
    """
    What the directions collaborator returns for one waypoint list.
    """
    geometry: str
    dimensions: int = 3
    distance_m: float = 0.0
    duration_s: float = 0.0
    ascent_m: float = 0.0
    descent_m: float = 0.0
    segments: List[dict] = []


class BoundingBox(BaseModel):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


class GeocodeResult(BaseModel):
    lat: float
    lon: float
    display_name: str
    bounding_box: Optional[BoundingBox] = None
    importance: Optional[float] = None


class ReverseGeocodeResponse(BaseModel):
    lat: float
    lon: float
    display_name: str


class GenerationResult(BaseModel):
    """
    Response for the /routes endpoint: candidates ranked best first.
    """
    start: Coordinate
    candidates: List[RouteCandidate]
    best_candidate_id: str
    used_external_scoring: bool
    skipped: int = 0


class PolylineDecodeRequest(BaseModel):
    encoded: str
    dimensions: int = Field(default=3, ge=2, le=3)
