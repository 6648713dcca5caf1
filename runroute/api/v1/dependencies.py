# runroute/api/v1/dependencies.py
from typing import Optional

from runroute.core.config import settings
from runroute.services.clients.directions import DirectionsClient
from runroute.services.clients.elevation import ElevationClient
from runroute.services.clients.geocoding import GeocodingClient
from runroute.services.clients.scoring import ScoringClient
from runroute.services.orchestrator import CandidateOrchestrator

# Single shared instance, so its lookup cache outlives one request
elevation_client = ElevationClient()


def get_geocoder() -> GeocodingClient:
    return GeocodingClient()


def get_elevation_client() -> ElevationClient:
    return elevation_client


def get_orchestrator() -> CandidateOrchestrator:
    """
    A fresh orchestrator per request, so distance corrections learned for
    one request never leak into another. The elevation client is shared.
    """
    scoring: Optional[ScoringClient] = None
    if settings.OPENAI_API_KEY:
        scoring = ScoringClient()

    return CandidateOrchestrator(
        directions=DirectionsClient(),
        geocoder=get_geocoder(),
        elevation=get_elevation_client(),
        scoring=scoring,
    )
