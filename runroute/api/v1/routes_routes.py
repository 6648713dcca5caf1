# runroute/api/v1/routes_routes.py
from fastapi import APIRouter, Depends

from runroute.models.routing import GenerationResult, Preferences, RouteCandidate
from runroute.api.v1.dependencies import get_orchestrator
from runroute.services.orchestrator import CandidateOrchestrator

router = APIRouter(
    prefix="/routes",
    tags=["routes"],
)


@router.post(
    "/",
    response_model=GenerationResult,
    summary="Generate and rank candidate running routes",
)
async def generate_routes(
    preferences: Preferences,
    orchestrator: CandidateOrchestrator = Depends(get_orchestrator),
) -> GenerationResult:
    """
    Generate route alternatives around the start location.

    - Synthesises loop or out-and-back waypoints in 8 directions.
    - Snaps each to the walking network and measures it.
    - Scores (AI when available, deterministic otherwise) and ranks them.
    """
    return await orchestrator.generate_candidates(preferences)


@router.post(
    "/enhance",
    response_model=RouteCandidate,
    summary="Add elevation analysis to one candidate",
)
async def enhance_route(
    candidate: RouteCandidate,
    orchestrator: CandidateOrchestrator = Depends(get_orchestrator),
) -> RouteCandidate:
    return await orchestrator.enhance_candidate(candidate)
