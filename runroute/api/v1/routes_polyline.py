# runroute/api/v1/routes_polyline.py
from typing import List

from fastapi import APIRouter

from runroute.models.routing import Coordinate, PolylineDecodeRequest
from runroute.services import polyline

router = APIRouter(
    prefix="/polyline",
    tags=["polyline"],
)


@router.post("/decode", response_model=List[Coordinate], summary="Decode an encoded polyline")
async def decode_polyline(request: PolylineDecodeRequest) -> List[Coordinate]:
    """
    Best-effort decode: malformed input returns the points read before the
    damage rather than an error.
    """
    return polyline.decode(request.encoded, request.dimensions)
