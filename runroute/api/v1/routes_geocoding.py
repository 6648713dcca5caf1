# runroute/api/v1/routes_geocoding.py
from typing import List

from fastapi import APIRouter, Depends, Query

from runroute.api.v1.dependencies import get_geocoder
from runroute.models.routing import GeocodeResult, ReverseGeocodeResponse
from runroute.services.clients.geocoding import GeocodingClient

router = APIRouter(
    prefix="/geocode",
    tags=["geocoding"],
)


@router.get("/", response_model=List[GeocodeResult], summary="Search an address")
async def search(
    q: str = Query(min_length=1),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> List[GeocodeResult]:
    return await geocoder.search(q)


@router.get("/reverse", response_model=ReverseGeocodeResponse, summary="Address for a point")
async def reverse(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> ReverseGeocodeResponse:
    display_name = await geocoder.reverse(lat, lon)
    return ReverseGeocodeResponse(lat=lat, lon=lon, display_name=display_name)
