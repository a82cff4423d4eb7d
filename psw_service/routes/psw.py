import logging

from fastapi import APIRouter, Depends, HTTPException

from shared.events import build_event, to_json

from ..dependencies import Services, get_services
from ..matching import rank
from ..matching.filters import norm
from ..schemas import (
    AvailablePSWsResponse,
    CreatePSW,
    Location,
    MatchRequest,
    PSWProfile,
    SearchPSWsResponse,
)

router = APIRouter(prefix="/api/psw", tags=["PSW"])

logger = logging.getLogger(__name__)


@router.post("", response_model=PSWProfile)
async def create_psw(data: CreatePSW, services: Services = Depends(get_services)):
    profile = await services.repository.create_psw(PSWProfile.model_validate(data.model_dump()))

    await services.cache.invalidate_for_psw(profile)

    event = build_event(
        "psw.created",
        {
            "psw_id": profile.id,
            "email": profile.email,
            "latitude": profile.location.latitude,
            "longitude": profile.location.longitude,
            "service_types": profile.service_types,
        },
    )
    await services.publisher.publish("psw.created", to_json(event))

    return profile


@router.post("/available", response_model=AvailablePSWsResponse)
async def get_available_psws(data: MatchRequest, services: Services = Depends(get_services)):
    key = services.cache.cache_key(data)
    cached = await services.cache.get(key)
    if cached:
        return AvailablePSWsResponse.model_validate_json(cached)

    workers = await services.repository.list_psws()
    ranked = services.pipeline.match(workers, data, limit=None)

    response = AvailablePSWsResponse(
        psw_profiles=ranked[: services.settings.match_result_limit],
        total_count=len(ranked),
    )
    await services.cache.set(key, response.model_dump_json(), data)

    logger.info(
        "available PSWs: %d of %d matched on %s %s-%s",
        len(ranked), len(workers), data.date, data.start_time, data.end_time,
    )
    return response


@router.get("/search", response_model=SearchPSWsResponse)
async def search_psws(
    query: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    services: Services = Depends(get_services),
):
    if not query or lat is None or lng is None:
        raise HTTPException(status_code=400, detail="Missing required query parameters")

    needle = norm(query)
    workers = await services.repository.list_psws()

    # simple search by name or service type
    found = [
        w for w in workers
        if needle in norm(w.name) or any(needle in norm(s) for s in w.service_types)
    ]
    ranked = rank(found, Location(latitude=lat, longitude=lng))

    return SearchPSWsResponse(results=ranked, total_count=len(ranked))


@router.get("/{psw_id}", response_model=PSWProfile)
async def get_psw(psw_id: str, services: Services = Depends(get_services)):
    psw = await services.repository.get_psw(psw_id)
    if not psw:
        raise HTTPException(status_code=404, detail="PSW not found")
    return psw
