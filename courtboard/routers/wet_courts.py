"""
Wet-court (rain) emergency controls for the admin console.

Backend failures are reported in the returned state's ``error`` field,
not as HTTP errors.
"""

from fastapi import APIRouter, HTTPException, Path, status

from courtboard.models import WetState
from courtboard.services.registry import registry

router = APIRouter(prefix="/api/wet-courts", tags=["wet-courts"])


@router.get(
    "",
    response_model=WetState,
    operation_id="getWetCourts",
    summary="Current wet-mode state",
)
async def get_wet_courts() -> WetState:
    return registry.wet_courts.state


@router.post(
    "/activate",
    response_model=WetState,
    operation_id="activateWetCourts",
    summary="Mark all courts wet",
)
async def activate() -> WetState:
    return await registry.wet_courts.activate()


@router.post(
    "/deactivate",
    response_model=WetState,
    operation_id="deactivateWetCourts",
    summary="Clear all wet courts and leave wet mode",
)
async def deactivate() -> WetState:
    return await registry.wet_courts.deactivate()


@router.post(
    "/clear-all",
    response_model=WetState,
    operation_id="clearAllWetCourts",
    summary="Mark every court dry, staying in wet mode",
)
async def clear_all() -> WetState:
    return await registry.wet_courts.clear_all()


@router.post(
    "/{court_number}/clear",
    response_model=WetState,
    operation_id="clearWetCourt",
    summary="Mark a single court dry",
)
async def clear_court(court_number: int = Path(..., ge=1)) -> WetState:
    controller = registry.wet_courts
    if registry.board.court(court_number) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Court {court_number} not found",
        )
    return await controller.clear_court(court_number)
