"""
Doses API - today's schedule, upcoming doses, taking and removing doses
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status

from medreminder.core.exceptions import DoseNotFoundError
from medreminder.dependencies import (
    get_current_user_id,
    get_dose_schedule_service,
    get_dose_service,
)
from medreminder.schemas.medicine_schemas import DashboardSummary, DoseOut, GenerationResult
from medreminder.services.dose_schedule_service import DoseScheduleService
from medreminder.services.dose_service import DoseService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["doses"])


@router.get("/dashboard", response_model=DashboardSummary)
def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    service: DoseService = Depends(get_dose_service),
):
    """Home screen counts and the next few doses"""
    return service.dashboard(user_id)


@router.get("/doses/today", response_model=List[DoseOut])
def get_today_doses(
    user_id: str = Depends(get_current_user_id),
    scheduler: DoseScheduleService = Depends(get_dose_schedule_service),
    service: DoseService = Depends(get_dose_service),
):
    scheduler.generate_for_all_active_medicines(user_id)
    return service.today_doses(user_id)


@router.get("/doses/upcoming", response_model=List[DoseOut])
def get_upcoming_doses(
    limit: int = Query(5, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    scheduler: DoseScheduleService = Depends(get_dose_schedule_service),
    service: DoseService = Depends(get_dose_service),
):
    scheduler.generate_for_all_active_medicines(user_id)
    return service.upcoming_doses(user_id, limit=limit)


@router.post("/doses/generate", response_model=GenerationResult)
def generate_doses(
    user_id: str = Depends(get_current_user_id),
    scheduler: DoseScheduleService = Depends(get_dose_schedule_service),
):
    """Top up future doses for every active medicine lacking them"""
    return GenerationResult(doses_created=scheduler.generate_for_all_active_medicines(user_id))


@router.post("/doses/{dose_id}/take", response_model=DoseOut)
def mark_dose_taken(
    dose_id: str,
    user_id: str = Depends(get_current_user_id),
    service: DoseService = Depends(get_dose_service),
):
    try:
        return service.mark_taken(user_id, dose_id)
    except DoseNotFoundError:
        raise HTTPException(status_code=404, detail="Dose not found")


@router.delete("/doses/{dose_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_dose(
    dose_id: str,
    user_id: str = Depends(get_current_user_id),
    service: DoseService = Depends(get_dose_service),
):
    try:
        service.remove_dose(user_id, dose_id)
    except DoseNotFoundError:
        raise HTTPException(status_code=404, detail="Dose not found")
