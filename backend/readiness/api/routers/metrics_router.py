"""
Routes des mesures quotidiennes : consultation et suppression.
"""
import logging
from datetime import date as date_type
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from readiness.domain.entities.health_metrics import HealthMetricsRead
from readiness.domain.errors import ReadinessError
from readiness.domain.services.recalculation_service import RecalculationService
from readiness.api.routers._shared import get_readiness_service, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=List[HealthMetricsRead])
async def get_metrics(
    days: int = Query(30, ge=1, le=365),
    service: RecalculationService = Depends(get_readiness_service),
):
    try:
        return service.get_metrics(days)
    except ReadinessError as e:
        raise_http_error(e)


@router.delete("/{day}")
async def delete_metrics(day: date_type, service: RecalculationService = Depends(get_readiness_service)):
    """Supprime les mesures du jour ainsi que le score associe."""
    try:
        deleted = await service.delete_day(day)
    except ReadinessError as e:
        raise_http_error(e)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Aucune mesure pour {day}")
    return {"deleted": True, "date": day}
