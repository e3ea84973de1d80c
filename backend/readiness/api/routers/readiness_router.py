"""
Routes readiness : score du jour, historique, recalculs et backfill.
Routes = validation + delegation au coordinateur. Pas de logique metier ici.
"""
import logging
from dataclasses import asdict
from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from readiness.domain.entities.readiness_score import ReadinessCategory, ReadinessScoreRead
from readiness.domain.entities.readiness_settings import ReadinessSettings
from readiness.domain.errors import ReadinessError
from readiness.domain.services.recalculation_service import (
    BACKFILL_DAYS,
    RecalculationService,
    ScoreOutcome,
)
from readiness.api.routers._shared import (
    get_readiness_service,
    get_readiness_settings,
    limiter,
    raise_http_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/readiness", tags=["readiness"])


class ScoreOutcomeResponse(BaseModel):
    date: date_type
    score: float
    category: ReadinessCategory
    description: str
    hrv_baseline: float
    hrv_deviation: float
    rhr_adjustment: float
    sleep_adjustment: float
    written: bool
    record: Optional[ReadinessScoreRead] = None

    @classmethod
    def from_outcome(cls, outcome: ScoreOutcome) -> "ScoreOutcomeResponse":
        result = outcome.result
        record = ReadinessScoreRead.model_validate(outcome.record) if outcome.record else None
        return cls(
            date=outcome.date,
            score=result.score,
            category=result.category,
            description=result.category.description,
            hrv_baseline=result.hrv_baseline,
            hrv_deviation=result.hrv_deviation,
            rhr_adjustment=result.rhr_adjustment,
            sleep_adjustment=result.sleep_adjustment,
            written=outcome.written,
            record=record,
        )


@router.get("/today", response_model=ReadinessScoreRead)
async def get_today_score(service: RecalculationService = Depends(get_readiness_service)):
    """Score enregistre pour aujourd'hui."""
    score = service.get_score(service.today())
    if not score:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Aucun score pour aujourd'hui")
    return score


@router.post("/today", response_model=ScoreOutcomeResponse)
async def process_today(
    force: bool = Query(False, description="Reecrire le score meme s'il est inchange"),
    settings: ReadinessSettings = Depends(get_readiness_settings),
    service: RecalculationService = Depends(get_readiness_service),
):
    """Recupere les mesures du jour et calcule le score."""
    try:
        outcome = await service.process_today(settings, force=force)
    except ReadinessError as e:
        raise_http_error(e)
    return ScoreOutcomeResponse.from_outcome(outcome)


@router.get("/history", response_model=List[ReadinessScoreRead])
async def get_history(
    days: int = Query(30, ge=1, le=365),
    service: RecalculationService = Depends(get_readiness_service),
):
    """Scores des `days` derniers jours, plus recents d'abord."""
    try:
        return service.get_scores(days)
    except ReadinessError as e:
        raise_http_error(e)


@router.post("/backfill")
@limiter.limit("2/hour")
async def backfill(
    request: Request,
    response: Response,
    force: bool = Query(False, description="Relancer meme si l'historique suffit deja"),
    days: int = Query(BACKFILL_DAYS, ge=1, le=365),
    settings: ReadinessSettings = Depends(get_readiness_settings),
    service: RecalculationService = Depends(get_readiness_service),
):
    """Import historique et calcul causal des scores."""
    try:
        summary = await service.backfill(settings, days=days, force=force)
    except ReadinessError as e:
        raise_http_error(e)
    return asdict(summary)


@router.post("/recalculate-history")
@limiter.limit("5/hour")
async def recalculate_history(
    request: Request,
    response: Response,
    days: int = Query(BACKFILL_DAYS, ge=1, le=365),
    settings: ReadinessSettings = Depends(get_readiness_settings),
    service: RecalculationService = Depends(get_readiness_service),
):
    """Recalcule les scores stockes, typiquement apres un changement de reglages."""
    summary = await service.recalculate_history(settings, days=days)
    return asdict(summary)


@router.get("/{day}", response_model=ReadinessScoreRead)
async def get_score(day: date_type, service: RecalculationService = Depends(get_readiness_service)):
    score = service.get_score(day)
    if not score:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Aucun score pour {day}")
    return score


@router.post("/{day}/recalculate", response_model=ScoreOutcomeResponse)
async def recalculate_date(
    day: date_type,
    settings: ReadinessSettings = Depends(get_readiness_settings),
    service: RecalculationService = Depends(get_readiness_service),
):
    """Recalcule une date a partir des mesures stockees."""
    try:
        outcome = await service.recalculate_date(day, settings)
    except ReadinessError as e:
        raise_http_error(e)
    return ScoreOutcomeResponse.from_outcome(outcome)
