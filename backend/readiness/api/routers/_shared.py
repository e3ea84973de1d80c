"""
Utilitaires partages entre les routers API : rate limiter, dependances
et traduction des erreurs du moteur en reponses HTTP.
"""
import logging
from functools import lru_cache
from typing import NoReturn

from fastapi import HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from readiness.core.database import engine
from readiness.core.settings import get_settings
from readiness.domain.entities.readiness_settings import ReadinessSettings
from readiness.domain.errors import (
    DataUnavailableError,
    HealthSourceError,
    HistoricalDataIncompleteError,
    HistoricalDataMissingError,
    PersistenceError,
    ReadinessError,
)
from readiness.domain.services.recalculation_service import RecalculationService
from readiness.sources.garmin_source import GarminHealthSource
from readiness.storage.sql_store import SqlMetricsStore, SqlScoreStore

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"], headers_enabled=True)


@lru_cache()
def get_readiness_service() -> RecalculationService:
    """Coordinateur unique (singleton via lru_cache) : les verrous par date sont partages."""
    metrics_store = SqlMetricsStore(engine)
    return RecalculationService(
        metrics_store=metrics_store,
        score_store=SqlScoreStore(engine),
        health_source=GarminHealthSource(),
    )


def get_readiness_settings() -> ReadinessSettings:
    """Reglages relus a chaque requete."""
    return get_settings().readiness_settings()


def raise_http_error(error: ReadinessError) -> NoReturn:
    """Traduit une erreur du moteur en HTTPException."""
    if isinstance(error, DataUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, HistoricalDataMissingError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, HistoricalDataIncompleteError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, HealthSourceError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(error, PersistenceError):
        logger.error(f"Erreur de persistance: {error}")
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail=str(error)) from error
