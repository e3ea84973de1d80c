"""
Routers API du moteur de readiness.

Ce module regroupe tous les sous-routers et expose un router principal
a inclure dans l'application FastAPI.
"""
from fastapi import APIRouter

from readiness.api.routers.readiness_router import router as readiness_router
from readiness.api.routers.metrics_router import router as metrics_router
from readiness.api.routers._shared import limiter

router = APIRouter()

router.include_router(readiness_router)
router.include_router(metrics_router)

__all__ = ["router", "limiter"]
