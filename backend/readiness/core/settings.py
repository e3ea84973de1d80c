"""
Configuration centralisee du moteur de readiness
Utilise pydantic-settings pour la gestion des variables d'environnement
"""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import List

from readiness.domain.entities.readiness_settings import (
    BaselinePeriod,
    ReadinessMode,
    ReadinessSettings,
    clamp_morning_end_hour,
)


class Settings(BaseSettings):
    """Configuration de l'application"""

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./readiness.db",
        description="URL de la base de données (SQLite local par défaut)"
    )

    # Garmin Connect
    ENCRYPTION_KEY: str = Field(
        default="",
        description="Clé Fernet pour chiffrer le token Garth stocké"
    )
    GARMIN_TOKEN_ENCRYPTED: str = Field(
        default="",
        description="Session Garth chiffrée (obtenue via `readiness garmin-login`)"
    )

    # Readiness (valeurs par défaut, rafraîchies par l'appelant entre deux appels)
    READINESS_MODE: str = Field(default=ReadinessMode.MORNING.value)
    MORNING_END_HOUR: int = Field(
        default=11,
        description="Fin de la fenêtre du matin (heure, bornée entre 9 et 12)"
    )
    BASELINE_PERIOD_DAYS: int = Field(
        default=BaselinePeriod.SEVEN_DAYS.value,
        description="Fenêtre de baseline en jours (7, 14 ou 30)"
    )
    USE_RHR_ADJUSTMENT: bool = Field(default=False)
    USE_SLEEP_ADJUSTMENT: bool = Field(default=False)
    BACKFILL_DAYS: int = Field(default=90, ge=1, le=365)

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Origines autorisées pour CORS (configuré automatiquement selon ENVIRONMENT si vide)"
    )

    # Monitoring (Sentry)
    SENTRY_DSN: str = Field(
        default="",
        description="DSN Sentry pour le error tracking (vide = Sentry desactive)"
    )

    # Application
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(
        default="",
        description="Niveau de logging (auto-configuré selon ENVIRONMENT si vide)"
    )

    @model_validator(mode="after")
    def _configure_environment(self) -> "Settings":
        """Configure DEBUG, LOG_LEVEL et les bornes readiness selon ENVIRONMENT."""
        is_prod = self.ENVIRONMENT == "production"
        if is_prod:
            self.DEBUG = False
        if not self.LOG_LEVEL:
            self.LOG_LEVEL = "WARNING" if is_prod else "INFO"
        self.MORNING_END_HOUR = clamp_morning_end_hour(self.MORNING_END_HOUR)
        return self

    @model_validator(mode="after")
    def _set_default_origins(self) -> "Settings":
        """Définit les origines CORS par défaut selon ENVIRONMENT si non configurées."""
        if not self.ALLOWED_ORIGINS:
            if self.ENVIRONMENT == "production":
                self.ALLOWED_ORIGINS = []
            else:
                self.ALLOWED_ORIGINS = [
                    "http://localhost:3000",
                    "http://127.0.0.1:3000",
                ]
        return self

    def readiness_settings(self) -> ReadinessSettings:
        """Construit la vue immuable des reglages passee au moteur."""
        try:
            mode = ReadinessMode(self.READINESS_MODE)
        except ValueError:
            mode = ReadinessMode.MORNING
        return ReadinessSettings(
            mode=mode,
            baseline_period=BaselinePeriod.from_days(self.BASELINE_PERIOD_DAYS),
            use_rhr_adjustment=self.USE_RHR_ADJUSTMENT,
            use_sleep_adjustment=self.USE_SLEEP_ADJUSTMENT,
            morning_end_hour=self.MORNING_END_HOUR,
        )

    class Config:
        env_file = ".env"
        case_sensitive = True


def get_settings() -> Settings:
    """Récupère la configuration"""
    return Settings()
