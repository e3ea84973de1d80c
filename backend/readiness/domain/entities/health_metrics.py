"""
Entite HealthMetrics - Domain Layer
Mesures physiologiques quotidiennes (HRV, FC de repos, sommeil), une entree par jour.
Une valeur a 0 signifie "pas de donnee", pas une mesure nulle.
"""
from sqlmodel import SQLModel, Field
from typing import List, Optional
from uuid import UUID, uuid4
from datetime import date as date_type, datetime

# Seuils de validite des mesures
HRV_MIN_VALID = 10.0
RHR_MIN_VALID = 30.0
RHR_MAX_VALID = 120.0
SLEEP_MAX_VALID_HOURS = 12.0


def is_valid_hrv(value: Optional[float]) -> bool:
    return value is not None and value >= HRV_MIN_VALID


def is_valid_rhr(value: Optional[float]) -> bool:
    return value is not None and RHR_MIN_VALID <= value <= RHR_MAX_VALID


def is_valid_sleep(value: Optional[float]) -> bool:
    return value is not None and 0 < value <= SLEEP_MAX_VALID_HOURS


class HealthMetrics(SQLModel, table=True):
    """Mesures du jour, date unique (granularite jour)."""

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    date: date_type = Field(index=True, unique=True)

    hrv: float = Field(default=0.0)
    resting_heart_rate: float = Field(default=0.0)
    sleep_hours: float = Field(default=0.0)
    sleep_quality: int = Field(default=0)  # informatif, non utilise dans le score

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_valid_hrv(self) -> bool:
        return is_valid_hrv(self.hrv)

    @property
    def has_valid_rhr(self) -> bool:
        return is_valid_rhr(self.resting_heart_rate)

    @property
    def has_valid_sleep(self) -> bool:
        return is_valid_sleep(self.sleep_hours)

    @property
    def has_required_metrics(self) -> bool:
        """HRV, FC de repos et sommeil tous valides."""
        return self.has_valid_hrv and self.has_valid_rhr and self.has_valid_sleep

    @property
    def has_minimum_metrics(self) -> bool:
        """Seule la HRV est indispensable au calcul du score."""
        return self.has_valid_hrv

    @property
    def missing_metrics(self) -> List[str]:
        missing = []
        if not self.has_valid_hrv:
            missing.append("HRV")
        if not self.has_valid_rhr:
            missing.append("Resting Heart Rate")
        if not self.has_valid_sleep:
            missing.append("Sleep Data")
        return missing

    @property
    def available_metrics(self) -> List[str]:
        available = []
        if self.has_valid_hrv:
            available.append("HRV")
        if self.has_valid_rhr:
            available.append("Resting Heart Rate")
        if self.has_valid_sleep:
            available.append("Sleep Data")
        return available


class HealthMetricsRead(SQLModel):
    """Schéma pour lire les mesures quotidiennes (réponse API)."""
    id: UUID
    date: date_type
    hrv: float
    resting_heart_rate: float
    sleep_hours: float
    sleep_quality: int
    created_at: datetime
    updated_at: datetime
