"""
Entite ReadinessScore - Domain Layer
Score de readiness quotidien, possede par le HealthMetrics du meme jour.
"""
from sqlmodel import SQLModel, Field
from typing import Optional, Tuple
from uuid import UUID, uuid4
from datetime import date as date_type, datetime, timedelta
from enum import Enum

FRESHNESS_HOURS = 6


class ReadinessCategory(str, Enum):
    """Categories de readiness derivees du score."""
    UNKNOWN = "Unknown"
    OPTIMAL = "Optimal"
    MODERATE = "Moderate"
    LOW = "Low"
    FATIGUE = "Fatigue"

    @property
    def range(self) -> Tuple[float, float]:
        return {
            ReadinessCategory.UNKNOWN: (0, 0),
            ReadinessCategory.OPTIMAL: (80, 100),
            ReadinessCategory.MODERATE: (50, 79),
            ReadinessCategory.LOW: (30, 49),
            ReadinessCategory.FATIGUE: (0, 29),
        }[self]

    @property
    def description(self) -> str:
        return {
            ReadinessCategory.UNKNOWN: "Not enough data to determine readiness",
            ReadinessCategory.OPTIMAL: "Your body is well-recovered and ready for high-intensity training.",
            ReadinessCategory.MODERATE: "Your body is moderately recovered. Consider moderate-intensity training.",
            ReadinessCategory.LOW: "Your body shows signs of fatigue. Consider light activity or active recovery.",
            ReadinessCategory.FATIGUE: "Your body needs rest. Focus on recovery and avoid intense training.",
        }[self]

    @classmethod
    def for_score(cls, score: float) -> "ReadinessCategory":
        """Categorie pour un score deja calcule.

        Les bornes basses font foi pour les scores fractionnaires
        (79.5 reste Moderate). Unknown est reserve a l'absence de baseline.
        """
        if score >= 80:
            return cls.OPTIMAL
        if score >= 50:
            return cls.MODERATE
        if score >= 30:
            return cls.LOW
        return cls.FATIGUE


class ReadinessScore(SQLModel, table=True):
    """Score de readiness, une entree par jour, mise a jour en place."""

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    date: date_type = Field(index=True, unique=True)
    health_metrics_id: UUID = Field(foreign_key="healthmetrics.id", index=True)

    score: float = Field(default=0.0)
    category: ReadinessCategory = Field(default=ReadinessCategory.UNKNOWN)
    hrv_baseline: float = Field(default=0.0)
    hrv_deviation: float = Field(default=0.0)
    rhr_adjustment: float = Field(default=0.0)
    sleep_adjustment: float = Field(default=0.0)

    # Reglages en vigueur au moment du calcul
    readiness_mode: str
    baseline_period_days: int

    calculation_timestamp: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def formatted_score(self) -> str:
        if self.score <= 0:
            return "N/A"
        return f"{self.score:.0f}"

    @property
    def is_valid(self) -> bool:
        return self.score > 0 and self.category != ReadinessCategory.UNKNOWN

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """Vrai si le calcul date de moins de 6 heures."""
        now = now or datetime.utcnow()
        return now - self.calculation_timestamp < timedelta(hours=FRESHNESS_HOURS)


class ReadinessScoreRead(SQLModel):
    """Schéma pour lire un score de readiness (réponse API)."""
    id: UUID
    date: date_type
    score: float
    category: ReadinessCategory
    hrv_baseline: float
    hrv_deviation: float
    rhr_adjustment: float
    sleep_adjustment: float
    readiness_mode: str
    baseline_period_days: int
    calculation_timestamp: datetime
