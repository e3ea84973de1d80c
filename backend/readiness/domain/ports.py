"""
Contrats des collaborateurs externes du moteur (stores et source de sante).
"""
from dataclasses import dataclass
from datetime import date as date_type, datetime
from typing import Callable, List, NamedTuple, Optional, Protocol

from readiness.domain.entities.health_metrics import HealthMetrics
from readiness.domain.entities.readiness_score import ReadinessCategory, ReadinessScore

ProgressCallback = Callable[[float], None]
# (fraction, libelle de l'etape en cours)
StageProgressCallback = Callable[[float, str], None]


class SleepReading(NamedTuple):
    hours: float
    quality: int


@dataclass
class HistoricalReading:
    """Mesures brutes d'un jour importe depuis la source."""
    date: date_type
    hrv: Optional[float] = None
    resting_heart_rate: Optional[float] = None
    sleep_hours: Optional[float] = None
    sleep_quality: Optional[int] = None


class HealthSource(Protocol):
    async def fetch_hrv(self, start: datetime, end: datetime) -> float: ...

    async def fetch_resting_heart_rate(self) -> float: ...

    async def fetch_sleep(self) -> SleepReading: ...

    async def import_historical(
        self, days: int, on_progress: Optional[ProgressCallback] = None
    ) -> List[HistoricalReading]: ...


class MetricsStore(Protocol):
    def upsert(
        self,
        day: date_type,
        hrv: float,
        resting_heart_rate: float,
        sleep_hours: float,
        sleep_quality: int,
    ) -> HealthMetrics: ...

    def get(self, day: date_type) -> Optional[HealthMetrics]: ...

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[HealthMetrics]: ...

    def get_between(self, start: date_type, end: date_type) -> List[HealthMetrics]: ...

    def delete(self, day: date_type) -> bool: ...


class ScoreStore(Protocol):
    def upsert(
        self,
        day: date_type,
        score: float,
        category: ReadinessCategory,
        hrv_baseline: float,
        hrv_deviation: float,
        rhr_adjustment: float,
        sleep_adjustment: float,
        readiness_mode: str,
        baseline_period_days: int,
    ) -> ReadinessScore: ...

    def get(self, day: date_type) -> Optional[ReadinessScore]: ...

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[ReadinessScore]: ...
