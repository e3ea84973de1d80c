"""
Stores en memoire (dict par date), memes contrats que les stores SQL.
Utilises pour les tests et les executions a blanc.
"""
import threading
from datetime import date as date_type, datetime, timedelta
from typing import Dict, List, Optional

from readiness.domain.entities.health_metrics import HealthMetrics
from readiness.domain.entities.readiness_score import ReadinessCategory, ReadinessScore
from readiness.domain.errors import PersistenceError


class InMemoryMetricsStore:
    """Un HealthMetrics par date."""

    def __init__(self, lock: Optional[threading.RLock] = None):
        self._lock = lock or threading.RLock()
        self._records: Dict[date_type, HealthMetrics] = {}
        self._scores: Optional["InMemoryScoreStore"] = None

    def upsert(
        self,
        day: date_type,
        hrv: float,
        resting_heart_rate: float,
        sleep_hours: float,
        sleep_quality: int,
    ) -> HealthMetrics:
        with self._lock:
            existing = self._records.get(day)
            if existing:
                existing.hrv = hrv
                existing.resting_heart_rate = resting_heart_rate
                existing.sleep_hours = sleep_hours
                existing.sleep_quality = sleep_quality
                existing.updated_at = datetime.utcnow()
                return existing

            record = HealthMetrics(
                date=day,
                hrv=hrv,
                resting_heart_rate=resting_heart_rate,
                sleep_hours=sleep_hours,
                sleep_quality=sleep_quality,
            )
            self._records[day] = record
            return record

    def get(self, day: date_type) -> Optional[HealthMetrics]:
        with self._lock:
            return self._records.get(day)

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[HealthMetrics]:
        today = today or date_type.today()
        start = today - timedelta(days=days)
        with self._lock:
            records = [m for d, m in self._records.items() if start <= d <= today]
        return sorted(records, key=lambda m: m.date, reverse=True)

    def get_between(self, start: date_type, end: date_type) -> List[HealthMetrics]:
        with self._lock:
            records = [m for d, m in self._records.items() if start <= d < end]
        return sorted(records, key=lambda m: m.date)

    def delete(self, day: date_type) -> bool:
        with self._lock:
            record = self._records.pop(day, None)
            if record is None:
                return False
            if self._scores is not None:
                self._scores.discard(day)
            return True


class InMemoryScoreStore:
    """Un ReadinessScore par date, rattache au HealthMetrics du meme jour."""

    def __init__(self, metrics_store: InMemoryMetricsStore):
        self._metrics = metrics_store
        self._lock = metrics_store._lock
        self._records: Dict[date_type, ReadinessScore] = {}
        metrics_store._scores = self

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
    ) -> ReadinessScore:
        with self._lock:
            metrics = self._metrics.get(day)
            if metrics is None:
                raise PersistenceError(f"Aucun HealthMetrics pour {day}, score non rattachable")

            values = dict(
                score=score,
                category=category,
                hrv_baseline=hrv_baseline,
                hrv_deviation=hrv_deviation,
                rhr_adjustment=rhr_adjustment,
                sleep_adjustment=sleep_adjustment,
                readiness_mode=readiness_mode,
                baseline_period_days=baseline_period_days,
                calculation_timestamp=datetime.utcnow(),
            )
            existing = self._records.get(day)
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
                return existing

            record = ReadinessScore(date=day, health_metrics_id=metrics.id, **values)
            self._records[day] = record
            return record

    def get(self, day: date_type) -> Optional[ReadinessScore]:
        with self._lock:
            return self._records.get(day)

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[ReadinessScore]:
        today = today or date_type.today()
        start = today - timedelta(days=days)
        with self._lock:
            records = [s for d, s in self._records.items() if start <= d <= today]
        return sorted(records, key=lambda s: s.date, reverse=True)

    def discard(self, day: date_type) -> None:
        with self._lock:
            self._records.pop(day, None)
