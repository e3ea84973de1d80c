"""
Stores SQLModel pour HealthMetrics et ReadinessScore.

Toutes les operations passent par un verrou partage : un seul point d'acces
serialise, aucun ecrivain concurrent sur une meme date.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date as date_type, datetime, timedelta
from typing import Iterator, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from readiness.domain.entities.health_metrics import HealthMetrics
from readiness.domain.entities.readiness_score import ReadinessCategory, ReadinessScore
from readiness.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

_store_lock = threading.RLock()


@contextmanager
def _serialized_session(engine: Engine, lock: threading.RLock) -> Iterator[Session]:
    """Session serialisee ; les erreurs SQL sont converties en PersistenceError."""
    with lock:
        with Session(engine, expire_on_commit=False) as session:
            try:
                yield session
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Erreur de persistance: {e}")
                raise PersistenceError(str(e)) from e


class SqlMetricsStore:
    """Un HealthMetrics par date (upsert idempotent)."""

    def __init__(self, engine: Engine, lock: Optional[threading.RLock] = None):
        self.engine = engine
        self._lock = lock or _store_lock

    def upsert(
        self,
        day: date_type,
        hrv: float,
        resting_heart_rate: float,
        sleep_hours: float,
        sleep_quality: int,
    ) -> HealthMetrics:
        with _serialized_session(self.engine, self._lock) as session:
            existing = session.exec(
                select(HealthMetrics).where(HealthMetrics.date == day)
            ).first()

            if existing:
                existing.hrv = hrv
                existing.resting_heart_rate = resting_heart_rate
                existing.sleep_hours = sleep_hours
                existing.sleep_quality = sleep_quality
                existing.updated_at = datetime.utcnow()
                record = existing
            else:
                record = HealthMetrics(
                    date=day,
                    hrv=hrv,
                    resting_heart_rate=resting_heart_rate,
                    sleep_hours=sleep_hours,
                    sleep_quality=sleep_quality,
                )
            session.add(record)
            session.commit()
            return record

    def get(self, day: date_type) -> Optional[HealthMetrics]:
        with _serialized_session(self.engine, self._lock) as session:
            return session.exec(
                select(HealthMetrics).where(HealthMetrics.date == day)
            ).first()

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[HealthMetrics]:
        """Mesures des `days` derniers jours (aujourd'hui inclus), plus recentes d'abord."""
        today = today or date_type.today()
        start = today - timedelta(days=days)
        with _serialized_session(self.engine, self._lock) as session:
            return list(session.exec(
                select(HealthMetrics)
                .where(HealthMetrics.date >= start, HealthMetrics.date <= today)
                .order_by(HealthMetrics.date.desc())
            ).all())

    def get_between(self, start: date_type, end: date_type) -> List[HealthMetrics]:
        """Mesures sur [start, end), ordre chronologique."""
        with _serialized_session(self.engine, self._lock) as session:
            return list(session.exec(
                select(HealthMetrics)
                .where(HealthMetrics.date >= start, HealthMetrics.date < end)
                .order_by(HealthMetrics.date)
            ).all())

    def delete(self, day: date_type) -> bool:
        """Supprime les mesures du jour et le score qu'elles possedent."""
        with _serialized_session(self.engine, self._lock) as session:
            record = session.exec(
                select(HealthMetrics).where(HealthMetrics.date == day)
            ).first()
            if not record:
                return False
            score = session.exec(
                select(ReadinessScore).where(ReadinessScore.health_metrics_id == record.id)
            ).first()
            if score:
                session.delete(score)
            session.delete(record)
            session.commit()
            logger.info(f"Donnees du {day} supprimees (score inclus: {bool(score)})")
            return True


class SqlScoreStore:
    """Un ReadinessScore par date, mis a jour en place."""

    def __init__(self, engine: Engine, lock: Optional[threading.RLock] = None):
        self.engine = engine
        self._lock = lock or _store_lock

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
        with _serialized_session(self.engine, self._lock) as session:
            metrics = session.exec(
                select(HealthMetrics).where(HealthMetrics.date == day)
            ).first()
            if not metrics:
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

            existing = session.exec(
                select(ReadinessScore).where(ReadinessScore.date == day)
            ).first()
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
                record = existing
            else:
                record = ReadinessScore(date=day, health_metrics_id=metrics.id, **values)
            session.add(record)
            session.commit()
            return record

    def get(self, day: date_type) -> Optional[ReadinessScore]:
        with _serialized_session(self.engine, self._lock) as session:
            return session.exec(
                select(ReadinessScore).where(ReadinessScore.date == day)
            ).first()

    def get_range(self, days: int, today: Optional[date_type] = None) -> List[ReadinessScore]:
        today = today or date_type.today()
        start = today - timedelta(days=days)
        with _serialized_session(self.engine, self._lock) as session:
            return list(session.exec(
                select(ReadinessScore)
                .where(ReadinessScore.date >= start, ReadinessScore.date <= today)
                .order_by(ReadinessScore.date.desc())
            ).all())
