"""
Coordination des calculs de readiness.

Trois points d'entree par date : traitement live du jour (avec repli sur
24h pour la HRV), recalcul d'une date a partir des mesures stockees, et
backfill historique causal (chaque jour n'est evalue qu'avec les jours qui
le precedent). Au plus une ecriture en cours par date.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from readiness.domain.entities.health_metrics import HealthMetrics, is_valid_hrv
from readiness.domain.entities.readiness_score import ReadinessScore
from readiness.domain.entities.readiness_settings import ReadinessSettings
from readiness.domain.errors import (
    DataUnavailableError,
    HealthSourceError,
    HistoricalDataIncompleteError,
    HistoricalDataMissingError,
    ReadinessError,
)
from readiness.domain.ports import (
    HealthSource,
    HistoricalReading,
    MetricsStore,
    ScoreStore,
    SleepReading,
    StageProgressCallback,
)
from readiness.domain.services.baseline_service import BaselineEstimator
from readiness.domain.services.score_calculator import ScoreResult, calculate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------
SCORE_UPDATE_TOLERANCE = 0.1
FALLBACK_WINDOW_HOURS = 24
BACKFILL_DAYS = 90

# Repartition de la progression du backfill
IMPORT_PROGRESS_START = 0.05
IMPORT_PROGRESS_END = 0.6
SAVE_PROGRESS_END = 0.7

STAGE_CHECKING = "Checking existing data"
STAGE_IMPORTING = "Importing historical data"
STAGE_SAVING = "Saving health metrics"
STAGE_SCORING = "Calculating readiness scores"
STAGE_RECALCULATING = "Recalculating readiness scores"
STAGE_COMPLETE = "Complete"


# ===================================================================
# Strategie de recuperation HRV
# ===================================================================

def hrv_fetch_windows(settings: ReadinessSettings, now: datetime) -> List[Tuple[datetime, datetime]]:
    """Fenetres a essayer dans l'ordre : fenetre du mode actif, puis les 24 dernieres heures."""
    primary = settings.mode.time_range(now, settings.morning_end_hour)
    fallback = (now - timedelta(hours=FALLBACK_WINDOW_HOURS), now)
    return [primary, fallback]


async def fetch_hrv_with_fallback(
    source: HealthSource, settings: ReadinessSettings, now: datetime
) -> float:
    """HRV du jour ; DataUnavailableError si aucune fenetre ne donne de valeur."""
    last_error: Optional[HealthSourceError] = None

    for start, end in hrv_fetch_windows(settings, now):
        try:
            hrv = await source.fetch_hrv(start, end)
        except HealthSourceError as e:
            logger.warning(f"HRV indisponible sur {start:%Y-%m-%d %H:%M} -> {end:%H:%M}: {e}")
            last_error = e
            continue
        if hrv and hrv > 0:
            return hrv
        logger.info(f"Aucune HRV sur {start:%Y-%m-%d %H:%M} -> {end:%H:%M}")

    detail = str(last_error) if last_error else "no reading in primary or fallback window"
    raise DataUnavailableError("HRV", detail=detail) from last_error


def _score_changed(existing: ReadinessScore, result: ScoreResult, settings: ReadinessSettings) -> bool:
    """Vrai si le score stocke ne reflete plus le calcul ou les reglages courants.

    Le score tolere 0.1 point d'ecart ; mode, periode, categorie et baseline
    doivent etre identiques.
    """
    if abs(existing.score - result.score) > SCORE_UPDATE_TOLERANCE:
        return True
    return (
        existing.category != result.category
        or existing.hrv_baseline != result.hrv_baseline
        or existing.readiness_mode != settings.mode.value
        or existing.baseline_period_days != settings.baseline_period_days
    )


# ===================================================================
# Resultats
# ===================================================================

@dataclass
class ScoreOutcome:
    """Resultat du calcul d'une date ; `record` est None si rien n'a ete ecrit."""
    date: date_type
    result: ScoreResult
    record: Optional[ReadinessScore] = None
    written: bool = False


@dataclass
class BackfillSummary:
    skipped: bool = False
    imported_days: int = 0
    valid_days: int = 0
    scored_days: int = 0
    failed_days: List[date_type] = field(default_factory=list)


@dataclass
class HistorySummary:
    total_days: int = 0
    recalculated_days: int = 0
    failed_days: List[date_type] = field(default_factory=list)


class ProgressReporter:
    """Relaie la progression en garantissant une fraction croissante dans [0, 1]."""

    def __init__(self, callback: Optional[StageProgressCallback] = None):
        self.callback = callback
        self.fraction = 0.0
        self.stage = ""

    def report(self, fraction: float, stage: str) -> None:
        self.fraction = min(max(fraction, self.fraction), 1.0)
        self.stage = stage
        if self.callback:
            self.callback(self.fraction, stage)


# ===================================================================
# Coordinateur
# ===================================================================

class RecalculationService:
    """Orchestre acquisition, baseline, score et persistance par date."""

    def __init__(
        self,
        metrics_store: MetricsStore,
        score_store: ScoreStore,
        health_source: HealthSource,
        estimator: Optional[BaselineEstimator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.metrics_store = metrics_store
        self.score_store = score_store
        self.health_source = health_source
        self.estimator = estimator or BaselineEstimator(metrics_store)
        self._clock = clock or datetime.now
        self._date_locks: Dict[date_type, asyncio.Lock] = {}
        self._lock_users: Dict[date_type, int] = {}

    def today(self) -> date_type:
        return self._clock().date()

    def _lock_for(self, day: date_type) -> asyncio.Lock:
        return self._date_locks.setdefault(day, asyncio.Lock())

    @asynccontextmanager
    async def _locked(self, day: date_type) -> AsyncIterator[None]:
        """Section critique pour une date ; le verrou est libere du dict au dernier utilisateur."""
        lock = self._lock_for(day)
        self._lock_users[day] = self._lock_users.get(day, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[day] -= 1
            if not self._lock_users[day]:
                del self._lock_users[day]
                self._date_locks.pop(day, None)

    # --- Calcul commun -------------------------------------------------

    def _compute(self, day: date_type, settings: ReadinessSettings, metrics: HealthMetrics) -> ScoreResult:
        hrv_baseline = self.estimator.hrv_baseline(settings, as_of=day)
        rhr_baseline = 0.0
        if settings.use_rhr_adjustment:
            rhr_baseline = self.estimator.rhr_baseline(settings, as_of=day)

        return calculate(
            hrv=metrics.hrv,
            resting_heart_rate=metrics.resting_heart_rate,
            sleep_hours=metrics.sleep_hours,
            hrv_baseline=hrv_baseline,
            settings=settings,
            rhr_baseline=rhr_baseline,
        )

    def _persist(self, day: date_type, result: ScoreResult, settings: ReadinessSettings) -> ReadinessScore:
        return self.score_store.upsert(
            day,
            score=result.score,
            category=result.category,
            hrv_baseline=result.hrv_baseline,
            hrv_deviation=result.hrv_deviation,
            rhr_adjustment=result.rhr_adjustment,
            sleep_adjustment=result.sleep_adjustment,
            readiness_mode=settings.mode.value,
            baseline_period_days=settings.baseline_period_days,
        )

    def _score_stored_day(self, day: date_type, settings: ReadinessSettings) -> ScoreOutcome:
        """Recalcule une date depuis le store, ecriture systematique. Appeler sous le verrou."""
        metrics = self.metrics_store.get(day)
        if metrics is None:
            raise HistoricalDataMissingError(day)
        if not metrics.has_valid_hrv:
            raise HistoricalDataIncompleteError(day, metrics.missing_metrics)

        result = self._compute(day, settings, metrics)
        if not result.has_baseline:
            logger.info(f"Baseline insuffisante pour {day}, pas de score")
            return ScoreOutcome(date=day, result=result)

        record = self._persist(day, result, settings)
        return ScoreOutcome(date=day, result=result, record=record, written=True)

    # --- Lectures optionnelles -----------------------------------------

    async def _optional_resting_heart_rate(self) -> float:
        try:
            return await self.health_source.fetch_resting_heart_rate()
        except HealthSourceError as e:
            logger.warning(f"FC de repos indisponible, enregistree a 0: {e}")
            return 0.0

    async def _optional_sleep(self) -> SleepReading:
        try:
            return await self.health_source.fetch_sleep()
        except HealthSourceError as e:
            logger.warning(f"Sommeil indisponible, enregistre a 0: {e}")
            return SleepReading(hours=0.0, quality=0)

    # --- Points d'entree -----------------------------------------------

    async def process_today(
        self,
        settings: ReadinessSettings,
        force: bool = False,
        resting_heart_rate: Optional[float] = None,
        sleep: Optional[SleepReading] = None,
    ) -> ScoreOutcome:
        """Traitement live du jour.

        Le score existant n'est remplace que si `force`, si l'ecart depasse
        la tolerance de 0.1 point, ou si categorie, baseline ou reglages ont change.

        Raises:
            DataUnavailableError: aucune HRV, meme sur la fenetre de repli
        """
        now = self._clock()
        today = now.date()

        hrv = await fetch_hrv_with_fallback(self.health_source, settings, now)
        if resting_heart_rate is None:
            resting_heart_rate = await self._optional_resting_heart_rate()
        if sleep is None:
            sleep = await self._optional_sleep()

        async with self._locked(today):
            metrics = self.metrics_store.upsert(
                today,
                hrv=hrv,
                resting_heart_rate=resting_heart_rate or 0.0,
                sleep_hours=sleep.hours or 0.0,
                sleep_quality=sleep.quality or 0,
            )

            result = self._compute(today, settings, metrics)
            if not result.has_baseline:
                logger.info(f"Baseline HRV insuffisante au {today}, score Unknown non enregistre")
                return ScoreOutcome(date=today, result=result)

            existing = self.score_store.get(today)
            if existing is not None and not force and not _score_changed(existing, result, settings):
                logger.debug(f"Score du {today} inchange ({existing.score:.1f}), pas de reecriture")
                return ScoreOutcome(date=today, result=result, record=existing)

            record = self._persist(today, result, settings)

        logger.info(
            f"Readiness {today}: {result.score:.1f} ({result.category.value}), "
            f"deviation HRV {result.hrv_deviation:+.1f}%"
        )
        return ScoreOutcome(date=today, result=result, record=record, written=True)

    async def recalculate_date(self, day: date_type, settings: ReadinessSettings) -> ScoreOutcome:
        """Recalcul d'une date a partir des mesures stockees (sans acces a la source).

        Raises:
            HistoricalDataMissingError: aucune mesure pour la date
            HistoricalDataIncompleteError: mesures sans HRV valide
        """
        async with self._locked(day):
            outcome = self._score_stored_day(day, settings)

        if outcome.written:
            logger.info(f"Score du {day} recalcule: {outcome.result.score:.1f}")
        return outcome

    async def recalculate_today(self, settings: ReadinessSettings) -> ScoreOutcome:
        return await self.recalculate_date(self.today(), settings)

    async def recalculate_history(
        self,
        settings: ReadinessSettings,
        days: int = BACKFILL_DAYS,
        on_progress: Optional[StageProgressCallback] = None,
    ) -> HistorySummary:
        """Recalcule chronologiquement chaque jour stocke avec une HRV valide."""
        reporter = ProgressReporter(on_progress)
        reporter.report(0.0, STAGE_RECALCULATING)

        today = self.today()
        records = self.metrics_store.get_between(today - timedelta(days=days), today + timedelta(days=1))
        valid_days = [m.date for m in records if m.has_valid_hrv]
        summary = HistorySummary(total_days=len(valid_days))

        for index, day in enumerate(valid_days):
            try:
                outcome = await self.recalculate_date(day, settings)
                if outcome.written:
                    summary.recalculated_days += 1
            except ReadinessError as e:
                logger.warning(f"Recalcul du {day} echoue: {e}")
                summary.failed_days.append(day)

            reporter.report((index + 1) / len(valid_days), STAGE_RECALCULATING)
            await asyncio.sleep(0)

        reporter.report(1.0, STAGE_COMPLETE)
        logger.info(
            f"Historique recalcule: {summary.recalculated_days}/{summary.total_days} jours, "
            f"{len(summary.failed_days)} echecs"
        )
        return summary

    def has_sufficient_data(
        self, settings: ReadinessSettings, days: int = BACKFILL_DAYS
    ) -> bool:
        """Vrai si assez de jours avec HRV valide existent deja sur la periode."""
        records = self.metrics_store.get_range(days, today=self.today())
        valid = [m for m in records if m.has_valid_hrv]
        return len(valid) >= settings.minimum_samples_for_baseline

    async def backfill(
        self,
        settings: ReadinessSettings,
        on_progress: Optional[StageProgressCallback] = None,
        days: int = BACKFILL_DAYS,
        force: bool = False,
    ) -> BackfillSummary:
        """Import historique puis calcul causal des scores.

        Sans `force`, ne fait rien si l'historique suffit deja a une baseline.
        Un jour en echec n'interrompt pas le traitement ; une annulation laisse
        les jours deja ecrits intacts et le backfill peut etre relance.
        """
        reporter = ProgressReporter(on_progress)
        reporter.report(0.0, STAGE_CHECKING)

        if not force and self.has_sufficient_data(settings, days):
            logger.info("Historique suffisant, backfill ignore")
            reporter.report(1.0, STAGE_COMPLETE)
            return BackfillSummary(skipped=True)

        reporter.report(IMPORT_PROGRESS_START, STAGE_IMPORTING)

        def _on_import_progress(fraction: float) -> None:
            span = IMPORT_PROGRESS_END - IMPORT_PROGRESS_START
            reporter.report(IMPORT_PROGRESS_START + span * fraction, STAGE_IMPORTING)

        readings = await self.health_source.import_historical(days, on_progress=_on_import_progress)
        summary = BackfillSummary(imported_days=len(readings))

        valid_readings = self._valid_readings(readings)
        summary.valid_days = len(valid_readings)
        logger.info(f"Backfill: {len(readings)} jours importes, {len(valid_readings)} avec HRV valide")

        saved_days = await self._save_readings(valid_readings, reporter, summary)

        reporter.report(SAVE_PROGRESS_END, STAGE_SCORING)
        for index, day in enumerate(saved_days):
            try:
                async with self._locked(day):
                    outcome = self._score_stored_day(day, settings)
                if outcome.written:
                    summary.scored_days += 1
            except ReadinessError as e:
                logger.warning(f"Backfill: score du {day} non calcule: {e}")
                summary.failed_days.append(day)

            span = 1.0 - SAVE_PROGRESS_END
            reporter.report(SAVE_PROGRESS_END + span * (index + 1) / len(saved_days), STAGE_SCORING)
            await asyncio.sleep(0)

        reporter.report(1.0, STAGE_COMPLETE)
        logger.info(
            f"Backfill termine: {summary.scored_days} scores sur {summary.valid_days} jours valides, "
            f"{len(summary.failed_days)} echecs"
        )
        return summary

    @staticmethod
    def _valid_readings(readings: List[HistoricalReading]) -> List[HistoricalReading]:
        """Jours avec HRV valide, un par date, ordre chronologique."""
        by_date: Dict[date_type, HistoricalReading] = {}
        for reading in readings:
            if is_valid_hrv(reading.hrv):
                by_date[reading.date] = reading
        return [by_date[d] for d in sorted(by_date)]

    async def _save_readings(
        self,
        readings: List[HistoricalReading],
        reporter: ProgressReporter,
        summary: BackfillSummary,
    ) -> List[date_type]:
        saved: List[date_type] = []
        for index, reading in enumerate(readings):
            try:
                async with self._locked(reading.date):
                    self.metrics_store.upsert(
                        reading.date,
                        hrv=reading.hrv,
                        resting_heart_rate=reading.resting_heart_rate or 0.0,
                        sleep_hours=reading.sleep_hours or 0.0,
                        sleep_quality=reading.sleep_quality or 0,
                    )
                saved.append(reading.date)
            except ReadinessError as e:
                logger.warning(f"Backfill: mesures du {reading.date} non enregistrees: {e}")
                summary.failed_days.append(reading.date)

            span = SAVE_PROGRESS_END - IMPORT_PROGRESS_END
            reporter.report(IMPORT_PROGRESS_END + span * (index + 1) / len(readings), STAGE_SAVING)
            await asyncio.sleep(0)
        return saved

    # --- Lectures et gestion des donnees -------------------------------

    def get_score(self, day: date_type) -> Optional[ReadinessScore]:
        return self.score_store.get(day)

    def get_scores(self, days: int) -> List[ReadinessScore]:
        return self.score_store.get_range(days, today=self.today())

    def get_metrics(self, days: int) -> List[HealthMetrics]:
        return self.metrics_store.get_range(days, today=self.today())

    async def delete_day(self, day: date_type) -> bool:
        """Supprime les mesures d'une date et le score associe."""
        async with self._locked(day):
            deleted = self.metrics_store.delete(day)
        if deleted:
            logger.info(f"Donnees du {day} supprimees")
        return deleted
