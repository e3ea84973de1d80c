"""
Source de donnees de sante Garmin Connect via garth.
Les appels garth sont bloquants : ils sont executes dans un thread.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

import garth

from readiness.auth.garmin_auth import garmin_auth
from readiness.core.settings import get_settings
from readiness.domain.errors import DataUnavailableError, HealthSourceError
from readiness.domain.ports import HistoricalReading, ProgressCallback, SleepReading

logger = logging.getLogger(__name__)

REQUEST_DELAY_S = 0.5  # 500ms entre chaque date


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def _average_hrv_in_window(client: garth.Client, start: datetime, end: datetime) -> List[float]:
    """Valeurs HRV dont l'horodatage local tombe dans [start, end]."""
    start, end = _naive(start), _naive(end)
    values: List[float] = []
    day = start.date()
    while day <= end.date():
        hrv = garth.HRVData.get(day, client=client)
        for reading in (hrv.hrv_readings if hrv else None) or []:
            if reading.hrv_value and start <= _naive(reading.reading_time_local) <= end:
                values.append(reading.hrv_value)
        day += timedelta(days=1)
    return values


def _fetch_sleep(client: garth.Client, day: date) -> Optional[SleepReading]:
    sleep = garth.SleepData.get(day, client=client)
    if not sleep or not sleep.daily_sleep_dto:
        return None
    dto = sleep.daily_sleep_dto
    hours = (dto.sleep_time_seconds or 0) / 3600
    quality = 0
    if dto.sleep_scores:
        overall = getattr(dto.sleep_scores, "overall", None)
        if overall is not None and getattr(overall, "value", None):
            quality = int(overall.value)
    return SleepReading(hours=hours, quality=quality)


def _fetch_day(client: garth.Client, day: date) -> HistoricalReading:
    """Mesures d'une journee passee ; une mesure absente reste a None."""
    reading = HistoricalReading(date=day)

    # HRV (moyenne de la nuit precedente)
    try:
        hrv = garth.HRVData.get(day, client=client)
        if hrv and hrv.hrv_summary and hrv.hrv_summary.last_night_avg:
            reading.hrv = float(hrv.hrv_summary.last_night_avg)
    except Exception as e:
        logger.debug(f"HRV {day}: {e}")

    # Resting Heart Rate
    try:
        hr = garth.DailyHeartRate.get(day, client=client)
        if hr and hr.resting_heart_rate:
            reading.resting_heart_rate = float(hr.resting_heart_rate)
    except Exception as e:
        logger.debug(f"RHR {day}: {e}")

    # Sleep
    try:
        sleep = _fetch_sleep(client, day)
        if sleep:
            reading.sleep_hours = sleep.hours
            reading.sleep_quality = sleep.quality
    except Exception as e:
        logger.debug(f"Sleep {day}: {e}")

    return reading


class GarminHealthSource:
    """HealthSource adosse a Garmin Connect."""

    def __init__(
        self,
        client: Optional[garth.Client] = None,
        encrypted_token: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
        request_delay: float = REQUEST_DELAY_S,
    ):
        self._client = client
        self._encrypted_token = encrypted_token
        self._today = today or date.today
        self.request_delay = request_delay

    def _get_client(self) -> garth.Client:
        if self._client is None:
            token = self._encrypted_token or get_settings().GARMIN_TOKEN_ENCRYPTED
            self._client = garmin_auth.get_client(token)
        return self._client

    async def fetch_hrv(self, start: datetime, end: datetime) -> float:
        client = self._get_client()
        try:
            values = await asyncio.to_thread(_average_hrv_in_window, client, start, end)
        except Exception as e:
            raise HealthSourceError(f"Requete HRV Garmin echouee: {e}") from e

        if not values:
            raise DataUnavailableError("HRV", detail=f"no reading between {start:%Y-%m-%d %H:%M} and {end:%Y-%m-%d %H:%M}")
        return sum(values) / len(values)

    async def fetch_resting_heart_rate(self) -> float:
        client = self._get_client()
        day = self._today()
        try:
            hr = await asyncio.to_thread(garth.DailyHeartRate.get, day, client=client)
        except Exception as e:
            raise HealthSourceError(f"Requete FC de repos Garmin echouee: {e}") from e

        if not hr or not hr.resting_heart_rate:
            raise DataUnavailableError("Resting Heart Rate")
        return float(hr.resting_heart_rate)

    async def fetch_sleep(self) -> SleepReading:
        client = self._get_client()
        day = self._today()
        try:
            sleep = await asyncio.to_thread(_fetch_sleep, client, day)
        except Exception as e:
            raise HealthSourceError(f"Requete sommeil Garmin echouee: {e}") from e

        if sleep is None:
            raise DataUnavailableError("Sleep Data")
        return sleep

    async def import_historical(
        self, days: int, on_progress: Optional[ProgressCallback] = None
    ) -> List[HistoricalReading]:
        """
        Importe les `days` derniers jours, du plus ancien au plus recent.
        Delai de 500ms entre deux dates pour menager l'API.
        """
        client = self._get_client()
        today = self._today()
        readings: List[HistoricalReading] = []

        for i in range(days):
            target_date = today - timedelta(days=days - 1 - i)
            readings.append(await asyncio.to_thread(_fetch_day, client, target_date))

            if on_progress:
                on_progress((i + 1) / days)
            if i < days - 1 and self.request_delay:
                await asyncio.sleep(self.request_delay)

        logger.info(f"Import Garmin: {days} jours, {sum(1 for r in readings if r.hrv)} avec HRV")
        return readings
