"""
Fixtures partagees : stores en memoire et source de sante simulee.
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytest

from readiness.domain.errors import DataUnavailableError, HealthSourceError
from readiness.domain.ports import HistoricalReading, SleepReading
from readiness.storage.memory_store import InMemoryMetricsStore, InMemoryScoreStore

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 9, 30)


class FakeHealthSource:
    """HealthSource programmable ; enregistre les fenetres demandees."""

    def __init__(
        self,
        hrv_values: Optional[List] = None,
        resting_heart_rate: Optional[float] = 55.0,
        sleep: Optional[SleepReading] = SleepReading(hours=7.5, quality=80),
        history: Optional[List[HistoricalReading]] = None,
    ):
        # Une valeur par appel : float, ou exception a lever
        self.hrv_values = list(hrv_values or [])
        self.resting_heart_rate = resting_heart_rate
        self.sleep = sleep
        self.history = history or []
        self.hrv_windows: List[tuple] = []
        self.import_calls = 0

    async def fetch_hrv(self, start: datetime, end: datetime) -> float:
        self.hrv_windows.append((start, end))
        if not self.hrv_values:
            raise DataUnavailableError("HRV")
        value = self.hrv_values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_resting_heart_rate(self) -> float:
        if self.resting_heart_rate is None:
            raise HealthSourceError("no RHR")
        return self.resting_heart_rate

    async def fetch_sleep(self) -> SleepReading:
        if self.sleep is None:
            raise HealthSourceError("no sleep")
        return self.sleep

    async def import_historical(self, days, on_progress=None) -> List[HistoricalReading]:
        self.import_calls += 1
        for i in range(days):
            if on_progress:
                on_progress((i + 1) / days)
        return list(self.history)


def seed_metrics(store: InMemoryMetricsStore, values: Dict[date, float], rhr: float = 55.0, sleep: float = 7.5):
    for day, hrv in values.items():
        store.upsert(day, hrv=hrv, resting_heart_rate=rhr, sleep_hours=sleep, sleep_quality=80)


def days_before(day: date, count: int) -> List[date]:
    """Les `count` jours precedant `day`, du plus ancien au plus recent."""
    return [day - timedelta(days=count - i) for i in range(count)]


@pytest.fixture
def metrics_store() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()


@pytest.fixture
def score_store(metrics_store) -> InMemoryScoreStore:
    return InMemoryScoreStore(metrics_store)
