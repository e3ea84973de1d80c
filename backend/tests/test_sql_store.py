"""
Tests des stores SQLModel sur SQLite en memoire.
"""
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from readiness.domain.entities.readiness_score import ReadinessCategory
from readiness.domain.errors import PersistenceError
from readiness.storage.memory_store import InMemoryMetricsStore, InMemoryScoreStore
from readiness.storage.sql_store import SqlMetricsStore, SqlScoreStore

DAY = date(2024, 3, 15)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def sql_stores(engine):
    return SqlMetricsStore(engine), SqlScoreStore(engine)


@pytest.fixture
def memory_stores():
    metrics = InMemoryMetricsStore()
    return metrics, InMemoryScoreStore(metrics)


def _score(score_store, day, value=82.0):
    return score_store.upsert(
        day,
        score=value,
        category=ReadinessCategory.for_score(value),
        hrv_baseline=50.0,
        hrv_deviation=-1.2,
        rhr_adjustment=0.0,
        sleep_adjustment=0.0,
        readiness_mode="morning",
        baseline_period_days=7,
    )


@pytest.fixture(params=["sql", "memory"])
def stores(request):
    return request.getfixturevalue(f"{request.param}_stores")


class TestMetricsStore:
    def test_upsert_is_idempotent(self, stores):
        metrics_store, _ = stores
        first = metrics_store.upsert(DAY, hrv=48, resting_heart_rate=55, sleep_hours=7, sleep_quality=80)
        second = metrics_store.upsert(DAY, hrv=52, resting_heart_rate=56, sleep_hours=6, sleep_quality=70)

        assert first.id == second.id
        stored = metrics_store.get(DAY)
        assert stored.hrv == 52
        assert stored.sleep_quality == 70
        assert len(metrics_store.get_range(1, today=DAY)) == 1

    def test_get_missing(self, stores):
        metrics_store, _ = stores
        assert metrics_store.get(DAY) is None

    def test_get_range_most_recent_first(self, stores):
        metrics_store, _ = stores
        for offset in range(5):
            metrics_store.upsert(DAY - timedelta(days=offset), hrv=50, resting_heart_rate=55,
                                 sleep_hours=7, sleep_quality=0)

        records = metrics_store.get_range(2, today=DAY)

        assert [r.date for r in records] == [DAY, DAY - timedelta(days=1), DAY - timedelta(days=2)]

    def test_get_between_excludes_end(self, stores):
        metrics_store, _ = stores
        for offset in range(5):
            metrics_store.upsert(DAY - timedelta(days=offset), hrv=50, resting_heart_rate=55,
                                 sleep_hours=7, sleep_quality=0)

        records = metrics_store.get_between(DAY - timedelta(days=3), DAY)

        assert [r.date for r in records] == [DAY - timedelta(days=3 - i) for i in range(3)]

    def test_delete_removes_owned_score(self, stores):
        metrics_store, score_store = stores
        metrics_store.upsert(DAY, hrv=50, resting_heart_rate=55, sleep_hours=7, sleep_quality=0)
        _score(score_store, DAY)

        assert metrics_store.delete(DAY) is True
        assert metrics_store.get(DAY) is None
        assert score_store.get(DAY) is None
        assert metrics_store.delete(DAY) is False


class TestScoreStore:
    def test_requires_metrics(self, stores):
        _, score_store = stores
        with pytest.raises(PersistenceError):
            _score(score_store, DAY)

    def test_updates_in_place(self, stores):
        metrics_store, score_store = stores
        metrics = metrics_store.upsert(DAY, hrv=50, resting_heart_rate=55, sleep_hours=7, sleep_quality=0)

        first = _score(score_store, DAY, 82.0)
        second = _score(score_store, DAY, 64.0)

        assert first.id == second.id
        assert second.health_metrics_id == metrics.id
        stored = score_store.get(DAY)
        assert stored.score == 64.0
        assert stored.category == ReadinessCategory.MODERATE
        assert stored.calculation_timestamp >= first.created_at
        assert len(score_store.get_range(7, today=DAY)) == 1

    def test_get_range(self, stores):
        metrics_store, score_store = stores
        for offset in range(3):
            day = DAY - timedelta(days=offset)
            metrics_store.upsert(day, hrv=50, resting_heart_rate=55, sleep_hours=7, sleep_quality=0)
            _score(score_store, day)

        assert [s.date for s in score_store.get_range(1, today=DAY)] == [DAY, DAY - timedelta(days=1)]


class TestSqlErrors:
    def test_sql_errors_wrapped(self):
        engine = create_engine("sqlite://", poolclass=StaticPool)
        # Pas de create_all : la table n'existe pas
        store = SqlMetricsStore(engine)

        with pytest.raises(PersistenceError) as exc_info:
            store.get(DAY)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_records_usable_after_session_closed(self, sql_stores):
        metrics_store, _ = sql_stores
        metrics_store.upsert(DAY, hrv=50, resting_heart_rate=55, sleep_hours=7, sleep_quality=0)

        record = metrics_store.get(DAY)

        assert record.has_valid_hrv
        assert record.missing_metrics == []


class TestDatabase:
    def test_create_tables_and_health_check(self):
        from readiness.core.database import build_engine, check_database, create_db_and_tables

        engine = build_engine("sqlite://")
        create_db_and_tables(engine)

        assert check_database(engine) is True
        store = SqlMetricsStore(engine)
        store.upsert(DAY, hrv=50, resting_heart_rate=55, sleep_hours=7, sleep_quality=0)
        assert store.get(DAY).hrv == 50

    def test_health_check_failure(self):
        from readiness.core.database import build_engine, check_database

        engine = build_engine("sqlite:////nonexistent-dir/readiness.db")

        assert check_database(engine) is False
