"""
Service de baseline personnelle.
Moyenne glissante d'une mesure sur les jours precedant la date de reference,
en ne retenant que les echantillons valides.
"""
import logging
from datetime import date as date_type, datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Optional

from readiness.domain.entities.health_metrics import (
    HealthMetrics,
    is_valid_hrv,
    is_valid_rhr,
    is_valid_sleep,
)
from readiness.domain.entities.readiness_settings import ReadinessSettings
from readiness.domain.ports import MetricsStore

logger = logging.getLogger(__name__)


class BaselineMetric(str, Enum):
    HRV = "hrv"
    RHR = "resting_heart_rate"
    SLEEP = "sleep_hours"

    def value_of(self, metrics: HealthMetrics) -> float:
        return getattr(metrics, self.value)

    @property
    def default_validator(self) -> Callable[[float], bool]:
        return {
            BaselineMetric.HRV: is_valid_hrv,
            BaselineMetric.RHR: is_valid_rhr,
            BaselineMetric.SLEEP: is_valid_sleep,
        }[self]


class BaselineEstimator:
    """Calcule les baselines a partir du store de mesures.

    La fenetre est [as_of - lookback_days, as_of) : la date de reference
    n'entre jamais dans sa propre baseline.
    """

    def __init__(self, metrics_store: MetricsStore):
        self.metrics_store = metrics_store
        self.last_computed_at: Dict[BaselineMetric, datetime] = {}

    def compute_baseline(
        self,
        metric: BaselineMetric,
        lookback_days: int,
        min_samples: int,
        validator: Optional[Callable[[float], bool]] = None,
        as_of: Optional[date_type] = None,
    ) -> float:
        """Moyenne des valeurs valides, ou 0.0 si moins de `min_samples` echantillons."""
        as_of = as_of or date_type.today()
        validator = validator or metric.default_validator

        records = self.metrics_store.get_between(as_of - timedelta(days=lookback_days), as_of)
        values = [metric.value_of(m) for m in records if validator(metric.value_of(m))]

        self.last_computed_at[metric] = datetime.utcnow()

        if len(values) < min_samples:
            logger.debug(
                f"Baseline {metric.value} au {as_of}: {len(values)}/{min_samples} echantillons, insuffisant"
            )
            return 0.0

        return sum(values) / len(values)

    def hrv_baseline(self, settings: ReadinessSettings, as_of: Optional[date_type] = None) -> float:
        return self.compute_baseline(
            BaselineMetric.HRV,
            settings.baseline_period_days,
            settings.minimum_samples_for_baseline,
            as_of=as_of,
        )

    def rhr_baseline(self, settings: ReadinessSettings, as_of: Optional[date_type] = None) -> float:
        return self.compute_baseline(
            BaselineMetric.RHR,
            settings.baseline_period_days,
            settings.minimum_samples_for_baseline,
            as_of=as_of,
        )
