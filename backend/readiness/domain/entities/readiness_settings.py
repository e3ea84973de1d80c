"""
Reglages du moteur de readiness - Domain Layer
Valeurs immuables passees a chaque appel (mode, periode de baseline, ajustements).
"""
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Tuple

MORNING_END_HOUR_MIN = 9
MORNING_END_HOUR_MAX = 12
DEFAULT_MORNING_END_HOUR = 11
ROLLING_WINDOW_HOURS = 6


def clamp_morning_end_hour(hour: int) -> int:
    """Borne l'heure de fin du matin entre 9h et 12h."""
    return min(max(hour, MORNING_END_HOUR_MIN), MORNING_END_HOUR_MAX)


class BaselinePeriod(int, Enum):
    """Fenetre glissante utilisee pour la baseline personnelle."""
    SEVEN_DAYS = 7
    FOURTEEN_DAYS = 14
    THIRTY_DAYS = 30

    @property
    def minimum_days_required(self) -> int:
        """Nombre minimum d'echantillons valides pour une baseline fiable."""
        return {
            BaselinePeriod.SEVEN_DAYS: 3,
            BaselinePeriod.FOURTEEN_DAYS: 5,
            BaselinePeriod.THIRTY_DAYS: 7,
        }[self]

    @property
    def description(self) -> str:
        return f"{self.value} days"

    @classmethod
    def from_days(cls, days: int) -> "BaselinePeriod":
        """Convertit un nombre de jours, 7 jours si la valeur est inconnue."""
        try:
            return cls(days)
        except ValueError:
            return cls.SEVEN_DAYS


class ReadinessMode(str, Enum):
    """Politique de fenetre horaire pour la mesure HRV du jour."""
    MORNING = "morning"
    ROLLING = "rolling"

    def description(self, morning_end_hour: int = DEFAULT_MORNING_END_HOUR) -> str:
        if self is ReadinessMode.ROLLING:
            return f"Rolling Readiness (last {ROLLING_WINDOW_HOURS} hours)"
        return f"Morning Readiness (00:00-{morning_end_hour:02d}:00)"

    def time_range(
        self, now: datetime, morning_end_hour: int = DEFAULT_MORNING_END_HOUR
    ) -> Tuple[datetime, datetime]:
        """Fenetre (debut, fin) a interroger pour la HRV du jour.

        Mode matin : de minuit a l'heure de fin ; avant cette heure, la fenetre
        s'arrete a `now` pour recuperer les dernieres mesures.
        Mode glissant : les 6 dernieres heures.
        """
        if self is ReadinessMode.ROLLING:
            return now - timedelta(hours=ROLLING_WINDOW_HOURS), now

        start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        end = start.replace(hour=morning_end_hour)
        if now.hour < morning_end_hour:
            return start, now
        return start, end


@dataclass(frozen=True)
class ReadinessSettings:
    """Vue en lecture seule des reglages, rafraichie par l'appelant entre deux appels."""
    mode: ReadinessMode = ReadinessMode.MORNING
    baseline_period: BaselinePeriod = BaselinePeriod.SEVEN_DAYS
    use_rhr_adjustment: bool = False
    use_sleep_adjustment: bool = False
    morning_end_hour: int = DEFAULT_MORNING_END_HOUR

    @property
    def baseline_period_days(self) -> int:
        return self.baseline_period.value

    @property
    def minimum_samples_for_baseline(self) -> int:
        return self.baseline_period.minimum_days_required
