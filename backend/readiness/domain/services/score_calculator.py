"""
Calcul du score de readiness.

Deviation HRV par rapport a la baseline -> score de base par bandes
asymetriques, puis penalites FC de repos et sommeil. Fonction pure :
memes entrees, meme resultat.
"""
from dataclasses import dataclass

from readiness.domain.entities.health_metrics import is_valid_rhr
from readiness.domain.entities.readiness_score import ReadinessCategory
from readiness.domain.entities.readiness_settings import ReadinessSettings

# ---------------------------------------------------------------------------
# Constantes (modifier ces valeurs change la signification clinique du score)
# ---------------------------------------------------------------------------
RHR_ADJUSTMENT_POINTS = -10.0
RHR_TOLERANCE_BPM = 5.0
SLEEP_ADJUSTMENT_POINTS = -15.0
SLEEP_MIN_HOURS = 6.0

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@dataclass(frozen=True)
class ScoreResult:
    score: float
    category: ReadinessCategory
    hrv_deviation: float
    rhr_adjustment: float
    sleep_adjustment: float
    base_score: float = 0.0
    hrv_baseline: float = 0.0

    @property
    def has_baseline(self) -> bool:
        return self.hrv_baseline > 0


UNKNOWN_RESULT = ScoreResult(
    score=0.0,
    category=ReadinessCategory.UNKNOWN,
    hrv_deviation=0.0,
    rhr_adjustment=0.0,
    sleep_adjustment=0.0,
)


def hrv_deviation_percent(hrv: float, hrv_baseline: float) -> float:
    return (hrv - hrv_baseline) / hrv_baseline * 100


def base_score_for_deviation(deviation: float) -> float:
    """Score de base (0-100) pour une deviation HRV en pourcentage.

    Bandes evaluees dans l'ordre, premiere correspondance retenue :
      <= -10%       : 29 -> 0   (severite plafonnee a 20 points de deviation)
      (-10%, -7%]   : 49 -> 30
      (-7%, -3%]    : 79 -> 50
      (-3%, 3%]     : 100 -> 80 (plus proche de la baseline = meilleur)
      (3%, 10%)     : 80 -> 90
      >= 10%        : 90 -> 100
    """
    magnitude = abs(deviation)

    if deviation <= -10:
        severity = min(magnitude - 10, 20) / 20
        return 29 - 29 * severity
    if deviation <= -7:
        position = (magnitude - 7) / 3
        return 49 - 19 * position
    if deviation <= -3:
        position = (magnitude - 3) / 4
        return 79 - 29 * position
    if deviation <= 3:
        return 100 - 20 * (magnitude / 3)
    if deviation < 10:
        position = (deviation - 3) / 7
        return 80 + 10 * position
    position = min((deviation - 10) / 10, 1)
    return 90 + 10 * position


def rhr_adjustment(
    resting_heart_rate: float, rhr_baseline: float, settings: ReadinessSettings
) -> float:
    """-10 si la FC de repos depasse la baseline de plus de 5 bpm, sinon 0."""
    if not settings.use_rhr_adjustment:
        return 0.0
    if rhr_baseline <= 0 or not is_valid_rhr(resting_heart_rate):
        return 0.0
    if resting_heart_rate > rhr_baseline + RHR_TOLERANCE_BPM:
        return RHR_ADJUSTMENT_POINTS
    return 0.0


def sleep_adjustment(sleep_hours: float, settings: ReadinessSettings) -> float:
    """-15 pour une nuit de moins de 6 heures, sinon 0."""
    if not settings.use_sleep_adjustment or sleep_hours <= 0:
        return 0.0
    if sleep_hours < SLEEP_MIN_HOURS:
        return SLEEP_ADJUSTMENT_POINTS
    return 0.0


def calculate(
    hrv: float,
    resting_heart_rate: float,
    sleep_hours: float,
    hrv_baseline: float,
    settings: ReadinessSettings,
    rhr_baseline: float = 0.0,
) -> ScoreResult:
    """Score, categorie et facteurs contributifs pour une journee.

    Une baseline HRV nulle ou negative signifie "pas assez d'historique" :
    le resultat est (0, Unknown) quelles que soient les autres entrees.
    """
    if hrv_baseline <= 0:
        return UNKNOWN_RESULT

    deviation = hrv_deviation_percent(hrv, hrv_baseline)
    base = base_score_for_deviation(deviation)
    rhr_adj = rhr_adjustment(resting_heart_rate, rhr_baseline, settings)
    sleep_adj = sleep_adjustment(sleep_hours, settings)

    score = min(max(base + rhr_adj + sleep_adj, SCORE_MIN), SCORE_MAX)

    return ScoreResult(
        score=score,
        category=ReadinessCategory.for_score(score),
        hrv_deviation=deviation,
        rhr_adjustment=rhr_adj,
        sleep_adjustment=sleep_adj,
        base_score=base,
        hrv_baseline=hrv_baseline,
    )
