"""
Initialisation des entités du domaine
Résout les imports circulaires entre les modèles
"""

# HealthMetrics avant ReadinessScore (clé étrangère)
from .health_metrics import HealthMetrics, HealthMetricsRead
from .readiness_score import ReadinessScore, ReadinessScoreRead, ReadinessCategory
from .readiness_settings import BaselinePeriod, ReadinessMode, ReadinessSettings

__all__ = [
    "HealthMetrics", "HealthMetricsRead",
    "ReadinessScore", "ReadinessScoreRead", "ReadinessCategory",
    "BaselinePeriod", "ReadinessMode", "ReadinessSettings",
]
