"""
Erreurs du moteur de readiness.

Une baseline insuffisante n'est pas une erreur : elle se traduit par un score
0 / Unknown. Les echecs d'acquisition et de persistance remontent a l'appelant.
"""
from datetime import date as date_type
from typing import List, Optional


class ReadinessError(Exception):
    """Erreur de base du moteur."""


class HealthSourceError(ReadinessError):
    """La source de donnees de sante a echoue ou est degradee."""


class DataUnavailableError(HealthSourceError):
    """Aucune donnee exploitable, meme apres la fenetre de repli."""

    def __init__(self, metric: str = "HRV", detail: Optional[str] = None):
        self.metric = metric
        message = f"No {metric} data available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class HistoricalDataMissingError(ReadinessError):
    """Aucune mesure stockee pour la date demandee."""

    def __init__(self, day: date_type):
        self.date = day
        super().__init__(f"Missing health data for {day.isoformat()}")


class HistoricalDataIncompleteError(ReadinessError):
    """Mesures stockees mais sans HRV valide."""

    def __init__(self, day: date_type, missing_metrics: List[str]):
        self.date = day
        self.missing_metrics = missing_metrics
        super().__init__(
            f"Incomplete health data for {day.isoformat()}. Missing: {', '.join(missing_metrics)}"
        )


class PersistenceError(ReadinessError):
    """Echec de lecture ou d'ecriture dans un store."""
