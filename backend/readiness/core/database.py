"""
Configuration de la base de données avec SQLModel
"""
import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel

from readiness.core.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Engine SQLModel ; SQLite doit etre partageable entre threads (asyncio.to_thread)."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


# Créer l'engine de base de données
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def create_db_and_tables(target: Engine = None):
    """Créer toutes les tables de la base de données"""
    # Import des entites pour enregistrer les tables dans la metadata
    from readiness.domain.entities import HealthMetrics, ReadinessScore  # noqa: F401

    SQLModel.metadata.create_all(target or engine)


def check_database(target: Engine = None) -> bool:
    """Vrai si la base repond a un SELECT 1."""
    try:
        with (target or engine).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Base de donnees injoignable: {e}")
        return False
