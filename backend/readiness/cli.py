#!/usr/bin/env python3
"""
Interface en ligne de commande du moteur de readiness
Utile pour un calcul planifie (cron), un recalcul ponctuel ou le premier backfill
"""
import argparse
import asyncio
import getpass
import logging
import sys
from datetime import date as date_type
from typing import List, Optional

from readiness.core.settings import get_settings
from readiness.domain.errors import ReadinessError
from readiness.domain.services.recalculation_service import (
    BackfillSummary,
    HistorySummary,
    RecalculationService,
    ScoreOutcome,
)

logger = logging.getLogger(__name__)


def build_service() -> RecalculationService:
    """Coordinateur branche sur la base configuree et Garmin Connect."""
    from readiness.core.database import create_db_and_tables, engine
    from readiness.sources.garmin_source import GarminHealthSource
    from readiness.storage.sql_store import SqlMetricsStore, SqlScoreStore

    create_db_and_tables(engine)
    return RecalculationService(
        metrics_store=SqlMetricsStore(engine),
        score_store=SqlScoreStore(engine),
        health_source=GarminHealthSource(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readiness",
        description="Calcul du score de readiness quotidien",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples:
  readiness today
  readiness today --force
  readiness recalculate 2024-03-01
  readiness backfill
  readiness history --days 30
  readiness garmin-login moi@example.com
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Logs detailles (DEBUG)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    today = subparsers.add_parser("today", help="Recupere les mesures du jour et calcule le score")
    today.add_argument("--force", action="store_true", help="Reecrire le score meme s'il est inchange")

    recalculate = subparsers.add_parser("recalculate", help="Recalcule une date depuis les mesures stockees")
    recalculate.add_argument("date", type=date_type.fromisoformat, help="Date au format AAAA-MM-JJ")

    backfill = subparsers.add_parser("backfill", help="Import historique et calcul des scores passes")
    backfill.add_argument("--force", action="store_true", help="Relancer meme si l'historique suffit")
    backfill.add_argument("--days", type=int, default=None, help="Nombre de jours a importer")

    history = subparsers.add_parser("history", help="Recalcule les scores stockes (apres changement de reglages)")
    history.add_argument("--days", type=int, default=None, help="Nombre de jours a recalculer")

    login = subparsers.add_parser("garmin-login", help="Login Garmin one-time, affiche le token chiffre")
    login.add_argument("email", help="Email du compte Garmin")

    return parser


def _print_outcome(outcome: ScoreOutcome) -> None:
    result = outcome.result
    if not result.has_baseline:
        print(f"{outcome.date}: historique insuffisant, score indisponible")
        return
    status = "enregistre" if outcome.written else "inchange"
    print(f"{outcome.date}: {result.score:.0f} ({result.category.value}) - {status}")
    print(f"   Baseline HRV: {result.hrv_baseline:.1f} ms, deviation {result.hrv_deviation:+.1f}%")
    if result.rhr_adjustment:
        print(f"   Ajustement FC de repos: {result.rhr_adjustment:.0f}")
    if result.sleep_adjustment:
        print(f"   Ajustement sommeil: {result.sleep_adjustment:.0f}")


def _print_progress(fraction: float, stage: str) -> None:
    print(f"\r{stage}: {fraction:.0%}", end="", flush=True)


def _print_backfill(summary: BackfillSummary) -> None:
    if summary.skipped:
        print("Historique deja suffisant, rien a faire (--force pour relancer)")
        return
    print(f"Jours importes: {summary.imported_days}")
    print(f"Jours avec HRV valide: {summary.valid_days}")
    print(f"Scores calcules: {summary.scored_days}")
    if summary.failed_days:
        print(f"Echecs: {', '.join(d.isoformat() for d in summary.failed_days)}")


def _print_history(summary: HistorySummary) -> None:
    print(f"Scores recalcules: {summary.recalculated_days}/{summary.total_days}")
    if summary.failed_days:
        print(f"Echecs: {', '.join(d.isoformat() for d in summary.failed_days)}")


def _garmin_login(email: str) -> int:
    from readiness.auth.garmin_auth import garmin_auth

    password = getpass.getpass("Mot de passe Garmin: ")
    token = garmin_auth.login(email, password)
    print("Login Garmin reussi. Ajoutez cette ligne a votre .env :")
    print(f"GARMIN_TOKEN_ENCRYPTED={token}")
    return 0


def main(argv: Optional[List[str]] = None, service: Optional[RecalculationService] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    app_settings = get_settings()
    settings = app_settings.readiness_settings()

    try:
        if args.command == "garmin-login":
            return _garmin_login(args.email)

        service = service or build_service()

        if args.command == "today":
            _print_outcome(asyncio.run(service.process_today(settings, force=args.force)))
        elif args.command == "recalculate":
            _print_outcome(asyncio.run(service.recalculate_date(args.date, settings)))
        elif args.command == "backfill":
            days = args.days or app_settings.BACKFILL_DAYS
            summary = asyncio.run(
                service.backfill(settings, on_progress=_print_progress, days=days, force=args.force)
            )
            print()
            _print_backfill(summary)
        elif args.command == "history":
            days = args.days or app_settings.BACKFILL_DAYS
            summary = asyncio.run(
                service.recalculate_history(settings, days=days, on_progress=_print_progress)
            )
            print()
            _print_history(summary)
    except ReadinessError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Erreur: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
