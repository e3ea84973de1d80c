"""
Tests de l'interface en ligne de commande.
"""
from datetime import date
from unittest.mock import patch

import pytest

from readiness.cli import build_parser, main
from readiness.domain.ports import HistoricalReading
from readiness.domain.services.recalculation_service import RecalculationService

from conftest import NOW, TODAY, FakeHealthSource, days_before, seed_metrics


@pytest.fixture
def service(metrics_store, score_store):
    source = FakeHealthSource(
        hrv_values=[50.0],
        history=[HistoricalReading(date=d, hrv=50.0) for d in days_before(TODAY, 5)],
    )
    return RecalculationService(metrics_store, score_store, source, clock=lambda: NOW)


class TestParser:
    def test_recalculate_parses_date(self):
        args = build_parser().parse_args(["recalculate", "2024-03-01"])
        assert args.date == date(2024, 3, 1)

    def test_invalid_date_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["recalculate", "01/03/2024"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_flags(self):
        args = build_parser().parse_args(["backfill", "--force", "--days", "30"])
        assert args.force is True
        assert args.days == 30


class TestCommands:
    def test_today(self, service, metrics_store, capsys):
        seed_metrics(metrics_store, {d: 50.0 for d in days_before(TODAY, 7)})

        assert main(["today"], service=service) == 0

        out = capsys.readouterr().out
        assert "100 (Optimal)" in out
        assert service.get_score(TODAY) is not None

    def test_today_without_hrv_fails(self, service, capsys):
        service.health_source.hrv_values = []

        assert main(["today"], service=service) == 1
        assert "No HRV data available" in capsys.readouterr().out

    def test_recalculate_missing_date(self, service, capsys):
        assert main(["recalculate", "2024-03-01"], service=service) == 1
        assert "Missing health data for 2024-03-01" in capsys.readouterr().out

    def test_backfill(self, service, score_store, capsys):
        assert main(["backfill"], service=service) == 0

        out = capsys.readouterr().out
        assert "Scores calcules: 2" in out
        assert len(score_store.get_range(10, today=TODAY)) == 2

    def test_backfill_skipped(self, service, metrics_store, capsys):
        seed_metrics(metrics_store, {d: 50.0 for d in days_before(TODAY, 3)})

        assert main(["backfill"], service=service) == 0
        assert "rien a faire" in capsys.readouterr().out

    def test_history(self, service, metrics_store, capsys):
        seed_metrics(metrics_store, {d: 50.0 for d in days_before(TODAY, 4)})

        assert main(["history", "--days", "10"], service=service) == 0
        assert "Scores recalcules: 1/4" in capsys.readouterr().out

    @patch("readiness.cli.getpass.getpass", return_value="secret")
    @patch("readiness.auth.garmin_auth.garmin_auth.login", return_value="encrypted-token")
    def test_garmin_login(self, mock_login, mock_getpass, capsys):
        assert main(["garmin-login", "me@example.com"]) == 0

        mock_login.assert_called_once_with("me@example.com", "secret")
        assert "GARMIN_TOKEN_ENCRYPTED=encrypted-token" in capsys.readouterr().out
