"""
Tests du calcul de score : bandes de deviation, penalites, categories.
"""
import pytest

from readiness.domain.entities.readiness_score import ReadinessCategory
from readiness.domain.entities.readiness_settings import ReadinessSettings
from readiness.domain.services.score_calculator import (
    RHR_ADJUSTMENT_POINTS,
    SLEEP_ADJUSTMENT_POINTS,
    base_score_for_deviation,
    calculate,
    hrv_deviation_percent,
)

DEFAULT = ReadinessSettings()
RHR_ON = ReadinessSettings(use_rhr_adjustment=True)
SLEEP_ON = ReadinessSettings(use_sleep_adjustment=True)
ALL_ON = ReadinessSettings(use_rhr_adjustment=True, use_sleep_adjustment=True)


class TestScenarios:
    def test_at_baseline_is_optimal(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=0, hrv_baseline=50, settings=DEFAULT)
        assert result.score == pytest.approx(100)
        assert result.category == ReadinessCategory.OPTIMAL
        assert result.hrv_deviation == pytest.approx(0)

    def test_twelve_percent_below_is_fatigue(self):
        result = calculate(hrv=44, resting_heart_rate=0, sleep_hours=0, hrv_baseline=50, settings=DEFAULT)
        assert result.hrv_deviation == pytest.approx(-12)
        assert result.score == pytest.approx(26.1)
        assert result.category == ReadinessCategory.FATIGUE

    def test_elevated_rhr_costs_ten_points(self):
        result = calculate(
            hrv=50, resting_heart_rate=70, sleep_hours=0, hrv_baseline=50,
            settings=RHR_ON, rhr_baseline=60,
        )
        assert result.rhr_adjustment == RHR_ADJUSTMENT_POINTS
        assert result.score == pytest.approx(90)
        assert result.category == ReadinessCategory.OPTIMAL

    def test_short_sleep_costs_fifteen_points(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=5, hrv_baseline=50, settings=SLEEP_ON)
        assert result.sleep_adjustment == SLEEP_ADJUSTMENT_POINTS
        assert result.score == pytest.approx(85)
        assert result.category == ReadinessCategory.OPTIMAL

    @pytest.mark.parametrize("hrv", [0, 10, 44, 50, 500])
    def test_no_baseline_is_unknown(self, hrv):
        result = calculate(hrv=hrv, resting_heart_rate=80, sleep_hours=4, hrv_baseline=0, settings=ALL_ON)
        assert result.score == 0
        assert result.category == ReadinessCategory.UNKNOWN
        assert result.rhr_adjustment == 0
        assert result.sleep_adjustment == 0
        assert not result.has_baseline

    def test_negative_baseline_is_unknown(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=0, hrv_baseline=-5, settings=DEFAULT)
        assert result.category == ReadinessCategory.UNKNOWN


class TestBaseScoreBands:
    @pytest.mark.parametrize("deviation, expected", [
        (-30, 0),
        (-50, 0),
        (-10, 29),
        (-7, 49),
        (-8.5, 39.5),
        (-3, 79),
        (-5, 64.5),
        (0, 100),
        (3, 80),
        (-1.5, 90),
        (6.5, 85),
        (10, 90),
        (15, 95),
        (20, 100),
        (60, 100),
    ])
    def test_band_values(self, deviation, expected):
        assert base_score_for_deviation(deviation) == pytest.approx(expected)

    def test_boundaries_resolve_to_first_listed_band(self):
        # -10 appartient a la bande <= -10, -7 a (-10, -7], 3 a (-3, 3]
        assert base_score_for_deviation(-10) == pytest.approx(29)
        assert base_score_for_deviation(-7) == pytest.approx(49)
        assert base_score_for_deviation(3) == pytest.approx(80)

    def test_continuous_at_positive_boundaries(self):
        eps = 1e-9
        assert base_score_for_deviation(3 + eps) == pytest.approx(80, abs=1e-6)
        assert base_score_for_deviation(10 - eps) == pytest.approx(90, abs=1e-6)

    @pytest.mark.parametrize("low, high", [(-30, -10), (-10, -7), (-7, -3), (-3, 0), (3, 10), (10, 25)])
    def test_increasing_within_band(self, low, high):
        steps = [low + (high - low) * i / 20 for i in range(21)]
        scores = [base_score_for_deviation(d) for d in steps]
        assert scores == sorted(scores)

    def test_output_range(self):
        for tenth in range(-1000, 1000):
            score = base_score_for_deviation(tenth / 10)
            assert 0 <= score <= 100


class TestAdjustments:
    def test_rhr_within_tolerance(self):
        result = calculate(hrv=50, resting_heart_rate=65, sleep_hours=0, hrv_baseline=50,
                           settings=RHR_ON, rhr_baseline=60)
        assert result.rhr_adjustment == 0
        assert result.score == pytest.approx(100)

    def test_rhr_disabled(self):
        result = calculate(hrv=50, resting_heart_rate=90, sleep_hours=0, hrv_baseline=50,
                           settings=DEFAULT, rhr_baseline=60)
        assert result.rhr_adjustment == 0

    def test_rhr_without_baseline_is_skipped(self):
        result = calculate(hrv=50, resting_heart_rate=90, sleep_hours=0, hrv_baseline=50,
                           settings=RHR_ON, rhr_baseline=0)
        assert result.rhr_adjustment == 0
        assert result.score == pytest.approx(100)

    def test_invalid_current_rhr_is_skipped(self):
        result = calculate(hrv=50, resting_heart_rate=150, sleep_hours=0, hrv_baseline=50,
                           settings=RHR_ON, rhr_baseline=60)
        assert result.rhr_adjustment == 0

    def test_sleep_exactly_six_hours_not_penalised(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=6.0, hrv_baseline=50, settings=SLEEP_ON)
        assert result.sleep_adjustment == 0

    def test_missing_sleep_not_penalised(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=0, hrv_baseline=50, settings=SLEEP_ON)
        assert result.sleep_adjustment == 0

    def test_sleep_disabled(self):
        result = calculate(hrv=50, resting_heart_rate=0, sleep_hours=3, hrv_baseline=50, settings=DEFAULT)
        assert result.sleep_adjustment == 0

    def test_score_clamped_at_zero(self):
        result = calculate(hrv=30, resting_heart_rate=80, sleep_hours=4, hrv_baseline=50,
                           settings=ALL_ON, rhr_baseline=60)
        assert result.base_score == pytest.approx(0)
        assert result.score == 0
        assert result.category == ReadinessCategory.FATIGUE

    def test_both_penalties_combine(self):
        result = calculate(hrv=50, resting_heart_rate=80, sleep_hours=4, hrv_baseline=50,
                           settings=ALL_ON, rhr_baseline=60)
        assert result.score == pytest.approx(75)
        assert result.category == ReadinessCategory.MODERATE


class TestCategories:
    @pytest.mark.parametrize("score, category", [
        (100, ReadinessCategory.OPTIMAL),
        (80, ReadinessCategory.OPTIMAL),
        (79.9, ReadinessCategory.MODERATE),
        (50, ReadinessCategory.MODERATE),
        (49.5, ReadinessCategory.LOW),
        (30, ReadinessCategory.LOW),
        (29.9, ReadinessCategory.FATIGUE),
        (0, ReadinessCategory.FATIGUE),
    ])
    def test_for_score(self, score, category):
        assert ReadinessCategory.for_score(score) == category

    def test_category_matches_score_range(self):
        for hrv in range(20, 120):
            result = calculate(hrv=hrv, resting_heart_rate=0, sleep_hours=0, hrv_baseline=60, settings=DEFAULT)
            low, high = result.category.range
            assert low <= result.score <= high + 1

    def test_identical_inputs_identical_outputs(self):
        first = calculate(hrv=47.3, resting_heart_rate=64, sleep_hours=5.5, hrv_baseline=51.2,
                          settings=ALL_ON, rhr_baseline=58)
        second = calculate(hrv=47.3, resting_heart_rate=64, sleep_hours=5.5, hrv_baseline=51.2,
                           settings=ALL_ON, rhr_baseline=58)
        assert first == second


def test_deviation_percent():
    assert hrv_deviation_percent(55, 50) == pytest.approx(10)
    assert hrv_deviation_percent(45, 50) == pytest.approx(-10)
