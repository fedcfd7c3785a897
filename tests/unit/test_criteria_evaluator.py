"""
Unit tests for the pass/fail criteria evaluator.
"""

import pytest

from hvac_reports.config import CriteriaThresholds
from hvac_reports.schemas import hvac_report as schemas
from hvac_reports.schemas.enums import DirectionResult, RoomClass
from hvac_reports.services.criteria_evaluator import evaluate_test


def airflow(ach):
    return schemas.AirflowData(flow_rate=100, total_flow_rate=100, air_change_rate=ach)


class TestAirflowCriteria:

    def test_passes_at_threshold(self, thresholds):
        verdict = evaluate_test(airflow(20.0), RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is True
        assert verdict.criteria == "≥ 20 ACH"

    def test_fails_below_threshold(self, thresholds):
        assert evaluate_test(airflow(19.9), RoomClass.OTHER, thresholds).meets_criteria is False

    def test_undefined_rate_fails(self, thresholds):
        verdict = evaluate_test(airflow(None), RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is False
        assert "undefined" in verdict.criteria

    def test_threshold_per_room_class(self):
        thresholds = CriteriaThresholds(min_air_change_rate={"class_ib": 25})

        assert thresholds.air_change_threshold(RoomClass.CLASS_IB) == 25
        assert thresholds.air_change_threshold(RoomClass.CLASS_II) == 20

        assert evaluate_test(airflow(22), RoomClass.CLASS_IB, thresholds).meets_criteria is False
        assert evaluate_test(airflow(22), RoomClass.CLASS_II, thresholds).meets_criteria is True
        assert evaluate_test(airflow(22), RoomClass.CLASS_IB, thresholds).criteria == "≥ 25 ACH"


class TestOtherCriteria:

    @pytest.mark.parametrize("pressure,expected", [(6, True), (12.5, True), (5.9, False), (-3, False)])
    def test_pressure_difference(self, thresholds, pressure, expected):
        data = schemas.PressureDifferenceData(pressure=pressure, reference_area="Corridor")
        verdict = evaluate_test(data, RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is expected
        assert verdict.criteria == "≥ 6 Pa"

    def test_air_flow_direction(self, thresholds):
        ok = schemas.AirFlowDirectionData(result=DirectionResult.COMPLIANT)
        bad = schemas.AirFlowDirectionData(result=DirectionResult.NON_COMPLIANT)
        assert evaluate_test(ok, RoomClass.OTHER, thresholds).meets_criteria is True
        assert evaluate_test(bad, RoomClass.OTHER, thresholds).meets_criteria is False

    def test_hepa_leakage(self, thresholds):
        assert evaluate_test(schemas.HepaLeakageData(actual_leakage=0.005), RoomClass.OTHER, thresholds).meets_criteria
        assert not evaluate_test(schemas.HepaLeakageData(actual_leakage=0.02), RoomClass.OTHER, thresholds).meets_criteria

    def test_hepa_leakage_payload_override(self, thresholds):
        data = schemas.HepaLeakageData(actual_leakage=0.02, max_leakage=0.03)
        verdict = evaluate_test(data, RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is True
        assert verdict.criteria == "≤ 0.03 %"

    def test_particle_count(self, thresholds):
        clean = schemas.ParticleCountData(iso_class=5)
        dirty = schemas.ParticleCountData(iso_class=8)
        unknown = schemas.ParticleCountData(iso_class=None)

        assert evaluate_test(clean, RoomClass.OTHER, thresholds).meets_criteria is True
        assert evaluate_test(dirty, RoomClass.OTHER, thresholds).meets_criteria is False
        assert evaluate_test(unknown, RoomClass.OTHER, thresholds).meets_criteria is False
        assert evaluate_test(clean, RoomClass.OTHER, thresholds).criteria == "ISO Class 7"

    def test_particle_count_target_override(self, thresholds):
        data = schemas.ParticleCountData(iso_class=6, target_iso_class=5)
        verdict = evaluate_test(data, RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is False
        assert verdict.criteria == "ISO Class 5"

    def test_recovery_time(self, thresholds):
        assert evaluate_test(schemas.RecoveryTimeData(duration=25), RoomClass.OTHER, thresholds).meets_criteria
        assert not evaluate_test(schemas.RecoveryTimeData(duration=26), RoomClass.OTHER, thresholds).meets_criteria

    @pytest.mark.parametrize("temperature,humidity,expected", [
        (22, 50, True),
        (20, 40, True),
        (24, 60, True),
        (19.5, 50, False),
        (22, 65, False),
        (25, 30, False),
    ])
    def test_temperature_humidity(self, thresholds, temperature, humidity, expected):
        data = schemas.TemperatureHumidityData(temperature=temperature, humidity=humidity)
        verdict = evaluate_test(data, RoomClass.OTHER, thresholds)
        assert verdict.meets_criteria is expected
        assert verdict.criteria == "20-24 °C, 40-60 %RH"

    def test_noise_level(self, thresholds):
        assert evaluate_test(schemas.NoiseLevelData(leq=44), RoomClass.OTHER, thresholds).meets_criteria
        assert not evaluate_test(schemas.NoiseLevelData(leq=48), RoomClass.OTHER, thresholds).meets_criteria


def test_evaluation_is_deterministic(thresholds):
    payloads = [
        airflow(32.4),
        schemas.PressureDifferenceData(pressure=8),
        schemas.ParticleCountData(iso_class=7),
        schemas.TemperatureHumidityData(temperature=23, humidity=70),
    ]
    for data in payloads:
        first = evaluate_test(data, RoomClass.CLASS_II, thresholds)
        second = evaluate_test(data, RoomClass.CLASS_II, thresholds)
        assert first == second


def test_unknown_payload_raises(thresholds):
    with pytest.raises(TypeError):
        evaluate_test(object(), RoomClass.OTHER, thresholds)
