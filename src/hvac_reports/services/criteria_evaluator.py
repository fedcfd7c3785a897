"""
Pass/fail evaluation of HVAC qualification tests.

Every test payload is compared against the threshold configured for its test
type (and, where thresholds vary, the room class). Evaluation is a pure
function of (payload, room class, thresholds); derived fields such as the
air-change rate must already be computed on the payload.
"""

from dataclasses import dataclass

from ..config import CriteriaThresholds
from ..schemas.enums import DirectionResult, RoomClass
from ..schemas.hvac_report import (
    AirFlowDirectionData,
    AirflowData,
    HepaLeakageData,
    NoiseLevelData,
    ParticleCountData,
    PressureDifferenceData,
    RecoveryTimeData,
    TemperatureHumidityData,
)


@dataclass(frozen=True)
class CriteriaVerdict:
    meets_criteria: bool
    criteria: str


def _fmt(value: float) -> str:
    return f"{value:g}"


def evaluate_test(data, room_class: RoomClass, thresholds: CriteriaThresholds) -> CriteriaVerdict:
    """
    Evaluate one test payload.

    Raises TypeError for payload types without a rule so that a new test type
    cannot silently pass.
    """
    if isinstance(data, AirflowData):
        return _evaluate_airflow(data, room_class, thresholds)
    if isinstance(data, PressureDifferenceData):
        return _evaluate_pressure(data, thresholds)
    if isinstance(data, AirFlowDirectionData):
        return _evaluate_direction(data)
    if isinstance(data, HepaLeakageData):
        return _evaluate_hepa(data, thresholds)
    if isinstance(data, ParticleCountData):
        return _evaluate_particles(data, room_class, thresholds)
    if isinstance(data, RecoveryTimeData):
        return _evaluate_recovery(data, thresholds)
    if isinstance(data, TemperatureHumidityData):
        return _evaluate_temperature_humidity(data, thresholds)
    if isinstance(data, NoiseLevelData):
        return _evaluate_noise(data, thresholds)
    raise TypeError(f"No criteria rule for payload type {type(data).__name__}")


def _evaluate_airflow(
    data: AirflowData, room_class: RoomClass, thresholds: CriteriaThresholds
) -> CriteriaVerdict:
    minimum = thresholds.air_change_threshold(room_class)
    criteria = f"≥ {_fmt(minimum)} ACH"
    if data.air_change_rate is None:
        return CriteriaVerdict(False, f"{criteria} (air change rate undefined: room volume is 0)")
    return CriteriaVerdict(data.air_change_rate >= minimum, criteria)


def _evaluate_pressure(data: PressureDifferenceData, thresholds: CriteriaThresholds) -> CriteriaVerdict:
    minimum = thresholds.min_pressure_difference_pa
    return CriteriaVerdict(data.pressure >= minimum, f"≥ {_fmt(minimum)} Pa")


def _evaluate_direction(data: AirFlowDirectionData) -> CriteriaVerdict:
    return CriteriaVerdict(data.result == DirectionResult.COMPLIANT, "clean → dirty")


def _evaluate_hepa(data: HepaLeakageData, thresholds: CriteriaThresholds) -> CriteriaVerdict:
    maximum = data.max_leakage if data.max_leakage is not None else thresholds.max_hepa_leakage_percent
    return CriteriaVerdict(data.actual_leakage <= maximum, f"≤ {_fmt(maximum)} %")


def _evaluate_particles(
    data: ParticleCountData, room_class: RoomClass, thresholds: CriteriaThresholds
) -> CriteriaVerdict:
    target = data.target_iso_class or thresholds.iso_class_target(room_class)
    criteria = f"ISO Class {target}"
    if data.iso_class is None:
        return CriteriaVerdict(False, criteria)
    return CriteriaVerdict(data.iso_class <= target, criteria)


def _evaluate_recovery(data: RecoveryTimeData, thresholds: CriteriaThresholds) -> CriteriaVerdict:
    maximum = thresholds.max_recovery_time_minutes
    return CriteriaVerdict(data.duration <= maximum, f"≤ {_fmt(maximum)} min")


def _evaluate_temperature_humidity(
    data: TemperatureHumidityData, thresholds: CriteriaThresholds
) -> CriteriaVerdict:
    t_low, t_high = thresholds.temperature_range_c
    h_low, h_high = thresholds.humidity_range_percent
    temperature_ok = t_low <= data.temperature <= t_high
    humidity_ok = h_low <= data.humidity <= h_high
    criteria = f"{_fmt(t_low)}-{_fmt(t_high)} °C, {_fmt(h_low)}-{_fmt(h_high)} %RH"
    return CriteriaVerdict(temperature_ok and humidity_ok, criteria)


def _evaluate_noise(data: NoiseLevelData, thresholds: CriteriaThresholds) -> CriteriaVerdict:
    maximum = thresholds.max_noise_level_db
    return CriteriaVerdict(data.leq <= maximum, f"≤ {_fmt(maximum)} dB(A)")
