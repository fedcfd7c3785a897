"""
Compliance summary for HVAC qualification reports

Rolls per-instance verdicts up to one verdict per test type and room, and
rooms up to the report. How repeated instances of a test type combine is
controlled by the configured AggregationPolicy; pressure difference
readings always combine with AND. Per-instance verdicts are always kept
alongside.
"""

import logging
from typing import List

from ..schemas.enums import TEST_TYPE_LABELS, AggregationPolicy, DirectionResult, TestType
from ..schemas.hvac_report import (
    AirFlowDirectionData,
    AirflowData,
    HepaLeakageData,
    NoiseLevelData,
    ParticleCountData,
    PressureDifferenceData,
    RecoveryTimeData,
    Report,
    ReportSummary,
    Room,
    RoomSummary,
    TemperatureHumidityData,
    TestInstance,
    TestTypeSummary,
)

logger = logging.getLogger(__name__)

UNDEFINED = "undefined"


def format_measurement(data) -> str:
    """Human readable measured value(s) of one test payload"""
    if isinstance(data, AirflowData):
        if data.air_change_rate is None:
            return f"{data.total_flow_rate:.2f} m³/h, ACH {UNDEFINED}"
        return f"{data.total_flow_rate:.2f} m³/h, {data.air_change_rate:.2f} ACH"
    if isinstance(data, PressureDifferenceData):
        reference = f" vs {data.reference_area}" if data.reference_area else ""
        return f"{data.pressure:g} Pa{reference}"
    if isinstance(data, AirFlowDirectionData):
        verdict = "compliant" if data.result == DirectionResult.COMPLIANT else "non-compliant"
        return f"{data.direction}: {verdict}"
    if isinstance(data, HepaLeakageData):
        return f"{data.actual_leakage:g} %"
    if isinstance(data, ParticleCountData):
        iso = f"ISO {data.iso_class}" if data.iso_class is not None else "worse than ISO 9"
        return f"{data.average:.0f} /m³ ({iso})"
    if isinstance(data, RecoveryTimeData):
        return f"{data.duration:g} min"
    if isinstance(data, TemperatureHumidityData):
        return f"{data.temperature:g} °C, {data.humidity:g} %RH"
    if isinstance(data, NoiseLevelData):
        return f"{data.leq:g} dB(A)"
    raise TypeError(f"No formatter for payload type {type(data).__name__}")


class ComplianceSummaryService:
    """Builds room and report level compliance summaries"""

    def __init__(self, policy: AggregationPolicy = AggregationPolicy.ALL_MUST_PASS):
        self.policy = AggregationPolicy(policy)

    def aggregate(self, verdicts: List[bool]) -> bool:
        if not verdicts:
            return False
        if self.policy == AggregationPolicy.ANY_MUST_PASS:
            return any(verdicts)
        return all(verdicts)

    def combine(self, test_type: TestType, verdicts: List[bool]) -> bool:
        """Pressure readings must all pass whatever the configured policy"""
        if test_type == TestType.PRESSURE_DIFFERENCE:
            return bool(verdicts) and all(verdicts)
        return self.aggregate(verdicts)

    def summarize_test_type(self, test_type: TestType, instances: List[TestInstance]) -> TestTypeSummary:
        ordered = sorted(instances, key=lambda instance: instance.test_index)
        verdicts = [instance.meets_criteria for instance in ordered]
        return TestTypeSummary(
            test_type=test_type,
            label=TEST_TYPE_LABELS[test_type],
            instance_count=len(ordered),
            passed_count=sum(verdicts),
            meets_criteria=self.combine(test_type, verdicts),
            criteria=ordered[0].criteria if ordered else "",
            values=[format_measurement(instance.data) for instance in ordered],
        )

    def summarize_room(self, room: Room) -> RoomSummary:
        tests = [
            self.summarize_test_type(test_type, room.instances_of(test_type))
            for test_type in TestType
            if room.instances_of(test_type)
        ]

        # A room without tests has nothing demonstrating compliance
        overall = bool(tests) and all(summary.meets_criteria for summary in tests)

        return RoomSummary(
            room_id=room.id,
            room_no=room.room_no,
            room_name=room.room_name,
            tests=tests,
            test_count=len(room.test_instances),
            passed_test_count=sum(1 for instance in room.test_instances if instance.meets_criteria),
            overall_compliant=overall,
        )

    def summarize(self, report: Report) -> ReportSummary:
        rooms = [self.summarize_room(room) for room in report.rooms]

        total_tests = sum(room.test_count for room in rooms)
        passed_tests = sum(room.passed_test_count for room in rooms)
        compliant_rooms = sum(1 for room in rooms if room.overall_compliant)
        compliance_rate = round(passed_tests / total_tests * 100) if total_tests else 0
        is_compliant = bool(rooms) and compliant_rooms == len(rooms)

        return ReportSummary(
            report_id=report.id,
            rooms=rooms,
            total_rooms=len(rooms),
            compliant_rooms=compliant_rooms,
            total_tests=total_tests,
            passed_tests=passed_tests,
            compliance_rate=compliance_rate,
            is_compliant=is_compliant,
            final_assessment=self._final_assessment(rooms, is_compliant),
        )

    def _final_assessment(self, rooms: List[RoomSummary], is_compliant: bool) -> str:
        if not rooms:
            return "No rooms have been tested; no assessment can be made."

        if is_compliant:
            return (
                f"All {len(rooms)} tested room(s) meet the acceptance criteria. "
                "The HVAC system is assessed as compliant."
            )

        failing = [room.room_no or room.room_name or room.room_id for room in rooms if not room.overall_compliant]
        return (
            f"{len(failing)} of {len(rooms)} room(s) do not meet the acceptance criteria "
            f"({', '.join(failing)}). Corrective action and retesting are required."
        )
