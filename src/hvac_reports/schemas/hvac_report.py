"""
Pydantic schemas for HVAC qualification reports

A report is one aggregate: report info, an ordered list of rooms and, per room,
the typed test instances recorded for it. Test payloads form a tagged union on
``test_type``; derived fields (volume, flow rates, air-change rate, ISO class)
are recomputed by the report builder and never edited directly.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..services.calculations import calculate_room_volume, round_display
from .enums import (
    DirectionResult,
    FileKind,
    FlowType,
    RoomClass,
    TestMode,
    TestType,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportInfo(BaseModel):
    """Identifying metadata for one qualification report"""
    hospital_name: str = Field("", max_length=255, description="Hospital / facility name")
    report_number: str = Field("", max_length=100, description="Unique report number")
    measurement_date: str = Field("", description="Measurement date (ISO 8601)")
    tester_name: str = Field("", max_length=255, description="Person who performed the tests")
    report_prepared_by: str = Field("", max_length=255, description="Person who prepared the report")
    approved_by: str = Field("", max_length=255, description="Person who approved the report")
    organization_name: str = Field("", max_length=255, description="Testing organization")

    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


# Test payloads -------------------------------------------------------------

class AirflowData(BaseModel):
    """
    Airflow measurement at one supply terminal.

    flow_rate is the measured m³/h per filter and is only ever set by the
    user. air_flow_rate is the per-filter rate actually used: flow_rate when
    measured, otherwise derived from speed (m/s) and the filter dimensions (mm).
    air_flow_rate, total_flow_rate and air_change_rate are derived;
    air_change_rate is None when the room volume is zero.
    """
    test_type: Literal["airflow"] = "airflow"
    speed: float = Field(0.0, ge=0, description="Face velocity in m/s")
    filter_dimension_x: float = Field(0.0, ge=0, description="Filter width in mm")
    filter_dimension_y: float = Field(0.0, ge=0, description="Filter height in mm")
    filter_count: int = Field(1, ge=1, description="Number of identical filter units")
    flow_rate: Optional[float] = Field(None, ge=0, description="Measured flow rate per filter in m³/h")
    air_flow_rate: float = Field(0.0, ge=0, description="Derived: flow rate per filter in m³/h")
    total_flow_rate: float = Field(0.0, ge=0, description="Derived: air_flow_rate × filter_count, m³/h")
    air_change_rate: Optional[float] = Field(None, description="Derived: total_flow_rate / volume, 1/h")


class PressureDifferenceData(BaseModel):
    """One differential pressure reading against a reference area"""
    test_type: Literal["pressure_difference"] = "pressure_difference"
    pressure: float = Field(0.0, description="Differential pressure in Pa")
    reference_area: str = Field("", description="Adjacent zone the pressure is measured against")


class AirFlowDirectionData(BaseModel):
    test_type: Literal["air_flow_direction"] = "air_flow_direction"
    direction: str = Field("clean → dirty", description="Expected flow direction")
    observation: str = ""
    result: DirectionResult = DirectionResult.COMPLIANT


class HepaLeakageData(BaseModel):
    test_type: Literal["hepa_leakage"] = "hepa_leakage"
    actual_leakage: float = Field(0.0, ge=0, description="Measured leakage in %")
    max_leakage: Optional[float] = Field(None, ge=0, description="Allowed maximum in %, overrides the configured limit")


class ParticleCountData(BaseModel):
    """
    Particle concentration (≥0.5 µm, particles/m³).

    particles_05um holds per-location counts; when empty, particle_05 is taken
    as the measured average. average, iso_class and sampling_points are derived.
    """
    test_type: Literal["particle_count"] = "particle_count"
    particles_05um: List[float] = Field(default_factory=list)
    particle_05: float = Field(0.0, ge=0)
    particle_5: float = Field(0.0, ge=0, description="≥5 µm count, informational")
    target_iso_class: Optional[int] = Field(None, ge=1, le=9)
    average: float = Field(0.0, ge=0, description="Derived average count")
    iso_class: Optional[int] = Field(None, description="Derived ISO 14644-1 class, None if worse than ISO 9")
    sampling_points: int = Field(0, ge=0, description="Derived minimum number of sampling locations")

    @field_validator("particles_05um")
    @classmethod
    def non_negative_counts(cls, v: List[float]) -> List[float]:
        if any(count < 0 for count in v):
            raise ValueError("Particle counts must not be negative")
        return v


class RecoveryTimeData(BaseModel):
    test_type: Literal["recovery_time"] = "recovery_time"
    duration: float = Field(0.0, ge=0, description="Recovery duration in minutes")


class TemperatureHumidityData(BaseModel):
    test_type: Literal["temperature_humidity"] = "temperature_humidity"
    temperature: float = Field(0.0, description="Temperature in °C")
    humidity: float = Field(0.0, ge=0, le=100, description="Relative humidity in %")


class NoiseLevelData(BaseModel):
    test_type: Literal["noise_level"] = "noise_level"
    leq: float = Field(0.0, ge=0, description="Equivalent continuous sound level in dB(A)")
    background_noise: float = Field(0.0, ge=0, description="Background level in dB(A)")
    duration: float = Field(0.0, ge=0, description="Measurement duration in minutes")
    location: str = ""
    frequency: str = ""


TestPayload = Annotated[
    Union[
        AirflowData,
        PressureDifferenceData,
        AirFlowDirectionData,
        HepaLeakageData,
        ParticleCountData,
        RecoveryTimeData,
        TemperatureHumidityData,
        NoiseLevelData,
    ],
    Field(discriminator="test_type"),
]

PAYLOAD_MODELS = {
    TestType.AIRFLOW: AirflowData,
    TestType.PRESSURE_DIFFERENCE: PressureDifferenceData,
    TestType.AIR_FLOW_DIRECTION: AirFlowDirectionData,
    TestType.HEPA_LEAKAGE: HepaLeakageData,
    TestType.PARTICLE_COUNT: ParticleCountData,
    TestType.RECOVERY_TIME: RecoveryTimeData,
    TestType.TEMPERATURE_HUMIDITY: TemperatureHumidityData,
    TestType.NOISE_LEVEL: NoiseLevelData,
}


def default_payload(test_type: TestType):
    """Empty payload for a freshly added test instance"""
    return PAYLOAD_MODELS[TestType(test_type)]()


# Aggregate -------------------------------------------------------------------

class TestInstance(BaseModel):
    """One measurement run of a test type within a room"""
    id: str = Field(default_factory=_new_id)
    test_index: int = Field(..., ge=1, description="1-based ordinal per test type within the room")
    data: TestPayload
    meets_criteria: bool = False
    criteria: str = ""
    device_id: Optional[str] = None
    device_name: Optional[str] = None

    @computed_field
    @property
    def test_type(self) -> TestType:
        return TestType(self.data.test_type)


class Room(BaseModel):
    """
    A tested physical space. volume is always surface_area × height;
    a volume in the input is ignored.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=_new_id)
    room_no: str = ""
    room_name: str = ""
    surface_area: float = Field(0.0, description="Floor area in m²")
    height: float = Field(0.0, description="Clear height in m")
    test_mode: TestMode = TestMode.AT_REST
    flow_type: FlowType = FlowType.TURBULENT
    room_class: RoomClass = RoomClass.OTHER
    test_instances: List[TestInstance] = Field(default_factory=list)

    @field_validator("surface_area", "height", mode="before")
    @classmethod
    def missing_as_zero(cls, v):
        return 0.0 if v is None else v

    @field_validator("surface_area", "height")
    @classmethod
    def clamp_negative(cls, v: float, info) -> float:
        if v < 0:
            logger.warning(f"Negative {info.field_name} {v} treated as 0")
            return 0.0
        return v

    @field_validator("room_no", "room_name", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @computed_field
    @property
    def volume(self) -> float:
        return calculate_room_volume(self.surface_area, self.height)

    @property
    def display_volume(self) -> float:
        return round_display(self.volume)

    @property
    def label(self) -> str:
        if self.room_name and self.room_no:
            return f"{self.room_name} ({self.room_no})"
        return self.room_name or self.room_no

    def instances_of(self, test_type: TestType) -> List[TestInstance]:
        return [instance for instance in self.test_instances if instance.test_type == test_type]

    def find_test(self, test_id: str) -> Optional[TestInstance]:
        for instance in self.test_instances:
            if instance.id == test_id:
                return instance
        return None


class Report(BaseModel):
    """Top-level aggregate persisted as one unit"""
    id: str = Field(default_factory=_new_id)
    report_info: ReportInfo = Field(default_factory=ReportInfo)
    rooms: List[Room] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def find_room(self, room_id: str) -> Optional[Room]:
        for room in self.rooms:
            if room.id == room_id:
                return room
        return None

    def touch(self) -> None:
        self.updated_at = _utc_now()

    @property
    def test_count(self) -> int:
        return sum(len(room.test_instances) for room in self.rooms)


class ReportFileRecord(BaseModel):
    """Metadata for a generated PDF or Excel artifact"""
    file_name: str
    created_at: datetime = Field(default_factory=_utc_now)
    size: int = Field(..., ge=0, description="Artifact size in bytes")


class ReportFiles(BaseModel):
    pdf: Optional[ReportFileRecord] = None
    excel: Optional[ReportFileRecord] = None

    def get(self, kind: FileKind) -> Optional[ReportFileRecord]:
        return self.pdf if FileKind(kind) == FileKind.PDF else self.excel

    def with_record(self, kind: FileKind, record: ReportFileRecord) -> "ReportFiles":
        field_name = "pdf" if FileKind(kind) == FileKind.PDF else "excel"
        return self.model_copy(update={field_name: record})


class ValidationResult(BaseModel):
    """Outcome of the pre-export completeness check"""
    valid: bool = Field(..., description="Whether the report can be exported")
    errors: List[str] = Field(default_factory=list, description="User-facing messages, in check order")


# Summaries -------------------------------------------------------------------

class TestTypeSummary(BaseModel):
    test_type: TestType
    label: str
    instance_count: int
    passed_count: int
    meets_criteria: bool
    criteria: str
    values: List[str] = Field(default_factory=list, description="Formatted measured values per instance")


class RoomSummary(BaseModel):
    room_id: str
    room_no: str
    room_name: str
    tests: List[TestTypeSummary]
    test_count: int
    passed_test_count: int
    overall_compliant: bool


class ReportSummary(BaseModel):
    report_id: str
    rooms: List[RoomSummary]
    total_rooms: int
    compliant_rooms: int
    total_tests: int
    passed_tests: int
    compliance_rate: int = Field(..., ge=0, le=100, description="Passed tests in % (rounded)")
    is_compliant: bool
    final_assessment: str


# API request / response bodies -------------------------------------------------

class RoomCreate(BaseModel):
    id: Optional[str] = Field(None, description="Client-supplied room id, generated when omitted")
    room_no: str = ""
    room_name: str = ""
    surface_area: float = 0.0
    height: float = 0.0
    test_mode: TestMode = TestMode.AT_REST
    flow_type: FlowType = FlowType.TURBULENT
    room_class: RoomClass = RoomClass.OTHER


class RoomUpdate(BaseModel):
    room_no: Optional[str] = None
    room_name: Optional[str] = None
    surface_area: Optional[float] = None
    height: Optional[float] = None
    test_mode: Optional[TestMode] = None
    flow_type: Optional[FlowType] = None
    room_class: Optional[RoomClass] = None


class TestInstanceCreate(BaseModel):
    data: TestPayload
    device_id: Optional[str] = None
    device_name: Optional[str] = None


class TestInstanceUpdate(BaseModel):
    data: TestPayload
    device_id: Optional[str] = None
    device_name: Optional[str] = None


class TestCountUpdate(BaseModel):
    count: int = Field(..., ge=0, le=50, description="Desired number of instances of the test type")


class ReportListItem(BaseModel):
    id: str
    hospital_name: str
    report_number: str
    measurement_date: str
    room_count: int
    test_count: int
    created_at: datetime
    updated_at: datetime
    files: ReportFiles = Field(default_factory=ReportFiles)

    @classmethod
    def from_report(cls, report: Report, files: Optional[ReportFiles] = None) -> "ReportListItem":
        return cls(
            id=report.id,
            hospital_name=report.report_info.hospital_name,
            report_number=report.report_info.report_number,
            measurement_date=report.report_info.measurement_date,
            room_count=len(report.rooms),
            test_count=report.test_count,
            created_at=report.created_at,
            updated_at=report.updated_at,
            files=files or ReportFiles(),
        )


class ReportFilesMap(BaseModel):
    """Persisted files index: report id -> artifacts"""
    files: Dict[str, ReportFiles] = Field(default_factory=dict)
