"""
Enums for HVAC qualification report vocabularies.
Values are stored verbatim in the persisted report blobs.
"""

from enum import Enum


class TestMode(str, Enum):
    """Occupancy state of the room while measurements are taken."""
    AT_REST = "at_rest"
    IN_OPERATION = "in_operation"


class FlowType(str, Enum):
    """Air distribution regime of the room."""
    TURBULENT = "turbulent"
    LAMINAR = "laminar"
    UNIDIRECTIONAL = "unidirectional"


class RoomClass(str, Enum):
    """
    Hospital room classification.
    Drives which criteria thresholds apply to a room.
    """
    CLASS_IB = "class_ib"
    CLASS_II = "class_ii"
    INTENSIVE_CARE = "intensive_care"
    OTHER = "other"


class TestType(str, Enum):
    """Qualification test types that can be recorded for a room."""
    AIRFLOW = "airflow"
    PRESSURE_DIFFERENCE = "pressure_difference"
    AIR_FLOW_DIRECTION = "air_flow_direction"
    HEPA_LEAKAGE = "hepa_leakage"
    PARTICLE_COUNT = "particle_count"
    RECOVERY_TIME = "recovery_time"
    TEMPERATURE_HUMIDITY = "temperature_humidity"
    NOISE_LEVEL = "noise_level"


class DirectionResult(str, Enum):
    """Tester verdict for an air flow direction (smoke) test."""
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"


class FileKind(str, Enum):
    """Export artifact formats."""
    PDF = "pdf"
    EXCEL = "excel"


class AggregationPolicy(str, Enum):
    """
    How repeated instances of one test type within a room combine into a
    single verdict for the room summary.
    """
    ALL_MUST_PASS = "all_must_pass"
    ANY_MUST_PASS = "any_must_pass"


class StorageBackend(str, Enum):
    SQL = "sql"
    MEMORY = "memory"


TEST_TYPE_LABELS = {
    TestType.AIRFLOW: "Airflow",
    TestType.PRESSURE_DIFFERENCE: "Pressure Difference",
    TestType.AIR_FLOW_DIRECTION: "Air Flow Direction",
    TestType.HEPA_LEAKAGE: "HEPA Leakage",
    TestType.PARTICLE_COUNT: "Particle Count (0.5 µm)",
    TestType.RECOVERY_TIME: "Recovery Time",
    TestType.TEMPERATURE_HUMIDITY: "Temperature & Humidity",
    TestType.NOISE_LEVEL: "Noise Level",
}

ROOM_CLASS_LABELS = {
    RoomClass.CLASS_IB: "Class IB",
    RoomClass.CLASS_II: "Class II",
    RoomClass.INTENSIVE_CARE: "Intensive Care",
    RoomClass.OTHER: "Other",
}

TEST_MODE_LABELS = {
    TestMode.AT_REST: "At Rest",
    TestMode.IN_OPERATION: "In Operation",
}

FLOW_TYPE_LABELS = {
    FlowType.TURBULENT: "Turbulent",
    FlowType.LAMINAR: "Laminar",
    FlowType.UNIDIRECTIONAL: "Unidirectional",
}
