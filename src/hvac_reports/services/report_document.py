"""
Data shaping between report aggregates and the document renderers

Renderers never read the aggregate directly. They receive a ReportDocument:
report info, a table of contents, one section per room (rooms × tests
flattened into rows with formatted values) and the compliance summary.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..schemas.enums import (
    FLOW_TYPE_LABELS,
    ROOM_CLASS_LABELS,
    TEST_MODE_LABELS,
    TEST_TYPE_LABELS,
    TestType,
)
from ..schemas.hvac_report import Report, ReportInfo, ReportSummary, Room, RoomSummary
from .compliance_summary import format_measurement

PASS_LABEL = "PASS"
FAIL_LABEL = "FAIL"


@dataclass
class DocumentRow:
    """One test instance as it appears in a results table"""
    room_no: str
    room_name: str
    test_type: TestType
    test_label: str
    test_index: int
    measurement: str
    criteria: str
    result: str
    device: str = ""

    def as_list(self) -> List[str]:
        return [
            f"{self.test_label} #{self.test_index}",
            self.measurement,
            self.criteria,
            self.result,
            self.device,
        ]


@dataclass
class DocumentSection:
    """One room; every section starts on a new page and has a TOC entry"""
    number: int
    title: str
    details: List[Tuple[str, str]]
    rows: List[DocumentRow]
    summary: RoomSummary

    @property
    def toc_title(self) -> str:
        return f"{self.number}. {self.title}"


@dataclass
class ReportDocument:
    report_id: str
    info: ReportInfo
    summary: ReportSummary
    sections: List[DocumentSection] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    include_charts: bool = True

    @property
    def title(self) -> str:
        return "HVAC Qualification Test Report"

    @property
    def table_of_contents(self) -> List[str]:
        return ["Summary"] + [section.toc_title for section in self.sections] + ["Approval"]

    @property
    def rows(self) -> List[DocumentRow]:
        return [row for section in self.sections for row in section.rows]

    @property
    def general_information(self) -> List[Tuple[str, str]]:
        return [
            ("Hospital", self.info.hospital_name),
            ("Report Number", self.info.report_number),
            ("Measurement Date", self.info.measurement_date),
            ("Tested By", self.info.tester_name),
            ("Prepared By", self.info.report_prepared_by),
            ("Approved By", self.info.approved_by),
            ("Organization", self.info.organization_name),
            ("Generated", self.generated_at.strftime("%Y-%m-%d %H:%M UTC")),
        ]

    @property
    def signatures(self) -> List[Tuple[str, str]]:
        return [
            ("Tested By", self.info.tester_name),
            ("Prepared By", self.info.report_prepared_by),
            ("Approved By", self.info.approved_by),
        ]


def _safe_file_part(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", value).strip("_")


def build_file_name(info: ReportInfo, extension: str, generated_at: Optional[datetime] = None) -> str:
    """HVAC_Report_<report no>_<date>.<ext>; the date falls back to the generation day"""
    generated_at = generated_at or datetime.now(timezone.utc)
    number = _safe_file_part(info.report_number) or "draft"
    date = _safe_file_part(info.measurement_date) or generated_at.strftime("%Y-%m-%d")
    return f"HVAC_Report_{number}_{date}.{extension}"


def _room_details(room: Room) -> List[Tuple[str, str]]:
    return [
        ("Room No", room.room_no),
        ("Room Name", room.room_name),
        ("Surface Area", f"{room.surface_area:.2f} m²"),
        ("Height", f"{room.height:.2f} m"),
        ("Volume", f"{room.display_volume:.2f} m³"),
        ("Test Mode", TEST_MODE_LABELS[room.test_mode]),
        ("Flow Type", FLOW_TYPE_LABELS[room.flow_type]),
        ("Room Class", ROOM_CLASS_LABELS[room.room_class]),
    ]


def _room_rows(room: Room) -> List[DocumentRow]:
    rows = []
    # Document order is the vocabulary order, then the ordinal
    ordered = sorted(
        room.test_instances,
        key=lambda instance: (list(TestType).index(instance.test_type), instance.test_index),
    )
    for instance in ordered:
        device = instance.device_name or instance.device_id or ""
        rows.append(DocumentRow(
            room_no=room.room_no,
            room_name=room.room_name,
            test_type=instance.test_type,
            test_label=TEST_TYPE_LABELS[instance.test_type],
            test_index=instance.test_index,
            measurement=format_measurement(instance.data),
            criteria=instance.criteria,
            result=PASS_LABEL if instance.meets_criteria else FAIL_LABEL,
            device=device,
        ))
    return rows


def build_report_document(report: Report, summary: ReportSummary, include_charts: bool = True) -> ReportDocument:
    """
    Shape a refreshed and validated report for rendering.

    The caller is responsible for recomputing derived fields first; this
    function only formats what is on the aggregate.
    """
    sections = []
    for number, (room, room_summary) in enumerate(zip(report.rooms, summary.rooms), start=1):
        sections.append(DocumentSection(
            number=number,
            title=room.label or f"Room {number}",
            details=_room_details(room),
            rows=_room_rows(room),
            summary=room_summary,
        ))

    return ReportDocument(
        report_id=report.id,
        info=report.report_info,
        summary=summary,
        sections=sections,
        include_charts=include_charts,
    )
