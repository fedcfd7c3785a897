"""
Validation gate for HVAC qualification reports
Checks a report aggregate for completeness before it is handed to a renderer
"""

import logging
from typing import List

from ..schemas.hvac_report import Report, ReportInfo, Room, ValidationResult

logger = logging.getLogger(__name__)


class ReportValidator:
    """
    Service for validating report completeness prior to export.

    Every rule is checked and every violation is collected; one incomplete
    room never hides the problems of another. The report is never mutated.
    """

    REQUIRED_INFO_FIELDS = [
        ("hospital_name", "Hospital name is required"),
        ("report_number", "Report number is required"),
        ("measurement_date", "Measurement date is required"),
        ("tester_name", "Tester name is required"),
    ]

    def validate(self, report: Report) -> ValidationResult:
        errors: List[str] = []

        self._validate_report_info(report.report_info, errors)

        if not report.rooms:
            errors.append("At least one room is required")

        for position, room in enumerate(report.rooms, start=1):
            self._validate_room(position, room, errors)

        if errors:
            logger.debug(f"Report {report.id} failed validation with {len(errors)} error(s)")

        return ValidationResult(valid=not errors, errors=errors)

    def _validate_report_info(self, info: ReportInfo, errors: List[str]) -> None:
        for field_name, message in self.REQUIRED_INFO_FIELDS:
            if not getattr(info, field_name, "").strip():
                errors.append(message)

    def _validate_room(self, position: int, room: Room, errors: List[str]) -> None:
        prefix = f"Room {position}"
        if room.room_no:
            prefix = f"{prefix} ({room.room_no})"

        if not room.room_name:
            errors.append(f"{prefix}: room name is required")
        if room.surface_area <= 0:
            errors.append(f"{prefix}: surface area must be greater than 0")
        if room.height <= 0:
            errors.append(f"{prefix}: height must be greater than 0")
        if not room.test_instances:
            errors.append(f"{prefix}: at least one test is required")
