"""
Report aggregate builder.

Single mutation entry point for reports: every room or test mutation
recomputes the derived values of the affected tests, re-runs the criteria
evaluator and touches the report's updated_at timestamp.

Ordinal policy: test_index is unique per (room, test type). Removing an
instance leaves a gap; new instances take the highest existing index + 1.
"""

import logging
from typing import Optional

from ..config import CriteriaThresholds
from ..schemas.enums import TestType
from ..schemas.hvac_report import (
    AirflowData,
    ParticleCountData,
    Report,
    ReportInfo,
    Room,
    RoomCreate,
    RoomUpdate,
    TestInstance,
    default_payload,
)
from ..utils.errors import DuplicateRoomError, RoomNotFoundError, TestInstanceNotFoundError
from .calculations import apply_airflow_derivations, apply_particle_derivations
from .criteria_evaluator import evaluate_test

logger = logging.getLogger(__name__)


class ReportBuilder:
    """Mutates report aggregates while keeping derived fields fresh"""

    def __init__(self, thresholds: Optional[CriteriaThresholds] = None):
        self.thresholds = thresholds or CriteriaThresholds()

    # Reports -----------------------------------------------------------------

    def create_report(self, info: ReportInfo) -> Report:
        report = Report(report_info=info)
        logger.info(f"Created report {report.id} ({info.report_number or 'no number'})")
        return report

    def update_report_info(self, report: Report, info: ReportInfo) -> Report:
        report.report_info = info
        report.touch()
        return report

    # Rooms -------------------------------------------------------------------

    def add_room(self, report: Report, room_input: RoomCreate) -> Room:
        fields = room_input.model_dump(exclude_none=True)
        room = Room(**fields)
        if report.find_room(room.id) is not None:
            raise DuplicateRoomError(room.id)

        report.rooms.append(room)
        report.touch()
        return room

    def update_room(self, report: Report, room_id: str, changes: RoomUpdate) -> Room:
        room = self._get_room(report, room_id)
        for field_name, value in changes.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(room, field_name, value)

        # Volume and room class feed the airflow and particle verdicts
        self._refresh_room(room)
        report.touch()
        return room

    def remove_room(self, report: Report, room_id: str) -> Room:
        room = self._get_room(report, room_id)
        report.rooms.remove(room)
        report.touch()
        return room

    # Test instances ----------------------------------------------------------

    def add_test(
        self,
        report: Report,
        room_id: str,
        data,
        device_id: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> TestInstance:
        room = self._get_room(report, room_id)
        test_type = TestType(data.test_type)
        instance = TestInstance(
            test_index=self._next_index(room, test_type),
            data=data,
            device_id=device_id,
            device_name=device_name,
        )
        room.test_instances.append(self._evaluate(room, instance))
        report.touch()
        return room.test_instances[-1]

    def update_test(
        self,
        report: Report,
        room_id: str,
        test_id: str,
        data,
        device_id: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> TestInstance:
        room = self._get_room(report, room_id)
        position = self._test_position(room, test_id)
        current = room.test_instances[position]

        if TestType(data.test_type) != current.test_type:
            raise ValueError(
                f"Test {test_id} is a {current.test_type.value} test; "
                f"cannot replace its data with {data.test_type}"
            )

        updated = current.model_copy(
            update={
                "data": data,
                "device_id": device_id if device_id is not None else current.device_id,
                "device_name": device_name if device_name is not None else current.device_name,
            }
        )
        room.test_instances[position] = self._evaluate(room, updated)
        report.touch()
        return room.test_instances[position]

    def remove_test(self, report: Report, room_id: str, test_id: str) -> TestInstance:
        room = self._get_room(report, room_id)
        position = self._test_position(room, test_id)
        removed = room.test_instances.pop(position)
        report.touch()
        return removed

    def set_test_count(self, report: Report, room_id: str, test_type: TestType, count: int) -> Room:
        """
        Grow or shrink the instances of one test type to count.
        New instances start from an empty payload; shrinking drops the
        highest ordinals first.
        """
        if count < 0:
            raise ValueError("Test count must not be negative")

        room = self._get_room(report, room_id)
        test_type = TestType(test_type)
        existing = sorted(room.instances_of(test_type), key=lambda instance: instance.test_index)

        if count > len(existing):
            for _ in range(count - len(existing)):
                instance = TestInstance(
                    test_index=self._next_index(room, test_type),
                    data=default_payload(test_type),
                )
                room.test_instances.append(self._evaluate(room, instance))
        elif count < len(existing):
            dropped = {instance.id for instance in existing[count:]}
            room.test_instances = [
                instance for instance in room.test_instances if instance.id not in dropped
            ]

        report.touch()
        return room

    # Derived values ----------------------------------------------------------

    def refresh(self, report: Report) -> Report:
        """Recompute every derived field and verdict without touching updated_at"""
        for room in report.rooms:
            self._refresh_room(room)
        return report

    def _refresh_room(self, room: Room) -> None:
        room.test_instances = [self._evaluate(room, instance) for instance in room.test_instances]

    def _evaluate(self, room: Room, instance: TestInstance) -> TestInstance:
        data = instance.data
        if isinstance(data, AirflowData):
            data = apply_airflow_derivations(data, room.volume)
        elif isinstance(data, ParticleCountData):
            data = apply_particle_derivations(data, room.surface_area)

        verdict = evaluate_test(data, room.room_class, self.thresholds)
        return instance.model_copy(
            update={
                "data": data,
                "meets_criteria": verdict.meets_criteria,
                "criteria": verdict.criteria,
            }
        )

    # Lookups -----------------------------------------------------------------

    @staticmethod
    def _get_room(report: Report, room_id: str) -> Room:
        room = report.find_room(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    @staticmethod
    def _test_position(room: Room, test_id: str) -> int:
        for position, instance in enumerate(room.test_instances):
            if instance.id == test_id:
                return position
        raise TestInstanceNotFoundError(test_id)

    @staticmethod
    def _next_index(room: Room, test_type: TestType) -> int:
        indices = [instance.test_index for instance in room.instances_of(test_type)]
        return max(indices, default=0) + 1
