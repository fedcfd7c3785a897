"""
Unit tests for the report aggregate builder.
"""

from datetime import datetime, timezone

import pytest

from hvac_reports.schemas import hvac_report as schemas
from hvac_reports.schemas.enums import RoomClass, TestType as Kind
from hvac_reports.utils.errors import DuplicateRoomError, RoomNotFoundError, TestInstanceNotFoundError

LONG_AGO = datetime(2020, 1, 1, tzinfo=timezone.utc)


def add_room(builder, report, **fields):
    defaults = {"room_no": "R-1", "room_name": "Room", "surface_area": 20, "height": 3}
    defaults.update(fields)
    return builder.add_room(report, schemas.RoomCreate(**defaults))


class TestRooms:

    def test_create_report(self, builder, complete_info):
        report = builder.create_report(complete_info)
        assert report.report_info == complete_info
        assert report.rooms == []
        assert report.id

    def test_add_room_keeps_insertion_order(self, builder, empty_report):
        first = add_room(builder, empty_report, room_no="A")
        second = add_room(builder, empty_report, room_no="B")
        assert [room.id for room in empty_report.rooms] == [first.id, second.id]

    def test_duplicate_room_id_rejected(self, builder, empty_report):
        add_room(builder, empty_report, id="room-1")
        with pytest.raises(DuplicateRoomError):
            add_room(builder, empty_report, id="room-1")
        assert len(empty_report.rooms) == 1

    def test_update_room_recomputes_airflow_verdict(self, builder, complete_report):
        room = complete_report.rooms[0]
        assert room.test_instances[0].data.air_change_rate == pytest.approx(32.4)
        assert room.test_instances[0].meets_criteria is True

        builder.update_room(complete_report, room.id, schemas.RoomUpdate(height=6))

        room = complete_report.rooms[0]
        assert room.volume == 120
        assert room.test_instances[0].data.air_change_rate == pytest.approx(16.2)
        assert room.test_instances[0].meets_criteria is False

    def test_update_room_class_applies_new_threshold(self, complete_info):
        from hvac_reports.config import CriteriaThresholds
        from hvac_reports.services.report_builder import ReportBuilder

        builder = ReportBuilder(CriteriaThresholds(min_air_change_rate={"intensive_care": 40}))
        report = builder.create_report(complete_info)
        room = add_room(builder, report)
        builder.add_test(report, room.id, schemas.AirflowData(flow_rate=972, filter_count=2))
        assert report.rooms[0].test_instances[0].meets_criteria is True

        builder.update_room(report, room.id, schemas.RoomUpdate(room_class=RoomClass.INTENSIVE_CARE))
        instance = report.rooms[0].test_instances[0]
        assert instance.meets_criteria is False
        assert instance.criteria == "≥ 40 ACH"

    def test_zero_volume_room_marks_airflow_undefined(self, builder, empty_report):
        room = add_room(builder, empty_report, height=0)
        instance = builder.add_test(empty_report, room.id, schemas.AirflowData(flow_rate=972))
        assert instance.data.air_change_rate is None
        assert instance.meets_criteria is False
        assert "undefined" in instance.criteria

    def test_remove_room_cascades(self, builder, complete_report):
        room_id = complete_report.rooms[0].id
        builder.remove_room(complete_report, room_id)
        assert complete_report.rooms == []
        assert complete_report.test_count == 0

    def test_unknown_room(self, builder, empty_report):
        with pytest.raises(RoomNotFoundError):
            builder.update_room(empty_report, "missing", schemas.RoomUpdate(height=3))
        with pytest.raises(RoomNotFoundError):
            builder.add_test(empty_report, "missing", schemas.NoiseLevelData(leq=40))


class TestTestInstances:

    def test_add_test_evaluates_immediately(self, builder, empty_report):
        room = add_room(builder, empty_report)
        instance = builder.add_test(empty_report, room.id, schemas.PressureDifferenceData(pressure=8),
                                    device_id="DP-7", device_name="Manometer")
        assert instance.test_index == 1
        assert instance.test_type == Kind.PRESSURE_DIFFERENCE
        assert instance.meets_criteria is True
        assert instance.criteria == "≥ 6 Pa"
        assert instance.device_name == "Manometer"

    def test_ordinals_are_per_test_type(self, builder, empty_report):
        room = add_room(builder, empty_report)
        first_airflow = builder.add_test(empty_report, room.id, schemas.AirflowData(flow_rate=900))
        pressure = builder.add_test(empty_report, room.id, schemas.PressureDifferenceData(pressure=8))
        second_airflow = builder.add_test(empty_report, room.id, schemas.AirflowData(flow_rate=900))

        assert first_airflow.test_index == 1
        assert pressure.test_index == 1
        assert second_airflow.test_index == 2

    def test_gaps_tolerated_after_removal(self, builder, empty_report):
        room = add_room(builder, empty_report)
        instances = [
            builder.add_test(empty_report, room.id, schemas.PressureDifferenceData(pressure=p))
            for p in (7, 8, 9)
        ]
        builder.remove_test(empty_report, room.id, instances[1].id)
        added = builder.add_test(empty_report, room.id, schemas.PressureDifferenceData(pressure=10))

        indices = [instance.test_index for instance in empty_report.rooms[0].test_instances]
        assert indices == [1, 3, 4]
        assert added.test_index == 4

    def test_update_test_reevaluates(self, builder, empty_report):
        room = add_room(builder, empty_report)
        instance = builder.add_test(empty_report, room.id, schemas.NoiseLevelData(leq=40),
                                    device_name="Sound meter")
        updated = builder.update_test(empty_report, room.id, instance.id, schemas.NoiseLevelData(leq=50))

        assert updated.id == instance.id
        assert updated.test_index == instance.test_index
        assert updated.meets_criteria is False
        assert updated.device_name == "Sound meter"

    def test_speed_edit_on_read_back_payload_recomputes_airflow(self, builder, empty_report):
        room = add_room(builder, empty_report)
        instance = builder.add_test(empty_report, room.id, schemas.AirflowData(
            speed=0.45, filter_dimension_x=610, filter_dimension_y=610, filter_count=4,
        ))
        assert instance.data.air_flow_rate == pytest.approx(602.8)
        assert instance.data.air_change_rate == pytest.approx(2411.2 / 60)
        assert instance.meets_criteria is True

        # Client sends back the stored payload, derived fields included, with a new speed
        edited = instance.data.model_copy(update={"speed": 0.10})
        updated = builder.update_test(empty_report, room.id, instance.id, edited)

        assert updated.data.flow_rate is None
        assert updated.data.air_flow_rate == pytest.approx(133.96)
        assert updated.data.total_flow_rate == pytest.approx(535.84)
        assert updated.data.air_change_rate == pytest.approx(535.84 / 60)
        assert updated.meets_criteria is False

    def test_update_test_rejects_other_type(self, builder, empty_report):
        room = add_room(builder, empty_report)
        instance = builder.add_test(empty_report, room.id, schemas.NoiseLevelData(leq=40))
        with pytest.raises(ValueError):
            builder.update_test(empty_report, room.id, instance.id, schemas.RecoveryTimeData(duration=10))

    def test_unknown_test_instance(self, builder, empty_report):
        room = add_room(builder, empty_report)
        with pytest.raises(TestInstanceNotFoundError):
            builder.remove_test(empty_report, room.id, "missing")

    def test_set_test_count_grows_and_shrinks(self, builder, empty_report):
        room = add_room(builder, empty_report)
        builder.add_test(empty_report, room.id, schemas.RecoveryTimeData(duration=12))

        builder.set_test_count(empty_report, room.id, Kind.RECOVERY_TIME, 3)
        recovery = empty_report.rooms[0].instances_of(Kind.RECOVERY_TIME)
        assert [instance.test_index for instance in recovery] == [1, 2, 3]

        builder.set_test_count(empty_report, room.id, Kind.RECOVERY_TIME, 1)
        recovery = empty_report.rooms[0].instances_of(Kind.RECOVERY_TIME)
        assert len(recovery) == 1
        assert recovery[0].test_index == 1
        assert recovery[0].data.duration == 12

    def test_set_test_count_leaves_other_types(self, builder, complete_report):
        room = complete_report.rooms[0]
        builder.set_test_count(complete_report, room.id, Kind.NOISE_LEVEL, 2)
        builder.set_test_count(complete_report, room.id, Kind.NOISE_LEVEL, 0)

        remaining = complete_report.rooms[0].test_instances
        assert len(remaining) == 1
        assert remaining[0].test_type == Kind.AIRFLOW


class TestTimestamps:

    def test_every_mutation_touches_report(self, builder, complete_report):
        room = complete_report.rooms[0]
        mutations = [
            lambda: builder.update_report_info(complete_report, complete_report.report_info),
            lambda: builder.update_room(complete_report, room.id, schemas.RoomUpdate(room_name="OR 1")),
            lambda: builder.add_test(complete_report, room.id, schemas.NoiseLevelData(leq=40)),
            lambda: builder.set_test_count(complete_report, room.id, Kind.NOISE_LEVEL, 2),
        ]
        for mutate in mutations:
            complete_report.updated_at = LONG_AGO
            mutate()
            assert complete_report.updated_at > LONG_AGO

    def test_refresh_does_not_touch(self, builder, complete_report):
        complete_report.updated_at = LONG_AGO
        builder.refresh(complete_report)
        assert complete_report.updated_at == LONG_AGO

    def test_refresh_repairs_stale_verdicts(self, builder, complete_report):
        room = complete_report.rooms[0]
        room.test_instances[0] = room.test_instances[0].model_copy(
            update={"meets_criteria": False, "criteria": ""}
        )

        builder.refresh(complete_report)

        instance = complete_report.rooms[0].test_instances[0]
        assert instance.meets_criteria is True
        assert instance.criteria == "≥ 20 ACH"
