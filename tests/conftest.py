"""
Pytest configuration and fixtures for the HVAC report service tests.

This module provides common test fixtures and configuration for the test suite.
"""

import os

import pytest
from fastapi.testclient import TestClient

# Set test environment
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["INCLUDE_CHARTS"] = "false"

from hvac_reports.config import CriteriaThresholds, Settings
from hvac_reports.schemas import hvac_report as schemas
from hvac_reports.schemas.enums import RoomClass
from hvac_reports.services.report_builder import ReportBuilder
from hvac_reports.services.storage.blob_store import MemoryBlobStore
from hvac_reports.services.storage.repositories import ReportFileRepository, ReportRepository


@pytest.fixture
def thresholds():
    """Default acceptance thresholds."""
    return CriteriaThresholds()


@pytest.fixture
def builder(thresholds):
    return ReportBuilder(thresholds)


@pytest.fixture
def complete_info():
    """Report info with every required field filled in."""
    return schemas.ReportInfo(
        hospital_name="St. Mary Hospital",
        report_number="HV-2026-014",
        measurement_date="2026-10-12",
        tester_name="A. Tester",
        report_prepared_by="P. Preparer",
        approved_by="Q. Approver",
        organization_name="CleanAir Validation",
    )


@pytest.fixture
def empty_report(builder, complete_info):
    return builder.create_report(complete_info)


@pytest.fixture
def complete_report(builder, complete_info):
    """
    One operating room (20 m² × 3 m = 60 m³) with one airflow test of
    972 m³/h per filter through 2 filters: 1944 / 60 = 32.4 ACH.
    """
    report = builder.create_report(complete_info)
    room = builder.add_room(report, schemas.RoomCreate(
        room_no="OR-01",
        room_name="Operating Room 1",
        surface_area=20,
        height=3,
        room_class=RoomClass.CLASS_IB,
    ))
    builder.add_test(report, room.id, schemas.AirflowData(flow_rate=972, filter_count=2))
    return report


@pytest.fixture
def memory_store():
    return MemoryBlobStore()


@pytest.fixture
def file_repository(memory_store):
    return ReportFileRepository(memory_store)


@pytest.fixture
def report_repository(memory_store, file_repository):
    return ReportRepository(memory_store, file_repository)


@pytest.fixture
def test_settings():
    """Settings for an app backed by in-memory storage."""
    return Settings(storage_backend="memory", include_charts=False, log_level="WARNING")


@pytest.fixture
def client(test_settings):
    """Test client running the application lifespan."""
    from hvac_reports.main import create_app

    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
