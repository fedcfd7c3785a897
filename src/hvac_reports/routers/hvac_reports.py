"""
HVAC Reports API Router
Report drafting (info, rooms, tests), validation, summaries and exports
"""

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..config import Settings
from ..dependencies import (
    get_app_settings,
    get_file_repository,
    get_report_builder,
    get_report_exporter,
    get_report_repository,
    get_report_validator,
    get_summary_service,
)
from ..schemas.enums import FileKind, TestType
from ..schemas.hvac_report import (
    Report,
    ReportFiles,
    ReportInfo,
    ReportListItem,
    ReportSummary,
    Room,
    RoomCreate,
    RoomUpdate,
    TestCountUpdate,
    TestInstance,
    TestInstanceCreate,
    TestInstanceUpdate,
    ValidationResult,
)
from ..services.compliance_summary import ComplianceSummaryService
from ..services.report_builder import ReportBuilder
from ..services.report_exporter import ReportExporter
from ..services.report_validator import ReportValidator
from ..services.storage.repositories import ReportFileRepository, ReportRepository
from ..utils.errors import ReportNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/hvac-reports", tags=["hvac-reports"])


async def _load_report(reports: ReportRepository, report_id: str) -> Report:
    report = await reports.get_by_id(report_id)
    if report is None:
        raise ReportNotFoundError(report_id)
    return report


@router.get("/health-check")
async def health_check():
    """
    Health check endpoint for the HVAC reports service

    Returns service status and available features.
    """
    return {
        "service": "hvac-reports",
        "status": "healthy",
        "features": [
            "report_drafting",
            "criteria_evaluation",
            "report_validation",
            "pdf_export",
            "excel_export",
        ],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Reports ---------------------------------------------------------------------

@router.get("/", response_model=List[ReportListItem])
async def list_reports(
    reports: ReportRepository = Depends(get_report_repository),
    files: ReportFileRepository = Depends(get_file_repository),
):
    """List reports in creation order with their generated files"""
    all_files = await files.get_all()
    return [
        ReportListItem.from_report(report, all_files.get(report.id))
        for report in await reports.get_all()
    ]


@router.post("/", response_model=Report, status_code=201)
async def create_report(
    info: ReportInfo,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
    settings: Settings = Depends(get_app_settings),
):
    """Create an empty report from its identifying information"""
    if not info.organization_name and settings.default_organization_name:
        info = info.model_copy(update={"organization_name": settings.default_organization_name})

    report = builder.create_report(info)
    return await reports.save(report)


@router.get("/{report_id}", response_model=Report)
async def get_report(report_id: str, reports: ReportRepository = Depends(get_report_repository)):
    return await _load_report(reports, report_id)


@router.put("/{report_id}/info", response_model=Report)
async def update_report_info(
    report_id: str,
    info: ReportInfo,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    return await reports.update(report_id, lambda report: builder.update_report_info(report, info))


@router.delete("/{report_id}", status_code=204)
async def delete_report(report_id: str, reports: ReportRepository = Depends(get_report_repository)):
    """Delete a report together with its rooms, tests and file records"""
    if not await reports.delete(report_id):
        raise ReportNotFoundError(report_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Rooms -----------------------------------------------------------------------

@router.post("/{report_id}/rooms", response_model=Room, status_code=201)
async def add_room(
    report_id: str,
    room_data: RoomCreate,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    return await reports.update(report_id, lambda report: builder.add_room(report, room_data))


@router.patch("/{report_id}/rooms/{room_id}", response_model=Room)
async def update_room(
    report_id: str,
    room_id: str,
    changes: RoomUpdate,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    """Update room fields; volume and every test verdict of the room are recomputed"""
    return await reports.update(report_id, lambda report: builder.update_room(report, room_id, changes))


@router.delete("/{report_id}/rooms/{room_id}", status_code=204)
async def remove_room(
    report_id: str,
    room_id: str,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    await reports.update(report_id, lambda report: builder.remove_room(report, room_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Test instances --------------------------------------------------------------

@router.post("/{report_id}/rooms/{room_id}/tests", response_model=TestInstance, status_code=201)
async def add_test(
    report_id: str,
    room_id: str,
    test_data: TestInstanceCreate,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    """Record a test instance; it is evaluated against its criteria immediately"""
    return await reports.update(report_id, lambda report: builder.add_test(
        report, room_id, test_data.data,
        device_id=test_data.device_id,
        device_name=test_data.device_name,
    ))


@router.put("/{report_id}/rooms/{room_id}/tests/{test_id}", response_model=TestInstance)
async def update_test(
    report_id: str,
    room_id: str,
    test_id: str,
    test_data: TestInstanceUpdate,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    try:
        return await reports.update(report_id, lambda report: builder.update_test(
            report, room_id, test_id, test_data.data,
            device_id=test_data.device_id,
            device_name=test_data.device_name,
        ))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{report_id}/rooms/{room_id}/tests/{test_id}", status_code=204)
async def remove_test(
    report_id: str,
    room_id: str,
    test_id: str,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    await reports.update(report_id, lambda report: builder.remove_test(report, room_id, test_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{report_id}/rooms/{room_id}/test-counts/{test_type}", response_model=Room)
async def set_test_count(
    report_id: str,
    room_id: str,
    test_type: TestType,
    count_data: TestCountUpdate,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
):
    """Grow or shrink the number of instances of one test type in a room"""
    return await reports.update(
        report_id, lambda report: builder.set_test_count(report, room_id, test_type, count_data.count)
    )


# Validation, summary and export ---------------------------------------------

@router.get("/{report_id}/validation", response_model=ValidationResult)
async def validate_report(
    report_id: str,
    reports: ReportRepository = Depends(get_report_repository),
    validator: ReportValidator = Depends(get_report_validator),
):
    report = await _load_report(reports, report_id)
    return validator.validate(report)


@router.get("/{report_id}/summary", response_model=ReportSummary)
async def report_summary(
    report_id: str,
    reports: ReportRepository = Depends(get_report_repository),
    builder: ReportBuilder = Depends(get_report_builder),
    summary_service: ComplianceSummaryService = Depends(get_summary_service),
):
    """Per-room and overall compliance, using the configured aggregation policy"""
    report = await _load_report(reports, report_id)
    builder.refresh(report)
    return summary_service.summarize(report)


@router.post("/{report_id}/exports/{kind}")
async def export_report(
    report_id: str,
    kind: FileKind,
    exporter: ReportExporter = Depends(get_report_exporter),
):
    """
    Generate the PDF or Excel document and return it as a download.

    Returns 409 while another export of the same report is running and 422
    with every validation message when the report is incomplete.
    """
    artifact = await exporter.export(report_id, kind)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.file_name}"'},
    )


@router.get("/{report_id}/files", response_model=ReportFiles)
async def get_report_files(
    report_id: str,
    reports: ReportRepository = Depends(get_report_repository),
    files: ReportFileRepository = Depends(get_file_repository),
):
    await _load_report(reports, report_id)
    return await files.get(report_id)
