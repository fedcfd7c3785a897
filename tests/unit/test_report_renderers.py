"""
Unit tests for document shaping and the PDF / Excel renderers.
"""

import io

import pytest
from openpyxl import load_workbook

from hvac_reports.schemas import hvac_report as schemas
from hvac_reports.schemas.enums import DirectionResult
from hvac_reports.services.compliance_summary import ComplianceSummaryService
from hvac_reports.services.report_document import build_file_name, build_report_document
from hvac_reports.services.report_generator import ExcelReportRenderer, PdfReportRenderer


@pytest.fixture
def document(builder, complete_report):
    room = complete_report.rooms[0]
    builder.add_test(complete_report, room.id, schemas.PressureDifferenceData(pressure=4, reference_area="Corridor <B>"))
    builder.add_test(complete_report, room.id, schemas.AirFlowDirectionData(result=DirectionResult.COMPLIANT))
    builder.add_test(complete_report, room.id, schemas.ParticleCountData(particles_05um=[1000, 2000, 3000]))
    builder.add_test(complete_report, room.id, schemas.TemperatureHumidityData(temperature=22, humidity=50))

    second = builder.add_room(complete_report, schemas.RoomCreate(
        room_no="ICU-3", room_name="Intensive Care & Recovery", surface_area=35.5, height=2.9,
    ))
    builder.add_test(complete_report, second.id, schemas.HepaLeakageData(actual_leakage=0.004))
    builder.add_test(complete_report, second.id, schemas.RecoveryTimeData(duration=14))
    builder.add_test(complete_report, second.id, schemas.NoiseLevelData(leq=43.5))

    summary = ComplianceSummaryService().summarize(complete_report)
    return build_report_document(complete_report, summary, include_charts=True)


def test_document_shape(document):
    assert [section.toc_title for section in document.sections] == [
        "1. Operating Room 1 (OR-01)",
        "2. Intensive Care & Recovery (ICU-3)",
    ]
    assert document.table_of_contents[0] == "Summary"
    assert document.table_of_contents[-1] == "Approval"

    first_rows = document.sections[0].rows
    assert [row.test_label for row in first_rows][:2] == ["Airflow", "Pressure Difference"]
    assert first_rows[0].result == "PASS"
    assert first_rows[1].result == "FAIL"
    assert len(document.rows) == 8


def test_file_name():
    info = schemas.ReportInfo(report_number="HV 2026/014", measurement_date="2026-10-12")
    assert build_file_name(info, "pdf") == "HVAC_Report_HV_2026_014_2026-10-12.pdf"


def test_pdf_renderer(document):
    artifact = PdfReportRenderer().render(document)

    assert artifact.content.startswith(b"%PDF")
    assert artifact.size == len(artifact.content)
    assert artifact.media_type == "application/pdf"
    assert artifact.file_name == "HVAC_Report_HV-2026-014_2026-10-12.pdf"


def test_pdf_renderer_without_charts(document):
    document.include_charts = False
    assert PdfReportRenderer().render(document).content.startswith(b"%PDF")


def test_excel_renderer(document):
    artifact = ExcelReportRenderer().render(document)
    assert artifact.file_name.endswith(".xlsx")

    workbook = load_workbook(io.BytesIO(artifact.content))
    assert workbook.sheetnames == [
        "General Information",
        "Summary",
        "1. Operating Room 1 (OR-01)",
        "2. Intensive Care & Recovery (I",
    ]

    general = workbook["General Information"]
    assert general["B3"].value == "St. Mary Hospital"

    room_sheet = workbook["1. Operating Room 1 (OR-01)"]
    values = [cell.value for row in room_sheet.iter_rows() for cell in row]
    assert "Airflow #1" in values
    assert "FAIL" in values


def test_excel_text_starting_with_equals_is_not_a_formula(builder, complete_info):
    report = builder.create_report(complete_info.model_copy(update={"hospital_name": '=HYPERLINK("http://x","y")'}))
    room = builder.add_room(report, schemas.RoomCreate(room_no="=1+1", room_name="=1/0", surface_area=20, height=3))
    builder.add_test(report, room.id, schemas.PressureDifferenceData(pressure=8, reference_area="=A1"))
    summary = ComplianceSummaryService().summarize(report)

    artifact = ExcelReportRenderer().render(build_report_document(report, summary, include_charts=False))

    workbook = load_workbook(io.BytesIO(artifact.content))
    cells = [cell for ws in workbook.worksheets for row in ws.iter_rows() for cell in row if cell.value is not None]
    assert [cell.coordinate for cell in cells if cell.data_type == "f"] == []

    values = [cell.value for cell in cells]
    assert "=1/0" in values
    assert "=1+1" in values
    assert '=HYPERLINK("http://x","y")' in values


def test_chart_labels_unique_for_repeated_room_numbers(builder, complete_report):
    for name in ("Scrub", "Recovery"):
        builder.add_room(complete_report, schemas.RoomCreate(room_no="OR-01", room_name=name, surface_area=10, height=3))
    builder.add_room(complete_report, schemas.RoomCreate(surface_area=10, height=3))
    summary = ComplianceSummaryService().summarize(complete_report)
    document = build_report_document(complete_report, summary, include_charts=True)

    labels = PdfReportRenderer._chart_labels(document)

    assert labels == ["1. OR-01", "2. OR-01", "3. OR-01", "4"]
    assert PdfReportRenderer().render(document).content.startswith(b"%PDF")
