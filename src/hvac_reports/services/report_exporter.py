"""
Export orchestration for HVAC qualification reports

    guard -> load -> refresh derived values -> validate -> render -> record

Only one export per report id may be in flight. The file record is written
after the renderer has returned a complete artifact, never before, and only
while the report still exists.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from ..schemas.enums import AggregationPolicy, FileKind
from ..schemas.hvac_report import ReportFileRecord
from ..utils.errors import ExportInProgressError, RenderError, ReportNotFoundError, ValidationError
from .compliance_summary import ComplianceSummaryService
from .report_builder import ReportBuilder
from .report_document import build_report_document
from .report_generator import ExcelReportRenderer, PdfReportRenderer, RenderedArtifact
from .report_validator import ReportValidator
from .storage.repositories import ReportRepository

logger = logging.getLogger(__name__)


class ReportExporter:
    """
    Renders reports to PDF or Excel and records the generated files.

    Rendering runs in a worker thread so the event loop keeps serving
    requests; callers that abandon an export simply ignore the result.
    """

    def __init__(
        self,
        reports: ReportRepository,
        builder: Optional[ReportBuilder] = None,
        validator: Optional[ReportValidator] = None,
        policy: AggregationPolicy = AggregationPolicy.ALL_MUST_PASS,
        renderers: Optional[Dict[FileKind, object]] = None,
        include_charts: bool = True,
    ):
        self.reports = reports
        self.builder = builder or ReportBuilder()
        self.validator = validator or ReportValidator()
        self.summary_service = ComplianceSummaryService(policy)
        self.renderers = renderers or {
            FileKind.PDF: PdfReportRenderer(),
            FileKind.EXCEL: ExcelReportRenderer(),
        }
        self.include_charts = include_charts
        self._in_flight: Set[str] = set()

    def is_exporting(self, report_id: str) -> bool:
        return report_id in self._in_flight

    async def export(self, report_id: str, kind: FileKind) -> RenderedArtifact:
        kind = FileKind(kind)

        # Checked and claimed without an await in between
        if report_id in self._in_flight:
            logger.info(f"Rejected {kind.value} export for report {report_id}: export already running")
            raise ExportInProgressError(report_id)
        self._in_flight.add(report_id)

        try:
            return await self._export(report_id, kind)
        finally:
            self._in_flight.discard(report_id)

    async def _export(self, report_id: str, kind: FileKind) -> RenderedArtifact:
        report = await self.reports.get_by_id(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        # Stored values may predate a criteria change
        self.builder.refresh(report)

        result = self.validator.validate(report)
        if not result.valid:
            raise ValidationError(result.errors)

        summary = self.summary_service.summarize(report)
        document = build_report_document(report, summary, include_charts=self.include_charts)
        renderer = self.renderers[kind]

        logger.info(f"Starting {kind.value} export for report {report_id}")
        try:
            artifact = await asyncio.to_thread(renderer.render, document)
        except Exception as e:
            logger.warning(f"{kind.value} renderer failed for report {report_id}: {e}")
            raise RenderError(f"Failed to generate {kind.value} document: {e}") from e

        if not artifact.content:
            logger.warning(f"{kind.value} renderer returned an empty document for report {report_id}")
            raise RenderError(f"Failed to generate {kind.value} document: renderer returned no content")

        record = ReportFileRecord(
            file_name=artifact.file_name,
            created_at=datetime.now(timezone.utc),
            size=artifact.size,
        )
        await self.reports.record_file(report_id, kind, record)

        logger.info(f"Finished {kind.value} export for report {report_id}: {artifact.file_name} ({artifact.size} bytes)")
        return artifact
