"""
Document renderers for HVAC qualification reports
PDF via reportlab platypus, Excel via openpyxl; charts drawn with matplotlib
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import List
from xml.sax.saxutils import escape

from matplotlib.figure import Figure
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..schemas.enums import FileKind
from .report_document import FAIL_LABEL, PASS_LABEL, ReportDocument, build_file_name

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

RESULT_HEADERS = ["Test", "Measured", "Criteria", "Result", "Device"]


@dataclass
class RenderedArtifact:
    """Rendered document bytes plus the metadata recorded in the files index"""
    file_name: str
    content: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def _p(text: str) -> str:
    """Escape user text for reportlab paragraph markup"""
    return escape(text or "")


class PdfReportRenderer:
    """
    Paginated PDF report: title page, table of contents, summary with an
    optional compliance chart, one section per room and the approval page.
    """

    kind = FileKind.PDF

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            'CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=24,
            spaceAfter=30,
            alignment=TA_CENTER,
            textColor=colors.darkblue
        )
        self.subtitle_style = ParagraphStyle(
            'CustomSubtitle',
            parent=self.styles['Heading2'],
            fontSize=16,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.darkblue
        )
        self.cell_style = ParagraphStyle(
            'Cell',
            parent=self.styles['Normal'],
            fontSize=8,
            leading=10
        )

    def render(self, document: ReportDocument) -> RenderedArtifact:
        logger.info(f"Rendering PDF for report {document.report_id} ({len(document.sections)} rooms)")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=54,
            leftMargin=54,
            topMargin=54,
            bottomMargin=54,
            title=document.title,
            author=document.info.organization_name or document.info.report_prepared_by,
        )

        story = []

        # Title page
        story.extend(self._build_title_page(document))
        story.append(PageBreak())

        # Table of contents
        story.extend(self._build_table_of_contents(document))
        story.append(PageBreak())

        # Summary
        story.extend(self._build_summary(document))
        story.append(PageBreak())

        # One section per room
        for section_index in range(len(document.sections)):
            story.extend(self._build_room_section(document, section_index))
            story.append(PageBreak())

        # Approval
        story.extend(self._build_signature_block(document))

        doc.build(story, onFirstPage=self._draw_footer, onLaterPages=self._draw_footer)
        buffer.seek(0)

        return RenderedArtifact(
            file_name=build_file_name(document.info, "pdf", document.generated_at),
            content=buffer.getvalue(),
            media_type=PDF_MEDIA_TYPE,
        )

    def _draw_footer(self, canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.drawRightString(A4[0] - 54, 30, f"Page {doc.page}")
        canvas.restoreState()

    def _table_style(self, header_size: int = 10) -> TableStyle:
        return TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), header_size),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('BACKGROUND', (0, 1), (-1, -1), colors.beige),
            ('GRID', (0, 0), (-1, -1), 1, colors.black)
        ])

    def _key_value_table(self, pairs) -> Table:
        data = [[Paragraph(f"<b>{_p(label)}</b>", self.styles['Normal']), Paragraph(_p(value), self.styles['Normal'])]
                for label, value in pairs]
        table = Table(data, colWidths=[2 * inch, 4 * inch])
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
        ]))
        return table

    def _build_title_page(self, document: ReportDocument) -> List:
        content = []
        content.append(Spacer(1, 80))
        content.append(Paragraph(document.title, self.title_style))
        content.append(Paragraph(_p(document.info.hospital_name), self.subtitle_style))
        content.append(Spacer(1, 30))
        content.append(self._key_value_table(document.general_information))
        return content

    def _build_table_of_contents(self, document: ReportDocument) -> List:
        content = [Paragraph("Table of Contents", self.styles['Heading1']), Spacer(1, 12)]
        for entry in document.table_of_contents:
            content.append(Paragraph(_p(entry), self.styles['Normal']))
            content.append(Spacer(1, 4))
        return content

    def _build_summary(self, document: ReportDocument) -> List:
        summary = document.summary
        content = [Paragraph("Summary", self.styles['Heading1']), Spacer(1, 12)]

        metrics_data = [
            ["Metric", "Value"],
            ["Rooms Tested", str(summary.total_rooms)],
            ["Compliant Rooms", str(summary.compliant_rooms)],
            ["Tests Performed", str(summary.total_tests)],
            ["Tests Passed", str(summary.passed_tests)],
            ["Compliance Rate", f"{summary.compliance_rate}%"],
        ]
        metrics_table = Table(metrics_data, colWidths=[3 * inch, 2 * inch])
        metrics_table.setStyle(self._table_style(12))
        content.append(metrics_table)
        content.append(Spacer(1, 18))

        rooms_data = [["Room No", "Room Name", "Tests", "Passed", "Result"]]
        for room in summary.rooms:
            rooms_data.append([
                Paragraph(_p(room.room_no), self.cell_style),
                Paragraph(_p(room.room_name), self.cell_style),
                str(room.test_count),
                str(room.passed_test_count),
                PASS_LABEL if room.overall_compliant else FAIL_LABEL,
            ])
        rooms_table = Table(rooms_data, colWidths=[1 * inch, 2.4 * inch, 0.8 * inch, 0.8 * inch, 0.9 * inch])
        rooms_table.setStyle(self._table_style())
        content.append(rooms_table)
        content.append(Spacer(1, 18))

        if document.include_charts and summary.total_tests:
            content.append(Paragraph("Test Results per Room", self.styles['Heading2']))
            chart_bytes = self._create_compliance_chart(document)
            content.append(Image(io.BytesIO(chart_bytes), width=6 * inch, height=3 * inch))
            content.append(Spacer(1, 12))

        content.append(Paragraph("Final Assessment", self.styles['Heading2']))
        content.append(Paragraph(_p(summary.final_assessment), self.styles['Normal']))
        return content

    @staticmethod
    def _chart_labels(document: ReportDocument) -> List[str]:
        """One category per room; the section number keeps repeated room numbers apart"""
        labels = []
        for number, room in enumerate(document.summary.rooms, start=1):
            name = room.room_no or room.room_name
            labels.append(f"{number}. {name}" if name else str(number))
        return labels

    def _create_compliance_chart(self, document: ReportDocument) -> bytes:
        """Passed vs failed tests per room as a stacked bar chart"""
        rooms = document.summary.rooms
        labels = self._chart_labels(document)
        passed = [room.passed_test_count for room in rooms]
        failed = [room.test_count - room.passed_test_count for room in rooms]

        # Figure API keeps rendering independent of pyplot global state
        fig = Figure(figsize=(10, 5))
        ax = fig.subplots()
        ax.bar(labels, passed, color='green', alpha=0.7, label='Passed')
        ax.bar(labels, failed, bottom=passed, color='red', alpha=0.7, label='Failed')
        ax.set_title('Test Results per Room')
        ax.set_xlabel('Room')
        ax.set_ylabel('Number of Tests')
        ax.grid(True, axis='y', alpha=0.3)
        ax.legend()
        for label in ax.get_xticklabels():
            label.set_rotation(45)
        fig.tight_layout()

        buffer = io.BytesIO()
        fig.savefig(buffer, format='png', dpi=150, bbox_inches='tight')
        buffer.seek(0)
        return buffer.getvalue()

    def _build_room_section(self, document: ReportDocument, section_index: int) -> List:
        section = document.sections[section_index]
        content = [Paragraph(_p(section.toc_title), self.styles['Heading1']), Spacer(1, 12)]

        content.append(self._key_value_table(section.details))
        content.append(Spacer(1, 18))

        content.append(Paragraph("Test Results", self.styles['Heading2']))
        results_data = [RESULT_HEADERS]
        for row in section.rows:
            results_data.append([Paragraph(_p(cell), self.cell_style) for cell in row.as_list()])

        results_table = Table(
            results_data,
            colWidths=[1.5 * inch, 1.7 * inch, 1.4 * inch, 0.7 * inch, 1.2 * inch],
            repeatRows=1,
        )
        style = self._table_style()
        for row_number, row in enumerate(section.rows, start=1):
            if row.result == FAIL_LABEL:
                style.add('BACKGROUND', (3, row_number), (3, row_number), colors.salmon)
        results_table.setStyle(style)
        content.append(results_table)
        content.append(Spacer(1, 12))

        verdict = "compliant" if section.summary.overall_compliant else "not compliant"
        content.append(Paragraph(
            f"Room result: {section.summary.passed_test_count} of {section.summary.test_count} tests passed; "
            f"the room is {verdict}.",
            self.styles['Normal']
        ))
        return content

    def _build_signature_block(self, document: ReportDocument) -> List:
        content = [Paragraph("Approval", self.styles['Heading1']), Spacer(1, 12)]

        statement_text = (
            f"The HVAC systems of {_p(document.info.hospital_name)} were tested on "
            f"{_p(document.info.measurement_date)} and the results are recorded in report "
            f"{_p(document.info.report_number)}. {_p(document.summary.final_assessment)}"
        )
        content.append(Paragraph(statement_text, self.styles['Normal']))
        content.append(Spacer(1, 24))

        signature_data = [["Role", "Name", "Signature", "Date"]]
        for role, name in document.signatures:
            signature_data.append([role, name or "", "", ""])

        signature_table = Table(signature_data, colWidths=[1.4 * inch, 2 * inch, 1.8 * inch, 1.2 * inch])
        signature_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('LINEBELOW', (2, 1), (3, -1), 1, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'BOTTOM'),
            ('TOPPADDING', (0, 1), (-1, -1), 18)
        ]))
        content.append(signature_table)
        return content


class ExcelReportRenderer:
    """Workbook with general information, summary and one sheet per room"""

    kind = FileKind.EXCEL

    def __init__(self):
        self.header_font = Font(bold=True, size=12, color="FFFFFF")
        self.header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        self.subheader_font = Font(bold=True, size=11)
        self.subheader_fill = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")
        self.pass_fill = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
        self.fail_fill = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
        self.border = Border(
            left=Side(style='thin'), right=Side(style='thin'),
            top=Side(style='thin'), bottom=Side(style='thin')
        )

    def render(self, document: ReportDocument) -> RenderedArtifact:
        logger.info(f"Rendering Excel workbook for report {document.report_id}")

        workbook = Workbook()
        self._create_general_sheet(workbook, document)
        self._create_summary_sheet(workbook, document)

        used_titles = {"General Information", "Summary"}
        for section in document.sections:
            self._create_room_sheet(workbook, section, self._sheet_title(section.toc_title, used_titles))

        buffer = io.BytesIO()
        workbook.save(buffer)

        return RenderedArtifact(
            file_name=build_file_name(document.info, "xlsx", document.generated_at),
            content=buffer.getvalue(),
            media_type=XLSX_MEDIA_TYPE,
        )

    @staticmethod
    def _sheet_title(title: str, used_titles: set) -> str:
        """Excel sheet names are unique, at most 31 chars, without []:*?/\\"""
        base = re.sub(r"[\[\]:*?/\\]", "_", title)[:31] or "Room"
        candidate = base
        suffix = 2
        while candidate in used_titles:
            candidate = f"{base[:31 - len(str(suffix)) - 1]}~{suffix}"
            suffix += 1
        used_titles.add(candidate)
        return candidate

    @staticmethod
    def _write(ws, row: int, column: int, value):
        """Write one cell; strings are always stored as text, never as formulas"""
        cell = ws.cell(row=row, column=column, value=value)
        if isinstance(value, str):
            cell.data_type = "s"
        return cell

    def _write_header(self, ws, row: int, headers: List[str]) -> None:
        for col, header in enumerate(headers, 1):
            cell = self._write(ws, row, col, header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.border = self.border
            cell.alignment = Alignment(horizontal='center')

    def _write_title(self, ws, title: str, width: int) -> None:
        self._write(ws, 1, 1, title).font = Font(bold=True, size=16)
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=width)

    def _fit_columns(self, ws, widths: List[int]) -> None:
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def _create_general_sheet(self, workbook: Workbook, document: ReportDocument) -> None:
        ws = workbook.active
        ws.title = "General Information"
        self._write_title(ws, document.title, 2)

        row = 3
        for label, value in document.general_information:
            label_cell = self._write(ws, row, 1, label)
            label_cell.font = self.subheader_font
            label_cell.fill = self.subheader_fill
            label_cell.border = self.border
            self._write(ws, row, 2, value).border = self.border
            row += 1

        row += 1
        self._write(ws, row, 1, "Contents").font = self.subheader_font
        for entry in document.table_of_contents:
            row += 1
            self._write(ws, row, 1, entry)

        self._fit_columns(ws, [24, 48])

    def _create_summary_sheet(self, workbook: Workbook, document: ReportDocument) -> None:
        summary = document.summary
        ws = workbook.create_sheet("Summary")
        self._write_title(ws, "Summary", 5)

        metrics = [
            ("Rooms Tested", summary.total_rooms),
            ("Compliant Rooms", summary.compliant_rooms),
            ("Tests Performed", summary.total_tests),
            ("Tests Passed", summary.passed_tests),
            ("Compliance Rate (%)", summary.compliance_rate),
        ]
        row = 3
        for label, value in metrics:
            self._write(ws, row, 1, label).font = self.subheader_font
            self._write(ws, row, 2, value)
            row += 1

        row += 1
        self._write_header(ws, row, ["Room No", "Room Name", "Tests", "Passed", "Result"])
        for room in summary.rooms:
            row += 1
            result = PASS_LABEL if room.overall_compliant else FAIL_LABEL
            values = [room.room_no, room.room_name, room.test_count, room.passed_test_count, result]
            for col, value in enumerate(values, 1):
                self._write(ws, row, col, value).border = self.border
            ws.cell(row=row, column=5).fill = self.pass_fill if room.overall_compliant else self.fail_fill

        row += 2
        self._write(ws, row, 1, "Final Assessment").font = self.subheader_font
        self._write(ws, row + 1, 1, summary.final_assessment)

        self._fit_columns(ws, [22, 32, 10, 10, 10])

    def _create_room_sheet(self, workbook: Workbook, section, title: str) -> None:
        ws = workbook.create_sheet(title)
        self._write_title(ws, section.toc_title, len(RESULT_HEADERS))

        row = 3
        for label, value in section.details:
            self._write(ws, row, 1, label).font = self.subheader_font
            self._write(ws, row, 2, value)
            row += 1

        row += 1
        self._write_header(ws, row, RESULT_HEADERS)
        for doc_row in section.rows:
            row += 1
            for col, value in enumerate(doc_row.as_list(), 1):
                self._write(ws, row, col, value).border = self.border
            ws.cell(row=row, column=4).fill = self.pass_fill if doc_row.result == PASS_LABEL else self.fail_fill

        self._fit_columns(ws, [28, 32, 24, 10, 24])
