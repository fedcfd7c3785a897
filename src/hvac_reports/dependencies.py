"""
FastAPI dependencies for the report services

Service instances are created once in the application lifespan and kept on
``app.state``.
"""

from fastapi import Request

from .config import Settings, get_settings
from .services.compliance_summary import ComplianceSummaryService
from .services.report_builder import ReportBuilder
from .services.report_exporter import ReportExporter
from .services.report_validator import ReportValidator
from .services.storage.repositories import ReportFileRepository, ReportRepository


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_report_repository(request: Request) -> ReportRepository:
    return request.app.state.report_repository


def get_file_repository(request: Request) -> ReportFileRepository:
    return request.app.state.file_repository


def get_report_builder(request: Request) -> ReportBuilder:
    return request.app.state.report_builder


def get_report_validator(request: Request) -> ReportValidator:
    return request.app.state.report_validator


def get_summary_service(request: Request) -> ComplianceSummaryService:
    return request.app.state.summary_service


def get_report_exporter(request: Request) -> ReportExporter:
    return request.app.state.report_exporter
