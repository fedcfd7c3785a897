"""
Standardized error handling for the HVAC qualification report service
"""

import logging
import uuid
from typing import List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class HvacReportError(Exception):
    """Base class for every error kind raised by the report core"""

    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or ERROR_REGISTRY.get(type(self).__name__, ERROR_REGISTRY["HvacReportError"])[1])
        self.message = str(self)


class ValidationError(HvacReportError):
    """Report aggregate is incomplete; carries every collected message"""

    status_code = 422

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message)
        self.errors = list(errors)


class RenderError(HvacReportError):
    """Document renderer failed; no file record was written"""

    status_code = 502


class StorageCorruptError(HvacReportError):
    """Persisted blob could not be parsed"""

    status_code = 500

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"Stored value for '{key}' is corrupt")
        self.key = key


class StorageUnavailableError(HvacReportError):
    """No persistent store is reachable"""

    status_code = 503


class ExportInProgressError(HvacReportError):
    status_code = 409

    def __init__(self, report_id: str):
        super().__init__(f"An export for report {report_id} is already in progress")
        self.report_id = report_id


class ReportNotFoundError(HvacReportError):
    status_code = 404

    def __init__(self, report_id: str):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class RoomNotFoundError(HvacReportError):
    status_code = 404

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class TestInstanceNotFoundError(HvacReportError):
    status_code = 404

    def __init__(self, test_id: str):
        super().__init__(f"Test instance {test_id} not found")
        self.test_id = test_id


class DuplicateRoomError(HvacReportError):
    status_code = 409

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} already exists in this report")
        self.room_id = room_id


# error kind -> (error code, default message, retryable)
ERROR_REGISTRY = {
    "HvacReportError": ("HVAC-500", "Internal Server Error: Report processing failed", True),
    "ValidationError": ("HVAC-422", "Report is incomplete and cannot be exported", False),
    "RenderError": ("HVAC-502", "Document generation failed, please retry", True),
    "StorageCorruptError": ("HVAC-500-STORAGE", "Stored data was corrupt and has been reset", True),
    "StorageUnavailableError": ("HVAC-503", "Storage is unavailable; saving and export are disabled", True),
    "ExportInProgressError": ("HVAC-409-EXPORT", "An export for this report is already in progress", True),
    "ReportNotFoundError": ("HVAC-404", "Not Found: Report does not exist", False),
    "RoomNotFoundError": ("HVAC-404-ROOM", "Not Found: Room does not exist", False),
    "TestInstanceNotFoundError": ("HVAC-404-TEST", "Not Found: Test instance does not exist", False),
    "DuplicateRoomError": ("HVAC-409-ROOM", "Conflict: Room id already used in this report", False),
}


async def hvac_error_handler(request: Request, exc: HvacReportError):
    """Convert report errors into the standard error envelope"""
    error_code, message, retryable = ERROR_REGISTRY.get(
        type(exc).__name__,
        ERROR_REGISTRY["HvacReportError"],
    )

    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")

    content = {
        "transaction_id": str(uuid.uuid4()),
        "error_code": error_code,
        "message": exc.message or message,
        "retryable": retryable,
    }
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors

    return JSONResponse(status_code=exc.status_code, content=content)


# HTTP status -> (error code, default message, retryable)
HTTP_ERROR_REGISTRY = {
    400: ("HVAC-400", "Bad Request: General validation error", False),
    404: ("HVAC-404", "Not Found: Resource does not exist", False),
    405: ("HVAC-405", "Method Not Allowed", False),
    409: ("HVAC-409", "Conflict: Request conflicts with current state", False),
    422: ("HVAC-422", "Unprocessable Entity: Semantic validation error", False),
    500: ("HVAC-500", "Internal Server Error: Generic server failure", True),
    503: ("HVAC-503", "Service Unavailable: Storage failure", True),
}


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Standardized error handler for plain HTTP exceptions"""
    error_code, message, retryable = HTTP_ERROR_REGISTRY.get(
        exc.status_code,
        ("HVAC-500", "Internal Server Error", True)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "transaction_id": str(uuid.uuid4()),
            "error_code": error_code,
            "message": exc.detail or message,
            "retryable": retryable
        }
    )
