"""
Report repositories over the blob store

Persisted layout:
    hvac-reports       JSON list of report aggregates, in creation order
    hvac-report-files  JSON object mapping report id -> {pdf?, excel?}

A blob that cannot be parsed is discarded and the collection starts over
empty; the loss is logged as a warning.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from ...schemas.enums import FileKind
from ...schemas.hvac_report import Report, ReportFileRecord, ReportFiles
from ...utils.errors import ReportNotFoundError, StorageCorruptError
from .blob_store import BlobStore

logger = logging.getLogger(__name__)

REPORTS_KEY = "hvac-reports"
REPORT_FILES_KEY = "hvac-report-files"

T = TypeVar("T")

_reports_adapter = TypeAdapter(List[Report])
_files_adapter = TypeAdapter(Dict[str, ReportFiles])


def _decode(key: str, raw: str, adapter: TypeAdapter):
    try:
        return adapter.validate_json(raw)
    except SchemaError as e:
        raise StorageCorruptError(key) from e


async def _load_blob(store: BlobStore, key: str, adapter: TypeAdapter, empty):
    raw = await store.get(key)
    if not raw:
        return empty()

    try:
        return _decode(key, raw, adapter)
    except StorageCorruptError as e:
        logger.warning(f"{e.message}; discarding it and starting with an empty collection")
        await store.delete(key)
        return empty()


class ReportFileRepository:
    """Index of generated artifacts per report"""

    def __init__(self, store: BlobStore):
        self.store = store
        self._lock = asyncio.Lock()

    async def get_all(self) -> Dict[str, ReportFiles]:
        return await _load_blob(self.store, REPORT_FILES_KEY, _files_adapter, dict)

    async def get(self, report_id: str) -> ReportFiles:
        files = await self.get_all()
        return files.get(report_id, ReportFiles())

    async def record(self, report_id: str, kind: FileKind, record: ReportFileRecord) -> ReportFiles:
        """Store the record for one artifact kind, replacing an older one"""
        async with self._lock:
            files = await self.get_all()
            updated = files.get(report_id, ReportFiles()).with_record(kind, record)
            files[report_id] = updated
            await self._store(files)
        logger.info(f"Recorded {FileKind(kind).value} file {record.file_name} for report {report_id}")
        return updated

    async def delete(self, report_id: str) -> bool:
        async with self._lock:
            files = await self.get_all()
            if report_id not in files:
                return False
            del files[report_id]
            await self._store(files)
        return True

    async def _store(self, files: Dict[str, ReportFiles]) -> None:
        await self.store.set(REPORT_FILES_KEY, _files_adapter.dump_json(files).decode("utf-8"))


class ReportRepository:
    """Report aggregates persisted as one ordered collection"""

    def __init__(self, store: BlobStore, files: Optional[ReportFileRepository] = None):
        self.store = store
        self.files = files or ReportFileRepository(store)
        self._lock = asyncio.Lock()

    async def get_all(self) -> List[Report]:
        return await _load_blob(self.store, REPORTS_KEY, _reports_adapter, list)

    async def get_by_id(self, report_id: str) -> Optional[Report]:
        for report in await self.get_all():
            if report.id == report_id:
                return report
        return None

    async def save(self, report: Report) -> Report:
        """Insert the report, or replace the stored copy in place"""
        async with self._lock:
            reports = await self.get_all()
            for position, existing in enumerate(reports):
                if existing.id == report.id:
                    reports[position] = report
                    break
            else:
                reports.append(report)
            await self._store(reports)
        return report

    async def update(self, report_id: str, mutate: Callable[[Report], T]) -> T:
        """
        Load one report, apply mutate to it and store the result, all under the
        write lock. Concurrent edits of the same report are applied one after
        the other. Nothing is stored when mutate raises.
        """
        async with self._lock:
            reports = await self.get_all()
            report = next((item for item in reports if item.id == report_id), None)
            if report is None:
                raise ReportNotFoundError(report_id)

            result = mutate(report)
            await self._store(reports)
        return result

    async def record_file(self, report_id: str, kind: FileKind, record: ReportFileRecord) -> Optional[ReportFiles]:
        """Record a generated artifact, unless the report was deleted in the meantime"""
        async with self._lock:
            if await self.get_by_id(report_id) is None:
                logger.warning(f"Report {report_id} was deleted during export; {record.file_name} not recorded")
                return None
            return await self.files.record(report_id, kind, record)

    async def delete(self, report_id: str) -> bool:
        """Delete a report with its rooms, tests and file records"""
        async with self._lock:
            reports = await self.get_all()
            remaining = [report for report in reports if report.id != report_id]
            if len(remaining) == len(reports):
                return False
            await self._store(remaining)

        await self.files.delete(report_id)
        logger.info(f"Deleted report {report_id}")
        return True

    async def _store(self, reports: List[Report]) -> None:
        await self.store.set(REPORTS_KEY, _reports_adapter.dump_json(reports).decode("utf-8"))
