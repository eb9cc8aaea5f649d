import asyncio
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from sheetsync.config import settings
from sheetsync.connectors.base import (
    RecordBatch, SheetData, SourceDescriptor, SourceReader, TargetDescriptor, TargetWriter, WriteResult
)
from sheetsync.connectors.registry import (
    SOURCE_TYPES, account_context_for, build_source_reader, build_target_writer
)
from sheetsync.constants.sync import RunTrigger, SyncPhase, SyncRunStatus
from sheetsync.exceptions import (
    MappingValidationError, PreconditionError, SourceReadError, SyncError, TargetWriteError
)
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.models.sync_run import SyncRun
from sheetsync.schemas.sync import SyncResult, SyncStatus
from sheetsync.services.field_mapper import map_rows, parse_field_mappings, required_target_fields
from sheetsync.services.frequency import next_sync_at
from sheetsync.services.run_recorder import SyncRunRecorder
from sheetsync.services.validator import validate_records
from sheetsync.utils.timeutils import as_utc, utcnow

log = logging.getLogger(__name__)


class MappingLocks:
    """One asyncio lock per mapping guarding the running-check and run creation.

    An entry lives only while some caller holds or waits on it, so ids of finished
    or deleted mappings do not pile up.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, mapping_id: int):
        lock = self._locks.setdefault(mapping_id, asyncio.Lock())
        self._holders[mapping_id] = self._holders.get(mapping_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[mapping_id] -= 1
            if not self._holders[mapping_id]:
                del self._holders[mapping_id]
                del self._locks[mapping_id]


# Shared by every executor in the process so manual triggers and scheduler ticks see the same locks
default_mapping_locks = MappingLocks()


class SyncExecutor:
    """
    Runs one mapping end to end: preparing, reading, transforming, writing, recording.

    ``execute_sync`` never raises. Precondition failures (missing, inactive or already
    running mapping) are returned without creating a SyncRun; every later failure is
    recorded as an error SyncRun and returned in the SyncResult.
    """

    def __init__(
        self,
        db: Session,
        source_reader: Optional[SourceReader] = None,
        target_writer: Optional[TargetWriter] = None,
        locks: Optional[MappingLocks] = None,
        write_timeout: Optional[float] = None
    ):
        self.db = db
        self.recorder = SyncRunRecorder(db)
        self.source_reader = source_reader or build_source_reader()
        self.target_writer = target_writer or build_target_writer()
        self.locks = locks if locks is not None else default_mapping_locks
        self.write_timeout = write_timeout if write_timeout is not None else settings.target_write_timeout_seconds

    async def execute_sync(self, mapping_id: int, trigger_type: str = RunTrigger.MANUAL.value) -> SyncResult:
        try:
            mapping, run = await self._prepare(mapping_id, trigger_type)
        except PreconditionError as e:
            log.warning(f"Sync rejected for mapping {mapping_id}: {e.message}")
            return SyncResult(success=False, error=e.message, error_code=e.code)
        except Exception as e:
            self.db.rollback()
            log.error(f"Failed to prepare sync for mapping {mapping_id}: {e}")
            log.debug(traceback.format_exc())
            return SyncResult(success=False, error=f"Failed to prepare sync: {e}", error_code="prepare_failed")

        log.info(f"Starting sync run #{run.id} for mapping '{mapping.name}' (id={mapping_id}, trigger={trigger_type})")
        phase = SyncPhase.READING
        try:
            sheet = await self._read_source(mapping)
            phase = SyncPhase.TRANSFORMING
            batch = self._transform(mapping, sheet)
            phase = SyncPhase.WRITING
            write_result = await self._write_target(mapping, batch)
        except SyncError as e:
            return self._record_failure(mapping, run, e)
        except asyncio.CancelledError:
            self._record_failure(mapping, run, SyncError("Sync cancelled", code="cancelled", phase=phase))
            raise
        except Exception as e:
            log.debug(traceback.format_exc())
            error = SyncError(
                f"Unexpected error: {e}",
                code="unexpected_error",
                phase=phase,
                details={"exception_type": type(e).__name__}
            )
            return self._record_failure(mapping, run, error)

        return self._record_success(mapping, run, write_result)

    async def _prepare(self, mapping_id: int, trigger_type: str) -> Tuple[IntegrationMapping, SyncRun]:
        log.debug(f"Mapping {mapping_id}: {SyncPhase.PREPARING.value}")
        async with self.locks.hold(mapping_id):
            mapping = self.db.get(IntegrationMapping, mapping_id)
            if mapping is None:
                raise PreconditionError.not_found(mapping_id)
            if not mapping.is_active:
                raise PreconditionError.inactive(mapping_id)
            if self.recorder.get_running_run(mapping_id):
                raise PreconditionError.already_running(mapping_id)
            run = self.recorder.create_run(mapping_id, trigger_type)
        return mapping, run

    async def _read_source(self, mapping: IntegrationMapping) -> SheetData:
        log.debug(f"Mapping {mapping.id}: {SyncPhase.READING.value}")
        if mapping.source_type not in SOURCE_TYPES:
            raise SourceReadError(f"Unsupported source type: {mapping.source_type}")
        if mapping.source_connector_id is not None and mapping.source_connector is None:
            raise SourceReadError("Source account not found")

        source = SourceDescriptor(
            spreadsheet_id=mapping.source_spreadsheet_id,
            range=mapping.source_range or settings.default_source_range
        )
        sheet = await self.source_reader.read_source(source, account_context_for(mapping.source_connector))
        if not sheet.header_row or not sheet.data_rows:
            raise SourceReadError(
                "No data rows found in source spreadsheet",
                details={"headers": sheet.header_row}
            )
        log.debug(f"Mapping {mapping.id}: read {len(sheet.data_rows)} rows")
        return sheet

    def _transform(self, mapping: IntegrationMapping, sheet: SheetData) -> RecordBatch:
        log.debug(f"Mapping {mapping.id}: {SyncPhase.TRANSFORMING.value}")
        field_mappings = parse_field_mappings(mapping.field_mappings)
        records = map_rows(sheet.as_records(), field_mappings)

        result = validate_records(records, required_target_fields(field_mappings))
        if not result.is_valid:
            raise MappingValidationError(result.errors)

        return RecordBatch(
            target=TargetDescriptor(system_type=mapping.target_type, entity_type=mapping.target_entity),
            records=records
        )

    async def _write_target(self, mapping: IntegrationMapping, batch: RecordBatch) -> WriteResult:
        log.debug(f"Mapping {mapping.id}: {SyncPhase.WRITING.value} {len(batch.records)} records")
        account = account_context_for(mapping.target_connector)
        write = self.target_writer.write_target(batch, account)
        if self.write_timeout:
            try:
                return await asyncio.wait_for(write, timeout=self.write_timeout)
            except asyncio.TimeoutError:
                raise TargetWriteError(f"Target write timed out after {self.write_timeout} seconds")
        return await write

    def _record_success(self, mapping: IntegrationMapping, run: SyncRun, write_result: WriteResult) -> SyncResult:
        log.debug(f"Mapping {mapping.id}: {SyncPhase.RECORDING.value}")
        completed_at = utcnow()
        try:
            # Aggregates are committed together with the terminal run state
            mapping.last_sync_at = completed_at
            mapping.sync_count = (mapping.sync_count or 0) + write_result.rows_processed
            self.recorder.complete_run(
                run.id,
                SyncRunStatus.SUCCESS,
                rows_processed=write_result.rows_processed,
                rows_failed=write_result.rows_failed,
                completed_at=completed_at
            )
        except Exception as e:
            self.db.rollback()
            log.error(f"Failed to record outcome of sync run #{run.id}: {e}")
            return self._record_failure(
                mapping, run,
                SyncError(f"Failed to record sync outcome: {e}", code="recording_failed", phase=SyncPhase.RECORDING)
            )

        if write_result.rows_failed:
            log.warning(
                f"Sync run #{run.id} completed with {write_result.rows_failed} rows rejected by "
                f"{mapping.target_type}"
            )
        log.info(f"Sync run #{run.id} completed for mapping '{mapping.name}': {write_result.rows_processed} rows processed")
        return SyncResult(
            success=True,
            rows_processed=write_result.rows_processed,
            rows_failed=write_result.rows_failed,
            details=write_result.details,
            run_id=run.id
        )

    def _record_failure(self, mapping: IntegrationMapping, run: SyncRun, error: SyncError) -> SyncResult:
        details = {"phase": error.phase.value, **error.details}
        log.error(f"Sync run #{run.id} for mapping '{mapping.name}' failed during {error.phase.value}: {error.message}")
        try:
            self.recorder.complete_run(
                run.id,
                SyncRunStatus.ERROR,
                error_message=error.message,
                error_details=details
            )
        except Exception as e:
            self.db.rollback()
            log.error(f"Could not mark sync run #{run.id} as failed: {e}")
        return SyncResult(
            success=False,
            error=error.message,
            error_code=error.code,
            details=details,
            run_id=run.id
        )

    def get_sync_status(self, mapping_id: int) -> SyncStatus:
        """Running flag, last and next sync, and success rate over recent finished runs."""
        mapping = self.db.get(IntegrationMapping, mapping_id)
        if mapping is None:
            raise PreconditionError.not_found(mapping_id)

        recent: List[SyncRun] = self.recorder.recent_terminal_runs(mapping_id, settings.status_history_size)
        successes = sum(1 for run in recent if run.status == SyncRunStatus.SUCCESS.value)
        success_rate = (successes / len(recent)) * 100 if recent else 0.0

        return SyncStatus(
            mapping_id=mapping_id,
            is_running=self.recorder.get_running_run(mapping_id) is not None,
            last_sync=as_utc(mapping.last_sync_at),
            next_sync=next_sync_at(mapping),
            success_rate=success_rate
        )
