"""APScheduler integration: one global tick that triggers due mappings and one-time jobs."""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from sheetsync.config import settings
from sheetsync.connectors.base import SourceReader, TargetWriter
from sheetsync.constants.sync import RunTrigger, SyncJobStatus, SyncRunStatus, TriggerType
from sheetsync.database import SessionLocal
from sheetsync.exceptions import PreconditionError
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.models.sync_job import SyncJob
from sheetsync.models.sync_run import SyncRun
from sheetsync.services.frequency import is_due
from sheetsync.services.sync_executor import MappingLocks, SyncExecutor
from sheetsync.utils.timeutils import as_utc, utcnow

log = logging.getLogger(__name__)

TICK_JOB_ID = "sync_scheduler_tick"


def get_due_mappings(db: Session, now: datetime) -> List[IntegrationMapping]:
    """Active schedule-triggered mappings whose frequency interval has elapsed."""
    candidates = db.query(IntegrationMapping).filter(
        IntegrationMapping.is_active == True,  # noqa: E712
        IntegrationMapping.trigger_type == TriggerType.SCHEDULE.value
    ).order_by(IntegrationMapping.id).all()
    return [mapping for mapping in candidates if is_due(mapping, now)]


def has_running_run(db: Session, mapping_id: int) -> bool:
    return db.query(SyncRun.id).filter(
        SyncRun.mapping_id == mapping_id,
        SyncRun.status == SyncRunStatus.RUNNING.value
    ).first() is not None


def schedule_sync(db: Session, mapping_id: int, scheduled_for: datetime) -> SyncJob:
    """Queue a one-time sync for the given time."""
    if db.get(IntegrationMapping, mapping_id) is None:
        raise PreconditionError.not_found(mapping_id)
    job = SyncJob(
        mapping_id=mapping_id,
        scheduled_for=as_utc(scheduled_for),
        status=SyncJobStatus.PENDING.value
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    log.info(f"Scheduled sync for mapping {mapping_id} at {as_utc(scheduled_for).isoformat()}")
    return job


def cancel_scheduled_sync(db: Session, mapping_id: int) -> int:
    """Cancel every pending one-time sync of a mapping. Returns how many were cancelled."""
    cancelled = db.query(SyncJob).filter(
        SyncJob.mapping_id == mapping_id,
        SyncJob.status == SyncJobStatus.PENDING.value
    ).update({SyncJob.status: SyncJobStatus.CANCELLED.value}, synchronize_session=False)
    db.commit()
    log.info(f"Cancelled {cancelled} scheduled sync(s) for mapping {mapping_id}")
    return cancelled


class SyncScheduler:
    """
    Owns the periodic tick. Created once per process (in the app lifespan) and
    handed to whoever needs it; there is no module-level scheduler state.

    Stopping only removes the timer: runs already in flight finish normally.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        source_reader: Optional[SourceReader] = None,
        target_writer: Optional[TargetWriter] = None,
        interval_seconds: Optional[int] = None,
        locks: Optional[MappingLocks] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.session_factory = session_factory
        self.source_reader = source_reader
        self.target_writer = target_writer
        self.interval_seconds = interval_seconds or settings.scheduler_interval_seconds
        self.locks = locks
        self.clock = clock
        self._scheduler: Optional[AsyncIOScheduler] = None
        self.last_tick: Optional[datetime] = None
        self.last_summary: Optional[Dict[str, int]] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_tick(self) -> Optional[datetime]:
        if not self.is_running:
            return None
        job = self._scheduler.get_job(TICK_JOB_ID)
        return job.next_run_time if job else None

    def start(self) -> None:
        """Start ticking; the first tick runs immediately. Must be called with a running event loop."""
        if self.is_running:
            log.info("Sync scheduler is already running")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            next_run_time=self.clock(),
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        log.info(f"Sync scheduler started, ticking every {self.interval_seconds} seconds")

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log.info("Sync scheduler stopped")
        self._scheduler = None

    def _executor(self, db: Session) -> SyncExecutor:
        return SyncExecutor(
            db,
            source_reader=self.source_reader,
            target_writer=self.target_writer,
            locks=self.locks
        )

    async def tick(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Process due mappings then due one-time jobs. One mapping's failure never stops the rest."""
        now = as_utc(now or self.clock())
        summary = {
            "due": 0,
            "triggered": 0,
            "skipped_running": 0,
            "succeeded": 0,
            "failed": 0,
            "jobs_processed": 0,
        }
        db = self.session_factory()
        try:
            due = get_due_mappings(db, now)
            summary["due"] = len(due)
            if due:
                log.info(f"Found {len(due)} mappings to sync")
            # Plain ids and names; a mapping deleted mid-tick must not break the loop
            targets = [(mapping.id, mapping.name) for mapping in due]
            for mapping_id, name in targets:
                await self._process_mapping(db, mapping_id, name, summary)

            await self._process_jobs(db, now, summary)
        except Exception as e:
            db.rollback()
            log.error(f"Error processing scheduled syncs: {e}", exc_info=True)
        finally:
            db.close()

        self.last_tick = now
        self.last_summary = summary
        if summary["due"] or summary["jobs_processed"]:
            log.info(f"Scheduler tick finished: {summary}")
        return summary

    async def _process_mapping(self, db: Session, mapping_id: int, name: str, summary: Dict[str, int]) -> None:
        try:
            # A manual trigger may have started this mapping since the due query ran
            if has_running_run(db, mapping_id):
                log.info(f"Sync already running for mapping: {name}")
                summary["skipped_running"] += 1
                return

            summary["triggered"] += 1
            result = await self._executor(db).execute_sync(mapping_id, trigger_type=RunTrigger.SCHEDULED.value)
            if result.success:
                summary["succeeded"] += 1
                log.info(f"Sync completed for mapping: {name} ({result.rows_processed} rows)")
            elif result.error_code == PreconditionError.ALREADY_RUNNING:
                summary["triggered"] -= 1
                summary["skipped_running"] += 1
                log.info(f"Sync already running for mapping: {name}")
            elif result.error_code == PreconditionError.MAPPING_NOT_FOUND:
                summary["triggered"] -= 1
                log.info(f"Mapping {name} was deleted before its sync started")
            else:
                summary["failed"] += 1
                log.error(f"Sync failed for mapping: {name} - {result.error}")
        except Exception as e:
            db.rollback()
            summary["failed"] += 1
            log.error(f"Error processing mapping {name}: {e}", exc_info=True)

    async def _process_jobs(self, db: Session, now: datetime, summary: Dict[str, int]) -> None:
        jobs = db.query(SyncJob).filter(
            SyncJob.status == SyncJobStatus.PENDING.value,
            SyncJob.scheduled_for <= now
        ).order_by(SyncJob.scheduled_for).all()
        pending = [(job.id, job.mapping_id) for job in jobs]

        for job_id, mapping_id in pending:
            try:
                # Gone when its mapping was deleted earlier in this tick
                job = db.get(SyncJob, job_id)
                if job is None:
                    continue
                if has_running_run(db, mapping_id):
                    log.info(f"Deferring sync job #{job_id}: mapping {mapping_id} is running")
                    continue
                result = await self._executor(db).execute_sync(mapping_id, trigger_type=RunTrigger.JOB.value)
                if result.error_code == PreconditionError.ALREADY_RUNNING:
                    continue
                # Deleting the mapping removes its jobs too
                job = db.get(SyncJob, job_id)
                if job is None or result.error_code == PreconditionError.MAPPING_NOT_FOUND:
                    continue

                job.sync_run_id = result.run_id
                if result.success:
                    job.status = SyncJobStatus.COMPLETED.value
                    summary["succeeded"] += 1
                else:
                    job.status = SyncJobStatus.FAILED.value
                    job.error_message = result.error
                    summary["failed"] += 1
                final_status = job.status
                db.commit()
                summary["jobs_processed"] += 1
                log.info(f"Sync job #{job_id} for mapping {mapping_id} finished with status '{final_status}'")
            except Exception as e:
                db.rollback()
                log.error(f"Error processing sync job #{job_id}: {e}", exc_info=True)
