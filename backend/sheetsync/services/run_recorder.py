"""Persistence of sync run history."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sheetsync.constants.sync import RunTrigger, SyncRunStatus, TERMINAL_RUN_STATUSES
from sheetsync.exceptions import PreconditionError
from sheetsync.models.sync_run import SyncRun
from sheetsync.utils.timeutils import utcnow

log = logging.getLogger(__name__)


class SyncRunRecorder:
    """
    Creates, completes and lists SyncRun rows.

    A run moves exactly once from running to success or error. Completing an
    already terminal run is a logged no-op.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_running_run(self, mapping_id: int) -> Optional[SyncRun]:
        return self.db.query(SyncRun).filter(
            SyncRun.mapping_id == mapping_id,
            SyncRun.status == SyncRunStatus.RUNNING.value
        ).first()

    def create_run(self, mapping_id: int, trigger_type: str = RunTrigger.MANUAL.value) -> SyncRun:
        run = SyncRun(
            mapping_id=mapping_id,
            trigger_type=trigger_type,
            status=SyncRunStatus.RUNNING.value,
            started_at=utcnow(),
            rows_processed=0,
            rows_failed=0
        )
        self.db.add(run)
        try:
            self.db.commit()
        except IntegrityError:
            # The partial unique index caught a concurrent run created through another session
            self.db.rollback()
            log.warning(f"Refusing to start a second running sync for mapping {mapping_id}")
            raise PreconditionError.already_running(mapping_id)
        self.db.refresh(run)
        log.debug(f"Created sync run #{run.id} for mapping {mapping_id} ({trigger_type})")
        return run

    def complete_run(
        self,
        run_id: int,
        status: SyncRunStatus,
        rows_processed: int = 0,
        rows_failed: int = 0,
        error_message: Optional[str] = None,
        error_details: Optional[Dict[str, Any]] = None,
        completed_at: Optional[datetime] = None
    ) -> Optional[SyncRun]:
        status = SyncRunStatus(status)
        if status == SyncRunStatus.RUNNING:
            raise ValueError("A run can only be completed with a terminal status")

        run = self.db.get(SyncRun, run_id)
        if run is None:
            log.warning(f"Cannot complete sync run #{run_id}: not found")
            return None
        if run.status in TERMINAL_RUN_STATUSES:
            log.warning(f"Sync run #{run_id} already completed with status '{run.status}', ignoring")
            return run

        run.status = status.value
        run.completed_at = completed_at or utcnow()
        run.rows_processed = rows_processed
        run.rows_failed = rows_failed
        if status == SyncRunStatus.ERROR:
            run.error_message = error_message
            run.error_details = error_details
        self.db.commit()
        self.db.refresh(run)
        log.debug(f"Completed sync run #{run_id} with status '{run.status}'")
        return run

    def list_runs(self, mapping_id: int, limit: int = 20) -> List[SyncRun]:
        """Newest first."""
        return self.db.query(SyncRun).filter(
            SyncRun.mapping_id == mapping_id
        ).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit).all()

    def recent_terminal_runs(self, mapping_id: int, limit: int) -> List[SyncRun]:
        return self.db.query(SyncRun).filter(
            SyncRun.mapping_id == mapping_id,
            SyncRun.status != SyncRunStatus.RUNNING.value
        ).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit).all()

    def count_runs(self, mapping_id: int) -> int:
        return self.db.query(SyncRun).filter(SyncRun.mapping_id == mapping_id).count()
