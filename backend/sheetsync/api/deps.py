"""Shared FastAPI dependencies."""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from sheetsync.database import get_db
from sheetsync.scheduler import SyncScheduler
from sheetsync.services.sync_executor import SyncExecutor


def get_sync_executor(request: Request, db: Session = Depends(get_db)) -> SyncExecutor:
    """Executor bound to the request session and the process-wide reader and writer."""
    state = request.app.state
    return SyncExecutor(
        db,
        source_reader=getattr(state, "source_reader", None),
        target_writer=getattr(state, "target_writer", None)
    )


def get_scheduler(request: Request) -> SyncScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Scheduler is not configured")
    return scheduler
