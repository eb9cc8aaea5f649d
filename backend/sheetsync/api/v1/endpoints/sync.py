from typing import Annotated, List, Optional
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status, Request
from sqlalchemy.orm import Session

from sheetsync.api.deps import get_sync_executor
from sheetsync.api.v1.endpoints.mappings import get_owned_mapping
from sheetsync.auth import get_current_active_user
from sheetsync.constants.sync import RunTrigger
from sheetsync.database import get_db
from sheetsync.exceptions import PreconditionError
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.models.sync_job import SyncJob
from sheetsync.schemas.auth import User
from sheetsync.schemas.sync import (
    PaginatedSyncRuns, SyncJobCreate, SyncJobResponse, SyncResult, SyncRunResponse, SyncStatus, SyncTriggerRequest
)
from sheetsync.scheduler import cancel_scheduled_sync, schedule_sync
from sheetsync.services.sync_executor import SyncExecutor
from sheetsync.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()

# Precondition rejections map onto HTTP errors; every other outcome is a 200 SyncResult
PRECONDITION_STATUS = {
    PreconditionError.MAPPING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    PreconditionError.MAPPING_INACTIVE: status.HTTP_400_BAD_REQUEST,
    PreconditionError.ALREADY_RUNNING: status.HTTP_409_CONFLICT,
}


@router.post("/trigger", response_model=SyncResult)
async def trigger_sync(
    http_request: Request,
    request: SyncTriggerRequest,
    db: Session = Depends(get_db),
    executor: SyncExecutor = Depends(get_sync_executor),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Run a sync for one mapping now and wait for its outcome."""
    get_owned_mapping(db, request.mapping_id, current_user)

    create_audit_log(
        db=db,
        request=http_request,
        action="sync_triggered",
        entity_type="mapping",
        entity_id=request.mapping_id,
        user=current_user.username if current_user else None,
        details={"trigger_type": RunTrigger.MANUAL.value}
    )

    log.info(f"Manual sync requested for mapping {request.mapping_id}")
    result = await executor.execute_sync(request.mapping_id, trigger_type=RunTrigger.MANUAL.value)

    if result.error_code in PRECONDITION_STATUS:
        raise HTTPException(status_code=PRECONDITION_STATUS[result.error_code], detail=result.error)
    return result


@router.get("/status/{mapping_id}", response_model=SyncStatus)
async def get_sync_status(
    mapping_id: int,
    db: Session = Depends(get_db),
    executor: SyncExecutor = Depends(get_sync_executor),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Running flag, last and next sync, and recent success rate for a mapping."""
    get_owned_mapping(db, mapping_id, current_user)
    try:
        return executor.get_sync_status(mapping_id)
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get("/runs/{mapping_id}", response_model=PaginatedSyncRuns)
async def get_sync_runs(
    mapping_id: int,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    executor: SyncExecutor = Depends(get_sync_executor),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Run history of a mapping, newest first."""
    get_owned_mapping(db, mapping_id, current_user)
    runs = executor.recorder.list_runs(mapping_id, limit=limit)
    return {
        "data": [SyncRunResponse.model_validate(run) for run in runs],
        "total": executor.recorder.count_runs(mapping_id)
    }


@router.post("/jobs", response_model=SyncJobResponse, status_code=status.HTTP_201_CREATED)
async def create_sync_job(
    http_request: Request,
    job: SyncJobCreate,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Queue a one-time sync, picked up by the first scheduler tick at or after scheduled_for."""
    get_owned_mapping(db, job.mapping_id, current_user)
    try:
        db_job = schedule_sync(db, job.mapping_id, job.scheduled_for)
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    create_audit_log(
        db=db,
        request=http_request,
        action="sync_job_scheduled",
        entity_type="sync_job",
        entity_id=db_job.id,
        user=current_user.username if current_user else None,
        details={"mapping_id": job.mapping_id, "scheduled_for": db_job.scheduled_for.isoformat()}
    )
    return db_job


@router.get("/jobs", response_model=List[SyncJobResponse])
async def read_sync_jobs(
    mapping_id: Optional[int] = Query(None, description="Only jobs of this mapping"),
    job_status: Optional[str] = Query(None, alias="status", description="pending, completed, failed or cancelled"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """List the current user's one-time sync jobs, soonest first."""
    query = db.query(SyncJob).join(IntegrationMapping, SyncJob.mapping_id == IntegrationMapping.id).filter(
        IntegrationMapping.user_id == current_user.username
    )
    if mapping_id is not None:
        get_owned_mapping(db, mapping_id, current_user)
        query = query.filter(SyncJob.mapping_id == mapping_id)
    if job_status:
        query = query.filter(SyncJob.status == job_status)
    return query.order_by(SyncJob.scheduled_for).offset(skip).limit(limit).all()


@router.delete("/jobs/{mapping_id}")
async def cancel_sync_jobs(
    http_request: Request,
    mapping_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Cancel every pending one-time sync of a mapping."""
    get_owned_mapping(db, mapping_id, current_user)
    cancelled = cancel_scheduled_sync(db, mapping_id)

    create_audit_log(
        db=db,
        request=http_request,
        action="sync_job_cancelled",
        entity_type="mapping",
        entity_id=mapping_id,
        user=current_user.username if current_user else None,
        details={"cancelled": cancelled}
    )
    return {"mapping_id": mapping_id, "cancelled": cancelled}
