from datetime import datetime
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field


class SyncTriggerRequest(BaseModel):
    mapping_id: int


class SyncResult(BaseModel):
    """Outcome of one executeSync call. Always returned, never raised."""
    success: bool
    rows_processed: int = 0
    rows_failed: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None  # set for every failure; precondition codes mean no run was created
    details: Optional[Dict[str, Any]] = None
    run_id: Optional[int] = None


class SyncStatus(BaseModel):
    mapping_id: int
    is_running: bool
    last_sync: Optional[datetime] = None
    next_sync: Optional[datetime] = None
    success_rate: Optional[float] = None


class SyncRunResponse(BaseModel):
    id: int
    mapping_id: int
    trigger_type: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    rows_processed: int = 0
    rows_failed: int = 0
    error_message: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class SyncJobCreate(BaseModel):
    mapping_id: int
    scheduled_for: datetime = Field(..., description="When the sync should run (ISO 8601, UTC if no offset)")


class SyncJobResponse(BaseModel):
    id: int
    mapping_id: int
    scheduled_for: datetime
    status: str
    sync_run_id: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SchedulerStatus(BaseModel):
    running: bool
    interval_seconds: int
    next_tick: Optional[datetime] = None
    last_tick: Optional[datetime] = None
    last_summary: Optional[Dict[str, int]] = None


class TickSummary(BaseModel):
    due: int = 0
    triggered: int = 0
    skipped_running: int = 0
    succeeded: int = 0
    failed: int = 0
    jobs_processed: int = 0


class PaginatedSyncRuns(BaseModel):
    data: List[SyncRunResponse]
    total: int
