from typing import Annotated
from fastapi import APIRouter, Depends

from sheetsync.api.deps import get_scheduler
from sheetsync.auth import get_current_active_user
from sheetsync.scheduler import SyncScheduler
from sheetsync.schemas.auth import User
from sheetsync.schemas.sync import SchedulerStatus, TickSummary

router = APIRouter()


@router.get("/", response_model=SchedulerStatus)
async def read_scheduler_status(
    scheduler: SyncScheduler = Depends(get_scheduler),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Whether the periodic tick is active and when it fires next."""
    return SchedulerStatus(
        running=scheduler.is_running,
        interval_seconds=scheduler.interval_seconds,
        next_tick=scheduler.next_tick,
        last_tick=scheduler.last_tick,
        last_summary=scheduler.last_summary
    )


@router.post("/tick", response_model=TickSummary)
async def run_scheduler_tick(
    scheduler: SyncScheduler = Depends(get_scheduler),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Run one scheduler tick now, even when the periodic timer is stopped."""
    summary = await scheduler.tick()
    return TickSummary(**summary)
