from datetime import timedelta
from enum import Enum
from typing import Dict


class SyncFrequency(str, Enum):
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MANUAL = "manual"


class TriggerType(str, Enum):
    """How a mapping is meant to be triggered. Only SCHEDULE is driven by the scheduler."""
    SCHEDULE = "schedule"
    NEW_ROW = "new_row"
    CELL_UPDATE = "cell_update"


class SyncRunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class RunTrigger(str, Enum):
    """What started a particular sync run."""
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    JOB = "job"


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SyncPhase(str, Enum):
    PREPARING = "preparing"
    READING = "reading"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    RECORDING = "recording"


# realtime and manual have no interval and are never due on a schedule tick
FREQUENCY_INTERVALS: Dict[str, timedelta] = {
    SyncFrequency.HOURLY.value: timedelta(hours=1),
    SyncFrequency.DAILY.value: timedelta(hours=24),
    SyncFrequency.WEEKLY.value: timedelta(hours=168),
}


TERMINAL_RUN_STATUSES = (SyncRunStatus.SUCCESS.value, SyncRunStatus.ERROR.value)
