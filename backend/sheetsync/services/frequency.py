"""When a schedule-triggered mapping is due."""

from datetime import datetime
from typing import Optional

from sheetsync.constants.sync import FREQUENCY_INTERVALS, TriggerType
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.utils.timeutils import as_utc


def next_sync_at(mapping: IntegrationMapping) -> Optional[datetime]:
    """Last sync plus the frequency interval; None when never synced or never picked up by the scheduler."""
    if not mapping.is_active or mapping.trigger_type != TriggerType.SCHEDULE.value:
        return None
    interval = FREQUENCY_INTERVALS.get(mapping.sync_frequency)
    last_sync = as_utc(mapping.last_sync_at)
    if interval is None or last_sync is None:
        return None
    return last_sync + interval


def is_due(mapping: IntegrationMapping, now: datetime) -> bool:
    """
    A mapping is due when it is active, schedule-triggered, has an interval-based
    frequency, and either never synced or synced at least one interval ago.
    realtime and manual frequencies are never due here.
    """
    if not mapping.is_active or mapping.trigger_type != TriggerType.SCHEDULE.value:
        return False
    interval = FREQUENCY_INTERVALS.get(mapping.sync_frequency)
    if interval is None:
        return False
    last_sync = as_utc(mapping.last_sync_at)
    if last_sync is None:
        return True
    return as_utc(now) - last_sync >= interval
