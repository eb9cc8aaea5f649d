"""Database models."""

from sheetsync.models.connector import Connector
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.models.sync_run import SyncRun
from sheetsync.models.sync_job import SyncJob
from sheetsync.models.audit_log import AuditLog

__all__ = [
    "Connector",
    "IntegrationMapping",
    "SyncRun",
    "SyncJob",
    "AuditLog",
]
