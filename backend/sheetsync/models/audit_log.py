"""Audit log model for tracking user operations."""

from sqlalchemy import Column, Integer, String, DateTime, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sheetsync.database import Base


class AuditLog(Base):
    """Audit trail for mapping, connector and sync operations."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Action details
    action = Column(String(100), nullable=False)  # 'mapping_created', 'sync_triggered', 'sync_job_cancelled', ...
    entity_type = Column(String(50), nullable=True)  # 'mapping', 'connector', 'sync_job'
    entity_id = Column(Integer, nullable=True)

    # User and context
    user = Column(String(100), nullable=True)
    details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    ip_address = Column(String(45), nullable=True)  # supports IPv6
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_logs_action', 'action'),
        Index('idx_audit_logs_entity', 'entity_type', 'entity_id'),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity='{self.entity_type}')>"
