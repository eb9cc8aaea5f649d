"""One-time scheduled sync jobs."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sheetsync.database import Base


class SyncJob(Base):
    """A sync requested for a specific point in time, picked up by the scheduler tick."""

    __tablename__ = "sync_jobs"

    id = Column(Integer, primary_key=True, index=True)
    mapping_id = Column(Integer, ForeignKey("integration_mappings.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), nullable=False, default='pending')  # 'pending', 'completed', 'failed', 'cancelled'
    sync_run_id = Column(Integer, ForeignKey("sync_runs.id", ondelete="SET NULL"), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    mapping = relationship("IntegrationMapping", back_populates="sync_jobs")

    def __repr__(self):
        return f"<SyncJob(id={self.id}, mapping={self.mapping_id}, status='{self.status}', at={self.scheduled_for})>"
