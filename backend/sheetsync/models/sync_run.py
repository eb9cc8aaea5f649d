"""Sync run model for tracking synchronization executions."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index, JSON, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sheetsync.database import Base


class SyncRun(Base):
    """One execution attempt of a mapping and its recorded outcome."""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    mapping_id = Column(Integer, ForeignKey("integration_mappings.id", ondelete="CASCADE"), nullable=False, index=True)

    # Execution details
    trigger_type = Column(String(50), nullable=False, default='manual')  # 'manual', 'scheduled', 'job'
    status = Column(String(50), nullable=False)  # 'running', 'success', 'error'
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Statistics
    rows_processed = Column(Integer, default=0, nullable=False)
    rows_failed = Column(Integer, default=0, nullable=False)

    # Error information
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    mapping = relationship("IntegrationMapping", back_populates="sync_runs")

    __table_args__ = (
        # At most one running run per mapping
        Index(
            'uq_sync_runs_one_running_per_mapping',
            'mapping_id',
            unique=True,
            postgresql_where=text("status = 'running'"),
            sqlite_where=text("status = 'running'"),
        ),
        Index('idx_sync_runs_mapping_started', 'mapping_id', 'started_at'),
    )

    def __repr__(self):
        return f"<SyncRun(id={self.id}, mapping={self.mapping_id}, status='{self.status}', processed={self.rows_processed})>"
